def test_imports():
    """
    @brief
    Verifies that all core alchemist modules are importable.

    @details
    Ensures package structure integrity and confirms that the public
    functions are re-exported from the top-level package.
    """
    import alchemist
    import alchemist.dataloader
    import alchemist.export
    import alchemist.metrics
    import alchemist.rules
    import alchemist.search
    import alchemist.validator

    # --- Assert ---
    assert all([alchemist.dataloader, alchemist.export, alchemist.metrics])
    assert all([alchemist.rules, alchemist.search, alchemist.validator])
    for name in alchemist.__all__:
        assert callable(getattr(alchemist, name))
