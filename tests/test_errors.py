import pytest

from alchemist.errors import AlchemistError, ConfigError, DataError, RuleError


@pytest.mark.parametrize("cls", [ConfigError, DataError, RuleError])
def test_error_hierarchy(cls):
    # --- Act ---
    err = cls("boom", source="unit")

    # --- Assert ---
    assert isinstance(err, AlchemistError)
    assert err.error_type == cls.__name__
    assert str(err) == f"[{cls.__name__}] boom (source=unit)"


def test_error_to_dict_and_action():
    """
    @brief
    The structured form carries every diagnostic field.
    """
    # --- Arrange ---
    err = DataError("bad bundle", suggested_action="Re-export the workspace.")

    # --- Act ---
    data = err.to_dict()

    # --- Assert ---
    assert data["errorType"] == "DataError"
    assert data["message"] == "bad bundle"
    assert data["source"] == "unknown"
    assert data["suggestedAction"] == "Re-export the workspace."
    assert str(err).endswith("| action: Re-export the workspace.")
