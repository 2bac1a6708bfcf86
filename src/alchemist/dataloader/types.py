# src/alchemist/dataloader/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from alchemist.schemas.models import PrioritySettings, Rule


@dataclass(slots=True)
class Workspace:
    """
    In-memory dataset: the three entity collections, rules and priorities.

    Entity rows are kept as raw column-keyed mappings, exactly as the
    parsing layer produced them; malformed rows are the validator's job.
    """

    clients: list[dict[str, Any]] = field(default_factory=list)
    workers: list[dict[str, Any]] = field(default_factory=list)
    tasks: list[dict[str, Any]] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)
    priority_settings: PrioritySettings = field(default_factory=PrioritySettings)


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of a bundle loading step.

    Fields:
        success: True if no item-level issues were found.
        workspace: Loaded data (rules that failed to parse are left out).
        errors: Issue dicts, each with at least: kind, section, index, message.
    """

    success: bool
    workspace: Workspace = field(default_factory=Workspace)
    errors: list[dict[str, Any]] = field(default_factory=list)
