# src/alchemist/errors.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


class AlchemistError(Exception):
    """
    Base class for all structured Data Alchemist exceptions.

    Data problems inside a dataset are never raised; they are reported as
    ValidationError values. Exceptions are reserved for unusable inputs
    (configuration, bundle, rule payloads) and artifact I/O.
    """

    def __init__(
        self, message: str, source: str | None = None, suggested_action: str | None = None
    ):
        super().__init__(message)
        self.timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self.error_type = self.__class__.__name__
        self.source = source or "unknown"
        self.suggested_action = suggested_action

    @property
    def message(self) -> str:
        return str(self.args[0])

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for CLI diagnostics."""
        return {
            "errorType": self.error_type,
            "message": self.message,
            "source": self.source,
            "suggestedAction": self.suggested_action,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        text = f"[{self.error_type}] {self.message} (source={self.source})"
        if self.suggested_action:
            text += f" | action: {self.suggested_action}"
        return text


class ConfigError(AlchemistError):
    """Invalid or missing configuration (config.yaml)"""


class DataError(AlchemistError):
    """Unreadable workspace bundle, report I/O failure or API contract misuse"""


class RuleError(AlchemistError):
    """Rule payload that cannot be imported"""
