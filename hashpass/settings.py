"""Persistence of character-class preferences and clipboard access.

Both are best-effort: a broken settings file falls back to the defaults and
a missing clipboard only means the password has to be copied by hand.
"""

import json
import logging
import os
from dataclasses import replace
from pathlib import Path

import pyperclip

from hashpass import DEFAULT_CONFIGURATION, Configuration, validate_length

logger = logging.getLogger(__name__)

SETTINGS_ENV = "HASHPASS_SETTINGS"

_FLAGS = ("uppercase", "lowercase", "numbers", "symbols")


def default_settings_path() -> Path:
    if os.environ.get(SETTINGS_ENV):
        return Path(os.environ[SETTINGS_ENV])
    return Path.home() / ".config" / "hashpass" / "settings.json"


def configuration_from_dict(data: dict) -> Configuration:
    """Merge a saved record over the defaults.

    Unknown keys are ignored.  Raises ``ValueError`` (or ``TypeError``) for a
    value of the wrong type or a length outside the allowed range.
    """
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")

    changes = {}
    for flag in _FLAGS:
        if flag in data:
            if not isinstance(data[flag], bool):
                raise TypeError(f"{flag} must be true or false")
            changes[flag] = data[flag]
    if "length" in data:
        length = data["length"]
        if isinstance(length, bool) or not isinstance(length, int):
            raise TypeError("length must be an integer")
        validate_length(length)
        changes["length"] = length

    return replace(DEFAULT_CONFIGURATION, **changes)


class SettingsStore:
    """Load and save a :class:`~hashpass.Configuration` as a JSON file."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else default_settings_path()

    def load(self) -> Configuration:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return configuration_from_dict(data)
        except FileNotFoundError:
            return DEFAULT_CONFIGURATION
        except (OSError, ValueError, TypeError) as exc:
            # ValidationError and JSONDecodeError are both ValueErrors
            logger.warning("Ignoring settings in %s: %s", self.path, exc)
            return DEFAULT_CONFIGURATION

    def save(self, config: Configuration) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.as_dict(), f, indent=2)
        except OSError as exc:
            logger.warning("Could not save settings to %s: %s", self.path, exc)
            return False
        return True

    def reset(self) -> Configuration:
        self.save(DEFAULT_CONFIGURATION)
        return DEFAULT_CONFIGURATION

    def update(self, **changes) -> Configuration:
        """Apply *changes* to the stored settings and save the result.

        Raises :class:`~hashpass.ValidationError` for an out-of-range length;
        nothing is saved in that case.
        """
        config = replace(self.load(), **changes).checked()
        self.save(config)
        return config


def copy_to_clipboard(text: str) -> bool:
    """Put *text* on the system clipboard. Returns whether it worked."""
    if not text:
        return False
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as exc:
        logger.warning("Clipboard unavailable: %s", exc)
        return False
    return True
