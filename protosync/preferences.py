"""
Persisted user preferences.

Values live in a flat key/value table (see :mod:`protosync.db`).  The
compiler never reads them directly: each trigger calls
:func:`load_settings` once and passes the resulting snapshot down, so
edits made while a batch is running only apply to the next trigger.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from protosync.config import (
    PREF_ENABLE,
    PREF_GRPC_PATH,
    PREF_LOG_ERROR,
    PREF_LOG_STANDARD,
    PREF_PROTOC_EXECUTABLE,
    PreferenceSettings,
)
from protosync.db.models import Preference
from protosync.db.session import get_session
from protosync.invoker import is_path_configured

logger = logging.getLogger(__name__)

_TRUE = "true"
_FALSE = "false"

#: Friendly names accepted by the CLI and the API → storage keys.
PREFERENCE_NAMES: Dict[str, str] = {
    "enabled": PREF_ENABLE,
    "protoc_executable": PREF_PROTOC_EXECUTABLE,
    "grpc_plugin_path": PREF_GRPC_PATH,
    "log_error": PREF_LOG_ERROR,
    "log_standard": PREF_LOG_STANDARD,
}

_BOOL_KEYS = frozenset({PREF_ENABLE, PREF_LOG_ERROR, PREF_LOG_STANDARD})


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


class PreferenceStore:
    """String/bool getters and setters over the preference table."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with get_session(self.database_url) as session:
            row = session.get(Preference, key)
            return row.value if row is not None else default

    def set_str(self, key: str, value: str) -> None:
        with get_session(self.database_url) as session:
            row = session.get(Preference, key)
            if row is None:
                session.add(Preference(key=key, value=value))
            else:
                row.value = value

    def get_bool(self, key: str, default: bool) -> bool:
        raw = self.get_str(key)
        if raw is None:
            return default
        try:
            return parse_bool(raw)
        except ValueError:
            logger.warning("Ignoring malformed preference %s=%r", key, raw)
            return default

    def set_bool(self, key: str, value: bool) -> None:
        self.set_str(key, _TRUE if value else _FALSE)

    def delete(self, key: str) -> None:
        with get_session(self.database_url) as session:
            row = session.get(Preference, key)
            if row is not None:
                session.delete(row)

    def reset(self) -> None:
        """Forget every stored preference; defaults apply again."""
        with get_session(self.database_url) as session:
            session.query(Preference).delete()

    def set_named(self, name: str, value: str) -> None:
        """Set a preference by friendly name from user-entered text."""
        key = PREFERENCE_NAMES.get(name.replace("-", "_"))
        if key is None:
            supported = ", ".join(sorted(PREFERENCE_NAMES))
            raise ValueError(f"Unknown preference '{name}'. Supported: {supported}")
        if key in _BOOL_KEYS:
            self.set_bool(key, parse_bool(value))
        elif value.strip():
            self.set_str(key, value.strip())
        else:
            self.delete(key)


def _path_or_none(value: Optional[str]) -> Optional[str]:
    return value.strip() if is_path_configured(value) else None


def load_settings(store: PreferenceStore) -> PreferenceSettings:
    """Read every preference once and return an immutable snapshot."""
    return PreferenceSettings(
        enabled=store.get_bool(PREF_ENABLE, True),
        protoc_executable=_path_or_none(
            store.get_str(PREF_PROTOC_EXECUTABLE, PREF_PROTOC_EXECUTABLE)
        ),
        grpc_plugin_path=_path_or_none(
            store.get_str(PREF_GRPC_PATH, PREF_GRPC_PATH)
        ),
        log_error=store.get_bool(PREF_LOG_ERROR, True),
        log_standard=store.get_bool(PREF_LOG_STANDARD, False),
    )


def save_settings(store: PreferenceStore, settings: PreferenceSettings) -> None:
    store.set_bool(PREF_ENABLE, settings.enabled)
    store.set_bool(PREF_LOG_ERROR, settings.log_error)
    store.set_bool(PREF_LOG_STANDARD, settings.log_standard)
    for key, value in (
        (PREF_PROTOC_EXECUTABLE, settings.protoc_executable),
        (PREF_GRPC_PATH, settings.grpc_plugin_path),
    ):
        if value:
            store.set_str(key, value)
        else:
            store.delete(key)
