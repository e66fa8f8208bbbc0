"""Mutable runtime configuration store with change notification."""

from __future__ import annotations

import os
import tempfile
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import Any

import yaml

from ..exceptions import ConfigKeyNotFoundError, ConfigurationError
from ..monitoring.metrics import record_config_change
from ..utils.config import load_yaml_config
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "config_store"})

_SCALAR_TYPES = (str, int, float, bool)
_MISSING = object()


@dataclass(frozen=True, slots=True)
class ConfigChange:
    """A single effective-value change delivered to subscribers."""

    section: str
    key: str
    old_value: Any
    new_value: Any

    @property
    def identifier(self) -> str:
        return f"{self.section}.{self.key}"


ConfigListener = Callable[[ConfigChange], None]


def parse_identifier(identifier: str) -> tuple[str, str]:
    """Split a ``section.key`` identifier into its parts."""

    section, sep, key = identifier.partition(".")
    if not sep or not section or not key:
        raise ConfigurationError(
            f"Configuration identifier '{identifier}' must look like 'section.key'"
        )
    return section, key


class ConfigStore:
    """
    Sectioned key/value configuration with registered defaults.

    Explicit values are persisted to a YAML file (when a path is given) and
    every change to an entry's effective value is delivered synchronously to
    the subscribers of that entry, in registration order. Mutations and the
    notifications they trigger are serialized by a re-entrant lock, so a
    subscriber may read the store while it is being notified.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        """
        Initialize the store.

        Args:
            path: Optional YAML file backing explicit values. Loaded when it
                exists, created on the first write otherwise.
        """
        self._path = Path(path) if path is not None else None
        self._values: dict[str, dict[str, Any]] = {}
        self._defaults: dict[str, dict[str, Any]] = {}
        self._subscribers: dict[str, list[ConfigListener]] = defaultdict(list)
        self._lock = RLock()

        if self._path is not None and self._path.exists():
            self._values = self._read_file(self._path)
            logger.info(f"Loaded configuration from {self._path}")

    @property
    def path(self) -> Path | None:
        return self._path

    def _read_file(self, path: Path) -> dict[str, dict[str, Any]]:
        raw = load_yaml_config(path)
        values: dict[str, dict[str, Any]] = {}
        for section, entries in raw.items():
            if entries is None:
                continue
            if not isinstance(entries, dict):
                raise ConfigurationError(
                    f"Section '{section}' in {path} must be a mapping of keys to values"
                )
            for key, value in entries.items():
                _check_scalar(str(section), str(key), value)
                values.setdefault(str(section), {})[str(key)] = value
        return values

    def _save(self) -> None:
        if self._path is None:
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                yaml.safe_dump(self._values, handle, default_flow_style=False, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _save_or_restore(self, section: str, key: str, existed: bool, previous: Any) -> None:
        """Persist, or put the entry back the way it was if the file cannot be written."""

        try:
            self._save()
        except OSError as e:
            if existed:
                self._values.setdefault(section, {})[key] = previous
            else:
                entries = self._values.get(section, {})
                entries.pop(key, None)
                if not entries:
                    self._values.pop(section, None)
            raise ConfigurationError(
                f"Unable to persist configuration to {self._path}: {e}"
            ) from e

    def _effective(self, section: str, key: str) -> Any:
        explicit = self._values.get(section, {})
        if key in explicit:
            return explicit[key]
        return self._defaults.get(section, {}).get(key, _MISSING)

    def register_default(self, section: str, key: str, value: Any) -> None:
        """
        Register the fallback value for an entry.

        Re-registering replaces the fallback; this never touches an explicit
        value, so the effective value only moves when none has been set.
        """
        _check_scalar(section, key, value)
        with self._lock:
            before = self._effective(section, key)
            self._defaults.setdefault(section, {})[key] = value
            self._notify_if_changed(section, key, before)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Return the explicit value, else the registered default, else ``default``."""

        with self._lock:
            value = self._effective(section, key)
        return default if value is _MISSING else value

    def has_explicit(self, section: str, key: str) -> bool:
        with self._lock:
            return key in self._values.get(section, {})

    def get_section(self, section: str) -> dict[str, Any]:
        """Return the merged view of one section (empty if unknown)."""

        with self._lock:
            merged = dict(self._defaults.get(section, {}))
            merged.update(self._values.get(section, {}))
        return merged

    def as_dict(self) -> dict[str, dict[str, Any]]:
        """Return the merged view of every section."""

        with self._lock:
            sections = set(self._defaults) | set(self._values)
            return {section: self.get_section(section) for section in sorted(sections)}

    def set(self, section: str, key: str, value: Any) -> Any:
        """
        Set an explicit value, persist it and notify subscribers.

        Returns:
            The previous explicit value, or ``None`` when there was none.

        Raises:
            ConfigurationError: If the value cannot be persisted; the store is
                left unchanged and no subscriber is notified.
        """
        _check_scalar(section, key, value)
        with self._lock:
            before = self._effective(section, key)
            existed = key in self._values.get(section, {})
            previous = self._values.get(section, {}).get(key)
            self._values.setdefault(section, {})[key] = value
            self._save_or_restore(section, key, existed, previous)
            logger.info(f"Set {section}.{key}", extra={"status": "updated"})
            self._notify_if_changed(section, key, before)
        return previous

    def delete(self, section: str, key: str) -> Any:
        """
        Remove an explicit value so the entry falls back to its default.

        Raises:
            ConfigKeyNotFoundError: If no explicit value exists.
            ConfigurationError: If the removal cannot be persisted.
        """
        with self._lock:
            entries = self._values.get(section, {})
            if key not in entries:
                raise ConfigKeyNotFoundError(f"No explicit value for {section}.{key}")
            before = self._effective(section, key)
            previous = entries.pop(key)
            if not entries:
                self._values.pop(section, None)
            self._save_or_restore(section, key, True, previous)
            logger.info(f"Deleted {section}.{key}", extra={"status": "deleted"})
            self._notify_if_changed(section, key, before)
        return previous

    def on(self, identifier: str, callback: ConfigListener) -> None:
        """Subscribe ``callback`` to changes of ``identifier`` without invoking it."""

        parse_identifier(identifier)
        with self._lock:
            self._subscribers[identifier].append(callback)

    def off(self, identifier: str, callback: ConfigListener) -> None:
        """Remove a subscription added with :meth:`on`; unknown ones are ignored."""

        with self._lock:
            subscribers = self._subscribers.get(identifier, [])
            if callback in subscribers:
                subscribers.remove(callback)

    def reload(self) -> list[str]:
        """
        Re-read the backing file and notify subscribers of changed entries.

        Returns:
            Sorted identifiers whose effective value changed.
        """
        if self._path is None:
            return []

        with self._lock:
            fresh = self._read_file(self._path) if self._path.exists() else {}
            identifiers = {
                (section, key)
                for source in (self._values, fresh)
                for section, entries in source.items()
                for key in entries
            }
            before = {ident: self._effective(*ident) for ident in identifiers}
            self._values = fresh

            changed: list[str] = []
            for section, key in sorted(identifiers):
                if self._notify_if_changed(section, key, before[(section, key)]):
                    changed.append(f"{section}.{key}")

        logger.info(
            f"Reloaded configuration from {self._path} ({len(changed)} changed)",
            extra={"status": "reloaded"},
        )
        return changed

    def _notify_if_changed(self, section: str, key: str, before: Any) -> bool:
        after = self._effective(section, key)
        if after is before or after == before and type(after) is type(before):
            return False

        record_config_change(section)
        change = ConfigChange(
            section=section,
            key=key,
            old_value=None if before is _MISSING else before,
            new_value=None if after is _MISSING else after,
        )
        for callback in list(self._subscribers.get(change.identifier, ())):
            try:
                callback(change)
            except Exception as e:
                logger.error(
                    f"Subscriber {getattr(callback, '__name__', callback)!r} "
                    f"failed for {change.identifier}: {e}",
                    exc_info=True,
                    extra={"status": "error"},
                )
        return True


def _check_scalar(section: str, key: str, value: Any) -> None:
    if not section or not key:
        raise ConfigurationError("Configuration section and key must be non-empty")
    if "." in section:
        raise ConfigurationError(f"Configuration section '{section}' must not contain '.'")
    if value is not None and not isinstance(value, _SCALAR_TYPES):
        raise ConfigurationError(
            f"Value for {section}.{key} must be a string or JSON scalar, "
            f"got {type(value).__name__}"
        )
