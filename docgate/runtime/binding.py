"""Reactive bindings between configuration keys and live objects."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from threading import Lock
from typing import Generic, TypeVar

from ..exceptions import InitialRebuildError
from ..monitoring.metrics import record_rebuild
from ..utils.logging import setup_logger
from .store import ConfigChange, ConfigStore, parse_identifier

logger = setup_logger(__name__, context={"component": "binding"})

T = TypeVar("T")


class LiveReference(Generic[T]):
    """
    Holder for the object currently serving requests.

    Replacement is a single reference swap: readers that already fetched the
    old object keep using it, new readers see the new one. The object itself is
    never mutated through the reference.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._version = 0
        self._lock = Lock()

    def get(self) -> T:
        return self._value

    def swap(self, value: T) -> T:
        """Install ``value`` and return the object it replaced."""

        with self._lock:
            previous = self._value
            self._value = value
            self._version += 1
        return previous

    @property
    def version(self) -> int:
        return self._version


class ReactiveBinding:
    """A rebuild function subscribed to a set of configuration keys."""

    def __init__(
        self,
        store: ConfigStore,
        name: str,
        keys: Iterable[str],
        rebuild: Callable[[], None],
    ) -> None:
        self.store = store
        self.name = name
        self.keys = tuple(keys)
        self._rebuild = rebuild
        self.rebuild_count = 0
        self.last_error: BaseException | None = None

        for identifier in self.keys:
            parse_identifier(identifier)

    def establish(self) -> None:
        """Subscribe to every key, then run the rebuild once.

        A failed first rebuild removes the subscriptions again, so the store
        never calls back into a binding that did not come up.

        Raises:
            InitialRebuildError: If the first rebuild fails.
        """
        for identifier in self.keys:
            self.store.on(identifier, self._on_change)

        try:
            self._rebuild()
        except Exception as e:
            for identifier in self.keys:
                self.store.off(identifier, self._on_change)
            record_rebuild(self.name, "failure")
            self.last_error = e
            raise InitialRebuildError(self.name, e) from e

        self.rebuild_count += 1
        record_rebuild(self.name, "success")
        logger.info(
            f"Established binding on {', '.join(self.keys)}",
            extra={"binding": self.name, "status": "ready"},
        )

    def _on_change(self, change: ConfigChange) -> None:
        try:
            self._rebuild()
        except Exception as e:
            # The previously built object stays live.
            self.last_error = e
            record_rebuild(self.name, "failure")
            logger.error(
                f"Rebuild after change to {change.identifier} failed, "
                f"keeping previous object: {e}",
                exc_info=True,
                extra={"binding": self.name, "status": "stale"},
            )
            return

        self.last_error = None
        self.rebuild_count += 1
        record_rebuild(self.name, "success")
        logger.info(
            f"Rebuilt after change to {change.identifier}",
            extra={"binding": self.name, "status": "rebuilt"},
        )


def bind(
    store: ConfigStore,
    keys: Iterable[str],
    rebuild: Callable[[], None],
    *,
    name: str | None = None,
) -> ReactiveBinding:
    """
    Bind ``rebuild`` to ``keys`` and run it once before returning.

    Args:
        store: Configuration store to subscribe to
        keys: ``section.key`` identifiers that trigger the rebuild
        rebuild: Zero-argument function that builds and swaps a live object
        name: Label used in logs and metrics (defaults to the function name)

    Returns:
        The established binding

    Raises:
        InitialRebuildError: If the initial rebuild fails
    """
    binding = ReactiveBinding(store, name or rebuild.__name__, keys, rebuild)
    binding.establish()
    return binding
