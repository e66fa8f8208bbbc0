"""Reconfiguration coordinator tying the config store to the request path."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock

from . import __version__
from .backends.selector import BACKEND_KEYS, BackendSelector, DatabaseFactory
from .middleware.auth import AccessGate
from .middleware.cors import CORS_KEYS, CORSPolicy, build_cors_policy, register_cors_defaults
from .monitoring.metrics import set_live_version
from .runtime.binding import LiveReference, ReactiveBinding, bind
from .runtime.store import ConfigStore
from .utils.config import GlobalSettings
from .utils.health import ComponentHealth, HealthStatus, SystemHealth, overall_status
from .utils.logging import set_log_level, setup_logger

logger = setup_logger(__name__, context={"component": "gateway"})

LOG_KEYS = ("log.level",)


@dataclass(frozen=True)
class GatewaySnapshot:
    """The live objects a single request works with from start to finish."""

    cors_policy: CORSPolicy | None
    database_factory: DatabaseFactory


class Gateway:
    """
    Owns the configuration store and the objects derived from it.

    :meth:`start` registers defaults and binds each rebuild function to its
    keys. Every rebuild constructs a fresh immutable object and swaps it into
    a :class:`LiveReference`; requests read both references once through
    :meth:`snapshot`.
    """

    def __init__(self, settings: GlobalSettings, store: ConfigStore) -> None:
        self.settings = settings
        self.store = store
        self.access_gate = AccessGate.from_settings(settings)
        self.backend_selector = BackendSelector(settings)
        self.cors_policy: LiveReference[CORSPolicy | None] = LiveReference(None)
        self.database_factory: LiveReference[DatabaseFactory | None] = LiveReference(None)
        self.bindings: dict[str, ReactiveBinding] = {}
        self.started_at = datetime.now(timezone.utc)
        self._draining: list[DatabaseFactory] = []
        self._draining_lock = Lock()

    def start(self) -> None:
        """
        Establish initial state.

        Raises:
            InitialRebuildError: If any binding fails its first rebuild
        """
        register_cors_defaults(self.store)
        self.backend_selector.register_defaults(self.store)
        self.store.register_default("log", "level", self.settings.log_level.lower())

        self.bindings["cors"] = bind(self.store, CORS_KEYS, self.rebuild_cors, name="cors")
        self.bindings["backend"] = bind(
            self.store, BACKEND_KEYS, self.rebuild_backend, name="backend"
        )
        self.bindings["log"] = bind(self.store, LOG_KEYS, self.apply_log_level, name="log")
        logger.info("Gateway started", extra={"status": "ready"})

    def rebuild_cors(self) -> None:
        policy = build_cors_policy(self.store)
        self.cors_policy.swap(policy)
        set_live_version("cors", self.cors_policy.version)

    def rebuild_backend(self) -> None:
        factory = self.backend_selector.build(self.store)
        previous = self.database_factory.swap(factory)
        set_live_version("backend", self.database_factory.version)
        if previous is not None:
            # Requests that captured the previous factory may still be using it.
            previous.retire()
            with self._draining_lock:
                self._draining = [f for f in self._draining if not f.closed]
                if not previous.closed:
                    self._draining.append(previous)

    @property
    def draining(self) -> list[DatabaseFactory]:
        """Replaced factories still held by in-flight requests."""

        with self._draining_lock:
            return [factory for factory in self._draining if not factory.closed]

    def apply_log_level(self) -> None:
        set_log_level(str(self.store.get("log", "level", "info")))

    def snapshot(self) -> GatewaySnapshot:
        factory = self.database_factory.get()
        if factory is None:
            raise RuntimeError("Gateway has not been started")
        return GatewaySnapshot(cors_policy=self.cors_policy.get(), database_factory=factory)

    @contextmanager
    def lease(self) -> Iterator[GatewaySnapshot]:
        """
        Snapshot the live objects and hold the factory until the block exits.

        A factory swapped out and closed between the read and the lease is
        skipped by reading the live reference again.
        """
        while True:
            snapshot = self.snapshot()
            if snapshot.database_factory.acquire():
                break
        try:
            yield snapshot
        finally:
            snapshot.database_factory.release()

    def health(self) -> SystemHealth:
        components: dict[str, ComponentHealth] = {}
        for name, binding in self.bindings.items():
            if binding.last_error is None:
                components[f"binding:{name}"] = ComponentHealth(
                    name=name,
                    status=HealthStatus.HEALTHY,
                    metadata={"rebuilds": binding.rebuild_count, "keys": list(binding.keys)},
                )
            else:
                components[f"binding:{name}"] = ComponentHealth(
                    name=name,
                    status=HealthStatus.DEGRADED,
                    message=f"Last rebuild failed, serving previous object: {binding.last_error}",
                    metadata={"rebuilds": binding.rebuild_count, "keys": list(binding.keys)},
                )

        factory = self.database_factory.get()
        if factory is None:
            components["backend"] = ComponentHealth(
                name="backend", status=HealthStatus.UNHEALTHY, message="No backend configured"
            )
        else:
            try:
                database_count = len(factory.all_dbs())
            except Exception as e:
                components["backend"] = ComponentHealth(
                    name="backend",
                    status=HealthStatus.UNHEALTHY,
                    message=f"Backend check failed: {e}",
                    metadata=factory.describe(),
                )
            else:
                components["backend"] = ComponentHealth(
                    name="backend",
                    status=HealthStatus.HEALTHY,
                    metadata={**factory.describe(), "databases": database_count},
                )

        return SystemHealth(
            status=overall_status(components),
            version=__version__,
            components=components,
            uptime_seconds=(datetime.now(timezone.utc) - self.started_at).total_seconds(),
        )

    def close(self) -> None:
        """Close the live factory and any replaced ones still draining."""

        with self._draining_lock:
            factories = list(self._draining)
            self._draining.clear()
        current = self.database_factory.get()
        if current is not None:
            factories.append(current)
        for factory in factories:
            factory.close()
        logger.info(f"Closed {len(factories)} database factories", extra={"status": "closed"})
