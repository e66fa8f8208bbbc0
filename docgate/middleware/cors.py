"""CORS policy derived from runtime configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from ..monitoring.metrics import record_cors_rejection
from ..runtime.store import ConfigStore

ANY_ORIGIN: Final[str] = "*"

CORS_KEYS: Final[tuple[str, ...]] = (
    "httpd.enable_cors",
    "cors.credentials",
    "cors.methods",
    "cors.origins",
    "cors.headers",
)

CORS_DEFAULTS: Final[tuple[tuple[str, str, Any], ...]] = (
    ("httpd", "enable_cors", False),
    ("cors", "credentials", True),
    ("cors", "methods", "GET, HEAD, POST, PUT, DELETE, COPY"),
    ("cors", "origins", ANY_ORIGIN),
    ("cors", "headers", "accept, authorization, content-type, origin, referer"),
)

PREFLIGHT_MAX_AGE: Final[int] = 600

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})


def as_bool(value: Any) -> bool:
    """Interpret a configuration value as a boolean flag."""

    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def split_list(value: Any) -> frozenset[str]:
    """Parse a comma-separated configuration list into a set of entries."""

    if value is None:
        return frozenset()
    items = (item.strip() for item in str(value).split(","))
    return frozenset(item for item in items if item)


@dataclass(frozen=True)
class CORSPolicy:
    """Immutable snapshot of the cross-origin rules in force."""

    methods: frozenset[str]
    headers: frozenset[str]
    credentials: bool
    origins: frozenset[str] | str

    @property
    def allows_any_origin(self) -> bool:
        return self.origins == ANY_ORIGIN

    def allow_origin_value(self, origin: str) -> str | None:
        """
        Return the ``Access-Control-Allow-Origin`` value for ``origin``.

        A wildcard policy that permits credentials echoes the requesting
        origin, since browsers reject a literal ``*`` on credentialed
        responses. ``None`` means the origin is not allowed.
        """
        if self.allows_any_origin:
            return origin if self.credentials else ANY_ORIGIN
        if origin in self.origins:
            return origin
        return None

    def response_headers(self, origin: str | None) -> dict[str, str]:
        """Headers to add to an ordinary (non-preflight) response."""

        if not origin:
            return {}

        allowed = self.allow_origin_value(origin)
        if allowed is None:
            record_cors_rejection()
            return {}

        headers = {"Access-Control-Allow-Origin": allowed}
        if allowed != ANY_ORIGIN:
            headers["Vary"] = "Origin"
        if self.credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    def preflight_headers(self, origin: str | None) -> dict[str, str]:
        """Headers answering an ``OPTIONS`` preflight request."""

        headers = self.response_headers(origin)
        if not headers:
            return {}
        headers["Access-Control-Allow-Methods"] = ", ".join(sorted(self.methods))
        headers["Access-Control-Allow-Headers"] = ", ".join(sorted(self.headers))
        headers["Access-Control-Max-Age"] = str(PREFLIGHT_MAX_AGE)
        return headers


def register_cors_defaults(store: ConfigStore) -> None:
    for section, key, value in CORS_DEFAULTS:
        store.register_default(section, key, value)


def build_cors_policy(store: ConfigStore) -> CORSPolicy | None:
    """Build the policy described by the store, or ``None`` when CORS is off."""

    if not as_bool(store.get("httpd", "enable_cors")):
        return None

    raw_origins = store.get("cors", "origins", "")
    if str(raw_origins).strip() == ANY_ORIGIN:
        origins: frozenset[str] | str = ANY_ORIGIN
    else:
        origins = split_list(raw_origins)

    return CORSPolicy(
        methods=frozenset(method.upper() for method in split_list(store.get("cors", "methods"))),
        headers=split_list(store.get("cors", "headers")),
        credentials=as_bool(store.get("cors", "credentials")),
        origins=origins,
    )
