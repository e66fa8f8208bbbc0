"""Static Basic-Authentication gate for mutating requests."""

from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass
from typing import Final

from ..exceptions import AuthenticationError
from ..monitoring.metrics import record_auth_decision
from ..utils.config import GlobalSettings

SAFE_METHODS: Final[frozenset[str]] = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class AuthCredential:
    """The single username/password pair configured at startup."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"AuthCredential(username={self.username!r}, password='***')"


def parse_basic_authorization(header: str | None) -> tuple[str, str]:
    """
    Decode an ``Authorization: Basic`` header value.

    Raises:
        AuthenticationError: If the header is missing or malformed
    """
    if not header:
        raise AuthenticationError("Authentication required.")

    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        raise AuthenticationError("Only Basic authentication is supported.")

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise AuthenticationError("Malformed Basic authentication header.")

    username, sep, password = decoded.partition(":")
    if not sep:
        raise AuthenticationError("Malformed Basic authentication header.")
    return username, password


class AccessGate:
    """
    Per-request authorization decision.

    With no credential configured every request passes. With one configured,
    safe methods still pass and every other method must present matching
    Basic credentials. No state is kept between requests.
    """

    def __init__(self, credential: AuthCredential | None = None) -> None:
        self.credential = credential

    @classmethod
    def from_settings(cls, settings: GlobalSettings) -> AccessGate:
        if settings.username and settings.password:
            return cls(AuthCredential(settings.username, settings.password))
        return cls()

    @property
    def guarded(self) -> bool:
        return self.credential is not None

    def requires_auth(self, method: str) -> bool:
        return self.guarded and method.upper() not in SAFE_METHODS

    def authorize(self, method: str, authorization: str | None) -> None:
        """
        Check one request.

        Raises:
            AuthenticationError: If the request is guarded and the credentials
                are missing or do not match.
        """
        credential = self.credential
        if credential is None or not self.requires_auth(method):
            record_auth_decision("open")
            return

        try:
            username, password = parse_basic_authorization(authorization)
        except AuthenticationError:
            record_auth_decision("denied")
            raise

        name_ok = secrets.compare_digest(username.encode(), credential.username.encode())
        password_ok = secrets.compare_digest(
            password.encode(), credential.password.encode()
        )
        if not (name_ok and password_ok):
            record_auth_decision("denied")
            raise AuthenticationError("Name or password is incorrect.")

        record_auth_decision("granted")
