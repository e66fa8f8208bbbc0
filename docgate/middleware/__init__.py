"""Request-path policies: access control and CORS."""

from .auth import AccessGate, AuthCredential
from .cors import CORSPolicy, build_cors_policy

__all__ = ["AccessGate", "AuthCredential", "CORSPolicy", "build_cors_policy"]
