"""Request pipeline middleware: access gate, then CORS, then the engine."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..exceptions import AuthenticationError
from ..gateway import Gateway, GatewaySnapshot
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "pipeline"})


def is_preflight(request: Request) -> bool:
    return (
        request.method == "OPTIONS"
        and "origin" in request.headers
        and "access-control-request-method" in request.headers
    )


def unauthorized_response(exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": exc.error, "reason": str(exc)},
        headers={"WWW-Authenticate": 'Basic realm="docgate"'},
    )


class RequestPipelineMiddleware(BaseHTTPMiddleware):
    """
    Evaluate every request against the live gateway objects.

    The CORS policy and database factory are read once when the request
    arrives and that snapshot is used until the response leaves, even if a
    configuration change swaps either object meanwhile. The factory is leased
    for the whole request so a replaced one is not closed underneath it.
    CORS headers are applied after authorization so that 401 responses stay
    readable by browser clients.
    """

    def __init__(self, app, *, gateway: Gateway):
        super().__init__(app)
        self.gateway = gateway

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        with self.gateway.lease() as snapshot:
            return await self._handle(request, call_next, snapshot)

    async def _handle(
        self, request: Request, call_next: Callable, snapshot: GatewaySnapshot
    ) -> Response:
        request.state.database_factory = snapshot.database_factory
        policy = snapshot.cors_policy
        origin = request.headers.get("origin")

        try:
            self.gateway.access_gate.authorize(
                request.method, request.headers.get("authorization")
            )
        except AuthenticationError as exc:
            logger.warning(
                f"Rejected {request.method} {request.url.path}: {exc}",
                extra={"status": "unauthorized"},
            )
            response: Response = unauthorized_response(exc)
        else:
            if policy is not None and is_preflight(request):
                return Response(
                    status_code=status.HTTP_204_NO_CONTENT,
                    headers=policy.preflight_headers(origin),
                )
            response = await call_next(request)

        if policy is not None:
            for header_name, header_value in policy.response_headers(origin).items():
                response.headers[header_name] = header_value

        return response
