"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...gateway import Gateway
from ...utils.health import SystemHealth
from ..dependencies import get_gateway

router = APIRouter()


@router.get("/health", response_model=SystemHealth)
def health_check(gateway: Gateway = Depends(get_gateway)) -> SystemHealth:
    """Health of each binding and of the live backend.

    A binding whose most recent rebuild failed is reported as degraded: the
    gateway keeps serving with the object built before the failure.
    """

    return gateway.health()
