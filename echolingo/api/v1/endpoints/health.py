"""Liveness endpoint."""
from __future__ import annotations

from fastapi import APIRouter

from echolingo.utils.timestamps import format_timestamp

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, object]:
    return {"ok": True, "now": format_timestamp()}
