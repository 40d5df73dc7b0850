"""Health probe for the hosting platform."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    """Liveness probe. Never touches the store."""
    return PlainTextResponse("OK", headers={"Cache-Control": "no-cache"})
