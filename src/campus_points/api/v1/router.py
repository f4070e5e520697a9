"""Primary API router definition."""

from fastapi import APIRouter

from . import events, transactions, users

api_router = APIRouter()

api_router.include_router(transactions.router)
api_router.include_router(users.router)
api_router.include_router(events.router)


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Basic health probe endpoint."""
    return {"status": "ok"}
