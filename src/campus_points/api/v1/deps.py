"""Request dependencies shared by the v1 routers."""

from fastapi import Header


def get_actor_id(
    x_user_id: int = Header(
        ...,
        alias="X-User-Id",
        gt=0,
        description="Caller id, set by the authentication gateway after verifying the token.",
    ),
) -> int:
    """Identify the caller of a ledger operation."""

    return x_user_id
