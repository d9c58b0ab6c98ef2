"""Caller identity for user-scoped routes.

Authentication happens upstream; the gateway forwards the authenticated user
id in a header.
"""

from fastapi import Header, HTTPException, status

from coinfolio.constants import USER_ID_HEADER


def get_current_user_id(
    user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> str:
    """
    Get the calling user's id.

    Usage:
        @router.get("/mine")
        def mine(user_id: str = Depends(get_current_user_id)):
            return {"user_id": user_id}
    """
    if not user_id or not user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {USER_ID_HEADER} header",
        )
    return user_id.strip()
