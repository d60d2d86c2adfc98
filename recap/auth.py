from typing import Annotated

from fastapi import Depends, HTTPException, Request, status


def get_current_user(request: Request):
    return request.session.get("user")


def get_owner_id(request: Request) -> str:
    """
    Stable identity of the signed-in user.

    Every store query is scoped by this value, so requests without a
    session user are rejected before any data is read.
    """
    user = get_current_user(request)
    owner_id = None
    if isinstance(user, dict):
        owner_id = user.get("id") or user.get("sub")
    if not owner_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return str(owner_id)


OwnerId = Annotated[str, Depends(get_owner_id)]
