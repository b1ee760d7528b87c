"""
FastAPI dependencies (DB session, caller identity, current profile)
"""
from fastapi import Depends, Header, Request, HTTPException, status
from sqlalchemy.orm import Session

from envelope_budget.application.permissions import resolve_current_profile_id
from envelope_budget.infrastructure.db.session import get_db as _get_db
from envelope_budget.infrastructure.db.models import User


# Re-export get_db for convenience
get_db = _get_db


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Current user from the signed session cookie

    The session is established by the external auth flow, which stores
    `user_id` in it.

    Raises:
        HTTPException(401): not logged in
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


def get_current_profile_id(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    x_budget_profile_id: int | None = Header(default=None),
) -> int:
    """
    Profile the request acts within, resolved once per request

    Order: X-Budget-Profile-Id header, `budget_profile_id` in the session,
    then the user's oldest membership. Membership itself is checked by
    the use cases.
    """
    if x_budget_profile_id is not None:
        return x_budget_profile_id

    session_profile_id = request.session.get("budget_profile_id")
    if session_profile_id:
        return int(session_profile_id)

    return resolve_current_profile_id(db, user.id)
