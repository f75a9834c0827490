"""
Prompt Builder - Shared FastAPI Dependencies

Centralizes the authentication dependency used across routers.
"""

import logging
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from database import get_db, User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def get_or_create_user(db: Session, email: str) -> User:
    """Return the user for `email`, creating a free-tier account on first use."""
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, subscription_tier="free")
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Created account for {email}")
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
):
    """Verify JWT token and return current user with ID. Raises 401 if invalid/missing."""
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    from auth import auth_manager

    payload = auth_manager.verify_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = get_or_create_user(db, payload["sub"])
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    return {"id": user.id, "email": user.email, "tier": user.subscription_tier or "free"}
