# pos_api/core/auth.py

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from pos_api.database import get_db
from pos_api.models.users import User, ROLE_ADMIN
from pos_api.core.jwt import decode_access_token
from pos_api.core.oauth2 import oauth2_scheme


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
):
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    user_id = payload.get("sub")

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = db.query(User).filter(User.id == int(user_id)).first()

    if user is None or not user.active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


def require_role(role: str):
    # A route that needs `role` also admits admins
    def _check_role(current_user: User = Depends(get_current_user)):
        if current_user.role != role and current_user.role != ROLE_ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. {role} permission required",
            )
        return current_user

    return _check_role
