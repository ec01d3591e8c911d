"""
FastAPI dependencies used across routers.
Keep this file lean: only auth/DB dependencies go here.
"""
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jwt.exceptions import InvalidTokenError

from app.database import get_db
from app.core.security import decode_access_token, parse_subject
from app.core.exceptions import CredentialsException, BannedUserException
from app.models.user import User

# There is no password form; tokens come from /auth/otp-login.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/otp-login")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Validates the JWT access token and returns the authenticated User.
    The ban check runs on every request, so banning a user cuts off
    tokens that are still within their lifetime.
    """
    try:
        payload = decode_access_token(token)
        user_id = parse_subject(payload.get("sub"))
    except InvalidTokenError:
        raise CredentialsException()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise CredentialsException()

    if user.is_banned:
        raise BannedUserException()

    return user
