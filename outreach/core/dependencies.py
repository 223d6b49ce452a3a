from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from outreach.core import security
from outreach.core.database import SessionLocal
from outreach.crud import crud_channel
from outreach.schemas.token import TokenData
from outreach.schemas.user import CurrentUser

# Tokens are issued by the external auth provider; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_user_from_token(db: Session, token: Optional[str]) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    try:
        payload = security.decode_access_token(token)
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        token_data = TokenData(user_id=int(subject))
    except (JWTError, ValueError):
        raise credentials_exception

    user = crud_channel.get_user(db, user_id=token_data.user_id)
    if user is None or not user.is_active:
        raise credentials_exception
    return CurrentUser.model_validate(user)


async def get_current_user(
    db: Session = Depends(get_db), token: Optional[str] = Depends(oauth2_scheme)
) -> CurrentUser:
    return get_user_from_token(db, token)


def require_role(*roles: str):
    """
    Dependency factory that creates a dependency restricting a route to the given roles.
    """
    async def role_checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden",
            )
        return current_user
    return role_checker
