from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

import config
from database import get_db, sanitize, to_obj_id

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this resource"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": user_id, "exp": expire}, config.SECRET_KEY, algorithm=config.ALGORITHM)


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
) -> Dict:
    """Resolve the principal from the bearer token, or the ``token`` cookie."""
    credentials_exception = HTTPException(
        status_code=401, detail=NOT_AUTHORIZED, headers={"WWW-Authenticate": "Bearer"}
    )
    token = token or request.cookies.get("token")
    if not token or token == "none":
        raise credentials_exception
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    try:
        user = db["user"].find_one({"_id": to_obj_id(user_id)})
    except HTTPException:
        raise credentials_exception
    if not user or user.get("active") is False:
        raise credentials_exception
    return sanitize(user)


def require_role(*roles: str):
    def role_dep(current_user=Depends(get_current_user)):
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"User role {current_user.get('role')} is not authorized to access this route",
            )
        return current_user
    return role_dep


def can_modify(principal: Dict, resource: Dict) -> bool:
    """True when the principal owns (or wrote) the resource, or is an admin."""
    return principal.get("role") == "admin" or str(resource.get("user")) == principal.get("id")


def ensure_can_modify(principal: Dict, resource: Dict, message: str) -> None:
    if not can_modify(principal, resource):
        raise HTTPException(status_code=403, detail=message)
