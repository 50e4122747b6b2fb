from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from pharmacy_plus.core.security import decode_token
from pharmacy_plus.mock_backend.store import MockStore

oauth2 = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_store(request: Request) -> MockStore:
    return request.app.state.store


def get_current_user(request: Request, token: str = Depends(oauth2)) -> dict:
    store = get_store(request)
    if token in store.revoked_tokens:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session has ended, please log in again")
    try:
        payload = decode_token(token, request.app.state.settings.SECRET_KEY)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user = store.users.get(payload.get("sub"))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_roles(*roles: str):
    def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Role {user['role']} is not allowed here")
        return user
    return dependency


get_admin_user = require_roles("admin")
