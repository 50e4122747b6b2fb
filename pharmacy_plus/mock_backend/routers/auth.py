from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field

from pharmacy_plus.core.security import create_token, verify_password
from pharmacy_plus.mock_backend.deps import get_current_user, get_store, oauth2
from pharmacy_plus.mock_backend.store import MockStore

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterIn(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = ""


class LoginIn(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


def _session_payload(request: Request, user: dict) -> dict:
    settings = request.app.state.settings
    token = create_token(user["id"], settings.SECRET_KEY, settings.ACCESS_TOKEN_EXPIRE_MINUTES, user["role"])
    data = MockStore.public_user(user)
    # the mobile client reads `_id`, as served by the Mongo-backed API
    data["_id"] = data.pop("id")
    data["token"] = token
    return data


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, request: Request, store: MockStore = Depends(get_store)):
    if store.find_user_by_email(payload.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    user = store.add_user(payload.name, payload.email, payload.password, payload.phone)
    return _session_payload(request, user)


@router.post("/login")
def login(payload: LoginIn, request: Request, store: MockStore = Depends(get_store)):
    user = store.find_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user["password"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return _session_payload(request, user)


@router.post("/logout")
def logout(token: str = Depends(oauth2), user: dict = Depends(get_current_user), store: MockStore = Depends(get_store)):
    store.revoked_tokens.add(token)
    return {"message": "Logged out"}


@router.put("/profile")
def update_profile(payload: ProfileUpdate, request: Request, user: dict = Depends(get_current_user)):
    user.update(payload.model_dump(exclude_none=True))
    return _session_payload(request, user)
