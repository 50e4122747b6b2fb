import logging
from typing import List, Optional

from pydantic import ValidationError

from pharmacy_plus.api.client import ApiClient
from pharmacy_plus.core.config import AUTH_STORAGE_KEY, TOKEN_STORAGE_KEY
from pharmacy_plus.core.errors import ApiError
from pharmacy_plus.core.security import token_expired
from pharmacy_plus.db.storage import KeyValueStorage
from pharmacy_plus.models.schemas import RoleRequest, RoleRequestIn, User, UserRole

logger = logging.getLogger(__name__)


class AuthService:
    """Holds the signed-in user and token, and keeps the API client's token in step."""

    def __init__(self, api: ApiClient, storage: KeyValueStorage):
        self.api = api
        self.storage = storage
        self.current_user: Optional[User] = None
        self.token: Optional[str] = None
        self.is_loading = True

    def load(self) -> None:
        try:
            user_data = self.storage.get_json(AUTH_STORAGE_KEY)
            stored_token = self.storage.get_item(TOKEN_STORAGE_KEY)
            if user_data:
                self.current_user = User.model_validate(user_data)
            if stored_token:
                self._set_token(stored_token)
        except (TypeError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load auth data: {e}")
        finally:
            self.is_loading = False

    def _set_token(self, token: Optional[str]) -> None:
        self.token = token
        self.api.token = token

    def _save(self) -> None:
        try:
            if self.current_user:
                self.storage.set_json(AUTH_STORAGE_KEY, self.current_user.to_wire())
            else:
                self.storage.remove_item(AUTH_STORAGE_KEY)
            if self.token:
                self.storage.set_item(TOKEN_STORAGE_KEY, self.token)
            else:
                self.storage.remove_item(TOKEN_STORAGE_KEY)
        except OSError as e:
            logger.error(f"Failed to save auth data: {e}")

    def _accept_session(self, data: dict) -> User:
        user = User.model_validate(data)
        self.current_user = user
        # profile updates may or may not rotate the token
        if data.get("token"):
            self._set_token(data["token"])
        self._save()
        return user

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None and self.token is not None

    def has_role(self, role: UserRole) -> bool:
        return self.current_user is not None and self.current_user.role == UserRole(role)

    def is_token_expired(self) -> bool:
        return token_expired(self.token)

    async def login(self, email: str, password: str) -> Optional[User]:
        try:
            data = await self.api.post("/auth/login", {"email": email, "password": password})
            return self._accept_session(data)
        except (ApiError, ValidationError) as e:
            logger.error(f"Login failed: {e}")
            return None

    async def register(self, name: str, email: str, password: str, phone: str) -> Optional[User]:
        try:
            data = await self.api.post(
                "/auth/register",
                {"name": name, "email": email, "password": password, "phone": phone},
            )
            return self._accept_session(data)
        except (ApiError, ValidationError) as e:
            logger.error(f"Registration failed: {e}")
            return None

    async def logout(self) -> None:
        try:
            if self.token:
                await self.api.post("/auth/logout")
        except ApiError as e:
            # local logout goes ahead regardless
            logger.warning(f"Logout API call failed: {e}")
        finally:
            self.current_user = None
            self._set_token(None)
            self._save()

    async def update_profile(self, **updates) -> Optional[User]:
        if not self.current_user:
            return None
        try:
            data = await self.api.put("/auth/profile", updates)
            return self._accept_session(data)
        except (ApiError, ValidationError) as e:
            logger.error(f"Update profile failed: {e}")
            return None

    async def request_role_change(self, requested_role: UserRole) -> Optional[RoleRequest]:
        if not self.current_user:
            return None
        try:
            payload = RoleRequestIn(requested_role=requested_role).to_wire()
            data = await self.api.post("/role-requests", payload)
            return RoleRequest.model_validate(data)
        except (ApiError, ValidationError) as e:
            logger.error(f"Request role change failed: {e}")
            return None

    async def approve_role_request(self, request_id: str) -> bool:
        try:
            await self.api.put(f"/role-requests/{request_id}/approve")
            return True
        except ApiError as e:
            logger.error(f"Approve role request failed: {e}")
            return False

    async def reject_role_request(self, request_id: str) -> bool:
        try:
            await self.api.put(f"/role-requests/{request_id}/reject")
            return True
        except ApiError as e:
            logger.error(f"Reject role request failed: {e}")
            return False

    async def get_pending_role_requests(self) -> List[RoleRequest]:
        try:
            data = await self.api.get("/role-requests/pending")
            return [RoleRequest.model_validate(item) for item in data or []]
        except (ApiError, ValidationError) as e:
            logger.error(f"Get pending role requests failed: {e}")
            return []
