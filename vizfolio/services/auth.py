"""
Auth/session gateway: sign-up, sign-in, sign-out and current user lookup.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel

from vizfolio.logging_config import logger
from vizfolio.models import GatewayResult
from vizfolio.services.supabase_client import BackendError, SupabaseClient


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    created_at: Optional[str] = None


def _user_from_payload(payload: Dict[str, Any]) -> Optional[AuthUser]:
    user = payload.get("user", payload)
    if not user or not user.get("id"):
        return None
    return AuthUser(id=str(user["id"]), email=user.get("email"), created_at=user.get("created_at"))


class AuthGateway:
    """Session operations; the session token lives on the injected client"""

    def __init__(self, client: SupabaseClient):
        self.client = client

    async def _call(self, operation: str, call) -> GatewayResult:
        try:
            return GatewayResult.success(await call())
        except BackendError as e:
            logger.warning(f"Auth {operation} failed", error=e.message, status_code=e.status_code)
            return GatewayResult.failure(e)
        except Exception as e:
            logger.error(f"Auth {operation} raised unexpectedly", error=str(e), exc_info=True)
            return GatewayResult.failure(e)

    async def sign_up(self, email: str, password: str) -> GatewayResult[Optional[AuthUser]]:
        async def call():
            return _user_from_payload(await self.client.sign_up(email, password))
        return await self._call("sign_up", call)

    async def sign_in(self, email: str, password: str) -> GatewayResult[Optional[AuthUser]]:
        async def call():
            user = _user_from_payload(await self.client.sign_in_with_password(email, password))
            logger.info("User signed in", user_id=user.id if user else None)
            return user
        return await self._call("sign_in", call)

    async def sign_out(self) -> GatewayResult[bool]:
        async def call():
            await self.client.sign_out()
            return True
        return await self._call("sign_out", call)

    async def get_current_user(self) -> GatewayResult[Optional[AuthUser]]:
        async def call():
            if not self.client.access_token:
                return None
            return _user_from_payload(await self.client.get_user())
        return await self._call("get_current_user", call)
