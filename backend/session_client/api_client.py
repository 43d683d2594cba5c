"""Async API client that owns the local session.

Every call goes through ApiClient.request, which attaches the bearer token and
turns any 401 (or a known session-expiry message) into a local logout. There is
no transparent refresh: callers use refresh_session() explicitly.
"""

import asyncio
import json
import logging
from typing import Callable

import aiohttp

from backend.session_client.config import (
    ClientConfig, ENDPOINTS, SESSION_EXPIRY_MESSAGES, STORAGE_KEYS,
)
from backend.session_client.results import ApiResult, ErrorKind, kind_for_status
from backend.session_client.storage import MemoryStorage

logger = logging.getLogger(__name__)

SESSION_EXPIRED = "Session expired. Please log in again."
NETWORK_ERROR = "Network error. Please check your connection."

_GENERIC_FAILURES = {
    403: "Access denied.",
    404: "Resource not found.",
}
_SERVER_ERROR = "Server error. Please try again later."


class ApiClient:

    def __init__(
        self,
        config: ClientConfig | None = None,
        storage=None,
        on_session_expired: Callable[[], None] | None = None,
    ):
        self.config = config or ClientConfig()
        self.storage = storage if storage is not None else MemoryStorage()
        self.on_session_expired = on_session_expired

    # --- Local session state (no network) ---

    def is_logged_in(self) -> bool:
        return bool(self.storage.get_item(STORAGE_KEYS["SESSION_TOKEN"]))

    def get_stored_user(self) -> dict | None:
        raw = self.storage.get_item(STORAGE_KEYS["USER"])
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except (TypeError, ValueError):
            return None
        return user if isinstance(user, dict) else None

    def get_dark_mode(self) -> bool:
        return self.storage.get_item(STORAGE_KEYS["DARK_MODE"]) == "true"

    def set_dark_mode(self, enabled: bool) -> None:
        self.storage.set_item(STORAGE_KEYS["DARK_MODE"], "true" if enabled else "false")

    def _store_session(self, result: ApiResult) -> None:
        self.storage.set_item(STORAGE_KEYS["SESSION_TOKEN"], result.get("sessionToken"))
        if result.get("user") is not None:
            self.storage.set_item(STORAGE_KEYS["USER"], json.dumps(result.get("user")))
        if result.get("refreshToken"):
            self.storage.set_item(STORAGE_KEYS["REFRESH_TOKEN"], result.get("refreshToken"))

    def clear_session(self) -> None:
        for key in ("SESSION_TOKEN", "USER", "REFRESH_TOKEN"):
            self.storage.remove_item(STORAGE_KEYS[key])

    def handle_session_expiry(self) -> None:
        self.clear_session()
        if self.on_session_expired is not None:
            self.on_session_expired()

    # --- Transport ---

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: dict | None = None,
        params: dict | None = None,
    ) -> ApiResult:
        """Make one API call. Never raises for HTTP or transport failures."""
        url = self.config.url_for(path)
        headers = {"Content-Type": "application/json"}
        token = self.storage.get_item(STORAGE_KEYS["SESSION_TOKEN"])
        if token:
            headers["Authorization"] = f"Bearer {token}"
        query = {
            k: str(v) for k, v in (params or {}).items()
            if v is not None and v != ""
        }
        data = json.dumps(body) if body is not None else None

        try:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, data=data, params=query, headers=headers,
                ) as resp:
                    status = resp.status
                    content_type = resp.content_type
                    text = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if not self.config.is_production:
                logger.error("[CLIENT] %s %s failed: %s", method, url, e)
            return ApiResult.fail(ErrorKind.NETWORK, NETWORK_ERROR)

        return self._interpret(status, content_type, text)

    def _interpret(self, status: int, content_type: str, text: str) -> ApiResult:
        payload = None
        if content_type == "application/json":
            try:
                payload = json.loads(text)
            except ValueError:
                payload = None
        if not isinstance(payload, dict):
            payload = None

        if status == 401:
            self.handle_session_expiry()
            message = payload.get("error") if payload else None
            return ApiResult.fail(ErrorKind.AUTHENTICATION, message or SESSION_EXPIRED, status, payload)
        if status >= 500:
            return ApiResult.fail(ErrorKind.SERVER, _SERVER_ERROR, status, payload)
        if payload is None:
            return ApiResult.fail(ErrorKind.INVALID_RESPONSE, "Invalid response format", status)
        if status >= 400:
            message = payload.get("error") or _GENERIC_FAILURES.get(status, "Request failed.")
            return ApiResult.fail(kind_for_status(status), message, status, payload)

        error = payload.get("error")
        if error in SESSION_EXPIRY_MESSAGES:
            self.handle_session_expiry()
            return ApiResult.fail(ErrorKind.AUTHENTICATION, error, status, payload)
        if payload.get("success") is False:
            return ApiResult.fail(ErrorKind.VALIDATION, error or "Request failed.", status, payload)
        return ApiResult.ok(payload, status)

    # --- Auth ---

    async def register(self, payload: dict) -> ApiResult:
        result = await self.request(ENDPOINTS["REGISTER"], method="POST", body=payload)
        if result.success and result.get("sessionToken"):
            self._store_session(result)
        return result

    async def login(self, email: str, password: str, remember_me: bool = False) -> ApiResult:
        result = await self.request(
            ENDPOINTS["LOGIN"], method="POST",
            body={"email": email, "password": password, "rememberMe": remember_me},
        )
        if result.success and result.get("sessionToken"):
            self._store_session(result)
        return result

    async def logout(self) -> ApiResult:
        """Tell the server (best-effort), then always drop the local session."""
        try:
            await self.request(ENDPOINTS["LOGOUT"], method="POST", body={})
        except Exception as e:
            logger.warning("[CLIENT] logout call failed: %s", e)
        self.clear_session()
        return ApiResult.ok({"success": True})

    async def get_current_user(self) -> ApiResult:
        return await self.request(ENDPOINTS["ME"])

    async def update_profile(self, changes: dict) -> ApiResult:
        result = await self.request(ENDPOINTS["ME"], method="PATCH", body=changes)
        if result.success and result.get("user") is not None:
            self.storage.set_item(STORAGE_KEYS["USER"], json.dumps(result.get("user")))
        return result

    async def refresh_session(self) -> ApiResult:
        refresh_token = self.storage.get_item(STORAGE_KEYS["REFRESH_TOKEN"])
        if not refresh_token:
            return ApiResult.fail(ErrorKind.AUTHENTICATION, "No refresh token")

        result = await self.request(
            ENDPOINTS["REFRESH"], method="POST", body={"refreshToken": refresh_token},
        )
        if result.success and result.get("sessionToken"):
            self._store_session(result)
        return result

    async def delete_account(self) -> ApiResult:
        result = await self.request(ENDPOINTS["DELETE_ACCOUNT"], method="DELETE")
        if result.success:
            self.clear_session()
        return result

    async def sync_oauth_user(self, provider_token: str, provider_user: dict) -> ApiResult:
        """Adopt an external-provider session, then register it with the backend.

        provider_user carries id, email and optionally full_name and avatar_url.
        """
        email = provider_user["email"]
        name_parts = (provider_user.get("full_name") or "").split()
        user = {
            "id": provider_user.get("id"),
            "email": email,
            "firstName": name_parts[0] if name_parts else email.split("@")[0],
            "lastName": " ".join(name_parts[1:]),
            "role": "both",
            "isAdmin": False,
            "avatarUrl": provider_user.get("avatar_url"),
        }
        self.storage.set_item(STORAGE_KEYS["SESSION_TOKEN"], provider_token)
        self.storage.set_item(STORAGE_KEYS["USER"], json.dumps(user))

        result = await self.request(
            ENDPOINTS["OAUTH_SYNC"], method="POST",
            body={k: user[k] for k in ("id", "email", "firstName", "lastName", "avatarUrl")},
        )
        if result.success and result.get("userId"):
            user["id"] = result.get("userId")
            self.storage.set_item(STORAGE_KEYS["USER"], json.dumps(user))
        return result

    # --- Admin ---

    async def get_admin_users(self, status: str | None = None, role: str | None = None) -> ApiResult:
        return await self.request(ENDPOINTS["ADMIN_USERS"], params={"status": status, "role": role})
