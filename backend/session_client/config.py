"""Client configuration, passed explicitly to ApiClient at construction time."""

import os
from dataclasses import dataclass, field

DEFAULT_API_URL = "http://localhost:8000"

# Durable storage keys; removing SESSION_TOKEN means "logged out"
STORAGE_KEYS = {
    "SESSION_TOKEN": "rentmycar_session",
    "USER": "rentmycar_user",
    "REFRESH_TOKEN": "rentmycar_refresh",
    "DARK_MODE": "rentmycar_darkmode",
}

ENDPOINTS = {
    "REGISTER": "/auth/register",
    "LOGIN": "/auth/login",
    "LOGOUT": "/auth/logout",
    "REFRESH": "/auth/refresh",
    "ME": "/auth/me",
    "DELETE_ACCOUNT": "/auth/delete-account",
    "OAUTH_SYNC": "/auth/oauth-sync",
    "ADMIN_USERS": "/admin/users",
}

# Error strings a 2xx body may carry when the server has dropped the session
SESSION_EXPIRY_MESSAGES = frozenset({
    "Invalid or expired session",
    "Invalid or expired token",
    "Unauthorized",
})


@dataclass(frozen=True)
class ClientConfig:
    api_base_url: str = DEFAULT_API_URL
    is_production: bool = False
    feature_flags: frozenset = field(default_factory=frozenset)
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "ClientConfig":
        flags = os.environ.get("RENTMYCAR_FEATURES", "")
        return cls(
            api_base_url=os.environ.get("RENTMYCAR_API_URL", DEFAULT_API_URL).rstrip("/"),
            is_production=os.environ.get("RENTMYCAR_PRODUCTION", "false").lower() == "true",
            feature_flags=frozenset(f.strip() for f in flags.split(",") if f.strip()),
        )

    def feature_enabled(self, name: str) -> bool:
        return name in self.feature_flags

    def url_for(self, path: str) -> str:
        return self.api_base_url.rstrip("/") + ENDPOINTS.get(path, path)
