"""Client for the hosted identity provider (GoTrue-compatible REST API).

The provider owns OAuth, magic links and hosted password sessions. The backend
only needs two things from it: the authorize URL that starts an OAuth popup,
and the verified identity behind an access token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlencode

import httpx

from .config import Settings
from .errors import AuthenticationError, ServiceUnavailableError

logger = logging.getLogger(__name__)

REJECTED_TOKEN_STATUSES = {400, 401, 403, 404}


@dataclass(frozen=True)
class VerifiedIdentity:
    external_id: str
    email: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)


class IdentityProvider(Protocol):
    """Anything able to turn an access token into a verified identity."""

    def verify_token(self, access_token: str) -> VerifiedIdentity:  # pragma: no cover - protocol definition
        ...


def build_authorize_url(settings: Settings, provider: str) -> str:
    if not settings.identity_url:
        raise ServiceUnavailableError("identity provider URL not configured")
    params = urlencode(
        {
            "provider": provider,
            "redirect_to": f"{settings.app_url.rstrip('/')}/",
        }
    )
    return f"{settings.identity_url.rstrip('/')}/auth/v1/authorize?{params}"


class HttpIdentityProvider:
    """Verifies access tokens against ``{identity_url}/auth/v1/user``."""

    def __init__(self, settings: Settings, *, client: Optional[httpx.Client] = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self._settings.identity_configured

    def verify_token(self, access_token: str) -> VerifiedIdentity:
        if not self.configured:
            raise ServiceUnavailableError("identity provider not configured")
        assert self._settings.identity_url is not None
        assert self._settings.identity_service_key is not None

        endpoint = f"{self._settings.identity_url.rstrip('/')}/auth/v1/user"
        headers = {
            "apikey": self._settings.identity_service_key,
            "Authorization": f"Bearer {access_token}",
        }
        local_client = self._client or httpx.Client(timeout=self._settings.identity_timeout_seconds)
        close_client = self._client is None
        try:
            response = local_client.get(endpoint, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Identity provider request failed: %s", exc)
            raise ServiceUnavailableError(f"identity provider unreachable: {exc}") from exc
        finally:
            if close_client:
                local_client.close()

        if response.status_code in REJECTED_TOKEN_STATUSES:
            logger.info("Identity provider rejected access token (status=%s)", response.status_code)
            raise AuthenticationError("invalid session")
        if response.status_code >= 400:
            raise ServiceUnavailableError(
                f"identity provider returned HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ServiceUnavailableError("identity provider returned invalid JSON") from exc

        external_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(external_id, str) or not external_id:
            raise AuthenticationError("invalid session")
        metadata = data.get("user_metadata")
        email = data.get("email")
        return VerifiedIdentity(
            external_id=external_id,
            email=email if isinstance(email, str) and email else None,
            metadata=metadata if isinstance(metadata, dict) else {},
        )


__all__ = [
    "HttpIdentityProvider",
    "IdentityProvider",
    "VerifiedIdentity",
    "build_authorize_url",
]
