from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from docsafe.core.config import settings
from docsafe.core.exceptions import IdentityProviderException, NotFoundException
from docsafe.core.logging import get_logger
from docsafe.schemas.user import ProviderUser, UserCreate, UserUpdate

logger = get_logger(__name__)


def _primary_email(item: Dict[str, Any]) -> str:
    addresses = item.get("email_addresses") or []
    primary_id = item.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            return address.get("email_address") or ""
    return addresses[0].get("email_address", "") if addresses else ""


def parse_provider_user(item: Dict[str, Any]) -> ProviderUser:
    metadata = item.get("public_metadata") or {}
    return ProviderUser(
        id=item["id"],
        firstName=item.get("first_name"),
        lastName=item.get("last_name"),
        email=_primary_email(item),
        username=item.get("username"),
        role=metadata.get("role") or settings.DEFAULT_ROLE,
        createdAt=item.get("created_at"),
        lastSignInAt=item.get("last_sign_in_at"),
        imageUrl=item.get("image_url"),
    )


def provider_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Provider timestamps are epoch milliseconds."""
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if errors:
        first = errors[0]
        return first.get("long_message") or first.get("message") or str(first)
    return response.text


class IdentityProviderClient:
    """Thin async client for the identity provider's user administration API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.IDENTITY_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.IDENTITY_API_KEY
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=settings.IDENTITY_API_TIMEOUT_SECONDS,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable ({method} {path}): {e}")
            raise IdentityProviderException(details=str(e))

        if response.status_code == 404:
            raise NotFoundException("Usuario no encontrado")
        if response.status_code == 422:
            raise IdentityProviderException(detail=_error_message(response), status_code=422)
        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"Identity provider error: {response.status_code} - {message}")
            raise IdentityProviderException(details=message)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def list_users(self, page: int, limit: int, search: str = "") -> Tuple[List[ProviderUser], int]:
        params: Dict[str, Any] = {"limit": limit, "offset": (page - 1) * limit, "order_by": "-created_at"}
        count_params: Dict[str, Any] = {}
        if search:
            params["query"] = search
            count_params["query"] = search

        items = await self._request("GET", "/users", params=params)
        count = await self._request("GET", "/users/count", params=count_params)
        total = int((count or {}).get("total_count", 0))
        return [parse_provider_user(item) for item in items or []], total

    async def get_user(self, user_id: str) -> ProviderUser:
        return parse_provider_user(await self._request("GET", f"/users/{user_id}"))

    async def create_user(self, data: UserCreate) -> ProviderUser:
        payload = {
            "email_address": [data.email],
            "password": data.password,
            "first_name": data.firstName,
            "last_name": data.lastName,
            "public_metadata": {"role": data.role},
        }
        if data.username:
            payload["username"] = data.username
        return parse_provider_user(await self._request("POST", "/users", json=payload))

    async def update_user(self, user_id: str, data: UserUpdate) -> ProviderUser:
        payload: Dict[str, Any] = {}
        if data.firstName is not None:
            payload["first_name"] = data.firstName
        if data.lastName is not None:
            payload["last_name"] = data.lastName
        if data.password:
            payload["password"] = data.password
        if data.role is not None:
            payload["public_metadata"] = {"role": data.role}

        if data.email:
            await self._request(
                "POST",
                "/email_addresses",
                json={"user_id": user_id, "email_address": data.email, "verified": True, "primary": True},
            )
        if payload:
            return parse_provider_user(await self._request("PATCH", f"/users/{user_id}", json=payload))
        return await self.get_user(user_id)

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/users/{user_id}")


identity_provider = IdentityProviderClient()


def get_identity_provider() -> IdentityProviderClient:
    return identity_provider
