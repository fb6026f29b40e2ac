from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient, PyJWTError

from docsafe.core.config import settings
from docsafe.core.logging import get_logger

logger = get_logger(__name__)

VALID_ROLES = ("admin", "empleado")


@dataclass(frozen=True)
class TokenClaims:
    """Subset of the identity provider's session token we rely on."""
    sub: str
    role: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@lru_cache(maxsize=1)
def _jwks_client(url: str) -> PyJWKClient:
    return PyJWKClient(url)


def _signing_key(token: str) -> Any:
    if settings.IDENTITY_JWKS_URL:
        return _jwks_client(settings.IDENTITY_JWKS_URL).get_signing_key_from_jwt(token).key
    return settings.IDENTITY_JWT_SECRET


def _extract_role(payload: Dict[str, Any]) -> Optional[str]:
    role = payload.get("role")
    if not role:
        for key in ("public_metadata", "metadata"):
            meta = payload.get(key)
            if isinstance(meta, dict) and meta.get("role"):
                role = meta["role"]
                break
    if role in VALID_ROLES:
        return role
    return None


def decode_access_token(token: str) -> Optional[TokenClaims]:
    """
    Verify a bearer token issued by the identity provider.

    Returns None for anything that does not verify (bad signature, expired,
    wrong audience, missing subject).
    """
    options = {"require": ["sub"], "verify_aud": bool(settings.IDENTITY_JWT_AUDIENCE)}
    try:
        key = _signing_key(token)
        if not key:
            logger.error("No identity token key configured")
            return None
        payload = jwt.decode(
            token,
            key,
            algorithms=[settings.IDENTITY_JWT_ALGORITHM],
            audience=settings.IDENTITY_JWT_AUDIENCE or None,
            options=options,
        )
    except PyJWTError as exc:
        logger.info(f"Rejected identity token: {exc}")
        return None

    return TokenClaims(
        sub=str(payload["sub"]),
        role=_extract_role(payload),
        email=payload.get("email"),
        first_name=payload.get("first_name") or payload.get("given_name"),
        last_name=payload.get("last_name") or payload.get("family_name"),
    )
