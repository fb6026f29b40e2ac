from datetime import datetime, timedelta, timezone

import jwt
import pytest

from docsafe.core.permissions import Capability, Identity, capabilities_for
from docsafe.core.security import TokenClaims, decode_access_token
from docsafe.models.user import User
from docsafe.services.users import placeholder_email, user_mirror_service

from factories import auth_headers, make_token, seed_user

SECRET = "docsafe-test-secret-with-enough-bytes-0123"


def test_capability_table() -> None:
    employee = capabilities_for("empleado")
    assert employee == {Capability.VIEW_DOCUMENTS, Capability.UPLOAD_DOCUMENTS, Capability.MOVE_DOCUMENTS}
    assert capabilities_for("admin") == set(Capability)
    assert capabilities_for("superuser") == frozenset()


def test_identity_checks_capabilities() -> None:
    identity = Identity(id=None, external_id="user_x", role="empleado")
    assert identity.can(Capability.MOVE_DOCUMENTS)
    assert not identity.can(Capability.MANAGE_FOLDERS)
    assert not identity.is_admin


def test_decode_valid_token() -> None:
    claims = decode_access_token(make_token("user_1", "admin", email="a@example.com", given_name="Ana"))
    assert claims == TokenClaims(sub="user_1", role="admin", email="a@example.com", first_name="Ana")


def test_role_can_come_from_public_metadata() -> None:
    claims = decode_access_token(make_token("user_1", None, public_metadata={"role": "admin"}))
    assert claims.role == "admin"


def test_unknown_role_is_dropped() -> None:
    assert decode_access_token(make_token("user_1", "superuser")).role is None


@pytest.mark.parametrize(
    "token",
    [
        jwt.encode({"sub": "user_1", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)}, SECRET, algorithm="HS256"),
        jwt.encode({"sub": "user_1"}, "some-other-secret-that-is-long-enough", algorithm="HS256"),
        jwt.encode({"role": "admin"}, SECRET, algorithm="HS256"),
        "garbage",
    ],
    ids=["expired", "wrong-key", "no-subject", "malformed"],
)
def test_rejected_tokens(token: str) -> None:
    assert decode_access_token(token) is None


@pytest.mark.asyncio
async def test_first_request_creates_mirror_with_placeholder_email(db) -> None:
    identity = await user_mirror_service.resolve_identity(db, TokenClaims(sub="user_new"))

    user = await db.get(User, identity.id)
    assert user.external_id == "user_new"
    assert user.email == placeholder_email("user_new") == "user_user_new@identity.local"
    assert user.role == "empleado"
    assert user.last_sign_in_at is not None
    assert identity.role == "empleado"


@pytest.mark.asyncio
async def test_role_claim_refreshes_the_mirror(db) -> None:
    user = await seed_user(db, "user_1", role="empleado")

    identity = await user_mirror_service.resolve_identity(db, TokenClaims(sub="user_1", role="admin"))
    assert identity.id == user.id
    assert identity.role == "admin"

    # No role claim leaves the stored role alone
    identity = await user_mirror_service.resolve_identity(db, TokenClaims(sub="user_1"))
    assert identity.role == "admin"


@pytest.mark.asyncio
async def test_unknown_role_claim_gets_employee_rights(client) -> None:
    headers = auth_headers("user_x", "superuser")
    assert (await client.get("/api/documents", headers=headers)).status_code == 200
    assert (await client.get("/api/admin/stats", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_health_needs_no_token(client) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "DocSafe API"}
