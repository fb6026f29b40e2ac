from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docsafe.core.config import settings
from docsafe.core.logging import get_logger
from docsafe.core.permissions import Identity
from docsafe.core.security import TokenClaims
from docsafe.models.user import User
from docsafe.schemas.user import ProviderUser
from docsafe.services.users.identity_provider import provider_timestamp

logger = get_logger(__name__)


def placeholder_email(external_id: str) -> str:
    return f"user_{external_id}@identity.local"


class UserMirrorService:
    """Keeps the local `users` table in step with the identity provider."""

    async def get_by_external_id(self, db: AsyncSession, external_id: str) -> Optional[User]:
        stmt = select(User).where(User.external_id == external_id)
        return (await db.execute(stmt)).scalar_one_or_none()

    async def resolve_identity(self, db: AsyncSession, claims: TokenClaims) -> Identity:
        """Find or create the mirror row for a verified token."""
        user = await self.get_by_external_id(db, claims.sub)
        now = datetime.now(timezone.utc)

        if user is None:
            user = User(
                external_id=claims.sub,
                email=claims.email or placeholder_email(claims.sub),
                first_name=claims.first_name,
                last_name=claims.last_name,
                role=claims.role or settings.DEFAULT_ROLE,
                last_sign_in_at=now,
            )
            db.add(user)
            try:
                await db.commit()
            except IntegrityError:
                # Concurrent first request for the same account
                await db.rollback()
                user = await self.get_by_external_id(db, claims.sub)
                if user is None:
                    raise
            else:
                await db.refresh(user)
                logger.info(f"Mirrored new user {claims.sub} as {user.role}")
        elif claims.role and claims.role != user.role:
            logger.info(f"Role of {claims.sub} changed: {user.role} -> {claims.role}")
            user.role = claims.role
            await db.commit()
            await db.refresh(user)

        return Identity(id=user.id, external_id=user.external_id, role=user.role, email=user.email)

    async def sync_from_provider(self, db: AsyncSession, account: ProviderUser) -> User:
        """Upsert the mirror row from a provider account."""
        user = await self.get_by_external_id(db, account.id)
        if user is None:
            user = User(external_id=account.id)
            db.add(user)

        user.email = account.email or placeholder_email(account.id)
        user.first_name = account.firstName
        user.last_name = account.lastName
        user.username = account.username
        user.role = account.role or settings.DEFAULT_ROLE
        user.avatar_url = account.imageUrl
        user.last_sign_in_at = provider_timestamp(account.lastSignInAt)
        await db.commit()
        await db.refresh(user)
        logger.info(f"User {account.id} synced from identity provider")
        return user

    async def remove(self, db: AsyncSession, external_id: str) -> None:
        await db.execute(delete(User).where(User.external_id == external_id))
        await db.commit()
        logger.info(f"User {external_id} removed from mirror")


user_mirror_service = UserMirrorService()
