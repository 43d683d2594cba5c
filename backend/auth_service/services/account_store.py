"""Account store: every read and write of the users table goes through here."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth_service.models.database import Booking, Car, Review, Session, User

logger = logging.getLogger(__name__)


def parse_account_id(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


async def get_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_by_id(db: AsyncSession, account_id) -> User | None:
    uid = parse_account_id(account_id)
    if uid is None:
        return None
    result = await db.execute(select(User).where(User.id == uid))
    return result.scalar_one_or_none()


async def create_account(db: AsyncSession, **fields) -> User:
    """Insert a user row. Raises IntegrityError when the email is taken."""
    fields["email"] = fields["email"].lower()
    user = User(**fields)
    db.add(user)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    await db.refresh(user)
    return user


async def touch_last_login(db: AsyncSession, user: User, avatar_url: str | None = None) -> None:
    user.last_login = datetime.now(timezone.utc)
    if avatar_url:
        user.avatar_url = avatar_url
    await db.commit()


async def update_account(db: AsyncSession, user: User, changes: dict) -> User:
    for attr, value in changes.items():
        setattr(user, attr, value)
    await db.commit()
    await db.refresh(user)
    return user


async def list_accounts(db: AsyncSession, status: str | None = None, role: str | None = None) -> list[User]:
    query = select(User).order_by(User.created_at.desc())
    if status:
        query = query.where(User.status == status)
    if role:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return list(result.scalars().all())


async def delete_account_cascade(db: AsyncSession, account_id: uuid.UUID) -> int:
    """Remove everything the account owns or authored, then the account row.

    Sub-deletions run in savepoints and are best-effort: a failure is logged
    and the cleanup continues. Only the final users-row delete may raise.
    Returns the number of user rows removed (0 when already gone).
    """
    cleanup = [
        ("bookings", delete(Booking).where(Booking.renter_id == account_id)),
        ("reviews", delete(Review).where(Review.reviewer_id == account_id)),
        # Owner-side bookings and reviews go with the car (ON DELETE CASCADE)
        ("cars", delete(Car).where(Car.owner_id == account_id)),
        ("sessions", delete(Session).where(Session.user_id == account_id)),
    ]
    for table, stmt in cleanup:
        try:
            async with db.begin_nested():
                result = await db.execute(stmt)
            logger.info("[DELETE] user=%s removed %d %s row(s)", account_id, result.rowcount, table)
        except SQLAlchemyError as e:
            logger.error("[DELETE] user=%s cleanup of %s failed: %s", account_id, table, e)

    try:
        result = await db.execute(delete(User).where(User.id == account_id))
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    return result.rowcount
