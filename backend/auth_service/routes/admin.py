"""Admin routes: list accounts, change account status or role."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth_service.middleware.auth_middleware import Identity, require_admin
from backend.auth_service.models.database import get_db
from backend.auth_service.models.schemas import (
    AdminUserListResponse, AdminUserResponse, AdminUserUpdateRequest, AdminUserView,
)
from backend.auth_service.services import account_store
from backend.auth_service.services.validation import ROLES, STATUSES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    status: str | None = None,
    role: str | None = None,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if status and status not in STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    if role and role not in ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")
    try:
        users = await account_store.list_accounts(db, status=status, role=role)
    except SQLAlchemyError as e:
        logger.error("[ADMIN] list users failed: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")
    return AdminUserListResponse(users=[AdminUserView.from_user(u) for u in users])


@router.patch("/users/{user_id}", response_model=AdminUserResponse)
async def update_user(
    user_id: uuid.UUID,
    req: AdminUserUpdateRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    changes = req.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")
    if "status" in changes and changes["status"] not in STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    if "role" in changes and changes["role"] not in ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")
    if changes.get("status") == "suspended" and str(user_id) == admin.id:
        raise HTTPException(status_code=400, detail="Cannot suspend your own account")

    try:
        user = await account_store.get_by_id(db, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        user = await account_store.update_account(db, user, changes)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("[ADMIN] update user=%s failed: %s", user_id, e)
        raise HTTPException(status_code=500, detail="Failed to update user")

    logger.info("[ADMIN] admin=%s updated user=%s %s", admin.id, user_id, changes)
    return AdminUserResponse(user=AdminUserView.from_user(user))
