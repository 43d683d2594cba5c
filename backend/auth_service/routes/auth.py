"""Auth routes: register, login, refresh, me, logout, delete-account, oauth-sync."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth_service.middleware.auth_middleware import (
    INVALID_TOKEN, Identity, extract_token, get_current_identity,
)
from backend.auth_service.models.database import get_db
from backend.auth_service.models.schemas import (
    RegisterRequest, LoginRequest, RefreshRequest, OAuthSyncRequest,
    ProfileUpdateRequest, SessionResponse, RefreshResponse, UserResponse,
    MessageResponse, OAuthSyncResponse, UserProjection,
)
from backend.auth_service.services import account_store
from backend.auth_service.services.auth_service import (
    hash_password, verify_password, dummy_password_hash,
    create_access_token, create_refresh_token,
    decode_token, decode_external_token, is_refresh_claims,
    OAUTH_PASSWORD_SENTINEL,
)
from backend.auth_service.services.validation import (
    ROLES, is_valid_email, password_problem,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password"


async def _load_active_account(db: AsyncSession, identity: Identity):
    """Re-read the caller's row: the token alone is not trusted for profile data."""
    try:
        user = await account_store.get_by_id(db, identity.id)
    except SQLAlchemyError as e:
        logger.error("[ME] lookup failed for user=%s: %s", identity.id, e)
        raise HTTPException(status_code=500, detail="Internal server error")
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user.status == "suspended":
        raise HTTPException(status_code=403, detail="Account suspended")
    return user


@router.post("/register", response_model=SessionResponse, status_code=201)
async def register(req: RegisterRequest, db: AsyncSession = Depends(get_db)):
    if not (req.email and req.password and req.first_name and req.last_name):
        raise HTTPException(
            status_code=400,
            detail="Email, password, first name, and last name are required",
        )
    if not is_valid_email(req.email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    problem = password_problem(req.password)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    role = req.role or "renter"
    if role not in ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")

    # Convenience pre-check; the unique index on users.email settles races
    try:
        existing = await account_store.get_by_email(db, req.email)
    except SQLAlchemyError as e:
        logger.error("[REGISTER] email pre-check failed: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    try:
        user = await account_store.create_account(
            db,
            email=req.email,
            password_hash=hash_password(req.password),
            first_name=req.first_name.strip(),
            last_name=req.last_name.strip(),
            phone=req.phone or None,
            role=role,
            business_name=req.business_name or None,
            status="active",
            is_admin=False,
        )
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Email already registered")
    except SQLAlchemyError as e:
        logger.error("[REGISTER] create user failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create account")

    logger.info("[REGISTER] created user=%s role=%s", user.id, user.role)
    return SessionResponse(
        session_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        user=UserProjection.from_user(user),
    )


@router.post("/login", response_model=SessionResponse)
async def login(req: LoginRequest, db: AsyncSession = Depends(get_db)):
    if not (req.email and req.password):
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        user = await account_store.get_by_email(db, req.email)
    except SQLAlchemyError as e:
        logger.error("[LOGIN] lookup failed: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")

    # Unknown email and wrong password must be indistinguishable
    if user is None:
        verify_password(req.password, dummy_password_hash())
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)
    if user.status == "suspended":
        raise HTTPException(status_code=403, detail="Account suspended. Please contact support.")
    if not verify_password(req.password, user.password_hash):
        logger.info("[LOGIN] bad password for user=%s", user.id)
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

    body = SessionResponse(
        session_token=create_access_token(user),
        refresh_token=create_refresh_token(user) if req.remember_me else None,
        user=UserProjection.from_user(user),
    )
    user_id = user.id

    # Best-effort: a failed timestamp write does not fail the login
    try:
        await account_store.touch_last_login(db, user)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("[LOGIN] last_login update failed for user=%s: %s", user_id, e)

    logger.info("[LOGIN] user=%s remember_me=%s", user_id, bool(req.remember_me))
    return body


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(req: RefreshRequest, db: AsyncSession = Depends(get_db)):
    if not req.refresh_token:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    claims = decode_token(req.refresh_token)
    if not is_refresh_claims(claims):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    try:
        user = await account_store.get_by_id(db, claims.get("id"))
    except SQLAlchemyError as e:
        logger.error("[REFRESH] lookup failed: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    if user.status == "suspended":
        raise HTTPException(status_code=403, detail="Account suspended")

    return RefreshResponse(
        session_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
    )


@router.get("/me", response_model=UserResponse)
async def me(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    user = await _load_active_account(db, identity)
    return UserResponse(user=UserProjection.from_user(user))


@router.patch("/me", response_model=UserResponse)
async def update_me(
    req: ProfileUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    user = await _load_active_account(db, identity)

    # Only these columns are self-service; is_admin and status never are
    changes = req.model_dump(exclude_unset=True)
    if "role" in changes and changes["role"] not in ROLES:
        raise HTTPException(status_code=400, detail="Invalid role")
    for name in ("first_name", "last_name"):
        if name in changes:
            value = (changes[name] or "").strip()
            if not value:
                raise HTTPException(status_code=400, detail="First and last name cannot be empty")
            changes[name] = value

    try:
        user = await account_store.update_account(db, user, changes)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("[ME] profile update failed for user=%s: %s", identity.id, e)
        raise HTTPException(status_code=500, detail="Failed to update profile")
    return UserResponse(user=UserProjection.from_user(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(identity: Identity = Depends(get_current_identity)):
    # Tokens are stateless; the client drops its copy
    logger.info("[LOGOUT] user=%s", identity.id)
    return MessageResponse(message="Logged out")


@router.delete("/delete-account", response_model=MessageResponse)
async def delete_account(request: Request, db: AsyncSession = Depends(get_db)):
    token = extract_token(request.headers.get("Authorization"))
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    account_id = None
    claims = decode_token(token)
    if claims is not None and not is_refresh_claims(claims) and "id" in claims:
        account_id = account_store.parse_account_id(claims["id"])
    else:
        external = decode_external_token(token)
        if external is None:
            raise HTTPException(status_code=401, detail=INVALID_TOKEN)
        email = external.get("email")
        try:
            user = await account_store.get_by_email(db, email) if email else None
        except SQLAlchemyError as e:
            logger.error("[DELETE] lookup by external identity failed: %s", e)
            raise HTTPException(status_code=500, detail="Internal server error")
        if user is not None:
            account_id = user.id
        logger.info("[DELETE] external identity sub=%s resolved=%s", external.get("sub"), account_id)

    if account_id is None:
        # Nothing left to remove for this identity
        return MessageResponse(message="Account deleted successfully")

    try:
        removed = await account_store.delete_account_cascade(db, account_id)
    except SQLAlchemyError as e:
        logger.error("[DELETE] user=%s delete failed: %s", account_id, e)
        raise HTTPException(status_code=500, detail="Failed to delete account")

    logger.info("[DELETE] user=%s removed=%d", account_id, removed)
    return MessageResponse(message="Account deleted successfully")


@router.post("/oauth-sync", response_model=OAuthSyncResponse)
async def oauth_sync(
    req: OAuthSyncRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    if not req.email:
        raise HTTPException(status_code=400, detail="Email is required")

    try:
        existing = await account_store.get_by_email(db, req.email)
        if existing is not None:
            await account_store.touch_last_login(db, existing, avatar_url=req.avatar_url)
            logger.info("[OAUTH] synced existing user=%s", existing.id)
            return OAuthSyncResponse(message="User synced", user_id=existing.id)

        try:
            user = await account_store.create_account(
                db,
                email=req.email,
                password_hash=OAUTH_PASSWORD_SENTINEL,
                first_name=req.first_name or req.email.split("@")[0],
                last_name=req.last_name or "",
                role="both",
                status="active",
                is_admin=False,
                avatar_url=req.avatar_url,
                last_login=datetime.now(timezone.utc),
            )
        except IntegrityError:
            # A concurrent sync created the row first
            winner = await account_store.get_by_email(db, req.email)
            if winner is None:
                raise
            return OAuthSyncResponse(message="User synced", user_id=winner.id)
    except SQLAlchemyError as e:
        logger.error("[OAUTH] sync failed for provider id=%s: %s", req.id, e)
        raise HTTPException(status_code=500, detail="Failed to sync user")

    logger.info("[OAUTH] created user=%s provider_id=%s", user.id, req.id)
    response.status_code = 201
    return OAuthSyncResponse(message="User created", user_id=user.id)
