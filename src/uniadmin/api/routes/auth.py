"""Authentication and user management routes."""

import logging

from fastapi import APIRouter

from uniadmin.config import settings
from uniadmin.dependencies import CurrentUser, DBSession, RedisConn, RequireAdmin
from uniadmin.errors.exceptions import AuthenticationError, ConflictError, NotFoundError, UnitNotFoundError
from uniadmin.models.user import TokenRefresh, TokenResponse, UserCreate, UserLogin, UserResponse
from uniadmin.repositories.org_unit_repo import SqlOrganizationalUnitRepository
from uniadmin.repositories.user_repo import UserRepository
from uniadmin.services.id_generator import USER_PREFIX, generate_id
from uniadmin.services.tokens import blocklist_key, decode_token, hash_password, make_tokens, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _token_response(user_id: str, roles: list[str], email: str) -> TokenResponse:
    access_token, refresh_token = make_tokens(user_id, roles, email)
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


# ── Auth endpoints ─────────────────────────────────────────────────────────────

@router.post("/auth/login", response_model=TokenResponse)
async def login(body: UserLogin, db: DBSession):
    repo = UserRepository(db)
    user = await repo.get_by_email(body.email)
    if not user or not user.hashed_password or not user.is_active:
        raise AuthenticationError("Invalid email or password")
    if not verify_password(body.password, user.hashed_password):
        raise AuthenticationError("Invalid email or password")

    await repo.update_last_login(user)
    await db.commit()
    logger.info("User %s logged in", user.user_id)
    return _token_response(user.user_id, user.roles, user.email)


@router.post("/auth/refresh", response_model=TokenResponse)
async def refresh_token(body: TokenRefresh, db: DBSession, redis: RedisConn):
    try:
        payload = decode_token(body.refresh_token)
    except ValueError as exc:
        raise AuthenticationError(f"Invalid refresh token: {exc}") from exc

    if payload.get("type") != "refresh":
        raise AuthenticationError("Not a refresh token")

    if redis is not None and await redis.get(blocklist_key(body.refresh_token)):
        raise AuthenticationError("Token has been revoked")

    user = await UserRepository(db).get(payload["sub"])
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return _token_response(user.user_id, user.roles, user.email)


@router.post("/auth/logout", status_code=204)
async def logout(body: TokenRefresh, redis: RedisConn):
    if redis is not None:
        await redis.setex(
            blocklist_key(body.refresh_token),
            settings.jwt_refresh_token_expire_days * 86400,
            "1",
        )


# ── User management ────────────────────────────────────────────────────────────

@router.post("/users", response_model=UserResponse, status_code=201, dependencies=[RequireAdmin])
async def create_user(body: UserCreate, db: DBSession):
    repo = UserRepository(db)
    if await repo.email_taken(body.email):
        raise ConflictError(f"User with email '{body.email}' already exists")

    if body.org_unit_id is not None:
        units = SqlOrganizationalUnitRepository(db)
        if await units.find_by_id(body.org_unit_id) is None:
            raise UnitNotFoundError(body.org_unit_id)

    user = await repo.insert(
        user_id=generate_id(USER_PREFIX),
        email=body.email,
        display_name=body.display_name,
        hashed_password=hash_password(body.password),
        roles=body.roles,
        org_unit_id=body.org_unit_id,
        is_active=True,
    )
    await db.commit()
    logger.info("Created user %s (roles=%s, unit=%s)", user.user_id, user.roles, user.org_unit_id)
    return UserResponse.model_validate(user)


@router.get("/users/me", response_model=UserResponse)
async def get_me(current: CurrentUser, db: DBSession):
    user = await UserRepository(db).get(current["sub"])
    if not user:
        raise NotFoundError("User", current["sub"])
    return UserResponse.model_validate(user)
