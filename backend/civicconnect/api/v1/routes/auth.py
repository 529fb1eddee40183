"""Registration and login endpoints."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from civicconnect.core.audit import audit_log, AuditAction
from civicconnect.core.auth import get_client_ip, get_request_id
from civicconnect.core.exceptions import InvalidCredentialsException, ValidationException
from civicconnect.core.jwt import get_jwt_manager
from civicconnect.core.security import hash_password, mask_email, verify_password
from civicconnect.db.session import get_db
from civicconnect.models.user import User, UserRole
from civicconnect.schemas.common import MessageResponse
from civicconnect.schemas.user import LoginRequest, LoginResponse, LoginUser, RegisterRequest

logger = logging.getLogger("api.auth")
router = APIRouter()


def normalize_email(email: str) -> str:
    return email.strip().lower()


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Create a citizen account.

    Accounts created here never get the admin role.
    """
    name = body.name.strip()
    email = normalize_email(body.email)
    if not name or not email or not body.password:
        raise ValidationException("All fields are required")

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ValidationException("Email already registered", field="email")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(body.password),
        role=UserRole.CITIZEN,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same address
        await db.rollback()
        raise ValidationException("Email already registered", field="email")

    audit_log.log(
        AuditAction.AUTH_REGISTER,
        request_id=get_request_id(request),
        client_ip=get_client_ip(request),
        actor_id=user.id,
        details={"email": mask_email(email)},
    )
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Exchange email and password for a bearer token.

    Unknown email and wrong password produce the same 400.
    """
    request_id = get_request_id(request)
    client_ip = get_client_ip(request)

    email = normalize_email(body.email)
    if not email or not body.password:
        raise ValidationException("Email and password required")

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.password_hash):
        audit_log.log_login_failure(request_id, client_ip, email)
        raise InvalidCredentialsException()

    jwt_manager = get_jwt_manager()
    token = jwt_manager.create_access_token(str(user.id))

    audit_log.log(
        AuditAction.AUTH_LOGIN,
        request_id=request_id,
        client_ip=client_ip,
        actor_id=user.id,
    )
    logger.info(f"[{request_id}] Login for {mask_email(email)}")

    return LoginResponse(
        token=token,
        expires_in=jwt_manager.expires_in,
        user=LoginUser(id=user.id, name=user.name, email=user.email),
    )
