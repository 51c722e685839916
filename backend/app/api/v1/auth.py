"""
Authentication API endpoints.

Handles registration, login with JWT token generation and the current-user
dependencies shared by every other router.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, Forbidden
from app.core.security import (
    create_access_token,
    get_password_hash,
    get_token_identity,
    is_admin_email,
    verify_password,
)
from app.db.session import get_db
from app.models import ManagerProfile, TalentProfile, User
from app.services import account_verification
from app.stores import ManagerProfileStore, TalentProfileStore, UserStore, commit_or_raise

logger = logging.getLogger("auth")

router = APIRouter()

# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

EMAIL_PATTERN = r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$"
SIGNUP_ROLES = ("talent", "manager")


# ============== Pydantic Schemas ==============


class UserRegister(BaseModel):
    """Schema for user registration."""

    email: str
    password: str
    first_name: str
    last_name: str
    role: str = "talent"  # 'talent' | 'manager'

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.strip()):
            raise ValueError("Invalid email format")
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    """Schema for user response (without password)."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    profile_image: Optional[str] = None
    is_active: bool
    email_verified: bool
    created_at: Optional[datetime] = None
    talent_profile_id: Optional[int] = None
    manager_profile_id: Optional[int] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    """Schema for JWT token response."""

    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    user: UserResponse


class UserSelfPatch(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    verification_code: str = Field(pattern=r"^\d{4}$")


class EmailRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class PasswordResetRequest(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=6)


# ============== Helper Functions ==============


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        role=user.role,
        profile_image=user.profile_image,
        is_active=bool(user.is_active),
        email_verified=bool(user.email_verified),
        created_at=user.created_at,
        talent_profile_id=user.talent_profile.id if user.talent_profile else None,
        manager_profile_id=user.manager_profile.id if user.manager_profile else None,
    )


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password."""
    user = UserStore(db).get_by_email(email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.role, user.email)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    Raises HTTPException if token is invalid, the user is gone or deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    identity = get_token_identity(token)
    if identity is None:
        raise credentials_exception

    user_id, email = identity
    user = db.get(User, user_id)
    # The id alone is not enough: the account must still own the e-mail the token was issued for
    if user is None or user.email.lower() != email.lower() or not user.is_active:
        raise credentials_exception

    return user


def require_roles(*roles: str) -> Callable:
    """Dependency factory restricting an endpoint to the given roles."""

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise Forbidden("Access denied")
        return current_user

    return dependency


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Admins must hold the admin role and an address on the admin domain."""
    if current_user.role != "admin" or not is_admin_email(current_user.email):
        raise Forbidden("Admin access required")
    return current_user


async def get_talent_profile(
    current_user: User = Depends(require_roles("talent")),
    db: Session = Depends(get_db),
) -> TalentProfile:
    profile = current_user.talent_profile
    if profile is None:
        profile = TalentProfileStore(db).create_for_user(current_user.id)
        commit_or_raise(db, "create_talent_profile")
    return profile


async def get_manager_profile(
    current_user: User = Depends(require_roles("manager")),
    db: Session = Depends(get_db),
) -> ManagerProfile:
    profile = current_user.manager_profile
    if profile is None:
        profile = ManagerProfileStore(db).create_for_user(current_user.id)
        commit_or_raise(db, "create_manager_profile")
    return profile


# ============== API Endpoints ==============


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new user.

    Creates the account and its role profile with empty defaults. Admin
    accounts cannot be self-registered.
    """
    if user_data.role not in SIGNUP_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Role must be 'talent' or 'manager'",
        )

    users = UserStore(db)
    if users.email_taken(user_data.email):
        raise Conflict("Email already registered")

    new_user = users.create(
        {
            "email": user_data.email,
            "hashed_password": get_password_hash(user_data.password),
            "first_name": user_data.first_name,
            "last_name": user_data.last_name,
            "role": user_data.role,
        }
    )
    if user_data.role == "talent":
        TalentProfileStore(db).create_for_user(new_user.id)
    else:
        ManagerProfileStore(db).create_for_user(new_user.id)

    commit_or_raise(db, "register", "Email already registered")
    db.refresh(new_user)
    logger.info(f"Registered {new_user.role} user {new_user.id}")
    account_verification.send_verification_code(db, new_user)

    return AuthResponse(access_token=issue_token(new_user), user=user_response(new_user))


def _login(db: Session, email: str, password: str) -> AuthResponse:
    user = authenticate_user(db, email, password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated",
        )

    UserStore(db).touch_login(user)
    commit_or_raise(db, "login")
    db.refresh(user)
    return AuthResponse(access_token=issue_token(user), user=user_response(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Login and get JWT access token.

    Uses OAuth2 password flow. Send username (email) and password
    as form data.
    """
    return _login(db, form_data.username, form_data.password)


@router.post("/login/json", response_model=AuthResponse)
async def login_json(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Login with a JSON body instead of form data."""
    return _login(db, credentials.email, credentials.password)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return user_response(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    patch: UserSelfPatch,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update own name or profile image."""
    UserStore(db).apply(current_user, patch)
    commit_or_raise(db, "update_me")
    db.refresh(current_user)
    return user_response(current_user)


# ============== Verification & Password Reset ==============


@router.post("/verify-email", response_model=UserResponse)
async def verify_email(
    payload: VerifyEmailRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Confirm the signed-in user's address with the mailed four-digit code."""
    user = account_verification.verify_email(db, current_user, payload.verification_code)
    return user_response(user)


@router.post("/resend-verification")
async def resend_verification(payload: EmailRequest, db: Session = Depends(get_db)):
    result = account_verification.resend_verification(db, payload.email)
    return {"message": "Verification code sent", "email_sent": result.success}


@router.post("/forgot-password")
async def forgot_password(payload: EmailRequest, db: Session = Depends(get_db)):
    """
    Start a password reset.

    The answer is the same whether or not the address belongs to an account.
    """
    account_verification.request_password_reset(db, payload.email)
    return {"message": "If an account exists for this email, a reset link has been sent"}


@router.post("/reset-password")
async def reset_password(payload: PasswordResetRequest, db: Session = Depends(get_db)):
    account_verification.reset_password(db, payload.token, payload.new_password)
    return {"message": "Password has been reset"}
