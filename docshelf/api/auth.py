"""
Authentication API endpoints
User registration, login, API keys and profile
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from docshelf.database import get_db
from docshelf.api.deps import get_current_user
from docshelf.models.user import User
from docshelf.models.api_key import APIKey
from docshelf.core.security import hash_password, issue_api_key, verify_password
from docshelf.core.exceptions import ConflictError, ValidationError, http_401_unauthorized
from docshelf.middleware.rate_limiter import login_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


class RegisterRequest(BaseModel):
    """Request schema for user registration"""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=6, max_length=128, description="Password (min 6 characters)")
    name: str = Field(..., min_length=1, max_length=50)


class RegisterResponse(BaseModel):
    """Response schema for user registration"""
    user_id: str
    email: str
    name: str
    api_key: str = Field(..., description="API key (save this - only shown once!)")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    key_name: Optional[str] = Field(None, max_length=255, description="Label for the issued key")


class LoginResponse(BaseModel):
    """A newly issued API key for a returning user"""
    user_id: str
    email: str
    name: str
    api_key: str = Field(..., description="API key (save this - only shown once!)")
    key_prefix: str


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    created_at: datetime


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6, max_length=128)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user and generate API key

    **Important**: The API key is only returned once. Save it securely!

    Raises:
        ConflictError: 409 if email already registered
    """
    email = request.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email is already registered")

    user = User(
        email=email,
        name=request.name.strip(),
        hashed_password=hash_password(request.password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    issued = issue_api_key()
    db.add(APIKey(
        user_id=user.id,
        key_hash=issued.key_hash,
        key_prefix=issued.display_prefix,
        name="Default API Key",
    ))
    db.commit()

    return RegisterResponse(
        user_id=str(user.id),
        email=user.email,
        name=user.name,
        api_key=issued.key
    )


@router.post("/login", response_model=LoginResponse)
@login_rate_limit()
async def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Sign in with email and password and receive a new API key

    Earlier keys stay valid. The new key is only returned once.

    Raises:
        HTTPException: 401 if the credentials are wrong or the account is inactive
    """
    user = db.query(User).filter(User.email == credentials.email.lower()).first()
    if not user or not verify_password(credentials.password, user.hashed_password):
        raise http_401_unauthorized("Invalid email or password")
    if not user.is_active:
        raise http_401_unauthorized("User account is inactive")

    issued = issue_api_key()
    db.add(APIKey(
        user_id=user.id,
        key_hash=issued.key_hash,
        key_prefix=issued.display_prefix,
        name=credentials.key_name or "Login key",
    ))
    db.commit()
    logger.info(f"Issued API key {issued.display_prefix}... to user {user.id}")

    return LoginResponse(
        user_id=str(user.id),
        email=user.email,
        name=user.name,
        api_key=issued.key,
        key_prefix=issued.display_prefix,
    )


@router.get("/me", response_model=UserProfile)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user"""
    return current_user


@router.put("/me", response_model=UserProfile)
async def update_profile(
    update: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change display name and/or password (password change needs the current one)"""
    if update.name is not None:
        current_user.name = update.name.strip()

    if update.new_password is not None:
        if not update.current_password or not verify_password(update.current_password, current_user.hashed_password):
            raise ValidationError("Current password is incorrect")
        current_user.hashed_password = hash_password(update.new_password)

    db.commit()
    db.refresh(current_user)
    return current_user
