"""
Owner Authentication Routes

Signup, login and the restaurant profile of the signed-in owner.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from menumagi.core.config import get_settings
from menumagi.database import get_db
from menumagi.models import Owner
from menumagi.routers.deps import get_current_owner
from menumagi.schemas import (
    LoginRequest,
    OwnerResponse,
    OwnerUpdate,
    SignupRequest,
    TokenResponse,
)
from menumagi.services.auth import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _token_response(owner: Owner) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(owner.id, owner.email),
        owner=OwnerResponse.model_validate(owner),
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(data: SignupRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    """Create an owner account (one restaurant per account)."""
    email = data.email.lower()
    owner = Owner(
        email=email,
        password_hash=hash_password(data.password),
        restaurant_name=data.restaurant_name or get_settings().default_restaurant_name,
        phone=data.phone,
    )
    db.add(owner)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="An account with this email already exists")
    await db.refresh(owner)

    logger.info(f"Owner signed up: {email} ({owner.restaurant_name})")
    return _token_response(owner)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    result = await db.execute(select(Owner).where(Owner.email == data.email.lower()))
    owner = result.scalar_one_or_none()
    if owner is None or not verify_password(owner.password_hash, data.password):
        logger.info(f"Failed login for {data.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _token_response(owner)


@router.get("/me", response_model=OwnerResponse)
async def me(owner: Owner = Depends(get_current_owner)) -> OwnerResponse:
    return OwnerResponse.model_validate(owner)


@router.patch("/me", response_model=OwnerResponse)
async def update_me(
    data: OwnerUpdate,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> OwnerResponse:
    """Update restaurant name, phone or address."""
    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "restaurant_name" and value is None:
            continue
        setattr(owner, field, value)
    await db.commit()
    await db.refresh(owner)
    return OwnerResponse.model_validate(owner)
