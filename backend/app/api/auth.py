"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from huddle.realtime import HubError

from app.api.deps import as_http_error, get_current_user
from app.core.security import (
    access_token_lifetime,
    create_access_token,
    get_password_hash,
    verify_password,
)
from app.database import get_db
from app.models import User
from app.schemas import LoginRequest, PublicUser, Token, UserCreate, UserRead
from app.services.realtime import Realtime, get_realtime

router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(user_in: UserCreate, db: Session = Depends(get_db)) -> User:
    """Register a new user in the system."""

    existing_user = db.execute(
        select(User).where(or_(User.username == user_in.username, User.email == user_in.email))
    ).scalar_one_or_none()
    if existing_user is not None:
        detail = "Username is already taken" if existing_user.username == user_in.username else "Email is already registered"
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    user = User(
        username=user_in.username,
        email=user_in.email,
        display_name=user_in.display_name,
        hashed_password=get_password_hash(user_in.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@router.post("/login", response_model=Token)
def login_user(credentials: LoginRequest, db: Session = Depends(get_db)) -> Token:
    """Authenticate a user and return a JWT access token."""

    db_user = db.execute(select(User).where(User.username == credentials.username)).scalar_one_or_none()
    if db_user is None or not verify_password(credentials.password, db_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )

    lifetime = access_token_lifetime()
    return Token(
        access_token=create_access_token({"sub": str(db_user.id)}, expires_delta=lifetime),
        token_type="bearer",
        expires_in=int(lifetime.total_seconds()),
    )


@router.get("/me", response_model=UserRead)
def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.get("/users/search", response_model=list[PublicUser])
async def search_users(
    query: str = Query(..., max_length=100),
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> list[dict]:
    if not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter is required")
    return await realtime.users.search_users(query)


@router.get("/users/{user_id}", response_model=PublicUser)
async def read_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    realtime: Realtime = Depends(get_realtime),
) -> dict:
    try:
        return await realtime.users.get_public_user(user_id)
    except HubError as exc:
        raise as_http_error(exc) from exc
