"""Authentication API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from event_manager.database import get_db
from event_manager.models.user import User
from event_manager.schemas.user import (
    AuthResponse,
    GuestLoginRequest,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
)
from event_manager.security import get_current_user
from event_manager.services import auth_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and return it with a session token."""
    user, token = auth_service.register(db, payload.name, payload.email, payload.password)
    return {"user": user, "token": token}


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a session token."""
    user, token = auth_service.login(db, payload.email, payload.password)
    return {"user": user, "token": token}


@router.post("/guest-login", response_model=AuthResponse)
def guest_login(payload: GuestLoginRequest, db: Session = Depends(get_db)):
    """Create a guest account for the given email and log it in."""
    user, token = auth_service.guest_login(db, payload.email)
    return {"user": user, "token": token}


@router.get("/profile", response_model=ProfileResponse)
def profile(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return {"user": current_user}
