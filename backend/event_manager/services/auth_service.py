"""Credential checks and account creation for the auth routes."""
import logging
import secrets

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from event_manager.models.user import User
from event_manager.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

GUEST_NAME = "Guest User"
GUEST_EMAIL_TAKEN = "Email already exists. Please use a different email."


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User).filter(User.email == email).first() is not None


def _save_new_user(db: Session, user: User, duplicate_detail: str) -> User:
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent sign-up for the same email
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=duplicate_detail)
    db.refresh(user)
    return user


def register(db: Session, name: str, email: str, password: str) -> tuple[User, str]:
    """Create a permanent account and issue its first token."""
    if _email_taken(db, email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(name=name, email=email, password_hash=hash_password(password), is_guest=False)
    _save_new_user(db, user, "Email already registered")
    logger.info("Registered user %s (%s)", user.id, user.email)
    return user, create_access_token(user.id)


def login(db: Session, email: str, password: str) -> tuple[User, str]:
    """Verify credentials and issue a token."""
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    logger.info("User %s logged in", user.id)
    return user, create_access_token(user.id)


def guest_login(db: Session, email: str) -> tuple[User, str]:
    """Create a guest account with a random password nobody is told."""
    if _email_taken(db, email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=GUEST_EMAIL_TAKEN,
        )

    user = User(
        name=GUEST_NAME,
        email=email,
        password_hash=hash_password(secrets.token_urlsafe(16)),
        is_guest=True,
    )
    _save_new_user(db, user, GUEST_EMAIL_TAKEN)
    logger.info("Created guest user %s (%s)", user.id, user.email)
    return user, create_access_token(user.id)
