from datetime import date
from typing import Optional, Tuple
import logging

from sqlalchemy.orm import Session

from ..core.errors import AuthError, DuplicateError, NotFoundError
from ..core.security import hash_password, verify_password
from ..models import User
from .content import write_transaction

logger = logging.getLogger(__name__)

USERNAME_AND_EMAIL_TAKEN = "Username and email already taken, please choose different ones"
USERNAME_TAKEN = "Username already taken, please use a different username"
EMAIL_TAKEN = "Email is already registered, please use a different email"
USERNAME_OR_EMAIL_TAKEN = "Username or email already taken"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def find_existing(db: Session, user_name: str, email: str) -> Tuple[bool, bool]:
    """(username taken, email taken). Emails compare case-insensitively."""
    name_taken = db.query(User.id).filter(User.user_name == user_name).first() is not None
    email_taken = db.query(User.id).filter(User.email == normalize_email(email)).first() is not None
    return name_taken, email_taken


def _duplicate_for(name_taken: bool, email_taken: bool) -> Optional[DuplicateError]:
    if name_taken and email_taken:
        return DuplicateError(USERNAME_AND_EMAIL_TAKEN, field="userName")
    if name_taken:
        return DuplicateError(USERNAME_TAKEN, field="userName")
    if email_taken:
        return DuplicateError(EMAIL_TAKEN, field="email")
    return None


def register_user(
    db: Session,
    user_name: str,
    first_name: str,
    last_name: str,
    birthday: date,
    email: str,
    password: str,
    hash_rounds: Optional[int] = None,
) -> User:
    duplicate = _duplicate_for(*find_existing(db, user_name, email))
    if duplicate is not None:
        raise duplicate
    user = User(
        user_name=user_name,
        first_name=first_name,
        last_name=last_name,
        birthday=birthday,
        email=normalize_email(email),
        password_hash=hash_password(password, hash_rounds),
    )
    # a concurrent registration can still win the race; the unique constraints catch it
    with write_transaction(db, "Registering user", DuplicateError(USERNAME_OR_EMAIL_TAKEN, field="userName")):
        db.add(user)
    db.refresh(user)
    logger.info("Registered user %s", user.user_name)
    return user


def update_profile(
    db: Session,
    user: User,
    first_name: str,
    last_name: str,
    birthday: date,
    current_password: str,
    new_password: str,
    hash_rounds: Optional[int] = None,
) -> User:
    if not verify_password(current_password, user.password_hash):
        raise AuthError("Current password is not equal to your old password")
    with write_transaction(db, "Updating profile"):
        user.first_name = first_name
        user.last_name = last_name
        user.birthday = birthday
        user.password_hash = hash_password(new_password, hash_rounds)
    db.refresh(user)
    logger.info("User %s updated their profile", user.user_name)
    return user
