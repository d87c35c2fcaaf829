import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from werkzeug.security import check_password_hash, generate_password_hash

from studyhub.models import User, UserRead, UserUpdate

logger = logging.getLogger(__name__)


class UserExistsError(Exception):
    pass


def to_public(user: User) -> UserRead:
    return UserRead(**user.model_dump(exclude={"password"}))


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).one_or_none()


def get_user_by_id(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def create_user(session: Session, email: str, password: str, full_name: Optional[str] = None) -> User:
    """Stores a new user; the username is the local part of the email."""
    user = User(
        username=email.split("@")[0],
        email=email,
        password=generate_password_hash(password),
        full_name=full_name,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise UserExistsError(f"User already exists: {email}") from e
    session.refresh(user)
    logger.info("Created user %d (%s)", user.id, user.username)
    return user


def authenticate(session: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(session, email)
    if user is None or not check_password_hash(user.password, password):
        return None
    return user


def update_user(session: Session, user_id: int, updates: UserUpdate) -> Optional[User]:
    user = session.get(User, user_id)
    if user is None:
        return None
    for key, value in updates.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(user, key, value)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
