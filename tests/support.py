"""Shared test helpers: in-memory SQLite database, fast settings, user factory."""

from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import Database
from app.models import Base, User, UserRole
from app.schemas.user import UserCreate
from app.services.users import create_user

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


def make_settings(**overrides: object) -> Settings:
    """Settings with cheap bcrypt and fixed secrets; ignores any local .env file."""
    values: dict[str, object] = {
        "JWT_ACCESS_SECRET": ACCESS_SECRET,
        "JWT_REFRESH_SECRET": REFRESH_SECRET,
        "BCRYPT_ROUNDS": 4,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_database() -> Database:
    """Fresh in-memory SQLite database with the schema created; shared across threads."""
    database = Database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(database.engine)
    return database


def make_user(
    session,
    settings: Settings,
    email: str = "a@x.com",
    username: str = "alice",
    password: str = "Right1!pass",
    role: UserRole = UserRole.USER,
    first_name: str = "Alice",
    last_name: str = "Smith",
) -> User:
    return create_user(
        session,
        settings,
        UserCreate(
            email=email,
            username=username,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
        ),
    )
