import os
import tempfile
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("DATABASE_URL", "sqlite:///./product_genius_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-product-genius-suite-0123456789")

import product_genius.models  # noqa: F401,E402
from product_genius.core.config import settings  # noqa: E402
from product_genius.core.security import create_access_token, hash_password  # noqa: E402
from product_genius.db.base_class import Base  # noqa: E402
from product_genius.db.session import get_db  # noqa: E402
from product_genius.main import app  # noqa: E402
from product_genius.models.user import User, UserRole  # noqa: E402

DEFAULT_PASSWORD = "StrongPass1"


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    db_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_file.close()

    engine = create_engine(
        f"sqlite:///{db_file.name}",
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        os.unlink(db_file.name)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def media_root(tmp_path) -> Generator[str, None, None]:
    old_media_root = settings.MEDIA_ROOT
    settings.MEDIA_ROOT = str(tmp_path)
    try:
        yield str(tmp_path)
    finally:
        settings.MEDIA_ROOT = old_media_root


@pytest.fixture()
def create_user(db_session: Session) -> Callable[..., User]:
    def _create_user(
        email: str,
        role: UserRole = UserRole.USER,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email,
            name="Test User",
            password_hash=hash_password(password),
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


def _auth_headers(user: User) -> dict:
    token = create_access_token(
        data={
            "sub": str(user.id),
            "role": user.role.value,
            "session_version": user.session_version,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(create_user) -> dict:
    return _auth_headers(create_user("admin@example.com", role=UserRole.ADMIN))


@pytest.fixture()
def user_headers(create_user) -> dict:
    return _auth_headers(create_user("shopper@example.com"))


@pytest.fixture()
def auth_headers() -> Callable[[User], dict]:
    return _auth_headers
