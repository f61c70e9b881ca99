"""
Test configuration and fixtures.
"""
import base64
import os
import pytest
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test configuration before importing app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-only-jwt-secret-key-with-enough-length-0123456789"
os.environ["ENCRYPTION_KEY"] = base64.b64encode(bytes(range(32))).decode()

from healthinfo.main import app
from healthinfo.core.config import Settings, get_settings
from healthinfo.core.crypto import FieldCipher
from healthinfo.core.security import generate_access_token, hash_password
from healthinfo.db.base import Base
from healthinfo.db.session import get_db
from healthinfo.models.client import Client
from healthinfo.models.program import Program
from healthinfo.models.user import User


# One in-memory database shared by every connection, recreated per test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "testpassword123"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh schema and a database session for the test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def cipher(settings: Settings) -> FieldCipher:
    return FieldCipher.from_settings(settings)


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a test user."""
    user = User(
        email="testuser@example.com",
        password_hash=hash_password(TEST_PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user: User, settings: Settings) -> dict:
    """Authorization header carrying a valid access token for test_user."""
    token = generate_access_token(str(test_user.id), settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_client_data() -> dict:
    return {
        "first_name": "Jane",
        "last_name": "Wanjiru",
        "date_of_birth": "1990-04-12",
        "gender": "female",
        "contact_number": "+254700000001",
        "email": "jane.wanjiru@example.com",
        "address": "12 Moi Avenue, Nairobi",
    }


@pytest.fixture
def stored_client(db: Session, cipher: FieldCipher, sample_client_data: dict) -> Client:
    """A client row written directly with encrypted fields."""
    record = Client(**{name: cipher.encrypt(value) for name, value in sample_client_data.items()})
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def stored_program(db: Session) -> Program:
    program = Program(name="Tuberculosis", description="TB treatment and follow-up")
    db.add(program)
    db.commit()
    db.refresh(program)
    return program
