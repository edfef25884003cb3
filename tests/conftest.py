"""Pytest fixtures."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from questline.core.config import settings
from questline.db.base import Base
from questline.models import Friendship, LedgerEntry, Quest, SharedQuest, Task, User, UserQuest, UserTask  # noqa: F401 - register for create_all
from questline.main import app
from questline.db.session import get_db
from questline.schemas.quest import QuestCreate, TaskCreate
from questline.services.catalog_service import create_quest

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# No outbound calls from tests unless a test points this somewhere.
settings.recommendation_service_url = ""


def unique() -> str:
    return uuid.uuid4().hex[:8]


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(setup_db):
    """Test client with overridden DB."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db(setup_db):
    """A session on the test database for service-level tests."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Create a user with a given balance and XP (level derived from XP)."""

    def _make(coins: int = 100, xp: int = 0) -> User:
        from questline.services.level import compute_level

        name = f"u_{unique()}"
        user = User(
            username=name,
            email=f"{name}@test.com",
            hashed_password="not-a-real-hash",
            coin_balance=coins,
            xp_points=xp,
            level=compute_level(xp),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_quest(db):
    """Create a quest with ``task_count`` tasks worth ``task_xp``/``task_coins`` each."""

    def _make(
        price: int = 10,
        task_count: int = 2,
        task_xp: int = 10,
        task_coins: int = 1,
        reward_xp: int = 50,
        reward_coin: int = 5,
        time_limit_hours: int = 24,
        is_sequential: bool = False,
        difficulty: int = 1,
    ) -> Quest:
        return create_quest(
            db,
            QuestCreate(
                title=f"Quest {unique()}",
                price=price,
                reward_xp=reward_xp,
                reward_coin=reward_coin,
                time_limit_hours=time_limit_hours,
                is_sequential=is_sequential,
                difficulty=difficulty,
                tasks=[
                    TaskCreate(title=f"Task {i}", base_xp_reward=task_xp, base_coin_reward=task_coins)
                    for i in range(1, task_count + 1)
                ],
            ),
        )

    return _make


@pytest.fixture
def make_friends(db):
    """Link two users with an accepted friendship."""

    def _make(user_a: User, user_b: User) -> Friendship:
        link = Friendship(requester_id=user_a.id, addressee_id=user_b.id, status="ACCEPTED")
        db.add(link)
        db.commit()
        return link

    return _make
