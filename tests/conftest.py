from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from recruitdash.database import get_session
from recruitdash.main import app
from recruitdash.models import goal_models, normalized_models  # noqa: F401
from recruitdash.models.normalized_models import Clinic


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def clinic(session: Session) -> Clinic:
    clinic = Clinic(name="さくら歯科クリニック", slug="sakura-dental")
    session.add(clinic)
    session.commit()
    session.refresh(clinic)
    return clinic


@pytest.fixture
def client(session: Session) -> Iterator[TestClient]:
    # Lifespan is not entered, so no scheduler and no file-backed database
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()
