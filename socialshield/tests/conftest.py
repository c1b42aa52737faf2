from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from socialshield.database import Base, get_db
from socialshield.models import pattern, stats, threat  # noqa: F401  (register tables)
from socialshield.services.catalog_service import seed_default_patterns
from socialshield.services.matching_service import ThreatPattern


@pytest.fixture
def engine():
    """Isolated in-memory database shared across sessions of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def test_db(session_factory):
    """Create a test database session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded_db(test_db):
    """Session with the default pattern catalog loaded."""
    seed_default_patterns(test_db)
    return test_db


@pytest.fixture
def fixed_clock():
    """Clock frozen at a known instant."""
    return lambda: datetime(2025, 11, 3, 10, 30, 0)


@pytest.fixture
def client(session_factory):
    """FastAPI test client wired to the in-memory database."""
    from socialshield.api.server import app
    from socialshield.api.security import rate_limiter

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    db = session_factory()
    seed_default_patterns(db)
    db.close()

    app.dependency_overrides[get_db] = override_get_db
    rate_limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def urgency_pattern():
    return ThreatPattern(
        name="Urgent Action Required",
        category="urgency_manipulation",
        indicators=("urgent", "immediately", "act now", "verify now"),
        severity_weight=0.75,
    )


@pytest.fixture
def links_pattern():
    return ThreatPattern(
        name="Suspicious Links",
        category="phishing",
        indicators=("bit.ly", "tinyurl", "click here", "verify account"),
        severity_weight=0.90,
    )


@pytest.fixture
def sample_scam_text():
    """Sample social engineering message for testing."""
    return "URGENT: verify your account now, click http://bit.ly/xyz"


@pytest.fixture
def sample_safe_text():
    """Sample safe message for testing."""
    return "Let's meet for coffee tomorrow"
