import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SCHEDULER_TIMEZONE"] = "UTC"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core.database import Base, get_db
from app.models import User, Automation, AutomationRecipient


class FakeEmailService:
    """Records every send; addresses in `failing` are rejected like a bounced mailbox."""

    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)

    def send_email(self, to_email, subject, body, to_name=None):
        self.sent.append({"to": to_email, "subject": subject, "body": body, "to_name": to_name})
        if to_email in self.failing:
            return False, "RECIPIENT_NOT_FOUND: mailbox unavailable"
        return True, None


@pytest.fixture
def engine():
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
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user(db):
    user = User(email="freelancer@example.com", first_name="Ada", last_name="Lovelace")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def make_automation(db, user):
    def _make(recipients=(), **fields):
        data = {
            "user_id": user.id,
            "name": "Automation",
            "type": "EMAIL_REMINDER",
            "schedule_type": "DAILY",
            "schedule_time": "09:00",
            "config": {},
            "is_active": True,
            "total_executions": 0,
            "successful_executions": 0,
        }
        data.update(fields)
        automation = Automation(**data)
        automation.recipients = [AutomationRecipient(email=email, name=None) for email in recipients]
        db.add(automation)
        db.commit()
        db.refresh(automation)
        return automation

    return _make


@pytest.fixture
def client(session_factory, email_service, user):
    from app.main import app
    from app.api.automations import get_email_service

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    with TestClient(app) as test_client:
        test_client.headers.update({"X-User-Id": str(user.id)})
        yield test_client
    app.dependency_overrides.clear()
