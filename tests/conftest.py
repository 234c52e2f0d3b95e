import asyncio
from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, text

from internship_portal.auth_utils import hash_password
from internship_portal.models import Project, Student, Submission, Timesheet, User

# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

# StaticPool so every connection shares the same in-memory database
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Monday 2025-01-06 09:00, used as "now" by the clock fixtures
BASE_TIME = datetime(2025, 1, 6, 9, 0, 0)


class FakeClock:
    """Settable clock; call it to read the time, ``advance`` to move it."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create all tables in the test database once per session."""
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def cleanup_db_between_tests():
    """Clean up test data after each test."""
    yield
    with Session(test_engine) as session:
        session.exec(text("DELETE FROM submission"))
        session.exec(text("DELETE FROM timesheet"))
        session.exec(text("DELETE FROM project"))
        session.exec(text("DELETE FROM student"))
        session.exec(text("DELETE FROM user"))
        session.commit()


@pytest.fixture(scope="session")
def engine():
    """Provide test engine as a fixture."""
    return test_engine


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    """Provide a database session for tests."""
    with Session(test_engine) as session:
        yield session


# ============================================================================
# FASTAPI APP & TEST CLIENT
# ============================================================================

from internship_portal.database import get_session  # noqa: E402
from internship_portal.main import app  # noqa: E402


class SyncClientWrapper:
    """Blocking facade over an httpx AsyncClient bound to the ASGI app."""

    def __init__(self, async_client, loop):
        self.async_client = async_client
        self.loop = loop

    def get(self, *args, **kwargs):
        return self.loop.run_until_complete(self.async_client.get(*args, **kwargs))

    def post(self, *args, **kwargs):
        return self.loop.run_until_complete(self.async_client.post(*args, **kwargs))

    def put(self, *args, **kwargs):
        return self.loop.run_until_complete(self.async_client.put(*args, **kwargs))

    def delete(self, *args, **kwargs):
        return self.loop.run_until_complete(self.async_client.delete(*args, **kwargs))

    def login(self, email, password):
        response = self.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()


@pytest.fixture
def client():
    """Create test client using httpx AsyncClient with sync wrapper."""

    def override_get_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    loop = asyncio.new_event_loop()
    transport = httpx.ASGITransport(app=app)
    async_client = httpx.AsyncClient(transport=transport, base_url="http://testserver")

    yield SyncClientWrapper(async_client, loop)

    loop.run_until_complete(async_client.aclose())
    loop.close()
    app.dependency_overrides.clear()


# ============================================================================
# ENTITY FIXTURES
# ============================================================================


@pytest.fixture
def admin_user():
    """Create a sample admin user."""
    with Session(test_engine) as session:
        admin = User(
            name="Admin User",
            email="admin@example.com",
            password_hash=hash_password("admin123"),
            role="admin",
        )
        session.add(admin)
        session.commit()
        session.refresh(admin)
        admin_id = admin.id

    with Session(test_engine) as session:
        return session.get(User, admin_id)


@pytest.fixture
def student():
    """Create a student with a linked login account."""
    with Session(test_engine) as session:
        student = Student(name="Alice Intern", email="alice@example.com", phone="0123456789")
        session.add(student)
        session.commit()
        session.refresh(student)

        user = User(
            name=student.name,
            email=student.email,
            password_hash=hash_password("testpass123"),
            role="student",
            student_id=student.id,
        )
        session.add(user)
        session.commit()
        session.refresh(user)

        student.user_id = user.id
        session.add(student)
        session.commit()
        student_id = student.id

    with Session(test_engine) as session:
        return session.get(Student, student_id)


@pytest.fixture
def project(admin_user):
    """A published project paying 15/hour, due a week after BASE_TIME."""
    with Session(test_engine) as session:
        project = Project(
            title="Landing page redesign",
            description="Rebuild the marketing landing page",
            category="Web Development",
            estimated_hours=20,
            hourly_rate=15.0,
            deadline=BASE_TIME + timedelta(days=7),
            status="published",
            max_students=2,
            created_by=admin_user.id,
        )
        session.add(project)
        session.commit()
        session.refresh(project)
        project_id = project.id

    with Session(test_engine) as session:
        return session.get(Project, project_id)


@pytest.fixture
def draft_submission(student, project):
    """A draft submission for 10 hours of work on ``project``."""
    with Session(test_engine) as session:
        submission = Submission(
            project_id=project.id,
            student_id=student.id,
            title="First deliverable",
            description="Initial mockups",
            hours_worked=10,
            files=[
                {
                    "filename": "mockup-1.png",
                    "original_name": "mockup.png",
                    "path": "uploads/mockup-1.png",
                    "size": 2048,
                    "mimetype": "image/png",
                    "uploaded_at": BASE_TIME.isoformat(),
                }
            ],
        )
        session.add(submission)
        session.commit()
        session.refresh(submission)
        submission_id = submission.id

    with Session(test_engine) as session:
        return session.get(Submission, submission_id)


@pytest.fixture
def active_timesheet(student, project):
    with Session(test_engine) as session:
        timesheet = Timesheet(student_id=student.id, project_id=project.id, login_time=BASE_TIME, date=BASE_TIME)
        session.add(timesheet)
        session.commit()
        session.refresh(timesheet)
        timesheet_id = timesheet.id

    with Session(test_engine) as session:
        return session.get(Timesheet, timesheet_id)
