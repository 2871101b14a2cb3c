import os

# Set before learnify.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from learnify.auth.auth_utils import create_access_token, hash_password
from learnify.core.database import create_core_indexes, get_db, new_id, utcnow
from learnify.courses.course_models import CourseDocument
from learnify.main import app
from learnify.users.user_models import UserDocument

DEFAULT_PASSWORD = "secret123"


class AttrDict(dict):
    """Dict with attribute-style access for fixtures."""

    def __getattr__(self, item):
        try:
            return self[item]
        except KeyError as exc:
            raise AttributeError(item) from exc


@pytest_asyncio.fixture
async def db():
    database = AsyncMongoMockClient()["learnify_test"]
    await create_core_indexes(database)
    yield database


@pytest_asyncio.fixture
async def client(db):
    async def _get_db():
        return db

    app.dependency_overrides[get_db] = _get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make_user(name="Test Student", email=None, role="student", is_active=True, **extra):
        now = utcnow()
        user = UserDocument(
            user_id=new_id("USR"),
            name=name,
            email=email or f"{new_id('u').lower()}@example.com",
            password_hash=hash_password(DEFAULT_PASSWORD),
            role=role,
            is_active=is_active,
            created_at=now,
            updated_at=now,
            **extra,
        ).model_dump()
        await db.users.insert_one(user)
        user.pop("_id", None)
        token = create_access_token(user)
        return AttrDict(
            user,
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make_user


@pytest.fixture
def make_course(db):
    async def _make_course(**overrides):
        now = utcnow()
        fields = {
            "course_id": new_id("COURSE"),
            "title": "Python for Data Science",
            "description": "Complete guide to using Python for data analysis and modelling.",
            "instructor": "Dr. Emily Davis",
            "difficulty": "Intermediate",
            "duration": "12 weeks",
            "category": "Data Science",
            "syllabus": ["NumPy", "Pandas", "Matplotlib"],
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        course = CourseDocument(**fields).model_dump()
        await db.courses.insert_one(course)
        course.pop("_id", None)
        return AttrDict(course)

    return _make_course


@pytest_asyncio.fixture
async def student(make_user):
    return await make_user(name="John Doe", email="john.doe@example.com")


@pytest_asyncio.fixture
async def other_student(make_user):
    return await make_user(name="Alice Smith", email="alice.smith@example.com")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(name="Admin User", email="admin@learnifyhub.com", role="admin")


@pytest_asyncio.fixture
async def course(make_course):
    return await make_course()
