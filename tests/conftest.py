import os

os.environ["DEBUG"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_PASSWORD"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from choirhub.api.deps import create_access_token
from choirhub.db import init_models
from choirhub.main import app
from choirhub.models.activity import Event, PracticeSchedule
from choirhub.models.member import Member
from choirhub.rbac import Caller, MemberRole


@pytest.fixture(autouse=True)
async def db():
    client = AsyncMongoMockClient()
    database = client["choirhub_test"]
    await init_models(database)
    yield database


async def make_member(first_name, last_name, role=MemberRole.MEMBER, student_id=None, **kwargs):
    member = Member(
        email=f"{first_name.lower()}.{last_name.lower()}@choir-uni.edu",
        first_name=first_name,
        last_name=last_name,
        student_id=student_id or f"S-{first_name.upper()}",
        role=role,
        **kwargs,
    )
    await member.insert()
    return member


async def make_event(title="Carol Service", date="2024-12-15"):
    event = Event(title=title, date=date, location="Great Hall")
    await event.insert()
    return event


async def make_schedule(title="Tuesday Practice", date="2024-12-10"):
    schedule = PracticeSchedule(title=title, date=date, start_time="18:00", end_time="20:00")
    await schedule.insert()
    return schedule


def caller_for(member):
    return Caller(id=str(member.id), role=member.role)


def auth_headers(member):
    return {"Authorization": f"Bearer {create_access_token(str(member.id), member.role.value)}"}


@pytest.fixture
async def admin():
    return await make_member("Ada", "Admin", role=MemberRole.ADMIN, student_id="A-001")


@pytest.fixture
async def moderator():
    return await make_member("Mona", "Moderator", role=MemberRole.MODERATOR, student_id="M-001")


@pytest.fixture
async def alto():
    return await make_member("Alice", "Alto", student_id="S-100")


@pytest.fixture
async def tenor():
    return await make_member("Tom", "Tenor", student_id="S-200")


@pytest.fixture
async def event():
    return await make_event()


@pytest.fixture
async def schedule():
    return await make_schedule()


@pytest.fixture
async def api_client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
