"""MongoDB connection and Beanie document registration."""
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from choirhub.config import settings
from choirhub.models import AttendanceRecord, Event, Member, PracticeSchedule

DOCUMENT_MODELS = [
    Member,
    Event,
    PracticeSchedule,
    AttendanceRecord,
]

_client = None


async def init_models(database) -> None:
    """Register document models (and create their indexes) on a database handle."""
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)


async def db_startup():
    """Connect to MongoDB and initialize Beanie ODM."""
    global _client
    _client = AsyncIOMotorClient(settings.mongodb_url, serverSelectionTimeoutMS=5000)
    await init_models(_client[settings.mongodb_db_name])


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None
