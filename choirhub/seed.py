"""Seed the bootstrap admin member if not present."""
import logging

from choirhub.api.deps import get_password_hash
from choirhub.config import settings
from choirhub.models.member import Member
from choirhub.rbac import MemberRole

logger = logging.getLogger(__name__)


async def seed_admin():
    if not settings.admin_password:
        logger.info("ADMIN_PASSWORD not set; skipping admin seed.")
        return
    email = settings.admin_email.lower()
    existing = await Member.find_one(Member.email == email)
    if existing:
        return
    await Member(
        email=email,
        hashed_password=get_password_hash(settings.admin_password),
        first_name=settings.admin_first_name,
        last_name=settings.admin_last_name,
        student_id="ADMIN",
        role=MemberRole.ADMIN,
    ).insert()
    logger.info("Seeded admin member %s", email)
