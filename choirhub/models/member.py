"""Choir members: identity and role used for authorization."""
from datetime import datetime

from beanie import Document, Indexed
from pydantic import EmailStr, Field

from choirhub.models.common import CamelModel
from choirhub.rbac import MemberRole


class Member(Document):
    """Member document; the attendance subsystem only reads it."""

    email: Indexed(EmailStr, unique=True)
    hashed_password: str = ""
    first_name: str
    last_name: str
    student_id: Indexed(str)
    role: MemberRole = MemberRole.MEMBER
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    class Settings:
        name = "members"
        use_state_management = True


class MemberCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    student_id: str = Field(min_length=1)
    role: MemberRole = MemberRole.MEMBER


class MemberOut(CamelModel):
    id: str
    first_name: str
    last_name: str
    name: str
    email: str
    student_id: str
    role: MemberRole

    @classmethod
    def from_document(cls, member: Member) -> "MemberOut":
        return cls(
            id=str(member.id),
            first_name=member.first_name,
            last_name=member.last_name,
            name=member.full_name,
            email=member.email,
            student_id=member.student_id,
            role=member.role,
        )

