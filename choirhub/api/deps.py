"""Shared dependencies: JWT auth, caller resolution and query parsing."""
from datetime import date, datetime, timedelta
from typing import Annotated, Optional

import bcrypt
from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from choirhub.config import settings
from choirhub.errors import ValidationError
from choirhub.models.common import DateRange
from choirhub.models.member import Member
from choirhub.rbac import Caller, MemberRole, authorize

security = HTTPBearer(auto_error=False)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"sub": subject, "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(subject: str) -> str:
    expire = datetime.utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days)
    to_encode = {"sub": subject, "exp": expire, "type": "refresh"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: str) -> str:
    """Return the member id carried by a valid token of the expected type."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if payload.get("type") != expected_type:
        raise HTTPException(status_code=401, detail="Invalid token type")
    member_id = payload.get("sub")
    if not member_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return member_id


async def load_active_member(member_id: str) -> Member:
    try:
        member = await Member.get(PydanticObjectId(member_id))
    except (InvalidId, TypeError):
        member = None
    if not member or not member.is_active:
        raise HTTPException(status_code=401, detail="Member not found or inactive")
    return member


async def get_current_member(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Member:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await load_active_member(decode_token(credentials.credentials, "access"))


async def get_caller(member: Annotated[Member, Depends(get_current_member)]) -> Caller:
    # Role comes from the stored member so a demotion takes effect before the token expires.
    return Caller(id=str(member.id), role=member.role)


def require_roles(*allowed: MemberRole):
    async def checker(caller: Annotated[Caller, Depends(get_caller)]) -> Caller:
        authorize(caller, allowed)
        return caller

    return checker


def _parse_date(value: Optional[str], field: str) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} must be a valid date in YYYY-MM-DD format", field=field)


def date_range_params(
    start_date: Annotated[Optional[str], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[str], Query(alias="endDate")] = None,
) -> DateRange:
    start = _parse_date(start_date, "startDate")
    end = _parse_date(end_date, "endDate")
    try:
        return DateRange(start_date=start, end_date=end)
    except PydanticValidationError:
        raise ValidationError("startDate must not be after endDate", field="startDate")


# Type aliases for route injection
CurrentMember = Annotated[Member, Depends(get_current_member)]
CurrentCaller = Annotated[Caller, Depends(get_caller)]
PrivilegedCaller = Annotated[Caller, Depends(require_roles(MemberRole.MODERATOR, MemberRole.ADMIN))]
AdminCaller = Annotated[Caller, Depends(require_roles(MemberRole.ADMIN))]
DateRangeQuery = Annotated[DateRange, Depends(date_range_params)]
