"""JWT-based stateless authentication."""
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from choirhub.api.deps import (
    CurrentMember,
    create_access_token,
    create_refresh_token,
    decode_token,
    load_active_member,
    verify_password,
)
from choirhub.models.member import Member, MemberOut

router = APIRouter()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


def _issue_tokens(member: Member) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(str(member.id), member.role.value),
        refresh_token=create_refresh_token(str(member.id)),
    )


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest):
    member = await Member.find_one(Member.email == req.email.strip().lower())
    if not member or not member.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(req.password, member.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _issue_tokens(member)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(req: RefreshRequest):
    member = await load_active_member(decode_token(req.refresh_token, "refresh"))
    return _issue_tokens(member)


@router.get("/me")
async def me(member: CurrentMember):
    return {"success": True, "data": MemberOut.from_document(member).to_wire()}
