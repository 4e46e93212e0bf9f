"""Member directory: roster for attendance taking and admin member creation."""
from fastapi import APIRouter, HTTPException

from choirhub.api.deps import AdminCaller, CurrentCaller, PrivilegedCaller, get_password_hash
from choirhub.models.member import Member, MemberCreate, MemberOut
from choirhub.rbac import authorize_member_access
from choirhub.services.directory import get_all_members, get_member

router = APIRouter()


@router.get("/")
async def list_members(caller: PrivilegedCaller):
    members = await get_all_members()
    return {"success": True, "data": [MemberOut.from_document(m).to_wire() for m in members]}


@router.post("/", status_code=201)
async def create_member(data: MemberCreate, admin: AdminCaller):
    email = data.email.lower()
    existing = await Member.find_one(Member.email == email)
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    member = Member(
        email=email,
        hashed_password=get_password_hash(data.password),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        student_id=data.student_id.strip(),
        role=data.role,
    )
    await member.insert()
    return {"success": True, "data": MemberOut.from_document(member).to_wire()}


@router.get("/{member_id}")
async def get_member_profile(member_id: str, caller: CurrentCaller):
    authorize_member_access(caller, member_id)
    member = await get_member(member_id)
    return {"success": True, "data": MemberOut.from_document(member).to_wire()}
