import pytest

from choirhub.errors import AuthorizationError
from choirhub.rbac import ADMIN_ROLES, PRIVILEGED_ROLES, Caller, MemberRole, authorize, authorize_member_access


@pytest.mark.parametrize("role", [MemberRole.MODERATOR, MemberRole.ADMIN])
def test_privileged_roles_pass(role):
    authorize(Caller(id="x", role=role), PRIVILEGED_ROLES)


def test_member_is_not_privileged():
    with pytest.raises(AuthorizationError):
        authorize(Caller(id="x", role=MemberRole.MEMBER), PRIVILEGED_ROLES)


def test_moderator_is_not_admin():
    with pytest.raises(AuthorizationError):
        authorize(Caller(id="x", role=MemberRole.MODERATOR), ADMIN_ROLES)


def test_member_access_self_only():
    caller = Caller(id="me", role=MemberRole.MEMBER)
    authorize_member_access(caller, "me")
    with pytest.raises(AuthorizationError):
        authorize_member_access(caller, "someone-else")


def test_moderator_reads_anyone():
    authorize_member_access(Caller(id="mod", role=MemberRole.MODERATOR), "someone-else")
