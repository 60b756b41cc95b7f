"""
User service tests: creation, authorization and status transitions
"""

import pytest

from shared.schemas.user import UserCreateSchema, UserRole, UserStatus
from shared.services import (
    EmailAlreadyExistsError,
    InvalidEmailError,
    InvalidStatusTransitionError,
    UnauthorizedActionError,
    UserNotFoundError,
    UserService,
)
from shared.utils.security import verify_password

PASSWORD = "Passw0rdOK"


async def make_user(service, email, role=None, status=None):
    return await service.create_user(
        UserCreateSchema(email=email, password=PASSWORD, first_name="Test", role=role, status=status)
    )


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_applies_defaults_and_hashes_password(self, user_service, data_source):
        user = await make_user(user_service, "ada@example.com")

        assert user.role == UserRole.USER
        assert user.status == UserStatus.PENDING_VERIFICATION
        assert user.email_verified is False
        assert not hasattr(user, "password_hash")

        record = await data_source.get_user_by_id(user.id)
        assert record.password_hash != PASSWORD
        assert verify_password(PASSWORD, record.password_hash)

    @pytest.mark.asyncio
    async def test_custom_defaults(self, data_source, quiet_logger):
        service = UserService(
            data_source,
            logger=quiet_logger,
            default_role=UserRole.MANAGER,
            default_status=UserStatus.ACTIVE
        )
        user = await make_user(service, "mgr@example.com")

        assert user.role == UserRole.MANAGER
        assert user.status == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_rejects_malformed_email(self, user_service):
        with pytest.raises(InvalidEmailError):
            await make_user(user_service, "not-an-email")

    @pytest.mark.asyncio
    async def test_rejects_duplicate_email(self, user_service):
        await make_user(user_service, "dup@example.com")
        with pytest.raises(EmailAlreadyExistsError):
            await make_user(user_service, "dup@example.com")

    @pytest.mark.asyncio
    async def test_duplicate_check_is_case_sensitive(self, user_service):
        await make_user(user_service, "case@example.com")
        user = await make_user(user_service, "Case@example.com")
        assert user.email == "Case@example.com"


class TestUpdateUser:
    @pytest.mark.asyncio
    async def test_missing_user(self, user_service):
        with pytest.raises(UserNotFoundError):
            await user_service.update_user("nope", {"first_name": "X"}, "nope", UserRole.SUPER_ADMIN)

    @pytest.mark.asyncio
    async def test_self_update(self, user_service):
        user = await make_user(user_service, "self@example.com")
        updated = await user_service.update_user(user.id, {"first_name": "New"}, user.id, UserRole.USER)
        assert updated.first_name == "New"

    @pytest.mark.asyncio
    async def test_other_user_cannot_modify(self, user_service):
        target = await make_user(user_service, "target@example.com")
        other = await make_user(user_service, "other@example.com")

        with pytest.raises(UnauthorizedActionError):
            await user_service.update_user(target.id, {"first_name": "X"}, other.id, UserRole.USER)

    @pytest.mark.asyncio
    async def test_manager_modifies_only_plain_users(self, user_service):
        manager = await make_user(user_service, "m1@example.com", role=UserRole.MANAGER)
        peer = await make_user(user_service, "m2@example.com", role=UserRole.MANAGER)
        plain = await make_user(user_service, "u1@example.com")

        updated = await user_service.update_user(plain.id, {"department": "Ops"}, manager.id, UserRole.MANAGER)
        assert updated.department == "Ops"

        with pytest.raises(UnauthorizedActionError):
            await user_service.update_user(peer.id, {"department": "Ops"}, manager.id, UserRole.MANAGER)

    @pytest.mark.asyncio
    async def test_only_super_admin_changes_roles(self, user_service):
        admin = await make_user(user_service, "root@example.com", role=UserRole.SUPER_ADMIN)
        manager = await make_user(user_service, "boss@example.com", role=UserRole.MANAGER)
        plain = await make_user(user_service, "worker@example.com")

        with pytest.raises(UnauthorizedActionError):
            await user_service.update_user(plain.id, {"role": UserRole.MANAGER}, manager.id, UserRole.MANAGER)
        with pytest.raises(UnauthorizedActionError):
            await user_service.update_user(plain.id, {"role": UserRole.SUPER_ADMIN}, plain.id, UserRole.USER)

        promoted = await user_service.update_user(plain.id, {"role": "MANAGER"}, admin.id, UserRole.SUPER_ADMIN)
        assert promoted.role == UserRole.MANAGER

    @pytest.mark.asyncio
    async def test_users_cannot_change_own_status(self, user_service):
        user = await make_user(user_service, "me@example.com")
        with pytest.raises(UnauthorizedActionError):
            await user_service.update_user(user.id, {"status": UserStatus.ACTIVE}, user.id, UserRole.USER)

    @pytest.mark.asyncio
    async def test_status_transitions(self, user_service):
        admin = await make_user(user_service, "admin@example.com", role=UserRole.SUPER_ADMIN)
        user = await make_user(user_service, "flow@example.com")

        with pytest.raises(InvalidStatusTransitionError):
            await user_service.update_user(user.id, {"status": UserStatus.SUSPENDED}, admin.id, UserRole.SUPER_ADMIN)

        for status in (UserStatus.ACTIVE, UserStatus.SUSPENDED, UserStatus.ACTIVE, UserStatus.INACTIVE):
            user = await user_service.update_user(user.id, {"status": status}, admin.id, UserRole.SUPER_ADMIN)
            assert user.status == status

        with pytest.raises(InvalidStatusTransitionError):
            await user_service.update_user(user.id, {"status": UserStatus.PENDING_VERIFICATION}, admin.id, UserRole.SUPER_ADMIN)

    @pytest.mark.asyncio
    async def test_same_status_is_accepted(self, user_service):
        user = await make_user(user_service, "same@example.com")
        updated = await user_service.update_user(
            user.id, {"status": UserStatus.PENDING_VERIFICATION, "first_name": "Same"}, user.id, UserRole.USER
        )
        assert updated.first_name == "Same"

    @pytest.mark.asyncio
    async def test_email_change_is_validated(self, user_service):
        user = await make_user(user_service, "first@example.com")
        await make_user(user_service, "taken@example.com")

        with pytest.raises(InvalidEmailError):
            await user_service.update_user(user.id, {"email": "bad email"}, user.id, UserRole.USER)
        with pytest.raises(EmailAlreadyExistsError):
            await user_service.update_user(user.id, {"email": "taken@example.com"}, user.id, UserRole.USER)

        unchanged = await user_service.update_user(user.id, {"email": "first@example.com"}, user.id, UserRole.USER)
        assert unchanged.email == "first@example.com"


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_super_admin_deletes_others(self, user_service):
        admin = await make_user(user_service, "sa@example.com", role=UserRole.SUPER_ADMIN)
        user = await make_user(user_service, "gone@example.com")

        await user_service.delete_user(user.id, admin.id, UserRole.SUPER_ADMIN)

        assert await user_service.get_user_by_id(user.id) is None

    @pytest.mark.asyncio
    async def test_nobody_deletes_themselves(self, user_service):
        admin = await make_user(user_service, "solo@example.com", role=UserRole.SUPER_ADMIN)
        with pytest.raises(UnauthorizedActionError):
            await user_service.delete_user(admin.id, admin.id, UserRole.SUPER_ADMIN)

    @pytest.mark.asyncio
    async def test_managers_cannot_delete(self, user_service):
        manager = await make_user(user_service, "mgr2@example.com", role=UserRole.MANAGER)
        user = await make_user(user_service, "keep@example.com")
        with pytest.raises(UnauthorizedActionError):
            await user_service.delete_user(user.id, manager.id, UserRole.MANAGER)

    @pytest.mark.asyncio
    async def test_missing_user(self, user_service):
        with pytest.raises(UserNotFoundError):
            await user_service.delete_user("missing", "someone", UserRole.SUPER_ADMIN)


class TestQueries:
    @pytest.mark.asyncio
    async def test_users_by_role_requires_staff(self, user_service):
        await make_user(user_service, "a@example.com")
        await make_user(user_service, "b@example.com")
        await make_user(user_service, "c@example.com", role=UserRole.MANAGER)

        users = await user_service.get_users_by_role(UserRole.USER, UserRole.MANAGER)
        assert {user.email for user in users} == {"a@example.com", "b@example.com"}

        with pytest.raises(UnauthorizedActionError):
            await user_service.get_users_by_role(UserRole.USER, UserRole.USER)
        with pytest.raises(UnauthorizedActionError):
            await user_service.get_users_by_role(UserRole.USER, None)

    @pytest.mark.asyncio
    async def test_mark_email_verified_activates(self, user_service):
        user = await make_user(user_service, "verify@example.com")

        verified = await user_service.mark_email_verified(user.id)

        assert verified.email_verified is True
        assert verified.status == UserStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_mark_email_verified_keeps_suspension(self, user_service):
        user = await make_user(user_service, "held@example.com", status=UserStatus.SUSPENDED)

        verified = await user_service.mark_email_verified(user.id)

        assert verified.email_verified is True
        assert verified.status == UserStatus.SUSPENDED


class TestAuthorizationRules:
    def test_check_status_transition_table(self):
        UserService.check_status_transition(UserStatus.ACTIVE, UserStatus.ACTIVE)
        UserService.check_status_transition(UserStatus.INACTIVE, UserStatus.ACTIVE)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            UserService.check_status_transition(UserStatus.INACTIVE, UserStatus.SUSPENDED)
        assert exc_info.value.message == "Cannot change status from INACTIVE to SUSPENDED"
