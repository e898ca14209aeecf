"""Unit tests for user_service module."""

import pytest

from crewtasks.core.config import constants
from crewtasks.domain.create_models import EmployeeCreate
from crewtasks.domain.user import UserRole
from crewtasks.services import user_service


@pytest.mark.unit
class TestVerifyPin:
    """Tests for verify_pin function."""

    async def test_matching_pin_returns_user(self, seeded_repo):
        """A known PIN logs the user in."""
        user = await user_service.verify_pin(repo=seeded_repo, pin="2222")

        assert user is not None
        assert user.id == "u3"

    async def test_admin_pin(self, seeded_repo):
        """The administrator logs in with the configured PIN."""
        user = await user_service.verify_pin(repo=seeded_repo, pin="9999")
        assert user.role == UserRole.ADMIN

    async def test_unknown_pin_returns_none(self, seeded_repo):
        """An unknown PIN fails."""
        assert await user_service.verify_pin(repo=seeded_repo, pin="0000") is None

    @pytest.mark.parametrize("pin", ["", "   "])
    async def test_blank_pin_returns_none(self, seeded_repo, pin):
        """Blank input never matches."""
        assert await user_service.verify_pin(repo=seeded_repo, pin=pin) is None

    async def test_shared_pin_first_user_wins(self, in_memory_repo, make_user):
        """When two users share a PIN the first in store order is returned."""
        await in_memory_repo.upsert_user(make_user(id="a", name="First", pin="1234"))
        await in_memory_repo.upsert_user(make_user(id="b", name="Second", pin="1234"))

        user = await user_service.verify_pin(repo=in_memory_repo, pin="1234")

        assert user.id == "a"

    async def test_pin_compared_literally(self, in_memory_repo, make_user):
        """Leading zeros matter."""
        await in_memory_repo.upsert_user(make_user(pin="0123"))
        assert await user_service.verify_pin(repo=in_memory_repo, pin="123") is None


@pytest.mark.unit
class TestCreateEmployee:
    """Tests for create_employee function."""

    async def test_creates_employee_with_defaults(self, in_memory_repo):
        """Missing avatar and position get defaults."""
        user = await user_service.create_employee(
            repo=in_memory_repo, form=EmployeeCreate(name="  Ana Ruiz ", pin="4321")
        )

        assert user.name == "Ana Ruiz"
        assert user.role == UserRole.EMPLOYEE
        assert user.position == constants.DEFAULT_POSITION
        assert user.avatar_url == "https://ui-avatars.com/api/?name=Ana%20Ruiz&background=random"
        assert len(user.id) == constants.RECORD_ID_LENGTH
        assert user.id in in_memory_repo.users

    async def test_keeps_given_avatar_and_position(self, in_memory_repo):
        """Supplied avatar and position are stored as given."""
        user = await user_service.create_employee(
            repo=in_memory_repo,
            form=EmployeeCreate(name="Ana", pin="4321", avatar_url="https://img/a.png", position="Cashier"),
        )

        assert user.avatar_url == "https://img/a.png"
        assert user.position == "Cashier"

    @pytest.mark.parametrize(("name", "pin"), [("", "1"), ("Ana", " "), ("  ", "")])
    async def test_blank_name_or_pin_rejected(self, in_memory_repo, name, pin):
        """Name and PIN are required."""
        with pytest.raises(ValueError, match="required"):
            await user_service.create_employee(repo=in_memory_repo, form=EmployeeCreate(name=name, pin=pin))

        assert in_memory_repo.users == {}

    def test_record_ids_are_short_and_distinct(self):
        """Generated IDs use lowercase letters and digits."""
        ids = {user_service.new_record_id() for _ in range(50)}

        assert len(ids) == 50
        assert all(record_id.isalnum() and record_id == record_id.lower() for record_id in ids)


@pytest.mark.unit
class TestManageUsers:
    """Tests for listing, updating and deleting users."""

    async def test_list_employees_excludes_admins(self, seeded_repo):
        """Only non-admin users are listed, in store order."""
        employees = await user_service.list_employees(repo=seeded_repo)
        assert [user.id for user in employees] == ["u2", "u3"]

    async def test_get_user_missing_raises(self, in_memory_repo):
        """Unknown user IDs raise KeyError."""
        with pytest.raises(KeyError):
            await user_service.get_user(repo=in_memory_repo, user_id="ghost")

    async def test_update_user_replaces_record(self, seeded_repo):
        """The full record is replaced."""
        juan = await user_service.get_user(repo=seeded_repo, user_id="u2")

        await user_service.update_user(repo=seeded_repo, user=juan.model_copy(update={"position": "Lobby"}))

        assert (await user_service.get_user(repo=seeded_repo, user_id="u2")).position == "Lobby"

    async def test_update_unknown_user_raises(self, in_memory_repo, make_user):
        """Updating requires an existing user."""
        with pytest.raises(KeyError):
            await user_service.update_user(repo=in_memory_repo, user=make_user(id="ghost"))
        assert in_memory_repo.users == {}

    async def test_delete_user_removes_their_tasks(self, seeded_repo):
        """Deleting a user deletes every task assigned to them, and nothing else."""
        assert await user_service.delete_user(repo=seeded_repo, user_id="u2") is True

        assert "u2" not in seeded_repo.users
        assert sorted(seeded_repo.tasks) == ["t3"]

    async def test_delete_unknown_user(self, seeded_repo):
        """Deleting an unknown user reports False and keeps all tasks."""
        assert await user_service.delete_user(repo=seeded_repo, user_id="ghost") is False
        assert len(seeded_repo.tasks) == 3

    def test_public_view_hides_pin(self, make_user):
        """Client-facing records omit the PIN."""
        record = make_user().public_view()

        assert "pin" not in record
        assert record["name"] == "Juan"
