"""End-to-end workflow tests across services and a real local store."""

import pytest

from crewtasks.domain.create_models import EmployeeCreate, TaskDraft
from crewtasks.domain.task import TaskFrequency
from crewtasks.services import task_service, user_service
from crewtasks.services.board_service import NewAssignmentWatcher, build_day_board
from crewtasks.services.completion_service import toggle_completion
from tests.unit.mocks import ms_at


@pytest.mark.integration
class TestCrewWeek:
    """An admin plans a week and an employee works through it."""

    async def test_week_of_work(self, local_repo):
        """Daily, one-off and weekly tasks appear, complete and expire on the right days."""
        ana = await user_service.create_employee(repo=local_repo, form=EmployeeCreate(name="Ana", pin="5555"))
        monday = ms_at(2024, 1, 1, 8)

        mwf = await task_service.save_task(
            repo=local_repo,
            draft=TaskDraft(title="Mop floors", assigned_to_user_id=ana.id, repeat_days=[1, 3, 5]),
            view_date="2024-01-01",
            now_ms=monday,
        )
        one_off = await task_service.save_task(
            repo=local_repo,
            draft=TaskDraft(title="Fix hinge", assigned_to_user_id=ana.id),
            view_date="2024-01-03",
            now_ms=monday,
        )
        weekly = await task_service.save_task(
            repo=local_repo,
            draft=TaskDraft(title="Inventory", assigned_to_user_id=ana.id, frequency=TaskFrequency.WEEKLY),
            view_date="2024-01-01",
            now_ms=ms_at(2024, 1, 3, 10),
        )

        logged_in = await user_service.verify_pin(repo=local_repo, pin="5555")
        assert logged_in.id == ana.id

        def board(day: str):
            return build_day_board(tasks=tasks, user_id=ana.id, view_date=day)

        tasks = await local_repo.list_tasks()
        assert [entry.task.id for entry in board("2024-01-01").daily] == [mwf.id]
        assert [entry.task.id for entry in board("2024-01-01").weekly] == [weekly.id]
        assert board("2024-01-02").total == 1
        assert {entry.task.id for entry in board("2024-01-03").daily} == {mwf.id, one_off.id}

        await toggle_completion(repo=local_repo, task_id=mwf.id, today="2024-01-03")
        await toggle_completion(repo=local_repo, task_id=weekly.id, today="2024-01-03")
        tasks = await local_repo.list_tasks()

        wednesday = board("2024-01-03")
        assert wednesday.completed == 2
        assert wednesday.progress == 67
        assert [entry.task.id for entry in wednesday.daily] == [one_off.id, mwf.id]

        friday = board("2024-01-05")
        assert [entry.completed for entry in friday.daily] == [False]
        assert [entry.completed for entry in friday.weekly] == [True]

        next_monday = board("2024-01-08")
        assert next_monday.weekly == []
        assert [entry.task.id for entry in next_monday.daily] == [mwf.id]

    async def test_new_assignment_reaches_subscribed_employee(self, local_repo):
        """An employee watching tasks is told about a task assigned after login."""
        watcher = NewAssignmentWatcher(user_id="u2", started_at_ms=ms_at(2024, 1, 1, 8))
        notices: list[str] = []

        def on_tasks(snapshot):
            message = watcher.message(watcher.observe(snapshot, at_ms=ms_at(2024, 1, 1, 12)))
            if message:
                notices.append(message)

        unsubscribe = await local_repo.subscribe_to_tasks(on_tasks)
        await task_service.save_task(
            repo=local_repo,
            draft=TaskDraft(title="Clean windows", assigned_to_user_id="u2", repeat_days=[1]),
            view_date="2024-01-01",
            now_ms=ms_at(2024, 1, 1, 10),
        )
        await task_service.save_task(
            repo=local_repo,
            draft=TaskDraft(title="Someone else's", assigned_to_user_id="u3", repeat_days=[1]),
            view_date="2024-01-01",
            now_ms=ms_at(2024, 1, 1, 11),
        )
        unsubscribe()

        assert notices == ['New task assigned: "Clean windows"']

    async def test_removing_employee_clears_their_board(self, local_repo):
        """Deleting an employee leaves no tasks pointing at them."""
        ana = await user_service.create_employee(repo=local_repo, form=EmployeeCreate(name="Ana", pin="5555"))
        bob = await user_service.create_employee(repo=local_repo, form=EmployeeCreate(name="Bob", pin="6666"))
        for owner in (ana, ana, bob):
            await task_service.save_task(
                repo=local_repo,
                draft=TaskDraft(title="Sweep", assigned_to_user_id=owner.id, repeat_days=[0, 1, 2, 3, 4, 5, 6]),
                view_date="2024-01-01",
            )

        assert await user_service.delete_user(repo=local_repo, user_id=ana.id) is True

        remaining = await local_repo.list_tasks()
        assert {task.assigned_to_user_id for task in remaining} == {bob.id}
        assert await user_service.verify_pin(repo=local_repo, pin="5555") is None
