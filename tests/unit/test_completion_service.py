"""Unit tests for completion_service module."""

import pytest

from crewtasks.core.errors import StoreUnavailableError
from crewtasks.domain.task import TaskFrequency
from crewtasks.services.completion_service import toggle_completion
from crewtasks.services.task_schedule import is_completed


@pytest.mark.unit
class TestToggleCompletion:
    """Tests for toggle_completion function."""

    async def test_marks_pending_task_done_today(self, in_memory_repo, make_task):
        """An uncompleted task gets today's date."""
        await in_memory_repo.upsert_task(make_task())

        result = await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        assert result is not None
        assert result.last_completed_date == "2024-01-03"
        stored = await in_memory_repo.read_task("t1")
        assert stored.last_completed_date == "2024-01-03"

    async def test_second_toggle_same_day_clears_marker(self, in_memory_repo, make_task):
        """Toggling twice on one day returns the task to pending."""
        await in_memory_repo.upsert_task(make_task())

        await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")
        result = await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        assert result.last_completed_date is None
        assert not is_completed(await in_memory_repo.read_task("t1"), "2024-01-03")

    async def test_older_completion_is_overwritten(self, in_memory_repo, make_task):
        """A marker from another day is replaced rather than cleared."""
        await in_memory_repo.upsert_task(make_task(last_completed_date="2024-01-02"))

        result = await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        assert result.last_completed_date == "2024-01-03"

    async def test_weekly_task_toggled_on_another_day_of_same_week(self, in_memory_repo, make_task):
        """A WEEKLY task done on Monday is re-marked, not cleared, on Wednesday."""
        await in_memory_repo.upsert_task(make_task(frequency=TaskFrequency.WEEKLY, last_completed_date="2024-01-01"))

        result = await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        assert result.last_completed_date == "2024-01-03"
        assert is_completed(result, "2024-01-07")

    async def test_other_fields_unchanged(self, in_memory_repo, make_task):
        """Only the completion marker changes."""
        original = make_task(description="Sweep", scheduled_date=None)
        await in_memory_repo.upsert_task(original)

        await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        stored = await in_memory_repo.read_task("t1")
        assert stored.model_dump(exclude={"last_completed_date"}) == original.model_dump(
            exclude={"last_completed_date"}
        )

    async def test_missing_task_returns_none(self, in_memory_repo):
        """Toggling an unknown task is a no-op."""
        result = await toggle_completion(repo=in_memory_repo, task_id="missing", today="2024-01-03")

        assert result is None
        assert in_memory_repo.tasks == {}

    async def test_store_failure_propagates_without_change(self, in_memory_repo, make_task):
        """A failed write raises and leaves the stored task untouched."""
        await in_memory_repo.upsert_task(make_task())
        in_memory_repo.fail_writes = True

        with pytest.raises(StoreUnavailableError):
            await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        assert in_memory_repo.tasks["t1"]["lastCompletedDate"] is None

    async def test_concurrent_toggle_first_writer_wins(self, in_memory_repo, make_task):
        """If another client marks the task first, the stale toggle writes nothing."""
        await in_memory_repo.upsert_task(make_task())

        async def other_client_completes() -> None:
            await in_memory_repo.write_task_field("t1", {"lastCompletedDate": "2024-01-03"})

        in_memory_repo.before_cas = other_client_completes

        result = await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        assert result.last_completed_date == "2024-01-03"
        assert in_memory_repo.tasks["t1"]["lastCompletedDate"] == "2024-01-03"

    async def test_toggle_notifies_task_subscribers(self, in_memory_repo, make_task, recorder):
        """Subscribers see the new marker before the toggle returns."""
        await in_memory_repo.upsert_task(make_task())
        await in_memory_repo.subscribe_to_tasks(recorder)

        await toggle_completion(repo=in_memory_repo, task_id="t1", today="2024-01-03")

        assert len(recorder.snapshots) == 2
        assert recorder.latest[0].last_completed_date == "2024-01-03"

    async def test_defaults_to_device_date(self, in_memory_repo, make_task, monkeypatch):
        """Without an explicit date the local calendar date is used."""
        monkeypatch.setattr("crewtasks.services.completion_service.today_iso", lambda: "2026-10-19")
        await in_memory_repo.upsert_task(make_task())

        result = await toggle_completion(repo=in_memory_repo, task_id="t1")

        assert result.last_completed_date == "2026-10-19"
