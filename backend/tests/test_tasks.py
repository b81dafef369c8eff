"""
To-do task tests.
"""

from datetime import date

import pytest

from margarita.services import task_service
from margarita.validation import NotFoundError, ValidationError


class TestTasks:

    def test_complete_and_reopen(self, db_session):
        task = task_service.create_task({"description": "Restock clasps", "date": "2026-03-10"})
        assert task.status == "PENDING"

        done = task_service.complete_task(task.id)
        assert done.status == "COMPLETED"
        assert done.date_completed is not None

        reopened = task_service.reopen_task(task.id)
        assert reopened.status == "PENDING"
        assert reopened.date_completed is None

    def test_description_required(self, db_session):
        with pytest.raises(ValidationError):
            task_service.create_task({"date": "2026-03-10"})

    def test_status_cannot_be_written(self, db_session):
        with pytest.raises(ValidationError):
            task_service.create_task({"description": "x", "date": "2026-03-10", "status": "COMPLETED"})

    def test_buckets(self, db_session):
        """
        SCENARIO: Wednesday 2026-03-11 with tasks before, on and after it
        EXPECTED: overdue / today / rest of week; next week and completed tasks left out
        """
        task_service.create_task({"description": "late", "date": "2026-03-02"})
        task_service.create_task({"description": "now", "date": "2026-03-11"})
        task_service.create_task({"description": "sunday", "date": "2026-03-15"})
        task_service.create_task({"description": "next week", "date": "2026-03-16"})
        done = task_service.create_task({"description": "done", "date": "2026-03-11"})
        task_service.complete_task(done.id)

        buckets = task_service.task_buckets(date(2026, 3, 11))

        assert [t["description"] for t in buckets["overdue"]] == ["late"]
        assert [t["description"] for t in buckets["today"]] == ["now"]
        assert [t["description"] for t in buckets["this_week"]] == ["sunday"]

    def test_list_by_status(self, db_session):
        task = task_service.create_task({"description": "a", "date": "2026-03-10"})
        task_service.create_task({"description": "b", "date": "2026-03-11"})
        task_service.complete_task(task.id)

        assert [t.description for t in task_service.list_tasks("completed")] == ["a"]
        with pytest.raises(ValidationError):
            task_service.list_tasks("ARCHIVED")

    def test_delete(self, db_session):
        task = task_service.create_task({"description": "a", "date": "2026-03-10"})
        task_service.delete_task(task.id)
        with pytest.raises(NotFoundError):
            task_service.get_task(task.id)
