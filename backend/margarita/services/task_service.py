# Overview: Service-layer operations for to-do tasks; CRUD, completion and dashboard buckets.

from __future__ import annotations

import logging
from datetime import date

from ..extensions import db
from ..models import ToDoTask
from ..validation import ModelValidationPolicy, NotFoundError, ValidationError, validate_payload
from margarita.time_utils import to_iso_date, today, week_bounds

logger = logging.getLogger(__name__)

PENDING = "PENDING"
COMPLETED = "COMPLETED"

TASK_POLICY = ModelValidationPolicy(
    writable_fields={"description", "date"},
    required_on_create={"description", "date"},
)


def get_task(task_id: int) -> ToDoTask:
    task = db.session.get(ToDoTask, task_id)
    if not task:
        raise NotFoundError("Task", task_id)
    return task


def list_tasks(status: str | None = None, start: date | None = None, end: date | None = None) -> list[ToDoTask]:
    query = db.session.query(ToDoTask)
    if status:
        status = status.upper()
        if status not in (PENDING, COMPLETED):
            raise ValidationError("status must be PENDING or COMPLETED")
        query = query.filter(ToDoTask.status == status)
    if start:
        query = query.filter(ToDoTask.date >= start)
    if end:
        query = query.filter(ToDoTask.date <= end)
    return query.order_by(ToDoTask.date.asc(), ToDoTask.id.asc()).all()


def create_task(payload: dict) -> ToDoTask:
    patch = validate_payload(model=ToDoTask, payload=payload, policy=TASK_POLICY, partial=False)
    task = ToDoTask(status=PENDING, **patch)
    db.session.add(task)
    db.session.commit()
    logger.info("Task created with id: %s due=%s", task.id, task.date)
    return task


def update_task(task_id: int, payload: dict) -> ToDoTask:
    task = get_task(task_id)
    patch = validate_payload(model=ToDoTask, payload=payload, policy=TASK_POLICY, partial=True)
    for k, v in patch.items():
        setattr(task, k, v)
    db.session.commit()
    return task


def complete_task(task_id: int) -> ToDoTask:
    task = get_task(task_id)
    task.status = COMPLETED
    task.date_completed = today()
    db.session.commit()
    logger.info("Task %s completed", task.id)
    return task


def reopen_task(task_id: int) -> ToDoTask:
    task = get_task(task_id)
    task.status = PENDING
    task.date_completed = None
    db.session.commit()
    return task


def delete_task(task_id: int) -> None:
    task = get_task(task_id)
    db.session.delete(task)
    db.session.commit()
    logger.info("Task %s deleted", task_id)


def task_buckets(on: date | None = None) -> dict:
    """
    Pending tasks split into overdue (before today), today, and the rest of
    the current Monday-Sunday week.
    """
    current = on or today()
    _, week_end = week_bounds(current)
    pending = (
        db.session.query(ToDoTask)
        .filter(ToDoTask.status == PENDING, ToDoTask.date <= week_end)
        .order_by(ToDoTask.date.asc(), ToDoTask.id.asc())
        .all()
    )
    return {
        "date": to_iso_date(current),
        "overdue": [t.to_dict() for t in pending if t.date < current],
        "today": [t.to_dict() for t in pending if t.date == current],
        "this_week": [t.to_dict() for t in pending if t.date > current],
    }
