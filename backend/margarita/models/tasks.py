from __future__ import annotations

from ..extensions import db
from margarita.time_utils import to_utc_z, to_iso_date

TASK_STATUSES = ("PENDING", "COMPLETED")


class ToDoTask(db.Model):
    """Dated to-do item shown on the dashboard."""
    __tablename__ = "todo_tasks"
    __table_args__ = (
        db.Index("ix_todo_tasks_status_date", "status", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(500), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    date_completed = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "date": to_iso_date(self.date),
            "status": self.status,
            "date_completed": to_iso_date(self.date_completed),
            "created_at": to_utc_z(self.created_at),
        }
