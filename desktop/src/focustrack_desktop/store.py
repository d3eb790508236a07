"""Firestore access to tasks, projects, sessions and user settings."""

from datetime import datetime

from google.cloud.firestore import Client  # type: ignore[import-untyped]

from focustrack_shared import Project, Session, Task, TaskStatus, TimerMode
from focustrack_shared.records import model_to_record, record_to_dict


class FirestoreStore:
    """Handles all Firestore operations for the desktop client."""

    def __init__(self, db: Client):
        self._db = db

    def find_tasks(self, user_id: str, include_done: bool = False) -> list[Task]:
        """Get the user's tasks, highest priority first."""
        query = self._db.collection("tasks").where("userId", "==", user_id)
        tasks = [
            Task.model_validate(record_to_dict(doc.to_dict(), doc.id))
            for doc in query.stream()
        ]
        if not include_done:
            tasks = [task for task in tasks if task.status != TaskStatus.DONE]
        return sorted(tasks, key=lambda task: task.priority, reverse=True)

    def find_projects(self, user_id: str) -> list[Project]:
        query = self._db.collection("projects").where("userId", "==", user_id)
        return [
            Project.model_validate(record_to_dict(doc.to_dict(), doc.id))
            for doc in query.stream()
        ]

    def get_task(self, task_id: str) -> Task | None:
        doc = self._db.collection("tasks").document(task_id).get()
        if not doc.exists:
            return None
        return Task.model_validate(record_to_dict(doc.to_dict(), doc.id))

    def create_session(self, session: Session) -> str:
        """Append a completed session record.

        Returns the session ID.
        """
        doc_ref = self._db.collection("sessions").add(model_to_record(session))
        return doc_ref[1].id

    def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        doc_ref = self._db.collection("tasks").document(task_id)
        doc_ref.update({"status": status.value})

    def count_completed_focus_sessions(self, task_id: str) -> int:
        query = (
            self._db.collection("sessions")
            .where("taskId", "==", task_id)
            .where("mode", "==", TimerMode.FOCUS.value)
        )
        return sum(1 for _ in query.stream())

    def count_focus_sessions_since(self, user_id: str, since: datetime) -> int:
        query = (
            self._db.collection("sessions")
            .where("userId", "==", user_id)
            .where("mode", "==", TimerMode.FOCUS.value)
            .where("startTime", ">=", since)
        )
        return sum(1 for _ in query.stream())

    def list_blocked_app_names(self, user_id: str) -> list[str]:
        """Get the executable names to close during focus sessions."""
        doc = self._db.collection("configs").document(user_id).get()
        if not doc.exists:
            return []
        data = doc.to_dict() or {}
        return list(data.get("blockList", {}).get("apps", []))
