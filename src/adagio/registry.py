"""Session registry: the in-memory set of active sessions, keyed by id.

A single-session UI is a registry holding at most one session.
"""

from __future__ import annotations

from .errors import InvalidInputError, SessionNotFoundError
from .models import ActiveSession, IntervalKind, Task, new_id


class SessionRegistry:
    def __init__(self, sessions: list[ActiveSession] | None = None):
        self._sessions: dict[str, ActiveSession] = {}
        for session in sessions or []:
            self._sessions[session.id] = session

    # ---- Queries ----

    def get(self, session_id: str) -> ActiveSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def all(self) -> list[ActiveSession]:
        return list(self._sessions.values())

    def running(self) -> list[ActiveSession]:
        return [s for s in self._sessions.values() if s.is_running]

    @property
    def running_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_running)

    # ---- Lifecycle ----

    def add(self, project_label: str) -> ActiveSession:
        label = (project_label or "").strip()
        if not label:
            raise InvalidInputError("Project name cannot be empty")
        session_id = new_id()
        while session_id in self._sessions:
            session_id = new_id()
        session = ActiveSession(id=session_id, project_label=label)
        self._sessions[session.id] = session
        return session

    def remove(self, session_id: str) -> ActiveSession:
        session = self.get(session_id)
        del self._sessions[session_id]
        return session

    def replace_all(self, sessions: list[ActiveSession]) -> None:
        self._sessions = {s.id: s for s in sessions}

    def clear(self) -> None:
        self._sessions = {}

    def start(self, session_id: str, now_ms: int) -> ActiveSession:
        """Start or resume. Work anchors are recomputed as now - elapsed."""
        session = self.get(session_id)
        if session.is_running:
            return session
        if session.interval_kind is IntervalKind.WORK:
            session.work_interval_start_ms = now_ms - session.seconds * 1000
        session.is_running = True
        return session

    def pause(self, session_id: str) -> ActiveSession:
        session = self.get(session_id)
        session.is_running = False
        return session

    def edit_start_time(self, session_id: str, new_start_ms: int, now_ms: int) -> ActiveSession:
        session = self.get(session_id)
        if session.interval_kind is not IntervalKind.WORK:
            raise InvalidInputError("Start time can only be edited during a work interval")
        if new_start_ms > now_ms:
            raise InvalidInputError("Start time cannot be in the future")
        session.work_interval_start_ms = new_start_ms
        session.seconds = max(0, (now_ms - new_start_ms) // 1000)
        return session

    # ---- Tasks ----

    def add_task(self, session_id: str, text: str) -> Task:
        session = self.get(session_id)
        if not text or not text.strip():
            raise InvalidInputError("Task text cannot be empty")
        task = Task(id=new_id(), text=text.strip())
        session.tasks.insert(0, task)
        return task

    def toggle_task(self, session_id: str, task_id: str) -> Task:
        session = self.get(session_id)
        for task in session.tasks:
            if task.id == task_id:
                task.completed = not task.completed
                return task
        raise InvalidInputError(f"Task not found: {task_id}")

    def delete_task(self, session_id: str, task_id: str) -> None:
        session = self.get(session_id)
        remaining = [t for t in session.tasks if t.id != task_id]
        if len(remaining) == len(session.tasks):
            raise InvalidInputError(f"Task not found: {task_id}")
        session.tasks = remaining
