"""Task management tools backed by an injected, thread-safe TaskStore."""

from __future__ import annotations

import itertools
import logging
import threading
from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from advisor_engine.tools.registry import ToolDef

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    assignee: str
    status: TaskStatus = TaskStatus.PENDING


class TaskResult(BaseModel):
    """What the model gets back from every task tool."""
    task_id: int
    title: str
    status: str
    assignee: str
    message: str

    @classmethod
    def of(cls, task: Task, message: str) -> TaskResult:
        return cls(
            task_id=task.id,
            title=task.title,
            status=task.status.value,
            assignee=task.assignee,
            message=message,
        )

    @classmethod
    def not_found(cls, task_id: int) -> TaskResult:
        return cls(task_id=task_id, title="", status="ERROR", assignee="", message="Task not found")


class TaskStore:
    """Lock-protected task map with a single monotonically increasing id counter.

    Ids are never reused. Tasks are replaced whole, never patched in place.
    There is no delete.
    """

    def __init__(self, first_id: int = 1) -> None:
        self._tasks: dict[int, Task] = {}
        self._ids = itertools.count(first_id)
        self._lock = threading.Lock()

    def create(self, title: str, description: str, assignee: str) -> Task:
        with self._lock:
            task = Task(id=next(self._ids), title=title, description=description, assignee=assignee)
            self._tasks[task.id] = task
        logger.info("task=%d created for %s", task.id, assignee)
        return task

    def get(self, task_id: int) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def all(self) -> list[Task]:
        with self._lock:
            return sorted(self._tasks.values(), key=lambda t: t.id)

    def replace(self, task_id: int, change: Callable[[Task], Task]) -> Task | None:
        """Atomic read-modify-replace of one task; ``None`` if unknown."""
        with self._lock:
            existing = self._tasks.get(task_id)
            if existing is None:
                return None
            updated = change(existing)
            self._tasks[task_id] = updated
            return updated

    def update_status(self, task_id: int, status: TaskStatus) -> Task | None:
        return self.replace(task_id, lambda t: t.model_copy(update={"status": status}))

    def assign(self, task_id: int, assignee: str) -> Task | None:
        return self.replace(task_id, lambda t: t.model_copy(update={"assignee": assignee}))


# ---------------------------------------------------------------------------
# Tool inputs
# ---------------------------------------------------------------------------

class CreateTaskInput(BaseModel):
    title: str
    description: str = ""
    assignee: str


class UpdateStatusInput(BaseModel):
    task_id: int = Field(description="ID of the task to update")
    status: TaskStatus


class AssignTaskInput(BaseModel):
    task_id: int
    new_assignee: str


def make_task_tools(store: TaskStore) -> list[ToolDef]:
    """Factory — binds a *TaskStore* into the three task tool handlers."""

    def create_task(inp: CreateTaskInput) -> TaskResult:
        task = store.create(inp.title, inp.description, inp.assignee)
        return TaskResult.of(task, f"Task created successfully and assigned to {task.assignee}")

    def update_status(inp: UpdateStatusInput) -> TaskResult:
        task = store.update_status(inp.task_id, inp.status)
        if task is None:
            return TaskResult.not_found(inp.task_id)
        return TaskResult.of(task, f"Task status updated to {task.status.value}")

    def assign_task(inp: AssignTaskInput) -> TaskResult:
        task = store.assign(inp.task_id, inp.new_assignee)
        if task is None:
            return TaskResult.not_found(inp.task_id)
        return TaskResult.of(task, f"Task reassigned to {task.assignee}")

    return [
        ToolDef(
            name="create_task",
            description="Create a new task with title, description, and assignee",
            input_model=CreateTaskInput,
            output_model=TaskResult,
            handler=create_task,
        ),
        ToolDef(
            name="update_status",
            description="Update task status by task ID",
            input_model=UpdateStatusInput,
            output_model=TaskResult,
            handler=update_status,
        ),
        ToolDef(
            name="assign_task",
            description="Assign or reassign a task to a different person",
            input_model=AssignTaskInput,
            output_model=TaskResult,
            handler=assign_task,
        ),
    ]
