"""Task models for human/agent coordination."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TaskStatus(StrEnum):
    """Closed set of status values shared by agent tasks and todo items."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class WireModel(BaseModel):
    """Base model: snake_case in Python and storage, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def to_row(self) -> dict:
        return self.model_dump(mode="json")


class PromptNotes(WireModel):
    """Human guidance attached after creation."""

    human_prompt_notes: str = ""
    human_prompt_notes_added_at: datetime | None = None
    human_prompt_notes_updated_at: datetime | None = None


class HumanTask(WireModel):
    """A unit of work described by a person."""

    id: str
    prompt: str
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime
    updated_at: datetime


class TodoInput(WireModel):
    """One todo as submitted by the caller."""

    description: str
    file_path: str | None = None
    function_name: str | None = None
    context_hint: str | None = None


class TodoItem(PromptNotes):
    """One checkable step inside an agent task."""

    id: str
    agent_task_id: str
    order_index: int
    description: str
    file_path: str | None = None
    function_name: str | None = None
    context_hint: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AgentTask(PromptNotes):
    """One agent's assignment under a human task."""

    id: str
    human_task_id: str
    agent_role: str
    agent_name: str | None = None
    context_summary: str = ""
    files_modified: list[str] = Field(default_factory=list)
    prior_work_summary: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime
    updated_at: datetime
    todos: list[TodoItem] = Field(default_factory=list)

    def to_row(self) -> dict:
        return self.model_dump(mode="json", exclude={"todos"})

    def todo(self, todo_id: str) -> TodoItem | None:
        return next((t for t in self.todos if t.id == todo_id), None)


class ClearResult(WireModel):
    """Counts removed by a task board reset."""

    human_tasks_deleted: int
    agent_tasks_deleted: int
    todos_deleted: int
    cleared_at: datetime
