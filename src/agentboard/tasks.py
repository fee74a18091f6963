"""Task store: human tasks, agent tasks and their ordered todo items.

Todos live in their own table keyed by todo id. Every mutation is a single
update filtered by identifier and naming only the columns it changes, so two
agents updating different todos of the same task never overwrite each other.

Status transitions are entirely caller driven. Completing every todo of an
agent task does not complete the task itself.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from agentboard.exceptions import NotFoundError, ValidationError
from agentboard.models.task import (
    AgentTask,
    ClearResult,
    HumanTask,
    TaskStatus,
    TodoInput,
    TodoItem,
)
from agentboard.storage.documents import AGENT_TASKS, HUMAN_TASKS, TODOS, DocumentStore
from agentboard.validation import (
    new_id,
    normalize_files,
    optional_text,
    require_text,
    sanitize_prompt_notes,
    utcnow,
    validate_status,
)

logger = logging.getLogger(__name__)

NOTES = "human_prompt_notes"
NOTES_ADDED_AT = "human_prompt_notes_added_at"
NOTES_UPDATED_AT = "human_prompt_notes_updated_at"

TodoSpec = str | dict[str, Any] | TodoInput


def _parse_time(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _advance(now: datetime, previous: str | datetime | None) -> datetime:
    """Never move a timestamp backwards, even if the clock does."""
    prior = _parse_time(previous)
    return now if prior is None or now >= prior else prior


def _todo_input(todo: TodoSpec, position: int) -> TodoInput:
    """Accept a bare description string or a todo object."""
    match todo:
        case TodoInput():
            item = todo
        case str():
            item = TodoInput(description=todo)
        case dict():
            try:
                item = TodoInput.model_validate(todo)
            except PydanticValidationError as e:
                raise ValidationError(
                    f"todos[{position}].description is required and must be a non-empty string",
                    field=f"todos[{position}]",
                    errors=e.errors(include_url=False, include_context=False),
                ) from None
        case _:
            raise ValidationError(
                f"todos[{position}] must be a string or an object with a description field",
                field=f"todos[{position}]",
            )
    return TodoInput(
        description=require_text(item.description, f"todos[{position}].description"),
        file_path=optional_text(item.file_path),
        function_name=optional_text(item.function_name),
        context_hint=optional_text(item.context_hint),
    )


class TaskStore:
    """Owns the human task / agent task / todo lifecycle."""

    def __init__(self, documents: DocumentStore) -> None:
        self.documents = documents

    # ------------------------------------------------------------------
    # Human tasks
    # ------------------------------------------------------------------

    async def create_human_task(self, prompt: str) -> HumanTask:
        prompt = require_text(prompt, "prompt")
        now = utcnow()
        task = HumanTask(id=new_id(), prompt=prompt, created_at=now, updated_at=now)
        await self.documents.insert(HUMAN_TASKS, task.to_row())
        logger.info(f"[{task.id}] Created human task")
        return task

    async def get_human_task(self, human_task_id: str) -> HumanTask:
        human_task_id = require_text(human_task_id, "humanTaskId")
        row = await self.documents.get(HUMAN_TASKS, id=human_task_id)
        if row is None:
            raise NotFoundError(f"human task {human_task_id} not found", humanTaskId=human_task_id)
        return HumanTask.model_validate(row)

    async def list_human_tasks(self) -> list[HumanTask]:
        rows = await self.documents.select(HUMAN_TASKS)
        return [HumanTask.model_validate(row) for row in rows]

    async def update_human_task_status(self, human_task_id: str, status: str | TaskStatus) -> HumanTask:
        human_task_id = require_text(human_task_id, "humanTaskId")
        status = validate_status(status)
        rows = await self.documents.update(
            HUMAN_TASKS, {"status": status.value, "updated_at": utcnow().isoformat()}, id=human_task_id
        )
        if not rows:
            raise NotFoundError(f"human task {human_task_id} not found", humanTaskId=human_task_id)
        logger.info(f"[{human_task_id}] Human task status -> {status.value}")
        return HumanTask.model_validate(rows[0])

    # ------------------------------------------------------------------
    # Agent tasks
    # ------------------------------------------------------------------

    async def create_agent_task(
        self,
        human_task_id: str,
        agent_role: str,
        context_summary: str | None,
        todos: Sequence[TodoSpec],
        files_modified: Sequence[str] | None = None,
        agent_name: str | None = None,
        prior_work_summary: str | None = None,
    ) -> AgentTask:
        """Create an agent task under an existing human task.

        Todos receive order indices 0..n-1 in submission order and start
        ``pending`` like the task itself.
        """
        human_task_id = require_text(human_task_id, "humanTaskId")
        agent_role = require_text(agent_role, "agentRole")
        if not todos:
            raise ValidationError("todos must be a non-empty array", field="todos")
        inputs = [_todo_input(todo, i) for i, todo in enumerate(todos)]

        await self.get_human_task(human_task_id)

        now = utcnow()
        task_id = new_id()
        items = [
            TodoItem(
                id=new_id(),
                agent_task_id=task_id,
                order_index=index,
                description=item.description,
                file_path=item.file_path,
                function_name=item.function_name,
                context_hint=item.context_hint,
                created_at=now,
                updated_at=now,
            )
            for index, item in enumerate(inputs)
        ]
        task = AgentTask(
            id=task_id,
            human_task_id=human_task_id,
            agent_role=agent_role,
            agent_name=optional_text(agent_name),
            context_summary=(context_summary or "").strip(),
            files_modified=normalize_files(files_modified),
            prior_work_summary=optional_text(prior_work_summary),
            created_at=now,
            updated_at=now,
            todos=items,
        )

        # Todo rows are unreachable until their agent task row exists.
        await self.documents.insert(TODOS, [item.to_row() for item in items])
        await self.documents.insert(AGENT_TASKS, task.to_row())
        logger.info(f"[{task_id}] Created agent task ({agent_role}) with {len(items)} todos under {human_task_id}")
        return task

    async def get_agent_task(self, agent_task_id: str) -> AgentTask:
        agent_task_id = require_text(agent_task_id, "agentTaskId")
        row = await self.documents.get(AGENT_TASKS, id=agent_task_id)
        if row is None:
            raise NotFoundError(f"agent task {agent_task_id} not found", agentTaskId=agent_task_id)
        return await self._with_todos(row)

    async def _with_todos(self, row: dict[str, Any]) -> AgentTask:
        todos = await self.documents.select(TODOS, order="order_index", agent_task_id=row["id"])
        return AgentTask.model_validate({**row, "todos": todos})

    async def list_agent_tasks(
        self,
        human_task_id: str | None = None,
        agent_name: str | None = None,
    ) -> list[AgentTask]:
        filters: dict[str, Any] = {}
        if human_task_id:
            filters["human_task_id"] = human_task_id
        if agent_name:
            filters["agent_name"] = agent_name
        rows = await self.documents.select(AGENT_TASKS, **filters)
        if not rows:
            return []

        todos_by_task: dict[str, list[dict[str, Any]]] = {row["id"]: [] for row in rows}
        todo_rows = await self.documents.select(
            TODOS, order="order_index", in_=("agent_task_id", list(todos_by_task))
        )
        for todo in todo_rows:
            todos_by_task[todo["agent_task_id"]].append(todo)
        return [AgentTask.model_validate({**row, "todos": todos_by_task[row["id"]]}) for row in rows]

    async def add_todo(self, agent_task_id: str, todo: TodoSpec) -> TodoItem:
        """Append a todo after the current last one. Existing indices are untouched."""
        agent_task_id = require_text(agent_task_id, "agentTaskId")
        item = _todo_input(todo, 0)
        await self._require(AGENT_TASKS, f"agent task {agent_task_id}", id=agent_task_id)

        existing = await self.documents.select(
            TODOS, columns="order_index", order="order_index", agent_task_id=agent_task_id
        )
        next_index = max((row["order_index"] for row in existing), default=-1) + 1
        now = utcnow()
        created = TodoItem(
            id=new_id(),
            agent_task_id=agent_task_id,
            order_index=next_index,
            description=item.description,
            file_path=item.file_path,
            function_name=item.function_name,
            context_hint=item.context_hint,
            created_at=now,
            updated_at=now,
        )
        await self.documents.insert(TODOS, created.to_row())
        logger.info(f"[{agent_task_id}] Appended todo {created.id} at index {next_index}")
        return created

    async def update_task_status(self, agent_task_id: str, status: str | TaskStatus) -> AgentTask:
        agent_task_id = require_text(agent_task_id, "agentTaskId")
        status = validate_status(status)
        rows = await self.documents.update(
            AGENT_TASKS, {"status": status.value, "updated_at": utcnow().isoformat()}, id=agent_task_id
        )
        if not rows:
            raise NotFoundError(f"agent task {agent_task_id} not found", agentTaskId=agent_task_id)
        logger.info(f"[{agent_task_id}] Agent task status -> {status.value}")
        return await self._with_todos(rows[0])

    async def update_todo_status(self, agent_task_id: str, todo_id: str, status: str | TaskStatus) -> TodoItem:
        agent_task_id = require_text(agent_task_id, "agentTaskId")
        todo_id = require_text(todo_id, "todoId")
        status = validate_status(status)
        now = utcnow().isoformat()
        values = {
            "status": status.value,
            "updated_at": now,
            "completed_at": now if status is TaskStatus.COMPLETED else None,
        }
        rows = await self.documents.update(TODOS, values, id=todo_id, agent_task_id=agent_task_id)
        if not rows:
            await self._require(AGENT_TASKS, f"agent task {agent_task_id}", id=agent_task_id)
            raise NotFoundError(
                f"todo {todo_id} not found in agent task {agent_task_id}",
                agentTaskId=agent_task_id,
                todoId=todo_id,
            )
        logger.info(f"[{agent_task_id}] Todo {todo_id} status -> {status.value}")
        return TodoItem.model_validate(rows[0])

    # ------------------------------------------------------------------
    # Prompt notes
    # ------------------------------------------------------------------

    async def add_task_prompt_notes(self, agent_task_id: str, notes: str) -> AgentTask:
        agent_task_id = require_text(agent_task_id, "agentTaskId")
        row = await self._add_notes(AGENT_TASKS, f"agent task {agent_task_id}", notes, id=agent_task_id)
        return await self._with_todos(row)

    async def update_task_prompt_notes(self, agent_task_id: str, notes: str) -> AgentTask:
        agent_task_id = require_text(agent_task_id, "agentTaskId")
        row = await self._update_notes(AGENT_TASKS, f"agent task {agent_task_id}", notes, id=agent_task_id)
        return await self._with_todos(row)

    async def clear_task_prompt_notes(self, agent_task_id: str) -> AgentTask:
        agent_task_id = require_text(agent_task_id, "agentTaskId")
        row = await self._clear_notes(AGENT_TASKS, f"agent task {agent_task_id}", id=agent_task_id)
        return await self._with_todos(row)

    async def add_todo_prompt_notes(self, agent_task_id: str, todo_id: str, notes: str) -> TodoItem:
        filters = self._todo_filters(agent_task_id, todo_id)
        row = await self._add_notes(TODOS, f"todo {todo_id}", notes, **filters)
        return TodoItem.model_validate(row)

    async def update_todo_prompt_notes(self, agent_task_id: str, todo_id: str, notes: str) -> TodoItem:
        filters = self._todo_filters(agent_task_id, todo_id)
        row = await self._update_notes(TODOS, f"todo {todo_id}", notes, **filters)
        return TodoItem.model_validate(row)

    async def clear_todo_prompt_notes(self, agent_task_id: str, todo_id: str) -> TodoItem:
        filters = self._todo_filters(agent_task_id, todo_id)
        row = await self._clear_notes(TODOS, f"todo {todo_id}", **filters)
        return TodoItem.model_validate(row)

    @staticmethod
    def _todo_filters(agent_task_id: str, todo_id: str) -> dict[str, str]:
        return {
            "id": require_text(todo_id, "todoId"),
            "agent_task_id": require_text(agent_task_id, "agentTaskId"),
        }

    async def _require(self, table: str, label: str, **filters: Any) -> dict[str, Any]:
        row = await self.documents.get(table, **filters)
        if row is None:
            raise NotFoundError(f"{label} not found", **filters)
        return row

    async def _write(self, table: str, label: str, values: dict[str, Any], **filters: Any) -> dict[str, Any]:
        rows = await self.documents.update(table, values, **filters)
        if not rows:
            # Deleted between our read and our write
            raise NotFoundError(f"{label} not found", **filters)
        return rows[0]

    async def _add_notes(self, table: str, label: str, notes: str, **filters: Any) -> dict[str, Any]:
        """Store notes. The added-at stamp is set only when no notes exist yet.

        The stamp is a second update that only matches while the column is
        still null, so of two concurrent first additions exactly one sets it.
        """
        sanitized = sanitize_prompt_notes(notes)
        row = await self._require(table, label, **filters)
        stamp = _advance(utcnow(), row.get(NOTES_UPDATED_AT)).isoformat()
        written = await self._write(table, label, {NOTES: sanitized, NOTES_UPDATED_AT: stamp}, **filters)
        if written.get(NOTES_ADDED_AT) is None:
            stamped = await self.documents.update(table, {NOTES_ADDED_AT: stamp}, is_null=NOTES_ADDED_AT, **filters)
            # Lost the race: another writer stamped it first
            written = stamped[0] if stamped else await self._require(table, label, **filters)
        logger.info(f"Added prompt notes to {label}")
        return written

    async def _update_notes(self, table: str, label: str, notes: str, **filters: Any) -> dict[str, Any]:
        sanitized = sanitize_prompt_notes(notes)
        row = await self._require(table, label, **filters)
        if not row.get(NOTES):
            raise ValidationError(f"{label} has no prompt notes to update; add notes first", field="promptNotes")
        stamp = _advance(utcnow(), row.get(NOTES_UPDATED_AT)).isoformat()
        written = await self._write(table, label, {NOTES: sanitized, NOTES_UPDATED_AT: stamp}, **filters)
        logger.info(f"Updated prompt notes on {label}")
        return written

    async def _clear_notes(self, table: str, label: str, **filters: Any) -> dict[str, Any]:
        values = {NOTES: "", NOTES_ADDED_AT: None, NOTES_UPDATED_AT: None}
        written = await self._write(table, label, values, **filters)
        logger.info(f"Cleared prompt notes on {label}")
        return written

    # ------------------------------------------------------------------
    # Board reset
    # ------------------------------------------------------------------

    async def clear_task_board(self, confirm: bool = False) -> ClearResult:
        """Delete every human task, agent task and todo. Irreversible."""
        if confirm is not True:
            raise ValidationError("clearing the task board requires confirm=true", field="confirm")
        todos = await self.documents.delete_all(TODOS)
        agent_tasks = await self.documents.delete_all(AGENT_TASKS)
        human_tasks = await self.documents.delete_all(HUMAN_TASKS)
        result = ClearResult(
            human_tasks_deleted=human_tasks,
            agent_tasks_deleted=agent_tasks,
            todos_deleted=todos,
            cleared_at=utcnow(),
        )
        logger.warning(
            f"Task board cleared: {human_tasks} human tasks, {agent_tasks} agent tasks, {todos} todos"
        )
        return result
