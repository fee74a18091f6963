"""Coordinator tools: human tasks, agent tasks, todos and prompt notes.

Arguments use camelCase wire names (``humanTaskId``, ``agentTaskId``...),
mapped onto snake_case parameters by pydantic aliases.
"""

import logging
from typing import Annotated, Any

from pydantic import Field

from agentboard.exceptions import ValidationError
from agentboard.models.task import TaskStatus, TodoInput
from agentboard.router import ToolRouter
from agentboard.search import QueryEngine
from agentboard.tasks import TaskStore

logger = logging.getLogger(__name__)

HumanTaskId = Annotated[str, Field(alias="humanTaskId", description="Human task ID")]
AgentTaskId = Annotated[str, Field(alias="agentTaskId", description="Agent task ID")]
TodoId = Annotated[str, Field(alias="todoId", description="Todo item ID within the agent task")]
PromptNotesText = Annotated[
    str,
    Field(
        alias="promptNotes",
        description="Human guidance in markdown (max 5000 characters). Unsafe HTML is stripped.",
    ),
]
# Checked by the task store so both dispatch paths report the same tagged error
StatusArg = Annotated[
    str,
    Field(
        description="New status: pending, in_progress, completed or blocked",
        json_schema_extra={"enum": [s.value for s in TaskStatus]},
    ),
]
TodoArg = str | TodoInput


def register_coordinator_tools(router: ToolRouter, tasks: TaskStore, queries: QueryEngine) -> None:
    """Add every coordinator capability to ``router``."""

    async def create_human_task(
        prompt: Annotated[str, Field(description="The original request from the human")],
    ) -> dict[str, Any]:
        task = await tasks.create_human_task(prompt)
        return {"humanTaskId": task.id, "humanTask": task.to_wire()}

    async def create_agent_task(
        human_task_id: HumanTaskId,
        agent_role: Annotated[str, Field(alias="agentRole", description="Role of the agent (e.g. 'frontend-dev')")],
        todos: Annotated[
            list[TodoArg],
            Field(description="Ordered todo items: plain descriptions or {description, filePath?, functionName?, contextHint?}"),
        ],
        context_summary: Annotated[
            str, Field(alias="contextSummary", description="What the agent needs to know before starting")
        ] = "",
        files_modified: Annotated[
            list[str] | None, Field(alias="filesModified", description="Files this task is expected to touch")
        ] = None,
        agent_name: Annotated[
            str | None, Field(alias="agentName", description="Name of the agent that owns this task")
        ] = None,
        prior_work_summary: Annotated[
            str | None, Field(alias="priorWorkSummary", description="Summary of related work already done")
        ] = None,
    ) -> dict[str, Any]:
        task = await tasks.create_agent_task(
            human_task_id,
            agent_role,
            context_summary,
            todos,
            files_modified=files_modified,
            agent_name=agent_name,
            prior_work_summary=prior_work_summary,
        )
        return {
            "agentTaskId": task.id,
            "todoIds": [todo.id for todo in task.todos],
            "agentTask": task.to_wire(),
        }

    async def add_todo(agent_task_id: AgentTaskId, todo: Annotated[TodoArg, Field(description="Todo to append")]) -> dict[str, Any]:
        item = await tasks.add_todo(agent_task_id, todo)
        return {"todoId": item.id, "todo": item.to_wire()}

    async def update_task_status(
        status: StatusArg,
        agent_task_id: Annotated[
            str | None, Field(alias="agentTaskId", description="Agent task to update")
        ] = None,
        human_task_id: Annotated[
            str | None, Field(alias="humanTaskId", description="Human task to update instead of an agent task")
        ] = None,
    ) -> dict[str, Any]:
        if bool(agent_task_id) == bool(human_task_id):
            raise ValidationError("provide exactly one of agentTaskId or humanTaskId", field="agentTaskId")
        if human_task_id:
            human = await tasks.update_human_task_status(human_task_id, status)
            return {"ok": True, "humanTask": human.to_wire()}
        agent = await tasks.update_task_status(agent_task_id, status)
        return {"ok": True, "agentTask": agent.to_wire()}

    async def update_todo_status(
        agent_task_id: AgentTaskId,
        todo_id: TodoId,
        status: StatusArg,
    ) -> dict[str, Any]:
        item = await tasks.update_todo_status(agent_task_id, todo_id, status)
        return {"ok": True, "todo": item.to_wire()}

    async def add_task_prompt_notes(agent_task_id: AgentTaskId, prompt_notes: PromptNotesText) -> dict[str, Any]:
        task = await tasks.add_task_prompt_notes(agent_task_id, prompt_notes)
        return {"ok": True, "agentTask": task.to_wire()}

    async def update_task_prompt_notes(agent_task_id: AgentTaskId, prompt_notes: PromptNotesText) -> dict[str, Any]:
        task = await tasks.update_task_prompt_notes(agent_task_id, prompt_notes)
        return {"ok": True, "agentTask": task.to_wire()}

    async def clear_task_prompt_notes(agent_task_id: AgentTaskId) -> dict[str, Any]:
        task = await tasks.clear_task_prompt_notes(agent_task_id)
        return {"ok": True, "agentTask": task.to_wire()}

    async def add_todo_prompt_notes(
        agent_task_id: AgentTaskId, todo_id: TodoId, prompt_notes: PromptNotesText
    ) -> dict[str, Any]:
        item = await tasks.add_todo_prompt_notes(agent_task_id, todo_id, prompt_notes)
        return {"ok": True, "todo": item.to_wire()}

    async def update_todo_prompt_notes(
        agent_task_id: AgentTaskId, todo_id: TodoId, prompt_notes: PromptNotesText
    ) -> dict[str, Any]:
        item = await tasks.update_todo_prompt_notes(agent_task_id, todo_id, prompt_notes)
        return {"ok": True, "todo": item.to_wire()}

    async def clear_todo_prompt_notes(agent_task_id: AgentTaskId, todo_id: TodoId) -> dict[str, Any]:
        item = await tasks.clear_todo_prompt_notes(agent_task_id, todo_id)
        return {"ok": True, "todo": item.to_wire()}

    async def list_human_tasks() -> dict[str, Any]:
        found = await tasks.list_human_tasks()
        return {"count": len(found), "humanTasks": [t.to_wire() for t in found]}

    async def list_agent_tasks(
        human_task_id: Annotated[
            str | None, Field(alias="humanTaskId", description="Only tasks under this human task")
        ] = None,
        agent_name: Annotated[
            str | None, Field(alias="agentName", description="Only tasks owned by this agent")
        ] = None,
    ) -> dict[str, Any]:
        found = await tasks.list_agent_tasks(human_task_id=human_task_id, agent_name=agent_name)
        return {"count": len(found), "agentTasks": [t.to_wire() for t in found]}

    async def get_agent_task(agent_task_id: AgentTaskId) -> dict[str, Any]:
        task = await tasks.get_agent_task(agent_task_id)
        return task.to_wire()

    async def clear_task_board(
        confirm: Annotated[bool, Field(description="Must be true. Deletes every task and todo irreversibly.")] = False,
    ) -> dict[str, Any]:
        result = await tasks.clear_task_board(confirm=confirm)
        return {"ok": True, **result.to_wire()}

    async def get_popular_collections(
        limit: Annotated[int | None, Field(description="Maximum collections to return (default: 5)")] = None,
    ) -> dict[str, Any]:
        usage = await queries.get_popular_collections(limit)
        return {"collections": [u.to_wire() for u in usage]}

    router.add(
        "coordinator_create_human_task",
        "Create a human task from a user's request. Returns the new humanTaskId.",
        create_human_task,
    )
    router.add(
        "coordinator_create_agent_task",
        "Create an agent task with ordered todos under an existing human task. "
        "All statuses start as pending. Returns the agentTaskId and todo IDs.",
        create_agent_task,
    )
    router.add(
        "coordinator_add_todo",
        "Append a todo to an existing agent task. Existing todo order is unchanged.",
        add_todo,
    )
    router.add(
        "coordinator_update_task_status",
        "Update the status of an agent task (or a human task) to pending, in_progress, completed or blocked.",
        update_task_status,
    )
    router.add(
        "coordinator_update_todo_status",
        "Update the status of one todo item. Other todos and the agent task itself are not changed.",
        update_todo_status,
    )
    router.add(
        "coordinator_add_task_prompt_notes",
        "Add human guidance notes to an agent task.",
        add_task_prompt_notes,
    )
    router.add(
        "coordinator_update_task_prompt_notes",
        "Replace the existing human guidance notes on an agent task.",
        update_task_prompt_notes,
    )
    router.add(
        "coordinator_clear_task_prompt_notes",
        "Remove the human guidance notes from an agent task.",
        clear_task_prompt_notes,
    )
    router.add(
        "coordinator_add_todo_prompt_notes",
        "Add human guidance notes to a specific todo item.",
        add_todo_prompt_notes,
    )
    router.add(
        "coordinator_update_todo_prompt_notes",
        "Replace the existing human guidance notes on a todo item.",
        update_todo_prompt_notes,
    )
    router.add(
        "coordinator_clear_todo_prompt_notes",
        "Remove the human guidance notes from a todo item.",
        clear_todo_prompt_notes,
    )
    router.add(
        "coordinator_list_human_tasks",
        "List all human tasks in creation order.",
        list_human_tasks,
    )
    router.add(
        "coordinator_list_agent_tasks",
        "List agent tasks with their todos, optionally filtered by human task or agent name.",
        list_agent_tasks,
    )
    router.add(
        "coordinator_get_agent_task",
        "Get one agent task with its todos in order.",
        get_agent_task,
    )
    router.add(
        "coordinator_clear_task_board",
        "Delete ALL human tasks, agent tasks and todos. Irreversible; requires confirm=true.",
        clear_task_board,
    )
    router.add(
        "coordinator_get_popular_collections",
        "Get the knowledge collections queried most often, most used first.",
        get_popular_collections,
    )
    logger.debug("Registered coordinator tools")
