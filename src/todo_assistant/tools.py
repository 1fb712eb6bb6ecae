from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Type

import pydantic
import structlog
from pydantic import BaseModel, Field, field_validator

from . import analysis
from .errors import NotFoundError, StorageError, TodoStoreError
from .models import TodoEntity
from .repositories import Clock, Repository
from .schemas import Priority, Status, TodoCreate, TodoOut, TodoUpdate, UserProfileOut

log = structlog.get_logger()

# JSON-RPC 2.0 error codes
INVALID_PARAMS = -32602
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class ToolError(Exception):
    """A tool call failed; carries the JSON-RPC error fields."""

    def __init__(self, code: int, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def _blank_to(v: Any, default: str) -> Any:
    if v is None or (isinstance(v, str) and not v.strip()):
        return default
    return v


class ListTodosArgs(BaseModel):
    status: Optional[Status] = Field(default=None, description="Filter by status")
    priority: Optional[Priority] = Field(default=None, description="Filter by priority")
    category: Optional[str] = Field(default=None, description="Filter by category")

    @field_validator("status", "priority", "category", mode="before")
    @classmethod
    def blank_is_unset(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v


class CreateTodoArgs(TodoCreate):
    pass


class UpdateTodoArgs(TodoUpdate):
    id: int = Field(..., description="Todo ID")


class DeleteTodoArgs(BaseModel):
    id: int = Field(..., description="Todo ID to delete")


class GetUserProfileArgs(BaseModel):
    pass


class AnalyzeTasksArgs(BaseModel):
    analysis_type: Literal["priority", "overdue", "stale", "workload"] = Field(
        default="priority", description="Type of analysis to perform"
    )

    @field_validator("analysis_type", mode="before")
    @classmethod
    def blank_is_default(cls, v: Any) -> Any:
        return _blank_to(v, "priority")


class OptimizeScheduleArgs(BaseModel):
    time_horizon: Literal["today", "week", "month"] = Field(
        default="today", description="Time horizon for optimization"
    )
    work_hours: int = Field(default=8, ge=1, le=24, description="Available work hours per day")

    @field_validator("time_horizon", mode="before")
    @classmethod
    def blank_is_default(cls, v: Any) -> Any:
        return _blank_to(v, "today")


class BreakDownTaskArgs(BaseModel):
    task_id: int = Field(..., description="ID of the task to break down")
    complexity: Literal["simple", "medium", "complex"] = Field(
        default="medium", description="Task complexity level"
    )

    @field_validator("complexity", mode="before")
    @classmethod
    def blank_is_default(cls, v: Any) -> Any:
        return _blank_to(v, "medium")


def text_result(text: str, structured: Optional[Any] = None) -> Dict[str, Any]:
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}], "isError": False}
    if structured is not None:
        result["structuredContent"] = structured
    return result


def _jsonable(todo: TodoEntity) -> Dict[str, Any]:
    return TodoOut(**todo).model_dump(mode="json")


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Callable[[BaseModel], Dict[str, Any]]

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.args_model.model_json_schema(),
        }


# PUBLIC_INTERFACE
class TodoToolbox:
    """
    Exposes the todo store as named tools for an external agent. Arguments
    are validated against a typed model per tool before the store is touched.
    """

    def __init__(self, repo: Repository, clock: Optional[Clock] = None) -> None:
        self._repo = repo
        self._clock = clock or datetime.now
        self._tools: Dict[str, Tool] = {}
        for tool in (
            Tool("list_todos", "List all todos with optional filtering", ListTodosArgs, self._list_todos),
            Tool("create_todo", "Create a new todo item", CreateTodoArgs, self._create_todo),
            Tool("update_todo", "Update an existing todo item", UpdateTodoArgs, self._update_todo),
            Tool("delete_todo", "Delete a todo item", DeleteTodoArgs, self._delete_todo),
            Tool("get_user_profile", "Read the user profile", GetUserProfileArgs, self._get_user_profile),
            Tool("analyze_tasks", "Analyze tasks and provide insights", AnalyzeTasksArgs, self._analyze_tasks),
            Tool(
                "optimize_schedule",
                "Optimize task schedule based on priorities and deadlines",
                OptimizeScheduleArgs,
                self._optimize_schedule,
            ),
            Tool(
                "break_down_task",
                "Break down a complex task into smaller subtasks",
                BreakDownTaskArgs,
                self._break_down_task,
            ),
        ):
            self._tools[tool.name] = tool

    def list_tools(self) -> List[Dict[str, Any]]:
        return [t.describe() for t in self._tools.values()]

    def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Validate arguments and run the named tool.

        Raises:
            ToolError: unknown tool, invalid arguments, or a store failure.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolError(METHOD_NOT_FOUND, f"unknown tool: {name}")

        try:
            args = tool.args_model.model_validate(dict(arguments or {}))
        except pydantic.ValidationError as e:
            raise ToolError(
                INVALID_PARAMS,
                f"invalid arguments for {name}",
                {"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            ) from e

        try:
            result = tool.handler(args)
        except TodoStoreError as e:
            if isinstance(e, StorageError):
                log.error("tool call failed", tool=name, error=e.message)
            else:
                log.info("tool call rejected", tool=name, kind=e.kind, error=e.message)
            raise ToolError(INTERNAL_ERROR, e.message, {"kind": e.kind}) from e

        log.info("tool call completed", tool=name)
        return result

    def _list_todos(self, args: ListTodosArgs) -> Dict[str, Any]:
        todos = [
            t
            for t in self._repo.list_todos()
            if (args.status is None or t["status"] == args.status)
            and (args.priority is None or t["priority"] == args.priority)
            and (args.category is None or t["category"] == args.category)
        ]
        return text_result(
            f"Found {len(todos)} todos matching the criteria",
            {"todos": [_jsonable(t) for t in todos]},
        )

    def _create_todo(self, args: CreateTodoArgs) -> Dict[str, Any]:
        todo = self._repo.create_todo(args.to_record())
        return text_result(f"Created todo: {todo['title']} (ID: {todo['id']})", _jsonable(todo))

    def _update_todo(self, args: UpdateTodoArgs) -> Dict[str, Any]:
        existing = self._repo.get_todo(args.id)
        todo = self._repo.update_todo(args.merge_into(existing))
        return text_result(f"Updated todo: {todo['title']} (ID: {todo['id']})", _jsonable(todo))

    def _delete_todo(self, args: DeleteTodoArgs) -> Dict[str, Any]:
        todo = self._repo.get_todo(args.id)
        self._repo.delete_todo(args.id)
        return text_result(f"Deleted todo: {todo['title']} (ID: {todo['id']})")

    def _get_user_profile(self, args: GetUserProfileArgs) -> Dict[str, Any]:
        profile = self._repo.get_user_profile()
        schedule = profile["work_schedule"]
        text = (
            f"User profile: {profile['name']} ({profile['timezone']}), works "
            f"{schedule['start_time']}-{schedule['end_time']} on {', '.join(schedule['work_days'])}"
        )
        return text_result(text, UserProfileOut.model_validate(profile).model_dump())

    def _analyze_tasks(self, args: AnalyzeTasksArgs) -> Dict[str, Any]:
        todos = self._repo.list_todos()
        return text_result(analysis.summarize(todos, args.analysis_type, self._clock()))

    def _optimize_schedule(self, args: OptimizeScheduleArgs) -> Dict[str, Any]:
        todos = self._repo.list_todos()
        return text_result(analysis.schedule_summary(todos, args.time_horizon, args.work_hours))

    def _break_down_task(self, args: BreakDownTaskArgs) -> Dict[str, Any]:
        try:
            todo = self._repo.get_todo(args.task_id)
        except NotFoundError as e:
            raise NotFoundError(f"task with ID {args.task_id} not found") from e
        return text_result(analysis.break_down(todo, args.complexity))
