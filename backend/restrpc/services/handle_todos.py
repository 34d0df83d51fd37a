"""Todos Handlers — business logic for the example `todos` service (5 methods).

Invariants:
    - Payloads arrive already validated and defaulted by the dispatcher
    - The todo id comes from payload.id, falling back to the request's resourceId
    - complete/delete only succeed for the todo's owner (token subject == user_id)
    - Business failures raise ActionError; anything else is left to the dispatcher

Design Decisions:
    - DB reached through get_session_manager() at call time, so tests can swap
      the manager without rebuilding the registry
    - create/complete return a full envelope to show handler-supplied messages;
      list/get/delete return bare values the dispatcher wraps
"""

from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy import select

from restrpc.core.contracts import HandlerContext
from restrpc.core.errors import ActionError
from restrpc.infrastructure.database import DatabaseSessionManager, get_session_manager
from restrpc.models.todo import Todo


def _resolve_todo_id(payload: dict, context: HandlerContext) -> UUID:
    raw = payload.get("id") or context.resource_id
    if not raw:
        raise ActionError(
            "A todo id is required (payload.id or resourceId)", "TODO_ID_REQUIRED",
        )
    try:
        return UUID(str(raw))
    except ValueError:
        raise ActionError(f"Invalid todo id '{raw}'", "INVALID_TODO_ID")


class TodosHandlers:
    """Todo CRUD over the todos table."""

    def __init__(
        self,
        manager_provider: Callable[[], DatabaseSessionManager] = get_session_manager,
    ):
        self._manager_provider = manager_provider

    async def create(self, payload: dict, context: HandlerContext) -> dict:
        completed = payload.get("completed", False)
        todo = Todo(
            title=payload["title"],
            user_id=UUID(payload["user_id"]),
            completed=completed,
            completed_at=datetime.now(timezone.utc) if completed else None,
        )
        async with self._manager_provider().session() as db:
            db.add(todo)
            await db.commit()
        return {"status": True, "message": "Todo created", "data": todo.to_dict()}

    async def list_todos(self, payload: dict, context: HandlerContext) -> list[dict]:
        query = select(Todo).order_by(Todo.created_at, Todo.id)
        if "user_id" in payload:
            query = query.where(Todo.user_id == UUID(payload["user_id"]))
        if "completed" in payload:
            query = query.where(Todo.completed == payload["completed"])
        query = query.limit(payload.get("limit", 50)).offset(payload.get("offset", 0))
        async with self._manager_provider().session() as db:
            result = await db.execute(query)
            return [t.to_dict() for t in result.scalars().all()]

    async def get(self, payload: dict, context: HandlerContext) -> dict:
        todo_id = _resolve_todo_id(payload, context)
        async with self._manager_provider().session() as db:
            todo = await self._get_or_404(db, todo_id)
            return todo.to_dict()

    async def complete(self, payload: dict, context: HandlerContext) -> dict:
        todo_id = _resolve_todo_id(payload, context)
        async with self._manager_provider().session() as db:
            todo = await self._get_or_404(db, todo_id)
            self._check_owner(todo, context)
            if not todo.completed:
                todo.completed = True
                todo.completed_at = datetime.now(timezone.utc)
                await db.commit()
            return {
                "status": True, "message": "Todo completed", "data": todo.to_dict(),
            }

    async def delete(self, payload: dict, context: HandlerContext) -> dict:
        todo_id = _resolve_todo_id(payload, context)
        async with self._manager_provider().session() as db:
            todo = await self._get_or_404(db, todo_id)
            self._check_owner(todo, context)
            await db.delete(todo)
            await db.commit()
        return {"id": str(todo_id), "deleted": True}

    @staticmethod
    async def _get_or_404(db, todo_id: UUID) -> Todo:
        todo = await db.get(Todo, todo_id)
        if todo is None:
            raise ActionError(
                f"Todo '{todo_id}' not found", "TODO_NOT_FOUND", http_status=404,
            )
        return todo

    @staticmethod
    def _check_owner(todo: Todo, context: HandlerContext) -> None:
        if context.auth.subject != str(todo.user_id):
            raise ActionError(
                "Todo belongs to another user", "TODO_FORBIDDEN", http_status=403,
            )
