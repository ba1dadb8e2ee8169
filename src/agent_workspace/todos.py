"""Todo list the agent keeps for organising its own work."""

from dataclasses import dataclass, replace

from .core import TodoItem, utcnow


@dataclass
class TodoStats:
    total: int
    completed: int
    pending: int


class TodoManager:
    def __init__(self, items: list[TodoItem] | None = None):
        self._todos: list[TodoItem] = [replace(t) for t in items or []]

    @classmethod
    def from_items(cls, items: list[TodoItem]) -> "TodoManager":
        """Restore a manager from a conversation's persisted todos."""
        return cls(items)

    def to_items(self) -> list[TodoItem]:
        return [replace(t) for t in self._todos]

    def add(self, task: str) -> TodoItem:
        todo = TodoItem(task=task, created_at=utcnow())
        self._todos.append(todo)
        return todo

    def add_many(self, tasks: list[str]) -> list[TodoItem]:
        """Add several tasks sharing one creation timestamp."""
        now = utcnow()
        added = [TodoItem(task=task, created_at=now) for task in tasks]
        self._todos.extend(added)
        return added

    def complete(self, task: str) -> bool:
        """Mark the first pending todo with this task as done."""
        for todo in self._todos:
            if todo.task == task and not todo.completed:
                todo.completed = True
                return True
        return False

    def delete(self, task: str) -> bool:
        for i, todo in enumerate(self._todos):
            if todo.task == task:
                del self._todos[i]
                return True
        return False

    def clear(self) -> None:
        self._todos = []

    def items(self) -> list[TodoItem]:
        return list(self._todos)

    def stats(self) -> TodoStats:
        total = len(self._todos)
        completed = sum(1 for t in self._todos if t.completed)
        return TodoStats(total=total, completed=completed, pending=total - completed)

    def __len__(self) -> int:
        return len(self._todos)
