"""Rolling conversation memory for the agent.

Only the last ``max_messages`` non-system messages are kept; system
messages always survive trimming.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from .codec import message_from_dict, message_to_dict
from .core import Message, utcnow
from .errors import ParsingError


@dataclass
class ConversationContext:
    messages: list[Message] = field(default_factory=list)
    files_created: list[str] = field(default_factory=list)
    task_history: list[str] = field(default_factory=list)
    last_execution_result: Optional[str] = None


class ConversationMemory:
    def __init__(self, max_messages: int = 10):
        self.max_messages = max_messages
        self._context = ConversationContext()

    def add_message(self, role: str, content: Any, **extra) -> Message:
        """Append a message; extra keyword fields (tool_calls, name...) are kept."""
        tool_call_id = extra.pop("tool_call_id", None)
        msg = Message(
            role=role,
            content=content,
            timestamp=utcnow(),
            tool_call_id=tool_call_id,
            extra=extra,
        )
        self._context.messages.append(msg)
        self._trim()
        return msg

    def add_tool_result(self, content: str, tool_call_id: str) -> Message:
        return self.add_message("tool", content, tool_call_id=tool_call_id)

    def update_system_message(self, prompt: str) -> None:
        """Replace the system prompt, or insert one at the front."""
        for msg in self._context.messages:
            if msg.role == "system":
                msg.content = prompt
                return
        self._context.messages.insert(0, Message(role="system", content=prompt, timestamp=utcnow()))

    def get_messages(self) -> list[dict]:
        """Return messages in the shape a chat-completion API expects."""
        result = []
        for msg in self._context.messages:
            data = {"role": msg.role, "content": msg.content}
            if msg.role == "tool" and msg.tool_call_id:
                data["tool_call_id"] = msg.tool_call_id
            result.append(data)
        return result

    @property
    def messages(self) -> list[Message]:
        return list(self._context.messages)

    def add_file_created(self, filename: str) -> None:
        if filename not in self._context.files_created:
            self._context.files_created.append(filename)

    def set_last_execution_result(self, result: str) -> None:
        self._context.last_execution_result = result

    def add_task_to_history(self, task: str) -> None:
        self._context.task_history.append(task)

    def get_context(self) -> ConversationContext:
        ctx = self._context
        return ConversationContext(
            messages=list(ctx.messages),
            files_created=list(ctx.files_created),
            task_history=list(ctx.task_history),
            last_execution_result=ctx.last_execution_result,
        )

    def reset(self) -> None:
        self._context = ConversationContext()

    def export_json(self) -> str:
        ctx = self._context
        data = {
            "messages": [message_to_dict(m) for m in ctx.messages],
            "filesCreated": ctx.files_created,
            "taskHistory": ctx.task_history,
        }
        if ctx.last_execution_result is not None:
            data["lastExecutionResult"] = ctx.last_execution_result
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> None:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParsingError(f"Failed to import memory: {e}", original=e) from e
        if not isinstance(data, dict):
            raise ParsingError("Failed to import memory: expected a JSON object")

        self._context = ConversationContext(
            messages=[message_from_dict(m) for m in data.get("messages") or []],
            files_created=list(data.get("filesCreated") or []),
            task_history=list(data.get("taskHistory") or []),
            last_execution_result=data.get("lastExecutionResult"),
        )

    def _trim(self) -> None:
        system = [m for m in self._context.messages if m.role == "system"]
        others = [m for m in self._context.messages if m.role != "system"]
        if len(others) > self.max_messages:
            self._context.messages = system + others[-self.max_messages:]
