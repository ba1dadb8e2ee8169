"""Export conversations to Markdown and JSON formats."""

import json
from typing import Any

from .codec import format_timestamp, parse_timestamp
from .core import Conversation, ConversationData, Message
from .errors import ParsingError


def _message_fields(msg: Any) -> tuple[str, Any, str]:
    """Return role, content and a display timestamp for a message record."""
    if isinstance(msg, Message):
        ts = msg.timestamp.strftime("%Y-%m-%d %H:%M") if msg.timestamp else ""
        return msg.role, msg.content, ts
    if isinstance(msg, dict):
        ts = ""
        if msg.get("timestamp"):
            try:
                ts = parse_timestamp(msg["timestamp"]).strftime("%Y-%m-%d %H:%M")
            except ParsingError:
                ts = ""
        return str(msg.get("role", "unknown")), msg.get("content"), ts
    return "unknown", msg, ""


def _content_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "```json\n" + json.dumps(content, indent=2, ensure_ascii=False) + "\n```"


def conversation_to_markdown(conversation: Conversation, data: ConversationData) -> str:
    """Export a conversation with its messages and todos as clean Markdown."""
    lines = [f"# {conversation.display_name}", ""]

    lines.append(f"**Conversation:** {conversation.id}")
    lines.append(f"**Created:** {conversation.created_at.isoformat()}")
    lines.append(f"**Updated:** {conversation.last_modified.isoformat()}")
    lines.append(f"**Messages:** {conversation.message_count}")
    lines.append(f"**Files:** {conversation.file_count}")
    lines.extend(["", "---", ""])

    for msg in data.messages:
        role, content, ts = _message_fields(msg)
        suffix = f" ({ts})" if ts else ""
        lines.append(f"## {role.capitalize()}{suffix}")
        lines.append("")
        lines.append(_content_text(content))
        lines.extend(["", "---", ""])

    if data.todos:
        done = sum(1 for t in data.todos if t.completed)
        lines.append(f"## Todos ({done}/{len(data.todos)} completed)")
        lines.append("")
        for todo in data.todos:
            mark = "x" if todo.completed else " "
            lines.append(f"- [{mark}] {todo.task}")
        lines.append("")

    return "\n".join(lines)


def conversation_to_json(conversation: Conversation, data: ConversationData) -> str:
    """Export a conversation with its messages and todos as structured JSON."""
    def encode(msg: Any) -> Any:
        if isinstance(msg, Message):
            return {
                "role": msg.role,
                "content": msg.content,
                "timestamp": format_timestamp(msg.timestamp) if msg.timestamp else None,
                "tool_call_id": msg.tool_call_id,
                **msg.extra,
            }
        return msg

    payload = {
        "conversation": {
            "id": conversation.id,
            "name": conversation.name,
            "message_count": conversation.message_count,
            "file_count": conversation.file_count,
            "created": conversation.created_at.isoformat(),
            "updated": conversation.last_modified.isoformat(),
        },
        "messages": [encode(m) for m in data.messages],
        "todos": [
            {
                "task": todo.task,
                "completed": todo.completed,
                "created": todo.created_at.isoformat(),
            }
            for todo in data.todos
        ],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
