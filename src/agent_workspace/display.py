"""Terminal rendering of projects, conversations, files and todos."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import click

from .errors import VFSFileNotFoundError
from .todos import TodoManager
from .vfs import VirtualFileSystem, get_extension


def pluralize(count: int, word: str) -> str:
    return f"1 {word}" if count == 1 else f"{count} {word}s"


def format_time_ago(value: datetime, now: Optional[datetime] = None) -> str:
    """Format a timestamp relative to now: "just now", "5min ago", "3h ago"..."""
    now = now or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    minutes = int((now - value).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}min ago"
    if hours < 24:
        return f"{hours}h ago"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    return value.strftime("%Y-%m-%d")


@dataclass
class _Node:
    name: str
    is_directory: bool
    size: int = 0
    children: dict[str, "_Node"] = field(default_factory=dict)


def render_file_tree(vfs: VirtualFileSystem) -> str:
    """Render the VFS as a tree: directories first, then files by name."""
    files = vfs.list_files()
    if not files:
        return click.style("/workspace (empty)", fg="bright_black")

    root = _Node(name="workspace", is_directory=True)
    for info in sorted(files, key=lambda f: (not f.is_directory, f.path)):
        node = root
        parts = info.path.split("/")
        for i, part in enumerate(parts):
            last = i == len(parts) - 1
            if part not in node.children:
                node.children[part] = _Node(
                    name=part,
                    is_directory=info.is_directory or not last,
                    size=info.size if last else 0,
                )
            node = node.children[part]

    lines = [click.style("/workspace", fg="cyan", bold=True)]
    _render_node(root, "", lines)

    stats = vfs.get_stats()
    lines.append("")
    lines.append(click.style(
        f"{pluralize(stats.file_count, 'file')} | "
        f"{stats.total_size / 1024:.2f}KB / {stats.max_size / 1024 / 1024:.0f}MB",
        fg="bright_black",
    ))
    return "\n".join(lines)


def _render_node(node: _Node, prefix: str, lines: list[str]) -> None:
    children = sorted(node.children.values(), key=lambda n: (not n.is_directory, n.name))
    for index, child in enumerate(children):
        last = index == len(children) - 1
        connector = "└── " if last else "├── "
        if child.is_directory:
            label = click.style(child.name + "/", fg="blue", bold=True)
        else:
            label = child.name + click.style(f" ({child.size / 1024:.2f}KB)", fg="bright_black")
        lines.append(f"{prefix}{connector}{label}")
        if child.children:
            _render_node(child, prefix + ("    " if last else "│   "), lines)


def render_file_info(vfs: VirtualFileSystem, filename: str) -> str:
    try:
        data = vfs.read_bytes(filename)
    except VFSFileNotFoundError:
        return click.style(f"File not found: {filename}", fg="red")

    info = [click.style(filename, fg="cyan", bold=True)]
    info.append(click.style(f"   Size: {len(data)} bytes", fg="bright_black"))
    if not vfs.is_binary_file(filename):
        line_count = len(data.decode("utf-8").split("\n"))
        info.append(click.style(f"   Lines: {line_count}", fg="bright_black"))
    else:
        info.append(click.style("   Binary: yes", fg="bright_black"))
    info.append(click.style(f"   Extension: {get_extension(filename) or 'none'}", fg="bright_black"))
    return "\n".join(info)


def render_todos(manager: TodoManager) -> str:
    if not len(manager):
        return click.style("No todos", fg="bright_black")

    stats = manager.stats()
    lines = [click.style(f"Todo List ({stats.completed}/{stats.total} completed)", fg="cyan"), ""]
    for todo in manager.items():
        if todo.completed:
            lines.append(f"  {click.style('✓', fg='green')} {click.style(todo.task, fg='bright_black', strikethrough=True)}")
        else:
            lines.append(f"  {click.style('○', fg='yellow')} {todo.task}")
    return "\n".join(lines)
