"""Tests for terminal rendering helpers."""

from datetime import datetime, timedelta, timezone

import click
import pytest

from agent_workspace.display import (
    format_time_ago,
    pluralize,
    render_file_info,
    render_file_tree,
    render_todos,
)
from agent_workspace.todos import TodoManager
from agent_workspace.vfs import VirtualFileSystem

NOW = datetime(2025, 1, 20, 12, 0, tzinfo=timezone.utc)


def test_pluralize():
    assert pluralize(1, "file") == "1 file"
    assert pluralize(0, "file") == "0 files"
    assert pluralize(3, "message") == "3 messages"


@pytest.mark.parametrize("delta, expected", [
    (timedelta(seconds=30), "just now"),
    (timedelta(minutes=5), "5min ago"),
    (timedelta(hours=3), "3h ago"),
    (timedelta(days=1, hours=2), "yesterday"),
    (timedelta(days=4), "4 days ago"),
    (timedelta(days=30), "2024-12-21"),
])
def test_format_time_ago(delta, expected):
    assert format_time_ago(NOW - delta, now=NOW) == expected


def test_format_time_ago_naive_is_utc():
    assert format_time_ago(datetime(2025, 1, 20, 11, 0), now=NOW) == "1h ago"


def test_empty_tree():
    assert click.unstyle(render_file_tree(VirtualFileSystem())) == "/workspace (empty)"


def test_tree_directories_first(png_bytes):
    vfs = VirtualFileSystem()
    vfs.write_file("index.html", "x" * 1024)
    vfs.write_file("assets/logo.png", png_bytes)
    vfs.write_file("assets/css/style.css", "")

    lines = click.unstyle(render_file_tree(vfs)).splitlines()
    assert lines[0] == "/workspace"
    assert lines[1] == "├── assets/"
    assert lines[2] == "│   ├── css/"
    assert lines[3] == "│   │   └── style.css (0.00KB)"
    assert lines[4].startswith("│   └── logo.png")
    assert lines[5] == "└── index.html (1.00KB)"
    assert lines[-1].startswith("3 files | ")
    assert lines[-1].endswith("KB / 40MB")


def test_file_info(png_bytes):
    vfs = VirtualFileSystem()
    vfs.write_file("src/app.js", "a\nb\nc")
    vfs.write_file("logo.png", png_bytes)

    text = click.unstyle(render_file_info(vfs, "src/app.js"))
    assert "Size: 5 bytes" in text
    assert "Lines: 3" in text
    assert "Extension: .js" in text

    binary = click.unstyle(render_file_info(vfs, "logo.png"))
    assert "Binary: yes" in binary
    assert "Lines" not in binary


def test_file_info_missing():
    assert click.unstyle(render_file_info(VirtualFileSystem(), "nope.txt")) == "File not found: nope.txt"


def test_render_todos():
    assert click.unstyle(render_todos(TodoManager())) == "No todos"

    todos = TodoManager()
    todos.add_many(["Write index.html", "Add styles"])
    todos.complete("Write index.html")
    lines = click.unstyle(render_todos(todos)).splitlines()
    assert lines[0] == "Todo List (1/2 completed)"
    assert lines[2] == "  ✓ Write index.html"
    assert lines[3] == "  ○ Add styles"
