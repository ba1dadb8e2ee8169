"""CLI entry point for agent-workspace."""

from pathlib import Path

import click
import uvicorn
from dotenv import load_dotenv

from .display import format_time_ago, pluralize, render_file_info, render_file_tree, render_todos
from .drivers import FileSystemDriver
from .errors import AppError, format_for_cli, log_error
from .export import conversation_to_json, conversation_to_markdown
from .logging_config import configure_logging
from .projects import ProjectManager
from .storage import StorageManager
from .todos import TodoManager
from .vfs import VirtualFileSystem


class AppGroup(click.Group):
    """Command group that reports application errors as clean CLI errors."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except AppError as e:
            log_error(e)
            raise click.ClickException(format_for_cli(e)) from e


def _projects(ctx: click.Context) -> ProjectManager:
    storage = ctx.obj.get("storage")
    return ProjectManager(storage / "projects" if storage else None)


def _sessions(ctx: click.Context) -> StorageManager:
    manager = StorageManager(FileSystemDriver(ctx.obj.get("storage")))
    manager.load_model_config()
    return manager


def _load_vfs(manager: ProjectManager, project: str) -> VirtualFileSystem:
    vfs = VirtualFileSystem()
    vfs.load_snapshot(manager.load_project_vfs(project))
    return vfs


def _find_conversation(manager: ProjectManager, project: str, conv_id: str):
    for conv in manager.list_conversations(project):
        if conv.id == conv_id:
            return conv
    raise click.ClickException(f'Conversation "{conv_id}" not found in project "{project}"')


@click.group(cls=AppGroup)
@click.option(
    "--storage",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Storage root (defaults to $AGENT_STORAGE_PATH or ./.agent-storage).",
)
@click.pass_context
def main(ctx, storage):
    """Manage an AI coding agent's projects, conversations and files."""
    load_dotenv()
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["storage"] = storage


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the HTTP API."""
    click.echo(f"Starting agent-workspace on http://{host}:{port}")
    uvicorn.run("agent_workspace.server:app", host=host, port=port, reload=False)


# ── Projects ─────────────────────────────────────────────────────


@main.group()
def projects():
    """Create and list projects."""


@projects.command("list")
@click.pass_context
def list_projects(ctx):
    items = _projects(ctx).list_projects()
    if not items:
        click.echo(click.style("No projects yet. Create one to get started!", fg="bright_black"))
        return
    for index, project in enumerate(items, 1):
        count = pluralize(project.conversations_count, "conversation")
        click.echo(f"{click.style(f'{index}.', fg='cyan')} {project.name} {click.style(f'({count})', fg='bright_black')}")


@projects.command("create")
@click.argument("name")
@click.option("--model", default=None, help="Default model id (defaults to the configured model).")
@click.pass_context
def create_project(ctx, name: str, model: str | None):
    if model is None:
        config = _sessions(ctx).get_model_config()
        model = config.model_id if config else None
    project = _projects(ctx).create_project(name, model)
    click.echo(click.style(f'Project "{project.name}" created successfully!', fg="green"))


@projects.command("show")
@click.argument("name")
@click.pass_context
def show_project(ctx, name: str):
    manager = _projects(ctx)
    project = manager.get_project(name)
    if project is None:
        raise click.ClickException(f'Project "{name}" not found')

    click.echo(click.style(project.name, fg="cyan", bold=True))
    click.echo(f"  Path: {project.path}")
    click.echo(f"  Created: {format_time_ago(project.created_at)}")
    click.echo(f"  Default model: {project.default_model or 'none'}")
    click.echo(f"  Conversations: {project.conversations_count}")
    click.echo(f"  Files: {len(manager.load_project_vfs(name))}")


# ── Conversations ────────────────────────────────────────────────


@main.group()
def conversations():
    """Create, inspect and export conversations."""


@conversations.command("list")
@click.argument("project")
@click.pass_context
def list_conversations(ctx, project: str):
    manager = _projects(ctx)
    if manager.get_project(project) is None:
        raise click.ClickException(f'Project "{project}" not found')

    items = manager.list_conversations(project)
    if not items:
        click.echo(click.style("No conversations yet. Create one to get started!", fg="bright_black"))
        return
    for index, conv in enumerate(items, 1):
        files = "no files" if conv.file_count == 0 else pluralize(conv.file_count, "file")
        click.echo(f"{click.style(f'{index}.', fg='cyan')} {conv.display_name}")
        click.echo(click.style(
            f"   {pluralize(conv.message_count, 'message')}, {files} • {format_time_ago(conv.last_modified)}",
            dim=True,
        ))


@conversations.command("create")
@click.argument("project")
@click.option("--name", default=None, help="Conversation name (optional).")
@click.pass_context
def create_conversation(ctx, project: str, name: str | None):
    conv = _projects(ctx).create_conversation(project, name)
    click.echo(click.style(f'Conversation "{conv.display_name}" created!', fg="green"))
    click.echo(conv.id)


@conversations.command("show")
@click.argument("project")
@click.argument("conv_id")
@click.pass_context
def show_conversation(ctx, project: str, conv_id: str):
    manager = _projects(ctx)
    data = manager.load_conversation(project, conv_id)
    conv = _find_conversation(manager, project, conv_id)

    click.echo(click.style(conv.display_name, fg="cyan", bold=True))
    click.echo(click.style(f"{conv.id} • {pluralize(conv.message_count, 'message')}", dim=True))
    click.echo()
    for msg in data.messages:
        role = msg.get("role", "unknown") if isinstance(msg, dict) else "unknown"
        content = msg.get("content") if isinstance(msg, dict) else msg
        text = content if isinstance(content, str) else repr(content)
        click.echo(f"{click.style(role + ':', bold=True)} {text}")
    click.echo()
    click.echo(render_todos(TodoManager.from_items(data.todos)))


@conversations.command("rename")
@click.argument("project")
@click.argument("conv_id")
@click.argument("title")
@click.pass_context
def rename_conversation(ctx, project: str, conv_id: str, title: str):
    _projects(ctx).update_conversation_title(project, conv_id, title)
    click.echo(click.style(f"Renamed {conv_id} to {title!r}", fg="green"))


@conversations.command("export")
@click.argument("project")
@click.argument("conv_id")
@click.option("--format", "fmt", type=click.Choice(["md", "json"]), default="md", show_default=True)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.pass_context
def export_conversation(ctx, project: str, conv_id: str, fmt: str, output: Path | None):
    """Export a conversation as Markdown or JSON."""
    manager = _projects(ctx)
    data = manager.load_conversation(project, conv_id)
    conv = _find_conversation(manager, project, conv_id)
    content = conversation_to_json(conv, data) if fmt == "json" else conversation_to_markdown(conv, data)

    if output is None:
        click.echo(content)
    else:
        output.write_text(content, encoding="utf-8")
        click.echo(f"Wrote {output}")


# ── Files ────────────────────────────────────────────────────────


@main.group()
def files():
    """Inspect and export a project's virtual file system."""


@files.command("tree")
@click.argument("project")
@click.pass_context
def files_tree(ctx, project: str):
    click.echo(render_file_tree(_load_vfs(_projects(ctx), project)))


@files.command("info")
@click.argument("project")
@click.argument("path")
@click.pass_context
def files_info(ctx, project: str, path: str):
    click.echo(render_file_info(_load_vfs(_projects(ctx), project), path))


@files.command("export")
@click.argument("project")
@click.option("--dest", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Target directory (defaults to <workspace>/<project>).")
@click.pass_context
def files_export(ctx, project: str, dest: Path | None):
    """Mirror the project's files to a real directory, replacing it."""
    manager = _projects(ctx)
    if manager.get_project(project) is None:
        raise click.ClickException(f'Project "{project}" not found')
    snapshot = manager.load_project_vfs(project)
    target = manager.export_to_workspace(project, snapshot, dest)
    click.echo(f"Exported {pluralize(len(snapshot), 'file')} to {target}")


# ── Sessions and model ───────────────────────────────────────────


@main.group()
def sessions():
    """List and remove saved agent sessions."""


@sessions.command("list")
@click.pass_context
def list_sessions(ctx):
    ids = _sessions(ctx).list_sessions()
    if not ids:
        click.echo(click.style("No saved sessions", fg="bright_black"))
    for session_id in ids:
        click.echo(session_id)


@sessions.command("delete")
@click.argument("session_id")
@click.pass_context
def delete_session(ctx, session_id: str):
    manager = _sessions(ctx)
    if not manager.has_session(session_id):
        raise click.ClickException(f"Session not found: {session_id}")
    manager.delete_session(session_id)
    click.echo(f"Session deleted: {session_id}")


@sessions.command("clear")
@click.confirmation_option(prompt="Delete all saved sessions?")
@click.pass_context
def clear_sessions(ctx):
    _sessions(ctx).clear_all()
    click.echo("All sessions cleared")


@main.group()
def model():
    """Show or change the default model."""


@model.command("show")
@click.pass_context
def show_model(ctx):
    config = _sessions(ctx).get_model_config()
    click.echo(f"Current model: {config.describe() if config else 'Not configured'}")


@model.command("set")
@click.argument("model_id")
@click.option("--reasoning-effort", type=click.Choice(["low", "medium", "high"]), default=None,
              help="Enable reasoning with this effort.")
@click.pass_context
def set_model(ctx, model_id: str, reasoning_effort: str | None):
    config = _sessions(ctx).set_model_config(
        model_id,
        reasoning_enabled=reasoning_effort is not None,
        reasoning_effort=reasoning_effort or "medium",
    )
    click.echo(click.style(f"Model changed to: {config.describe()}", fg="green"))
