"""Tests for the core data models."""

from datetime import datetime, timezone

import pytest

from agent_workspace.core import (
    Conversation,
    ConversationData,
    ConversationMetadata,
    Message,
    Project,
    ProjectData,
    is_relative_vfs_path,
    utcnow,
)
from agent_workspace.errors import ValidationError

NOW = datetime(2025, 1, 20, 10, 0, 0, tzinfo=timezone.utc)


class TestProject:
    def test_valid_project(self):
        project = Project(name="my-app", path="/tmp/projects/my-app", created_at=NOW, conversations_count=2)
        assert project.default_model is None
        assert project.conversations_count == 2

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_name_must_be_non_empty(self, name):
        with pytest.raises(ValidationError):
            Project(name=name, path="/tmp/x", created_at=NOW)

    def test_path_must_be_non_empty(self):
        with pytest.raises(ValidationError):
            Project(name="my-app", path="", created_at=NOW)

    def test_created_at_must_be_datetime(self):
        with pytest.raises(ValidationError):
            Project(name="my-app", path="/tmp/x", created_at="2025-01-20T10:00:00Z")

    @pytest.mark.parametrize("count", [-1, 1.5, True, "3"])
    def test_conversations_count_must_be_non_negative_int(self, count):
        with pytest.raises(ValidationError):
            Project(name="my-app", path="/tmp/x", created_at=NOW, conversations_count=count)


class TestConversation:
    @pytest.mark.parametrize("conv_id", ["conv-001", "conv-042", "conv-1000"])
    def test_valid_ids(self, conv_id):
        conv = Conversation(id=conv_id, created_at=NOW, last_modified=NOW)
        assert conv.id == conv_id

    @pytest.mark.parametrize("conv_id", ["conv-1", "conv-01", "conversation-001", "conv-abc", "", "../conv-001"])
    def test_invalid_ids(self, conv_id):
        with pytest.raises(ValidationError):
            Conversation(id=conv_id, created_at=NOW, last_modified=NOW)

    def test_counts_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            Conversation(id="conv-001", created_at=NOW, last_modified=NOW, message_count=-1)
        with pytest.raises(ValidationError):
            Conversation(id="conv-001", created_at=NOW, last_modified=NOW, file_count=-3)

    def test_display_name(self):
        named = Conversation(id="conv-001", created_at=NOW, last_modified=NOW, name="Fix bug")
        unnamed = Conversation(id="conv-002", created_at=NOW, last_modified=NOW)
        assert named.display_name == "Fix bug"
        assert unnamed.display_name == "New conversation (conv-002)"

    def test_metadata_validates_id(self):
        with pytest.raises(ValidationError):
            ConversationMetadata(id="bad", created_at=NOW, last_modified=NOW)


class TestProjectData:
    def test_valid_vfs(self):
        data = ProjectData(vfs={"index.html": "<html></html>", "src/app.js": ""}, last_modified=NOW)
        assert len(data.vfs) == 2

    @pytest.mark.parametrize("path", ["/etc/passwd", "../secret.txt", "a/../../b", "", "C:\\x.txt"])
    def test_paths_must_be_relative(self, path):
        with pytest.raises(ValidationError):
            ProjectData(vfs={path: "x"}, last_modified=NOW)

    def test_content_must_be_string(self):
        with pytest.raises(ValidationError):
            ProjectData(vfs={"data.json": {"nested": True}}, last_modified=NOW)

    def test_relative_path_helper(self):
        assert is_relative_vfs_path("assets/logo.png")
        assert not is_relative_vfs_path(42)


class TestConversationData:
    def test_defaults_are_independent(self):
        meta = ConversationMetadata(id="conv-001", created_at=NOW, last_modified=NOW)
        a = ConversationData(metadata=meta)
        b = ConversationData(metadata=meta)
        a.messages.append({"role": "user", "content": "hi"})
        assert b.messages == []

    def test_typed_messages(self):
        meta = ConversationMetadata(id="conv-001", created_at=NOW, last_modified=NOW)
        data: ConversationData[Message] = ConversationData(
            metadata=meta, messages=[Message(role="user", content="hello")]
        )
        assert data.messages[0].role == "user"


def test_utcnow_is_aware_with_millisecond_precision():
    now = utcnow()
    assert now.tzinfo is not None
    assert now.microsecond % 1000 == 0
