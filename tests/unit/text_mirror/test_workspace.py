"""Unit tests for text_mirror.workspace module."""

import pytest
from unittest.mock import Mock

from src.atlassian_client.errors import APIUnreachableError, TransportError
from src.models.entities import EntityKind, Issue, Page
from src.text_mirror.coordinator import SaveResult
from src.text_mirror.serializer import TextMirrorSerializer
from src.text_mirror.workspace import MirrorWorkspace
from tests.fixtures.sample_entities import issue_payload, page_payload


@pytest.fixture
def jira():
    client = Mock()
    client.get_issue.return_value = Issue.from_api(issue_payload())
    return client


@pytest.fixture
def confluence():
    client = Mock()
    client.get_page.return_value = Page.from_api(page_payload())
    return client


@pytest.fixture
def coordinator():
    return Mock()


@pytest.fixture
def workspace(tmp_path, coordinator, jira, confluence):
    return MirrorWorkspace(tmp_path, coordinator, jira, confluence)


class TestPaths:
    def test_mirror_paths(self, workspace, tmp_path):
        assert workspace.mirror_path(EntityKind.ISSUE, "PROJ-1") == tmp_path / ".jira" / "PROJ-1.jira.md"
        assert workspace.mirror_path(EntityKind.PAGE, "42") == tmp_path / ".confluence" / "page-42.confluence.md"

    def test_kind_for_path(self):
        assert MirrorWorkspace.kind_for_path("x/PROJ-1.jira.md") is EntityKind.ISSUE
        assert MirrorWorkspace.kind_for_path("page-42.confluence.md") is EntityKind.PAGE

    def test_unknown_suffix(self):
        with pytest.raises(ValueError):
            MirrorWorkspace.kind_for_path("notes.md")


class TestOpen:
    def test_open_page_writes_mirror(self, workspace, tmp_path):
        session = workspace.open_page("42")

        assert session.path == tmp_path / ".confluence" / "page-42.confluence.md"
        text = session.path.read_text(encoding="utf-8")
        assert text == session.text
        assert text.startswith("---\nentityType: page\nid: '42'\n")
        assert workspace.session_for(EntityKind.PAGE, "42") is session

    def test_open_issue_writes_mirror(self, workspace, tmp_path):
        session = workspace.open_issue("PROJ-123")

        assert session.path == tmp_path / ".jira" / "PROJ-123.jira.md"
        assert "summary: Fix login timeout" in session.path.read_text(encoding="utf-8")

    def test_sessions_are_independent(self, workspace):
        workspace.open_page("42")
        workspace.open_issue("PROJ-123")

        kinds = sorted(s.kind.value for s in workspace.sessions)
        assert kinds == ["issue", "page"]

    def test_templates(self, workspace, tmp_path):
        issue = workspace.new_issue("PROJ")
        page = workspace.new_page("TEAM", parent_id="7")

        assert issue.path == tmp_path / ".jira" / "new.jira.md"
        assert page.path == tmp_path / ".confluence" / "page-new.confluence.md"
        assert "parentId: '7'" in page.path.read_text(encoding="utf-8")


class TestSave:
    def test_update_rewrites_mirror_with_new_version(self, workspace, coordinator):
        session = workspace.open_page("42")
        refreshed = Page.from_api(page_payload(version=4))
        coordinator.save.return_value = SaveResult(
            kind=EntityKind.PAGE, identifier="42", message="Updated", entity=refreshed,
            update_attempts=1, version=4,
        )

        result = workspace.save(session.path)

        coordinator.save.assert_called_once_with(session.text, EntityKind.PAGE)
        assert result.version == 4
        assert "version: 4" in session.path.read_text(encoding="utf-8")

    def test_create_replaces_template(self, workspace, coordinator, tmp_path):
        template = workspace.new_page("TEAM")
        created = Page.from_api(page_payload(page_id="99", version=1))
        coordinator.save.return_value = SaveResult(
            kind=EntityKind.PAGE, identifier="99", message="Created", entity=created, created=True,
        )

        workspace.save(template.path)

        assert not template.path.exists()
        assert (tmp_path / ".confluence" / "page-99.confluence.md").exists()
        assert workspace.session_for(EntityKind.PAGE, "new") is None
        assert workspace.session_for(EntityKind.PAGE, "99") is not None

    def test_create_without_entity_reopens(self, workspace, coordinator, jira, tmp_path):
        template = workspace.new_issue("PROJ")
        coordinator.save.return_value = SaveResult(
            kind=EntityKind.ISSUE, identifier="PROJ-123", message="Created", created=True,
        )

        workspace.save(template.path)

        jira.get_issue.assert_called_once_with("PROJ-123")
        assert (tmp_path / ".jira" / "PROJ-123.jira.md").exists()

    def test_create_keeps_result_when_reopen_fails(self, workspace, coordinator, jira, tmp_path):
        template = workspace.new_issue("PROJ")
        template.path.write_text(
            template.text.replace("New Issue Title", "Login fails"), encoding="utf-8"
        )
        coordinator.save.return_value = SaveResult(
            kind=EntityKind.ISSUE, identifier="PROJ-124", message="Created issue PROJ-124",
            created=True,
        )
        jira.get_issue.side_effect = TransportError(503, "unavailable", service="Jira")

        result = workspace.save(template.path)

        assert result.identifier == "PROJ-124"
        assert not template.path.exists()
        mirror = tmp_path / ".jira" / "PROJ-124.jira.md"
        text = mirror.read_text(encoding="utf-8")
        assert "key: PROJ-124" in text
        assert "Login fails" in text
        assert workspace.session_for(EntityKind.ISSUE, "new") is None
        assert workspace.session_for(EntityKind.ISSUE, "PROJ-124").path == mirror

    def test_retired_template_saves_as_update(self, workspace, coordinator, confluence, tmp_path):
        template = workspace.new_page("TEAM")
        coordinator.save.return_value = SaveResult(
            kind=EntityKind.PAGE, identifier="99", message="Created page: New Page Title",
            created=True,
        )
        confluence.get_page.side_effect = APIUnreachableError("https://example.atlassian.net")

        workspace.save(template.path)

        mirror = tmp_path / ".confluence" / "page-99.confluence.md"
        partial = TextMirrorSerializer.deserialize(mirror.read_text(encoding="utf-8"))
        assert partial.identifier == "99"
        assert not partial.is_new

    def test_save_rejects_unknown_file(self, workspace, tmp_path, coordinator):
        other = tmp_path / "notes.txt"
        other.write_text("x", encoding="utf-8")

        with pytest.raises(ValueError):
            workspace.save(other)

        coordinator.save.assert_not_called()
