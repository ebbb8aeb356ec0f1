"""Unit tests for text_mirror.coordinator module.

Covers the create/update routing, the single retry on a stale page version,
and the unversioned issue update path.
"""

import json

import pytest
from unittest.mock import Mock, call

from src.atlassian_client.errors import APIUnreachableError, TransportError
from src.models.entities import EntityKind, Issue, Page
from src.text_mirror.coordinator import (
    UpdateCoordinator,
    description_to_adf,
    is_version_conflict,
)
from src.text_mirror.errors import SaveError
from tests.fixtures.sample_entities import issue_payload, page_payload

CONCRETE_PAGE = "---\nid: \"42\"\ntitle: Spec\nversion: 3\n---\n\n<p>hello</p>"

CONFLICT_TEXT = '{"statusCode":409,"message":"Version must be incremented on update. Current Version is: 5"}'


def conflict_error():
    return TransportError(409, CONFLICT_TEXT, method="PUT", service="Confluence")


@pytest.fixture
def jira():
    client = Mock()
    client.get_issue.return_value = Issue.from_api(issue_payload())
    return client


@pytest.fixture
def confluence():
    client = Mock()
    client.get_page.return_value = Page.from_api(page_payload(version=6))
    return client


@pytest.fixture
def coordinator(jira, confluence):
    return UpdateCoordinator(jira, confluence)


class TestIsVersionConflict:
    """Test cases for the version conflict predicate."""

    def test_signature_in_text(self):
        error = TransportError(400, "Version must be incremented on update")
        assert is_version_conflict(error)

    def test_signature_is_case_insensitive(self):
        assert is_version_conflict(TransportError(400, "VERSION MUST BE INCREMENTED"))

    def test_409_mentioning_version(self):
        assert is_version_conflict(TransportError(409, "Stale version 3"))

    def test_409_without_version(self):
        assert not is_version_conflict(TransportError(409, "Title already exists"))

    def test_other_errors(self):
        assert not is_version_conflict(TransportError(500, "Internal error"))
        assert not is_version_conflict(ValueError("version must be incremented"))


class TestDescriptionToAdf:
    """Test cases for issue body conversion."""

    def test_plain_text_is_wrapped(self):
        adf = description_to_adf("One\n\nTwo")
        assert [p["content"][0]["text"] for p in adf["content"]] == ["One", "Two"]

    def test_adf_json_is_sent_as_is(self):
        doc = {"type": "doc", "version": 1, "content": [{"type": "rule"}]}
        assert description_to_adf(json.dumps(doc, indent=2)) == doc

    def test_json_that_is_not_a_doc_is_text(self):
        adf = description_to_adf('{"a": 1}')
        assert adf["content"][0]["content"][0]["text"] == '{"a": 1}'


class TestPageUpdate:
    """Version-checked page updates."""

    def test_update_uses_embedded_version(self, coordinator, confluence):
        confluence.update_page.return_value = Page.from_api(page_payload(version=4))

        result = coordinator.save(CONCRETE_PAGE)

        confluence.update_page.assert_called_once_with("42", "Spec", "<p>hello</p>", 3)
        confluence.get_page_version.assert_not_called()
        assert result.kind is EntityKind.PAGE
        assert result.identifier == "42"
        assert result.version == 4
        assert result.update_attempts == 1
        assert result.auto_resolved is False
        assert result.created is False

    def test_conflict_is_retried_once_with_fresh_version(self, coordinator, confluence):
        confluence.update_page.side_effect = [
            conflict_error(),
            Page.from_api(page_payload(version=6)),
        ]
        confluence.get_page_version.return_value = 5

        result = coordinator.save(CONCRETE_PAGE)

        assert confluence.update_page.call_args_list == [
            call("42", "Spec", "<p>hello</p>", 3),
            call("42", "Spec", "<p>hello</p>", 5),
        ]
        confluence.get_page_version.assert_called_once_with("42")
        assert result.auto_resolved is True
        assert result.update_attempts == 2
        assert result.version == 6
        assert "resolved a version conflict" in result.message

    def test_second_conflict_fails(self, coordinator, confluence):
        confluence.update_page.side_effect = [conflict_error(), conflict_error()]
        confluence.get_page_version.return_value = 5

        with pytest.raises(SaveError) as exc_info:
            coordinator.save(CONCRETE_PAGE)

        assert confluence.update_page.call_count == 2
        assert exc_info.value.identifier == "42"
        assert exc_info.value.version_conflict is True
        assert "Version must be incremented" in str(exc_info.value)

    def test_non_conflict_error_is_not_retried(self, coordinator, confluence):
        confluence.update_page.side_effect = TransportError(403, "Not permitted", service="Confluence")

        with pytest.raises(SaveError) as exc_info:
            coordinator.save(CONCRETE_PAGE)

        assert confluence.update_page.call_count == 1
        confluence.get_page_version.assert_not_called()
        assert exc_info.value.version_conflict is False
        assert "Confluence API error: 403 - Not permitted" in str(exc_info.value)

    def test_missing_version_and_title_are_fetched(self, coordinator, confluence):
        confluence.get_page.return_value = Page.from_api(page_payload(title="Remote title", version=8))
        confluence.update_page.return_value = Page.from_api(page_payload(version=9))

        coordinator.save("---\nid: 42\n---\n\n<p>new body</p>")

        confluence.update_page.assert_called_once_with("42", "Remote title", "<p>new body</p>", 8)

    def test_unreachable_api_is_a_save_error(self, coordinator, confluence):
        confluence.update_page.side_effect = APIUnreachableError("https://x")

        with pytest.raises(SaveError) as exc_info:
            coordinator.save(CONCRETE_PAGE)

        assert isinstance(exc_info.value.__cause__, APIUnreachableError)

    def test_refetch_failure_keeps_the_save(self, coordinator, confluence):
        confluence.update_page.return_value = Page.from_api(page_payload(version=4))
        confluence.get_page.side_effect = TransportError(500, "boom")

        result = coordinator.save(CONCRETE_PAGE)

        assert result.version == 4
        assert result.entity is None

    def test_non_numeric_page_id_is_a_save_error(self, coordinator, confluence):
        confluence.update_page.side_effect = ValueError("Invalid page_id format: 'abc'")

        with pytest.raises(SaveError):
            coordinator.save("---\nid: abc\ntitle: t\nversion: 1\n---\n\nx")


class TestIssueUpdate:
    """Issue updates are one unconditional PUT."""

    ISSUE_TEXT = (
        "---\nentityType: issue\nkey: PROJ-123\nsummary: Renamed\nissuetype: Story\npriority: Low\n"
        "assigneeAccountId: acc-9\nlabels:\n- ui\nstatus: Done\n---\n\nPlain text\n\nSecond"
    )

    def test_single_put_without_version(self, coordinator, jira, confluence):
        result = coordinator.save(self.ISSUE_TEXT)

        jira.update_issue.assert_called_once()
        key, fields = jira.update_issue.call_args.args
        assert key == "PROJ-123"
        assert fields["summary"] == "Renamed"
        assert fields["priority"] == {"name": "Low"}
        assert fields["assignee"] == {"accountId": "acc-9"}
        assert fields["labels"] == ["ui"]
        assert len(fields["description"]["content"]) == 2
        # Status is read-only in the mirror
        assert "status" not in fields
        assert "issuetype" not in fields
        assert "version" not in fields
        confluence.get_page_version.assert_not_called()
        assert result.update_attempts == 1
        assert result.auto_resolved is False
        assert result.version is None

    def test_conflict_text_is_not_retried(self, coordinator, jira):
        jira.update_issue.side_effect = TransportError(409, CONFLICT_TEXT, service="Jira")

        with pytest.raises(SaveError) as exc_info:
            coordinator.save(self.ISSUE_TEXT)

        assert jira.update_issue.call_count == 1
        assert exc_info.value.version_conflict is False

    def test_kind_from_argument(self, coordinator, jira):
        coordinator.save("---\nkey: PROJ-1\nsummary: s\n---\n\nbody", kind=EntityKind.ISSUE)
        assert jira.update_issue.call_args.args[0] == "PROJ-1"

    def test_refetched_issue_is_returned(self, coordinator, jira):
        result = coordinator.save(self.ISSUE_TEXT)

        jira.get_issue.assert_called_once_with("PROJ-123")
        assert result.entity.key == "PROJ-123"


class TestCreate:
    """Documents with the "new" identifier create entities."""

    def test_create_issue(self, coordinator, jira):
        jira.create_issue.return_value = {"id": "10009", "key": "PROJ-9"}
        text = "---\nentityType: issue\nkey: NEW\nprojectKey: PROJ\nsummary: Add export\n---\n\nDetails"

        result = coordinator.save(text)

        fields = jira.create_issue.call_args.args[0]
        assert fields["project"] == {"key": "PROJ"}
        assert fields["summary"] == "Add export"
        assert fields["issuetype"] == {"name": "Task"}
        assert fields["description"]["type"] == "doc"
        assert result.created is True
        assert result.identifier == "PROJ-9"
        assert result.update_attempts == 0
        jira.get_issue.assert_called_once_with("PROJ-9")

    def test_create_issue_defaults_summary(self, coordinator, jira):
        jira.create_issue.return_value = {"id": "1", "key": "PROJ-1"}

        coordinator.save("---\nentityType: issue\nkey: new\nprojectKey: PROJ\n---\n\n")

        fields = jira.create_issue.call_args.args[0]
        assert fields["summary"] == "New Issue"
        assert "description" not in fields

    def test_create_issue_requires_project(self, coordinator, jira):
        with pytest.raises(SaveError) as exc_info:
            coordinator.save("---\nentityType: issue\nkey: new\n---\n\nx")

        assert "Project key is required" in str(exc_info.value)
        jira.create_issue.assert_not_called()

    def test_create_page(self, coordinator, confluence):
        confluence.create_page.return_value = Page.from_api(page_payload(page_id="99", version=1))
        text = "---\nid: new\ntitle: Runbook\nspaceKey: TEAM\nparentId: '7'\n---\n\n<p>x</p>"

        result = coordinator.save(text)

        confluence.create_page.assert_called_once_with("TEAM", "Runbook", "<p>x</p>", parent_id="7")
        confluence.update_page.assert_not_called()
        assert result.created is True
        assert result.identifier == "99"
        confluence.get_page.assert_called_once_with("99")

    def test_create_page_defaults_title(self, coordinator, confluence):
        confluence.create_page.return_value = Page.from_api(page_payload(page_id="99", version=1))

        coordinator.save("---\nid: new\nspaceKey: TEAM\n---\n\n<p>x</p>")

        assert confluence.create_page.call_args.args[1] == "Untitled"

    def test_create_page_requires_space(self, coordinator, confluence):
        with pytest.raises(SaveError) as exc_info:
            coordinator.save("---\nid: new\ntitle: t\n---\n\nx")

        assert exc_info.value.identifier == "new"
        confluence.create_page.assert_not_called()


class TestMissingIdentifier:
    def test_document_without_identifier(self, coordinator, jira, confluence):
        with pytest.raises(SaveError):
            coordinator.save("no preamble at all")

        confluence.update_page.assert_not_called()
        jira.update_issue.assert_not_called()
