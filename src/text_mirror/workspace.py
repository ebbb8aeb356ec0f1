"""Local mirror files for open issues and pages.

Every opened entity is written to a file under the mirror directory and
tracked by a DocumentSession:

    <mirror_dir>/.jira/PROJ-123.jira.md
    <mirror_dir>/.confluence/page-123456.confluence.md

New documents are written from a template with the "new" identifier
(new.jira.md, page-new.confluence.md). Saving a new document creates the
entity, replaces the template with the real mirror and opens a session for it.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from src.atlassian_client.confluence_client import ConfluenceClient
from src.atlassian_client.jira_client import JiraClient
from src.atlassian_client.errors import APIUnreachableError, TransportError
from src.models.entities import EntityKind, RemoteEntity
from src.models.text_document import NEW_IDENTIFIER, TextDocument
from .coordinator import SaveResult, UpdateCoordinator
from .serializer import TextMirrorSerializer

logger = logging.getLogger(__name__)

ISSUE_DIR = ".jira"
PAGE_DIR = ".confluence"
ISSUE_SUFFIX = ".jira.md"
PAGE_SUFFIX = ".confluence.md"


@dataclass
class DocumentSession:
    """One open mirror document.

    Attributes:
        kind: Entity kind
        identifier: Issue key or page id ("new" for an unsaved template)
        path: Mirror file location
        text: Text last written to the file
    """

    kind: EntityKind
    identifier: str
    path: Path
    text: str


class MirrorWorkspace:
    """Owns the mirror directory and the sessions opened in it.

    Sessions are keyed by (kind, identifier), so any number of documents can
    be open side by side.

    Example:
        >>> workspace = MirrorWorkspace(".", coordinator, jira, confluence)
        >>> session = workspace.open_page("123456")
        >>> # edit session.path, then
        >>> result = workspace.save(session.path)
    """

    def __init__(
        self,
        root: Union[str, Path],
        coordinator: UpdateCoordinator,
        jira: JiraClient,
        confluence: ConfluenceClient,
    ):
        self.root = Path(root)
        self._coordinator = coordinator
        self._jira = jira
        self._confluence = confluence
        self._sessions: Dict[Tuple[EntityKind, str], DocumentSession] = {}

    @property
    def sessions(self) -> List[DocumentSession]:
        return list(self._sessions.values())

    def session_for(self, kind: EntityKind, identifier: str) -> Optional[DocumentSession]:
        return self._sessions.get((kind, identifier))

    def mirror_path(self, kind: EntityKind, identifier: str) -> Path:
        if kind is EntityKind.ISSUE:
            return self.root / ISSUE_DIR / f"{identifier}{ISSUE_SUFFIX}"
        return self.root / PAGE_DIR / f"page-{identifier}{PAGE_SUFFIX}"

    @staticmethod
    def kind_for_path(path: Union[str, Path]) -> EntityKind:
        """Infer the entity kind from a mirror file name.

        Raises:
            ValueError: If the name has neither mirror suffix
        """
        name = Path(path).name
        if name.endswith(ISSUE_SUFFIX):
            return EntityKind.ISSUE
        if name.endswith(PAGE_SUFFIX):
            return EntityKind.PAGE
        raise ValueError(
            f"Not a mirror file: {name} (expected *{ISSUE_SUFFIX} or *{PAGE_SUFFIX})"
        )

    # ----- open -----

    def open_issue(self, issue_key: str) -> DocumentSession:
        """Fetch an issue and (over)write its mirror file."""
        return self._write_entity(self._jira.get_issue(issue_key))

    def open_page(self, page_id: str) -> DocumentSession:
        """Fetch a page and (over)write its mirror file."""
        return self._write_entity(self._confluence.get_page(page_id))

    def new_issue(self, project_key: str) -> DocumentSession:
        document = TextMirrorSerializer.new_document_template(EntityKind.ISSUE, project_key)
        return self._write_document(document, NEW_IDENTIFIER)

    def new_page(self, space_key: str, parent_id: Optional[str] = None) -> DocumentSession:
        document = TextMirrorSerializer.new_document_template(
            EntityKind.PAGE, space_key, parent_id=parent_id
        )
        return self._write_document(document, NEW_IDENTIFIER)

    # ----- save -----

    def save(self, path: Union[str, Path]) -> SaveResult:
        """Save a mirror file back to the remote.

        After a create the template file is replaced by the mirror of the
        created entity. After an update the file is rewritten from the
        refreshed entity so it carries the new version.

        Raises:
            ValueError: If the path is not a mirror file
            OSError: If the file cannot be read
            SaveError: If the remote write fails
        """
        path = Path(path)
        kind = self.kind_for_path(path)
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()

        result = self._coordinator.save(text, kind)

        if result.created:
            session = self._open_created(result)
            if session is None:
                session = self._retire_template(path, text, result)
            elif path.resolve() != session.path.resolve():
                path.unlink()
                logger.debug(f"Removed template {path}")
            self._sessions.pop((result.kind, NEW_IDENTIFIER), None)
        elif result.entity is not None:
            self._write_entity(result.entity, path=path)

        return result

    def _open_created(self, result: SaveResult) -> Optional[DocumentSession]:
        """Write the mirror of a created entity, fetching it if needed.

        Returns None if the entity could not be fetched.
        """
        if result.entity is not None:
            return self._write_entity(result.entity)
        try:
            if result.kind is EntityKind.ISSUE:
                return self.open_issue(result.identifier)
            return self.open_page(result.identifier)
        except (TransportError, APIUnreachableError) as e:
            logger.warning(f"Created {result.kind.value} {result.identifier} but could not open it: {e}")
            return None

    def _retire_template(self, path: Path, text: str, result: SaveResult) -> DocumentSession:
        """Move a saved template to the created entity's mirror path.

        The identifier in the preamble is replaced so a second save updates
        the created entity instead of creating another one.
        """
        preamble, body = TextMirrorSerializer.split(text)
        preamble = dict(preamble)
        preamble["key" if result.kind is EntityKind.ISSUE else "id"] = result.identifier
        document = TextDocument(kind=result.kind, preamble=preamble, body=body)

        session = self._write_document(document, result.identifier)
        if path.resolve() != session.path.resolve():
            path.unlink()
            logger.debug(f"Moved template {path} to {session.path}")
        return session

    # ----- helpers -----

    def _write_entity(
        self,
        entity: RemoteEntity,
        path: Optional[Path] = None,
    ) -> DocumentSession:
        document = TextMirrorSerializer.serialize(entity)
        return self._write_document(document, entity.identifier, path=path)

    def _write_document(
        self,
        document: TextDocument,
        identifier: str,
        path: Optional[Path] = None,
    ) -> DocumentSession:
        path = path or self.mirror_path(document.kind, identifier)
        text = document.render()

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        logger.debug(f"Wrote {document.kind.value} {identifier} to {path}")

        session = DocumentSession(
            kind=document.kind, identifier=identifier, path=path, text=text
        )
        self._sessions[(document.kind, identifier)] = session
        return session
