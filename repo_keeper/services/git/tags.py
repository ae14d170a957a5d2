"""Tag listing and removal across repositories."""

from typing import Dict, Iterable, List, Sequence

from repo_keeper.constants import DEFAULT_REMOTE
from repo_keeper.exceptions import GitOperationError, OperationCancelledError
from repo_keeper.logging_config import get_logger
from repo_keeper.models import RepositoryRecord, TagRemovalResult
from repo_keeper.services.git.executor import GitCommandExecutor, git_args
from repo_keeper.services.git.parsers import matches_wildcard, parse_ref_names

logger = get_logger(__name__)


class TagService:
    """Service for tag operations."""

    def __init__(self, executor: GitCommandExecutor):
        self.executor = executor

    def list_tags(self, record: RepositoryRecord, pattern: str = "*") -> List[str]:
        """Tags of one repository whose name matches ``pattern`` (``*``, ``?``, any case)."""
        output = self.executor.run_checked(record.path, git_args(record, "tag", "-l"))
        return [tag for tag in parse_ref_names(output) if matches_wildcard(tag, pattern)]

    def find_tags(
        self, records: Iterable[RepositoryRecord], patterns: Sequence[str]
    ) -> Dict[str, List[str]]:
        """Map of repository path to matching tags. Unreadable repositories are logged and left out."""
        found: Dict[str, List[str]] = {}
        for record in records:
            try:
                tags = self.list_tags(record)
            except OperationCancelledError:
                raise
            except GitOperationError as e:
                logger.warning(f"Could not list tags of {record.path}: {e.message}")
                continue
            matching = [tag for tag in tags if any(matches_wildcard(tag, p) for p in patterns)]
            if matching:
                found[record.path] = matching
        return found

    def remove_tag(self, record: RepositoryRecord, tag: str, remote: bool = True) -> TagRemovalResult:
        """Delete a tag locally and then from the default remote."""
        try:
            self.executor.run_checked(record.path, git_args(record, "tag", "-d", tag))
        except GitOperationError as e:
            return TagRemovalResult(record.path, tag, error=e.message)

        if not remote or not record.remote_url:
            return TagRemovalResult(record.path, tag, local_removed=True)

        try:
            self.executor.run_checked(
                record.path, git_args(record, "push", DEFAULT_REMOTE, f":refs/tags/{tag}")
            )
        except GitOperationError as e:
            return TagRemovalResult(record.path, tag, local_removed=True, error=e.message)
        return TagRemovalResult(record.path, tag, local_removed=True, remote_removed=True)

    def remove_tags(
        self,
        records: Iterable[RepositoryRecord],
        patterns: Sequence[str],
        remote: bool = True,
    ) -> List[TagRemovalResult]:
        """Remove every tag matching one of ``patterns`` from every repository."""
        records = list(records)
        by_path = {record.path: record for record in records}
        results = []
        for path, tags in self.find_tags(records, patterns).items():
            for tag in tags:
                result = self.remove_tag(by_path[path], tag, remote=remote)
                if result.ok:
                    logger.info(f"Removed tag {tag} from {path}")
                else:
                    logger.warning(f"Could not remove tag {tag} from {path}: {result.error}")
                results.append(result)
        return results
