"""Release notes resolution from a workspace file or SCM history."""

from pathlib import Path
from typing import Optional

from octorelease.constants import NOTES_SOURCE_FILE, NOTES_SOURCES
from octorelease.errors import ReleaseError
from octorelease.errors_catalog import actionable_error
from octorelease.models import JobContext
from octorelease.services.build_history import ChangeHistoryWalker
from octorelease.services.variables import VariableInjector


class ReleaseNotesProvider:
    """Resolves release notes content for a job.

    An unreadable notes file is an error, never replaced by placeholder text.
    """

    def __init__(self, logger):
        self.logger = logger

    def resolve(self, source: Optional[str], notes_file: str, job: JobContext) -> str:
        if source not in NOTES_SOURCES:
            raise ReleaseError(actionable_error("invalid_notes_source", source=str(source)))

        if source == NOTES_SOURCE_FILE:
            injector = VariableInjector(job.env)
            return self.read_notes_file(injector.inject(notes_file), job.workspace)

        return self.collect_scm_notes(job)

    def read_notes_file(self, notes_file: str, workspace: Path) -> str:
        path = Path(workspace) / notes_file
        self.logger.debug("Reading release notes from %s", path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReleaseError(
                actionable_error("notes_file_unreadable", path=str(path), reason=str(exc))
            ) from exc
        return "\n".join(content.splitlines())

    def collect_scm_notes(self, job: JobContext) -> str:
        if job.history is None or job.current_build is None:
            raise ReleaseError(actionable_error("build_history_missing"))

        walker = ChangeHistoryWalker(job.history, self.logger)
        return walker.collect_messages(job.current_build)
