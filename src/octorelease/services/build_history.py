"""Build history access and release-notes aggregation from SCM changes."""

import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from octorelease.constants import BUILD_RESULTS_SUCCESSFUL
from octorelease.errors import ReleaseError
from octorelease.models import BuildRecord, Commit


class BuildHistory:
    """Read-only, chronologically ordered view over a job's builds."""

    def __init__(self, builds: Iterable[BuildRecord]):
        ordered = sorted(builds, key=lambda build: build.number)
        counts = Counter(build.number for build in ordered)
        duplicates = sorted(number for number, count in counts.items() if count > 1)
        if duplicates:
            duplicate_list = ", ".join(str(number) for number in duplicates)
            raise ReleaseError(f"Build history contains duplicate build numbers: {duplicate_list}")

        self._builds: List[BuildRecord] = ordered
        self._index: Dict[int, int] = {build.number: pos for pos, build in enumerate(ordered)}

    def __len__(self) -> int:
        return len(self._builds)

    def __iter__(self):
        return iter(self._builds)

    def first(self) -> Optional[BuildRecord]:
        return self._builds[0] if self._builds else None

    def get(self, number: int) -> Optional[BuildRecord]:
        pos = self._index.get(number)
        return self._builds[pos] if pos is not None else None

    def next_build(self, number: int) -> Optional[BuildRecord]:
        pos = self._index.get(number)
        if pos is None or pos + 1 >= len(self._builds):
            return None
        return self._builds[pos + 1]

    def last_successful(self) -> Optional[BuildRecord]:
        for build in reversed(self._builds):
            if build.result in BUILD_RESULTS_SUCCESSFUL:
                return build
        return None

    @classmethod
    def from_file(cls, history_path: str) -> "BuildHistory":
        path = Path(history_path)
        if not path.exists():
            raise ReleaseError(f"Build history file not found: {history_path}")

        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() == ".json":
                parsed = json.loads(text)
            else:
                parsed = yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise ReleaseError(f"Invalid build history file '{history_path}': {exc}") from exc

        if parsed is None:
            return cls([])
        if not isinstance(parsed, dict) or not isinstance(parsed.get("builds", []), list):
            raise ReleaseError("Build history file must contain a `builds` list at the root.")

        return cls(cls._parse_build(entry) for entry in parsed.get("builds") or [])

    @staticmethod
    def _parse_build(entry: Any) -> BuildRecord:
        if not isinstance(entry, dict) or "number" not in entry:
            raise ReleaseError(f"Invalid build history entry: {entry!r}")

        try:
            number = int(entry["number"])
        except (TypeError, ValueError) as exc:
            raise ReleaseError(f"Invalid build number: {entry['number']!r}") from exc

        result = entry.get("result")
        changes = []
        for change in entry.get("changes") or []:
            if isinstance(change, str):
                changes.append(Commit(message=change))
            elif isinstance(change, dict) and isinstance(change.get("message"), str):
                changes.append(
                    Commit(
                        message=change["message"],
                        author=change.get("author"),
                        commit_id=change.get("id"),
                    )
                )
            else:
                raise ReleaseError(f"Invalid change in build {number}: {change!r}")

        return BuildRecord(
            number=number,
            result=str(result).upper() if result is not None else None,
            changes=tuple(changes),
        )


class ChangeHistoryWalker:
    """Collects commit messages of builds since the last successful one."""

    def __init__(self, history: BuildHistory, logger):
        self.history = history
        self.logger = logger

    def collect_messages(self, current: BuildRecord) -> str:
        """Return messages of every build strictly between the last
        successful build and `current`, oldest first, one per line.

        The current build's own changes are never included. If the history
        ends before `current` is reached, whatever was gathered is returned.
        """
        last_successful = self.history.last_successful()
        if last_successful is not None and last_successful == current:
            self.logger.debug("Last successful build is the current build; no SCM notes.")
            return ""

        if last_successful is None:
            build = self.history.first()
        else:
            build = self.history.next_build(last_successful.number)

        notes = []
        while build is not None and build != current:
            self.logger.debug("Collecting %s change(s) from build #%s", len(build.changes), build.number)
            for commit in build.changes:
                notes.append(f"{commit.message}\n")
            build = self.history.next_build(build.number)

        return "".join(notes)
