import pytest

from octorelease.errors import ReleaseError
from octorelease.models import BuildRecord, Commit, JobContext
from octorelease.services.build_history import BuildHistory
from octorelease.services.release_notes import ReleaseNotesProvider


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


def test_file_source_reads_workspace_file(tmp_path):
    (tmp_path / "notes.txt").write_text("fixed bug", encoding="utf-8")
    provider = ReleaseNotesProvider(logger=DummyLogger())

    notes = provider.resolve("file", "notes.txt", JobContext(workspace=tmp_path))

    assert notes == "fixed bug"


def test_file_source_substitutes_variables_and_joins_lines(tmp_path):
    (tmp_path / "notes-42.txt").write_text("line one\r\nline two\n", encoding="utf-8")
    provider = ReleaseNotesProvider(logger=DummyLogger())
    job = JobContext(workspace=tmp_path, env={"BUILD_NUMBER": "42"})

    notes = provider.resolve("file", "notes-${BUILD_NUMBER}.txt", job)

    assert notes == "line one\nline two"


def test_missing_notes_file_is_an_error(tmp_path):
    provider = ReleaseNotesProvider(logger=DummyLogger())

    with pytest.raises(ReleaseError, match="Unable to read release notes file"):
        provider.resolve("file", "missing.txt", JobContext(workspace=tmp_path))


def test_scm_source_with_no_intermediate_commits_is_empty(tmp_path):
    history = BuildHistory(
        [
            BuildRecord(number=1, result="SUCCESS", changes=(Commit("old"),)),
            BuildRecord(number=2, changes=(Commit("current"),)),
        ]
    )
    job = JobContext(workspace=tmp_path, history=history, current_build=history.get(2))
    provider = ReleaseNotesProvider(logger=DummyLogger())

    assert provider.resolve("scm", "", job) == ""


def test_scm_source_requires_build_history(tmp_path):
    provider = ReleaseNotesProvider(logger=DummyLogger())

    with pytest.raises(ReleaseError, match="build history"):
        provider.resolve("scm", "", JobContext(workspace=tmp_path))


def test_unknown_source_is_a_configuration_error(tmp_path):
    provider = ReleaseNotesProvider(logger=DummyLogger())

    with pytest.raises(ReleaseError, match="found 'wiki'"):
        provider.resolve("wiki", "", JobContext(workspace=tmp_path))


def test_missing_source_is_a_configuration_error(tmp_path):
    (tmp_path / "notes.txt").write_text("unused", encoding="utf-8")
    provider = ReleaseNotesProvider(logger=DummyLogger())

    with pytest.raises(ReleaseError, match="found 'None'"):
        provider.resolve(None, "notes.txt", JobContext(workspace=tmp_path))
