import logging

import pytest

from octorelease.core import ReleaseOrchestrator
from octorelease.errors import ReleaseError
from octorelease.models import (
    BuildRecord,
    Commit,
    Environment,
    JobContext,
    PackageConfiguration,
    Project,
    Release,
    ReleaseConfig,
    ServerConfig,
)
from octorelease.services.build_history import BuildHistory


class FakeApi:
    def __init__(self, projects=(), environments=(), create_error=None, deploy_error=None):
        self.projects = {project.name: project for project in projects}
        self.environments = {environment.name: environment for environment in environments}
        self.create_error = create_error
        self.deploy_error = deploy_error
        self.calls = []
        self.created = []
        self.deployments = []

    def get_project_by_name(self, name, ignore_case=False):
        self.calls.append(("get_project_by_name", name))
        return self.projects.get(name)

    def get_environment_by_name(self, name, ignore_case=False):
        self.calls.append(("get_environment_by_name", name))
        return self.environments.get(name)

    def create_release(self, release_request):
        self.calls.append(("create_release", release_request.release_version))
        if self.create_error:
            raise self.create_error
        self.created.append(release_request)
        return Release(id="Releases-1", version=release_request.release_version, project_id=release_request.project_id)

    def get_release(self, project_id, version):
        return Release(id="Releases-1", version=version, project_id=project_id)

    def create_deployment(self, release_id, environment_id):
        self.calls.append(("create_deployment", release_id, environment_id))
        if self.deploy_error:
            raise self.deploy_error
        self.deployments.append((release_id, environment_id))
        return {"Id": "Deployments-1", "TaskId": "ServerTasks-1"}


WIDGETS = Project(id="Projects-1", name="Widgets")
STAGING = Environment(id="Environments-1", name="Staging")


def _orchestrator(api):
    return ReleaseOrchestrator(server=ServerConfig(host="https://octopus.example.com", api_key="API-KEY"), api=api)


def _config(**overrides):
    values = {
        "project": "Widgets",
        "release_version": "1.2.3",
        "packages": [PackageConfiguration("core", "1.2.3")],
    }
    values.update(overrides)
    return ReleaseConfig(**values)


@pytest.fixture
def job(tmp_path):
    return JobContext(workspace=tmp_path, env={"BUILD_NUMBER": "7"})


def test_release_is_created_with_exact_parameters(job):
    api = FakeApi(projects=[WIDGETS])

    assert _orchestrator(api).create_and_optionally_deploy_release(_config(), job) is True

    assert len(api.created) == 1
    request = api.created[0]
    assert request.project_id == "Projects-1"
    assert request.release_version == "1.2.3"
    assert request.release_notes is None
    assert [(p.package_name, p.package_version) for p in request.packages] == [("core", "1.2.3")]
    assert api.deployments == []


def test_missing_project_aborts_before_create(job, caplog):
    api = FakeApi()

    with caplog.at_level(logging.INFO, logger="octorelease"):
        result = _orchestrator(api).create_and_optionally_deploy_release(_config(), job)

    assert result is False
    assert not any(call[0] == "create_release" for call in api.calls)
    assert "Project 'Widgets' was not found." in caplog.text


def test_all_lookups_run_even_after_a_failure(job, caplog):
    api = FakeApi()
    config = _config(deploy=True, environment="Staging", release_notes=True, release_notes_source="wiki")

    with caplog.at_level(logging.INFO, logger="octorelease"):
        assert _orchestrator(api).create_and_optionally_deploy_release(config, job) is False

    assert ("get_environment_by_name", "Staging") in api.calls
    assert "found 'wiki'" in caplog.text
    assert "Environment 'Staging' was not found." in caplog.text
    assert api.created == []


def test_deploy_false_never_touches_environments(job):
    api = FakeApi(projects=[WIDGETS], environments=[STAGING])

    assert _orchestrator(api).create_and_optionally_deploy_release(_config(environment="Staging"), job)

    assert not any(call[0] in ("get_environment_by_name", "create_deployment") for call in api.calls)


def test_failed_create_skips_deployment(job):
    api = FakeApi(projects=[WIDGETS], environments=[STAGING], create_error=ReleaseError("HTTP 400"))

    result = _orchestrator(api).create_and_optionally_deploy_release(
        _config(deploy=True, environment="Staging"),
        job,
    )

    assert result is False
    assert not any(call[0] == "create_deployment" for call in api.calls)


def test_release_is_deployed_when_requested(job):
    api = FakeApi(projects=[WIDGETS], environments=[STAGING])

    result = _orchestrator(api).create_and_optionally_deploy_release(
        _config(deploy=True, environment="Staging"),
        job,
    )

    assert result is True
    assert api.deployments == [("Releases-1", "Environments-1")]


def test_failed_deployment_keeps_release_and_fails(job):
    api = FakeApi(projects=[WIDGETS], environments=[STAGING], deploy_error=ReleaseError("HTTP 500"))

    result = _orchestrator(api).create_and_optionally_deploy_release(
        _config(deploy=True, environment="Staging"),
        job,
    )

    assert result is False
    assert len(api.created) == 1


def test_release_notes_come_from_workspace_file(job):
    (job.workspace / "notes.txt").write_text("fixed bug", encoding="utf-8")
    api = FakeApi(projects=[WIDGETS])
    config = _config(release_notes=True, release_notes_source="file", release_notes_file="notes.txt")

    assert _orchestrator(api).create_and_optionally_deploy_release(config, job) is True
    assert api.created[0].release_notes == "fixed bug"


def test_unreadable_notes_file_aborts(job):
    api = FakeApi(projects=[WIDGETS])
    config = _config(release_notes=True, release_notes_source="file", release_notes_file="missing.txt")

    assert _orchestrator(api).create_and_optionally_deploy_release(config, job) is False
    assert api.created == []


def test_release_notes_from_scm_history(tmp_path):
    history = BuildHistory(
        [
            BuildRecord(number=1, result="SUCCESS", changes=(Commit("old"),)),
            BuildRecord(number=2, result="FAILURE", changes=(Commit("fix login"),)),
            BuildRecord(number=3, changes=(Commit("mine"),)),
        ]
    )
    job = JobContext(workspace=tmp_path, history=history, current_build=history.get(3))
    api = FakeApi(projects=[WIDGETS])

    assert _orchestrator(api).create_and_optionally_deploy_release(
        _config(release_notes=True, release_notes_source="scm"),
        job,
    )
    assert api.created[0].release_notes == "fix login\n"


def test_variables_are_substituted_and_packages_keyed_by_name(job):
    api = FakeApi(projects=[WIDGETS])
    config = _config(
        release_version="1.2.${BUILD_NUMBER}",
        packages=[
            PackageConfiguration("core", "1.0.$BUILD_NUMBER"),
            PackageConfiguration("web", "2.0"),
            PackageConfiguration("core", "1.1.$BUILD_NUMBER"),
        ],
    )

    assert _orchestrator(api).create_and_optionally_deploy_release(config, job)

    request = api.created[0]
    assert request.release_version == "1.2.7"
    assert [(p.package_name, p.package_version) for p in request.packages] == [
        ("core", "1.1.7"),
        ("web", "2.0"),
    ]


def test_start_header_lists_inputs(job, caplog):
    api = FakeApi(projects=[WIDGETS], environments=[STAGING])
    config = _config(
        release_notes=True,
        release_notes_source="scm",
        deploy=True,
        environment=" Staging ",
        wait_for_deployment=False,
    )
    job.history = BuildHistory([])
    job.current_build = BuildRecord(number=7)

    with caplog.at_level(logging.INFO, logger="octorelease"):
        _orchestrator(api).create_and_optionally_deploy_release(config, job)

    messages = [record.getMessage() for record in caplog.records]
    header = messages[: messages.index("=======================", 2) + 1]
    assert header == [
        "Started Octopus Release",
        "=======================",
        "Project: Widgets",
        "Release Version: 1.2.3",
        "Include Release Notes?: true",
        "\tRelease Notes Source: scm",
        "\tRelease Notes File: ",
        "Deploy this Release?: true",
        "\tEnvironment: Staging",
        "\tWait for Deployment: false",
        "Package Configurations:",
        "\tcore\tv1.2.3",
        "=======================",
    ]


def test_unexpected_errors_become_failures(job):
    class BrokenApi(FakeApi):
        def get_project_by_name(self, name, ignore_case=False):
            raise KeyError("Id")

    assert _orchestrator(BrokenApi()).create_and_optionally_deploy_release(_config(), job) is False
