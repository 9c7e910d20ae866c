import logging
from typing import Dict, Iterable, Optional, Tuple

import requests
from rich.console import Console

from .constants import DEFAULT_DEPLOYMENT_TIMEOUT, DEFAULT_POLL_INTERVAL, HEADER_SEPARATOR
from .errors import ReleaseError
from .errors_catalog import actionable_error
from .models import (
    DeploymentRequest,
    Environment,
    JobContext,
    PackageConfiguration,
    PackageSelection,
    Project,
    ReleaseConfig,
    ReleaseRequest,
    ServerConfig,
)
from .services.deployment import DeploymentService
from .services.octopus_api import OctopusApi
from .services.release_notes import ReleaseNotesProvider
from .services.variables import VariableInjector

console = Console()
logger = logging.getLogger("octorelease")


def _flag(value: bool) -> str:
    return "true" if value else "false"


class ReleaseOrchestrator:
    """Creates an Octopus release for a job and optionally deploys it."""

    def __init__(
        self,
        server: ServerConfig,
        deployment_timeout: float = DEFAULT_DEPLOYMENT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        api: Optional[OctopusApi] = None,
        deployment_service: Optional[DeploymentService] = None,
    ):
        self.server = server
        self.api = api or OctopusApi(server=server, logger=logger, requests_module=requests)
        self.notes_provider = ReleaseNotesProvider(logger=logger)
        self.deployment_service = deployment_service or DeploymentService(
            api=self.api,
            logger=logger,
            console=console,
            deployment_timeout=deployment_timeout,
            poll_interval=poll_interval,
        )

    def log_start_header(self, config: ReleaseConfig):
        """Writes the input summary operators grep for in job logs."""
        logger.info("Started Octopus Release")
        logger.info(HEADER_SEPARATOR)
        logger.info("Project: %s", config.project)
        logger.info("Release Version: %s", config.release_version)
        logger.info("Include Release Notes?: %s", _flag(config.release_notes))
        if config.release_notes:
            logger.info("\tRelease Notes Source: %s", config.release_notes_source)
            logger.info("\tRelease Notes File: %s", config.release_notes_file)
        logger.info("Deploy this Release?: %s", _flag(config.deploy))
        if config.deploy:
            logger.info("\tEnvironment: %s", config.environment)
            logger.info("\tWait for Deployment: %s", _flag(config.wait_for_deployment))
        if not config.packages:
            logger.info("Package Configurations: none")
        else:
            logger.info("Package Configurations:")
            for package in config.packages:
                logger.info("\t%s\tv%s", package.package_name, package.package_version)
        logger.info(HEADER_SEPARATOR)

    def build_package_selections(
        self,
        packages: Iterable[PackageConfiguration],
        injector: VariableInjector,
    ) -> Tuple[PackageSelection, ...]:
        selections: Dict[str, PackageSelection] = {}
        for package in packages:
            name = injector.inject(package.package_name)
            if name in selections:
                logger.warning("Package '%s' is configured more than once; using the last entry.", name)
            selections[name] = PackageSelection(
                package_name=name,
                package_version=injector.inject(package.package_version),
            )
        return tuple(selections.values())

    def create_and_optionally_deploy_release(self, config: ReleaseConfig, job: JobContext) -> bool:
        """Runs the release flow and reports the outcome as a boolean.

        Problems are written to the log. Every lookup runs even after an
        earlier one failed so that one run reports all of them, but nothing
        is created on the server once any check has failed.
        """
        try:
            return self._run(config, job)
        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return False
        except ReleaseError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return False
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return False

    def _run(self, config: ReleaseConfig, job: JobContext) -> bool:
        self.log_start_header(config)

        injector = VariableInjector(job.env)
        project_name = injector.inject(config.project)
        release_version = injector.inject(config.release_version)
        environment_name = injector.inject(config.environment)
        success = True

        project = self._resolve_project(project_name)
        if project is None:
            success = False

        release_notes: Optional[str] = None
        if config.release_notes:
            try:
                release_notes = self.notes_provider.resolve(
                    config.release_notes_source,
                    config.release_notes_file,
                    job,
                )
            except ReleaseError as exc:
                logger.error(str(exc))
                success = False

        environment: Optional[Environment] = None
        if config.deploy:
            environment = self._resolve_environment(environment_name)
            if environment is None:
                success = False

        if not success:
            console.print("[bold red]Release was not created; see errors above.[/bold red]")
            return False

        packages = self.build_package_selections(config.packages, injector)
        release_request = ReleaseRequest(
            project_id=project.id,
            release_version=release_version,
            release_notes=release_notes,
            packages=packages,
        )

        try:
            release = self.api.create_release(release_request)
        except ReleaseError as exc:
            logger.error("Failed to create release: %s", exc)
            return False

        logger.info("Created release %s (%s) for project '%s'.", release.version, release.id, project.name)
        console.print(f"[green]Release {release.version} created.[/green]")

        if not config.deploy:
            return True

        logger.info("Deploying release %s to '%s'.", release_version, environment.name)
        try:
            deployed = self.deployment_service.deploy(
                DeploymentRequest(
                    release_version=release_version,
                    project_id=project.id,
                    environment_id=environment.id,
                ),
                wait=config.wait_for_deployment,
            )
        except ReleaseError as exc:
            logger.error("Failed to deploy release %s: %s", release_version, exc)
            return False

        if not deployed:
            logger.error("Deployment of release %s to '%s' failed.", release_version, environment.name)
        return deployed

    def _resolve_project(self, project_name: str) -> Optional[Project]:
        try:
            project = self.api.get_project_by_name(project_name)
        except ReleaseError as exc:
            logger.error("Retrieving project name '%s' failed with message '%s'", project_name, exc)
            return None

        if project is None:
            logger.error(actionable_error("project_not_found", project=project_name))
        return project

    def _resolve_environment(self, environment_name: str) -> Optional[Environment]:
        try:
            environment = self.api.get_environment_by_name(environment_name)
        except ReleaseError as exc:
            logger.error("Retrieving environment name '%s' failed with message '%s'", environment_name, exc)
            return None

        if environment is None:
            logger.error(actionable_error("environment_not_found", environment=environment_name))
        return environment
