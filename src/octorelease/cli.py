import logging
import os
from pathlib import Path

import click
import requests
from rich.logging import RichHandler

from .constants import (
    API_KEY_ENVVAR,
    DEFAULT_CONFIG_FILE,
    DEFAULT_DEPLOYMENT_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    HOST_ENVVAR,
    NOTES_SOURCE_FILE,
)
from .core import ReleaseError, ReleaseOrchestrator, console
from .errors_catalog import actionable_error
from .models import BuildRecord, FormValidation, JobContext, ReleaseConfig, ServerConfig
from .services.build_history import BuildHistory
from .services.config_loader import ConfigLoader
from .services.octopus_api import OctopusApi
from .services.validation import ValidationService


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None and cli_value != ():
        return cli_value
    if config.get(key) is not None:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)

logger = logging.getLogger("octorelease")


def _load_config(config):
    try:
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path
        return ConfigLoader().load(resolved_config)
    except ReleaseError as exc:
        raise click.ClickException(str(exc)) from exc


def _configure_logging(verbose, log_file):
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _server_config(octopus_host, api_key, timeout, config_values) -> ServerConfig:
    host = _resolve_option(octopus_host, config_values, "octopus_host")
    key = _resolve_option(api_key, config_values, "api_key")
    if not host:
        raise click.ClickException(
            actionable_error(
                "missing_server_config",
                field="host",
                option="octopus-host",
                envvar=HOST_ENVVAR,
            )
        )
    if not key:
        raise click.ClickException(
            actionable_error(
                "missing_server_config",
                field="API key",
                option="api-key",
                envvar=API_KEY_ENVVAR,
            )
        )
    return ServerConfig(
        host=str(host),
        api_key=str(key),
        timeout=float(
            _resolve_option(timeout, config_values, "timeout", default=DEFAULT_REQUEST_TIMEOUT)
        ),
    )


def _job_context(workspace, build_history, build_number, config_values) -> JobContext:
    workspace = _resolve_option(workspace, config_values, "workspace", default=os.getcwd())
    build_history = _resolve_option(build_history, config_values, "build_history")
    build_number = _resolve_option(
        build_number,
        config_values,
        "build_number",
        default=os.environ.get("BUILD_NUMBER"),
    )

    history = None
    current_build = None
    try:
        if build_history:
            history = BuildHistory.from_file(build_history)
        if build_number not in (None, ""):
            number = int(build_number)
            current_build = (history.get(number) if history else None) or BuildRecord(number=number)
    except ValueError as exc:
        raise click.ClickException(f"Invalid build number '{build_number}'.") from exc
    except ReleaseError as exc:
        raise click.ClickException(str(exc)) from exc

    return JobContext(
        workspace=Path(workspace),
        env=dict(os.environ),
        history=history,
        current_build=current_build,
    )


def _server_options(func):
    func = click.option(
        "--timeout",
        type=float,
        default=None,
        help=f"Timeout in seconds for each Octopus API request (default: {DEFAULT_REQUEST_TIMEOUT:g}).",
    )(func)
    func = click.option(
        "--api-key",
        envvar=API_KEY_ENVVAR,
        required=False,
        help=f"Octopus API key. Defaults to ${API_KEY_ENVVAR}.",
    )(func)
    func = click.option(
        "--octopus-host",
        envvar=HOST_ENVVAR,
        required=False,
        help=f"Octopus server URL. Defaults to ${HOST_ENVVAR}.",
    )(func)
    func = click.option(
        "--config",
        required=False,
        type=click.Path(),
        help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
    )(func)
    return func


@click.group()
def main():
    """Create Octopus Deploy releases from CI jobs."""


@main.command("release")
@_server_options
@click.option("--project", required=False, help="Octopus project name.")
@click.option("--release-version", required=False, help="Version of the release to create.")
@click.option("--release-notes", is_flag=True, default=None, help="Attach release notes to the release.")
@click.option(
    "--release-notes-source",
    required=False,
    help="Where release notes come from: `file` or `scm`.",
)
@click.option(
    "--release-notes-file",
    required=False,
    help="Release notes file, relative to the workspace.",
)
@click.option("--deploy", is_flag=True, default=None, help="Deploy the release after creating it.")
@click.option("--environment", required=False, help="Environment to deploy the release to.")
@click.option(
    "--wait-for-deployment",
    is_flag=True,
    default=None,
    help="Wait until the deployment task completes.",
)
@click.option(
    "--deployment-timeout",
    type=float,
    default=None,
    help=f"Seconds to wait for the deployment task (default: {DEFAULT_DEPLOYMENT_TIMEOUT:g}).",
)
@click.option(
    "--poll-interval",
    type=float,
    default=None,
    help=f"Seconds between deployment task polls (default: {DEFAULT_POLL_INTERVAL:g}).",
)
@click.option(
    "--package",
    "packages",
    multiple=True,
    help="Package to include, as NAME=VERSION. May be repeated.",
)
@click.option("--workspace", required=False, type=click.Path(), help="Job workspace directory.")
@click.option(
    "--build-history",
    required=False,
    type=click.Path(),
    help="YAML or JSON file describing the job's builds and their changes.",
)
@click.option("--build-number", required=False, help="Current build number. Defaults to $BUILD_NUMBER.")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def release(
    config,
    octopus_host,
    api_key,
    timeout,
    project,
    release_version,
    release_notes,
    release_notes_source,
    release_notes_file,
    deploy,
    environment,
    wait_for_deployment,
    deployment_timeout,
    poll_interval,
    packages,
    workspace,
    build_history,
    build_number,
    verbose,
    log_file,
):
    """Create a release and optionally deploy it."""
    config_values = _load_config(config)

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    _configure_logging(verbose, log_file)

    server = _server_config(octopus_host, api_key, timeout, config_values)

    try:
        package_configs = (
            [ConfigLoader.parse_package_option(value) for value in packages]
            if packages
            else config_values.get("packages", [])
        )
    except ReleaseError as exc:
        raise click.ClickException(str(exc)) from exc

    release_config = ReleaseConfig(
        project=_resolve_option(project, config_values, "project", default=""),
        release_version=_resolve_option(release_version, config_values, "release_version", default=""),
        release_notes=bool(_resolve_option(release_notes, config_values, "release_notes", default=False)),
        release_notes_source=_resolve_option(release_notes_source, config_values, "release_notes_source"),
        release_notes_file=_resolve_option(release_notes_file, config_values, "release_notes_file", default=""),
        deploy=bool(_resolve_option(deploy, config_values, "deploy", default=False)),
        environment=_resolve_option(environment, config_values, "environment", default=""),
        wait_for_deployment=bool(
            _resolve_option(wait_for_deployment, config_values, "wait_for_deployment", default=False)
        ),
        packages=package_configs,
    )

    if not release_config.project:
        raise click.ClickException("Missing required option '--project' (or provide it in config).")
    if not release_config.release_version:
        raise click.ClickException(
            "Missing required option '--release-version' (or provide it in config)."
        )

    job = _job_context(workspace, build_history, build_number, config_values)

    orchestrator = ReleaseOrchestrator(
        server=server,
        deployment_timeout=float(
            _resolve_option(
                deployment_timeout,
                config_values,
                "deployment_timeout",
                default=DEFAULT_DEPLOYMENT_TIMEOUT,
            )
        ),
        poll_interval=float(
            _resolve_option(poll_interval, config_values, "poll_interval", default=DEFAULT_POLL_INTERVAL)
        ),
    )

    raise SystemExit(0 if orchestrator.create_and_optionally_deploy_release(release_config, job) else 1)


_STYLES = {
    FormValidation.OK: "green",
    FormValidation.WARNING: "yellow",
    FormValidation.ERROR: "red",
}


@main.command("check")
@_server_options
@click.option("--project", required=False, help="Octopus project name.")
@click.option("--release-version", required=False, help="Release version to check.")
@click.option("--environment", required=False, help="Environment name to check.")
@click.option("--release-notes-file", required=False, help="Release notes file to check.")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
def check(config, octopus_host, api_key, timeout, project, release_version, environment, release_notes_file, verbose):
    """Check release settings against the Octopus server without changing it."""
    config_values = _load_config(config)
    _configure_logging(bool(_resolve_option(verbose, config_values, "verbose", default=False)), None)

    server = _server_config(octopus_host, api_key, timeout, config_values)
    validator = ValidationService(
        api=OctopusApi(server=server, logger=logger, requests_module=requests),
        logger=logger,
    )

    project = _resolve_option(project, config_values, "project", default="")
    release_version = _resolve_option(release_version, config_values, "release_version", default="")
    environment = _resolve_option(environment, config_values, "environment", default="")
    release_notes_file = _resolve_option(release_notes_file, config_values, "release_notes_file")

    results = [
        ("Project", validator.validate_project(project)),
        ("Release Version", validator.validate_required(release_version, "Please provide a release version.")),
    ]
    if release_version.strip():
        results.append(("Release", validator.validate_release(release_version, project)))
    if environment or config_values.get("deploy"):
        results.append(("Environment", validator.validate_environment(environment)))
    if release_notes_file is not None or (
        config_values.get("release_notes") and config_values.get("release_notes_source") == NOTES_SOURCE_FILE
    ):
        results.append(
            (
                "Release Notes File",
                validator.validate_required(release_notes_file, "Please provide a project notes file."),
            )
        )

    for label, result in results:
        style = _STYLES[result.kind]
        message = result.message or "OK"
        console.print(f"[{style}]{label}: {message}[/{style}]")

    has_errors = any(result.kind == FormValidation.ERROR for _, result in results)
    raise SystemExit(1 if has_errors else 0)


if __name__ == "__main__":
    main()
