"""Actionable error catalog for octorelease."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_server_config": {
        "what": "Octopus server {field} is not configured.",
        "next": "Pass `--{option}` or set `{envvar}` before running octorelease.",
    },
    "project_not_found": {
        "what": "Project '{project}' was not found.",
        "next": "Check the project name in Octopus, including letter case.",
    },
    "environment_not_found": {
        "what": "Environment '{environment}' was not found.",
        "next": "Check the environment name in Octopus, including letter case.",
    },
    "invalid_notes_source": {
        "what": "Bad configuration: release notes source must be `file` or `scm`, found '{source}'.",
        "next": "Set `release_notes_source` to `file` or `scm`, or disable release notes.",
    },
    "notes_file_unreadable": {
        "what": "Unable to read release notes file '{path}': {reason}",
        "next": "Make sure the file exists in the workspace and is readable.",
    },
    "build_history_missing": {
        "what": "Release notes from SCM need the job build history and the current build.",
        "next": "Pass `--build-history` and `--build-number` (or set `BUILD_NUMBER`).",
    },
    "deployment_timeout": {
        "what": "Deployment task {task_id} did not complete within {timeout} seconds.",
        "next": "Check the task in the Octopus web portal or raise `--deployment-timeout`.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
