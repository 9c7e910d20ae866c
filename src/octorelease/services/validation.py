"""Read-only configuration checks against the Octopus server."""

from typing import Optional

from octorelease.errors import ReleaseError
from octorelease.models import FormValidation


class ValidationService:
    """Answers interactive configuration checks.

    None of the checks mutate remote state, and none of them raise: an
    unreachable server degrades to a warning.
    """

    PROJECT_RELEASE_VALIDATION_MESSAGE = "Project must be set to validate release."

    def __init__(self, api, logger):
        self.api = api
        self.logger = logger

    def validate_project(self, project_name: Optional[str]) -> FormValidation:
        return self._validate_named(
            (project_name or "").strip(),
            label="project",
            lookup=self.api.get_project_by_name,
        )

    def validate_environment(self, environment_name: Optional[str]) -> FormValidation:
        return self._validate_named(
            (environment_name or "").strip(),
            label="environment",
            lookup=self.api.get_environment_by_name,
        )

    def validate_release(self, release_version: Optional[str], project_name: Optional[str]) -> FormValidation:
        release_version = (release_version or "").strip()
        project_name = (project_name or "").strip()
        if not release_version:
            return FormValidation.error("Please provide a release version.")
        if not project_name:
            return FormValidation.warning(self.PROJECT_RELEASE_VALIDATION_MESSAGE)

        try:
            project = self.api.get_project_by_name(project_name)
            if project is None:
                return FormValidation.warning(self.PROJECT_RELEASE_VALIDATION_MESSAGE)
            existing = self.api.get_release(project.id, release_version)
        except ReleaseError as exc:
            self.logger.debug("Release validation could not reach Octopus: %s", exc)
            return FormValidation.warning(self.PROJECT_RELEASE_VALIDATION_MESSAGE)

        if existing is not None:
            return FormValidation.error(
                f"Release {release_version} already exists for project '{project.name}'."
            )
        return FormValidation.ok()

    def validate_required(self, value: Optional[str], message: str) -> FormValidation:
        if not (value or "").strip():
            return FormValidation.error(message)
        return FormValidation.ok()

    def _validate_named(self, name: str, label: str, lookup) -> FormValidation:
        if not name:
            return FormValidation.warning(f"Please provide a {label} name.")

        try:
            match = lookup(name, ignore_case=True)
        except ReleaseError as exc:
            self.logger.debug("Could not validate %s '%s': %s", label, name, exc)
            return FormValidation.warning(f"Unable to validate {label} against Octopus: {exc}")

        if match is None:
            return FormValidation.error(f"{label.capitalize()} not found.")
        if match.name != name:
            return FormValidation.warning(
                f"{label.capitalize()} name case does not match. Did you mean '{match.name}'?"
            )
        return FormValidation.ok()
