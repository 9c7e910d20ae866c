"""HTTP client for the Octopus Deploy REST API."""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from octorelease.constants import API_KEY_HEADER
from octorelease.errors import ReleaseError
from octorelease.models import Environment, Project, Release, ReleaseRequest, ServerConfig


class OctopusApi:
    """Thin wrapper over the Octopus endpoints used to release and deploy.

    Every request carries the timeout from the server configuration. A
    lookup that finds nothing returns None; transport failures and error
    statuses raise ReleaseError.
    """

    def __init__(self, server: ServerConfig, logger, requests_module=requests):
        self.server = server
        self.logger = logger
        self.requests = requests_module

    def get_project_by_name(self, name: str, ignore_case: bool = False) -> Optional[Project]:
        match = self._find_by_name(self._request("GET", "/api/projects/all") or [], name, ignore_case)
        if match is None:
            return None
        return Project(*self._id_and_name(match, "project"))

    def get_environment_by_name(self, name: str, ignore_case: bool = False) -> Optional[Environment]:
        match = self._find_by_name(
            self._request("GET", "/api/environments/all") or [],
            name,
            ignore_case,
        )
        if match is None:
            return None
        return Environment(*self._id_and_name(match, "environment"))

    def get_release(self, project_id: str, version: str) -> Optional[Release]:
        path = f"/api/projects/{quote(project_id, safe='')}/releases/{quote(version, safe='')}"
        data = self._request("GET", path, allow_not_found=True)
        if data is None:
            return None
        return self._to_release(data)

    def create_release(self, release_request: ReleaseRequest) -> Release:
        data = self._request("POST", "/api/releases", payload=release_request.to_payload())
        return self._to_release(data)

    def create_deployment(self, release_id: str, environment_id: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/api/deployments",
            payload={"ReleaseId": release_id, "EnvironmentId": environment_id},
        )

    def get_task(self, task_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/tasks/{quote(task_id, safe='')}")

    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        allow_not_found: bool = False,
    ):
        url = f"{self.server.host}{path}"
        self.logger.debug("%s %s", method, url)

        try:
            response = self.requests.request(
                method,
                url,
                headers={API_KEY_HEADER: self.server.api_key, "Accept": "application/json"},
                json=payload,
                timeout=self.server.timeout,
            )
        except self.requests.RequestException as exc:
            raise ReleaseError(f"Request {method} {path} failed: {exc}") from exc

        if allow_not_found and response.status_code == 404:
            return None

        if response.status_code >= 400:
            raise ReleaseError(
                f"Octopus returned HTTP {response.status_code} for {method} {path}: "
                f"{self._error_message(response)}"
            )

        if not response.text:
            return {}

        try:
            return response.json()
        except ValueError as exc:
            raise ReleaseError(f"Invalid JSON response for {method} {path}: {exc}") from exc

    @staticmethod
    def _find_by_name(items: List[Dict[str, Any]], name: str, ignore_case: bool):
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise ReleaseError(f"Unexpected list payload from Octopus: {items!r}")

        for item in items:
            if item.get("Name") == name:
                return item

        if ignore_case:
            wanted = name.casefold()
            for item in items:
                if str(item.get("Name", "")).casefold() == wanted:
                    return item

        return None

    @staticmethod
    def _id_and_name(data: Dict[str, Any], label: str):
        try:
            return str(data["Id"]), str(data["Name"])
        except KeyError as exc:
            raise ReleaseError(f"Unexpected {label} payload from Octopus: {data!r}") from exc

    @staticmethod
    def _to_release(data: Dict[str, Any]) -> Release:
        try:
            return Release(id=data["Id"], version=data["Version"], project_id=data.get("ProjectId"))
        except (KeyError, TypeError) as exc:
            raise ReleaseError(f"Unexpected release payload from Octopus: {data!r}") from exc

    @staticmethod
    def _error_message(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return (response.text or "").strip()[:200] or "no details"

        if not isinstance(body, dict):
            return str(body)[:200]

        message = body.get("ErrorMessage") or "no details"
        errors = body.get("Errors") or []
        if errors:
            message = f"{message} ({'; '.join(str(error) for error in errors)})"
        return message
