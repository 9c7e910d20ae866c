"""Deployment trigger and task monitoring service."""

import time
from typing import Optional

from octorelease.constants import DEFAULT_DEPLOYMENT_TIMEOUT, DEFAULT_POLL_INTERVAL
from octorelease.errors import ReleaseError
from octorelease.errors_catalog import actionable_error
from octorelease.models import DeploymentRequest


class DeploymentService:
    """Deploys an existing release and optionally waits for its server task."""

    def __init__(
        self,
        api,
        logger,
        console,
        deployment_timeout: float = DEFAULT_DEPLOYMENT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep=time.sleep,
        clock=time.monotonic,
    ):
        self.api = api
        self.logger = logger
        self.console = console
        self.deployment_timeout = deployment_timeout
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.clock = clock

    def deploy(self, deployment_request: DeploymentRequest, wait: bool = False) -> bool:
        release = self.api.get_release(deployment_request.project_id, deployment_request.release_version)
        if release is None:
            raise ReleaseError(
                f"Release {deployment_request.release_version} was not found for deployment."
            )

        deployment = self.api.create_deployment(release.id, deployment_request.environment_id)
        task_id = deployment.get("TaskId")
        self.logger.info(
            "Deployment %s queued for release %s (task %s).",
            deployment.get("Id", "<unknown>"),
            release.version,
            task_id or "<unknown>",
        )

        if not wait:
            return True
        if not task_id:
            raise ReleaseError("Octopus did not return a task id for the deployment.")

        return self.wait_for_task(task_id)

    def wait_for_task(self, task_id: str) -> bool:
        self.console.print(f"[blue]Waiting for deployment task {task_id}...[/blue]")
        deadline = self.clock() + self.deployment_timeout
        last_state: Optional[str] = None

        while True:
            task = self.api.get_task(task_id)
            state = task.get("State")
            if state != last_state:
                self.logger.info("Task %s state: %s", task_id, state or "<unknown>")
                last_state = state

            if task.get("IsCompleted"):
                if task.get("FinishedSuccessfully"):
                    self.console.print("[green]Deployment completed successfully.[/green]")
                    return True
                self.logger.error(
                    "Deployment task %s finished with state %s: %s",
                    task_id,
                    state or "<unknown>",
                    task.get("ErrorMessage") or "no details",
                )
                return False

            if self.clock() >= deadline:
                raise ReleaseError(
                    actionable_error(
                        "deployment_timeout",
                        task_id=task_id,
                        timeout=f"{self.deployment_timeout:g}",
                    )
                )

            self.sleep(self.poll_interval)
