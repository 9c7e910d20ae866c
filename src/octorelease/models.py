"""Shared domain models for octorelease."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from .constants import DEFAULT_REQUEST_TIMEOUT

if TYPE_CHECKING:
    from .services.build_history import BuildHistory


@dataclass(frozen=True)
class Commit:
    """A single change recorded against a build."""

    message: str
    author: Optional[str] = None
    commit_id: Optional[str] = None


@dataclass(frozen=True)
class BuildRecord:
    """One historical execution of a job. Builds are identified by number."""

    number: int
    result: Optional[str] = field(default=None, compare=False)
    changes: Tuple[Commit, ...] = field(default=(), compare=False)


@dataclass(frozen=True)
class PackageConfiguration:
    package_name: str
    package_version: str

    def __post_init__(self):
        object.__setattr__(self, "package_name", (self.package_name or "").strip())
        object.__setattr__(self, "package_version", (self.package_version or "").strip())


@dataclass(frozen=True)
class PackageSelection:
    package_name: str
    package_version: str

    def to_payload(self) -> Dict[str, str]:
        return {"StepName": self.package_name, "Version": self.package_version}


@dataclass(frozen=True)
class ReleaseRequest:
    project_id: str
    release_version: str
    release_notes: Optional[str] = None
    packages: Tuple[PackageSelection, ...] = ()

    def to_payload(self) -> Dict[str, object]:
        return {
            "ProjectId": self.project_id,
            "Version": self.release_version,
            "ReleaseNotes": self.release_notes,
            "SelectedPackages": [package.to_payload() for package in self.packages],
        }


@dataclass(frozen=True)
class DeploymentRequest:
    release_version: str
    project_id: str
    environment_id: str


@dataclass(frozen=True)
class Project:
    id: str
    name: str


@dataclass(frozen=True)
class Environment:
    id: str
    name: str


@dataclass(frozen=True)
class Release:
    id: str
    version: str
    project_id: Optional[str] = None


@dataclass(frozen=True)
class ServerConfig:
    """Connection settings for the Octopus server, read once per run."""

    host: str
    api_key: str
    timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self):
        object.__setattr__(self, "host", (self.host or "").strip().rstrip("/"))
        object.__setattr__(self, "api_key", (self.api_key or "").strip())


@dataclass
class ReleaseConfig:
    """Job-level release settings. Strings are trimmed on construction."""

    project: str
    release_version: str
    release_notes: bool = False
    release_notes_source: Optional[str] = None
    release_notes_file: str = ""
    deploy: bool = False
    environment: str = ""
    wait_for_deployment: bool = False
    packages: List[PackageConfiguration] = field(default_factory=list)

    def __post_init__(self):
        self.project = (self.project or "").strip()
        self.release_version = (self.release_version or "").strip()
        self.release_notes_file = (self.release_notes_file or "").strip()
        self.environment = (self.environment or "").strip()
        if self.release_notes_source is not None:
            self.release_notes_source = self.release_notes_source.strip()


@dataclass
class JobContext:
    """What the host CI job exposes to a release run."""

    workspace: Path
    env: Dict[str, str] = field(default_factory=dict)
    history: Optional["BuildHistory"] = None
    current_build: Optional[BuildRecord] = None


@dataclass(frozen=True)
class FormValidation:
    kind: str
    message: str = ""

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def ok(cls) -> "FormValidation":
        return cls(cls.OK)

    @classmethod
    def warning(cls, message: str) -> "FormValidation":
        return cls(cls.WARNING, message)

    @classmethod
    def error(cls, message: str) -> "FormValidation":
        return cls(cls.ERROR, message)
