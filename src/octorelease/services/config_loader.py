"""Configuration loader for octorelease."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from octorelease.errors import ReleaseError
from octorelease.models import PackageConfiguration


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "octopus_host",
        "api_key",
        "timeout",
        "project",
        "release_version",
        "release_notes",
        "release_notes_source",
        "release_notes_file",
        "deploy",
        "environment",
        "wait_for_deployment",
        "deployment_timeout",
        "poll_interval",
        "packages",
        "workspace",
        "build_history",
        "build_number",
        "verbose",
        "log_file",
    }

    STRING_KEYS = (
        "project",
        "release_version",
        "environment",
        "release_notes_source",
        "release_notes_file",
    )

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ReleaseError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ReleaseError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ReleaseError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ReleaseError(f"Unknown configuration keys: {unknown_list}")

        for key in self.STRING_KEYS:
            value = parsed.get(key)
            if value is not None and not isinstance(value, str):
                raise ReleaseError(
                    f"Config key `{key}` must be a string, got {value!r}. "
                    "Quote values such as versions, e.g. `release_version: '1.10'`."
                )

        if "packages" in parsed:
            parsed["packages"] = self.parse_packages(parsed["packages"])

        return parsed

    @staticmethod
    def parse_packages(entries: Any) -> List[PackageConfiguration]:
        if entries is None:
            return []
        if not isinstance(entries, list):
            raise ReleaseError("`packages` must be a list of {name, version} mappings.")

        packages = []
        for entry in entries:
            if not isinstance(entry, dict) or "name" not in entry:
                raise ReleaseError(f"Invalid package configuration: {entry!r}")
            name = entry["name"]
            version = entry.get("version")
            if not isinstance(name, str) or not (version is None or isinstance(version, str)):
                raise ReleaseError(
                    f"Package name and version must be strings, got {entry!r}. "
                    "Quote values such as versions, e.g. `version: '1.10'`."
                )
            packages.append(PackageConfiguration(package_name=name, package_version=version or ""))
        return packages

    @staticmethod
    def parse_package_option(value: str) -> PackageConfiguration:
        name, separator, version = value.partition("=")
        if not separator or not name.strip():
            raise ReleaseError(f"Package must be given as NAME=VERSION, got '{value}'.")
        return PackageConfiguration(package_name=name, package_version=version)
