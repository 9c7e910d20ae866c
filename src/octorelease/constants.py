"""Shared constants for octorelease."""

NOTES_SOURCE_FILE = "file"
NOTES_SOURCE_SCM = "scm"
NOTES_SOURCES = (NOTES_SOURCE_FILE, NOTES_SOURCE_SCM)

BUILD_RESULTS_SUCCESSFUL = ("SUCCESS", "UNSTABLE")

DEFAULT_CONFIG_FILE = ".octorelease.yml"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_DEPLOYMENT_TIMEOUT = 600.0
DEFAULT_POLL_INTERVAL = 5.0

API_KEY_HEADER = "X-Octopus-ApiKey"
HOST_ENVVAR = "OCTOPUS_HOST"
API_KEY_ENVVAR = "OCTOPUS_API_KEY"

HEADER_SEPARATOR = "======================="
