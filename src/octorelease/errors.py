"""Domain errors for octorelease."""


class ReleaseError(RuntimeError):
    """Raised when a release or deployment step cannot continue safely."""
