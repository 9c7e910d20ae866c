"""
octorelease - Octopus Deploy release creation for CI jobs
"""

__version__ = "0.1.0"

from .core import ReleaseError, ReleaseOrchestrator

__all__ = ["ReleaseOrchestrator", "ReleaseError"]
