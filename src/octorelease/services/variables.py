"""Environment variable substitution for job configuration values."""

from string import Template
from typing import Mapping, Optional


class VariableInjector:
    """Expands `$NAME` and `${NAME}` references from the job environment.

    References with no matching variable are kept as written so that a
    misspelled name shows up verbatim in the job log.
    """

    def __init__(self, env: Mapping[str, str]):
        self.env = dict(env)

    def inject(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return Template(value).safe_substitute(self.env)
