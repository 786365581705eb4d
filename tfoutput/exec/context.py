"""
Environment shared by every step of a run.

Credentials and the data-directory override are recorded here instead of
being written into os.environ, so each child process receives them
explicitly and tests never touch the real process environment.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional


@dataclass
class EnvironmentContext:
    """Environment overrides applied on top of the inherited environment."""
    overrides: Dict[str, str] = field(default_factory=dict)
    base: Optional[Mapping[str, str]] = None  # None inherits os.environ at spawn time

    def set(self, key: str, value: str) -> None:
        self.overrides[key] = value

    def update(self, values: Mapping[str, str]) -> None:
        self.overrides.update(values)

    def child_env(self) -> Dict[str, str]:
        """Compose the final environment for a child process."""
        env = dict(os.environ if self.base is None else self.base)
        env.update(self.overrides)
        return env
