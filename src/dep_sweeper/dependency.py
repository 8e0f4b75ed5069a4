# In src/dep_sweeper/dependency.py
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Dependency:
    """A unified internal data structure to represent a declared dependency."""

    name: str
    version: str
    features: Tuple[str, ...] = ()
    kind: str = "normal"
    optional: bool = False
    source_file: str = ""
