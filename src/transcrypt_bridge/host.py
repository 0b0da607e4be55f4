"""
The slice of the bundler's plugin API the transformer relies on.

Any host object with these attributes can be transformed; SourceAsset is a
plain implementation used when running outside a bundler.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol

DEVELOPMENT = "development"
PRODUCTION = "production"


class Asset(Protocol):
    file_path: Path
    type: str

    def set_code(self, code: str) -> None:
        ...

    def invalidate_on_file_change(self, path: Path) -> None:
        ...


@dataclass(frozen=True)
class BuildOptions:
    project_root: Path
    mode: str = DEVELOPMENT

    def __post_init__(self) -> None:
        if self.mode not in (DEVELOPMENT, PRODUCTION):
            raise ValueError(f"Build mode must be '{DEVELOPMENT}' or '{PRODUCTION}', got '{self.mode}'")

    @property
    def is_development(self) -> bool:
        return self.mode == DEVELOPMENT


@dataclass
class SourceAsset:
    """A standalone asset that records what the transformer did to it."""
    file_path: Path
    type: str = "py"
    code: Optional[str] = None
    watched: List[Path] = field(default_factory=list)

    def set_code(self, code: str) -> None:
        self.code = code

    def invalidate_on_file_change(self, path: Path) -> None:
        if path not in self.watched:
            self.watched.append(path)
