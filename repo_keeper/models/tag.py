"""Tag models"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TagRemovalResult:
    """Outcome of removing one tag from one repository."""
    repository_path: str
    tag: str
    local_removed: bool = False
    remote_removed: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
