"""Branch, tag and merge-base value objects."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from git import Commit, TagReference

from gitlineage.models.version import SemanticVersion

BranchKey = Tuple[str, Optional[str]]


@dataclass(frozen=True, eq=False)
class Branch:
    """Snapshot of a branch reference.

    Two snapshots are equal while they share a canonical name and tip. Once a
    tip moves the snapshot is a different key for every cache.
    """

    canonical_name: str
    friendly_name: str
    tip: Optional[Commit] = None
    is_remote: bool = False
    is_tracking: bool = False
    remote_name: Optional[str] = None

    @property
    def key(self) -> BranchKey:
        return (self.canonical_name, self.tip.hexsha if self.tip is not None else None)

    @property
    def name_without_remote(self) -> str:
        """Friendly name with the remote prefix removed (``origin/main`` -> ``main``)."""
        if self.is_remote and self.remote_name:
            prefix = f"{self.remote_name}/"
            if self.friendly_name.startswith(prefix):
                return self.friendly_name[len(prefix):]
        return self.friendly_name

    def is_same_branch(self, other: "Branch") -> bool:
        """Check whether two refs denote the same branch, local or remote."""
        if other is None:
            return False
        if self.is_remote or other.is_remote:
            return self.name_without_remote == other.name_without_remote
        return self.canonical_name == other.canonical_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Branch):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.friendly_name


@dataclass(frozen=True)
class VersionTag:
    """A tag whose name parsed as a semantic version."""

    tag: TagReference
    commit: Commit
    version: SemanticVersion

    @property
    def name(self) -> str:
        return self.tag.name


@dataclass(frozen=True)
class BranchCommit:
    """A commit paired with the branch it was found on."""

    commit: Optional[Commit] = None
    branch: Optional[Branch] = None

    @classmethod
    def empty(cls) -> "BranchCommit":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.commit is None and self.branch is None

    def __bool__(self) -> bool:
        return not self.is_empty


@dataclass(frozen=True)
class MergeBaseResult:
    """Memoized merge base for an ordered branch pair."""

    branch_key: BranchKey
    other_key: BranchKey
    merge_base: Optional[Commit] = field(default=None)
