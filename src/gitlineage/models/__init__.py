"""Data models for branch metadata."""

from gitlineage.models.branch import Branch, BranchCommit, BranchKey, MergeBaseResult, VersionTag
from gitlineage.models.config import BranchConfig, RepositoryConfig, Settings, VersioningConfig
from gitlineage.models.version import PreReleaseTag, SemanticVersion

__all__ = [
    "Branch",
    "BranchCommit",
    "BranchKey",
    "MergeBaseResult",
    "VersionTag",
    "PreReleaseTag",
    "SemanticVersion",
    "BranchConfig",
    "RepositoryConfig",
    "VersioningConfig",
    "Settings",
]
