"""Branch relationship metadata for git repositories."""

from gitlineage.extraction import GitRepository
from gitlineage.metadata import MetadataCache, RepoMetadataProvider
from gitlineage.models import (
    Branch,
    BranchCommit,
    RepositoryConfig,
    SemanticVersion,
    VersioningConfig,
    VersionTag,
)

__version__ = "0.1.0"

__all__ = [
    "GitRepository",
    "MetadataCache",
    "RepoMetadataProvider",
    "Branch",
    "BranchCommit",
    "RepositoryConfig",
    "SemanticVersion",
    "VersioningConfig",
    "VersionTag",
    "__version__",
]
