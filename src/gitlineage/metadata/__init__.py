"""Branch metadata queries and their session cache."""

from gitlineage.metadata.cache import MetadataCache
from gitlineage.metadata.provider import RepoMetadataProvider

__all__ = ["MetadataCache", "RepoMetadataProvider"]
