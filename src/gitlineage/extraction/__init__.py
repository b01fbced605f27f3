"""Git repository access."""

from gitlineage.extraction.repository import GitRepository

__all__ = ["GitRepository"]
