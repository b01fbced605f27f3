"""Shared fixtures: throw-away repositories with hand-built commit graphs."""

import tempfile
from pathlib import Path
from typing import Optional

import git
import pytest
import structlog

from gitlineage.extraction import GitRepository
from gitlineage.metadata import RepoMetadataProvider
from gitlineage.models import RepositoryConfig


class GraphBuilder:
    """Builds commits with explicit parents and strictly increasing dates."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.repo = git.Repo.init(path)

        # Configure git
        self.repo.config_writer().set_value("user", "name", "Test User").release()
        self.repo.config_writer().set_value("user", "email", "test@example.com").release()

        (path / "README.md").write_text("# Graph\n")
        self.repo.index.add(["README.md"])
        self.tree = self.repo.index.write_tree()

        self.actor = git.Actor("Test User", "test@example.com")
        self.clock = 1_700_000_000

    def commit(self, message: str, *parents: git.Commit, timestamp: Optional[int] = None) -> git.Commit:
        if timestamp is None:
            self.clock += 60
            timestamp = self.clock
        date = f"{timestamp} +0000"
        return git.Commit.create_from_tree(
            self.repo,
            self.tree,
            message,
            parent_commits=list(parents),
            head=False,
            author=self.actor,
            committer=self.actor,
            author_date=date,
            commit_date=date,
        )

    def branch(self, name: str, commit: git.Commit) -> git.Head:
        return self.repo.create_head(name, commit)

    def remote_branch(self, name: str, commit: git.Commit) -> git.RemoteReference:
        path = f"refs/remotes/{name}"
        self.repo.git.update_ref(path, commit.hexsha)
        return git.RemoteReference(self.repo, path)

    def track(self, head: git.Head, remote_ref: git.RemoteReference) -> None:
        head.set_tracking_branch(remote_ref)

    def tag(self, name: str, target, message: Optional[str] = None) -> git.TagReference:
        ref = target.hexsha if hasattr(target, "hexsha") else target
        if message:
            return self.repo.create_tag(name, ref=ref, message=message)
        return self.repo.create_tag(name, ref=ref)

    def repository(self, **kwargs) -> GitRepository:
        return GitRepository(RepositoryConfig(repo_path=self.path, **kwargs))

    def provider(self, **kwargs) -> RepoMetadataProvider:
        return RepoMetadataProvider(self.repository(**kwargs))


@pytest.fixture
def graph():
    """Create an empty repository wrapped in a GraphBuilder."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield GraphBuilder(Path(tmpdir))


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration made by CLI tests."""
    yield
    structlog.reset_defaults()
