"""Git graph access layer over GitPython."""

from typing import Iterator, List, Optional

import git
import structlog
from git import Commit, Head, RemoteReference, Repo, TagReference

from gitlineage.models import Branch, RepositoryConfig

logger = structlog.get_logger(__name__)


class GitRepository:
    """Read-only view of a repository's commit graph, branches and tags."""

    def __init__(self, config: RepositoryConfig) -> None:
        """Initialize the GitRepository.

        Args:
            config: Repository configuration

        Raises:
            ValueError: If repository path is invalid
        """
        self.config = config
        if not config.repo_path.exists():
            raise ValueError(f"Repository path does not exist: {config.repo_path}")

        try:
            self.repo = Repo(config.repo_path)
        except git.exc.InvalidGitRepositoryError as e:
            raise ValueError(f"Invalid Git repository: {config.repo_path}") from e

    def tags(self) -> List[TagReference]:
        """All tags of the repository."""
        return list(self.repo.tags)

    def peel_tag(self, tag: TagReference) -> Optional[Commit]:
        """Resolve a lightweight or annotated tag to the commit it marks.

        Returns:
            Commit, or None if the tag points at a tree or blob
        """
        try:
            target = tag.commit
        except ValueError:
            return None
        return target if isinstance(target, Commit) else None

    def branches(self) -> List[Branch]:
        """Local branches in name order, then remote-tracking refs.

        Returns:
            List of Branch snapshots
        """
        branches = [self._local_branch(head) for head in self.repo.branches]
        if self.config.include_remote_branches:
            remote_refs = sorted(
                (ref for ref in self.repo.refs if isinstance(ref, RemoteReference)),
                key=lambda ref: ref.path,
            )
            branches.extend(
                self._remote_branch(ref) for ref in remote_refs if ref.remote_head != "HEAD"
            )
        return branches

    def find_branch(self, name: str) -> Optional[Branch]:
        """Look up a branch by friendly or canonical name."""
        for branch in self.branches():
            if name in (branch.friendly_name, branch.canonical_name):
                return branch
        return None

    def resolve_commit(self, rev: str) -> Commit:
        """Resolve a revision to a commit.

        Raises:
            ValueError: If the revision does not name a commit
        """
        try:
            return self.repo.commit(rev)
        except (git.exc.BadName, ValueError) as e:
            raise ValueError(f"Commit not found: {rev}") from e

    def find_merge_base(self, commit: Commit, other: Commit) -> Optional[Commit]:
        """Best common ancestor of two commits, None for disjoint histories."""
        bases = self.repo.merge_base(commit, other)
        return bases[0] if bases else None

    def commits_reachable_from(self, commit: Commit, branch: Branch) -> Iterator[Commit]:
        """Yield ``commit`` if it is reachable from the branch tip.

        Args:
            commit: Commit to look for
            branch: Branch whose history is searched

        Yields:
            The commit, at most once
        """
        if branch.tip is None:
            return
        if commit == branch.tip or self.repo.is_ancestor(commit, branch.tip):
            yield commit

    def branch_commits(self, branch: Branch) -> Iterator[Commit]:
        """Walk a branch's history from its tip, newest first."""
        if branch.tip is None:
            return iter(())
        return self.repo.iter_commits(branch.tip.hexsha)

    def get_forward_merge(self, anchor: Commit, merge_base: Commit) -> Optional[Commit]:
        """Find the first commit after ``merge_base`` on ``anchor`` that has it as a parent.

        Such a commit is where the history holding ``merge_base`` was merged
        forward into the anchor's line of history.
        """
        for commit in self.repo.iter_commits(f"{merge_base.hexsha}..{anchor.hexsha}"):
            if merge_base in commit.parents:
                return commit
        return None

    def _local_branch(self, head: Head) -> Branch:
        return Branch(
            canonical_name=head.path,
            friendly_name=head.name,
            tip=self._safe_tip(head),
            is_remote=False,
            is_tracking=head.tracking_branch() is not None,
        )

    def _remote_branch(self, ref: RemoteReference) -> Branch:
        return Branch(
            canonical_name=ref.path,
            friendly_name=ref.name,
            tip=self._safe_tip(ref),
            is_remote=True,
            is_tracking=False,
            remote_name=ref.remote_name,
        )

    @staticmethod
    def _safe_tip(ref) -> Optional[Commit]:
        try:
            return ref.commit
        except ValueError:
            logger.debug("unresolvable_branch_tip", ref=ref.path)
            return None
