"""Branch relationship queries over a repository's commit graph."""

import re
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import structlog
from git import Commit

from gitlineage.extraction import GitRepository
from gitlineage.metadata.cache import MetadataCache
from gitlineage.models import Branch, BranchCommit, SemanticVersion, VersionTag, VersioningConfig

logger = structlog.get_logger(__name__)

MISSING_TIP_HINT = "the branch ref does not point to a commit; fetch it or delete the stale ref"


class RepoMetadataProvider:
    """Answers version-tag, containment, merge-base and branch-source questions.

    One provider is one analysis session: it memoizes merge bases, branch tag
    lists and source-branch candidates for the repository snapshot it was
    created over. Create a new provider (or call ``reset``) once the
    repository changes.
    """

    def __init__(self, repository: GitRepository, cache: Optional[MetadataCache] = None) -> None:
        """Initialize the provider.

        Args:
            repository: Git access layer
            cache: Optional pre-populated cache; a fresh one is created otherwise
        """
        self.repository = repository
        self.cache = cache or MetadataCache()

    def reset(self) -> None:
        """Discard everything memoized in this session."""
        self.cache.clear()

    def get_valid_version_tags(
        self, tag_prefix: str, older_than: Optional[datetime] = None
    ) -> List[VersionTag]:
        """Collect tags whose names parse as semantic versions.

        Args:
            tag_prefix: Regex for the prefix stripped before parsing
            older_than: Skip tags whose commit was committed after this moment

        Returns:
            List of VersionTag, in repository tag order
        """
        cutoff = older_than.timestamp() if older_than is not None else None
        version_tags = []

        for tag in self.repository.tags():
            commit = self.repository.peel_tag(tag)
            if commit is None or (cutoff is not None and commit.committed_date > cutoff):
                continue

            version = SemanticVersion.try_parse(tag.name, tag_prefix)
            if version is not None:
                version_tags.append(VersionTag(tag=tag, commit=commit, version=version))

        return version_tags

    def get_version_tags_on_branch(self, branch: Branch, tag_prefix: str) -> Tuple[SemanticVersion, ...]:
        """Versions tagged on commits of a branch's history, newest commit first."""
        if branch.tip is None:
            logger.warning("branch_has_no_tip", branch=branch.friendly_name, hint=MISSING_TIP_HINT)
            return ()

        key = (branch.key, tag_prefix)
        cached = self.cache.get_branch_tags(key)
        if cached is not None:
            logger.debug("branch_tags_cache_hit", branch=branch.canonical_name)
            return cached

        logger.info("collecting_branch_tags", branch=branch.canonical_name)
        versions_by_sha = {}
        for version_tag in self.get_valid_version_tags(tag_prefix):
            versions_by_sha.setdefault(version_tag.commit.hexsha, []).append(version_tag.version)

        versions = []
        for commit in self.repository.branch_commits(branch):
            versions.extend(versions_by_sha.get(commit.hexsha, ()))

        return self.cache.set_branch_tags(key, versions)

    def get_current_commit_tagged_version(self, commit: Commit, tag_prefix: str) -> Optional[SemanticVersion]:
        """Highest version tagged directly on ``commit``, if any."""
        versions = [
            version_tag.version
            for version_tag in self.get_valid_version_tags(tag_prefix)
            if version_tag.commit == commit
        ]
        return max(versions) if versions else None

    def get_branches_containing_commit(
        self,
        commit: Commit,
        branches: Optional[Iterable[Branch]] = None,
        only_tracked: bool = False,
    ) -> Iterator[Branch]:
        """Lazily find the branches that contain ``commit``.

        Branches whose tip is the commit are returned on their own when there
        are any; otherwise every selected branch's history is searched.

        Args:
            commit: Commit to look for
            branches: Candidate branches (default: every repository branch)
            only_tracked: Only consider local branches with an upstream

        Returns:
            Generator of Branch; iterating again repeats the search

        Raises:
            ValueError: If commit is None
        """
        if commit is None:
            raise ValueError("commit must not be None")

        candidates = list(branches) if branches is not None else self.repository.branches()
        return self._search_branches_containing(commit, candidates, only_tracked)

    def _search_branches_containing(
        self, commit: Commit, branches: List[Branch], only_tracked: bool
    ) -> Iterator[Branch]:
        logger.info("searching_branches_containing_commit", sha=commit.hexsha)
        selected = [branch for branch in branches if branch.is_tracking or not only_tracked]

        direct_branch_found = False
        for branch in selected:
            if branch.tip is not None and branch.tip == commit:
                direct_branch_found = True
                logger.info("direct_branch_found", branch=branch.friendly_name)
                yield branch

        if direct_branch_found:
            return

        logger.info(
            "no_direct_branches",
            searching="tracked" if only_tracked else "all",
            count=len(selected),
        )
        for branch in selected:
            reachable = self.repository.commits_reachable_from(commit, branch)
            if next(iter(reachable), None) is None:
                logger.debug("branch_has_no_matching_commit", branch=branch.friendly_name)
                continue

            logger.info("branch_contains_commit", branch=branch.friendly_name)
            yield branch

    def find_merge_base(self, branch: Branch, other_branch: Branch) -> Optional[Commit]:
        """Find where ``branch`` diverged from ``other_branch``.

        This is the best common ancestor of both tips, except that commits
        which only became common because ``branch`` was merged forward into
        ``other_branch`` are skipped. The pair is ordered: the result for
        (A, B) can differ from (B, A).

        Returns:
            Merge base commit, or None if the histories are disjoint

        Raises:
            ValueError: If either branch is None or has no tip
        """
        for candidate in (branch, other_branch):
            if candidate is None:
                raise ValueError("branch must not be None")
            if candidate.tip is None:
                raise ValueError(f"Branch '{candidate.friendly_name}' has no tip")

        cached = self.cache.get_merge_base(branch.key, other_branch.key)
        if cached is not None:
            logger.debug(
                "merge_base_cache_hit",
                branch=branch.friendly_name,
                other_branch=other_branch.friendly_name,
            )
            return cached.merge_base

        logger.info(
            "finding_merge_base",
            branch=branch.friendly_name,
            other_branch=other_branch.friendly_name,
        )

        commit = branch.tip
        anchor = other_branch.tip
        # The other tip merged this branch in: start from its mainline parent
        if commit in anchor.parents:
            anchor = anchor.parents[0]

        merge_base = self.repository.find_merge_base(commit, anchor)
        if merge_base is not None:
            logger.info("found_merge_base", sha=merge_base.hexsha)
            merge_base = self._skip_forward_merges(commit, anchor, merge_base)
        else:
            logger.info(
                "no_common_history",
                branch=branch.friendly_name,
                other_branch=other_branch.friendly_name,
            )

        self.cache.set_merge_base(branch.key, other_branch.key, merge_base)
        logger.info(
            "merge_base_resolved",
            branch=branch.friendly_name,
            other_branch=other_branch.friendly_name,
            sha=merge_base.hexsha if merge_base is not None else None,
        )
        return merge_base

    def _skip_forward_merges(self, commit: Commit, anchor: Commit, merge_base: Commit) -> Optional[Commit]:
        # Each new anchor is a parent of a commit reachable from the previous one,
        # so anchors move strictly back in history and the loop ends.
        while True:
            forward_merge = self.repository.get_forward_merge(anchor, merge_base)
            if forward_merge is None:
                return merge_base

            next_anchor = forward_merge.parents[0]
            next_base = self.repository.find_merge_base(commit, next_anchor)
            if next_base is None:
                logger.warning("merge_base_lost_after_forward_merge", sha=commit.hexsha)
                return None
            if next_base == merge_base:
                return merge_base

            logger.info(
                "merge_base_was_forward_merge",
                forward_merge=forward_merge.hexsha,
                next_merge_base=next_base.hexsha,
            )
            merge_base, anchor = next_base, next_anchor

    def find_commit_branch_was_branched_from(
        self,
        branch: Branch,
        config: VersioningConfig,
        excluded_branches: Sequence[Branch] = (),
    ) -> BranchCommit:
        """Guess the branch ``branch`` was created from.

        Candidates are ranked by how recent their merge base with ``branch``
        is. When several remain the most recent one wins (ties keep repository
        branch order) and a warning lists every option.

        Args:
            branch: Branch whose source is wanted
            config: Branch naming rules that restrict candidate sources
            excluded_branches: Branches never considered as a source

        Returns:
            BranchCommit of the merge base and source branch, or an empty one

        Raises:
            ValueError: If branch is None
        """
        if branch is None:
            raise ValueError("branch must not be None")

        logger.info("finding_branch_source", branch=branch.friendly_name)
        if branch.tip is None:
            logger.warning("branch_has_no_tip", branch=branch.friendly_name, hint=MISSING_TIP_HINT)
            return BranchCommit.empty()

        possible_branches = [
            candidate
            for candidate in self._get_merge_commits_for_branch(branch, config, excluded_branches)
            if not branch.is_same_branch(candidate.branch)
        ]

        if len(possible_branches) > 1:
            first = possible_branches[0]
            logger.warning(
                "multiple_source_branches",
                branch=branch.friendly_name,
                picked=first.branch.friendly_name,
                options=[candidate.branch.friendly_name for candidate in possible_branches],
                note="this may result in incorrect commit counting",
            )
            return first

        if possible_branches:
            return possible_branches[0]
        return BranchCommit.empty()

    def _get_merge_commits_for_branch(
        self,
        branch: Branch,
        config: VersioningConfig,
        excluded_branches: Sequence[Branch],
    ) -> Tuple[BranchCommit, ...]:
        patterns = config.source_branch_patterns(branch.name_without_remote)
        excluded_names = frozenset(excluded.canonical_name for excluded in excluded_branches)

        key = (branch.key, excluded_names, tuple(patterns))
        cached = self.cache.get_source_candidates(key)
        if cached is not None:
            logger.debug("source_candidates_cache_hit", branch=branch.canonical_name)
            return cached

        branch_merge_bases = []
        for other_branch in self.repository.branches():
            if other_branch == branch or other_branch.canonical_name in excluded_names:
                continue
            if not any(re.search(pattern, other_branch.friendly_name) for pattern in patterns):
                continue

            if other_branch.tip is None:
                logger.warning(
                    "branch_has_no_tip", branch=other_branch.friendly_name, hint=MISSING_TIP_HINT
                )
                continue

            merge_base = self.find_merge_base(branch, other_branch)
            if merge_base is not None:
                branch_merge_bases.append(BranchCommit(commit=merge_base, branch=other_branch))

        # Stable sort: equally recent merge bases keep repository branch order
        branch_merge_bases.sort(key=lambda bc: bc.commit.committed_date, reverse=True)
        return self.cache.set_source_candidates(key, branch_merge_bases)
