"""In-memory memo tables for one metadata session."""

from typing import Dict, FrozenSet, List, Optional, Tuple

import structlog
from git import Commit

from gitlineage.models import BranchCommit, BranchKey, MergeBaseResult, SemanticVersion

logger = structlog.get_logger(__name__)

BranchTagsKey = Tuple[BranchKey, str]
SourceCandidatesKey = Tuple[BranchKey, FrozenSet[str], Tuple[str, ...]]


class MetadataCache:
    """Memoized graph answers, valid for a single repository snapshot.

    Keys embed each branch's tip so a moved branch never hits a stale entry.
    Not safe for concurrent use.
    """

    def __init__(self) -> None:
        self._merge_bases: Dict[Tuple[BranchKey, BranchKey], MergeBaseResult] = {}
        self._branch_tags: Dict[BranchTagsKey, Tuple[SemanticVersion, ...]] = {}
        self._source_candidates: Dict[SourceCandidatesKey, Tuple[BranchCommit, ...]] = {}

        # Stats
        self.hits = 0
        self.misses = 0

    def _lookup(self, table: dict, key):
        if key in table:
            self.hits += 1
            return table[key]
        self.misses += 1
        return None

    def get_merge_base(self, branch_key: BranchKey, other_key: BranchKey) -> Optional[MergeBaseResult]:
        return self._lookup(self._merge_bases, (branch_key, other_key))

    def set_merge_base(self, branch_key: BranchKey, other_key: BranchKey, merge_base: Optional[Commit]) -> MergeBaseResult:
        result = MergeBaseResult(branch_key=branch_key, other_key=other_key, merge_base=merge_base)
        self._merge_bases[(branch_key, other_key)] = result
        return result

    def get_branch_tags(self, key: BranchTagsKey) -> Optional[Tuple[SemanticVersion, ...]]:
        return self._lookup(self._branch_tags, key)

    def set_branch_tags(self, key: BranchTagsKey, versions: List[SemanticVersion]) -> Tuple[SemanticVersion, ...]:
        snapshot = tuple(versions)
        self._branch_tags[key] = snapshot
        return snapshot

    def get_source_candidates(self, key: SourceCandidatesKey) -> Optional[Tuple[BranchCommit, ...]]:
        return self._lookup(self._source_candidates, key)

    def set_source_candidates(self, key: SourceCandidatesKey, candidates: List[BranchCommit]) -> Tuple[BranchCommit, ...]:
        snapshot = tuple(candidates)
        self._source_candidates[key] = snapshot
        return snapshot

    def clear(self) -> None:
        """Drop every entry, e.g. when the repository changed between runs."""
        self._merge_bases.clear()
        self._branch_tags.clear()
        self._source_candidates.clear()
        self.hits = 0
        self.misses = 0
        logger.debug("metadata_cache_cleared")

    def stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with entry counts per table and hit/miss totals
        """
        total = self.hits + self.misses
        return {
            "merge_bases": len(self._merge_bases),
            "branch_tags": len(self._branch_tags),
            "source_candidates": len(self._source_candidates),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total > 0 else 0.0,
        }
