"""Tests for merge base resolution with forward-merge correction."""

import dataclasses
from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from gitlineage.models import Branch


@pytest.fixture
def back_merged(graph):
    """release/1.0 forks main at B, is merged back into main, then continues.

        A - B - C - M - D        main
             \\     /
              R1 ------ R2       release/1.0
    """
    a = graph.commit("A")
    b = graph.commit("B", a)
    r1 = graph.commit("R1", b)
    c = graph.commit("C", b)
    m = graph.commit("Merge release/1.0 into main", c, r1)
    r2 = graph.commit("R2", r1)
    d = graph.commit("D", m)
    graph.branch("main", d)
    graph.branch("release/1.0", r2)

    graph.commits = {"A": a, "B": b, "C": c, "M": m, "R1": r1, "R2": r2, "D": d}
    return graph


def test_forward_merge_is_skipped(back_merged):
    """Test that the back-merge does not hide the original fork point."""
    provider = back_merged.provider()
    release = provider.repository.find_branch("release/1.0")
    main = provider.repository.find_branch("main")

    merge_base = provider.find_merge_base(release, main)

    assert merge_base == back_merged.commits["B"]
    assert back_merged.repository().find_merge_base(release.tip, main.tip) == back_merged.commits["R1"]


def test_merge_base_is_order_sensitive(back_merged):
    """Test that (A, B) and (B, A) are resolved independently."""
    provider = back_merged.provider()
    release = provider.repository.find_branch("release/1.0")
    main = provider.repository.find_branch("main")

    assert provider.find_merge_base(release, main) == back_merged.commits["B"]
    assert provider.find_merge_base(main, release) == back_merged.commits["R1"]
    assert provider.cache.stats()["merge_bases"] == 2


def test_merge_base_cached(back_merged):
    """Test that a repeated query does not walk the graph again."""
    provider = back_merged.provider()
    repository = provider.repository

    with patch.object(
        repository, "find_merge_base", wraps=repository.find_merge_base
    ) as primitive, patch.object(
        repository, "get_forward_merge", wraps=repository.get_forward_merge
    ) as forward:
        first = provider.find_merge_base(
            repository.find_branch("release/1.0"), repository.find_branch("main")
        )
        calls = (primitive.call_count, forward.call_count)
        second = provider.find_merge_base(
            repository.find_branch("release/1.0"), repository.find_branch("main")
        )

    assert first == second
    assert calls[0] > 0
    assert (primitive.call_count, forward.call_count) == calls
    assert provider.cache.hits == 1


def test_merge_base_cache_follows_tip(back_merged):
    """Test that moving a tip invalidates the cached pair."""
    provider = back_merged.provider()
    release = provider.repository.find_branch("release/1.0")
    main = provider.repository.find_branch("main")
    provider.find_merge_base(main, release)

    moved = dataclasses.replace(main, tip=back_merged.commits["C"])

    assert provider.find_merge_base(moved, release) == back_merged.commits["B"]


def test_other_tip_merging_branch_uses_first_parent(graph):
    """Test the case where the other tip is the merge of this branch."""
    a = graph.commit("A")
    b = graph.commit("B", a)
    r1 = graph.commit("R1", b)
    c = graph.commit("C", b)
    m = graph.commit("Merge release/1.0", c, r1)
    graph.branch("main", m)
    graph.branch("release/1.0", r1)
    provider = graph.provider()

    merge_base = provider.find_merge_base(
        provider.repository.find_branch("release/1.0"), provider.repository.find_branch("main")
    )

    assert merge_base == b


def test_repeated_back_merges_converge(graph):
    """Test that the correction walks past every back-merge."""
    a = graph.commit("A")
    b = graph.commit("B", a)
    r1 = graph.commit("R1", b)
    c = graph.commit("C", b)
    m1 = graph.commit("M1", c, r1)
    r2 = graph.commit("R2", r1)
    m2 = graph.commit("M2", m1, r2)
    r3 = graph.commit("R3", r2)
    d = graph.commit("D", m2)
    graph.branch("main", d)
    graph.branch("release/1.0", r3)
    provider = graph.provider()
    repository = provider.repository

    with patch.object(
        repository, "get_forward_merge", wraps=repository.get_forward_merge
    ) as forward:
        merge_base = provider.find_merge_base(
            repository.find_branch("release/1.0"), repository.find_branch("main")
        )

    assert merge_base == b
    assert forward.call_count == 3


def test_plain_fork_has_no_correction(graph):
    """Test a simple fork resolves to the branch point."""
    a = graph.commit("A")
    b = graph.commit("B", a)
    c = graph.commit("C", b)
    f1 = graph.commit("F1", b)
    graph.branch("main", c)
    graph.branch("feature/x", f1)
    provider = graph.provider()

    merge_base = provider.find_merge_base(
        provider.repository.find_branch("feature/x"), provider.repository.find_branch("main")
    )

    assert merge_base == b


def test_disjoint_histories(graph):
    """Test that unrelated roots give no merge base and no error."""
    graph.branch("main", graph.commit("X"))
    graph.branch("orphan", graph.commit("Y"))
    provider = graph.provider()
    main = provider.repository.find_branch("main")
    orphan = provider.repository.find_branch("orphan")

    with capture_logs() as logs:
        assert provider.find_merge_base(main, orphan) is None
        assert provider.find_merge_base(main, orphan) is None

    assert any(log["event"] == "no_common_history" for log in logs)
    assert provider.cache.hits == 1


def test_missing_tip_rejected(graph):
    """Test that tipless branches violate the contract."""
    graph.branch("main", graph.commit("A"))
    provider = graph.provider()
    ghost = Branch(canonical_name="refs/heads/ghost", friendly_name="ghost")

    with pytest.raises(ValueError, match="has no tip"):
        provider.find_merge_base(provider.repository.find_branch("main"), ghost)
    with pytest.raises(ValueError, match="must not be None"):
        provider.find_merge_base(None, ghost)


def test_independent_sessions(back_merged):
    """Test that providers do not share cached answers."""
    first = back_merged.provider()
    second = back_merged.provider()
    release = first.repository.find_branch("release/1.0")
    main = first.repository.find_branch("main")

    first.find_merge_base(release, main)

    assert second.cache.stats()["merge_bases"] == 0
    first.reset()
    assert first.cache.stats()["merge_bases"] == 0


def test_merge_base_lost_after_forward_merge(graph):
    """Test that losing shared history while skipping a forward merge gives None."""
    r0 = graph.commit("R0")
    r1 = graph.commit("R1", r0)
    r2 = graph.commit("R2", r1)
    x = graph.commit("X")
    m = graph.commit("Merge release/1.0 into main", x, r1)
    graph.branch("release/1.0", r2)
    graph.branch("main", m)
    provider = graph.provider()
    release = provider.repository.find_branch("release/1.0")
    main = provider.repository.find_branch("main")

    with capture_logs() as logs:
        merge_base = provider.find_merge_base(release, main)

    assert merge_base is None
    assert provider.repository.find_merge_base(r2, m) == r1
    warning = next(log for log in logs if log["event"] == "merge_base_lost_after_forward_merge")
    assert warning["log_level"] == "warning"
    assert warning["sha"] == r2.hexsha
