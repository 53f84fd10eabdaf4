"""Tests for the static cost accountant."""

import pytest

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.costs import CAPABILITY_COSTS_USD, estimate_cost, per_document_cost


def test_every_capability_has_a_cost():
    assert set(CAPABILITY_COSTS_USD) == set(CapabilityKind)


def test_per_document_cost():
    assert per_document_cost() == pytest.approx(0.072)


@pytest.mark.parametrize("n", [0, 1, 7, 250, 10_000])
def test_total_is_per_document_times_count(n):
    estimate = estimate_cost(n)

    assert estimate.document_count == n
    assert estimate.total == estimate.per_document * n


def test_breakdown_keyed_by_kind():
    breakdown = estimate_cost(3).breakdown

    assert breakdown["summaries"] == 0.001
    assert breakdown["embedding"] == 0.013
    assert breakdown["quality_assessment"] == 0.02
    assert sum(breakdown.values()) == pytest.approx(per_document_cost())


@pytest.mark.parametrize("bad", [-1, 2.5, "3", True, None])
def test_rejects_invalid_counts(bad):
    with pytest.raises(ValueError):
        estimate_cost(bad)
