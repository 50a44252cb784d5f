from dataclasses import dataclass
from typing import Optional

import pytest

from playlog.progress import (
    EffectiveOwnership,
    addition_weight,
    compute_percentage,
    resolve_effective_ownership,
)


@dataclass
class FakeAddition:
    id: str
    addition_type: str = "dlc"
    is_complete_edition: bool = False
    weight: Optional[float] = 1.0
    required_for_full: bool = True


def _catalog():
    return [
        FakeAddition("dlc-a", weight=1),
        FakeAddition("dlc-b", weight=3),
        FakeAddition("std", addition_type="edition"),
        FakeAddition("deluxe", addition_type="edition", is_complete_edition=True),
    ]


def test_weighted_percentage():
    additions = _catalog()
    ownership = resolve_effective_ownership(additions, None, {"dlc-a": True})
    assert ownership.owned_dlc_ids == frozenset({"dlc-a"})
    assert compute_percentage(additions, ownership) == 25


def test_complete_edition_owns_every_dlc():
    additions = _catalog()
    ownership = resolve_effective_ownership(additions, "deluxe", {"dlc-b": False})
    assert ownership.has_complete_edition is True
    assert ownership.owned_dlc_ids == frozenset({"dlc-a", "dlc-b"})
    assert compute_percentage(additions, ownership) == 100


def test_plain_edition_keeps_stored_flags():
    additions = _catalog()
    ownership = resolve_effective_ownership(additions, "std", {"dlc-b": True})
    assert ownership.has_complete_edition is False
    assert ownership.edition_id == "std"
    assert compute_percentage(additions, ownership) == 75


def test_unknown_edition_reads_as_standard():
    ownership = resolve_effective_ownership(_catalog(), "gone", {})
    assert ownership.edition_id is None
    assert ownership.has_complete_edition is False


def test_no_required_weight_is_zero():
    additions = [
        FakeAddition("dlc-a", weight=0),
        FakeAddition("dlc-b", required_for_full=False),
    ]
    ownership = resolve_effective_ownership(additions, None, {"dlc-a": True, "dlc-b": True})
    assert compute_percentage(additions, ownership) == 0
    assert compute_percentage([], EffectiveOwnership()) == 0


def test_optional_dlc_is_outside_denominator():
    additions = [
        FakeAddition("dlc-a"),
        FakeAddition("dlc-b"),
        FakeAddition("soundtrack", required_for_full=False),
    ]
    ownership = resolve_effective_ownership(additions, None, {"soundtrack": True, "dlc-a": True})
    assert compute_percentage(additions, ownership) == 50


def test_editions_and_other_never_count():
    additions = [
        FakeAddition("dlc-a"),
        FakeAddition("std", addition_type="edition", weight=10),
        FakeAddition("artbook", addition_type="other", weight=10),
    ]
    ownership = resolve_effective_ownership(additions, "std", {"artbook": True})
    assert not ownership.owns(additions[2])
    assert ownership.owns(additions[1])
    assert compute_percentage(additions, ownership) == 0


@pytest.mark.parametrize(
    "weights, owned, expected",
    [
        ([1, 1, 1], {"d0"}, 33),
        ([1, 1, 1], {"d0", "d1"}, 67),
        ([1, 1, 1, 1, 1, 1, 1, 1], {"d0"}, 13),  # 12.5 rounds up
        ([1, 1], {"d0", "d1"}, 100),
    ],
)
def test_rounding_half_up(weights, owned, expected):
    additions = [FakeAddition(f"d{i}", weight=w) for i, w in enumerate(weights)]
    ownership = resolve_effective_ownership(additions, None, {i: True for i in owned})
    assert compute_percentage(additions, ownership) == expected


def test_unset_weight_counts_as_one():
    assert addition_weight(FakeAddition("d", weight=None)) == 1.0
    additions = [FakeAddition("d0", weight=None), FakeAddition("d1", weight=3)]
    ownership = resolve_effective_ownership(additions, None, {"d0": True})
    assert compute_percentage(additions, ownership) == 25
