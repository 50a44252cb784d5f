"""Effective ownership and completion percentage.

Pure functions over catalog rows; nothing here touches the database. Any
object exposing ``id``, ``addition_type``, ``is_complete_edition``,
``weight`` and ``required_for_full`` (ORM rows, test doubles) is accepted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Protocol, Sequence

EDITION = "edition"
DLC = "dlc"
DEFAULT_WEIGHT = 1.0


class AdditionLike(Protocol):
    id: str
    addition_type: str
    is_complete_edition: bool
    weight: Optional[float]
    required_for_full: bool


@dataclass(frozen=True)
class EffectiveOwnership:
    edition_id: Optional[str] = None
    owned_dlc_ids: frozenset[str] = field(default_factory=frozenset)
    has_complete_edition: bool = False

    def owns(self, addition: AdditionLike) -> bool:
        if addition.addition_type == EDITION:
            return self.edition_id is not None and addition.id == self.edition_id
        if addition.addition_type == DLC:
            return addition.id in self.owned_dlc_ids
        return False


def addition_weight(addition: AdditionLike) -> float:
    if addition.weight is None:
        return DEFAULT_WEIGHT
    return float(addition.weight)


def dlcs_of(additions: Iterable[AdditionLike]) -> list[AdditionLike]:
    return [a for a in additions if a.addition_type == DLC]


def resolve_effective_ownership(
    additions: Sequence[AdditionLike],
    edition_id: Optional[str],
    stored_flags: Mapping[str, bool],
) -> EffectiveOwnership:
    """Apply the complete-edition override to the stored per-DLC flags.

    ``stored_flags`` maps addition id to its stored ``owned`` value; DLCs with
    no stored row count as not owned. A selected edition that is not part of
    ``additions`` is treated as the standard edition.
    """
    dlcs = dlcs_of(additions)
    edition = next(
        (a for a in additions if a.id == edition_id and a.addition_type == EDITION),
        None,
    )
    has_complete = bool(edition is not None and edition.is_complete_edition)

    if has_complete:
        owned = frozenset(d.id for d in dlcs)
    else:
        owned = frozenset(d.id for d in dlcs if stored_flags.get(d.id, False))

    return EffectiveOwnership(
        edition_id=edition.id if edition is not None else None,
        owned_dlc_ids=owned,
        has_complete_edition=has_complete,
    )


def compute_percentage(
    additions: Sequence[AdditionLike], ownership: EffectiveOwnership
) -> int:
    """Weighted share of required DLCs that are effectively owned, 0-100.

    Editions never enter the denominator. With no required weight the
    result is 0.
    """
    required = [d for d in dlcs_of(additions) if d.required_for_full]
    total = sum(addition_weight(d) for d in required)
    if total <= 0:
        return 0
    owned = sum(addition_weight(d) for d in required if ownership.owns(d))
    percentage = math.floor(100 * owned / total + 0.5)
    return max(0, min(100, percentage))
