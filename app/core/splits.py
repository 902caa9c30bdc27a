"""
Split allocation.

Turns an expense total plus a split method into per-member amounts that
reconcile with the total. Everything here is pure: no session, no I/O.

Rounding: every computed share is rounded *down* to the cent, and the
leftover cents go to one designated member so the allocation sums to the
total exactly. The designated member is the first one listed (for
percentage and shares, the first one with a non-zero weight). The
tie-break is therefore order dependent and deterministic: 10.00 split
equally three ways is always [3.34, 3.33, 3.33].
"""
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Sequence, Tuple

from app.core.errors import InvalidInput, SplitMismatch
from app.core.utils import ZERO, has_cent_precision, qfloor, qround, to_decimal, within_tolerance

HUNDRED = Decimal("100")


class Allocation(NamedTuple):
    user_id: str
    amount_owed: Decimal


def money(value, field: str = "amount") -> Decimal:
    """Validate a positive, cent-precise amount."""
    d = to_decimal(value, field)
    if not d.is_finite():
        raise InvalidInput(f"{field} must be a number", field=field)
    if d <= 0:
        raise InvalidInput(f"{field} must be positive", field=field)
    if not has_cent_precision(d):
        raise InvalidInput(f"{field} must have at most two decimal places", field=field)
    return qround(d)


def _check_members(user_ids: Sequence[str]):
    if not user_ids:
        raise InvalidInput("A split needs at least one member")
    if len(user_ids) != len(set(user_ids)):
        raise InvalidInput("Duplicate users found in splits")


def _reconcile(total: Decimal, shares: List[Tuple[str, Decimal]], anchor: int) -> List[Allocation]:
    remainder = total - sum((amt for _, amt in shares), ZERO)
    out = []
    for i, (uid, amt) in enumerate(shares):
        if i == anchor:
            amt += remainder
        out.append(Allocation(uid, amt))
    return out


def _first_weighted(weights: Iterable[Decimal]) -> int:
    for i, w in enumerate(weights):
        if w > 0:
            return i
    return 0


def split_equally(total, member_ids: Sequence[str]) -> List[Allocation]:
    total = money(total)
    _check_members(member_ids)

    n = len(member_ids)
    per_share = qfloor(total / n)
    return _reconcile(total, [(uid, per_share) for uid in member_ids], anchor=0)


def split_exact(total, amounts: Sequence[Tuple[str, Decimal]]) -> List[Allocation]:
    total = money(total)
    _check_members([uid for uid, _ in amounts])

    out = []
    for uid, amt in amounts:
        amt = to_decimal(amt, "amount_owed")
        if not amt.is_finite() or amt < 0:
            raise InvalidInput("Split amounts must be non-negative", user_id=uid)
        if not has_cent_precision(amt):
            raise InvalidInput("Split amounts must have at most two decimal places", user_id=uid)
        out.append(Allocation(uid, qround(amt)))

    ensure_reconciles(total, out)
    return out


def split_by_percentage(total, percentages: Sequence[Tuple[str, Decimal]]) -> List[Allocation]:
    total = money(total)
    _check_members([uid for uid, _ in percentages])

    pcts = [to_decimal(p, "percentage") for _, p in percentages]
    if any(not p.is_finite() or p < 0 for p in pcts):
        raise InvalidInput("Percentages must be non-negative")

    pct_sum = sum(pcts, ZERO)
    if not within_tolerance(pct_sum, HUNDRED):
        raise SplitMismatch(
            f"Percentages sum to {pct_sum}, expected 100",
            expected=HUNDRED,
            actual=pct_sum,
        )

    # shares of the actual sum, so the floored shares never exceed the total
    shares = [(uid, qfloor(total * p / pct_sum)) for (uid, _), p in zip(percentages, pcts)]
    return _reconcile(total, shares, anchor=_first_weighted(pcts))


def split_by_shares(total, weights: Sequence[Tuple[str, int]]) -> List[Allocation]:
    total = money(total)
    _check_members([uid for uid, _ in weights])

    counts = [int(w) for _, w in weights]
    if any(c < 0 for c in counts):
        raise InvalidInput("Shares must be non-negative")

    share_sum = sum(counts)
    if share_sum <= 0:
        raise SplitMismatch(
            "Shares must sum to more than zero",
            expected="> 0",
            actual=share_sum,
        )

    shares = [(uid, qfloor(total * c / share_sum)) for (uid, _), c in zip(weights, counts)]
    return _reconcile(total, shares, anchor=_first_weighted(Decimal(c) for c in counts))


def ensure_reconciles(total: Decimal, allocations: Sequence[Allocation]):
    """Raise SplitMismatch unless the allocations sum to total within a cent."""
    actual = sum((a.amount_owed for a in allocations), ZERO)
    if not within_tolerance(actual, total):
        raise SplitMismatch(
            f"Sum of splits ({actual}) does not match expense amount ({total})",
            expected=total,
            actual=actual,
        )


def allocate(total, split, group_member_ids: Sequence[str] = ()) -> List[Allocation]:
    """
    Dispatch a validated split request to its allocator.

    ``split`` is one variant of the ``SplitRequest`` tagged union. For an
    equal split without explicit members, ``group_member_ids`` is used in
    the order given.
    """
    method = split.split_method

    if method == "equally":
        member_ids = split.member_ids if split.member_ids is not None else list(group_member_ids)
        return split_equally(total, member_ids)
    if method == "exact":
        return split_exact(total, [(s.user_id, s.amount_owed) for s in split.splits])
    if method == "percentage":
        return split_by_percentage(total, [(s.user_id, s.percentage) for s in split.splits])
    if method == "shares":
        return split_by_shares(total, [(s.user_id, s.shares) for s in split.splits])

    raise InvalidInput(f"Unknown split method: {method}")
