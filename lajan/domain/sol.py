"""Pure functions for savings pools (sols).

A personal sol saves towards a target. A collaborative sol is a rotating
fund: each period one member receives the pooled contributions, and once
everyone has received a new rotation begins.

All monetary amounts are in minor units (Money type).
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date

from lajan.dates import advance
from lajan.domain.models import Money, Sol, SolMember, SolType
from lajan.domain.money import percent_of

MAX_NAME_LENGTH = 50


@dataclass(frozen=True)
class SolStats:
    """Immutable totals across active sols."""

    total_contributions: Money
    total_target: Money
    active_sols: int
    completed_sols: int

    @property
    def remaining(self) -> Money:
        return Money(max(0, self.total_target - self.total_contributions))


def progress(sol: Sol) -> int:
    """Progress towards a personal sol's target, capped at 100.

    Returns:
        Integer percentage; 0 for collaborative sols or a missing target.
    """
    if sol.type != SolType.PERSONAL or not sol.target_amount:
        return 0
    return min(100, percent_of(sol.total_contributions, sol.target_amount))


def current_recipient(sol: Sol) -> SolMember | None:
    """Member currently due to receive the pooled funds."""
    if sol.type != SolType.COLLABORATIVE or not sol.members:
        return None
    return sol.members[sol.current_recipient_index]


def total_cycles(sol: Sol) -> int:
    """Number of payouts in one full rotation."""
    if sol.type != SolType.COLLABORATIVE:
        return 0
    return len(sol.members)


def cycle_amount(sol: Sol) -> Money:
    """Pooled amount paid out to a recipient each period."""
    if sol.type != SolType.COLLABORATIVE:
        return Money(0)
    return Money(sol.amount * len(sol.members))


def build_members(entries: Sequence[tuple[str, str | None]]) -> tuple[SolMember, ...]:
    """Create members from (name, phone) pairs, assigning positions in order."""
    return tuple(SolMember(name=name.strip(), phone=phone, position=i) for i, (name, phone) in enumerate(entries))


def validate_sol_fields(
    name: str,
    sol_type: SolType,
    amount: Money,
    start_date: date,
    end_date: date | None,
    target_amount: Money | None,
    members: Sequence[SolMember],
) -> str | None:
    """Validate sol input.

    Returns:
        Error message, or None if the input is well formed.
    """
    if not name.strip():
        return "Name is required"
    if len(name) > MAX_NAME_LENGTH:
        return f"Name cannot exceed {MAX_NAME_LENGTH} characters"
    if amount <= 0:
        return "Amount must be positive"
    if end_date is not None and end_date <= start_date:
        return "End date must be after start date"

    if sol_type == SolType.PERSONAL:
        if target_amount is None or target_amount <= 0:
            return "Personal sols need a positive target amount"
    elif sol_type == SolType.COLLABORATIVE:
        if not members:
            return "Collaborative sols need at least one member"
        if any(not m.name for m in members):
            return "Every member needs a name"

    return None


def check_contribute(sol: Sol) -> str | None:
    """Check that a sol accepts contributions."""
    if not sol.is_active:
        return f"Sol '{sol.name}' is not active"
    return None


def check_rotate(sol: Sol) -> str | None:
    """Check that a sol can move to its next recipient."""
    if sol.type != SolType.COLLABORATIVE:
        return "Only collaborative sols have recipients"
    if not sol.members:
        return "Sol has no members"
    return None


def record_contribution(sol: Sol) -> Sol:
    """Apply one contribution to the sol's running totals.

    The next payment date advances from the previously scheduled date, not
    from the contribution date, so late payments do not shift the schedule.
    There is no cap against the target or the rotation length.
    """
    return replace(
        sol,
        total_contributions=Money(sol.total_contributions + sol.amount),
        next_payment_date=advance(sol.next_payment_date, sol.frequency, anchor=sol.start_date),
    )


def rotate_recipient(sol: Sol, today: date) -> Sol:
    """Mark the current recipient as paid and advance the pointer.

    When the pointer wraps back to the first member a new rotation begins and
    every member's received state is cleared.

    Args:
        sol: Collaborative sol with at least one member.
        today: Date stamped on the member who received.

    Returns:
        Updated sol.
    """
    index = sol.current_recipient_index
    members = list(sol.members)
    members[index] = replace(members[index], has_received=True, received_date=today)

    next_index = (index + 1) % len(members)
    if next_index == 0:
        members = [replace(m, has_received=False, received_date=None) for m in members]

    return replace(sol, members=tuple(members), current_recipient_index=next_index)


def reposition_members(members: Sequence[SolMember]) -> tuple[SolMember, ...]:
    """Renumber member positions to match their order."""
    return tuple(replace(m, position=i) for i, m in enumerate(members))


def compute_sol_stats(sols: Iterable[Sol]) -> SolStats:
    """Aggregate contributions and targets over active sols."""
    total_contributions = 0
    total_target = 0
    active = 0
    completed = 0

    for sol in sols:
        if not sol.is_active:
            continue
        active += 1
        total_contributions += sol.total_contributions
        if sol.type == SolType.PERSONAL and sol.target_amount:
            total_target += sol.target_amount
            if sol.total_contributions >= sol.target_amount:
                completed += 1

    return SolStats(
        total_contributions=Money(total_contributions),
        total_target=Money(total_target),
        active_sols=active,
        completed_sols=completed,
    )
