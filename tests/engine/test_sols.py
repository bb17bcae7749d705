"""Tests for lajan.engine.sols."""

from collections.abc import Callable
from datetime import date
from pathlib import Path

import pytest

from lajan.domain.errors import CurrencyMismatchError, InsufficientFundsError, InvalidStateError, NotFoundError, ValidationError
from lajan.domain.models import (
    Account,
    Currency,
    Frequency,
    LinkedModule,
    Money,
    Sol,
    SolMember,
    SolType,
    TransactionType,
    UserId,
)
from lajan.domain.sol import progress
from lajan.engine.accounts import get_account
from lajan.engine.journal import delete_transaction, list_transactions
from lajan.engine.sols import (
    contribute_sol,
    create_sol,
    delete_sol,
    get_sol,
    list_sols,
    move_to_next_recipient,
    sol_history,
    sol_stats,
    update_sol,
)

ALICE = UserId("alice")
BOB = UserId("bob")


@pytest.fixture
def personal_sol(db_path: Path) -> Sol:
    """Monthly personal sol of 100 towards 1000, starting 2025-01-15."""
    return create_sol(
        ALICE,
        "Lekol",
        SolType.PERSONAL,
        Money(10000),
        Frequency.MONTHLY,
        date(2025, 1, 15),
        target_amount=Money(100000),
        db_path=db_path,
    )


@pytest.fixture
def group_sol(db_path: Path) -> Sol:
    """Weekly collaborative sol with three members."""
    return create_sol(
        ALICE,
        "Sol Katye",
        SolType.COLLABORATIVE,
        Money(50000),
        Frequency.WEEKLY,
        date(2025, 3, 3),
        members=[("Marie", "3700-0000"), ("Jean", None), ("Rose", None)],
        db_path=db_path,
    )


class TestCreateSol:
    """Tests for create_sol."""

    def test_first_payment_due_on_start(self, personal_sol: Sol) -> None:
        assert personal_sol.next_payment_date == date(2025, 1, 15)
        assert personal_sol.total_contributions == Money(0)
        assert personal_sol.is_active

    def test_members_positioned_in_order(self, db_path: Path, group_sol: Sol) -> None:
        stored = get_sol(ALICE, group_sol.id, db_path)

        assert [(m.name, m.position) for m in stored.members] == [("Marie", 0), ("Jean", 1), ("Rose", 2)]
        assert stored.members[0].phone == "3700-0000"
        assert stored.target_amount is None

    def test_personal_needs_target(self, db_path: Path) -> None:
        with pytest.raises(ValidationError, match="target"):
            create_sol(ALICE, "Vakans", SolType.PERSONAL, Money(1000), Frequency.WEEKLY, date(2025, 1, 1), db_path=db_path)

    def test_collaborative_needs_members(self, db_path: Path) -> None:
        with pytest.raises(ValidationError, match="member"):
            create_sol(
                ALICE, "Sol", SolType.COLLABORATIVE, Money(1000), Frequency.WEEKLY, date(2025, 1, 1), db_path=db_path
            )


class TestContribute:
    """Tests for contribute_sol."""

    def test_five_monthly_contributions(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol
    ) -> None:
        """Each contribution adds the amount and moves the due date one period."""
        wallet = make_account(balance=1000)

        for _ in range(5):
            sol, _txn = contribute_sol(ALICE, personal_sol.id, wallet.id, db_path, today=date(2025, 2, 1))

        assert sol.total_contributions == Money(50000)
        assert progress(sol) == 50
        assert sol.next_payment_date == date(2025, 6, 15)
        assert get_account(ALICE, wallet.id, db_path).balance == Money(50000)

    def test_contribution_is_a_generated_expense(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol
    ) -> None:
        wallet = make_account(balance=1000)

        _sol, txn = contribute_sol(ALICE, personal_sol.id, wallet.id, db_path, today=date(2025, 1, 15))

        assert txn.type == TransactionType.EXPENSE
        assert txn.category == "sol"
        assert txn.generated
        assert txn.linked_module == LinkedModule.SOL
        assert txn.linked_id == personal_sol.id
        assert txn.date == date(2025, 1, 15)

    def test_generated_expense_cannot_be_deleted(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol
    ) -> None:
        wallet = make_account(balance=1000)
        _sol, txn = contribute_sol(ALICE, personal_sol.id, wallet.id, db_path)

        with pytest.raises(InvalidStateError):
            delete_transaction(ALICE, txn.id, db_path)

    def test_overpaying_target_allowed(self, db_path: Path, make_account: Callable[..., Account]) -> None:
        wallet = make_account(balance=1000)
        small = create_sol(
            ALICE,
            "Ti kob",
            SolType.PERSONAL,
            Money(10000),
            Frequency.WEEKLY,
            date(2025, 1, 1),
            target_amount=Money(15000),
            db_path=db_path,
        )

        contribute_sol(ALICE, small.id, wallet.id, db_path)
        sol, _txn = contribute_sol(ALICE, small.id, wallet.id, db_path)

        assert sol.total_contributions == Money(20000)
        assert progress(sol) == 100

    def test_inactive_sol_rejected(self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol) -> None:
        wallet = make_account()
        update_sol(ALICE, personal_sol.id, is_active=False, db_path=db_path)

        with pytest.raises(InvalidStateError):
            contribute_sol(ALICE, personal_sol.id, wallet.id, db_path)

    def test_currency_must_match(self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol) -> None:
        dollars = make_account(currency=Currency.USD)

        with pytest.raises(CurrencyMismatchError):
            contribute_sol(ALICE, personal_sol.id, dollars.id, db_path)

    def test_insufficient_funds_leaves_sol_unchanged(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol
    ) -> None:
        wallet = make_account(balance=50)

        with pytest.raises(InsufficientFundsError):
            contribute_sol(ALICE, personal_sol.id, wallet.id, db_path)

        stored = get_sol(ALICE, personal_sol.id, db_path)
        assert stored.total_contributions == Money(0)
        assert stored.next_payment_date == date(2025, 1, 15)
        assert list_transactions(ALICE, db_path=db_path) == []

    def test_other_users_sol_not_found(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol
    ) -> None:
        bobs = make_account(user_id=BOB)

        with pytest.raises(NotFoundError):
            contribute_sol(BOB, personal_sol.id, bobs.id, db_path)


class TestRotation:
    """Tests for move_to_next_recipient."""

    def test_full_rotation_resets_received(self, db_path: Path, group_sol: Sol) -> None:
        sol = move_to_next_recipient(ALICE, group_sol.id, db_path, today=date(2025, 3, 3))
        assert sol.current_recipient_index == 1
        assert sol.members[0].has_received
        assert sol.members[0].received_date == date(2025, 3, 3)

        move_to_next_recipient(ALICE, group_sol.id, db_path)
        sol = move_to_next_recipient(ALICE, group_sol.id, db_path)

        assert sol.current_recipient_index == 0
        assert not any(m.has_received for m in get_sol(ALICE, group_sol.id, db_path).members)

    def test_personal_sol_has_no_recipients(self, db_path: Path, personal_sol: Sol) -> None:
        with pytest.raises(InvalidStateError):
            move_to_next_recipient(ALICE, personal_sol.id, db_path)

    def test_rotation_moves_no_money(
        self, db_path: Path, make_account: Callable[..., Account], group_sol: Sol
    ) -> None:
        wallet = make_account(balance=1000)

        move_to_next_recipient(ALICE, group_sol.id, db_path)

        assert get_account(ALICE, wallet.id, db_path).balance == Money(100000)
        assert list_transactions(ALICE, db_path=db_path) == []


class TestUpdateSol:
    """Tests for update_sol and delete_sol."""

    def test_shrinking_members_clamps_recipient(self, db_path: Path, group_sol: Sol) -> None:
        move_to_next_recipient(ALICE, group_sol.id, db_path)
        move_to_next_recipient(ALICE, group_sol.id, db_path)

        sol = update_sol(
            ALICE,
            group_sol.id,
            members=[SolMember(name="Rose", position=5), SolMember(name="Paul", position=9)],
            db_path=db_path,
        )

        assert sol.current_recipient_index == 0
        assert [(m.name, m.position) for m in get_sol(ALICE, group_sol.id, db_path).members] == [
            ("Rose", 0),
            ("Paul", 1),
        ]

    def test_empty_members_rejected(self, db_path: Path, group_sol: Sol) -> None:
        with pytest.raises(ValidationError):
            update_sol(ALICE, group_sol.id, members=[], db_path=db_path)

    def test_delete_keeps_contributions(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol
    ) -> None:
        wallet = make_account()
        contribute_sol(ALICE, personal_sol.id, wallet.id, db_path)

        delete_sol(ALICE, personal_sol.id, db_path)

        assert list_sols(ALICE, db_path=db_path) == []
        assert len(list_transactions(ALICE, db_path=db_path)) == 1


class TestSolViews:
    """Tests for sol_history and sol_stats."""

    def test_history_lists_contributions(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol, group_sol: Sol
    ) -> None:
        wallet = make_account(balance=2000)
        contribute_sol(ALICE, personal_sol.id, wallet.id, db_path)
        contribute_sol(ALICE, personal_sol.id, wallet.id, db_path)
        contribute_sol(ALICE, group_sol.id, wallet.id, db_path)

        sol, history = sol_history(ALICE, personal_sol.id, db_path)

        assert sol.total_contributions == Money(20000)
        assert len(history) == 2
        assert all(t.linked_id == personal_sol.id for t in history)

    def test_stats_over_active_sols(
        self, db_path: Path, make_account: Callable[..., Account], personal_sol: Sol, group_sol: Sol
    ) -> None:
        wallet = make_account(balance=2000)
        contribute_sol(ALICE, personal_sol.id, wallet.id, db_path)
        contribute_sol(ALICE, group_sol.id, wallet.id, db_path)

        stats = sol_stats(ALICE, db_path)

        assert stats.active_sols == 2
        assert stats.total_contributions == Money(60000)
        assert stats.total_target == Money(100000)
        assert stats.remaining == Money(40000)
