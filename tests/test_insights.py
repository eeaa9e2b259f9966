import random
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from insights import (
    calculate_category_totals,
    current_month_category_totals,
    filter_payment_method_expenses,
    filter_upcoming_expenses,
    group_expenses_by_month,
    group_expenses_by_urgency,
    summarize_payment_method,
)
from models import Category, Expense, Purchase, Status

UTC = timezone.utc
TODAY = date(2025, 3, 15)

PAID = Status(id=1, name="Paid")
UNPAID = Status(id=2, name="Unpaid")
FOOD = Category(id=1, name="Food", color="#ff0000")
RENT = Category(id=2, name="Rent", color="#00ff00")
FUN = Category(id=3, name="Fun", color="#0000ff")


def _at(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 12, 0, tzinfo=UTC)


def _expense(
    expense_id: int,
    amount_cents: int,
    *,
    due: Optional[date] = None,
    spent: date = TODAY,
    paid: bool = False,
    category: Category = FOOD,
) -> Expense:
    status = PAID if paid else UNPAID
    return Expense(
        id=expense_id,
        description=f"Expense {expense_id}",
        amount_cents=amount_cents,
        category_id=category.id,
        category=category,
        status_id=status.id,
        status=status,
        date=_at(spent),
        due_date=_at(due) if due else None,
    )


def test_urgency_buckets_by_due_date() -> None:
    expenses = [
        _expense(1, 1000, due=TODAY - timedelta(days=1)),
        _expense(2, 2000, due=TODAY),
        _expense(3, 3000, due=TODAY + timedelta(days=1)),
    ]

    groups = group_expenses_by_urgency(expenses, today=TODAY, tz=UTC)

    assert [e.id for e in groups.overdue] == [1]
    assert [e.id for e in groups.due_today] == [2]
    assert [e.id for e in groups.upcoming] == [3]
    assert (groups.overdue_total, groups.due_today_total, groups.upcoming_total) == (
        1000,
        2000,
        3000,
    )


def test_urgency_partition_covers_every_unpaid_expense() -> None:
    rng = random.Random(7)
    expenses = [
        _expense(i, rng.randint(1, 50_000), due=TODAY + timedelta(days=rng.randint(-20, 20)))
        for i in range(1, 40)
    ]
    expenses.append(_expense(99, 1234))

    groups = group_expenses_by_urgency(expenses, today=TODAY, tz=UTC)

    buckets = groups.overdue + groups.due_today + groups.upcoming
    assert len(buckets) == len(expenses)
    assert (
        groups.overdue_total + groups.due_today_total + groups.upcoming_total
        == sum(e.amount_cents for e in expenses)
    )


def test_urgency_skips_paid_expenses() -> None:
    expenses = [
        _expense(1, 500, due=TODAY - timedelta(days=30), paid=True),
        _expense(2, 700, due=TODAY, paid=True),
        _expense(3, 900, paid=True),
    ]

    groups = group_expenses_by_urgency(expenses, today=TODAY, tz=UTC)

    assert groups.overdue == groups.due_today == groups.upcoming == []
    assert groups.overdue_total == groups.upcoming_total == 0


def test_urgency_sorts_by_due_date_with_undated_last() -> None:
    expenses = [
        _expense(1, 100),
        _expense(2, 100, due=TODAY + timedelta(days=9)),
        _expense(3, 100),
        _expense(4, 100, due=TODAY + timedelta(days=2)),
        _expense(5, 100, due=TODAY - timedelta(days=1)),
        _expense(6, 100, due=TODAY - timedelta(days=5)),
    ]

    groups = group_expenses_by_urgency(expenses, today=TODAY, tz=UTC)

    assert [e.id for e in groups.upcoming] == [4, 2, 1, 3]
    assert [e.id for e in groups.overdue] == [6, 5]


def test_category_totals_percentages() -> None:
    expenses = [
        _expense(1, 3000, category=FOOD),
        _expense(2, 1000, category=RENT),
        _expense(3, 3000, category=FOOD),
        _expense(4, 2000, category=FUN),
    ]

    totals = calculate_category_totals(expenses)

    assert [t.category_name for t in totals] == ["Food", "Fun", "Rent"]
    assert [t.total_cents for t in totals] == [6000, 2000, 1000]
    assert [t.count for t in totals] == [2, 1, 1]
    assert [t.percentage for t in totals] == [67, 22, 11]
    assert totals[0].color == "#ff0000"


def test_category_totals_single_category_is_full_share() -> None:
    totals = calculate_category_totals([_expense(1, 10), _expense(2, 15)])
    assert len(totals) == 1
    assert totals[0].percentage == 100


def test_category_totals_empty_input() -> None:
    assert calculate_category_totals([]) == []


def test_category_totals_zero_amounts() -> None:
    totals = calculate_category_totals([_expense(1, 0)])
    assert totals[0].percentage == 0


def test_category_totals_unknown_category() -> None:
    orphan = Expense(id=1, amount_cents=100, category_id=42, date=_at(TODAY))
    totals = calculate_category_totals([orphan])
    assert totals[0].category_name == "Unknown"
    assert totals[0].color == "#90caf9"


def test_category_totals_ignore_input_order() -> None:
    expenses = [
        _expense(1, 1500, category=FOOD),
        _expense(2, 1500, category=RENT),
        _expense(3, 250, category=FUN),
        _expense(4, 800, category=FUN),
    ]

    def as_set(totals):
        return {(t.category_id, t.total_cents, t.count, t.percentage) for t in totals}

    baseline = as_set(calculate_category_totals(expenses))
    rng = random.Random(3)
    for _ in range(10):
        shuffled = expenses[:]
        rng.shuffle(shuffled)
        totals = calculate_category_totals(shuffled)
        assert as_set(totals) == baseline
        assert all(0 <= t.percentage <= 100 for t in totals)


def test_category_totals_ties_keep_first_encounter_order() -> None:
    expenses = [_expense(1, 500, category=RENT), _expense(2, 500, category=FOOD)]
    assert [t.category_id for t in calculate_category_totals(expenses)] == [2, 1]
    assert [t.category_id for t in calculate_category_totals(expenses[::-1])] == [1, 2]


def test_current_month_category_totals_filters_by_date() -> None:
    expenses = [
        _expense(1, 1000, spent=date(2025, 3, 1)),
        _expense(2, 9000, spent=date(2025, 2, 28)),
    ]
    totals = current_month_category_totals(expenses, today=TODAY, tz=UTC)
    assert [t.total_cents for t in totals] == [1000]


def test_month_groups_most_recent_first() -> None:
    expenses = [
        _expense(1, 100, spent=date(2025, 1, 10)),
        _expense(2, 200, spent=date(2025, 3, 2)),
        _expense(3, 300, spent=date(2024, 2, 20)),
        _expense(4, 400, spent=date(2025, 1, 25), paid=True),
    ]

    groups = group_expenses_by_month(expenses, tz=UTC)

    assert [g.month for g in groups] == ["March 2025", "January 2025", "February 2024"]
    january = groups[1]
    assert january.month_number == 0
    assert [e.id for e in january.expenses] == [1, 4]
    assert (january.total_paid_cents, january.paid_count) == (400, 1)
    assert (january.total_unpaid_cents, january.unpaid_count) == (100, 1)


def test_month_groups_use_spend_date_not_due_date() -> None:
    expense = _expense(1, 100, spent=date(2025, 1, 31), due=date(2025, 2, 15))
    groups = group_expenses_by_month([expense], tz=UTC)
    assert [(g.year, g.month_number) for g in groups] == [(2025, 0)]


def test_filter_upcoming_expenses_window() -> None:
    expenses = [
        _expense(1, 100, due=TODAY + timedelta(days=31)),
        _expense(2, 100, due=TODAY + timedelta(days=30)),
        _expense(3, 100, due=TODAY),
        _expense(4, 100, due=TODAY - timedelta(days=1)),
        _expense(5, 100, due=TODAY + timedelta(days=3), paid=True),
        _expense(6, 100),
    ]

    upcoming = filter_upcoming_expenses(expenses, 30, today=TODAY, tz=UTC)

    assert [e.id for e in upcoming] == [3, 2]


def test_payment_method_filters_and_summary() -> None:
    expenses = [
        _expense(1, 1000, due=date(2025, 3, 20)),
        _expense(2, 2000, due=date(2025, 3, 1)),
        _expense(3, 3000, due=date(2025, 2, 1)),
        _expense(4, 4000, due=date(2025, 3, 5), paid=True),
        _expense(5, 5000),
    ]

    def ids(name):
        return [e.id for e in filter_payment_method_expenses(expenses, name, today=TODAY, tz=UTC)]

    assert ids(None) == [1, 2, 3, 4, 5]
    assert ids("outstanding") == [1, 2, 3, 5]
    assert ids("dueThisMonth") == [1, 2]
    assert ids("overdue") == [2, 3]
    assert ids("paid") == [4]
    with pytest.raises(ValueError):
        ids("later")

    summary = summarize_payment_method(expenses, today=TODAY, tz=UTC)
    assert (summary.total_unpaid_cents, summary.unpaid_count) == (11000, 4)
    assert (summary.due_this_month_cents, summary.due_this_month_count) == (3000, 2)
    assert (summary.overdue_cents, summary.overdue_count) == (5000, 2)
    assert (summary.total_paid_cents, summary.paid_count) == (4000, 1)


def test_installment_label() -> None:
    purchase = Purchase(
        id=1,
        description="Laptop",
        total_amount=120000,
        installment_count=12,
        start_date=_at(TODAY),
        category_id=1,
        status_id=2,
    )
    expense = _expense(1, 10000).model_copy(update={"purchase": purchase, "installment_number": 3})
    assert expense.installment_label == "3/12"
    assert expense.model_dump(by_alias=True)["installmentLabel"] == "3/12"
    assert _expense(2, 100).installment_label is None
