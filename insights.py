"""Derived views over cached expenses.

Every function here is a pure function of its input collection; the results
are recomputed on each call and never stored.
"""

from calendar import month_name
from datetime import date, timedelta, tzinfo
from typing import Iterable, Optional, Sequence

from models import DEFAULT_CATEGORY_COLOR, Expense, PaymentMethodSummary
from periods import Period, current_month, local_date, local_today
from schemas import CategoryTotal, MonthGroup, UrgencyGroup

EXPENSE_FILTERS = ("outstanding", "dueThisMonth", "overdue", "paid")


def _due_sort_key(tz: Optional[tzinfo]):
    def key(expense: Expense) -> tuple[int, date]:
        if expense.due_date is None:
            return (1, date.max)
        return (0, local_date(expense.due_date, tz))

    return key


def group_expenses_by_urgency(
    expenses: Iterable[Expense],
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> UrgencyGroup:
    today = today or local_today(tz)
    result = UrgencyGroup()

    for expense in expenses:
        if expense.is_paid:
            continue
        if expense.due_date is None:
            # undated unpaid expenses are never overdue
            result.upcoming.append(expense)
            result.upcoming_total += expense.amount_cents
            continue

        due = local_date(expense.due_date, tz)
        if due < today:
            result.overdue.append(expense)
            result.overdue_total += expense.amount_cents
        elif due == today:
            result.due_today.append(expense)
            result.due_today_total += expense.amount_cents
        else:
            result.upcoming.append(expense)
            result.upcoming_total += expense.amount_cents

    key = _due_sort_key(tz)
    result.overdue.sort(key=key)
    result.due_today.sort(key=key)
    result.upcoming.sort(key=key)
    return result


def calculate_category_totals(expenses: Iterable[Expense]) -> list[CategoryTotal]:
    totals: dict[int, CategoryTotal] = {}
    grand_total = 0

    for expense in expenses:
        existing = totals.get(expense.category_id)
        if existing:
            existing.total_cents += expense.amount_cents
            existing.count += 1
        else:
            totals[expense.category_id] = CategoryTotal(
                category_id=expense.category_id,
                category_name=expense.category.name if expense.category else "Unknown",
                color=expense.category.color if expense.category else DEFAULT_CATEGORY_COLOR,
                total_cents=expense.amount_cents,
                count=1,
            )
        grand_total += expense.amount_cents

    results = list(totals.values())
    for item in results:
        item.percentage = _round_half_up(item.total_cents * 100, grand_total) if grand_total else 0

    # sorted() is stable, so equal totals keep first-encounter order
    return sorted(results, key=lambda item: item.total_cents, reverse=True)


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def group_expenses_by_month(
    expenses: Iterable[Expense], *, tz: Optional[tzinfo] = None
) -> list[MonthGroup]:
    groups: dict[tuple[int, int], MonthGroup] = {}

    for expense in expenses:
        day = local_date(expense.date, tz)
        key = (day.year, day.month - 1)
        group = groups.get(key)
        if group is None:
            group = MonthGroup(
                month=f"{month_name[day.month]} {day.year}",
                year=day.year,
                month_number=day.month - 1,
            )
            groups[key] = group

        group.expenses.append(expense)
        if expense.is_paid:
            group.total_paid_cents += expense.amount_cents
            group.paid_count += 1
        else:
            group.total_unpaid_cents += expense.amount_cents
            group.unpaid_count += 1

    return sorted(groups.values(), key=lambda g: (g.year, g.month_number), reverse=True)


def filter_upcoming_expenses(
    expenses: Iterable[Expense],
    days: int = 30,
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> list[Expense]:
    today = today or local_today(tz)
    horizon = today + timedelta(days=days)
    upcoming = [
        expense
        for expense in expenses
        if not expense.is_paid
        and expense.due_date is not None
        and today <= local_date(expense.due_date, tz) <= horizon
    ]
    return sorted(upcoming, key=_due_sort_key(tz))


def filter_by_period(
    expenses: Iterable[Expense], period: Optional[Period], *, tz: Optional[tzinfo] = None
) -> list[Expense]:
    if period is None:
        return list(expenses)
    return [e for e in expenses if period.contains(local_date(e.date, tz))]


def current_month_category_totals(
    expenses: Iterable[Expense],
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> list[CategoryTotal]:
    month = current_month(today=today or local_today(tz))
    return calculate_category_totals(filter_by_period(expenses, month, tz=tz))


def is_overdue(expense: Expense, *, today: date, tz: Optional[tzinfo] = None) -> bool:
    if expense.due_date is None or expense.is_paid:
        return False
    return local_date(expense.due_date, tz) < today


def is_due_this_month(expense: Expense, *, today: date, tz: Optional[tzinfo] = None) -> bool:
    if expense.due_date is None or expense.is_paid:
        return False
    due = local_date(expense.due_date, tz)
    return (due.year, due.month) == (today.year, today.month)


def filter_payment_method_expenses(
    expenses: Sequence[Expense],
    expense_filter: Optional[str],
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> list[Expense]:
    today = today or local_today(tz)
    if not expense_filter:
        return list(expenses)
    if expense_filter == "outstanding":
        return [e for e in expenses if not e.is_paid]
    if expense_filter == "dueThisMonth":
        return [e for e in expenses if is_due_this_month(e, today=today, tz=tz)]
    if expense_filter == "overdue":
        return [e for e in expenses if is_overdue(e, today=today, tz=tz)]
    if expense_filter == "paid":
        return [e for e in expenses if e.is_paid]
    raise ValueError(f"Unknown expense filter: {expense_filter}")


def summarize_payment_method(
    expenses: Iterable[Expense],
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> PaymentMethodSummary:
    today = today or local_today(tz)
    summary = PaymentMethodSummary()
    for expense in expenses:
        if expense.is_paid:
            summary.total_paid_cents += expense.amount_cents
            summary.paid_count += 1
            continue
        summary.total_unpaid_cents += expense.amount_cents
        summary.unpaid_count += 1
        if is_due_this_month(expense, today=today, tz=tz):
            summary.due_this_month_cents += expense.amount_cents
            summary.due_this_month_count += 1
        if is_overdue(expense, today=today, tz=tz):
            summary.overdue_cents += expense.amount_cents
            summary.overdue_count += 1
    return summary
