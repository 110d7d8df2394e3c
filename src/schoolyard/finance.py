import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .calendar_logic import to_date
from .models import (
    ClassEntry, ExpenseKind, ExpenseRecord, ExpenseSummary, FinancialSummary,
    IncomeSummary, Payment, PaymentSummary, ProfitSplit, RevenueSplit,
    SpecialClass, Staff, Student, Teacher,
)

Predicate = Callable[[object], bool]


# --- Einnahmen --------------------------------------------------------------

def discounted_fee(base_fee: float, student: Optional[Student]) -> float:
    """Gebühr nach Rabatt; ohne Rabatt-Flag oder Prozentsatz die volle Gebühr."""
    if student is not None and student.has_discount and student.discount_percentage is not None:
        return base_fee * (1 - student.discount_percentage / 100)
    return base_fee


def project_class_revenue(entry, students_by_id: Mapping[str, Student]) -> float:
    """
    Erwartete Monatseinnahme eines Kurses über alle eingeschriebenen Schüler.
    Der Zahlungsstatus spielt keine Rolle. Unbekannte Schüler-IDs zählen 0.
    """
    total = 0.0
    for sid in entry.student_ids:
        student = students_by_id.get(sid)
        if student is None:
            logging.debug(f"Class {entry.id}: student {sid} not found, skipped")
            continue
        total += discounted_fee(entry.fees, student)
    return total


def project_total(classes: Iterable, students_by_id: Mapping[str, Student]) -> float:
    return sum(project_class_revenue(c, students_by_id) for c in classes)


# --- Gewinnaufteilung -------------------------------------------------------

def split_profit(fee_pool: float, split: RevenueSplit, teacher_ids: Iterable[str]) -> ProfitSplit:
    """
    Teilt fee_pool nach Prozenten auf Zentrum und Lehrer auf. Beide Anteile
    werden unabhängig vom Gesamtbetrag berechnet, auch wenn die Prozente nicht
    100 ergeben. Der Lehreranteil wird gleichmäßig verteilt; ohne Lehrer bleibt
    er als unassigned_amount stehen.
    """
    if split.teacher_percentage + split.center_percentage != 100:
        logging.warning(
            f"Revenue split {split.teacher_percentage}/{split.center_percentage} "
            f"does not add up to 100"
        )
    center_amount = fee_pool * split.center_percentage / 100
    teacher_pool = fee_pool * split.teacher_percentage / 100

    teachers = list(dict.fromkeys(teacher_ids))
    if not teachers:
        return ProfitSplit(center_amount, teacher_pool, 0.0, {}, unassigned_amount=teacher_pool)

    per_teacher = teacher_pool / len(teachers)
    return ProfitSplit(
        center_amount,
        teacher_pool,
        per_teacher,
        {tid: per_teacher for tid in teachers},
    )


def split_special_class(special: SpecialClass, students_by_id: Mapping[str, Student]) -> ProfitSplit:
    pool = project_class_revenue(special, students_by_id)
    return split_profit(pool, special.split, special.teacher_ids)


# --- Zeitfenster ------------------------------------------------------------

def _in_range(value, start: Optional[date], end: Optional[date]) -> bool:
    d = to_date(value)
    if d is None:
        return False
    if start is not None and d < start:
        return False
    if end is not None and d > end:
        return False
    return True


def all_time() -> Predicate:
    return lambda record: True


def date_range(start: date, end: date) -> Predicate:
    """Beide Grenzen inklusive."""
    bounds = to_date(start), to_date(end)
    if None in bounds:
        raise ValueError(f"Invalid date range: {start!r}..{end!r}")
    start, end = bounds
    return lambda record: _in_range(record.date, start, end)


def last_n_days(n: int, today: Optional[date] = None) -> Predicate:
    today = today or date.today()
    return lambda record: _in_range(record.date, today - timedelta(days=n), None)


def last_months(n: int = 1, today: Optional[date] = None) -> Predicate:
    today = today or date.today()
    return lambda record: _in_range(record.date, today - relativedelta(months=n), None)


def window_from_config(spec, today: Optional[date] = None) -> Predicate:
    """
    Zeitfenster aus der Konfiguration:
      'all'                       : alles
      'month'                     : letzter Kalendermonat
      'days:N'                    : letzte N Tage
      {'start': ..., 'end': ...}  : fester Zeitraum
    """
    if spec is None or spec == 'all':
        return all_time()
    if isinstance(spec, dict):
        return date_range(spec['start'], spec['end'])
    if spec == 'month':
        return last_months(1, today)
    if isinstance(spec, str) and spec.startswith('days:'):
        return last_n_days(int(spec.split(':', 1)[1]), today)
    raise ValueError(f"Unknown expense window: {spec!r}")


# --- Ausgaben ---------------------------------------------------------------

def total_salaries(teachers: Iterable[Teacher], staff: Iterable[Staff]) -> float:
    return sum(t.salary for t in teachers) + sum(s.salary for s in staff)


def aggregate_expenses(
    fixed_salaries: float,
    custom_expenses: Iterable[ExpenseRecord],
    include: Optional[Predicate] = None,
) -> ExpenseSummary:
    """
    Gehälter zählen immer voll (monatliche Fixkosten). Eigene Ausgaben werden
    mit include gefiltert und nach Art getrennt summiert.
    """
    recurring = 0.0
    one_time = 0.0
    for exp in custom_expenses:
        if include is not None and not include(exp):
            continue
        if exp.kind is ExpenseKind.RECURRING:
            recurring += exp.amount
        else:
            one_time += exp.amount
    return ExpenseSummary(
        salaries=fixed_salaries,
        recurring_expenses=recurring,
        one_time_expenses=one_time,
        total=fixed_salaries + recurring + one_time,
    )


# --- Auswertungen -----------------------------------------------------------

def summarize_financials(
    classes: Iterable[ClassEntry],
    special_classes: Iterable[SpecialClass],
    students: Iterable[Student],
    teachers: Iterable[Teacher],
    staff: Iterable[Staff],
    expenses: Iterable[ExpenseRecord],
    include: Optional[Predicate] = None,
) -> FinancialSummary:
    students_by_id = {s.id: s for s in students}
    class_income = project_total(classes, students_by_id)
    special_income = project_total(special_classes, students_by_id)
    income = IncomeSummary(class_income, special_income, class_income + special_income)
    spent = aggregate_expenses(total_salaries(teachers, staff), expenses, include)
    return FinancialSummary(income, spent, income.total - spent.total)


def summarize_snapshot(data, include: Optional[Predicate] = None) -> FinancialSummary:
    return summarize_financials(
        data.classes, data.special_classes, data.students,
        data.teachers, data.staff, data.expenses, include,
    )


def special_class_ledger(special: SpecialClass, include: Optional[Predicate] = None) -> Tuple[float, float]:
    """(Einnahmen, Ausgaben) aus dem Kassenbuch eines Sonderkurses."""
    money_in = 0.0
    money_out = 0.0
    for entry in special.ledger:
        if include is not None and not include(entry):
            continue
        if entry.direction == 'in':
            money_in += entry.amount
        else:
            money_out += entry.amount
    return money_in, money_out


def summarize_payments(payments: Iterable[Payment], include: Optional[Predicate] = None) -> PaymentSummary:
    by_status: Dict[str, float] = defaultdict(float)
    by_kind: Dict[str, float] = defaultdict(float)
    for p in payments:
        if include is not None and not include(p):
            continue
        by_status[p.status] += p.amount
        if p.status == 'paid':
            by_kind[p.kind] += p.amount
    return PaymentSummary(
        paid=by_status['paid'],
        pending=by_status['pending'],
        cancelled=by_status['cancelled'],
        by_kind=dict(by_kind),
    )
