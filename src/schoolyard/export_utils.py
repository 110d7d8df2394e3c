import csv
from typing import Dict, List, Optional, Sequence

from schoolyard.calendar_logic import DAY_NAMES
from schoolyard.models import FinancialSummary, GridEntry, ProfitSplit

FREE = 'Free'


def format_amount(value: float, currency: str = 'DH') -> str:
    return f"{value:,.2f} {currency}"


def format_cell(entries: List[GridEntry]) -> str:
    if not entries:
        return FREE
    labels = []
    for e in entries:
        label = e.class_entry.subject
        if e.is_one_time:
            label += ' (one-time)'
        labels.append(label)
    return ' / '.join(labels)


def grid_rows(
    grid: Dict[int, Dict[str, List[GridEntry]]],
    slots: Sequence[str],
    day_names: Sequence[str] = DAY_NAMES,
) -> List[List[str]]:
    """Tabelle wie im Raumplan: Kopfzeile, dann eine Zeile je Slot."""
    rows = [['Time'] + list(day_names)]
    for slot in slots:
        rows.append([slot] + [format_cell(grid[day].get(slot, [])) for day in range(7)])
    return rows


def export_grid_csv(grid, slots: Sequence[str], filename: str):
    with open(filename, 'w', newline='', encoding='utf-8') as f:
        csv.writer(f).writerows(grid_rows(grid, slots))


def format_split(split: ProfitSplit, currency: str = 'DH', names: Optional[Dict[str, str]] = None) -> str:
    names = names or {}
    lines = [
        f"Center:        {format_amount(split.center_amount, currency)}",
        f"Teacher pool:  {format_amount(split.teacher_pool_amount, currency)}",
    ]
    for tid, amount in split.teacher_amounts.items():
        lines.append(f"  {names.get(tid, tid)}: {format_amount(amount, currency)}")
    if split.unassigned_amount:
        lines.append(f"  unassigned: {format_amount(split.unassigned_amount, currency)}")
    return '\n'.join(lines)


def format_summary(summary: FinancialSummary, currency: str = 'DH') -> str:
    inc, exp = summary.income, summary.expenses
    return '\n'.join([
        f"Income (classes):         {format_amount(inc.class_income, currency)}",
        f"Income (special classes): {format_amount(inc.special_income, currency)}",
        f"Salaries:                 {format_amount(exp.salaries, currency)}",
        f"Recurring expenses:       {format_amount(exp.recurring_expenses, currency)}",
        f"One-time expenses:        {format_amount(exp.one_time_expenses, currency)}",
        f"Profit:                   {format_amount(summary.profit, currency)}",
    ])
