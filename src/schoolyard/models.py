# src/schoolyard/models.py
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Union

DateLike = Union[date, datetime, str]


@dataclass
class RecurringPattern:
    """Wöchentlich wiederkehrender Termin: feste Wochentage, immer zur selben Uhrzeit."""
    weekdays: List[int]           # 0=Sonntag … 6=Samstag
    time: str                     # HH:MM

    def __post_init__(self):
        if not self.weekdays:
            raise ValueError("A recurring pattern needs at least one weekday")
        bad = [wd for wd in self.weekdays if not 0 <= int(wd) <= 6]
        if bad:
            raise ValueError(f"Weekdays out of range 0..6: {bad}")
        self.weekdays = sorted(set(int(wd) for wd in self.weekdays))
        if not self.time:
            raise ValueError("A recurring pattern needs a time")


@dataclass(frozen=True)
class Session:
    """Einzeltermin eines Kurses, unabhängig vom wiederkehrenden Muster."""
    date: DateLike
    time: str


@dataclass
class ScheduleSpec:
    recurring: Optional[RecurringPattern] = None
    sessions: List[Session] = field(default_factory=list)

    @classmethod
    def from_fields(cls, days_of_week=None, time=None, sessions=None) -> "ScheduleSpec":
        """Baut die Spec aus der losen Datensatz-Form (Wochentage, Uhrzeit, Session-Dicts)."""
        recurring = None
        if days_of_week and time:
            recurring = RecurringPattern(list(days_of_week), time)
        out = []
        for s in sessions or []:
            if isinstance(s, Session):
                out.append(s)
            else:
                out.append(Session(s['date'], s['time']))
        return cls(recurring, out)

    @property
    def is_empty(self) -> bool:
        return self.recurring is None and not self.sessions


@dataclass
class ClassEntry:
    id: str
    subject: str
    fees: float
    schedule: ScheduleSpec = field(default_factory=ScheduleSpec)
    student_ids: List[str] = field(default_factory=list)
    teacher_id: Optional[str] = None
    classroom_id: Optional[str] = None

    def __post_init__(self):
        if self.fees < 0:
            raise ValueError(f"Class {self.id}: fees must not be negative")


@dataclass
class Student:
    id: str
    name: str
    class_ids: List[str] = field(default_factory=list)
    has_discount: bool = False
    discount_percentage: Optional[float] = None

    def __post_init__(self):
        pct = self.discount_percentage
        if pct is not None and not 0 <= pct <= 100:
            raise ValueError(f"Student {self.id}: discount {pct} outside 0..100")


@dataclass
class Teacher:
    id: str
    name: str
    salary: float = 0.0
    class_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.salary < 0:
            raise ValueError(f"Teacher {self.id}: salary must not be negative")


@dataclass
class Staff:
    id: str
    name: str
    salary: float = 0.0

    def __post_init__(self):
        if self.salary < 0:
            raise ValueError(f"Staff {self.id}: salary must not be negative")


@dataclass
class Classroom:
    id: str
    name: str


@dataclass(frozen=True)
class RevenueSplit:
    """Prozentanteile Lehrer / Zentrum. Die Summe wird nicht geprüft."""
    teacher_percentage: float
    center_percentage: float


@dataclass
class LedgerEntry:
    """Ein- oder Ausgabe eines Sonderkurses."""
    date: DateLike
    amount: float
    category: str
    direction: str = 'out'        # 'in' | 'out'
    description: str = ''

    def __post_init__(self):
        if self.direction not in ('in', 'out'):
            raise ValueError(f"Unknown ledger direction: {self.direction!r}")
        if self.amount < 0:
            raise ValueError("Ledger amount must not be negative")


@dataclass
class SpecialClass:
    """Sonderkurs mit Gewinnbeteiligung: Gebühren werden zwischen Zentrum und Lehrern geteilt."""
    id: str
    name: str
    fees: float
    split: RevenueSplit
    teacher_ids: List[str] = field(default_factory=list)
    student_ids: List[str] = field(default_factory=list)
    schedule: ScheduleSpec = field(default_factory=ScheduleSpec)
    ledger: List[LedgerEntry] = field(default_factory=list)
    active: bool = True
    description: str = ''

    def __post_init__(self):
        if self.fees < 0:
            raise ValueError(f"Special class {self.id}: fees must not be negative")


class ExpenseKind(Enum):
    RECURRING = 'recurring'
    ONE_TIME = 'one-time'

    @classmethod
    def parse(cls, value) -> "ExpenseKind":
        if isinstance(value, cls):
            return value
        if value == 'monthly':    # alter Name aus den Formularen
            return cls.RECURRING
        return cls(value)


@dataclass
class ExpenseRecord:
    date: DateLike
    amount: float
    category: str
    kind: ExpenseKind = ExpenseKind.ONE_TIME
    description: str = ''
    id: Optional[int] = None

    def __post_init__(self):
        self.kind = ExpenseKind.parse(self.kind)
        if self.amount < 0:
            raise ValueError("Expense amount must not be negative")


PAYMENT_STATUSES = ('paid', 'pending', 'cancelled')
PAYMENT_KINDS = ('student', 'teacher', 'staff')


@dataclass
class Payment:
    id: str
    amount: float
    date: DateLike
    status: str = 'pending'
    kind: str = 'student'
    student_id: Optional[str] = None
    teacher_id: Optional[str] = None
    staff_id: Optional[str] = None
    class_id: Optional[str] = None
    invoice_number: Optional[str] = None

    def __post_init__(self):
        if self.status not in PAYMENT_STATUSES:
            raise ValueError(f"Unknown payment status: {self.status!r}")
        if self.kind not in PAYMENT_KINDS:
            raise ValueError(f"Unknown payment type: {self.kind!r}")
        if self.amount < 0:
            raise ValueError("Payment amount must not be negative")


@dataclass
class SchoolData:
    """Momentaufnahme aller Daten, die Stundenplan- und Finanzfunktionen lesen."""
    classrooms: List[Classroom] = field(default_factory=list)
    classes: List[ClassEntry] = field(default_factory=list)
    students: List[Student] = field(default_factory=list)
    teachers: List[Teacher] = field(default_factory=list)
    staff: List[Staff] = field(default_factory=list)
    special_classes: List[SpecialClass] = field(default_factory=list)
    expenses: List[ExpenseRecord] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)

    def students_by_id(self) -> Dict[str, Student]:
        return {s.id: s for s in self.students}


# --- Ergebnis-Typen ---------------------------------------------------------

@dataclass(frozen=True)
class SlotMatch:
    recurring: bool = False
    session: bool = False

    def __bool__(self):
        return self.recurring or self.session


@dataclass(frozen=True)
class GridEntry:
    class_entry: ClassEntry
    is_one_time: bool = False


@dataclass(frozen=True)
class ProfitSplit:
    center_amount: float
    teacher_pool_amount: float
    per_teacher_amount: float
    teacher_amounts: Dict[str, float]
    unassigned_amount: float = 0.0


@dataclass(frozen=True)
class ExpenseSummary:
    salaries: float
    recurring_expenses: float
    one_time_expenses: float
    total: float


@dataclass(frozen=True)
class IncomeSummary:
    class_income: float
    special_income: float
    total: float


@dataclass(frozen=True)
class FinancialSummary:
    income: IncomeSummary
    expenses: ExpenseSummary
    profit: float


@dataclass(frozen=True)
class PaymentSummary:
    paid: float
    pending: float
    cancelled: float
    by_kind: Dict[str, float]
