import logging
from datetime import date, datetime, time as dtime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from dateutil.parser import isoparse

from .models import ClassEntry, GridEntry, Session, SlotMatch

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def default_time_slots(first_hour: int = 8, last_hour: int = 20) -> List[str]:
    """Stündliche Slots von first_hour bis einschließlich last_hour."""
    return [f"{hour:02d}:00" for hour in range(first_hour, last_hour + 1)]


def normalize_time(value) -> Optional[str]:
    """
    Bringt eine Uhrzeit auf HH:MM. Sekunden und Bruchteile fallen weg,
    einstellige Stunden werden aufgefüllt ("9:00" -> "09:00").
    Liefert None für alles, was keine gültige Uhrzeit ist.
    """
    if isinstance(value, (dtime, datetime)):
        return f"{value.hour:02d}:{value.minute:02d}"
    if not isinstance(value, str):
        return None
    parts = value.strip().split(':')
    if not 2 <= len(parts) <= 3:
        return None
    hh, mm = parts[0], parts[1]
    if not (hh.isdigit() and mm.isdigit()) or len(mm) != 2 or len(hh) > 2:
        return None
    if len(parts) == 3:
        # Sekunden: SS oder SS.fff
        ss, _, frac = parts[2].partition('.')
        if len(ss) != 2 or not ss.isdigit() or int(ss) > 59:
            return None
        if frac and not frac.isdigit():
            return None
    hour, minute = int(hh), int(mm)
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def to_date(value) -> Optional[date]:
    """Kalenderdatum aus date, datetime oder ISO-String; Tageszeit wird ignoriert."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value.strip()).date()
        except ValueError:
            return None
    return None


def weekday_index(d: date) -> int:
    """0=Sonntag … 6=Samstag (Python zählt ab Montag)."""
    return (d.weekday() + 1) % 7


def week_start(anchor: date) -> date:
    """Der Sonntag der Woche, in der anchor liegt."""
    anchor = to_date(anchor)
    return anchor - timedelta(days=weekday_index(anchor))


def week_dates(anchor: date) -> List[date]:
    start = week_start(anchor)
    return [start + timedelta(days=i) for i in range(7)]


def recurring_match(entry: ClassEntry, target_date: date, target_time) -> bool:
    pattern = entry.schedule.recurring
    if pattern is None:
        return False
    wanted = normalize_time(target_time)
    if wanted is None:
        return False
    if weekday_index(target_date) not in pattern.weekdays:
        return False
    return normalize_time(pattern.time) == wanted


def _session_hits(session: Session, target_date: date, wanted: str) -> bool:
    return to_date(session.date) == target_date and normalize_time(session.time) == wanted


def session_match(entry: ClassEntry, target_date: date, target_time) -> bool:
    wanted = normalize_time(target_time)
    if wanted is None:
        return False
    return any(_session_hits(s, target_date, wanted) for s in entry.schedule.sessions)


def resolve_all(entry: ClassEntry, target_date, target_time) -> SlotMatch:
    """
    Prüft beide Wege getrennt: wiederkehrendes Muster und Einzeltermine.
    Das Ergebnis ist truthy, sobald einer der beiden Wege passt.
    """
    d = to_date(target_date)
    if d is None:
        return SlotMatch()
    return SlotMatch(
        recurring=recurring_match(entry, d, target_time),
        session=session_match(entry, d, target_time),
    )


def resolve(entry: ClassEntry, target_date, target_time) -> bool:
    return bool(resolve_all(entry, target_date, target_time))


def build_week(
    classes_in_room: Sequence[ClassEntry],
    week_anchor: date,
    time_slots: Optional[Sequence[str]] = None,
) -> Dict[int, Dict[str, List[GridEntry]]]:
    """
    Wochenraster für einen Raum: grid[tag][slot] -> Liste von GridEntry.

    Tag 0 ist der Sonntag der Woche von week_anchor. Ein Kurs steht pro Zelle
    höchstens einmal drin, auch wenn Muster und Einzeltermin gleichzeitig passen;
    passt ein Einzeltermin, wird der Eintrag als einmalig markiert.
    Reihenfolge innerhalb einer Zelle = Reihenfolge der Eingabeliste.
    """
    slots = list(time_slots) if time_slots is not None else default_time_slots()
    days = week_dates(week_anchor)
    grid: Dict[int, Dict[str, List[GridEntry]]] = {}

    for day_index, day in enumerate(days):
        row: Dict[str, List[GridEntry]] = {}
        for slot in slots:
            placed = set()
            cell: List[GridEntry] = []
            for cls in classes_in_room:
                if cls.id in placed:
                    continue
                match = resolve_all(cls, day, slot)
                if not match:
                    continue
                placed.add(cls.id)
                cell.append(GridEntry(cls, is_one_time=match.session))
                logging.debug(f"{DAY_NAMES[day_index]} {day} {slot}: {cls.subject} "
                              f"({'one-time' if match.session else 'weekly'})")
            row[slot] = cell
        grid[day_index] = row
    return grid


def classes_in_room(classes: Iterable[ClassEntry], room_id: str) -> List[ClassEntry]:
    return [c for c in classes if c.classroom_id == room_id]


def unscheduled_classes(classes: Iterable[ClassEntry]) -> List[ClassEntry]:
    """Kurse ohne Muster und ohne Einzeltermine tauchen im Raster nie auf."""
    return [c for c in classes if c.schedule.is_empty]
