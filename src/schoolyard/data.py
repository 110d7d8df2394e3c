import os
import sqlite3
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from schoolyard.calendar_logic import to_date
from schoolyard.models import (
    ClassEntry, Classroom, ExpenseRecord, LedgerEntry, Payment,
    RevenueSplit, SchoolData, ScheduleSpec, Session, SpecialClass, Staff,
    Student, Teacher,
)


def _date_text(value) -> str:
    d = to_date(value)
    return d.isoformat() if d is not None else str(value)


class Database:
    def __init__(self, db_path: str = None, seed: Optional[SchoolData] = None):
        try:
            self.db_path = db_path or os.path.join(os.path.expanduser("~"), ".schoolyard", "schoolyard.db")
            if self.db_path != ':memory:':
                os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            self.conn = sqlite3.connect(self.db_path)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON;")
            self._ensure_tables()
        except Exception as e:
            logging.error(f"Database connection error: {e}")
            raise
        if seed is not None and self.is_empty():
            logging.info("Empty database, writing seed data")
            self.write_snapshot(seed)

    def _ensure_tables(self):
        cur = self.conn.cursor()
        cur.executescript("""
        CREATE TABLE IF NOT EXISTS classrooms (
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS classes (
          id TEXT PRIMARY KEY,
          subject TEXT NOT NULL,
          fees REAL NOT NULL,
          days_of_week TEXT,
          time TEXT,
          teacher_id TEXT,
          classroom_id TEXT
        );
        CREATE TABLE IF NOT EXISTS class_sessions (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          class_id TEXT NOT NULL,
          date TEXT NOT NULL,
          time TEXT NOT NULL,
          FOREIGN KEY(class_id) REFERENCES classes(id) ON DELETE CASCADE
        );
        CREATE TABLE IF NOT EXISTS students (
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL,
          has_discount INTEGER NOT NULL DEFAULT 0,
          discount_percentage REAL
        );
        -- eine Tabelle für beide Sichten (Schüler->Kurse, Kurs->Schüler)
        CREATE TABLE IF NOT EXISTS enrollments (
          student_id TEXT NOT NULL,
          class_id TEXT NOT NULL,
          position INTEGER NOT NULL,
          PRIMARY KEY(student_id, class_id),
          FOREIGN KEY(student_id) REFERENCES students(id) ON DELETE CASCADE,
          FOREIGN KEY(class_id) REFERENCES classes(id) ON DELETE CASCADE
        );
        CREATE TABLE IF NOT EXISTS teachers (
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL,
          salary REAL NOT NULL DEFAULT 0
        );
        CREATE TABLE IF NOT EXISTS staff (
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL,
          salary REAL NOT NULL DEFAULT 0
        );
        CREATE TABLE IF NOT EXISTS special_classes (
          id TEXT PRIMARY KEY,
          name TEXT NOT NULL,
          description TEXT NOT NULL DEFAULT '',
          fees REAL NOT NULL,
          teacher_percentage REAL NOT NULL,
          center_percentage REAL NOT NULL,
          days_of_week TEXT,
          time TEXT,
          active INTEGER NOT NULL DEFAULT 1
        );
        CREATE TABLE IF NOT EXISTS special_class_teachers (
          special_id TEXT NOT NULL,
          teacher_id TEXT NOT NULL,
          position INTEGER NOT NULL,
          PRIMARY KEY(special_id, teacher_id),
          FOREIGN KEY(special_id) REFERENCES special_classes(id) ON DELETE CASCADE
        );
        CREATE TABLE IF NOT EXISTS special_class_enrollments (
          special_id TEXT NOT NULL,
          student_id TEXT NOT NULL,
          position INTEGER NOT NULL,
          PRIMARY KEY(special_id, student_id),
          FOREIGN KEY(special_id) REFERENCES special_classes(id) ON DELETE CASCADE,
          FOREIGN KEY(student_id) REFERENCES students(id) ON DELETE CASCADE
        );
        CREATE TABLE IF NOT EXISTS special_sessions (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          special_id TEXT NOT NULL,
          date TEXT NOT NULL,
          time TEXT NOT NULL,
          FOREIGN KEY(special_id) REFERENCES special_classes(id) ON DELETE CASCADE
        );
        CREATE TABLE IF NOT EXISTS special_ledger (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          special_id TEXT NOT NULL,
          date TEXT NOT NULL,
          amount REAL NOT NULL,
          category TEXT NOT NULL,
          direction TEXT NOT NULL,
          description TEXT NOT NULL DEFAULT '',
          FOREIGN KEY(special_id) REFERENCES special_classes(id) ON DELETE CASCADE
        );
        CREATE TABLE IF NOT EXISTS expenses (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          date TEXT NOT NULL,
          amount REAL NOT NULL,
          category TEXT NOT NULL,
          kind TEXT NOT NULL,
          description TEXT NOT NULL DEFAULT ''
        );
        CREATE TABLE IF NOT EXISTS payments (
          id TEXT PRIMARY KEY,
          amount REAL NOT NULL,
          date TEXT NOT NULL,
          status TEXT NOT NULL,
          kind TEXT NOT NULL,
          student_id TEXT,
          teacher_id TEXT,
          staff_id TEXT,
          class_id TEXT,
          invoice_number TEXT
        );
        """)
        self.conn.commit()

    def is_empty(self) -> bool:
        cur = self.conn.cursor()
        for tbl in ('classrooms', 'classes', 'students', 'teachers', 'staff',
                    'special_classes', 'expenses', 'payments'):
            cur.execute(f"SELECT 1 FROM {tbl} LIMIT 1")
            if cur.fetchone() is not None:
                return False
        return True

    # Export/Import
    def export_to_sql(self, filename: str):
        """Dump aller Tabellen als SQL-Statements"""
        with open(filename, 'w', encoding='utf-8') as f:
            for line in self.conn.iterdump():
                f.write(f"{line}\n")

    def import_from_sql(self, filename: str):
        """Vorhandene Tabellen löschen, Dump einlesen und ausführen"""
        cur = self.conn.cursor()
        cur.execute("PRAGMA foreign_keys = OFF;")
        rows = cur.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        ).fetchall()
        for row in rows:
            cur.execute(f"DROP TABLE IF EXISTS {row['name']}")
        self.conn.commit()

        with open(filename, 'r', encoding='utf-8') as f:
            script = f.read()
        self.conn.executescript(script)
        self.conn.execute("PRAGMA foreign_keys = ON;")
        self.conn.commit()

    # Hilfsfunktionen Stundenplan
    @staticmethod
    def _pattern_columns(schedule: ScheduleSpec):
        pat = schedule.recurring
        if pat is None:
            return None, None
        return ','.join(str(d) for d in pat.weekdays), pat.time

    @staticmethod
    def _schedule_from_row(row, sessions: List[Session]) -> ScheduleSpec:
        try:
            wd = [int(x) for x in (row['days_of_week'] or '').split(',') if x]
            return ScheduleSpec.from_fields(wd, row['time'], sessions)
        except ValueError as e:
            logging.warning(f"{row['id']}: invalid weekly schedule ignored ({e})")
            return ScheduleSpec(None, sessions)

    # Raum-Methoden
    def save_classroom(self, room: Classroom):
        self.conn.execute("REPLACE INTO classrooms (id, name) VALUES (?,?)", (room.id, room.name))
        self.conn.commit()

    def load_classrooms(self) -> List[Classroom]:
        cur = self.conn.cursor()
        cur.execute("SELECT id, name FROM classrooms ORDER BY rowid")
        return [Classroom(row['id'], row['name']) for row in cur.fetchall()]

    def delete_classroom(self, room_id: str):
        cur = self.conn.cursor()
        cur.execute("UPDATE classes SET classroom_id=NULL WHERE classroom_id=?", (room_id,))
        cur.execute("DELETE FROM classrooms WHERE id=?", (room_id,))
        self.conn.commit()

    # Kurs-Methoden
    def save_class(self, cls: ClassEntry):
        """Speichert Kurs samt Einzelterminen; eingeschriebene Schüler werden ergänzt."""
        wd_text, time_text = self._pattern_columns(cls.schedule)
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO classes (id, subject, fees, days_of_week, time, teacher_id, classroom_id) "
            "VALUES (?,?,?,?,?,?,?) ON CONFLICT(id) DO UPDATE SET subject=excluded.subject, "
            "fees=excluded.fees, days_of_week=excluded.days_of_week, time=excluded.time, "
            "teacher_id=excluded.teacher_id, classroom_id=excluded.classroom_id",
            (cls.id, cls.subject, cls.fees, wd_text, time_text, cls.teacher_id, cls.classroom_id)
        )
        cur.execute("DELETE FROM class_sessions WHERE class_id=?", (cls.id,))
        cur.executemany(
            "INSERT INTO class_sessions (class_id, date, time) VALUES (?,?,?)",
            [(cls.id, _date_text(s.date), s.time) for s in cls.schedule.sessions]
        )
        self.conn.commit()
        for sid in cls.student_ids:
            self.enroll_student(sid, cls.id)
        logging.debug(f"Saved class {cls.id}")

    def add_session(self, class_id: str, session: Session):
        self.conn.execute(
            "INSERT INTO class_sessions (class_id, date, time) VALUES (?,?,?)",
            (class_id, _date_text(session.date), session.time)
        )
        self.conn.commit()

    def _sessions(self, table: str, key: str) -> Dict[str, List[Session]]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {key} AS owner, date, time FROM {table} ORDER BY id")
        out: Dict[str, List[Session]] = {}
        for row in cur.fetchall():
            out.setdefault(row['owner'], []).append(Session(to_date(row['date']), row['time']))
        return out

    def _members(self, table: str, owner_col: str, member_col: str,
                 order: str = "position, rowid") -> Dict[str, List[str]]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {owner_col} AS owner, {member_col} AS member FROM {table} ORDER BY {order}")
        out: Dict[str, List[str]] = {}
        for row in cur.fetchall():
            out.setdefault(row['owner'], []).append(row['member'])
        return out

    def load_classes(self) -> List[ClassEntry]:
        sessions = self._sessions('class_sessions', 'class_id')
        members = self._members('enrollments', 'class_id', 'student_id')
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM classes ORDER BY rowid")
        out = []
        for row in cur.fetchall():
            schedule = self._schedule_from_row(row, sessions.get(row['id'], []))
            out.append(ClassEntry(
                id=row['id'],
                subject=row['subject'],
                fees=row['fees'],
                schedule=schedule,
                student_ids=members.get(row['id'], []),
                teacher_id=row['teacher_id'],
                classroom_id=row['classroom_id'],
            ))
        return out

    def delete_class(self, class_id: str):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM classes WHERE id=?", (class_id,))
        self.conn.commit()

    # Einschreibungen
    def enroll_student(self, student_id: str, class_id: str):
        cur = self.conn.cursor()
        cur.execute("SELECT COALESCE(MAX(position), -1) + 1 FROM enrollments WHERE class_id=?", (class_id,))
        pos = cur.fetchone()[0]
        cur.execute(
            "INSERT OR IGNORE INTO enrollments (student_id, class_id, position) VALUES (?,?,?)",
            (student_id, class_id, pos)
        )
        self.conn.commit()

    def unenroll_student(self, student_id: str, class_id: str):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM enrollments WHERE student_id=? AND class_id=?", (student_id, class_id))
        self.conn.commit()

    # Schüler-Methoden
    def save_student(self, student: Student):
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO students (id, name, has_discount, discount_percentage) VALUES (?,?,?,?) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name, has_discount=excluded.has_discount, "
            "discount_percentage=excluded.discount_percentage",
            (student.id, student.name, int(student.has_discount), student.discount_percentage)
        )
        self.conn.commit()

    def load_students(self) -> List[Student]:
        classes_of = self._members('enrollments', 'student_id', 'class_id', order='rowid')
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM students ORDER BY rowid")
        return [
            Student(
                id=row['id'],
                name=row['name'],
                class_ids=classes_of.get(row['id'], []),
                has_discount=bool(row['has_discount']),
                discount_percentage=row['discount_percentage'],
            )
            for row in cur.fetchall()
        ]

    def delete_student(self, student_id: str):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM students WHERE id=?", (student_id,))
        self.conn.commit()

    # Lehrer / Personal
    def save_teacher(self, teacher: Teacher):
        self.conn.execute(
            "REPLACE INTO teachers (id, name, salary) VALUES (?,?,?)",
            (teacher.id, teacher.name, teacher.salary)
        )
        self.conn.commit()

    def load_teachers(self) -> List[Teacher]:
        cur = self.conn.cursor()
        cur.execute("SELECT id, teacher_id FROM classes WHERE teacher_id IS NOT NULL ORDER BY rowid")
        classes_of: Dict[str, List[str]] = {}
        for row in cur.fetchall():
            classes_of.setdefault(row['teacher_id'], []).append(row['id'])
        cur.execute("SELECT * FROM teachers ORDER BY rowid")
        return [
            Teacher(row['id'], row['name'], row['salary'], classes_of.get(row['id'], []))
            for row in cur.fetchall()
        ]

    def delete_teacher(self, teacher_id: str):
        cur = self.conn.cursor()
        cur.execute("UPDATE classes SET teacher_id=NULL WHERE teacher_id=?", (teacher_id,))
        cur.execute("DELETE FROM special_class_teachers WHERE teacher_id=?", (teacher_id,))
        cur.execute("DELETE FROM teachers WHERE id=?", (teacher_id,))
        self.conn.commit()

    def save_staff(self, member: Staff):
        self.conn.execute(
            "REPLACE INTO staff (id, name, salary) VALUES (?,?,?)",
            (member.id, member.name, member.salary)
        )
        self.conn.commit()

    def load_staff(self) -> List[Staff]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM staff ORDER BY rowid")
        return [Staff(row['id'], row['name'], row['salary']) for row in cur.fetchall()]

    def delete_staff(self, staff_id: str):
        self.conn.execute("DELETE FROM staff WHERE id=?", (staff_id,))
        self.conn.commit()

    # Sonderkurse
    def save_special_class(self, special: SpecialClass):
        wd_text, time_text = self._pattern_columns(special.schedule)
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO special_classes (id, name, description, fees, teacher_percentage, "
            "center_percentage, days_of_week, time, active) VALUES (?,?,?,?,?,?,?,?,?) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name, description=excluded.description, "
            "fees=excluded.fees, teacher_percentage=excluded.teacher_percentage, "
            "center_percentage=excluded.center_percentage, days_of_week=excluded.days_of_week, "
            "time=excluded.time, active=excluded.active",
            (special.id, special.name, special.description, special.fees,
             special.split.teacher_percentage, special.split.center_percentage,
             wd_text, time_text, int(special.active))
        )
        for tbl in ('special_class_teachers', 'special_class_enrollments',
                    'special_sessions', 'special_ledger'):
            cur.execute(f"DELETE FROM {tbl} WHERE special_id=?", (special.id,))
        cur.executemany(
            "INSERT OR IGNORE INTO special_class_teachers (special_id, teacher_id, position) VALUES (?,?,?)",
            [(special.id, tid, i) for i, tid in enumerate(special.teacher_ids)]
        )
        cur.executemany(
            "INSERT OR IGNORE INTO special_class_enrollments (special_id, student_id, position) VALUES (?,?,?)",
            [(special.id, sid, i) for i, sid in enumerate(special.student_ids)]
        )
        cur.executemany(
            "INSERT INTO special_sessions (special_id, date, time) VALUES (?,?,?)",
            [(special.id, _date_text(s.date), s.time) for s in special.schedule.sessions]
        )
        cur.executemany(
            "INSERT INTO special_ledger (special_id, date, amount, category, direction, description) "
            "VALUES (?,?,?,?,?,?)",
            [(special.id, _date_text(e.date), e.amount, e.category, e.direction, e.description)
             for e in special.ledger]
        )
        self.conn.commit()

    def load_special_classes(self) -> List[SpecialClass]:
        sessions = self._sessions('special_sessions', 'special_id')
        teachers = self._members('special_class_teachers', 'special_id', 'teacher_id')
        students = self._members('special_class_enrollments', 'special_id', 'student_id')
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM special_ledger ORDER BY id")
        ledger: Dict[str, List[LedgerEntry]] = {}
        for row in cur.fetchall():
            ledger.setdefault(row['special_id'], []).append(LedgerEntry(
                to_date(row['date']), row['amount'], row['category'],
                row['direction'], row['description'],
            ))
        cur.execute("SELECT * FROM special_classes ORDER BY rowid")
        out = []
        for row in cur.fetchall():
            sid = row['id']
            out.append(SpecialClass(
                id=sid,
                name=row['name'],
                fees=row['fees'],
                split=RevenueSplit(row['teacher_percentage'], row['center_percentage']),
                teacher_ids=teachers.get(sid, []),
                student_ids=students.get(sid, []),
                schedule=self._schedule_from_row(row, sessions.get(sid, [])),
                ledger=ledger.get(sid, []),
                active=bool(row['active']),
                description=row['description'],
            ))
        return out

    def delete_special_class(self, special_id: str):
        self.conn.execute("DELETE FROM special_classes WHERE id=?", (special_id,))
        self.conn.commit()

    # Ausgaben
    def save_expense(self, exp: ExpenseRecord):
        cur = self.conn.cursor()
        values = (_date_text(exp.date), exp.amount, exp.category, exp.kind.value, exp.description)
        if exp.id is not None:
            cur.execute(
                "INSERT INTO expenses (id, date, amount, category, kind, description) VALUES (?,?,?,?,?,?) "
                "ON CONFLICT(id) DO UPDATE SET date=excluded.date, amount=excluded.amount, "
                "category=excluded.category, kind=excluded.kind, description=excluded.description",
                (exp.id,) + values
            )
        else:
            cur.execute(
                "INSERT INTO expenses (date, amount, category, kind, description) VALUES (?,?,?,?,?)",
                values
            )
            exp.id = cur.lastrowid
        self.conn.commit()

    def load_expenses(self) -> List[ExpenseRecord]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM expenses ORDER BY id")
        return [
            ExpenseRecord(to_date(row['date']), row['amount'], row['category'],
                          row['kind'], row['description'], id=row['id'])
            for row in cur.fetchall()
        ]

    def delete_expense(self, expense_id: int):
        self.conn.execute("DELETE FROM expenses WHERE id=?", (expense_id,))
        self.conn.commit()

    # Zahlungen
    def save_payment(self, p: Payment):
        self.conn.execute(
            "REPLACE INTO payments (id, amount, date, status, kind, student_id, teacher_id, "
            "staff_id, class_id, invoice_number) VALUES (?,?,?,?,?,?,?,?,?,?)",
            (p.id, p.amount, _date_text(p.date), p.status, p.kind, p.student_id,
             p.teacher_id, p.staff_id, p.class_id, p.invoice_number)
        )
        self.conn.commit()

    def load_payments(self) -> List[Payment]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM payments ORDER BY rowid")
        return [
            Payment(
                id=row['id'], amount=row['amount'], date=to_date(row['date']),
                status=row['status'], kind=row['kind'], student_id=row['student_id'],
                teacher_id=row['teacher_id'], staff_id=row['staff_id'],
                class_id=row['class_id'], invoice_number=row['invoice_number'],
            )
            for row in cur.fetchall()
        ]

    def delete_payment(self, payment_id: str):
        self.conn.execute("DELETE FROM payments WHERE id=?", (payment_id,))
        self.conn.commit()

    # Momentaufnahme
    def write_snapshot(self, data: SchoolData):
        """Schreibt alle Datensätze; Schüler vor Kursen wegen der Einschreibungen."""
        for room in data.classrooms:
            self.save_classroom(room)
        for student in data.students:
            self.save_student(student)
        for teacher in data.teachers:
            self.save_teacher(teacher)
        for member in data.staff:
            self.save_staff(member)
        for cls in data.classes:
            self.save_class(cls)
        for student in data.students:
            for cid in student.class_ids:
                self.enroll_student(student.id, cid)
        for special in data.special_classes:
            self.save_special_class(special)
        for exp in data.expenses:
            # Kopie, damit die ids nicht in die Seed-Objekte zurückgeschrieben werden
            self.save_expense(replace(exp))
        for p in data.payments:
            self.save_payment(p)

    def load_snapshot(self) -> SchoolData:
        return SchoolData(
            classrooms=self.load_classrooms(),
            classes=self.load_classes(),
            students=self.load_students(),
            teachers=self.load_teachers(),
            staff=self.load_staff(),
            special_classes=self.load_special_classes(),
            expenses=self.load_expenses(),
            payments=self.load_payments(),
        )

    def close(self):
        """Schließe die Datenbankverbindung sauber"""
        if self.conn:
            self.conn.close()
            self.conn = None
