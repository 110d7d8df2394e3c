import logging
import pytest

from schoolyard.models import ClassEntry, RevenueSplit, SpecialClass, Student
from schoolyard.finance import (
    discounted_fee, project_class_revenue, project_total,
    split_profit, split_special_class,
)


def students(*items):
    return {s.id: s for s in items}


def test_empty_class_has_no_revenue():
    cls = ClassEntry("c1", "Math", 500)
    assert project_class_revenue(cls, {}) == 0


def test_single_student_pays_base_fee():
    cls = ClassEntry("c1", "Math", 500, student_ids=["s1"])
    assert project_class_revenue(cls, students(Student("s1", "Ali"))) == 500


def test_discount_is_applied():
    cls = ClassEntry("c1", "Math", 500, student_ids=["s1"])
    s = Student("s1", "Sara", has_discount=True, discount_percentage=10)
    assert project_class_revenue(cls, students(s)) == pytest.approx(450)


def test_discount_needs_flag_and_percentage():
    assert discounted_fee(500, Student("a", "A", has_discount=False, discount_percentage=50)) == 500
    assert discounted_fee(500, Student("b", "B", has_discount=True)) == 500
    assert discounted_fee(500, Student("c", "C", has_discount=True, discount_percentage=100)) == 0
    assert discounted_fee(500, None) == 500


def test_missing_students_are_skipped():
    cls = ClassEntry("c1", "Math", 200, student_ids=["s1", "gone", "s2"])
    db = students(Student("s1", "A"), Student("s2", "B", has_discount=True, discount_percentage=25))
    assert project_class_revenue(cls, db) == pytest.approx(350)


def test_project_total_over_classes():
    db = students(Student("s1", "A"), Student("s2", "B"))
    classes = [
        ClassEntry("c1", "Math", 100, student_ids=["s1", "s2"]),
        ClassEntry("c2", "Art", 50, student_ids=["s2"]),
        ClassEntry("c3", "Empty", 999),
    ]
    assert project_total(classes, db) == 250


def test_discount_range_is_validated_at_boundary():
    with pytest.raises(ValueError):
        Student("x", "X", has_discount=True, discount_percentage=120)
    with pytest.raises(ValueError):
        ClassEntry("c", "Neg", -1)


def test_equal_split_between_teachers():
    res = split_profit(1000, RevenueSplit(teacher_percentage=60, center_percentage=40), ["t1", "t2"])
    assert res.center_amount == 400
    assert res.per_teacher_amount == 300
    assert res.teacher_amounts == {"t1": 300, "t2": 300}
    assert res.unassigned_amount == 0


def test_no_teachers_leaves_pool_unassigned():
    res = split_profit(1000, RevenueSplit(60, 40), [])
    assert res.teacher_pool_amount == 600
    assert res.teacher_amounts == {}
    assert res.unassigned_amount == 600
    assert res.center_amount == 400


def test_split_is_not_normalized(caplog):
    with caplog.at_level(logging.WARNING):
        res = split_profit(1000, RevenueSplit(70, 40), ["t1"])
    assert res.center_amount == 400
    assert res.teacher_pool_amount == 700
    assert res.teacher_amounts == {"t1": 700}
    assert "does not add up to 100" in caplog.text


def test_split_keeps_full_precision():
    res = split_profit(100, RevenueSplit(50, 50), ["a", "b", "c"])
    assert res.per_teacher_amount == pytest.approx(50 / 3)
    assert sum(res.teacher_amounts.values()) == pytest.approx(50)


def test_duplicate_teacher_ids_are_collapsed():
    res = split_profit(1000, RevenueSplit(60, 40), ["t1", "t1", "t2"])
    assert res.teacher_amounts == {"t1": 300, "t2": 300}


def test_special_class_split_uses_projected_revenue():
    db = students(Student("s1", "A"), Student("s2", "B", has_discount=True, discount_percentage=50))
    special = SpecialClass("m1", "Robotics", 400, RevenueSplit(60, 40),
                           teacher_ids=["t1", "t2"], student_ids=["s1", "s2"])
    res = split_special_class(special, db)
    # Topf: 400 + 200 = 600
    assert res.center_amount == pytest.approx(240)
    assert res.teacher_amounts == {"t1": pytest.approx(180), "t2": pytest.approx(180)}
