from schoolyard.charts import create_split_chart, split_segments
from schoolyard.finance import split_profit
from schoolyard.models import RevenueSplit


def test_split_chart_written(tmp_path):
    fn = tmp_path / "split.png"
    split = split_profit(1000, RevenueSplit(60, 40), ["t1", "t2"])
    segments = create_split_chart(split, str(fn), {"t1": "Karim"}, subtitle="Robotics")
    assert fn.exists() and fn.stat().st_size > 0
    # Zentrum zuerst, unbekannte Namen bleiben IDs
    assert segments == [("Center", 400.0), ("Karim", 300.0), ("t2", 300.0)]


def test_split_chart_placeholder_for_no_revenue(tmp_path):
    fn = tmp_path / "empty.png"
    segments = create_split_chart(split_profit(0, RevenueSplit(60, 40), []), str(fn))
    assert fn.exists() and fn.stat().st_size > 0
    assert segments == []


def test_segments_show_unassigned_pool():
    split = split_profit(1000, RevenueSplit(60, 40), [])
    assert split_segments(split) == [("Center", 400.0), ("Unassigned", 600.0)]


def test_split_chart_svg_by_extension(tmp_path):
    fn = tmp_path / "split.svg"
    create_split_chart(split_profit(500, RevenueSplit(50, 50), ["t1"]), str(fn))
    assert fn.read_text().lstrip().startswith("<?xml")
