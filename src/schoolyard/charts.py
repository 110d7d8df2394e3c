# src/schoolyard/charts.py

from typing import List, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from schoolyard.models import ProfitSplit

CENTER_COLOR = "#4c72b0"
UNASSIGNED_COLOR = "#bbbbbb"


def split_segments(split: ProfitSplit, names: dict = None) -> List[Tuple[str, float]]:
    """(Label, Betrag) je Tortenstück: Zentrum, jeder Lehrer, ggf. nicht zugeordnet."""
    names = names or {}
    segments = [("Center", split.center_amount)]
    segments += [(names.get(tid, tid), amount) for tid, amount in split.teacher_amounts.items()]
    if split.unassigned_amount:
        segments.append(("Unassigned", split.unassigned_amount))
    return [(label, amount) for label, amount in segments if amount > 0]


def create_split_chart(split: ProfitSplit, filename: str, names: dict = None, subtitle: str = None):
    """
    Speichert die Gewinnaufteilung eines Sonderkurses als Tortendiagramm.
    Das Format ergibt sich aus der Dateiendung. Ohne Beträge wird ein
    Platzhalter-Bild geschrieben. Rückgabe: die gezeichneten Segmente.
    """
    segments = split_segments(split, names)
    fig, ax = plt.subplots()
    if not segments:
        ax.text(0.5, 0.5, "No revenue", ha="center", va="center", fontsize=14)
        ax.axis("off")
    else:
        labels = [label for label, _ in segments]
        colors = [CENTER_COLOR if label == "Center" else
                  UNASSIGNED_COLOR if label == "Unassigned" else None
                  for label in labels]
        # Lehrer bekommen Farben aus dem Standard-Zyklus
        palette = iter(plt.rcParams["axes.prop_cycle"].by_key()["color"][1:])
        colors = [c or next(palette, None) for c in colors]
        ax.pie([amount for _, amount in segments], labels=labels,
               autopct="%1.1f%%", colors=colors)
        ax.axis("equal")
    if subtitle:
        fig.text(0.5, 0.02, subtitle, ha="center", va="bottom", fontsize=16, fontweight='bold')
    fig.savefig(filename, bbox_inches="tight")
    plt.close(fig)
    return segments
