"""
Static label table for the whole-body detection model.
"""

from __future__ import annotations

from typing import FrozenSet, Sequence, Tuple

WHOLEBODY_LABELS: Tuple[str, ...] = (
    "Body", "Adult", "Child", "Male", "Female",
    "Body_with_Wheelchair", "Body_with_Crutches", "Head", "Front", "Right_Front",
    "Right_Side", "Right_Back", "Back", "Left_Back", "Left_Side",
    "Left_Front", "Face", "Eye", "Nose", "Mouth",
    "Ear", "Hand", "Hand_Left", "Hand_Right", "Foot",
)

# Attribute and orientation classes that are not drawn
DEFAULT_EXCLUDED_CLASS_IDS: FrozenSet[int] = frozenset(
    {1, 2, 3, 4, 8, 9, 10, 11, 12, 13, 14, 15, 22, 23}
)


def label_for(class_id: int, labels: Sequence[str] = WHOLEBODY_LABELS) -> str:
    """Return the class name, or ``class_<id>`` for ids outside the table."""
    if 0 <= class_id < len(labels):
        return labels[class_id]
    return f"class_{class_id}"
