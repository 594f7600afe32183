from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from grades import Assessment, CourseLink, CourseSnapshot, zero_escape


@dataclass(frozen=True)
class CourseTotals:
    total: float
    obtained: float


def aggregate(assessments: Iterable[Assessment]) -> CourseTotals:
    """Weighted course total.

    ``total`` is the sum of category weights; ``obtained`` scales each
    category's score by its weight. Categories with nothing graded yet
    (``total == 0``) add nothing to ``obtained``.
    """
    total = 0
    obtained = 0
    for assessment in assessments:
        weight = zero_escape(assessment.weight)
        total += weight
        out_of = zero_escape(assessment.total)
        if out_of == 0:
            continue
        obtained += zero_escape(assessment.obtained) / out_of * weight
    return CourseTotals(total=total, obtained=obtained)


def build_course_snapshot(link: CourseLink, assessments: List[Assessment]) -> CourseSnapshot:
    totals = aggregate(assessments)
    return CourseSnapshot(
        name=link.name,
        submitted=link.submitted,
        results=assessments,
        total=totals.total,
        obtained=totals.obtained,
    )
