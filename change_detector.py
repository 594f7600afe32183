"""
Decide whether a freshly scraped run snapshot is worth a notification.

Two checks run in order. A SHA-256 digest of the canonical snapshot catches
both the "scrape silently returned nothing" case and the "identical to the
previous run" case. When a reference snapshot is available, a field-level diff
then narrows the report down to the courses that actually moved.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from grades import CourseSnapshot, zero_escape

logger = logging.getLogger(__name__)


def _canonical_course(course: Optional[CourseSnapshot]) -> Optional[Dict[str, Any]]:
    if course is None:
        return None
    return {
        "name": course.name,
        "submitted": bool(course.submitted),
        "total": float(zero_escape(course.total)),
        "obtained": float(zero_escape(course.obtained)),
        "results": [
            {
                "name": assessment.name,
                "weight": float(zero_escape(assessment.weight)),
                "obtained": float(zero_escape(assessment.obtained)),
                "total": float(zero_escape(assessment.total)),
                "detailed": [
                    {
                        "name": item.name,
                        "obtained": float(zero_escape(item.obtained)),
                        "total": float(zero_escape(item.total)),
                    }
                    for item in assessment.detailed
                ],
            }
            for assessment in course.results
        ],
    }


def canonical_json(snapshot: Sequence[Optional[CourseSnapshot]]) -> str:
    payload = [_canonical_course(course) for course in snapshot]
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def snapshot_digest(snapshot: Sequence[Optional[CourseSnapshot]]) -> str:
    return hashlib.sha256(canonical_json(snapshot).encode("utf-8")).hexdigest()


EMPTY_DIGEST = snapshot_digest([])


def course_changed(current: CourseSnapshot, reference: Optional[CourseSnapshot]) -> bool:
    if reference is None:
        return True
    if zero_escape(current.obtained) != zero_escape(reference.obtained):
        return True
    if zero_escape(current.total) != zero_escape(reference.total):
        return True
    if bool(current.submitted) != bool(reference.submitted):
        return True
    if len(current.results) != len(reference.results):
        return True
    for now, before in zip(current.results, reference.results):
        if zero_escape(now.obtained) != zero_escape(before.obtained):
            return True
        if zero_escape(now.total) != zero_escape(before.total):
            return True
    return False


def diff_snapshots(
    current: Sequence[Optional[CourseSnapshot]],
    reference: Sequence[Optional[CourseSnapshot]],
) -> List[CourseSnapshot]:
    """Return the courses of ``current`` that differ from ``reference``.

    Courses are matched by name. A course missing from ``current`` (failed
    scrape) is not reported.
    """
    previous = {course.name: course for course in reference if course is not None}
    changes: List[CourseSnapshot] = []
    for course in current:
        if course is None:
            continue
        if course_changed(course, previous.get(course.name)):
            changes.append(course)
    return changes


@dataclass
class Decision:
    notify: bool
    digest: str
    payload: List[CourseSnapshot] = field(default_factory=list)
    empty: bool = False
    reason: str = ""


def should_notify(
    current: Sequence[Optional[CourseSnapshot]],
    reference: Optional[Sequence[Optional[CourseSnapshot]]] = None,
    last_digest: Optional[str] = None,
) -> Decision:
    digest = snapshot_digest(current)

    if digest == EMPTY_DIGEST:
        return Decision(notify=False, digest=digest, empty=True, reason="empty snapshot")

    if last_digest is not None and digest == last_digest:
        return Decision(notify=False, digest=digest, reason="digest unchanged")

    if reference is not None:
        changed = diff_snapshots(current, reference)
        if not changed:
            return Decision(notify=False, digest=digest, reason="no course changed")
        logger.info(f"{len(changed)} course(s) changed: {', '.join(c.name for c in changed)}")
        return Decision(notify=True, digest=digest, payload=changed, reason="courses changed")

    scraped = [course for course in current if course is not None]
    if not scraped:
        return Decision(notify=False, digest=digest, reason="no course scraped")
    return Decision(notify=True, digest=digest, payload=scraped, reason="no reference snapshot")


def merge_reference(
    current: Sequence[Optional[CourseSnapshot]],
    reference: Optional[Sequence[Optional[CourseSnapshot]]],
) -> List[CourseSnapshot]:
    """Snapshot to keep as the next reference.

    Scraped courses replace their previous entry; courses that failed this
    run keep the entry they had before.
    """
    merged = [course for course in current if course is not None]
    seen = {course.name for course in merged}
    for course in reference or []:
        if course is not None and course.name not in seen:
            merged.append(course)
            seen.add(course.name)
    return merged
