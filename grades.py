from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence


def zero_escape(value: Any) -> float:
    """Return ``value`` as a number, mapping None, NaN and junk to 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def normalize_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.replace("\xa0", " ").split())


@dataclass(frozen=True)
class CourseLink:
    url: str
    name: str
    submitted: bool


@dataclass
class RawRow:
    """One ``<tr>`` of a results table as it came out of the page."""

    css_class: str
    cells: List[str] = field(default_factory=list)
    label: str = ""


@dataclass
class DetailItem:
    name: str
    obtained: float
    total: float


@dataclass
class Assessment:
    name: str
    weight: float
    obtained: float = 0
    total: float = 0
    detailed: List[DetailItem] = field(default_factory=list)

    def add_detail(self, item: DetailItem) -> None:
        self.detailed.append(item)
        self.obtained += item.obtained
        self.total += item.total


@dataclass
class CourseSnapshot:
    name: str
    submitted: bool
    results: List[Assessment] = field(default_factory=list)
    total: float = 0
    obtained: Optional[float] = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CourseSnapshot":
        results = [
            Assessment(
                name=str(item.get("name") or ""),
                weight=zero_escape(item.get("weight")),
                obtained=zero_escape(item.get("obtained")),
                total=zero_escape(item.get("total")),
                detailed=[
                    DetailItem(
                        name=str(detail.get("name") or ""),
                        obtained=zero_escape(detail.get("obtained")),
                        total=zero_escape(detail.get("total")),
                    )
                    for detail in item.get("detailed") or []
                ],
            )
            for item in data.get("results") or []
        ]
        # obtained stays as stored: None marks a course with nothing graded yet
        return cls(
            name=str(data.get("name") or ""),
            submitted=bool(data.get("submitted")),
            results=results,
            total=zero_escape(data.get("total")),
            obtained=data.get("obtained"),
        )


RunSnapshot = List[Optional[CourseSnapshot]]


def snapshot_to_dicts(snapshot: Sequence[Optional[CourseSnapshot]]) -> List[Optional[Dict[str, Any]]]:
    return [course.to_dict() if course is not None else None for course in snapshot]


def snapshot_from_dicts(items: Iterable[Optional[Dict[str, Any]]]) -> RunSnapshot:
    return [CourseSnapshot.from_dict(item) if item is not None else None for item in items]
