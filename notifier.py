from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

import requests

from errors import DeliveryError
from grades import Assessment, CourseSnapshot, zero_escape

logger = logging.getLogger(__name__)

SUBMITTED_COLOR = 3066993
ACTIVE_COLOR = 15158332
FIELD_VALUE_LIMIT = 1024
HEARTBEAT_MESSAGE = "No changes detected."


def format_number(value: Any) -> str:
    number = round(float(zero_escape(value)), 2)
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"


def _truncate(text: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def format_assessment(assessment: Assessment) -> str:
    detailed = "\n".join(
        f"• {item.name}: {format_number(item.obtained)}/{format_number(item.total)}"
        for item in assessment.detailed
    )
    lines = [
        f"**{assessment.name}**",
        f"Weight: {format_number(assessment.weight)}",
        f"Score: {format_number(assessment.obtained)}/{format_number(assessment.total)}",
        f"Details:\n{detailed}" if detailed else "",
    ]
    return "\n".join(line for line in lines if line)


def build_embed(course: CourseSnapshot) -> Dict[str, Any]:
    results = "\n\n".join(format_assessment(assessment) for assessment in course.results)
    return {
        "title": course.name,
        "color": SUBMITTED_COLOR if course.submitted else ACTIVE_COLOR,
        "fields": [
            {
                "name": "Status",
                "value": "Submitted" if course.submitted else "Not Submitted",
                "inline": True,
            },
            {
                "name": "Total",
                "value": f"{format_number(course.obtained)}/{format_number(course.total)}",
                "inline": True,
            },
            {
                "name": "Results",
                "value": _truncate(results or "No results"),
            },
        ],
    }


def build_report(snapshots: Iterable[CourseSnapshot]) -> Dict[str, List[Dict[str, Any]]]:
    return {"embeds": [build_embed(course) for course in snapshots if course is not None]}


def build_heartbeat(message: str = HEARTBEAT_MESSAGE) -> Dict[str, str]:
    return {"content": message}


def send(webhook_url: str, payload: Dict[str, Any], timeout: float = 10) -> None:
    """POST ``payload`` to the webhook once. Raises DeliveryError on failure."""
    try:
        response = requests.post(webhook_url, json=payload, timeout=timeout)
    except requests.RequestException as exc:
        raise DeliveryError(f"Webhook request failed: {exc}") from exc

    if not 200 <= response.status_code < 300:
        raise DeliveryError(f"Webhook returned {response.status_code}: {response.text[:200]}")
    logger.info(f"Webhook notification sent ({response.status_code}).")
