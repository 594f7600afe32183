import pytest
import requests

import notifier
from errors import DeliveryError
from grades import Assessment, CourseSnapshot, DetailItem
from notifier import (
    ACTIVE_COLOR,
    FIELD_VALUE_LIMIT,
    SUBMITTED_COLOR,
    build_heartbeat,
    build_report,
    format_number,
    send,
)


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


@pytest.fixture
def course():
    return CourseSnapshot(
        name="Calculus",
        submitted=True,
        results=[
            Assessment(
                name="Quizzes",
                weight=10,
                obtained=15,
                total=20,
                detailed=[
                    DetailItem(name="Quiz 1", obtained=8, total=10),
                    DetailItem(name="Quiz 2", obtained=7, total=10),
                ],
            ),
            Assessment(name="Final Term", weight=50),
        ],
        total=60,
        obtained=7.5,
    )


@pytest.mark.parametrize(
    "value, expected",
    [(45.0, "45"), (7.5, "7.5"), (2 / 3, "0.67"), (None, "0"), (float("nan"), "0")],
)
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_report_has_one_embed_per_course(course):
    active = CourseSnapshot(name="Physics", submitted=False, results=[], total=0, obtained=None)

    report = build_report([course, active])

    first, second = report["embeds"]
    assert first["title"] == "Calculus"
    assert first["color"] == SUBMITTED_COLOR
    assert second["color"] == ACTIVE_COLOR
    assert [field["name"] for field in first["fields"]] == ["Status", "Total", "Results"]
    assert first["fields"][0]["value"] == "Submitted"
    assert second["fields"][0]["value"] == "Not Submitted"
    assert first["fields"][1]["value"] == "7.5/60"
    assert second["fields"][1]["value"] == "0/0"
    assert second["fields"][2]["value"] == "No results"


def test_results_field_lists_assessments_and_details(course):
    results = build_report([course])["embeds"][0]["fields"][2]["value"]

    assert results == (
        "**Quizzes**\n"
        "Weight: 10\n"
        "Score: 15/20\n"
        "Details:\n"
        "• Quiz 1: 8/10\n"
        "• Quiz 2: 7/10\n"
        "\n"
        "**Final Term**\n"
        "Weight: 50\n"
        "Score: 0/0"
    )


def test_long_results_are_truncated():
    details = [DetailItem(name=f"Lab task {i}", obtained=i, total=10) for i in range(200)]
    course = CourseSnapshot(
        name="Lab",
        submitted=False,
        results=[Assessment(name="Labs", weight=25, obtained=0, total=0, detailed=details)],
        total=25,
        obtained=0,
    )

    value = build_report([course])["embeds"][0]["fields"][2]["value"]

    assert len(value) == FIELD_VALUE_LIMIT
    assert value.endswith("…")


def test_heartbeat():
    assert build_heartbeat() == {"content": "No changes detected."}
    assert build_heartbeat("ping") == {"content": "ping"}


def test_send_posts_json_once(monkeypatch):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json, timeout))
        return FakeResponse(204)

    monkeypatch.setattr(notifier.requests, "post", fake_post)

    send("https://hook", {"content": "hi"})

    assert calls == [("https://hook", {"content": "hi"}, 10)]


def test_send_raises_on_error_status(monkeypatch):
    monkeypatch.setattr(notifier.requests, "post", lambda *args, **kwargs: FakeResponse(400, "bad embed"))

    with pytest.raises(DeliveryError, match="400"):
        send("https://hook", {"content": "hi"})


def test_send_raises_on_network_failure(monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(notifier.requests, "post", fake_post)

    with pytest.raises(DeliveryError, match="connection refused"):
        send("https://hook", {"content": "hi"})
