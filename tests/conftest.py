from pathlib import Path

import pytest

from grade_parser import SECTION_SEPARATOR_CLASS, SECTION_START_CLASS
from grades import RawRow
from settings import Settings

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        webhook_url="https://discord.example/api/webhooks/1/abc",
        username="BSCS-F22-001",
        password="hunter2",
        state_file=tmp_path / "state.json",
        max_attempts=3,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def category_rows():
    """Build the rows of one grade category: start, header, then items.

    Each item is ``(name, weight, total, obtained)``; only the first item's
    weight is read by the parser.
    """

    def build(name, items):
        rows = [
            RawRow(css_class=SECTION_START_CLASS, cells=[name], label=name),
            RawRow(css_class=SECTION_SEPARATOR_CLASS, cells=["Name", "Weightage", "Total", "Obtained"]),
        ]
        for item_name, weight, total, obtained in items:
            rows.append(RawRow(css_class="table-child-row", cells=[item_name, weight, total, obtained]))
        return rows

    return build
