import json

from verify_erp_scraper import run_offline


def test_offline_parse_of_saved_pages(data_dir, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    run_offline(data_dir / "landing.html", [data_dir / "course_results.html"], "FALL 2025")

    (course,) = json.loads((tmp_path / "scraped_results.json").read_text(encoding="utf-8"))
    assert course["name"] == "course_results"
    assert [result["name"] for result in course["results"]] == ["Quizzes", "Final Term"]
    assert course["total"] == 10
    assert course["obtained"] == 7.5
