import json

from image_crawler.storage import Storage, result_document
from image_crawler.types import ImageRecord


RECORDS = [
    ImageRecord("https://example.com/a.png", "https://example.com/", 0),
    ImageRecord("https://example.com/a.png", "https://example.com/about", 1),
]


def test_result_document_shape():
    assert result_document(RECORDS) == {
        "result": [
            {"imageUrl": "https://example.com/a.png", "sourceUrl": "https://example.com/", "depth": 0},
            {"imageUrl": "https://example.com/a.png", "sourceUrl": "https://example.com/about", "depth": 1},
        ]
    }
    assert result_document([]) == {"result": []}


def test_save_result_writes_indented_json(tmp_path):
    storage = Storage(tmp_path / "output", prefix="crawl")

    path = storage.save_result(RECORDS, hostname="example.com", session_id="abc-123")

    assert path == tmp_path / "output" / "crawl-example.com-abc-123.json"
    text = path.read_text(encoding="utf-8")
    assert text.startswith('{\n  "result": [\n    {\n      "imageUrl"')
    assert json.loads(text) == result_document(RECORDS)
    assert list(path.parent.glob("*.tmp")) == []


def test_save_result_overwrites_atomically(tmp_path):
    storage = Storage(tmp_path)

    storage.save_result(RECORDS, hostname="example.com", session_id="s")
    path = storage.save_result(RECORDS[:1], hostname="example.com", session_id="s")

    assert json.loads(path.read_text(encoding="utf-8")) == result_document(RECORDS[:1])


def test_hostname_is_made_filesystem_safe(tmp_path):
    storage = Storage(tmp_path, prefix="run")

    assert storage.result_path_for("[::1]", "s").name == "run-___1_-s.json"
    assert storage.result_path_for("", "s").name == "run-unknown-s.json"


def test_save_stats(tmp_path):
    storage = Storage(tmp_path)

    path = storage.save_stats({"fetched_ok": 3}, hostname="example.com", session_id="s")

    assert path.name == "crawl-example.com-s.stats.json"
    assert json.loads(path.read_text(encoding="utf-8")) == {"fetched_ok": 3}


def test_logs_dir_sits_under_export_folder(tmp_path):
    storage = Storage(tmp_path / "output")

    assert storage.logs_dir == tmp_path / "output" / "logs"
    assert not storage.logs_dir.exists()
