import json
import sys
from pathlib import Path

import pytest

import cli


@pytest.mark.parametrize("content", ["[1, 2, 3]", "42", '"title"'])
def test_non_object_test_file_exits_cleanly(tmp_path: Path, monkeypatch, content: str) -> None:
    path = tmp_path / "t1" / "test.json"
    path.parent.mkdir()
    path.write_text(content, encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["cli.py", str(path), "--progress-dir", str(tmp_path / "progress")])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()
    assert "expected a JSON object" in str(excinfo.value)


def test_count_local_attempts(tmp_path: Path) -> None:
    results = tmp_path / "results.jsonl"
    assert cli.count_local_attempts(results, "t1", "user@example.com") == 0

    lines = [
        {"testId": "t1", "userEmail": "user@example.com"},
        {"testId": "t1", "userEmail": "other@example.com"},
        {"testId": "t2", "userEmail": "user@example.com"},
        {"testId": "t1", "userEmail": "user@example.com"},
    ]
    results.write_text(
        "\n".join(json.dumps(line) for line in lines) + "\nnot json\n",
        encoding="utf-8",
    )
    assert cli.count_local_attempts(results, "t1", "user@example.com") == 2
