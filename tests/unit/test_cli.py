"""Tests for the htmlregions command line."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from htmlregions import cli

if TYPE_CHECKING:
    from pathlib import Path

DOC = "<p>The quick brown fox</p><p>jumps over the lazy dog</p>"


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CLI runs from installing handlers on the root logger."""
    monkeypatch.setattr(cli, "setup_logging", lambda **_kwargs: None)


@pytest.fixture
def document(tmp_path: Path) -> Path:
    path = tmp_path / "doc.html"
    path.write_text(DOC, encoding="utf-8")
    return path


def _records(region_id: str, path: str, start: int, end: int) -> dict:
    return {
        "id": region_id,
        "from_name": "label",
        "to_name": "text",
        "type": "labels",
        "value": {
            "startOffset": start,
            "endOffset": end,
            "start": path,
            "end": path,
            "labels": ["PER"],
        },
    }


class TestAnchorCommand:
    """htmlregions anchor DOCUMENT START END."""

    def test_labelled_selection(self, document: Path, capsys) -> None:
        code = cli.main(
            [
                "anchor",
                str(document),
                "4",
                "9",
                "--name",
                "text",
                "--label",
                "labels:label:PER",
            ]
        )

        assert code == 0
        (record,) = json.loads(capsys.readouterr().out)
        assert record["from_name"] == "label"
        assert record["to_name"] == "text"
        assert record["type"] == "labels"
        assert record["value"] == {
            "startOffset": 4,
            "endOffset": 9,
            "start": "/0/0",
            "end": "/0/0",
            "labels": ["PER"],
        }

    def test_bare_selection(self, document: Path, capsys) -> None:
        code = cli.main(["anchor", str(document), "19", "24"])

        assert code == 0
        (record,) = json.loads(capsys.readouterr().out)
        assert record["type"] == "htmlregion"
        assert record["from_name"] == "document"
        assert record["value"]["start"] == "/1/0"

    def test_offsets_out_of_range(self, document: Path) -> None:
        assert cli.main(["anchor", str(document), "0", "500"]) == 2

    def test_bad_label_argument(self, document: Path) -> None:
        with pytest.raises(SystemExit):
            cli.main(["anchor", str(document), "0", "3", "--label", "nonsense"])


class TestRenderCommand:
    """htmlregions render DOCUMENT RECORDS."""

    def test_renders_to_file(self, document: Path, tmp_path: Path) -> None:
        records = tmp_path / "records.json"
        records.write_text(json.dumps([_records("r1", "/0/0", 4, 9)]))
        output = tmp_path / "out.html"

        code = cli.main(
            [
                "render",
                str(document),
                str(records),
                "-o",
                str(output),
                "--color",
                "PER=red",
            ]
        )

        assert code == 0
        html = output.read_text(encoding="utf-8")
        assert 'data-region="r1"' in html
        assert "rgba(255, 0, 0, 0.3)" in html
        assert ">quick</span>" in html

    def test_bad_color_argument(self, document: Path, tmp_path: Path) -> None:
        records = tmp_path / "records.json"
        records.write_text("[]")
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["render", str(document), str(records), "--color", "PER"])
        assert excinfo.value.code == 2

    def test_failures_reported(self, document: Path, tmp_path: Path, capsys) -> None:
        records = tmp_path / "records.json"
        records.write_text(
            json.dumps(
                [_records("r1", "/0/0", 4, 9), _records("r2", "/9/0", 0, 1)]
            )
        )

        code = cli.main(["render", str(document), str(records)])

        assert code == 1
        captured = capsys.readouterr()
        assert 'data-region="r1"' in captured.out
        assert "1 region(s) rendered" in captured.err
        assert "r2" in captured.err
