from __future__ import annotations

import json
from pathlib import Path

import pytest

from listadofondos.common.file_io import JSONLike, read_json, write_json


def test_write_then_read_roundtrip(tmp_path: Path) -> None:
    data: JSONLike = {
        "name": "Fondo Bolsa España",  # non-ASCII to check ensure_ascii=False
        "nums": [1, 2.5, None],
        "nested": {"ok": True, "more": ["€", "ñ"]},
    }
    out = tmp_path / "cache" / "data.json"
    write_json(out, data)
    assert out.exists()

    loaded = read_json(out)
    assert loaded == data


def test_parent_directories_are_created(tmp_path: Path) -> None:
    out = tmp_path / "deep" / "nest" / "file.json"
    write_json(out, {"x": 1})
    assert out.exists()
    assert out.parent.is_dir()


def test_read_missing_file_raises(tmp_path: Path) -> None:
    missing = tmp_path / "nope.json"
    with pytest.raises(FileNotFoundError):
        read_json(missing)


def test_write_unsupported_type_raises_and_keeps_previous(tmp_path: Path) -> None:
    out = tmp_path / "data.json"
    write_json(out, {"lastUpdated": "2024-05-31T10:00:00.000Z"})

    # sets are not JSON-serializable
    with pytest.raises(TypeError):
        write_json(out, {"bad": {1, 2, 3}})  # type: ignore[arg-type]

    assert read_json(out) == {"lastUpdated": "2024-05-31T10:00:00.000Z"}
    assert [p.name for p in tmp_path.iterdir()] == ["data.json"]


def test_overwrite_leaves_no_temp_files(tmp_path: Path) -> None:
    out = tmp_path / "data.json"
    write_json(out, {"v": 1})
    write_json(out, {"v": 2})

    assert read_json(out) == {"v": 2}
    assert sorted(p.name for p in tmp_path.iterdir()) == ["data.json"]


def test_pretty_print_and_utf8(tmp_path: Path) -> None:
    data: JSONLike = {"k": "ñ"}
    out = tmp_path / "pp.json"
    write_json(out, data)

    raw = out.read_text(encoding="utf-8")
    # 2-space indent means the value line starts with exactly two spaces
    assert '\n  "k": "ñ"\n' in raw
    assert "ñ" in raw
    assert "\\u00f1" not in raw
    assert json.loads(raw) == data
