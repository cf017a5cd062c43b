from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

from yaoxml._io import read_text, read_text_from_uri

HAVE_FSSPEC = importlib.util.find_spec("fsspec")


def test_read_local(latest_path: Path) -> None:
    assert read_text(latest_path) == latest_path.read_text()
    assert read_text(str(latest_path)).startswith("<?xml")


@pytest.mark.skipif(not HAVE_FSSPEC, reason="fsspec not installed")
def test_read_uri(latest_path: Path) -> None:
    text = read_text(latest_path.as_uri())
    assert text == latest_path.read_text()
    assert read_text_from_uri(latest_path) == text


@pytest.mark.skipif(not HAVE_FSSPEC, reason="fsspec not installed")
def test_read_missing_uri(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Could not read document"):
        read_text_from_uri((tmp_path / "missing.ome.xml").as_uri())
