"""Tests for the command-line interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

from yaoxml._cli import main

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


def test_cli_no_args() -> None:
    """Test CLI with no arguments shows help."""
    assert main([]) == 0


def test_cli_version(fc_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["version", str(fc_path)]) == 0
    assert capsys.readouterr().out.strip() == "2003-FC"


def test_cli_version_unknown(tmp_path: Path) -> None:
    path = tmp_path / "plain.xml"
    path.write_text("<OME/>")
    assert main(["version", str(path)]) == 1


def test_cli_version_missing_file(tmp_path: Path) -> None:
    assert main(["version", str(tmp_path / "missing.xml")]) == 2


def test_cli_upgrade_to_file(fc_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "upgraded.ome.xml"
    assert main(["upgrade", str(fc_path), "-o", str(out)]) == 0
    assert main(["version", str(out)]) == 0
    assert "2012-06" in out.read_text()


def test_cli_upgrade_to_stdout(
    latest_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["upgrade", str(latest_path)]) == 0
    assert "<OME" in capsys.readouterr().out


def test_cli_upgrade_malformed(tmp_path: Path) -> None:
    path = tmp_path / "broken.xml"
    path.write_text("<OME")
    assert main(["upgrade", str(path)]) == 1


def test_cli_compare(fc_path: Path, latest_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "upgraded.ome.xml"
    assert main(["upgrade", str(fc_path), "-o", str(out)]) == 0
    # an older document and its upgraded copy describe the same dataset
    assert main(["compare", str(fc_path), str(out)]) == 0
    assert main(["compare", str(fc_path), str(latest_path)]) == 1


def test_cli_compare_error(latest_path: Path, tmp_path: Path) -> None:
    path = tmp_path / "broken.xml"
    path.write_text("<OME")
    assert main(["compare", str(latest_path), str(path)]) == 2
