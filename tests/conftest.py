from __future__ import annotations

from pathlib import Path

import pytest

DATA = Path(__file__).parent / "data" / "ome"


@pytest.fixture
def fc_xml() -> str:
    return (DATA / "2003-FC.ome.xml").read_text()


@pytest.fixture
def v2008_09_xml() -> str:
    return (DATA / "2008-09.ome.xml").read_text()


@pytest.fixture
def latest_xml() -> str:
    return (DATA / "2012-06.ome.xml").read_text()


@pytest.fixture
def latest_path() -> Path:
    return DATA / "2012-06.ome.xml"


@pytest.fixture
def fc_path() -> Path:
    return DATA / "2003-FC.ome.xml"
