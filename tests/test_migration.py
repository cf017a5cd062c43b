from __future__ import annotations

import pytest
from lxml import etree

from yaoxml import SchemaVersion, create_ome_metadata, detect_version
from yaoxml._errors import UnknownVersionError
from yaoxml._xml import StylesheetCache
from yaoxml.migration import (
    STEPS,
    MetadataDocument,
    MigrationChain,
    latest_version,
    migrate,
    upgrade_text,
)

LATEST_NS = SchemaVersion.V2012_06.namespace

IDENTITY_XSL = b"""\
<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:template match="@*|node()">
    <xsl:copy><xsl:apply-templates select="@*|node()"/></xsl:copy>
  </xsl:template>
</xsl:stylesheet>
"""


def test_versions_are_ordered() -> None:
    versions = list(SchemaVersion)
    assert versions == sorted(versions)
    assert len(versions) == 10
    assert SchemaVersion.V2003_FC < SchemaVersion.V2008_09 < SchemaVersion.V2012_06
    assert latest_version() is SchemaVersion.V2012_06
    assert SchemaVersion("2010-04") is SchemaVersion.V2010_04
    assert str(SchemaVersion.V2011_06) == "2011-06"


@pytest.mark.parametrize("version", list(SchemaVersion))
def test_namespace_round_trip(version: SchemaVersion) -> None:
    assert SchemaVersion.from_namespace(version.namespace) is version


def test_unknown_namespace() -> None:
    with pytest.raises(UnknownVersionError) as exc:
        SchemaVersion.from_namespace(
            "http://www.openmicroscopy.org/Schemas/OME/2099-01"
        )
    assert exc.value.namespace is not None


def test_detect_version(fc_xml: str, v2008_09_xml: str, latest_xml: str) -> None:
    assert detect_version(fc_xml) is SchemaVersion.V2003_FC
    assert detect_version(v2008_09_xml) is SchemaVersion.V2008_09
    assert detect_version(latest_xml) is SchemaVersion.V2012_06
    assert detect_version(create_ome_metadata()) is SchemaVersion.V2012_06


def test_detect_version_prefixed_root() -> None:
    xml = '<ome:OME xmlns:ome="http://www.openmicroscopy.org/Schemas/OME/2010-06"/>'
    assert detect_version(xml) is SchemaVersion.V2010_06


def test_detect_version_without_namespace() -> None:
    with pytest.raises(UnknownVersionError):
        detect_version("<OME/>")


def test_steps_for() -> None:
    chain = MigrationChain()
    assert chain.latest is SchemaVersion.V2012_06
    assert len(chain.steps_for(SchemaVersion.V2003_FC)) == len(STEPS)
    assert [s.name for s in chain.steps_for(SchemaVersion.V2010_06)] == [
        "2010-06-to-2011-06",
        "2011-06-to-2012-06",
    ]
    assert chain.steps_for(SchemaVersion.V2012_06) == []


def test_latest_document_is_untouched(latest_xml: str) -> None:
    doc = MetadataDocument.from_text(latest_xml)
    root = doc.root
    result = migrate(doc)
    assert result.ok
    assert result.applied == []
    assert doc.root is root
    assert result.version is SchemaVersion.V2012_06


def test_migrate_fc(fc_xml: str) -> None:
    doc = MetadataDocument.from_text(fc_xml)
    result = migrate(doc)
    assert result.ok, result.errors
    assert result.source_version is SchemaVersion.V2003_FC
    assert result.applied == [s.name for s in STEPS]
    assert doc.version is SchemaVersion.V2012_06
    assert etree.QName(doc.root).namespace == LATEST_NS

    text = doc.to_text()
    start_tag = text.split(">", 1)[0]
    assert start_tag.startswith("<OME ")
    assert f'xmlns="{LATEST_NS}"' in start_tag
    assert "ns0:" not in text and "<ns:" not in text
    # the old schemaLocation points at the FC namespace
    assert "schemaLocation" not in text


def test_fc_loads_as_typed_root(fc_xml: str) -> None:
    meta = create_ome_metadata(fc_xml)
    image = meta.root.images[0]
    assert image.name == "legacy"
    assert image.acquisition_date is not None
    assert image.acquisition_date.year == 2003
    pixels = image.pixels
    assert pixels.type == "uint16"
    assert (pixels.size_x, pixels.size_y, pixels.size_z) == (64, 32, 3)
    assert pixels.bin_data[0].big_endian is True
    assert pixels.bin_data[0].length == 0


def test_2008_09_loads_as_typed_root(v2008_09_xml: str) -> None:
    meta = create_ome_metadata(v2008_09_xml)
    pixels = meta.root.images[0].pixels
    assert pixels.type == "uint8"
    assert pixels.dimension_order == "XYCZT"
    assert len(pixels.channels) == 1
    channel = pixels.channels[0]
    assert channel.id == "Channel:0"
    assert channel.name == "RGB"
    assert channel.samples_per_pixel == 3
    assert pixels.bin_data[0].big_endian is False


def test_foreign_content_is_kept() -> None:
    xml = """
    <OME xmlns="http://www.openmicroscopy.org/Schemas/OME/2011-06">
      <StructuredAnnotations>
        <XMLAnnotation ID="Annotation:0">
          <Value><x:thing xmlns:x="urn:example">1</x:thing></Value>
        </XMLAnnotation>
      </StructuredAnnotations>
    </OME>
    """
    doc = MetadataDocument.from_text(xml)
    assert migrate(doc).ok
    thing = doc.root.find(".//{urn:example}thing")
    assert thing is not None
    assert thing.text == "1"
    assert doc.root.find(f".//{{{LATEST_NS}}}XMLAnnotation") is not None


def test_upgrade_text(fc_xml: str, latest_xml: str) -> None:
    result = upgrade_text(fc_xml)
    assert result.ok
    assert result.text is not None
    assert detect_version(result.text) is SchemaVersion.V2012_06

    # nothing to do: the original text comes back
    assert upgrade_text(latest_xml).text == latest_xml


def test_upgrade_text_malformed() -> None:
    result = upgrade_text("<OME")
    assert not result
    assert result.errors[0]["type"] == "parse"
    assert result.document is None


def test_upgrade_text_unknown_version() -> None:
    ns = "http://www.openmicroscopy.org/Schemas/OME/1999-01"
    result = upgrade_text(f'<OME xmlns="{ns}"/>')
    assert not result.ok
    error = result.errors[0]
    assert error["type"] == "unknown_version"
    assert error["ctx"] == {"namespace": ns}


def test_failed_step_leaves_document_untouched(v2008_09_xml: str) -> None:
    def compiler(path: str) -> etree.XSLT:
        return etree.XSLT(etree.XML(IDENTITY_XSL))

    chain = MigrationChain(cache=StylesheetCache("yaoxml.migration", compiler))
    doc = MetadataDocument.from_text(v2008_09_xml)
    root = doc.root
    result = chain.migrate(doc)

    assert not result.ok
    error = result.errors[0]
    assert error["type"] == "step"
    assert error["loc"] == ("2008-09-to-2009-09",)
    assert "namespace" in error["msg"]
    assert doc.root is root
    assert doc.version is SchemaVersion.V2008_09


def test_stylesheets_are_compiled_once() -> None:
    calls: list[str] = []

    def compiler(path: str) -> etree.XSLT:
        calls.append(path)
        return etree.XSLT(etree.XML(IDENTITY_XSL))

    cache = StylesheetCache("yaoxml.migration", compiler)
    first = cache.get(STEPS[0].stylesheet)
    assert cache.get(STEPS[0].stylesheet) is first
    assert STEPS[0].stylesheet in cache
    assert len(calls) == 1
    cache.clear()
    assert STEPS[0].stylesheet not in cache
