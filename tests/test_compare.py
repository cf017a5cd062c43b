from __future__ import annotations

from lxml import etree

from yaoxml import TreeComparator, create_ome_metadata, is_equal
from yaoxml.ome import OME_NAMESPACE

NS = f'xmlns="{OME_NAMESPACE}"'


def _tree(body: str) -> etree._Element:
    return etree.fromstring(f"<OME {NS}>{body}</OME>")


PIXELS = (
    '<Image ID="{id}"><Pixels ID="Pixels:0" DimensionOrder="XYZCT" Type="uint8" '
    'SizeX="{x}" SizeY="512" SizeZ="1" SizeC="1" SizeT="1"/></Image>'
)


def test_ids_are_ignored() -> None:
    a = _tree(PIXELS.format(id="Image:0", x=512))
    b = _tree(PIXELS.format(id="Image:99", x=512))
    result = TreeComparator().compare(a, b)
    assert result.equal
    assert result.path is None
    assert result


def test_attribute_difference() -> None:
    a = _tree(PIXELS.format(id="Image:0", x=512))
    b = _tree(PIXELS.format(id="Image:0", x=256))
    result = TreeComparator().compare(a, b)
    assert not result.equal
    assert result.path == "/OME/Image[0]/Pixels[0]/@SizeX"
    assert result.reason == "'512' != '256'"


def test_attribute_count_difference() -> None:
    a = _tree('<Image ID="Image:0" Name="a"/>')
    b = _tree('<Image ID="Image:0"/>')
    assert not is_equal(a, b)


def test_element_name_and_child_count() -> None:
    assert not is_equal(_tree("<Image/>"), _tree("<Instrument/>"))
    assert not is_equal(_tree("<Image/><Image/>"), _tree("<Image/>"))


def test_structured_annotations_always_equal() -> None:
    a = _tree("<StructuredAnnotations><XMLAnnotation ID='a'/></StructuredAnnotations>")
    b = _tree("<StructuredAnnotations/>")
    assert is_equal(a, b)


def test_comments_are_ignored() -> None:
    a = _tree("<!-- note --><Image/><?pi data?>")
    b = _tree("<Image/>")
    assert is_equal(a, b)


def test_leaf_text() -> None:
    a = _tree("<Image><Description>cells</Description></Image>")
    b = _tree("<Image><Description>cells </Description></Image>")
    c = _tree("<Image>\n  <Description>cells</Description>\n</Image>")
    assert not is_equal(a, b)
    assert is_equal(a, c)


INSTRUMENT = (
    '<Instrument ID="Instrument:0">'
    '<Laser ID="LightSource:0" Wavelength="{wave}"/>'
    '<Detector ID="Detector:0" Model="PMT"/>'
    "</Instrument>"
    '<Image ID="Image:0"><Pixels ID="Pixels:0">'
    '<Channel ID="Channel:0"><LightSourceSettings ID="{ref}"/></Channel>'
    "</Pixels></Image>"
)


def test_settings_references_are_followed() -> None:
    a = _tree(INSTRUMENT.format(wave=488, ref="LightSource:0"))
    b = _tree(INSTRUMENT.format(wave=488, ref="LightSource:0"))
    assert is_equal(a, b)


def test_settings_reference_targets_differ() -> None:
    lasers = (
        '<Instrument ID="Instrument:0">'
        '<Laser ID="LightSource:0" Wavelength="488"/>'
        '<Laser ID="LightSource:1" Wavelength="561"/>'
        "</Instrument>"
        '<Channel ID="Channel:0"><LightSourceSettings ID="{ref}"/></Channel>'
    )
    a = _tree(lasers.format(ref="LightSource:0"))
    b = _tree(lasers.format(ref="LightSource:1"))
    result = TreeComparator().compare(a, b)
    assert not result.equal
    assert result.path == (
        "/OME/Channel[1]/LightSourceSettings[0]/@ID->Laser/@Wavelength"
    )


def test_unresolved_references() -> None:
    a = _tree(INSTRUMENT.format(wave=488, ref="LightSource:7"))
    b = _tree(INSTRUMENT.format(wave=488, ref="LightSource:8"))
    c = _tree(INSTRUMENT.format(wave=488, ref="LightSource:0"))
    assert is_equal(a, b)
    result = TreeComparator().compare(a, c)
    assert not result.equal
    assert result.reason == "only one LightSource reference resolves"


def test_duplicate_reference_target_is_reported() -> None:
    body = INSTRUMENT.format(wave=488, ref="LightSource:0")
    arc = '<Instrument ID="Instrument:1"><Arc ID="LightSource:0"/></Instrument>'
    a = _tree(body + arc)
    b = _tree(body + arc)
    result = TreeComparator().compare(a, b)
    assert not result.equal
    assert len(result.reference_errors) == 1


def test_typed_roots(latest_xml: str) -> None:
    meta = create_ome_metadata(latest_xml)
    other = create_ome_metadata(latest_xml)
    assert is_equal(meta, other)
    assert is_equal(meta.root, etree.fromstring(meta.to_xml()))

    other.root.images[0].pixels.size_x = 256
    assert not is_equal(meta, other)


def test_attribute_names_must_match() -> None:
    a = _tree('<Pixels ID="Pixels:0" SizeX="5"/>')
    b = _tree('<Pixels SizeX="5" SizeY="9"/>')
    result = TreeComparator().compare(a, b)
    assert not result.equal
    assert result.path == "/OME/Pixels[0]"
    assert result.reason == "attributes on one side only: ID, SizeY"


CYCLE = (
    '<Instrument ID="Instrument:0">'
    '<Detector ID="Detector:0" Model="PMT">'
    '<DetectorSettings ID="Detector:1"/></Detector>'
    '<Detector ID="Detector:1" Model="{model}">'
    '<DetectorSettings ID="Detector:0"/></Detector>'
    "</Instrument>"
)


def test_reference_cycles_terminate() -> None:
    a = _tree(CYCLE.format(model="APD"))
    b = _tree(CYCLE.format(model="APD"))
    result = TreeComparator().compare(a, b)
    assert result.equal
    assert result.reference_errors == []

    c = _tree(CYCLE.format(model="CCD"))
    result = TreeComparator().compare(a, c)
    assert not result.equal
    assert result.path == (
        "/OME/Instrument[0]/Detector[0]/DetectorSettings[0]/@ID->Detector/@Model"
    )
