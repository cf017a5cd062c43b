from __future__ import annotations

import re

import pytest

from yaoxml import (
    CalibratedAxis,
    CanonicalMetadata,
    FakeMetadata,
    ICSMetadata,
    ImageMetadata,
    OMEMetadata,
    PartialFieldWarning,
    TranslationEngine,
    TranslationOptions,
    create_ome_metadata,
    translate,
)
from yaoxml.ome import dump_xml

FAKE_ID = "testImg&sizeX=512&sizeY=512.fake"
CALIBRATIONS = {"X": 5.0, "Y": 6.0, "Z": 7.0, "Time": 8.0}


def _calibrated_image() -> ImageMetadata:
    return ImageMetadata(
        name="calibrated",
        pixel_type="uint16",
        axes=[
            CalibratedAxis(type="X", length=64, calibration=5.0, unit="micrometer"),
            CalibratedAxis(type="Y", length=32, calibration=6.0, unit="micrometer"),
            CalibratedAxis(type="Z", length=4, calibration=7.0, unit="micrometer"),
            CalibratedAxis(type="Channel", length=2),
            CalibratedAxis(type="Time", length=3, calibration=8.0, unit="second"),
        ],
    )


def _calibrations(meta: CanonicalMetadata) -> dict[str, float | None]:
    image = meta.images[0]
    found = {}
    for axis_type in CALIBRATIONS:
        axis = image.axis(axis_type)
        assert axis is not None
        found[axis_type] = axis.calibration
    return found


def test_fake_id_parsing() -> None:
    fake = FakeMetadata.from_id("img&sizeZ=3&pixelType=uint16&little=false.fake")
    assert fake.name == "img"
    assert fake.size_z == 3
    assert fake.pixel_type == "uint16"
    assert fake.little_endian is False
    assert FakeMetadata.from_id(fake.to_id()).size_z == 3


def test_fake_id_unknown_parameter(caplog: pytest.LogCaptureFixture) -> None:
    fake = FakeMetadata.from_id("img&bogus=1&sizeX=16.fake")
    assert fake.size_x == 16
    assert "bogus" in caplog.text


def test_fake_to_ome_end_to_end() -> None:
    fake = FakeMetadata.from_id(FAKE_ID)
    ome = OMEMetadata()
    assert translate(fake, ome)

    xml = dump_xml(ome)
    assert (
        '<Pixels DimensionOrder="XYZCT" ID="Pixels:0" SizeC="1" SizeT="1" '
        'SizeX="512" SizeY="512" SizeZ="1" Type="uint8">'
    ) in xml
    image = ome.root.images[0]
    assert image.id == "Image:0"
    assert image.name == "testImg"
    assert image.pixels.channels[0].id == "Channel:0:0"
    assert image.pixels.bin_data[0].big_endian is False


def test_translation_is_deterministic() -> None:
    fake = FakeMetadata.from_id(FAKE_ID)
    first, second = OMEMetadata(), OMEMetadata()
    translate(fake, first)
    translate(fake, second)
    assert dump_xml(first) == dump_xml(second)


def test_fake_series_and_rgb() -> None:
    fake = FakeMetadata.from_id("rgb&sizeC=6&rgb=3&series=2&sizeT=2.fake")
    ome = OMEMetadata()
    assert translate(fake, ome, TranslationOptions(populate_planes=True))
    assert ome.image_count == 2
    pixels = ome.root.images[1].pixels
    assert pixels.id == "Pixels:1"
    assert [c.id for c in pixels.channels] == ["Channel:1:0", "Channel:1:1"]
    assert {c.samples_per_pixel for c in pixels.channels} == {3}
    # 2 effective channels x 2 timepoints
    assert len(pixels.planes) == 4

    back = CanonicalMetadata()
    assert translate(ome, back)
    assert back.images[0].rgb_channel_count == 3
    assert back.images[0].plane_count == 4


@pytest.mark.parametrize("dest_type", [OMEMetadata, ICSMetadata])
def test_calibrations_round_trip(dest_type: type) -> None:
    source = CanonicalMetadata(images=[_calibrated_image()])
    middle = dest_type()
    assert translate(source, middle)

    back = CanonicalMetadata()
    assert translate(middle, back)
    assert _calibrations(back) == CALIBRATIONS
    assert back.images[0].axis_length("Z") == 4
    assert back.images[0].pixel_type == "uint16"


def test_unit_conversion_to_ome() -> None:
    image = ImageMetadata()
    image.set_axis("X", length=10, calibration=500.0, unit="nm")
    image.set_axis("Y", length=10, calibration=0.5, unit="um")
    image.set_axis("Time", length=2, calibration=250.0, unit="ms")
    ome = OMEMetadata()
    assert translate(CanonicalMetadata(images=[image]), ome)
    pixels = ome.root.images[0].pixels
    assert pixels.physical_size_x == pytest.approx(0.5)
    assert pixels.physical_size_y == pytest.approx(0.5)
    assert pixels.time_increment == pytest.approx(0.25)


def test_bad_calibration_warns_and_continues() -> None:
    image = ImageMetadata()
    image.set_axis("X", length=10, calibration=-1.0, unit="micrometer")
    image.set_axis("Y", length=10, calibration=2.0, unit="micrometer")
    ome = OMEMetadata()
    with pytest.warns(PartialFieldWarning, match="physical_size_x"):
        assert translate(CanonicalMetadata(images=[image]), ome)
    pixels = ome.root.images[0].pixels
    assert pixels.physical_size_x is None
    assert pixels.physical_size_y == 2.0


def test_minimal_metadata_level() -> None:
    source = CanonicalMetadata(images=[_calibrated_image()])
    ome = OMEMetadata()
    options = TranslationOptions(metadata_level="minimum")
    assert TranslationEngine(options=options).translate(source, ome)
    assert ome.root.images[0].pixels.physical_size_x is None


def test_failed_translation_rolls_back(latest_xml: str) -> None:
    ome = create_ome_metadata(latest_xml)
    before = dump_xml(ome)
    # OME-XML cannot store a dimension order that does not start with XY
    image = ImageMetadata(
        axes=[
            CalibratedAxis(type="Z", length=2),
            CalibratedAxis(type="X", length=4),
            CalibratedAxis(type="Y", length=4),
        ]
    )
    assert translate(CanonicalMetadata(images=[image]), ome) is False
    assert dump_xml(ome) == before


def test_existing_ome_content_is_kept(latest_xml: str) -> None:
    ome = create_ome_metadata(latest_xml)
    back = CanonicalMetadata()
    assert translate(ome, back)
    back.images[0].set_axis("Z", length=8)
    assert translate(back, ome)

    image = ome.root.images[0]
    assert image.pixels.size_z == 8
    assert image.instrument_ref is not None
    assert image.pixels.channels[0].name == "GFP"
    assert image.pixels.channels[0].light_source_settings is not None
    assert ome.root.structured_annotations is not None


ICS_HEADER = "\n".join(
    [
        "\t",
        "ics_version\t2.0",
        "filename\tcells.ics",
        "layout\torder\tbits\tx\ty\tz\tch\tt",
        "layout\tsizes\t16\t256\t128\t5\t2\t3",
        "representation\tformat\tinteger",
        "representation\tsign\tunsigned",
        "representation\tbyte_order\t2\t1",
        "parameter\tscale\t1.0\t0.1\t0.1\t0.5\t1.0\t2.0",
        "parameter\tunits\tbits\tmicrometers\tmicrometers\tmicrometers\tundefined\ts",
        "parameter\tt\t0.0\t2.0\t4.0",
        "history\tdate\t2015-03-04T10:20:30",
        "history\tlabels\tGFP\tmCherry",
        "history\tmicroscope\tAxio",
        "history\tobjective\tNA\t1.4",
        "history\tobjective\tmagnification\t63",
        "history\tcamera\tmodel\tOrca",
        "sensor\ts_params\tLambdaEm\t510\t0",
        "history\tsomething\telse\tkept",
        "",
    ]
)


def test_ics_header_parsing() -> None:
    ics = ICSMetadata.from_header(ICS_HEADER, dataset_name="cells.ics")
    assert ics.layout_order == ["bits", "x", "y", "z", "ch", "t"]
    assert ics.layout_sizes == [16, 256, 128, 5, 2, 3]
    assert ics.pixel_type == "uint16"
    assert ics.little_endian is False
    assert ics.axis_units() == [
        "micrometers",
        "micrometers",
        "micrometers",
        None,
        "s",
    ]
    assert ics.channel_names == ["GFP", "mCherry"]
    assert ics.lens_na == 1.4
    assert ics.em_waves == [510, 0]
    assert ics.extra == ["history\tsomething\telse\tkept"]

    again = ICSMetadata.from_header(ics.to_header())
    assert again.model_dump(exclude={"dataset_name"}) == ics.model_dump(
        exclude={"dataset_name"}
    )
    assert again.dataset_name is None


def test_ics_to_ome_direct() -> None:
    ics = ICSMetadata.from_header(ICS_HEADER, dataset_name="cells.ics")
    ome = OMEMetadata()
    with pytest.warns(PartialFieldWarning, match="emission_wavelength"):
        assert translate(ics, ome)

    image = ome.root.images[0]
    pixels = image.pixels
    assert image.name == "cells.ics"
    assert image.acquisition_date is not None
    assert image.acquisition_date.year == 2015
    assert pixels.dimension_order == "XYZCT"
    assert (pixels.size_x, pixels.size_z, pixels.size_c, pixels.size_t) == (
        256,
        5,
        2,
        3,
    )
    assert pixels.physical_size_z == 0.5
    assert pixels.time_increment == 2.0
    assert pixels.bin_data[0].big_endian is True
    assert [c.name for c in pixels.channels] == ["GFP", "mCherry"]
    assert pixels.channels[0].emission_wavelength == 510
    assert pixels.channels[1].emission_wavelength is None

    instrument = ome.root.instruments[0]
    assert image.instrument_ref is not None
    assert image.instrument_ref.id == instrument.id
    assert instrument.microscope is not None
    assert instrument.microscope.model == "Axio"
    assert instrument.objectives[0].lens_na == 1.4
    assert instrument.detectors[0].model == "Orca"

    # one plane per (z, c, t); every plane of timepoint 2 is at 4 seconds
    assert len(pixels.planes) == 5 * 2 * 3
    assert {p.delta_t for p in pixels.planes if p.the_t == 2} == {4.0}


def test_ome_to_ics_direct(latest_xml: str) -> None:
    ome = create_ome_metadata(latest_xml)
    ics = ICSMetadata()
    assert translate(ome, ics)
    assert ics.layout_order == ["bits", "x", "y", "z", "ch", "t"]
    assert ics.layout_sizes == [16, 512, 512, 4, 2, 1]
    assert ics.channel_names == ["GFP", "DAPI"]
    assert ics.laser_model == "Argon"
    assert ics.detector_model == "PMT"
    assert ics.date == "2012-07-01T10:00:00"
    assert re.search(r"parameter\tscale\t1\.0\t0\.25\t0\.25\t1\.5", ics.to_header())


def test_ics_without_image_fails() -> None:
    ics = ICSMetadata(layout_order=["bits", "x"], layout_sizes=[8, 4])
    assert not translate(CanonicalMetadata(), ics)
    assert ics.layout_sizes == [8, 4]


RGB_HEADER = "\t\nlayout\torder\tbits\tch\tx\ty\nlayout\tsizes\t8\t3\t64\t64\n"


def test_interleaved_rgb_ics_to_ome_and_back() -> None:
    ics = ICSMetadata.from_header(RGB_HEADER, dataset_name="rgb.ics")
    canonical = CanonicalMetadata()
    assert translate(ics, canonical)
    image = canonical.images[0]
    assert image.rgb and image.interleaved
    assert image.dimension_order == "XYCZT"

    ome = OMEMetadata()
    assert translate(ics, ome)
    pixels = ome.root.images[0].pixels
    assert pixels.dimension_order == "XYCZT"
    assert (pixels.size_x, pixels.size_y, pixels.size_c) == (64, 64, 3)
    assert pixels.interleaved is True
    assert [c.samples_per_pixel for c in pixels.channels] == [3]

    again = ICSMetadata()
    assert translate(ome, again)
    assert again.layout_order[:4] == ["bits", "ch", "x", "y"]
    assert again.layout_sizes[:4] == [8, 3, 64, 64]


def test_interleaved_rgb_canonical_to_ome_through_ics() -> None:
    ics = ICSMetadata()
    assert translate(CanonicalMetadata(images=[_rgb_image()]), ics)
    assert ics.layout_order[:2] == ["bits", "ch"]
    ome = OMEMetadata()
    assert translate(ics, ome)
    assert ome.root.images[0].pixels.size_c == 3


def _rgb_image() -> ImageMetadata:
    return ImageMetadata(
        axes=[
            CalibratedAxis(type="X", length=16),
            CalibratedAxis(type="Y", length=16),
            CalibratedAxis(type="Channel", length=3),
        ],
        rgb=True,
        interleaved=True,
    )


def test_zero_size_ics_axis_fails() -> None:
    header = "\t\nlayout\torder\tbits\tx\ty\tz\nlayout\tsizes\t8\t64\t64\t0\n"
    ics = ICSMetadata.from_header(header)
    canonical = CanonicalMetadata()
    assert not translate(ics, canonical)
    assert canonical.images == []
    assert not translate(ics, OMEMetadata())


def test_zero_axis_length_is_rejected() -> None:
    image = ImageMetadata()
    with pytest.raises(ValueError):
        image.set_axis("Z", length=0)
    image.set_axis("Z")
    assert image.axis_length("Z") == 1
