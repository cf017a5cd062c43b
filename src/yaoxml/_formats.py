from __future__ import annotations

import os

__all__ = ["FORMAT_SUFFIXES", "default_image_name", "format_name"]

# longest suffixes first: ".ome.xml" must win over ".xml"
FORMAT_SUFFIXES: dict[str, str] = {
    ".ome.tiff": "OME-TIFF",
    ".ome.tif": "OME-TIFF",
    ".ome.xml": "OME-XML",
    ".ome": "OME-XML",
    ".fake": "Fake",
    ".ics": "ICS",
    ".ids": "ICS",
    ".xml": "XML",
}


def format_name(dataset_name: str | None) -> str | None:
    """Name of the format a dataset belongs to, judged by its suffix."""
    if not dataset_name:
        return None
    lower = dataset_name.lower()
    for suffix in sorted(FORMAT_SUFFIXES, key=len, reverse=True):
        if lower.endswith(suffix):
            return FORMAT_SUFFIXES[suffix]
    return None


def default_image_name(dataset_name: str | None) -> str | None:
    """Name given to the images of a dataset that do not name themselves.

    This is the base name of the dataset.  Synthetic ("Fake") dataset ids carry
    their parameters after the first '&', which are not part of the name.
    """
    if not dataset_name:
        return None
    name = os.path.basename(dataset_name.rstrip("/\\")) or dataset_name
    if format_name(name) == "Fake":
        name = name.split("&", 1)[0]
        if name.lower().endswith(".fake"):
            name = name[: -len(".fake")]
    return name or None
