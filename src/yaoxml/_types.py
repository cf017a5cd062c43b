from typing import Literal, TypeAlias, get_args

PixelType: TypeAlias = Literal[
    "int8",
    "int16",
    "int32",
    "uint8",
    "uint16",
    "uint32",
    "float",
    "double",
    "bit",
]

# the only dimension orders the OME schema accepts: X and Y always come first
DimensionOrder: TypeAlias = Literal[
    "XYZCT",
    "XYZTC",
    "XYCTZ",
    "XYCZT",
    "XYTCZ",
    "XYTZC",
]

PIXEL_TYPES: tuple[str, ...] = get_args(PixelType)
DIMENSION_ORDERS: tuple[str, ...] = get_args(DimensionOrder)

BITS_PER_PIXEL: dict[str, int] = {
    "int8": 8,
    "uint8": 8,
    "int16": 16,
    "uint16": 16,
    "int32": 32,
    "uint32": 32,
    "float": 32,
    "double": 64,
    "bit": 1,
}


def pixel_type_from_bits(
    bits: int, signed: bool = False, floating: bool = False
) -> str:
    """Return the pixel type string for a sample size in bits."""
    if floating:
        if bits == 32:
            return "float"
        if bits == 64:
            return "double"
        raise ValueError(f"No floating point pixel type with {bits} bits")
    if bits == 1:
        return "bit"
    if bits not in (8, 16, 32):
        raise ValueError(f"No integer pixel type with {bits} bits")
    return f"{'' if signed else 'u'}int{bits}"
