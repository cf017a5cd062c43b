from __future__ import annotations

import os
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, TypeVar, cast

if TYPE_CHECKING:
    import io

    import fsspec
else:
    try:
        import fsspec
    except ImportError:
        fsspec = None

__all__ = ["read_text", "read_text_from_uri"]

F = TypeVar("F", bound=Callable[..., object])


def _require_fsspec(func: F) -> F:
    """Decorator to ensure fsspec is available for functions that need it."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if fsspec is None:  # pragma: no cover
            msg = (
                f"fsspec is required for {func.__name__!r}.\n"
                "Install with: 'pip install yaoxml[io]' or 'pip install fsspec'"
            )
            raise ImportError(msg)
        return func(*args, **kwargs)

    return cast("F", wrapper)


@_require_fsspec
def read_text_from_uri(uri: str | os.PathLike) -> str:
    """Read a metadata document from a URI (local or remote) using fsspec.

    Parameters
    ----------
    uri : str or os.PathLike
        A local path or a remote URL (e.g. s3://bucket/key/image.ome.xml).

    Returns
    -------
    str
        The document text.
    """
    uri_str = os.fspath(uri)
    try:
        with fsspec.open(uri_str, "r", encoding="utf-8") as f:
            return cast("io.TextIOBase", f).read()
    except FileNotFoundError as e:
        msg = f"Could not read document from URI: {uri_str}:\n{e}"
        raise FileNotFoundError(msg) from e


def read_text(path: str | os.PathLike) -> str:
    """Read a document from a local path, or from a URL through fsspec."""
    path_str = os.fspath(path)
    if "://" in path_str:
        return read_text_from_uri(path_str)
    return Path(path_str).read_text(encoding="utf-8")
