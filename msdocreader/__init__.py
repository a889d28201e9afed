"""
msdoc-reader: Content extraction for legacy Microsoft Word documents.

A Python library for reading Word 97-2003 binary (.doc) files: body text,
comments with author and date, paragraph, character and section formatting,
inline JPEG pictures and the summary metadata of the OLE container.
"""

import io
from pathlib import Path
from typing import Any, Generator

from msdocreader.extractors.data_types import DocContent, ExtractionInterface
from msdocreader.extractors.util.options import (
    DEFAULT_DOC_READER_OPTIONS,
    DocReaderOptions,
)
from msdocreader.router import get_extractor, is_supported_file

__version__ = "0.1.0"


def read_doc(
    file_like: io.BytesIO,
    path: str | None = None,
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
) -> Generator[DocContent, Any, None]:
    """Extract content from a DOC file."""
    from msdocreader.extractors.ms_legacy.doc_extractor import read_doc as _read_doc

    return _read_doc(file_like, path, options=options)


def read_file(
    path: str | Path,
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
) -> Generator[ExtractionInterface, Any, None]:
    """
    Read and extract content from a file.

    Args:
        path: Path to a .doc or .dot file.
        options: Reader options, see DocReaderOptions.

    Yields:
        A single DocContent.

    Raises:
        ExtractionFileFormatNotSupportedError: If the file type is not supported.
        FileNotFoundError: If the file does not exist.

    Example:
        >>> import msdocreader
        >>> for result in msdocreader.read_file("document.doc"):
        ...     print(result.get_full_text())
    """
    path = Path(path)
    extractor = get_extractor(str(path))
    with open(path, "rb") as f:
        yield from extractor(io.BytesIO(f.read()), str(path), options=options)


def parse_doc_streams(streams, *, options=DEFAULT_DOC_READER_OPTIONS) -> DocContent:
    """Decode already loaded container streams."""
    from msdocreader.extractors.ms_legacy.doc_extractor import (
        parse_doc_streams as _parse_doc_streams,
    )

    return _parse_doc_streams(streams, options=options)


def deserialize_extraction(data: dict) -> Any:
    """Rebuild a DocContent from ``DocContent.to_json()`` output."""
    from msdocreader.extractors.serialization import (
        deserialize_extraction as _deserialize_extraction,
    )

    return _deserialize_extraction(data)


__all__ = [
    # Version
    "__version__",
    # Main functions
    "read_file",
    "is_supported_file",
    "get_extractor",
    # Format-specific entry points
    "read_doc",
    "parse_doc_streams",
    "deserialize_extraction",
    # Configuration
    "DocReaderOptions",
    "DEFAULT_DOC_READER_OPTIONS",
]
