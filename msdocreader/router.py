import io
import logging
import mimetypes
from typing import Any, Callable, Generator

from msdocreader.exceptions import ExtractionFileFormatNotSupportedError
from msdocreader.extractors.data_types import DocContent

logger = logging.getLogger(__name__)

mime_type_mapping = {
    "application/msword": "doc",
}

# Word templates share the binary format
extension_mapping = {
    ".doc": "doc",
    ".dot": "doc",
}


def _file_type(path: str) -> str | None:
    path = path.lower()
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type is not None and mime_type in mime_type_mapping:
        return mime_type_mapping[mime_type]
    for ending, file_type in extension_mapping.items():
        if path.endswith(ending):
            return file_type
    logger.debug(f"File [{path}] with mime type [{mime_type}] is not supported")
    return None


def is_supported_file(path: str) -> bool:
    """Checks if the path is a supported file"""
    return _file_type(path) is not None


def get_extractor(
    path: str,
) -> Callable[[io.BytesIO, str | None], Generator[DocContent, Any, None]]:
    """Analysis the path of a file and returns a suited extractor.
       The file MUST not exist (yet). The path or filename alone suffices to return an
       extractor.

    :returns a function of an extractor. All extractors take a file-like object as parameter
    :raises ExtractionFileFormatNotSupportedError: File is not covered by any extractor
    """
    file_type = _file_type(path)
    if file_type == "doc":
        from msdocreader.extractors.ms_legacy.doc_extractor import read_doc

        logger.debug(f"Detected file type: {file_type} for file: {path}")
        return read_doc
    raise ExtractionFileFormatNotSupportedError(path)
