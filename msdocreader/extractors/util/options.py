from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DocReaderOptions:
    """
    Switches for the .doc reader.

    Optional enrichment (images, comments, list markers) can be turned off
    for plain-text workloads. The strict flags turn recoverable structural
    oddities into errors instead of warnings.
    """

    extract_images: bool = True
    extract_comments: bool = True
    mark_list_paragraphs: bool = True
    strict_fib: bool = False
    strict_plc: bool = False
    max_stream_bytes: int = 512 * 1024 * 1024  # 512 MiB


DEFAULT_DOC_READER_OPTIONS = DocReaderOptions()
