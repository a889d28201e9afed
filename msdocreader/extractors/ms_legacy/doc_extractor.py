"""
DOC Document Reader
===================

Reads legacy Microsoft Word .doc files (Word 97-2003 binary format, stored in
an OLE2/CFBF container) into a structured ``DocContent`` record.

File Format Background
----------------------
The container holds several named streams:

    - WordDocument: the FIB (File Information Block) at offset 0, the text
      pieces and the FKP pages with paragraph and character formatting
    - 0Table / 1Table: piece table, PLCs, font table, comment tables (the
      FIB flag fWhichTblStm selects which of the two is live)
    - Data: pictures and other binary payloads referenced from runs
    - \\x05SummaryInformation / \\x05DocumentSummaryInformation: property
      sets with title, author, dates and counts

Decoding order:
    1. FIB (``doc.fib``) locates every other structure
    2. Font table, sections, PAPX and CHPX pages (``doc.plc``), with every
       PRL decoded by ``doc.sprm`` and inline pictures by ``doc.picture``
    3. Comment tables (``doc.comments``)
    4. Piece table and text assembly (``doc.text``)
    5. Property sets (``doc.property_set``)

Failures in the FIB, the PLCs or the piece table abort the read. Failures in
optional parts (fonts, lists, comments, metadata, pictures) are logged, noted
in ``DocContent.warnings`` and the part is left empty. A PLC whose size holds
a partial record is read up to its last whole record and noted there too.

Dependencies
------------
olefile: https://github.com/decalage2/olefile
    pip install olefile

    Provides:
    - OLE compound document parsing
    - Stream enumeration and reading

Known Limitations
-----------------
- Encrypted/password-protected files raise ExtractionFileEncryptedError
- Word 6/95 and older files raise ExtractionFileFormatNotSupportedError
- Tables, footnotes, endnotes and field codes are kept as plain text only
- Only inline JPEG pictures are extracted

Usage
-----
    >>> import io
    >>> from msdocreader.extractors.ms_legacy.doc_extractor import read_doc
    >>>
    >>> with open("document.doc", "rb") as f:
    ...     for doc in read_doc(io.BytesIO(f.read()), path="document.doc"):
    ...         print(f"Title: {doc.metadata.title}")
    ...         print(f"Main text: {doc.main_text[:200]}...")
    ...         print(f"Comments: {len(doc.comments)}")
"""

import io
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generator, Optional

import olefile

from msdocreader.exceptions import (
    CorruptCommentTableError,
    ExtractionError,
    ExtractionFileEncryptedError,
    ExtractionFileFormatNotSupportedError,
    LegacyMicrosoftParsingError,
)
from msdocreader.extractors.data_types import DocContent, DocMetadata, FibFields
from msdocreader.extractors.ms_legacy.doc.comments import read_comments
from msdocreader.extractors.ms_legacy.doc.fib import (
    FIB_FLAG_WHICH_TABLE,
    FIB_FLAGS_OFFSET,
    FIB_MAGIC_WORD95,
    FIB_MAGIC_WORD97,
    decode_fib,
)
from msdocreader.extractors.ms_legacy.doc.plc import (
    read_character_runs,
    read_font_table,
    read_list_overrides,
    read_paragraphs,
    read_sections,
)
from msdocreader.extractors.ms_legacy.doc.property_set import (
    read_document_summary_information,
    read_summary_information,
)
from msdocreader.extractors.ms_legacy.doc.text import (
    assemble_text,
    clean_text,
    read_piece_table,
    render_text,
)
from msdocreader.extractors.ms_legacy.doc.version import (
    WordVersion,
    detect_word_version,
    version_from_fib,
)
from msdocreader.extractors.util.byte_reader import read_u16
from msdocreader.extractors.util.conversions import unix_to_iso
from msdocreader.extractors.util.options import (
    DEFAULT_DOC_READER_OPTIONS,
    DocReaderOptions,
)

logger = logging.getLogger(__name__)

WORD_DOCUMENT_STREAM = "WordDocument"
TABLE_STREAM_0 = "0Table"
TABLE_STREAM_1 = "1Table"
DATA_STREAM = "Data"
SUMMARY_INFORMATION_STREAM = "\x05SummaryInformation"
DOCUMENT_SUMMARY_INFORMATION_STREAM = "\x05DocumentSummaryInformation"


@dataclass(frozen=True)
class DocStreams:
    """The raw streams of a .doc container, missing optional ones as b""."""

    word_document: bytes
    table: bytes
    data: bytes = b""
    summary_information: bytes = b""
    document_summary_information: bytes = b""
    table_name: str = TABLE_STREAM_1


def read_doc(
    file_like: io.BytesIO,
    path: str | None = None,
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
) -> Generator[DocContent, Any, None]:
    """
    Extract all relevant content from a legacy Word .doc file.

    This function uses a generator pattern for API consistency with other
    readers, even though DOC files contain exactly one document.

    Args:
        file_like: BytesIO object containing the complete DOC file data.
            The stream position is reset to the beginning before reading.
        path: Optional filesystem path to the source file. If provided,
            populates file metadata (filename, extension, folder) in the
            returned DocContent.metadata.
        options: Reader options, see DocReaderOptions.

    Yields:
        DocContent: Single DocContent object containing:
            - main_text / text_segments: body text, split at comment marks
            - comments: CommentRecord list with author, date and text
            - sections, paragraphs, character_runs: decoded formatting
            - images: inline JPEG pictures
            - metadata: DocMetadata with title, author, dates, counts

    Raises:
        ExtractionFileFormatNotSupportedError: Not a Word 97+ OLE file.
        ExtractionFileEncryptedError: The document is encrypted.
        LegacyMicrosoftParsingError: For any structural failure, including
            reads past the end of a stream.
    """
    try:
        streams = load_streams(file_like, options=options)
        document = parse_doc_streams(streams, options=options)
        document.metadata.populate_from_path(path)

        logger.info(
            "Extracted DOC: %d characters, %d paragraphs, %d comments, %d images",
            len(document.main_text),
            sum(len(page.styles) for page in document.paragraphs),
            len(document.comments),
            len(document.images),
        )

        yield document
    except ExtractionError:
        raise
    except Exception as exc:
        raise LegacyMicrosoftParsingError(
            "Failed to extract DOC file", cause=exc
        ) from exc


class _DocReader:
    """
    Context manager around the OLE container.

    Opens the container on enter, closes it on exit, and reads streams with
    the size limit of the reader options applied.
    """

    def __init__(self, file_like: io.BytesIO, options: DocReaderOptions):
        self.file_like = file_like
        self.options = options
        self.ole = None

    def __enter__(self):
        self.ole = olefile.OleFileIO(self.file_like)
        return self

    def __exit__(self, *args):
        if self.ole:
            self.ole.close()

    def _get_stream(self, name: str) -> bytes:
        """
        Read a named stream from the OLE container.

        Returns:
            Raw bytes of the stream, or empty bytes if the stream doesn't
            exist or is a storage.

        Raises:
            LegacyMicrosoftParsingError: The stream exceeds max_stream_bytes.
        """
        if not self.ole.exists(name) or self.ole.get_type(name) != olefile.STGTY_STREAM:
            return b""
        size = self.ole.get_size(name)
        if size > self.options.max_stream_bytes:
            raise LegacyMicrosoftParsingError(
                f"Stream {name} is {size} bytes, limit is "
                f"{self.options.max_stream_bytes}"
            )
        return self.ole.openstream(name).read()

    def read_streams(self) -> DocStreams:
        word_document = self._get_stream(WORD_DOCUMENT_STREAM)
        if not word_document:
            raise LegacyMicrosoftParsingError("No WordDocument stream found")

        flags = read_u16(word_document, FIB_FLAGS_OFFSET)
        table_name = TABLE_STREAM_1 if flags & FIB_FLAG_WHICH_TABLE else TABLE_STREAM_0
        table = self._get_stream(table_name)
        if not table:
            raise LegacyMicrosoftParsingError(f"No {table_name} stream found")

        return DocStreams(
            word_document=word_document,
            table=table,
            data=self._get_stream(DATA_STREAM),
            summary_information=self._get_stream(SUMMARY_INFORMATION_STREAM),
            document_summary_information=self._get_stream(
                DOCUMENT_SUMMARY_INFORMATION_STREAM
            ),
            table_name=table_name,
        )


def load_streams(
    file_like: io.BytesIO,
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
) -> DocStreams:
    """
    Read the streams of a .doc container into memory.

    Raises:
        ExtractionFileFormatNotSupportedError: The input is not an OLE file.
            The exception carries the producer guessed from the signature.
        LegacyMicrosoftParsingError: WordDocument or the table stream is
            missing, or a stream is larger than ``options.max_stream_bytes``.
    """
    file_like.seek(0)
    if not olefile.isOleFile(file_like):
        file_like.seek(0)
        guess = detect_word_version(file_like.read())
        file_like.seek(0)
        raise ExtractionFileFormatNotSupportedError(
            message=f"Not an OLE compound document (looks like {guess.name})",
            version=guess.name,
        )

    file_like.seek(0)
    with _DocReader(file_like, options) as reader:
        return reader.read_streams()


def _optional(
    what: str,
    warnings: list[str],
    func: Callable[..., Any],
    *args: Any,
    default: Any,
    **kwargs: Any,
) -> Any:
    """Run a decoder for an optional part, falling back to ``default``."""
    try:
        return func(*args, **kwargs)
    except LegacyMicrosoftParsingError as exc:
        logger.warning("Skipping %s: %s", what, exc.message)
        warnings.append(f"{what}: {exc.message}")
        return default


def _read_metadata(
    streams: DocStreams,
    fib: FibFields,
    version: WordVersion,
    warnings: list[str],
) -> DocMetadata:
    metadata = DocMetadata(
        main_stream_size=fib.ccp_text,
        comment_size=fib.ccp_atn,
        word_version=version.name,
    )
    properties: dict = {}
    if streams.summary_information:
        properties.update(
            _optional(
                "SummaryInformation",
                warnings,
                read_summary_information,
                streams.summary_information,
                default={},
            )
        )
    if streams.document_summary_information:
        properties.update(
            _optional(
                "DocumentSummaryInformation",
                warnings,
                read_document_summary_information,
                streams.document_summary_information,
                default={},
            )
        )
    for name, value in properties.items():
        setattr(metadata, name, value)
    metadata.create_time = unix_to_iso(metadata.created)
    metadata.last_saved_time = unix_to_iso(metadata.modified)
    return metadata


def parse_doc_streams(
    streams: DocStreams,
    *,
    options: DocReaderOptions = DEFAULT_DOC_READER_OPTIONS,
    version: Optional[WordVersion] = None,
) -> DocContent:
    """
    Decode already loaded streams into a DocContent.

    Args:
        streams: The container streams.
        options: Reader options, see DocReaderOptions.
        version: Word version, detected from the FIB when omitted.

    Returns:
        DocContent with text, formatting, comments, images and metadata.

    Raises:
        ExtractionFileFormatNotSupportedError: The FIB belongs to a Word
            version before Word 97.
        ExtractionFileEncryptedError: The FIB encryption flag is set.
        LegacyMicrosoftParsingError: The FIB, a PLC or the piece table is
            corrupt.
    """
    word_document = streams.word_document
    table = streams.table

    if version is None:
        version = version_from_fib(word_document)
    if not version.supported:
        raise ExtractionFileFormatNotSupportedError(
            message=f"Unsupported Word version: {version.name}",
            version=version.name,
        )

    fib = decode_fib(word_document, options=options)
    if fib.w_ident not in (FIB_MAGIC_WORD97, FIB_MAGIC_WORD95):
        raise LegacyMicrosoftParsingError(
            f"Invalid .doc magic number: {hex(fib.w_ident)}"
        )
    if fib.encrypted:
        raise ExtractionFileEncryptedError("DOC file is encrypted or password-protected")

    warnings: list[str] = []
    fonts = _optional("font table", warnings, read_font_table, table, fib, default=[])

    sections = read_sections(
        table, word_document, fib, fonts, options=options, warnings=warnings
    )
    paragraphs = read_paragraphs(
        table, word_document, fib, fonts, options=options, warnings=warnings
    )
    character_runs = read_character_runs(
        table,
        word_document,
        streams.data,
        fib,
        fonts,
        options=options,
        warnings=warnings,
    )
    list_overrides = _optional(
        "list overrides", warnings, read_list_overrides, table, fib, default=[]
    )

    comments = []
    if options.extract_comments:
        try:
            comments = read_comments(
                table, fib, strict=options.strict_plc, warnings=warnings
            )
        except CorruptCommentTableError as exc:
            logger.warning("Ignoring comments: %s", exc.message)
            warnings.append(f"comments: {exc.message}")
        except LegacyMicrosoftParsingError as exc:
            logger.warning("Could not read comments: %s", exc.message)
            warnings.append(f"comments: {exc.message}")

    clx = read_piece_table(
        table,
        fib,
        word_document=word_document,
        fonts=fonts,
        strict=options.strict_plc,
        warnings=warnings,
    )
    assembled = assemble_text(
        word_document,
        fib,
        clx,
        paragraphs,
        comments,
        mark_list_paragraphs=options.mark_list_paragraphs,
    )
    rendered_text = render_text(assembled.segments, assembled.comments)

    return DocContent(
        main_text=assembled.main_text,
        text_segments=assembled.segments,
        comment_text=assembled.comment_text,
        rendered_text=rendered_text,
        full_text=clean_text(rendered_text),
        sections=sections,
        paragraphs=paragraphs,
        character_runs=character_runs,
        fonts=fonts,
        list_overrides=list_overrides,
        pieces=clx.pieces,
        comments=assembled.comments,
        images=[run.image for run in character_runs if run.image is not None],
        fib=fib,
        warnings=warnings,
        metadata=_read_metadata(streams, fib, version, warnings),
    )
