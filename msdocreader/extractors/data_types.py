import io
import typing
from abc import abstractmethod
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple


@dataclass
class FileMetadataInterface:
    filename: str | None = None
    file_extension: str | None = None
    file_path: str | None = None
    folder_path: str | None = None

    def populate_from_path(self, path: str | Path | None) -> None:
        """Populate file metadata fields from a path."""
        if path is None:
            return
        p = Path(path)
        self.filename = p.name
        self.file_extension = p.suffix
        self.file_path = str(p.resolve()) if p.exists() else str(p)
        self.folder_path = (
            str(p.parent.resolve()) if p.parent.exists() else str(p.parent)
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ImageMetadata:
    # the index of the unit where this image occurs
    # will be zero for formats with no page/slide units e.g. word
    unit_index: int = 0
    # A sequential index which shows which nth image this is
    image_index: int = 0
    content_type: str = ""


class ImageInterface(Protocol):

    @abstractmethod
    def get_bytes(self) -> io.BytesIO:
        """Returns the bytes of the image as a BytesIO object."""
        pass

    @abstractmethod
    def get_content_type(self) -> str:
        """Returns the content type of the image as a string."""
        pass

    @abstractmethod
    def get_caption(self) -> str:
        """Returns the caption of the image as a string."""
        pass

    @abstractmethod
    def get_description(self) -> str:
        """Returns the descriptive text of the image as a string."""
        pass

    @abstractmethod
    def get_metadata(self) -> ImageMetadata:
        pass


class ExtractionInterface(Protocol):
    @abstractmethod
    def iterator(self) -> typing.Iterator[str]:
        """
        Returns an iterator over the extracted text i.e., the main text body of a file.
        Comment text is rendered inline after the paragraph it annotates.
        A legacy Word document has no per-page representation in the file, it returns
        a single unit which is the full text.
        """
        ...

    @abstractmethod
    def get_full_text(self) -> str:
        """Full text of the document as one single block of text"""
        ...

    @abstractmethod
    def get_metadata(self) -> FileMetadataInterface:
        """Returns the metadata of the extracted file"""
        ...


#######################
# binary structures
#######################


@dataclass(frozen=True)
class FibFields:
    """
    Decoded File Information Block.

    ``pairs`` maps the MS-DOC structure name without its fc/lcb prefix
    (e.g. ``"PlcfSed"``) to the ``(fc, lcb)`` pair. A name that is missing from
    ``pairs`` was not part of the version blocks present in the file.
    """

    w_ident: int = 0
    nfib: int = 0
    lid: int = 0
    flags: int = 0
    encrypted: bool = False
    which_table: str = "0Table"
    cb_mac: int = 0
    ccp_text: int = 0
    ccp_ftn: int = 0
    ccp_hdd: int = 0
    ccp_atn: int = 0
    ccp_edn: int = 0
    ccp_txbx: int = 0
    ccp_hdr_txbx: int = 0
    cb_rg_fc_lcb: int = 0
    csw_new: int = 0
    nfib_new: Optional[int] = None
    versions: List[str] = field(default_factory=list)
    size_recognized: bool = True
    end_offset: int = 0
    pairs: Dict[str, Tuple[int, int]] = field(default_factory=dict)

    def get(self, name: str) -> Optional[Tuple[int, int]]:
        return self.pairs.get(name)

    def has(self, name: str) -> bool:
        """True when the structure was read and has a non-zero length."""
        pair = self.pairs.get(name)
        return pair is not None and pair[1] > 0

    def fc(self, name: str) -> int:
        return self.pairs[name][0]

    def lcb(self, name: str) -> int:
        return self.pairs[name][1]


@dataclass(frozen=True)
class FontDelta:
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    strikethrough: Optional[bool] = None
    underline: Optional[str] = None
    color: Optional[str] = None
    size: Optional[float] = None
    superscript: Optional[bool] = None
    subscript: Optional[bool] = None
    name: Optional[str] = None
    special: Optional[bool] = None
    # unresolved picture reference into the Data stream
    picture_offset: Optional[int] = None
    has_data: Optional[bool] = None


@dataclass(frozen=True)
class ParagraphDelta:
    alignment: Optional[str] = None
    list_level: Optional[int] = None
    list_override: Optional[int] = None
    is_list: Optional[bool] = None
    indent_preserved: Optional[bool] = None


@dataclass(frozen=True)
class SectionDelta:
    page_width: Optional[int] = None
    page_height: Optional[int] = None
    margin_left: Optional[int] = None
    margin_right: Optional[int] = None
    margin_top: Optional[int] = None
    margin_bottom: Optional[int] = None


@dataclass(frozen=True)
class StyleDelta:
    """Sparse result of one PRL: only the groups a SPRM touched are set."""

    font: Optional[FontDelta] = None
    paragraph: Optional[ParagraphDelta] = None
    section: Optional[SectionDelta] = None

    @property
    def is_list(self) -> bool:
        return bool(self.paragraph and self.paragraph.is_list)


@dataclass(frozen=True)
class FontEntry:
    name: str = ""
    alt_name: str = ""


@dataclass(frozen=True)
class SectionDescriptor:
    fc_sepx: int = 0
    style: Optional[StyleDelta] = None
    length: int = 0


@dataclass(frozen=True)
class ParagraphDescriptor:
    """One PAPX FKP page: paragraph boundaries and their decoded styles."""

    page_number: int = 0
    fcs: List[int] = field(default_factory=list)
    rgbs: List[int] = field(default_factory=list)
    # one entry per paragraph, None means "inherit the default style"
    styles: List[Optional[StyleDelta]] = field(default_factory=list)


@dataclass
class DocImage(ImageInterface):
    image_number: int = 0
    content_type: str = "image/jpeg"
    format: str = "jpg"
    data: bytes = b""
    size_bytes: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    caption: str = ""
    description: str = ""

    def get_bytes(self) -> io.BytesIO:
        """Returns the bytes of the image as a BytesIO object."""
        return io.BytesIO(self.data)

    def get_content_type(self) -> str:
        """Returns the content type of the image as a string."""
        return self.content_type.strip()

    def get_caption(self) -> str:
        """Returns the caption of the image as a string."""
        return self.caption.strip()

    def get_description(self) -> str:
        """Returns the descriptive text of the image as a string."""
        return self.description.strip()

    def get_metadata(self) -> ImageMetadata:
        """Returns the metadata of the image."""
        return ImageMetadata(
            image_index=self.image_number,
            content_type=self.content_type,
            unit_index=0,  # DOC has no page/slide units
        )


@dataclass(frozen=True)
class CharacterRun:
    # running byte position across all runs
    start: int = 0
    fc_start: int = 0
    length: int = 0
    style: Optional[StyleDelta] = None
    image: Optional[DocImage] = None


@dataclass(frozen=True)
class ListFormatOverride:
    lsid: int = 0
    clfolvl: int = 0
    ibst_flt_auto_num: int = 0
    grfhic: int = 0


@dataclass(frozen=True)
class TextPiece:
    start_cp: int = 0
    end_cp: int = 0
    fc: int = 0
    compressed: bool = False
    prm: int = 0
    byte_length: int = 0


MONTH_NAMES = [
    "Undefined",
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


@dataclass(frozen=True)
class CommentRecord:
    author: str = ""
    initials: str = ""
    author_index: int = 0
    bookmark_id: int = 0
    minute: Optional[int] = None
    hour: Optional[int] = None
    day: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None
    weekday: Optional[int] = None
    depth: Optional[int] = None
    parent: Optional[int] = None
    start_cp: int = 0
    length: int = 0
    ref_cp: int = 0
    text: str = ""

    @property
    def month_name(self) -> str:
        if self.month is None or self.month >= len(MONTH_NAMES):
            return MONTH_NAMES[0]
        return MONTH_NAMES[self.month]

    @property
    def weekday_name(self) -> str:
        if self.weekday is None or self.weekday >= len(WEEKDAY_NAMES):
            return ""
        return WEEKDAY_NAMES[self.weekday]

    @property
    def has_timestamp(self) -> bool:
        return self.year is not None


##############
# legacy doc
##############


@dataclass
class DocMetadata(FileMetadataInterface):
    title: str = ""
    subject: str = ""
    author: str = ""
    company: str = ""
    manager: str = ""
    app_name: str = ""
    codepage: Optional[int] = None
    # Unix seconds
    created: Optional[int] = None
    modified: Optional[int] = None
    create_time: Optional[str] = None
    last_saved_time: Optional[str] = None
    num_pages: int = 0
    num_words: int = 0
    num_chars: int = 0
    main_stream_size: int = 0
    comment_size: int = 0
    word_version: str = ""


@dataclass
class DocContent(ExtractionInterface):
    main_text: str = ""
    text_segments: List[str] = field(default_factory=list)
    comment_text: str = ""
    rendered_text: str = ""
    full_text: str = ""
    sections: List[SectionDescriptor] = field(default_factory=list)
    paragraphs: List[ParagraphDescriptor] = field(default_factory=list)
    character_runs: List[CharacterRun] = field(default_factory=list)
    fonts: List[FontEntry] = field(default_factory=list)
    list_overrides: List[ListFormatOverride] = field(default_factory=list)
    pieces: List[TextPiece] = field(default_factory=list)
    comments: List[CommentRecord] = field(default_factory=list)
    images: List[DocImage] = field(default_factory=list)
    fib: Optional[FibFields] = None
    # optional structures that could not be decoded
    warnings: List[str] = field(default_factory=list)
    metadata: DocMetadata = field(default_factory=DocMetadata)

    def iterator(self) -> typing.Iterator[str]:
        for text in [self.full_text]:
            yield text

    def get_full_text(self) -> str:
        """The full text of the document including a document title from the metadata if any are provided"""
        return (self.metadata.title + "\n" + "\n".join(self.iterator())).strip()

    def get_metadata(self) -> FileMetadataInterface:
        return self.metadata

    def get_images(self) -> List[DocImage]:
        return self.images

    def to_json(self) -> dict:
        from msdocreader.extractors.serialization import serialize_extraction

        return serialize_extraction(self)
