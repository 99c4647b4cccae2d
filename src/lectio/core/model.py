from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Union

DocumentId = str
NodeId = str
NoteId = str

SourceType = Literal["catechism", "scripture", "patristic", "treatise", "generic"]
DocumentCategory = Literal["scripture", "catechism", "patristic", "commentary", "custom"]
StructuralLevel = Literal[
    "book",
    "part",
    "section",
    "article",
    "chapter",
    "roman",
    "subsection",
    "brief",
    "preface",
    "heading",
]
Alignment = Literal["center", "left"]
ReviewNodeType = Literal["structural", "citable", "ignored"]
NumberExtractor = Literal["paragraph", "section", "chapter:verse", "custom"]
FolderKind = Literal["document", "note"]

SOURCE_TYPES: tuple[str, ...] = ("catechism", "scripture", "patristic", "treatise", "generic")
CATEGORIES: tuple[str, ...] = ("scripture", "catechism", "patristic", "commentary", "custom")
STRUCTURAL_LEVELS: tuple[str, ...] = (
    "book",
    "part",
    "section",
    "article",
    "chapter",
    "roman",
    "subsection",
    "brief",
    "preface",
    "heading",
)

_CENTERED_LEVELS = frozenset({"book", "part", "section", "article", "chapter"})


def alignment_for(level: str) -> Alignment:
    """Headings of book/part/section/article/chapter rank are centered."""
    return "center" if level in _CENTERED_LEVELS else "left"


# Largest value an SQLite INTEGER column holds
MAX_PARAGRAPH_NUMBER = 2**63 - 1


def paragraph_number(text: str) -> int | None:
    """
    Integer value of a plain decimal paragraph number, or None.

    Examples:
        >>> paragraph_number("27")
        27
        >>> paragraph_number("1\u00b2") is None
        True
        >>> paragraph_number("99999999999999999999") is None
        True
    """
    if not text.isdecimal() or not text.isascii():
        return None
    value = int(text)
    return value if value <= MAX_PARAGRAPH_NUMBER else None


# ---------------------------------------------------------------------------
# Canonical document nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Footnote:
    id: str
    marker: str  # "1", "*", "†"
    content: str


@dataclass(frozen=True)
class StructuralNode:
    id: NodeId
    level: StructuralLevel
    content: str
    alignment: Alignment
    node_type: Literal["structural"] = field(default="structural", init=False)


@dataclass(frozen=True)
class CitableNode:
    id: NodeId
    number: int
    display_number: str
    content: str
    footnotes: tuple[Footnote, ...] = ()
    node_type: Literal["citable"] = field(default="citable", init=False)


DocumentNode = Union[StructuralNode, CitableNode]


def is_structural(node: object) -> bool:
    return isinstance(node, StructuralNode)


def is_citable(node: object) -> bool:
    return isinstance(node, CitableNode)


@dataclass
class Document:
    id: DocumentId
    title: str
    source_type: SourceType
    category: DocumentCategory = "custom"
    author: str | None = None
    owner_id: str | None = None
    created_at: float = 0.0
    updated_at: float = 0.0
    total_citable_nodes: int = 0


# ---------------------------------------------------------------------------
# Parser output (no identifiers yet)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedStructural:
    level: StructuralLevel
    alignment: Alignment
    content: str
    node_type: Literal["structural"] = field(default="structural", init=False)


@dataclass(frozen=True)
class ParsedCitable:
    number: int
    display_number: str
    content: str
    node_type: Literal["citable"] = field(default="citable", init=False)


ParsedNode = Union[ParsedStructural, ParsedCitable]


@dataclass(frozen=True)
class ParseStats:
    total: int
    structural: int
    citable: int


@dataclass
class ParseResult:
    nodes: list[ParsedNode]
    stats: ParseStats

    @property
    def total_citable_nodes(self) -> int:
        return self.stats.citable


# ---------------------------------------------------------------------------
# Review phase
# ---------------------------------------------------------------------------


@dataclass
class ReviewNode:
    temp_id: str
    node_type: ReviewNodeType
    content: str
    original_index: int
    level: StructuralLevel | None = None
    alignment: Alignment | None = None
    display_number: str | None = None
    modified: bool = False


@dataclass
class ReviewState:
    nodes: list[ReviewNode] = field(default_factory=list)
    selected_node_id: str | None = None
    is_dirty: bool = False


@dataclass(frozen=True)
class ReviewStats:
    total: int
    structural: int
    citable: int
    ignored: int


@dataclass(frozen=True)
class StructuralClassification:
    level: StructuralLevel
    alignment: Alignment


@dataclass(frozen=True)
class CitableClassification:
    display_number: str


@dataclass(frozen=True)
class IgnoredClassification:
    pass


Classification = Union[StructuralClassification, CitableClassification, IgnoredClassification]


# ---------------------------------------------------------------------------
# Citations
# ---------------------------------------------------------------------------


@dataclass
class CitationAlias:
    id: str
    document_id: DocumentId
    prefix: str  # "CCC", "ST", "Conf."
    pattern: str  # regex matched case-insensitively
    number_extractor: NumberExtractor
    display_format: str  # "CCC §{number}", "{prefix} {number}"
    priority: int = 0
    custom_group_index: int | None = None
    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass
class CitationAnchor:
    id: str
    document_id: DocumentId
    node_id: NodeId
    note_id: NoteId
    display_label: str  # "CCC §27"
    order: float = 0.0
    created_at: float = 0.0


# ---------------------------------------------------------------------------
# Ordered-sibling entities
# ---------------------------------------------------------------------------


@dataclass
class Folder:
    id: str
    kind: FolderKind
    name: str
    parent_id: str | None = None
    order: float = 0.0
    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass
class Note:
    id: NoteId
    title: str
    content: str = ""  # HTML fragment
    parent_id: str | None = None
    order: float = 0.0
    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass
class DocumentPlacement:
    document_id: DocumentId
    folder_id: str | None = None
    order: float = 0.0
    created_at: float = 0.0
