"""Document content tree schemas.

The editor stores documents as a JSON node tree (``{"type": "doc",
"content": [...]}``). Nodes are a tagged union keyed on ``type`` and are
validated at the API boundary, so nothing unrecognized reaches the
database or the HTML renderer.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Node(BaseModel):
    # Editors attach extra bookkeeping keys (ids, uids); keep them.
    model_config = ConfigDict(extra="allow")


class Mark(_Node):
    """Inline formatting applied to a text node (bold, italic, link, ...)."""
    type: str
    attrs: Optional[Dict[str, Any]] = None


class TextNode(_Node):
    type: Literal["text"]
    text: str
    marks: Optional[List[Mark]] = None


class HardBreakNode(_Node):
    type: Literal["hardBreak"]


class HorizontalRuleNode(_Node):
    type: Literal["horizontalRule"]


class ImageAttrs(_Node):
    src: str
    alt: Optional[str] = None
    title: Optional[str] = None


class ImageNode(_Node):
    type: Literal["image"]
    attrs: ImageAttrs


class ParagraphNode(_Node):
    type: Literal["paragraph"]
    attrs: Optional[Dict[str, Any]] = None
    content: Optional[List["InlineNode"]] = None


class HeadingAttrs(_Node):
    level: int = Field(default=1, ge=1, le=6)


class HeadingNode(_Node):
    type: Literal["heading"]
    attrs: HeadingAttrs = Field(default_factory=HeadingAttrs)
    content: Optional[List["InlineNode"]] = None


class CodeBlockNode(_Node):
    type: Literal["codeBlock"]
    attrs: Optional[Dict[str, Any]] = None
    content: Optional[List[TextNode]] = None


class BlockquoteNode(_Node):
    type: Literal["blockquote"]
    content: Optional[List["BlockNode"]] = None


class ListItemNode(_Node):
    type: Literal["listItem"]
    content: Optional[List["BlockNode"]] = None


class BulletListNode(_Node):
    type: Literal["bulletList"]
    content: Optional[List[ListItemNode]] = None


class OrderedListAttrs(_Node):
    start: int = 1


class OrderedListNode(_Node):
    type: Literal["orderedList"]
    attrs: OrderedListAttrs = Field(default_factory=OrderedListAttrs)
    content: Optional[List[ListItemNode]] = None


InlineNode = Annotated[
    Union[TextNode, HardBreakNode, ImageNode],
    Field(discriminator="type"),
]

BlockNode = Annotated[
    Union[
        ParagraphNode,
        HeadingNode,
        CodeBlockNode,
        BlockquoteNode,
        BulletListNode,
        OrderedListNode,
        HorizontalRuleNode,
        ImageNode,
    ],
    Field(discriminator="type"),
]


class DocNode(_Node):
    """Root of a document content tree."""
    type: Literal["doc"] = "doc"
    content: List[BlockNode] = Field(default_factory=list)


for _model in (
    ParagraphNode, HeadingNode, BlockquoteNode, ListItemNode,
    BulletListNode, OrderedListNode, DocNode,
):
    _model.model_rebuild()


def dump_content(doc: DocNode) -> dict:
    """Serialize a validated tree back to plain JSON for storage."""
    return doc.model_dump(mode="json", exclude_none=True)
