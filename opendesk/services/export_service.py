"""Export pipeline: document content to HTML, HTML to Markdown/DOCX/PDF.

The conversions themselves belong to third-party tools:

- Markdown: markdownify
- DOCX: htmldocx on top of python-docx
- PDF: the DOCX is converted by LibreOffice (``soffice --headless``),
  run as a subprocess in a private temporary directory

Converter failures surface as ConversionError with the tool's message in
``details``. Nothing is retried.
"""

import html
import io
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict

import bleach
from htmldocx import HtmlToDocx
from markdownify import markdownify
from pydantic import ValidationError as PydanticValidationError

from ..core.config import settings
from ..exceptions import ConversionError
from ..schemas.content import DocNode

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "md": "text/markdown; charset=utf-8",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pdf": "application/pdf",
}

# Tags the editor can produce. Anything else is stripped from client HTML.
ALLOWED_TAGS = [
    "p", "br", "hr", "strong", "b", "em", "i", "u", "s", "code", "pre",
    "blockquote", "h1", "h2", "h3", "h4", "h5", "h6",
    "a", "span", "img", "ul", "ol", "li",
    "table", "thead", "tbody", "tr", "td", "th",
]

ALLOWED_ATTRIBUTES = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title"],
    "ol": ["start"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan"],
    "code": ["class"],
}

_MARK_TAGS = {
    "bold": "strong",
    "italic": "em",
    "underline": "u",
    "strike": "s",
    "code": "code",
}


def sanitize_html(raw_html: str) -> str:
    """Drop scripts, event handlers and unknown tags from client-supplied HTML."""
    return bleach.clean(raw_html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES, strip=True)


# ---------------------------------------------------------------------------
# Content tree -> HTML
# ---------------------------------------------------------------------------

def _render_text(node: Any) -> str:
    out = html.escape(node.text)
    for mark in node.marks or []:
        if mark.type == "link":
            href = html.escape(str((mark.attrs or {}).get("href", "")), quote=True)
            out = f'<a href="{href}">{out}</a>'
        elif mark.type in _MARK_TAGS:
            tag = _MARK_TAGS[mark.type]
            out = f"<{tag}>{out}</{tag}>"
    return out


def _render_children(node: Any) -> str:
    return "".join(_render_node(child) for child in (getattr(node, "content", None) or []))


def _render_node(node: Any) -> str:
    kind = node.type
    if kind == "text":
        return _render_text(node)
    if kind == "hardBreak":
        return "<br>"
    if kind == "horizontalRule":
        return "<hr>"
    if kind == "image":
        src = html.escape(node.attrs.src, quote=True)
        alt = html.escape(node.attrs.alt or "", quote=True)
        return f'<img src="{src}" alt="{alt}">'
    if kind == "paragraph":
        return f"<p>{_render_children(node)}</p>"
    if kind == "heading":
        level = node.attrs.level
        return f"<h{level}>{_render_children(node)}</h{level}>"
    if kind == "codeBlock":
        return f"<pre><code>{_render_children(node)}</code></pre>"
    if kind == "blockquote":
        return f"<blockquote>{_render_children(node)}</blockquote>"
    if kind == "bulletList":
        return f"<ul>{_render_children(node)}</ul>"
    if kind == "orderedList":
        start = node.attrs.start
        start_attr = f' start="{start}"' if start != 1 else ""
        return f"<ol{start_attr}>{_render_children(node)}</ol>"
    if kind == "listItem":
        return f"<li>{_render_children(node)}</li>"
    return ""


def convert_content_to_html(content: Any) -> str:
    """Render a stored content tree to HTML.

    Best-effort: anything that does not validate as a document tree
    renders as an empty string.
    """
    if not isinstance(content, dict) or not content.get("content"):
        return ""
    try:
        doc = DocNode.model_validate(content)
    except PydanticValidationError:
        logger.info("Content tree did not validate; rendering empty HTML")
        return ""
    return "\n".join(_render_node(block) for block in doc.content)


# ---------------------------------------------------------------------------
# HTML -> target format
# ---------------------------------------------------------------------------

def export_to_md(source_html: str) -> bytes:
    try:
        markdown = markdownify(source_html, heading_style="ATX", bullets="-")
    except Exception as e:
        raise ConversionError("md", str(e)) from e
    return markdown.strip().encode("utf-8") + b"\n"


def export_to_docx(source_html: str) -> bytes:
    try:
        document = HtmlToDocx().parse_html_string(source_html or "<p></p>")
        buffer = io.BytesIO()
        document.save(buffer)
    except Exception as e:
        logger.error("DOCX conversion failed", extra={"error": str(e)})
        raise ConversionError("docx", str(e)) from e
    return buffer.getvalue()


def docx_to_pdf(docx_bytes: bytes) -> bytes:
    """Convert DOCX bytes to PDF with a headless LibreOffice process."""
    with tempfile.TemporaryDirectory(prefix="opendesk-export-") as workdir:
        docx_path = Path(workdir) / "document.docx"
        pdf_path = Path(workdir) / "document.pdf"
        docx_path.write_bytes(docx_bytes)

        cmd = [
            settings.soffice_binary,
            "--headless",
            "--convert-to", "pdf",
            "--outdir", workdir,
            str(docx_path),
        ]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=settings.export_timeout_seconds,
            )
        except FileNotFoundError as e:
            raise ConversionError("pdf", f"converter not installed: {settings.soffice_binary}") from e
        except subprocess.TimeoutExpired as e:
            raise ConversionError("pdf", f"converter timed out after {settings.export_timeout_seconds}s") from e

        if result.returncode != 0 or not pdf_path.exists():
            # Tail of stderr is enough to diagnose converter failures.
            reason = (result.stderr or result.stdout or f"exit code {result.returncode}")[-1000:]
            logger.error("PDF conversion failed", extra={"returncode": result.returncode, "reason": reason})
            raise ConversionError("pdf", reason)

        return pdf_path.read_bytes()


def export_to_pdf(source_html: str) -> bytes:
    return docx_to_pdf(export_to_docx(source_html))


_CONVERTERS: Dict[str, Callable[[str], bytes]] = {
    "md": export_to_md,
    "docx": export_to_docx,
    "pdf": export_to_pdf,
}


def convert_html_to_format(source_html: str, fmt: str) -> bytes:
    """Dispatch *source_html* to the converter for *fmt* (``md``, ``docx`` or ``pdf``)."""
    converter = _CONVERTERS.get(fmt)
    if converter is None:
        raise ConversionError(fmt, "unsupported format")
    logger.info("Exporting document", extra={"format": fmt, "html_length": len(source_html)})
    return converter(source_html)
