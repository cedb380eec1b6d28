"""Response body normalization.

Bodies are reformatted before they are cached or returned so that a cached
copy and a freshly fetched copy of the same page compare equal despite
incidental whitespace differences between fetches:

1. Markup is pretty-printed with a two-space indent.  Well-formed XML is
   parsed strictly; an HTML document (``<!doctype html`` or ``<html``
   prefix) that is not well-formed XML goes through lxml's HTML parser.
   Anything that fails to parse (JSON, plain text, binary) passes through
   unchanged -- normalization never fails a fetch.
2. Leading and trailing whitespace is trimmed.
3. Runs of CRLF collapse to a single LF.
4. Runs of blank (whitespace-only) lines collapse to a single line break.

:func:`normalize` is idempotent: normalizing normalized text is a no-op.
"""

from __future__ import annotations

import re
from typing import Optional, Union

from lxml import etree
from lxml import html as lxml_html

INDENT = "  "

_CRLF_RUN_RE = re.compile(r"(\r\n)+")
_BLANK_LINES_RE = re.compile(r"\n(\s*\n)+")
_HTML_START_RE = re.compile(rb"^\s*<(!doctype\s+html|html[\s>])", re.IGNORECASE)


class NotMarkup(ValueError):
    """The content could not be parsed as XML or HTML."""


def normalize(content: Union[str, bytes], encoding: Optional[str] = None) -> str:
    """Normalize a response body for storage and comparison.

    Args:
        content: The raw body.  Bytes are handed to the parser as-is so an
            XML encoding declaration is honoured.
        encoding: Charset used to decode *content* when it is bytes and not
            markup.  Defaults to UTF-8 with replacement characters.

    Returns:
        The normalized text.
    """
    try:
        pretty = prettify(content)
    except NotMarkup:
        if isinstance(content, bytes):
            pretty = content.decode(encoding or "utf-8", errors="replace")
        else:
            pretty = content
    return collapse_whitespace(pretty)


def collapse_whitespace(text: str) -> str:
    """Apply the trim, CRLF and blank-line rules to *text*."""
    text = text.strip()
    text = _CRLF_RUN_RE.sub("\n", text)
    return _BLANK_LINES_RE.sub("\n", text)


def prettify(content: Union[str, bytes], indent: str = INDENT) -> str:
    """Pretty-print XML or HTML markup.

    Raises:
        NotMarkup: If *content* is neither well-formed XML nor an HTML
            document.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    # A str has already been decoded, so any encoding declaration inside it
    # is stale and must be ignored.
    forced = "utf-8" if isinstance(content, str) else None
    if not data.lstrip().startswith(b"<"):
        raise NotMarkup("content does not start with a tag")

    try:
        return _prettify_xml(data, indent, forced)
    except (etree.XMLSyntaxError, ValueError) as xml_exc:
        if not _HTML_START_RE.match(data):
            raise NotMarkup(str(xml_exc)) from xml_exc

    try:
        return _prettify_html(data, indent, forced)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
        raise NotMarkup(str(exc)) from exc


def _prettify_xml(data: bytes, indent: str, encoding: Optional[str]) -> str:
    parser = etree.XMLParser(
        remove_blank_text=True,
        resolve_entities=False,
        no_network=True,
        encoding=encoding,
    )
    root = etree.fromstring(data, parser=parser)
    etree.indent(root, space=indent)
    # Serializing the tree keeps the DOCTYPE and prolog comments; a unicode
    # result never carries an XML declaration.
    return etree.tostring(root.getroottree(), encoding="unicode")


def _prettify_html(data: bytes, indent: str, encoding: Optional[str]) -> str:
    parser = lxml_html.HTMLParser(remove_blank_text=True, encoding=encoding)
    root = lxml_html.document_fromstring(data, parser=parser)
    etree.indent(root, space=indent)
    doctype = root.getroottree().docinfo.doctype
    return etree.tostring(root, encoding="unicode", method="html", doctype=doctype or None)
