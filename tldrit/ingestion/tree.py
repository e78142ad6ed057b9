"""Parse feed XML into a generic dict tree.

Elements become nested dicts keyed by their prefixed tag name
(``media:content``, ``content:encoded``). Attributes are stored under
``@name`` keys and element text under ``#text``. A leaf element without
attributes collapses to its text. Repeated child tags become lists, a
single child stays a plain value, so callers must accept both.

    <item><title>A</title><link href="x"/></item>
    -> {"item": {"title": "A", "link": {"@href": "x"}}}

An element mixing text with child tags (inline HTML, Atom ``type="xhtml"``)
is kept as its serialized inner markup instead, so tag stripping and image
regexes see the same HTML a CDATA section would carry.
"""

import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, Union
from xml.sax.saxutils import escape

from .errors import FormatError

TEXT_KEY = "#text"
ATTR_PREFIX = "@"

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
_BOM = b"\xef\xbb\xbf"
_ENCODING_DECL = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
_ATTR_ENTITIES = {'"': "&quot;"}


def parse_xml(data: Union[str, bytes], url: str = None) -> Dict[str, Any]:
    """Parse an XML document into ``{root_tag: node}``.

    Raises FormatError if the document is not well-formed XML.
    """
    if isinstance(data, str):
        # Already decoded text; drop the declaration so expat does not
        # re-decode with a conflicting encoding.
        data = _ENCODING_DECL.sub("", data, count=1).encode("utf-8")
    if data.startswith(_BOM):
        data = data[len(_BOM):]
    data = data.lstrip()
    if not data:
        raise FormatError("Empty response content", url)

    prefixes = {XML_NAMESPACE: "xml"}
    root = None
    parser = ET.XMLPullParser(events=("start-ns", "start"))
    try:
        parser.feed(data)
        parser.close()
    except ET.ParseError as e:
        raise FormatError(f"Failed to parse feed XML: {e}", url) from e

    for event, obj in parser.read_events():
        if event == "start-ns":
            prefix, uri = obj
            prefixes.setdefault(uri, prefix)
        elif root is None:
            root = obj

    if root is None:
        raise FormatError("Feed XML has no root element", url)
    return {qualify(root.tag, prefixes): to_node(root, prefixes)}


def qualify(tag: str, prefixes: Dict[str, str]) -> str:
    """Turn ``{uri}local`` into ``prefix:local`` (or ``local`` for the default namespace)."""
    if not tag.startswith("{"):
        return tag
    uri, local = tag[1:].split("}", 1)
    prefix = prefixes.get(uri)
    return f"{prefix}:{local}" if prefix else local


def to_node(element: ET.Element, prefixes: Dict[str, str]) -> Union[str, Dict[str, Any]]:
    attrs = {ATTR_PREFIX + qualify(k, prefixes): v for k, v in element.attrib.items()}
    children = list(element)
    text = (element.text or "").strip()

    if not attrs and not children:
        return text

    if children and is_markup(element):
        markup = inner_markup(element).strip()
        if not attrs:
            return markup
        markup_node: Dict[str, Any] = dict(attrs)
        if markup:
            markup_node[TEXT_KEY] = markup
        return markup_node

    node: Dict[str, Any] = dict(attrs)
    for child in children:
        key = qualify(child.tag, prefixes)
        value = to_node(child, prefixes)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]

    if text:
        node[TEXT_KEY] = text
    return node


def is_markup(element: ET.Element) -> bool:
    """True for inline HTML (text mixed with child tags) or Atom xhtml content."""
    if element.get("type") == "xhtml":
        return True
    if (element.text or "").strip():
        return True
    return any((child.tail or "").strip() for child in element)


def local_name(tag: str) -> str:
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def inner_markup(element: ET.Element) -> str:
    """Children serialized back to HTML with namespaces dropped.

    Text is re-escaped so entity decoding after tag stripping sees the same
    input as for a CDATA description.
    """
    parts = [escape(element.text or "")]
    for child in element:
        parts.append(outer_markup(child))
        parts.append(escape(child.tail or ""))
    return "".join(parts)


def outer_markup(element: ET.Element) -> str:
    tag = local_name(element.tag)
    attrs = "".join(
        f' {local_name(k)}="{escape(v, _ATTR_ENTITIES)}"' for k, v in element.attrib.items()
    )
    return f"<{tag}{attrs}>{inner_markup(element)}</{tag}>"


def as_list(value: Any) -> list:
    """Normalize a single-or-repeated tree value to a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
