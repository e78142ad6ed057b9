"""Field shapes found in feed trees and the resolvers that read them.

A feed field arrives in one of three shapes:

- ``PlainText``: a bare string (``<title>Big News</title>``)
- ``TextNode``: text plus attributes (``<title type="html">Big News</title>``)
- ``AttrRef``: attributes only (``<link href="https://..."/>``)

``shape_of`` classifies a raw tree value; the ``resolve_*`` functions are
pure and return ``None`` when a field cannot be resolved.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Union

from .tree import ATTR_PREFIX, TEXT_KEY, as_list


@dataclass(frozen=True)
class PlainText:
    value: str


@dataclass(frozen=True)
class TextNode:
    text: str
    attrs: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AttrRef:
    attrs: Dict[str, str] = field(default_factory=dict)


FieldShape = Union[PlainText, TextNode, AttrRef]


def shape_of(value: Any) -> Optional[FieldShape]:
    """Classify a single raw tree value. Lists are not accepted here."""
    if value is None:
        return None
    if isinstance(value, str):
        return PlainText(value)
    if isinstance(value, dict):
        attrs = {
            k[len(ATTR_PREFIX):]: v for k, v in value.items()
            if k.startswith(ATTR_PREFIX) and isinstance(v, str)
        }
        text = value.get(TEXT_KEY)
        if isinstance(text, str) and text.strip():
            return TextNode(text, attrs)
        return AttrRef(attrs)
    return PlainText(str(value))


def text_of(shape: Optional[FieldShape]) -> Optional[str]:
    if isinstance(shape, PlainText):
        text = shape.value
    elif isinstance(shape, TextNode):
        text = shape.text
    else:
        return None
    text = text.strip()
    return text or None


def attr_of(shape: Optional[FieldShape], name: str) -> Optional[str]:
    if isinstance(shape, (TextNode, AttrRef)):
        value = (shape.attrs.get(name) or "").strip()
        return value or None
    return None


def resolve_text(value: Any) -> Optional[str]:
    """First non-empty text among the (possibly repeated) values."""
    for item in as_list(value):
        text = text_of(shape_of(item))
        if text:
            return text
    return None


def resolve_first_text(raw: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    """Text of the first key in ``keys`` that resolves."""
    for key in keys:
        text = resolve_text(raw.get(key))
        if text:
            return text
    return None


def resolve_link(value: Any) -> Optional[str]:
    """Resolve an item link.

    Handles ``<link>url</link>`` (RSS) and ``<link href="url"/>`` (Atom).
    When an Atom entry carries several links, the ``alternate`` one (or one
    with no ``rel``) wins over ``self``/``enclosure``/etc.
    """
    fallback = None
    for item in as_list(value):
        shape = shape_of(item)
        text = text_of(shape)
        if text:
            return text
        href = attr_of(shape, "href")
        if not href:
            continue
        rel = attr_of(shape, "rel")
        if rel in (None, "alternate"):
            return href
        fallback = fallback or href
    return fallback


def resolve_attr(value: Any, name: str) -> Optional[str]:
    """First value of attribute ``name`` among the (possibly repeated) values."""
    for item in as_list(value):
        attr = attr_of(shape_of(item), name)
        if attr:
            return attr
    return None


def resolve_category(value: Any) -> Optional[str]:
    """Category text, or the Atom ``term`` attribute when there is no text."""
    text = resolve_text(value)
    if text:
        return text
    return resolve_attr(value, "term")
