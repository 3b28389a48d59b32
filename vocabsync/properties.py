"""Typed slots of the document store's property bag.

A page's properties map names to slot values such as::

    {"Word": {"type": "title", "title": [{"plain_text": "casa"}]},
     "Typo": {"type": "select", "select": {"name": "substantivo"}},
     "Learned": {"type": "checkbox", "checkbox": False}}

Readers accept both the shape the store returns and the shape produced by
the builders at the bottom of this module.
"""

from enum import Enum
from typing import Any


class SlotKind(str, Enum):
    TITLE = "title"
    RICH_TEXT = "rich_text"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    CHECKBOX = "checkbox"


TEXT_KINDS = (SlotKind.TITLE, SlotKind.RICH_TEXT)


def slot_kind(prop: dict[str, Any] | None) -> SlotKind | None:
    """Return the slot kind of a property value, or None if unknown."""
    if not prop:
        return None
    declared = prop.get("type")
    if declared:
        try:
            return SlotKind(declared)
        except ValueError:
            return None
    for kind in SlotKind:
        if kind.value in prop:
            return kind
    return None


def plain_text(prop: dict[str, Any] | None) -> str:
    """Concatenate the text segments of a title or rich-text slot."""
    kind = slot_kind(prop)
    if kind not in TEXT_KINDS:
        return ""
    parts = []
    for segment in prop.get(kind.value) or []:
        if "plain_text" in segment:
            parts.append(segment["plain_text"] or "")
        else:
            parts.append((segment.get("text") or {}).get("content") or "")
    return "".join(parts)


def select_name(prop: dict[str, Any] | None) -> str | None:
    if slot_kind(prop) is not SlotKind.SELECT:
        return None
    option = prop.get("select")
    return option.get("name") if option else None


def multi_select_names(prop: dict[str, Any] | None) -> list[str]:
    if slot_kind(prop) is not SlotKind.MULTI_SELECT:
        return []
    return [option["name"] for option in prop.get("multi_select") or []]


def checkbox_value(prop: dict[str, Any] | None) -> bool:
    if slot_kind(prop) is not SlotKind.CHECKBOX:
        return False
    return bool(prop.get("checkbox"))


def is_empty(prop: dict[str, Any] | None) -> bool:
    """
    Decide whether a slot holds no user data.

    Text is empty when it has no segments or only whitespace, a select when
    no option is chosen, a multi-select when no option is chosen. Checkboxes
    are never empty: False is a real value. A missing property is empty.
    """
    kind = slot_kind(prop)
    if kind is None:
        return not prop
    if kind in TEXT_KINDS:
        return not plain_text(prop).strip()
    if kind is SlotKind.SELECT:
        return select_name(prop) is None
    if kind is SlotKind.MULTI_SELECT:
        return not prop.get("multi_select")
    return False


def _segments(content: str) -> list[dict[str, Any]]:
    return [{"text": {"content": content}}] if content else []


def title(content: str) -> dict[str, Any]:
    return {"title": _segments(content)}


def rich_text(content: str) -> dict[str, Any]:
    return {"rich_text": _segments(content)}


def select(name: str | None) -> dict[str, Any]:
    return {"select": {"name": name} if name else None}


def multi_select(names: list[str]) -> dict[str, Any]:
    return {"multi_select": [{"name": name} for name in names]}


def checkbox(value: bool) -> dict[str, Any]:
    return {"checkbox": bool(value)}
