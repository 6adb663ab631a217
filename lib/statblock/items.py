# statblock/items.py
"""
Declarative layout tree types.

A layout is a list of StatblockItem nodes. Each node is tagged by ItemType and
read from the layout JSON format, which uses camelCase keys:

    {"type": "property", "heading": "Armor Class", "properties": ["ac"],
     "conditioned": true, "hasRule": false}

Composite types (group, inline, collapse) carry children in ``nested``;
ifelse carries ordered ``conditions`` branches; layout names another layout.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from statblock.exceptions import MalformedDataError


class ItemType(Enum):
    GROUP = "group"
    INLINE = "inline"
    COLLAPSE = "collapse"
    HEADING = "heading"
    SUBHEADING = "subheading"
    PROPERTY = "property"
    SAVES = "saves"
    TABLE = "table"
    TEXT = "text"
    IMAGE = "image"
    ACTION = "action"
    JAVASCRIPT = "javascript"
    TRAITS = "traits"
    SPELLS = "spells"
    LAYOUT = "layout"
    IFELSE = "ifelse"

    def __repr__(self) -> str:
        return str(self.name)


COMPOSITE_TYPES = frozenset({ItemType.GROUP, ItemType.INLINE, ItemType.COLLAPSE})

# Types that decide for themselves what to emit; never hidden by "conditioned"
SELF_DECIDING_TYPES = frozenset({ItemType.IFELSE, ItemType.JAVASCRIPT, ItemType.LAYOUT})

# layout JSON key -> dataclass field
_KEY_MAP = {
    "type": "type",
    "id": "id",
    "heading": "heading",
    "properties": "properties",
    "conditioned": "conditioned",
    "cls": "cls",
    "hasRule": "has_rule",
    "nested": "nested",
    "conditions": "branches",
    "layout": "layout",
    "text": "text",
    "subheadingText": "subheading_text",
    "headers": "headers",
    "code": "code",
}


@dataclass
class IfElseBranch:
    condition: Optional[str] = None
    nested: List[StatblockItem] = field(default_factory=list)

    @property
    def is_default(self) -> bool:
        return not (self.condition or "").strip()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> IfElseBranch:
        if not isinstance(data, Mapping):
            raise MalformedDataError(f"ifelse branch must be an object, got {type(data).__name__}")
        children = data.get("blocks", data.get("nested")) or []
        return IfElseBranch(
            condition=data.get("condition"),
            nested=parse_items(children),
        )


@dataclass
class StatblockItem:
    type: ItemType
    id: Optional[str] = None
    heading: Optional[str] = None
    properties: List[str] = field(default_factory=list)
    conditioned: bool = False
    cls: Optional[str] = None
    has_rule: bool = False
    nested: List[StatblockItem] = field(default_factory=list)
    branches: List[IfElseBranch] = field(default_factory=list)
    layout: Optional[str] = None
    text: Optional[str] = None
    subheading_text: Optional[str] = None
    headers: List[str] = field(default_factory=list)
    code: Optional[str] = None
    # Producer-specific keys not modelled above (e.g. image width, dice flags)
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_composite(self) -> bool:
        return self.type in COMPOSITE_TYPES

    @property
    def first_property(self) -> Optional[str]:
        return self.properties[0] if self.properties else None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> StatblockItem:
        if not isinstance(data, Mapping):
            raise MalformedDataError(f"Layout item must be an object, got {type(data).__name__}")
        raw_type = data.get("type")
        try:
            item_type = ItemType(raw_type)
        except ValueError:
            raise MalformedDataError(f"Unknown layout item type: {raw_type!r}") from None

        kwargs: Dict[str, Any] = {"type": item_type}
        options: Dict[str, Any] = {}
        for key, value in data.items():
            attr = _KEY_MAP.get(key)
            if attr is None:
                options[key] = value
            elif attr == "type":
                continue
            elif attr == "nested":
                kwargs["nested"] = parse_items(value or [])
            elif attr == "branches":
                kwargs["branches"] = [IfElseBranch.from_dict(b) for b in value or []]
            elif attr in ("properties", "headers"):
                kwargs[attr] = [str(p) for p in value or []]
            elif attr in ("conditioned", "has_rule"):
                kwargs[attr] = bool(value)
            else:
                kwargs[attr] = value
        kwargs["options"] = options
        return StatblockItem(**kwargs)


def parse_items(raw: Iterable[Mapping[str, Any]]) -> List[StatblockItem]:
    """Parse a list of layout JSON nodes into StatblockItems."""
    if not isinstance(raw, (list, tuple)):
        raise MalformedDataError("Layout blocks must be a list")
    return [StatblockItem.from_dict(node) for node in raw]


@dataclass
class Trait:
    name: str = ""
    desc: str = ""

    @staticmethod
    def from_value(value: Any) -> Trait:
        """Accept {name, desc} or the parser's {name, description} spelling."""
        if isinstance(value, Trait):
            return value
        if not isinstance(value, Mapping):
            raise MalformedDataError(f"Trait entry must be an object, got {type(value).__name__}")
        desc = value.get("desc", value.get("description", ""))
        if isinstance(desc, (list, tuple)):
            desc = "\n".join(str(d) for d in desc)
        return Trait(name=str(value.get("name") or ""), desc=str(desc or ""))


@dataclass
class Layout:
    name: str
    blocks: List[StatblockItem] = field(default_factory=list)
    column_width: Optional[Any] = None

    @property
    def class_name(self) -> str:
        """CSS-style class derived from the layout name: 'Basic 5e' -> 'basic-5e'."""
        slug = re.sub(r"[^a-z0-9]+", "-", self.name.strip().lower())
        return slug.strip("-") or "layout"


def parse_layout(data: Mapping[str, Any]) -> Layout:
    if not isinstance(data, Mapping) or not data.get("name"):
        raise MalformedDataError("Layout must be an object with a name")
    return Layout(
        name=str(data["name"]),
        blocks=parse_items(data.get("blocks") or []),
        column_width=data.get("columnWidth"),
    )
