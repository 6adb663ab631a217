# statblock/spells.py
"""
Group a raw spellcasting list into headed blocks.

Records store spellcasting as one flat list mixing header text and entries:

    [
        "The goblin shaman is a 3rd-level spellcaster. ... DC 12:",
        {"Cantrips (at will)": "fire bolt, mage hand"},
        {"1st level (4 slots)": "shield, sleep"},
        "Innate Spellcasting",
        "At will: detect magic",
    ]

A string is a header when it ends with ':' or contains no ':' at all; any
other string, and every single-key {level: text} map, is an entry of the
header before it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from html import escape
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from statblock.exceptions import GroupingError

logger = logging.getLogger(__name__)

_SYNTHETIC_HEADER = "{name} knows the following spells:"


class TextLinkifier(Protocol):
    def linkify(self, text: str, context_id: Optional[str] = None) -> str: ...


@dataclass
class SpellEntry:
    # HTML-safe: escaped or linkified text
    spells: str
    level: Optional[str] = None


@dataclass
class SpellGroup:
    header: Optional[str] = None
    spells: List[SpellEntry] = field(default_factory=list)


def is_header(element: str) -> bool:
    text = element.strip()
    return text.endswith(":") or ":" not in text


def _colon_terminated(text: str) -> str:
    text = text.strip()
    return text if text.endswith(":") else f"{text}:"


def _destructure(entry: Mapping[str, Any]) -> Tuple[str, str]:
    """{level: text} -> (level, text)."""
    if not entry:
        raise GroupingError("Spell map has no level key")
    level, text = next(iter(entry.items()))
    if text is None:
        raise GroupingError(f"Spell map {level!r} has no value")
    if isinstance(text, (list, tuple)):
        text = ", ".join(str(t) for t in text)
    elif not isinstance(text, str):
        raise GroupingError(f"Spell map {level!r} has a {type(text).__name__} value")
    return str(level), text


def group_spells(
    raw: Any,
    context_id: Optional[str] = None,
    linkifier: Optional[TextLinkifier] = None,
    name: Optional[str] = None,
) -> List[SpellGroup]:
    """Fold *raw* left to right into SpellGroups. Non-list input gives []."""
    if not isinstance(raw, (list, tuple)) or not raw:
        return []

    def _link(text: str) -> str:
        return linkifier.linkify(text, context_id) if linkifier else escape(text)

    groups: List[SpellGroup] = []
    for element in raw:
        try:
            if isinstance(element, str):
                if is_header(element):
                    groups.append(SpellGroup(header=_colon_terminated(element)))
                    continue
                # 'At will: detect magic' keeps its label; only the list is linked
                label, _, listed = element.partition(":")
                entry = SpellEntry(spells=f"{escape(label.strip())}: {_link(listed.strip())}")
            elif isinstance(element, Mapping):
                level, text = _destructure(element)
                entry = SpellEntry(level=level, spells=_link(text))
            else:
                raise GroupingError(f"Unsupported spell list element: {type(element).__name__}")
        except GroupingError as exc:
            logger.debug("Dropping spell entry %r: %s", element, exc)
            continue

        if not groups:
            creature = name or context_id or "The creature"
            groups.append(SpellGroup(header=_SYNTHETIC_HEADER.format(name=creature)))
        groups[-1].spells.append(entry)
    return groups
