# statblock/linkify.py
"""
Text cross-referencing for spell lists and trait text.

    '[[Fireball]]'            -> '<a href="note:Fireball">Fireball</a>'
    '[[#Lair Actions|lair]]'  -> '<a href="note:Goblin#Lair Actions">lair</a>'   (context 'Goblin')
    'fireball, hold person'   -> two spell: anchors
"""
from __future__ import annotations

import re
from html import escape
from typing import Optional

_WIKILINK_RE = re.compile(r"\[\[([^\[\]|]+)(?:\|([^\[\]]+))?\]\]")

_LINK_COLOUR = "#1a4d8f"


def spell_key(name: str) -> str:
    """'Magic Missile' -> 'magic_missile'."""
    key = name.strip().lower()
    key = re.sub(r"[^a-z0-9]+", "_", key)
    return key.strip("_")


def split_spell_list(text: str) -> list[str]:
    """Split a comma-separated spell list; commas inside parentheses do not split.

    'fireball (level 3, cold damage), shield*' -> ['fireball (level 3, cold damage)', 'shield']
    """
    spells: list[str] = []
    current: list[str] = []
    depth = 0

    def _flush() -> None:
        part = "".join(current).strip().rstrip(".")
        part = re.sub(r"[*†]+$", "", part).strip()
        if part:
            spells.append(part)

    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            _flush()
            current = []
            continue
        current.append(ch)
    _flush()
    return spells


class Linkifier:
    """Default text cross-reference collaborator used by the spell grouper."""

    def __init__(self, link_colour: str = _LINK_COLOUR):
        self.link_colour = link_colour

    def _anchor(self, href: str, label: str) -> str:
        return (
            f'<a href="{escape(href, quote=True)}" '
            f'style="color:{self.link_colour}; text-decoration:none;">{escape(label)}</a>'
        )

    def linkify(self, text: str, context_id: Optional[str] = None) -> str:
        if not text:
            return ""
        if _WIKILINK_RE.search(text):
            return self._linkify_wikilinks(text, context_id)
        return ", ".join(
            self._anchor(f"spell:{spell_key(_spell_name(spell))}", spell)
            for spell in split_spell_list(text)
        )

    def _linkify_wikilinks(self, text: str, context_id: Optional[str]) -> str:
        parts: list[str] = []
        last = 0
        for m in _WIKILINK_RE.finditer(text):
            parts.append(escape(text[last:m.start()]))
            target = m.group(1).strip()
            label = (m.group(2) or target).strip()
            if target.startswith("#") and context_id:
                target = f"{context_id}{target}"
            parts.append(self._anchor(f"note:{target}", label))
            last = m.end()
        parts.append(escape(text[last:]))
        return "".join(parts)


def _spell_name(entry: str) -> str:
    # 'fireball (level 3, cold damage)' -> 'fireball'
    return re.sub(r"\s*\(.*\)\s*$", "", entry)
