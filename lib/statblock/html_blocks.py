# statblock/html_blocks.py
"""
HtmlBlockProducer: turns one layout item (or one expanded piece of it) into a
styled HTML fragment for QTextBrowser / QTextDocument.

No Qt imports here, so the producer is testable on its own. Colours follow the
2024 D&D Beyond parchment palette.
"""
from __future__ import annotations

import logging
import re
from html import escape
from numbers import Number
from typing import Any, Callable, Dict, Mapping, Optional

from statblock import script
from statblock.blocks import Block
from statblock.conditions import has_data
from statblock.exceptions import ConditionScriptError, MalformedDataError
from statblock.items import StatblockItem, Trait
from statblock.spells import SpellEntry

logger = logging.getLogger(__name__)

# ── Constants ───────────────────────────────────────────────────────

_ABILITY_LABELS = ["STR", "DEX", "CON", "INT", "WIS", "CHA"]

_CONDITION_NAMES = {
    "blinded", "charmed", "deafened", "exhaustion", "frightened",
    "grappled", "incapacitated", "invisible", "paralyzed", "petrified",
    "poisoned", "prone", "restrained", "stunned", "unconscious",
}

# Longest names first so partial matches don't shadow full ones
_CONDITION_RE = re.compile(
    r'\b(' + '|'.join(sorted(_CONDITION_NAMES, key=len, reverse=True)) + r')\b',
    re.IGNORECASE,
)

BG       = "#FEF5E5"   # warm parchment
MAROON   = "#58180D"   # name, section headers, ability labels
RED      = "#7A1F1F"   # bold field labels
ORANGE   = "#C9801A"   # borders, dividers, table rules
TABLE_HD = "#E8D5A3"   # ability table header row
TEXT     = "#1a1a1a"


# ── Helpers ─────────────────────────────────────────────────────────

def modifier(score: int) -> str:
    mod = (score - 10) // 2
    return f"+{mod}" if mod >= 0 else str(mod)


def signed(value: Any) -> str:
    if isinstance(value, Number) and not isinstance(value, bool):
        return f"+{value}" if value >= 0 else str(value)
    return str(value)


def linkify_conditions(text: str) -> str:
    """Wrap known condition names in anchor tags for tooltip support."""
    def _replace(m: re.Match) -> str:
        name = m.group(1)
        return (
            f'<a href="condition:{name.lower()}" '
            f'style="color:{MAROON}; text-decoration:none;">{name}</a>'
        )
    return _CONDITION_RE.sub(_replace, text)


def stringify(value: Any) -> str:
    """Flatten a record value into display text."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Number):
        return str(value)
    if isinstance(value, Mapping):
        return ", ".join(
            f"{str(k).replace('_', ' ')} {stringify(v)}" for k, v in value.items() if has_data(v)
        )
    if isinstance(value, (list, tuple)):
        return ", ".join(s for s in (stringify(v) for v in value) if s)
    return str(value)


def section_header(label: str) -> str:
    # Single-cell table so the bottom border actually shows in Qt
    return (
        f'<table width="100%" style="border-collapse:collapse; margin:8px 0 2px 0;">'
        f'<tr><td style="font-size:15px; font-weight:bold; color:{MAROON}; '
        f'border-bottom:2px solid {ORANGE}; padding:0 0 1px 0;">'
        f'{escape(label)}</td></tr></table>'
    )


def divider() -> str:
    return f'<hr style="border:1px solid {ORANGE}; margin:5px 0;">'


def _first_value(record: Mapping[str, Any], item: StatblockItem) -> Any:
    for prop in item.properties:
        value = record.get(prop)
        if has_data(value) or isinstance(value, Mapping) and value:
            return value
    return None


# ── Producer ────────────────────────────────────────────────────────

class HtmlBlockProducer:
    def __init__(self, plugin: Any = None):
        self.plugin = plugin
        self._renderers: Dict[str, Callable[..., str]] = {
            "heading":         self._heading,
            "subheading":      self._subheading,
            "property":        self._property,
            "saves":           self._saves,
            "table":           self._table,
            "text":            self._text,
            "image":           self._image,
            "action":          self._action,
            "javascript":      self._javascript,
            "section":         self._section,
            "trait":           self._trait,
            "subheading-text": self._subheading_text,
            "spell-line":      self._spell_line,
            "rule":            self._rule,
            "inline":          self._inline,
            "collapse":        self._collapse,
        }

    def produce(
        self, kind: str, record: Mapping[str, Any], item: StatblockItem, **props: Any
    ) -> Block:
        renderer = self._renderers.get(kind)
        if renderer is None:
            raise MalformedDataError(f"No renderer for block kind {kind!r}")
        children = props.get("children") or []
        return Block(kind=kind, html=renderer(record, item, **props), children=list(children))

    # ── Leaf item types ──────────────────────────────────────────────

    def _heading(self, record, item, **_):
        text = stringify(_first_value(record, item)) or item.text or ""
        if not text:
            return ""
        size = 22 if item.options.get("size", 1) == 1 else 18
        return (
            f'<table width="100%" style="border-collapse:collapse; margin-bottom:2px;">'
            f'<tr><td style="font-size:{size}px; font-weight:bold; color:{MAROON}; '
            f'border-bottom:3px solid {ORANGE}; padding:0 0 2px 0;">'
            f'{escape(text)}</td></tr></table>'
        )

    def _subheading(self, record, item, **_):
        separator = item.options.get("separator", " ")
        parts = [stringify(record.get(p)) for p in item.properties]
        line = separator.join(p for p in parts if p)
        if not line:
            return ""
        return (
            f'<p style="font-style:italic; font-size:11px; color:#444; margin:0 0 4px 0;">'
            f'{escape(line)}</p>'
        )

    def _property(self, record, item, **_):
        value = stringify(_first_value(record, item)) or item.text or ""
        if not value:
            return ""
        label = f'<b style="color:{RED};">{escape(item.heading)}</b> ' if item.heading else ""
        return f'<p style="margin:2px 0;">{label}{linkify_conditions(escape(value))}</p>'

    def _saves(self, record, item, **_):
        raw = _first_value(record, item)
        if raw is None:
            return ""
        if isinstance(raw, Mapping):
            raw = [{k: v} for k, v in raw.items()]
        if not isinstance(raw, (list, tuple)):
            raise MalformedDataError(f"saves expects a list of {{name: bonus}} maps, got {type(raw).__name__}")
        parts = []
        for save in raw:
            if not isinstance(save, Mapping):
                raise MalformedDataError(f"save entry must be a map, got {save!r}")
            for name, bonus in save.items():
                parts.append(f"{str(name).title()} {signed(bonus)}")
        if not parts:
            return ""
        heading = item.heading or "Saving Throws"
        return f'<p style="margin:2px 0;"><b style="color:{RED};">{escape(heading)}</b> {escape(", ".join(parts))}</p>'

    def _table(self, record, item, **_):
        """Ability-score style table: header row of labels, one row of values.

        Numbers get their modifier appended unless the item sets
        ``calculateModifiers: false``.
        """
        values = _first_value(record, item)
        if not values:
            return ""
        if not isinstance(values, (list, tuple)):
            raise MalformedDataError(f"table expects a list, got {type(values).__name__}")
        headers = item.headers or _ABILITY_LABELS[:len(values)]
        with_mods = item.options.get("calculateModifiers", True)
        cell  = f'border:1px solid {ORANGE}; padding:2px 5px; text-align:center;'
        hd_bg = f'background-color:{TABLE_HD};'

        t = [
            f'<table style="width:100%; border-collapse:collapse; margin:4px 0; '
            f'border:1px solid {ORANGE};">',
            f'<tr style="{hd_bg}">',
        ]
        for label in headers:
            t.append(f'<th style="{cell} color:{MAROON};">{escape(str(label))}</th>')
        t.append('</tr><tr>')
        for value in values:
            if with_mods and isinstance(value, int) and not isinstance(value, bool):
                shown = f"{value} ({modifier(value)})"
            else:
                shown = stringify(value)
            t.append(f'<td style="{cell}">{escape(shown)}</td>')
        t.append('</tr></table>')
        return "".join(t)

    def _text(self, record, item, **_):
        body = item.text or stringify(_first_value(record, item))
        if not body:
            return ""
        body = linkify_conditions(escape(body)).replace("\n", "<br>")
        header = section_header(item.heading) if item.heading else ""
        return f'{header}<p style="margin:3px 0;">{body}</p>'

    def _image(self, record, item, **_):
        src = stringify(_first_value(record, item))
        if not src:
            return ""
        width = item.options.get("width", 75)
        return (
            f'<p style="margin:4px 0; text-align:center;">'
            f'<img src="{escape(src, quote=True)}" width="{int(width)}"></p>'
        )

    def _action(self, record, item, **_):
        label = item.heading or item.text
        if not label:
            return ""
        target = item.id or label
        return (
            f'<p style="margin:2px 0;"><a href="action:{escape(str(target), quote=True)}" '
            f'style="color:{MAROON};">{escape(label)}</a></p>'
        )

    def _javascript(self, record, item, **_):
        if not item.code:
            return ""
        try:
            result = script.evaluate(item.code, {"monster": record, "plugin": self.plugin})
        except ConditionScriptError as exc:
            logger.warning("javascript block %s failed: %s", item.id or "<anonymous>", exc)
            return ""
        text = stringify(result)
        if not text:
            return ""
        return f'<p style="margin:3px 0;">{escape(text)}</p>'

    # ── Pieces of expanded items ─────────────────────────────────────

    def _section(self, record, item, text: str = "", **_):
        return section_header(text) if text else ""

    def _trait(self, record, item, trait: Optional[Trait] = None, name_suffix: str = "", **_):
        if trait is None or not (trait.name or trait.desc):
            return ""
        desc = linkify_conditions(escape(trait.desc)).replace("\n", "<br>")
        name = f'<b><i>{escape(trait.name)}{name_suffix}.</i></b> ' if trait.name else ""
        return f'<p style="margin:3px 0;">{name}{desc}</p>'

    def _subheading_text(self, record, item, text: str = "", **_):
        if not text:
            return ""
        return f'<p style="margin:2px 0; font-style:italic;">{escape(text)}</p>'

    def _spell_line(self, record, item, entry: Optional[SpellEntry] = None,
                    first: bool = False, last: bool = False, **_):
        # Spell text arrives already linkified
        if entry is None or not entry.spells:
            return ""
        top = 3 if first else 1
        bottom = 6 if last else 1
        level = f'<i>{escape(entry.level)}:</i> ' if entry.level else ""
        return (
            f'<p style="margin:{top}px 0 {bottom}px 12px;">'
            f'{level}{entry.spells}</p>'
        )

    def _rule(self, record, item, **_):
        return divider()

    def _inline(self, record, item, children=(), **_):
        cells = [c.html for c in children if not c.is_empty]
        if not cells:
            return ""
        width = 100 // len(cells)
        row = "".join(
            f'<td style="width:{width}%; vertical-align:top; padding:0 4px;">{html}</td>'
            for html in cells
        )
        return f'<table width="100%" style="border-collapse:collapse; margin:4px 0;"><tr>{row}</tr></table>'

    def _collapse(self, record, item, children=(), **_):
        body = "".join(c.html for c in children if not c.is_empty)
        if not body:
            return ""
        header = section_header(f"▾ {item.heading}") if item.heading else ""
        return f'{header}<div style="margin-left:6px;">{body}</div>'
