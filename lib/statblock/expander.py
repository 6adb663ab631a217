# statblock/expander.py
"""
TreeExpander: walks a layout tree against a data record and produces the flat,
ordered list of Blocks the column balancer works on.

Composite items (group, inline, collapse, ifelse, layout) recurse; leaf items
are handed to the BlockProducer. Everything the walk needs (plugin handle,
layout lookup, accumulated classes) travels in an explicit ExpandContext.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Protocol, Tuple

from statblock.blocks import Block, BlockProducer
from statblock.conditions import is_visible, select_branch
from statblock.exceptions import LayoutResolutionMiss, MalformedDataError
from statblock.items import ItemType, Layout, StatblockItem, Trait
from statblock.spells import TextLinkifier, group_spells

logger = logging.getLogger(__name__)

MONSTER_PLACEHOLDER = "{{monster}}"

# Failures isolated to the item that raised them
_ITEM_ERRORS = (MalformedDataError, TypeError, ValueError, AttributeError, KeyError)


class LayoutLookup(Protocol):
    def get_layout(self, name: Optional[str]) -> Optional[Layout]: ...


@dataclass(frozen=True)
class ExpandContext:
    plugin: Any = None
    layouts: Optional[LayoutLookup] = None
    context_id: Optional[str] = None
    classes: Tuple[str, ...] = ()
    # Layouts currently being expanded up the stack
    active_layouts: FrozenSet[str] = frozenset()

    def with_class(self, cls: Optional[str]) -> ExpandContext:
        if not cls:
            return self
        return replace(self, classes=self.classes + (cls,))


class TreeExpander:
    def __init__(self, producer: BlockProducer, linkifier: Optional[TextLinkifier] = None):
        self.producer = producer
        self.linkifier = linkifier
        self._handlers: Dict[ItemType, Callable[..., List[Block]]] = {
            ItemType.GROUP:      self._group,
            ItemType.INLINE:     self._inline,
            ItemType.COLLAPSE:   self._collapse,
            ItemType.IFELSE:     self._ifelse,
            ItemType.LAYOUT:     self._layout,
            ItemType.SPELLS:     self._spells,
            ItemType.TRAITS:     self._traits,
            ItemType.HEADING:    self._leaf,
            ItemType.SUBHEADING: self._leaf,
            ItemType.PROPERTY:   self._leaf,
            ItemType.SAVES:      self._leaf,
            ItemType.TABLE:      self._leaf,
            ItemType.TEXT:       self._leaf,
            ItemType.IMAGE:      self._leaf,
            ItemType.ACTION:     self._leaf,
            ItemType.JAVASCRIPT: self._leaf,
        }

    # ── Public API ───────────────────────────────────────────────────

    def expand(
        self,
        items: List[StatblockItem],
        record: Mapping[str, Any],
        ctx: Optional[ExpandContext] = None,
    ) -> List[Block]:
        """Expand *items* in order; never raises for a single malformed item."""
        ctx = ctx or ExpandContext()
        blocks: List[Block] = []
        for item in items:
            if not is_visible(item, record):
                continue
            blocks.extend(self._expand_item(item, record, ctx))
        return [b for b in blocks if not b.is_empty]

    # ── Dispatch ─────────────────────────────────────────────────────

    def _expand_item(self, item: StatblockItem, record, ctx: ExpandContext) -> List[Block]:
        handler = self._handlers[item.type]
        try:
            produced = [b for b in handler(item, record, ctx) if not b.is_empty]
        except _ITEM_ERRORS as exc:
            logger.warning(
                "Skipping %s item %s: %s", item.type.value, item.id or item.heading or "", exc
            )
            return []
        if produced and item.has_rule:
            produced.append(self._make("rule", record, item, ctx))
        return produced

    def _make(self, kind: str, record, item: StatblockItem, ctx: ExpandContext, **props) -> Block:
        block = self.producer.produce(kind, record, item, **props)
        block.classes = ctx.with_class(item.cls).classes
        return block

    # ── Composite types ──────────────────────────────────────────────

    def _group(self, item, record, ctx):
        blocks = []
        if item.heading:
            blocks.append(self._make("section", record, item, ctx, text=item.heading))
        blocks.extend(self.expand(item.nested, record, ctx.with_class(item.cls)))
        return blocks

    def _inline(self, item, record, ctx):
        blocks = []
        if item.heading:
            blocks.append(self._make("section", record, item, ctx, text=item.heading))
        children = self.expand(item.nested, record, ctx.with_class(item.cls))
        if children:
            blocks.append(self._make("inline", record, item, ctx, children=children))
        return blocks

    def _collapse(self, item, record, ctx):
        inner = self.expand(item.nested, record, ctx.with_class(item.cls))
        if not inner:
            return []
        return [self._make("collapse", record, item, ctx, children=inner)]

    def _ifelse(self, item, record, ctx):
        branch = select_branch(item, record, ctx.plugin)
        if branch is None:
            return []
        return self.expand(branch.nested, record, ctx.with_class(item.cls))

    def _layout(self, item, record, ctx):
        name = item.layout
        if name in ctx.active_layouts:
            logger.warning("Layout %r references itself; skipping", name)
            return []
        try:
            layout = self._resolve_layout(name, ctx)
        except LayoutResolutionMiss as exc:
            logger.debug("%s", exc)
            return []
        inner = replace(
            ctx.with_class(item.cls).with_class(layout.class_name),
            active_layouts=ctx.active_layouts | {layout.name},
        )
        return self.expand(layout.blocks, record, inner)

    def _resolve_layout(self, name: Optional[str], ctx: ExpandContext) -> Layout:
        layout = ctx.layouts.get_layout(name) if ctx.layouts is not None else None
        if layout is None or not layout.blocks:
            raise LayoutResolutionMiss(name or "")
        return layout

    # ── List-backed types ────────────────────────────────────────────

    def _spells(self, item, record, ctx):
        prop = item.first_property
        raw = record.get(prop) if prop else None
        if not isinstance(raw, (list, tuple)) or not raw:
            return []

        context_id = ctx.context_id or record.get("name")
        groups = group_spells(raw, context_id, self.linkifier, name=record.get("name"))
        blocks = []
        for index, group in enumerate(groups):
            if group.header:
                heading = (item.heading or "Spellcasting") if index == 0 else ""
                blocks.append(
                    self._make("trait", record, item, ctx, trait=Trait(name=heading, desc=group.header))
                )
            last = len(group.spells) - 1
            for n, entry in enumerate(group.spells):
                blocks.append(
                    self._make("spell-line", record, item, ctx, entry=entry, first=n == 0, last=n == last)
                )
        return blocks

    def _traits(self, item, record, ctx):
        prop = item.first_property
        raw = record.get(prop) if prop else None
        if not isinstance(raw, (list, tuple)) or not raw:
            return []
        traits = [Trait.from_value(value) for value in raw]

        blocks = []
        if item.heading:
            blocks.append(self._make("section", record, item, ctx, text=item.heading))
        if item.subheading_text:
            text = item.subheading_text.replace(MONSTER_PLACEHOLDER, str(record.get("name") or ""))
            blocks.append(self._make("subheading-text", record, item, ctx, text=text))
        for index, trait in enumerate(traits):
            # The first entry renders even without a description
            if index > 0 and not trait.desc.strip():
                continue
            blocks.append(self._make("trait", record, item, ctx, trait=trait))
        return blocks

    # ── Leaves ───────────────────────────────────────────────────────

    def _leaf(self, item, record, ctx):
        return [self._make(item.type.value, record, item, ctx)]
