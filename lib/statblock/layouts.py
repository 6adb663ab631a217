# statblock/layouts.py
"""
Named layout lookup.

LayoutRegistry.get_layout(name) returns a Layout or None; resolve(name) raises
LayoutResolutionMiss for missing or empty layouts. The registry always holds
the built-in basic 5e layout.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from statblock.exceptions import LayoutResolutionMiss, MalformedDataError
from statblock.items import Layout, parse_layout

logger = logging.getLogger(__name__)

BASIC_5E_LAYOUT: Dict[str, Any] = {
    "name": "Basic 5e Layout",
    "blocks": [
        {
            "type": "group",
            "id": "header",
            "hasRule": True,
            "nested": [
                {"type": "heading", "properties": ["name"], "conditioned": True},
                {
                    "type": "subheading",
                    "properties": ["size", "type", "subtype", "alignment"],
                    "conditioned": True,
                },
            ],
        },
        {
            "type": "group",
            "id": "defenses",
            "hasRule": True,
            "nested": [
                {"type": "property", "heading": "Armor Class", "properties": ["ac"], "conditioned": True},
                {"type": "property", "heading": "Hit Points", "properties": ["hp"], "conditioned": True},
                {"type": "property", "heading": "Speed", "properties": ["speed"], "conditioned": True},
            ],
        },
        {
            "type": "table",
            "properties": ["stats"],
            "headers": ["Str", "Dex", "Con", "Int", "Wis", "Cha"],
            "conditioned": True,
            "hasRule": True,
        },
        {
            "type": "group",
            "id": "details",
            "conditioned": True,
            "hasRule": True,
            "nested": [
                {"type": "saves", "heading": "Saving Throws", "properties": ["saves"], "conditioned": True},
                {"type": "saves", "heading": "Skills", "properties": ["skillsaves"], "conditioned": True},
                {"type": "property", "heading": "Damage Vulnerabilities", "properties": ["damage_vulnerabilities"], "conditioned": True},
                {"type": "property", "heading": "Damage Resistances", "properties": ["damage_resistances"], "conditioned": True},
                {"type": "property", "heading": "Damage Immunities", "properties": ["damage_immunities"], "conditioned": True},
                {"type": "property", "heading": "Condition Immunities", "properties": ["condition_immunities"], "conditioned": True},
                {"type": "property", "heading": "Senses", "properties": ["senses"], "conditioned": True},
                {"type": "property", "heading": "Languages", "properties": ["languages"], "conditioned": True},
                {"type": "property", "heading": "Challenge", "properties": ["cr"], "conditioned": True},
            ],
        },
        {"type": "traits", "properties": ["traits"], "conditioned": True},
        {"type": "spells", "properties": ["spells"], "conditioned": True},
        {"type": "traits", "heading": "Actions", "properties": ["actions"], "conditioned": True},
        {"type": "traits", "heading": "Bonus Actions", "properties": ["bonus_actions"], "conditioned": True},
        {"type": "traits", "heading": "Reactions", "properties": ["reactions"], "conditioned": True},
        {
            "type": "traits",
            "heading": "Legendary Actions",
            "properties": ["legendary_actions"],
            "subheadingText": (
                "{{monster}} can take 3 legendary actions, choosing from the options below. "
                "Only one legendary action can be used at a time and only at the end of "
                "another creature's turn. {{monster}} regains spent legendary actions at "
                "the start of its turn."
            ),
            "conditioned": True,
        },
        {"type": "traits", "heading": "Lair Actions", "properties": ["lair_actions"], "conditioned": True},
    ],
}

DEFAULT_LAYOUT: Layout = parse_layout(BASIC_5E_LAYOUT)


class LayoutRegistry:
    def __init__(self, layouts: Optional[List[Layout]] = None):
        self.layouts: Dict[str, Layout] = {DEFAULT_LAYOUT.name: DEFAULT_LAYOUT}
        for layout in layouts or []:
            self.register(layout)

    def register(self, layout: Layout) -> None:
        self.layouts[layout.name] = layout

    def get_layout(self, name: Optional[str]) -> Optional[Layout]:
        if not name:
            return None
        return self.layouts.get(name)

    def resolve(self, name: Optional[str]) -> Layout:
        layout = self.get_layout(name)
        if layout is None or not layout.blocks:
            raise LayoutResolutionMiss(name or "")
        return layout

    def names(self) -> List[str]:
        return sorted(self.layouts)

    def load_directory(self, path: str) -> int:
        """Register every *.json layout in *path*. Returns how many loaded."""
        if not os.path.isdir(path):
            return 0
        loaded = 0
        for filename in sorted(os.listdir(path)):
            if not filename.endswith(".json"):
                continue
            full = os.path.join(path, filename)
            try:
                with open(full, "r", encoding="utf-8") as f:
                    self.register(parse_layout(json.load(f)))
                loaded += 1
            except (OSError, ValueError, MalformedDataError) as exc:
                logger.warning("Skipping layout file %s: %s", full, exc)
        return loaded
