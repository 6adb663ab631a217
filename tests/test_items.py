"""Tests for lib/statblock/items.py"""

import pytest
from statblock.exceptions import MalformedDataError
from statblock.items import (
    ItemType,
    Layout,
    StatblockItem,
    Trait,
    parse_items,
    parse_layout,
)


class TestStatblockItemFromDict:
    def test_camel_case_keys(self):
        item = StatblockItem.from_dict({
            "type": "traits",
            "heading": "Legendary Actions",
            "properties": ["legendary_actions"],
            "hasRule": True,
            "conditioned": 1,
            "subheadingText": "{{monster}} can take 3 legendary actions.",
        })
        assert item.type is ItemType.TRAITS
        assert item.has_rule is True
        assert item.conditioned is True
        assert item.first_property == "legendary_actions"
        assert item.subheading_text.startswith("{{monster}}")

    def test_unknown_keys_kept_as_options(self):
        item = StatblockItem.from_dict({"type": "image", "properties": ["image"], "width": 120})
        assert item.options == {"width": 120}

    def test_nested_children(self):
        item = StatblockItem.from_dict({
            "type": "group",
            "nested": [{"type": "heading", "properties": ["name"]}],
        })
        assert item.is_composite
        assert item.nested[0].type is ItemType.HEADING

    def test_ifelse_branches(self):
        item = StatblockItem.from_dict({
            "type": "ifelse",
            "conditions": [
                {"condition": "monster.cr > 5", "blocks": [{"type": "text", "text": "Boss"}]},
                {"condition": "", "nested": [{"type": "text", "text": "Minion"}]},
            ],
        })
        assert len(item.branches) == 2
        assert not item.branches[0].is_default
        assert item.branches[1].is_default
        assert item.branches[1].nested[0].text == "Minion"

    def test_unknown_type(self):
        with pytest.raises(MalformedDataError):
            StatblockItem.from_dict({"type": "sparkles"})

    def test_non_mapping(self):
        with pytest.raises(MalformedDataError):
            StatblockItem.from_dict(["type", "text"])

    def test_parse_items_requires_list(self):
        with pytest.raises(MalformedDataError):
            parse_items({"type": "text"})


class TestTrait:
    def test_desc(self):
        assert Trait.from_value({"name": "Keen Smell", "desc": "Advantage."}) == Trait("Keen Smell", "Advantage.")

    def test_description_spelling(self):
        assert Trait.from_value({"name": "Bite", "description": "1d6"}).desc == "1d6"

    def test_list_description_joined(self):
        assert Trait.from_value({"name": "x", "desc": ["a", "b"]}).desc == "a\nb"

    def test_non_mapping(self):
        with pytest.raises(MalformedDataError):
            Trait.from_value("Keen Smell")


class TestLayout:
    def test_class_name(self):
        assert Layout(name="Basic 5e Layout").class_name == "basic-5e-layout"
        assert Layout(name="!!!").class_name == "layout"

    def test_parse_layout(self):
        layout = parse_layout({
            "name": "Tiny",
            "columnWidth": 300,
            "blocks": [{"type": "heading", "properties": ["name"]}],
        })
        assert layout.column_width == 300
        assert layout.blocks[0].type is ItemType.HEADING

    def test_parse_layout_needs_name(self):
        with pytest.raises(MalformedDataError):
            parse_layout({"blocks": []})
