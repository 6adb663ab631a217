"""Tests for lib/statblock/html_blocks.py"""

import json
import logging
import os

import pytest
from statblock.exceptions import MalformedDataError
from statblock.expander import ExpandContext, TreeExpander
from statblock.html_blocks import (
    HtmlBlockProducer,
    linkify_conditions,
    modifier,
    signed,
    stringify,
)
from statblock.items import StatblockItem, Trait
from statblock.layouts import DEFAULT_LAYOUT
from statblock.linkify import Linkifier
from statblock.spells import SpellEntry

MONSTERS_DIR = os.path.join(os.path.dirname(__file__), "fixtures", "monsters")


def _load_monster(name):
    with open(os.path.join(MONSTERS_DIR, f"{name}.json"), "r") as f:
        return json.load(f)


def _item(**data):
    return StatblockItem.from_dict(data)


# ── Helpers ─────────────────────────────────────────────────────────

class TestHelpers:
    @pytest.mark.parametrize("score,expected", [(10, "+0"), (8, "-1"), (15, "+2"), (1, "-5"), (30, "+10")])
    def test_modifier(self, score, expected):
        assert modifier(score) == expected

    def test_signed(self):
        assert signed(4) == "+4"
        assert signed(-1) == "-1"
        assert signed("+3") == "+3"

    def test_stringify(self):
        assert stringify(None) == ""
        assert stringify(0) == "0"
        assert stringify(["Common", "", "Goblin"]) == "Common, Goblin"
        assert stringify({"walk": "30 ft.", "fly": "", "swim": "20 ft."}) == "walk 30 ft., swim 20 ft."

    def test_condition_links(self):
        html = linkify_conditions("The target is Frightened and prone.")
        assert 'href="condition:frightened"' in html
        assert ">Frightened</a>" in html
        assert 'href="condition:prone"' in html


# ── Leaf renderers ──────────────────────────────────────────────────

class TestProducer:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.producer = HtmlBlockProducer()
        self.record = _load_monster("goblin_shaman")

    def _html(self, kind, item, **props):
        return self.producer.produce(kind, self.record, item, **props).html

    def test_property(self):
        html = self._html("property", _item(type="property", heading="Armor Class", properties=["ac"]))
        assert '<b style="color:#7A1F1F;">Armor Class</b> 13 (leather armor)' in html

    def test_property_without_value_is_empty(self):
        block = self.producer.produce(
            "property", self.record, _item(type="property", heading="Reactions", properties=["reactions"])
        )
        assert block.is_empty

    def test_table_appends_modifiers(self):
        html = self._html("table", _item(type="table", properties=["stats"]))
        assert "8 (-1)" in html
        assert "14 (+2)" in html
        assert ">STR</th>" in html

    def test_table_without_modifiers(self):
        html = self._html("table", _item(type="table", properties=["stats"], calculateModifiers=False))
        assert "(-1)" not in html

    def test_table_rejects_scalar(self):
        with pytest.raises(MalformedDataError):
            self.producer.produce("table", {"stats": "high"}, _item(type="table", properties=["stats"]))

    def test_saves(self):
        html = self._html("saves", _item(type="saves", heading="Saving Throws", properties=["saves"]))
        assert "Wisdom +4" in html

    def test_saves_mapping(self):
        html = self.producer.produce(
            "saves", {"saves": {"dex": 5, "con": -1}}, _item(type="saves", properties=["saves"])
        ).html
        assert "Dex +5, Con -1" in html

    def test_malformed_saves(self):
        with pytest.raises(MalformedDataError):
            self.producer.produce("saves", {"saves": ["wisdom"]}, _item(type="saves", properties=["saves"]))

    def test_subheading(self):
        html = self._html(
            "subheading",
            _item(type="subheading", properties=["size", "type", "subtype", "alignment"], separator=" "),
        )
        assert "Small humanoid (goblinoid) neutral evil" in html

    def test_text_escapes_markup(self):
        html = self._html("text", _item(type="text", text="<script>alert(1)</script>"))
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_javascript(self):
        html = self._html("javascript", _item(type="javascript", code="monster.name + ' roars'"))
        assert "Goblin Shaman roars" in html

    def test_javascript_failure_renders_nothing(self, caplog):
        with caplog.at_level(logging.WARNING, logger="statblock.html_blocks"):
            block = self.producer.produce(
                "javascript", self.record, _item(type="javascript", code="__import__('os')")
            )
        assert block.is_empty
        assert "javascript block" in caplog.text

    def test_trait(self):
        html = self._html("trait", _item(type="traits"), trait=Trait("Nimble Escape", "Hide as a bonus action."))
        assert "<b><i>Nimble Escape.</i></b> Hide as a bonus action." in html

    def test_spell_line_keeps_links(self):
        entry = SpellEntry(level="Cantrips (at will)", spells='<a href="spell:guidance">guidance</a>')
        html = self._html("spell-line", _item(type="spells"), entry=entry, first=True, last=False)
        assert "<i>Cantrips (at will):</i>" in html
        assert '<a href="spell:guidance">guidance</a>' in html

    def test_unknown_kind(self):
        with pytest.raises(MalformedDataError):
            self.producer.produce("sparkles", self.record, _item(type="text", text="x"))


# ── Full statblocks with the built-in layout ────────────────────────

class TestDefaultLayout:
    def _expand(self, record):
        expander = TreeExpander(HtmlBlockProducer(), Linkifier())
        ctx = ExpandContext(context_id=record["name"], classes=(DEFAULT_LAYOUT.class_name,))
        return expander.expand(DEFAULT_LAYOUT.blocks, record, ctx)

    def test_goblin_shaman(self):
        blocks = self._expand(_load_monster("goblin_shaman"))
        html = "".join(b.html for b in blocks)
        assert "Goblin Shaman" in html
        assert 'href="spell:guidance"' in html
        assert 'href="spell:hold_person"' in html
        assert 'href="condition:frightened"' in html
        assert "Wisdom +4" in html
        assert all("basic-5e-layout" in b.classes for b in blocks)

    def test_spell_lines_flag_first_and_last(self):
        blocks = [b for b in self._expand(_load_monster("goblin_shaman")) if b.kind == "spell-line"]
        assert len(blocks) == 3
        assert "margin:3px 0 1px" in blocks[0].html
        assert "margin:1px 0 6px" in blocks[-1].html

    def test_spell_markup_is_escaped(self):
        record = {"name": "Cultist", "spells": ["Spells:", {"1st": "a <b> c"}, "At <will>: light"]}
        for linkifier in (None, Linkifier()):
            expander = TreeExpander(HtmlBlockProducer(), linkifier)
            blocks = expander.expand(DEFAULT_LAYOUT.blocks, record, ExpandContext(context_id="Cultist"))
            html = "".join(b.html for b in blocks if b.kind == "spell-line")
            assert "<b>" not in html
            assert "<will>" not in html
            assert "&lt;will&gt;" in html

    def test_commoner(self):
        blocks = self._expand(_load_monster("commoner"))
        html = "".join(b.html for b in blocks)
        assert "Challenge</b> 0" in html
        assert not [b for b in blocks if b.kind == "spell-line"]
        assert "Club" in html
        assert all(not b.is_empty for b in blocks)
