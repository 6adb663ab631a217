# ui/statblock_widget.py
"""
StatblockWidget — shows a record rendered through a layout as side-by-side
QTextBrowser columns balanced by height.

Conditions and spells in the text are anchor links; hovering one shows a
tooltip.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from PyQt5.QtCore import QPoint, Qt
from PyQt5.QtWidgets import QHBoxLayout, QTextBrowser, QToolTip, QWidget

from statblock.blocks import Block
from statblock.config import Settings, load_settings
from statblock.expander import ExpandContext, TreeExpander
from statblock.html_blocks import BG, RED, HtmlBlockProducer
from statblock.items import Layout
from statblock.layouts import DEFAULT_LAYOUT, LayoutRegistry
from statblock.linkify import Linkifier
from statblock.render import RenderResult, StatblockRenderer
from ui.measure import DocumentMeasurer, css_to_pixels

logger = logging.getLogger(__name__)

_PAGE_STYLE = (
    f'background-color:{BG};'
    f'font-family:&quot;Palatino Linotype&quot;,Palatino,serif;'
    f'font-size:13px;'
    f'margin:0;'
)


# ── Column pane ─────────────────────────────────────────────────────

class ColumnBrowser(QTextBrowser):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setOpenLinks(False)
        self.setMouseTracking(True)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAsNeeded)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self._last_mouse_pos: QPoint = QPoint(0, 0)

        # highlighted(str) fires when the mouse moves over/away from a link
        self.highlighted[str].connect(self._on_link_hovered)

    def show_blocks(self, blocks: List[Block]) -> None:
        body = "".join(b.html for b in blocks)
        self.setHtml(f'<html><body style="{_PAGE_STYLE}">{body}</body></html>')

    def mouseMoveEvent(self, event) -> None:
        self._last_mouse_pos = event.pos()
        super().mouseMoveEvent(event)

    def _on_link_hovered(self, url: str) -> None:
        if not url:
            QToolTip.hideText()
            return

        global_pos = self.mapToGlobal(self._last_mouse_pos)
        scheme, _, target = url.partition(":")

        if scheme == "condition":
            QToolTip.showText(
                global_pos, f"<b style='color:{RED};'>{target.capitalize()}</b>", self
            )
        elif scheme == "spell":
            name = target.replace("_", " ").title()
            QToolTip.showText(global_pos, f"<i>Spell: {name}</i>", self)
        elif scheme == "note":
            QToolTip.showText(global_pos, f"<i>{target}</i>", self)


# ── Widget ──────────────────────────────────────────────────────────

class StatblockWidget(QWidget):
    def __init__(
        self,
        parent=None,
        settings: Optional[Settings] = None,
        layouts: Optional[LayoutRegistry] = None,
        plugin: Any = None,
    ):
        super().__init__(parent)
        self.settings = settings or load_settings()
        self.layouts = layouts or LayoutRegistry()
        self.layouts.load_directory(self.settings.layout_dir)
        self.plugin = plugin

        self.measurer = DocumentMeasurer(self)
        self.renderer = StatblockRenderer(
            TreeExpander(HtmlBlockProducer(plugin=plugin), Linkifier()),
            self.measurer,
            self.settings,
        )

        self._columns_layout = QHBoxLayout(self)
        self._columns_layout.setContentsMargins(0, 0, 0, 0)
        self._columns_layout.setSpacing(12)
        self._panes: List[ColumnBrowser] = []

        self.clear_statblock()

    # ── Public API ───────────────────────────────────────────────────

    def load_statblock(
        self,
        record: Mapping[str, Any],
        layout: Optional[Layout] = None,
        columns: Optional[int] = None,
    ) -> int:
        """Start a render pass for *record*. A newer call supersedes an unfinished one."""
        layout = layout or DEFAULT_LAYOUT
        ctx = ExpandContext(
            plugin=self.plugin,
            layouts=self.layouts,
            context_id=record.get("name"),
            classes=(layout.class_name,),
        )
        if layout.column_width and not record.get("columnWidth"):
            record = {**record, "columnWidth": layout.column_width}
        return self.renderer.build(
            layout.blocks, record, self._show_result, columns=columns, ctx=ctx
        )

    def clear_statblock(self) -> None:
        """Show an empty placeholder state."""
        pane = self._set_pane_count(1)[0]
        pane.setHtml(
            f'<body style="background-color:{BG}; color:#999; '
            f'font-family:&quot;Palatino Linotype&quot;,Palatino,serif;">'
            f'<p style="margin:20px; text-align:center; font-style:italic;">'
            f'No statblock loaded.</p></body>'
        )

    # ── Internals ────────────────────────────────────────────────────

    def _show_result(self, result: RenderResult) -> None:
        if not result.columns:
            self.clear_statblock()
            return
        width = css_to_pixels(result.config.column_width)
        panes = self._set_pane_count(len(result.columns))
        for pane, blocks in zip(panes, result.columns):
            pane.setMinimumWidth(int(width))
            pane.show_blocks(blocks)
        logger.debug(
            "Pass %d laid out %d blocks in %d columns",
            result.pass_id, len(result.blocks), len(result.columns),
        )

    def _set_pane_count(self, count: int) -> List[ColumnBrowser]:
        while len(self._panes) > count:
            pane = self._panes.pop()
            self._columns_layout.removeWidget(pane)
            pane.deleteLater()
        while len(self._panes) < count:
            pane = ColumnBrowser(self)
            self._columns_layout.addWidget(pane)
            self._panes.append(pane)
        return self._panes
