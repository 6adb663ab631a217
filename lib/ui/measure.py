# ui/measure.py
"""
DocumentMeasurer: lays each block out in a detached QTextDocument at the
column width, reports the heights once through the ``built`` signal and the
caller's callback; the documents are dropped afterwards.
"""
from __future__ import annotations

import re
from typing import Callable, List, Sequence

from PyQt5.QtCore import QObject, pyqtSignal
from PyQt5.QtGui import QTextDocument

from statblock.blocks import Block
from statblock.html_blocks import TEXT

DEFAULT_WIDTH_PX = 400.0

_BASE_CSS = (
    f'body {{ font-family:"Palatino Linotype",Palatino,serif; font-size:13px; color:{TEXT}; }}'
)


def css_to_pixels(width: str, default: float = DEFAULT_WIDTH_PX) -> float:
    """'400px' -> 400.0, '320' -> 320.0; relative units fall back to *default*."""
    m = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*(px)?\s*", str(width or ""))
    return float(m.group(1)) if m else default


class DocumentMeasurer(QObject):
    built = pyqtSignal(list)

    def __init__(self, parent=None, stylesheet: str = _BASE_CSS):
        super().__init__(parent)
        self.stylesheet = stylesheet

    def measure(
        self,
        blocks: Sequence[Block],
        column_width: str,
        on_built: Callable[[List[float]], None],
    ) -> None:
        width = css_to_pixels(column_width)
        heights: List[float] = []
        for block in blocks:
            doc = QTextDocument()
            doc.setDefaultStyleSheet(self.stylesheet)
            doc.setDocumentMargin(0)
            doc.setTextWidth(width)
            doc.setHtml(block.html)
            heights.append(doc.size().height())
        self.built.emit(heights)
        on_built(heights)
