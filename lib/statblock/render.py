# statblock/render.py
"""
One render pass: expand the layout, measure every block off-screen, balance
the measured blocks into columns, hand the columns to the caller.

Measurement is asynchronous: a Measurer calls ``on_built(heights)`` exactly
once when its detached render has laid out every block. Nothing is balanced
until that happens. Each build() starts a new pass; a late callback from an
older pass is dropped so two measurements never race to the display.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence

from statblock.blocks import Block
from statblock.columns import ColumnConfig, balance
from statblock.config import Settings
from statblock.expander import ExpandContext, TreeExpander
from statblock.items import StatblockItem

logger = logging.getLogger(__name__)


class Measurer(Protocol):
    def measure(
        self,
        blocks: Sequence[Block],
        column_width: str,
        on_built: Callable[[List[float]], None],
    ) -> None: ...


@dataclass
class RenderResult:
    pass_id: int
    columns: List[List[Block]]
    config: ColumnConfig
    blocks: List[Block] = field(default_factory=list)


class StatblockRenderer:
    def __init__(
        self,
        expander: TreeExpander,
        measurer: Measurer,
        settings: Optional[Settings] = None,
    ):
        self.expander = expander
        self.measurer = measurer
        self.settings = settings or Settings()
        self._pass_id = 0

    @property
    def current_pass(self) -> int:
        return self._pass_id

    def build(
        self,
        items: List[StatblockItem],
        record: Mapping[str, Any],
        on_ready: Callable[[RenderResult], None],
        *,
        columns: Optional[int] = None,
        ctx: Optional[ExpandContext] = None,
    ) -> int:
        """Start a pass. Returns its id; *on_ready* fires once the pass is balanced."""
        self._pass_id += 1
        pass_id = self._pass_id

        ctx = ctx or ExpandContext(context_id=record.get("name"))
        blocks = self.expander.expand(items, record, ctx)
        config = ColumnConfig.from_record(record, self.settings)
        container_columns = columns or self.settings.default_columns

        fired = []

        def _on_built(heights: List[float]) -> None:
            # "built" is one-shot per pass
            if fired:
                return
            fired.append(True)
            if pass_id != self._pass_id:
                logger.debug("Dropping measurements from stale pass %d", pass_id)
                return
            if len(heights) != len(blocks):
                logger.warning(
                    "Measurer returned %d heights for %d blocks; pass %d abandoned",
                    len(heights), len(blocks), pass_id,
                )
                return
            for block, height in zip(blocks, heights):
                block.height = height
            laid_out = balance(blocks, heights, container_columns, config)
            on_ready(RenderResult(pass_id=pass_id, columns=laid_out, config=config, blocks=blocks))

        if not blocks:
            on_ready(RenderResult(pass_id=pass_id, columns=[], config=config))
            return pass_id

        self.measurer.measure(blocks, config.column_width, _on_built)
        return pass_id
