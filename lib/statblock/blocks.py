# statblock/blocks.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from statblock.items import StatblockItem


@dataclass
class Block:
    """One renderable unit: the atom the column balancer distributes.

    ``html`` is the complete fragment for the block (wrappers such as inline
    rows already contain their children's markup); ``children`` keeps the
    structure for callers that need it. ``height`` is filled in by a measurer
    and is ignored by equality.
    """
    kind: str
    html: str = ""
    classes: Tuple[str, ...] = ()
    children: List[Block] = field(default_factory=list)
    height: Optional[float] = field(default=None, compare=False)

    @property
    def is_empty(self) -> bool:
        return not self.html.strip()


class BlockProducer(Protocol):
    """Renders one block kind for an item. Returns an empty Block when there is no content."""

    def produce(
        self, kind: str, record: Mapping[str, Any], item: StatblockItem, **props: Any
    ) -> Block: ...
