# statblock/columns.py
"""
Column balancing for measured blocks.

The split height (per-column budget) is chosen once per render pass:

    1. forceColumns        -> total / max_columns
    2. record columns = k  -> max(total / k, total / columns)
    3. otherwise           -> clamp(total / columns, min_split_height, columnHeight or inf)

assign_columns then fills columns greedily in document order, opening a new
column whenever the next block would push the current one past the budget.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Number
from typing import Any, List, Mapping, Optional, Sequence, TypeVar

from statblock.config import Settings

T = TypeVar("T")

DEFAULT_MIN_SPLIT_HEIGHT = 600.0


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 1 else None


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, Number):
        return None
    return float(value) if value > 0 else None


def column_width_css(value: Any, default: str) -> str:
    """120 -> '120px'; '30%' stays '30%'; anything else -> default."""
    if isinstance(value, Number) and not isinstance(value, bool) and value > 0:
        return f"{value:g}px"
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


@dataclass
class ColumnConfig:
    # Explicit column count from the record, if any
    columns: Optional[int] = None
    max_columns: int = 2
    max_height: Optional[float] = None
    force_columns: bool = False
    column_width: str = "400px"
    min_split_height: float = DEFAULT_MIN_SPLIT_HEIGHT

    @staticmethod
    def from_record(record: Mapping[str, Any], settings: Optional[Settings] = None) -> ColumnConfig:
        settings = settings or Settings()
        columns = _positive_int(record.get("columns"))
        return ColumnConfig(
            columns=columns,
            max_columns=columns or max(1, settings.max_columns),
            max_height=_positive_number(record.get("columnHeight")),
            force_columns=bool(record.get("forceColumns")),
            column_width=column_width_css(record.get("columnWidth"), settings.column_width),
            min_split_height=settings.min_split_height,
        )


def split_height(total_height: float, columns: int, config: ColumnConfig) -> float:
    columns = max(1, int(columns))
    if config.force_columns:
        return total_height / max(1, config.max_columns)
    if config.columns:
        return max(total_height / config.columns, total_height / columns)
    upper = config.max_height if config.max_height is not None else math.inf
    return min(max(total_height / columns, config.min_split_height), upper)


def assign_columns(
    heights: Sequence[float], columns: int, config: ColumnConfig
) -> List[List[int]]:
    """Greedy in-order fill. Returns block indices grouped by column."""
    if not heights:
        return []
    budget = split_height(sum(heights), columns, config)

    result: List[List[int]] = [[]]
    running = 0.0
    for index, height in enumerate(heights):
        # Tolerate float rounding in the running sum
        overflow = running + height > budget and not math.isclose(running + height, budget)
        if result[-1] and overflow:
            result.append([])
            running = 0.0
        result[-1].append(index)
        running += height
    return result


def balance(
    blocks: Sequence[T], heights: Sequence[float], columns: int, config: ColumnConfig
) -> List[List[T]]:
    """assign_columns applied to *blocks*; order is preserved within and across columns."""
    if len(blocks) != len(heights):
        raise ValueError(f"Got {len(heights)} heights for {len(blocks)} blocks")
    return [[blocks[i] for i in column] for column in assign_columns(heights, columns, config)]


def assign(blocks: Sequence[Any], columns: int, config: ColumnConfig) -> List[List[Any]]:
    """Balance blocks that already carry a measured ``height`` (None counts as 0)."""
    heights = [float(getattr(b, "height", None) or 0.0) for b in blocks]
    return balance(blocks, heights, columns, config)
