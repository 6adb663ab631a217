# statblock/conditions.py
"""
Visibility rules for layout items and branch selection for ifelse.

Entry points:
    is_visible(item, record) -> bool
    has_data(value) -> bool
    evaluate_branch(condition, record, plugin) -> bool
    select_branch(item, record, plugin) -> IfElseBranch | None
"""
from __future__ import annotations

import logging
from numbers import Number
from typing import Any, Mapping, Optional

from statblock import script
from statblock.exceptions import ConditionScriptError
from statblock.items import IfElseBranch, SELF_DECIDING_TYPES, StatblockItem

logger = logging.getLogger(__name__)


def has_data(value: Any) -> bool:
    """A property 'has data' if it is a non-empty list/string or any number, zero included."""
    if isinstance(value, bool):
        return False
    if isinstance(value, Number):
        return True
    if isinstance(value, (str, list, tuple)):
        return len(value) > 0
    return False


def is_visible(item: StatblockItem, record: Mapping[str, Any]) -> bool:
    if not item.conditioned:
        return True
    if item.nested:
        return any(is_visible(child, record) for child in item.nested)
    if item.type in SELF_DECIDING_TYPES:
        return True
    if not item.properties:
        return True
    return any(has_data(record.get(prop)) for prop in item.properties)


def evaluate_branch(condition: Optional[str], record: Mapping[str, Any], plugin: Any = None) -> bool:
    """Run one branch condition in a throwaway sandbox. Failures count as False."""
    try:
        return script.evaluate_condition(condition, {"monster": record, "plugin": plugin})
    except ConditionScriptError as exc:
        logger.warning("Skipping ifelse branch %r: %s", condition, exc)
        return False


def select_branch(
    item: StatblockItem, record: Mapping[str, Any], plugin: Any = None
) -> Optional[IfElseBranch]:
    """First branch whose condition holds, else the trailing empty-condition default."""
    branches = item.branches
    for index, branch in enumerate(branches):
        if branch.is_default:
            if index == len(branches) - 1:
                return branch
            continue
        if evaluate_branch(branch.condition, record, plugin):
            return branch
    return None
