# statblock/exceptions.py


class StatblockError(Exception):
    """Base class for every error raised inside the layout engine."""


class ConditionScriptError(StatblockError):
    """An ifelse condition (or javascript block) failed to parse or run."""


class MalformedDataError(StatblockError):
    """A record field or layout node does not have the shape an item expects."""


class GroupingError(StatblockError):
    """A spell list entry could not be destructured into level and text."""


class LayoutResolutionMiss(StatblockError):
    """A named layout reference resolved to nothing."""

    def __init__(self, name: str):
        super().__init__(f"Layout not found or empty: {name!r}")
        self.name = name
