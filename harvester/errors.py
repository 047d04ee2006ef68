"""Exceptions raised by the harvester pipeline."""

from __future__ import annotations


class HarvestError(Exception):
    """Base class for all harvester errors."""


class ReviewParseError(HarvestError):
    """A reviewer/rating block has none of the separator phrases.

    Attributes:
        index: Zero-based pair index of the failing record within its page.
        block: The offending reviewer/rating block.
    """

    def __init__(self, index: int, block: str) -> None:
        self.index = index
        self.block = block
        excerpt = block if len(block) <= 80 else block[:77] + "..."
        super().__init__(f"No separator phrase in reviewer block #{index}: {excerpt!r}")


class NavigationError(HarvestError):
    """The page source could not reach the next page after retrying."""
