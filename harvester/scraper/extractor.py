"""Review record extraction: splits paired text blocks into :class:`ReviewRecord`.

Each review arrives as two consecutive blocks:

    reviewer block   "Jane Doe rated it it was amazing Shelves favorites"
    body block       "<preview> ... <full body> Blog ..."

The reviewer block is cut at the earliest *separator phrase* ("rated it",
"marked it", "added it") and again at the earliest *terminator marker*.  The
body block is cut at the second copy of its 50-character preview and at the
first *truncation marker*.  Every marker table lives in
:class:`ExtractionPatterns` so page-template changes only touch data.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from harvester.errors import ReviewParseError
from harvester.scraper.models import ParseErrorPolicy, ReviewRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pattern tables
# ---------------------------------------------------------------------------

DEFAULT_SEPARATORS: Tuple[str, ...] = (" rated it ", " marked it ", " added it ")

DEFAULT_TERMINATORS: Tuple[str, ...] = (
    "· ",
    " Shelves",
    " Recommend",
    " review of another edition",
)

DEFAULT_TRUNCATION_MARKERS: Tuple[str, ...] = (r"\.+more", r"Blog")

# Named boilerplate that can precede the reviewer name.  Applied in order,
# each at most once, anchored at the current start of the name.
DEFAULT_BOILERPLATE_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("leading_space", r"\s+"),
    ("review_by", r"Review\s+by\s+"),
)

PREVIEW_LENGTH = 50


@dataclass(frozen=True)
class ExtractionPatterns:
    """Marker tables used by :class:`ReviewRecordExtractor`.

    ``separators`` and ``terminators`` are literal phrases;
    ``truncation_markers`` and the second item of each
    ``boilerplate_prefixes`` pair are regular expressions.
    """

    separators: Tuple[str, ...] = DEFAULT_SEPARATORS
    terminators: Tuple[str, ...] = DEFAULT_TERMINATORS
    truncation_markers: Tuple[str, ...] = DEFAULT_TRUNCATION_MARKERS
    boilerplate_prefixes: Tuple[Tuple[str, str], ...] = DEFAULT_BOILERPLATE_PREFIXES
    preview_length: int = PREVIEW_LENGTH


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _earliest(text: str, phrases: Sequence[str], start: int = 0) -> Optional[Tuple[int, str]]:
    """Return ``(position, phrase)`` of the earliest phrase found in *text*.

    Ties go to the phrase listed first.
    """
    best: Optional[Tuple[int, str]] = None
    for phrase in phrases:
        pos = text.find(phrase, start)
        if pos != -1 and (best is None or pos < best[0]):
            best = (pos, phrase)
    return best


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class ReviewRecordExtractor:
    """Deterministic parser from (reviewer block, body block) pairs to records."""

    def __init__(
        self,
        patterns: ExtractionPatterns | None = None,
        policy: ParseErrorPolicy | str = ParseErrorPolicy.SKIP,
    ) -> None:
        self.patterns = patterns or ExtractionPatterns()
        self.policy = ParseErrorPolicy(policy)
        self._prefixes = [
            (name, re.compile(pattern)) for name, pattern in self.patterns.boilerplate_prefixes
        ]
        markers = self.patterns.truncation_markers
        self._truncation = (
            re.compile("|".join(f"(?:{marker})" for marker in markers)) if markers else None
        )

    # ------------------------------------------------------------------
    # Field extractors
    # ------------------------------------------------------------------
    def split_reviewer_block(self, block: str, index: int = 0) -> Tuple[str, str]:
        """Return ``(reviewer, rating)`` from a reviewer/rating block.

        Raises:
            ReviewParseError: If none of the separator phrases is present.
        """
        found = _earliest(block, self.patterns.separators)
        if found is None:
            raise ReviewParseError(index, block)
        sep_pos, separator = found

        reviewer = self.strip_boilerplate(block[:sep_pos])

        rating_start = sep_pos + len(separator)
        # A terminator may share the separator's trailing space.
        search_from = sep_pos + len(separator.rstrip())
        terminator = _earliest(block, self.patterns.terminators, search_from)
        if terminator is None:
            logger.debug("Reviewer block #%d has no terminator; rating runs to end", index)
            rating_end = len(block)
        else:
            rating_end = max(terminator[0], rating_start)

        return reviewer, block[rating_start:rating_end].strip()

    def strip_boilerplate(self, name: str) -> str:
        """Remove the named boilerplate prefixes from the start of *name*."""
        for prefix_name, pattern in self._prefixes:
            match = pattern.match(name)
            if match and match.end() < len(name):
                logger.debug("Stripped %s prefix %r", prefix_name, match.group(0))
                name = name[match.end():]
        return name.strip()

    def extract_body(self, block: str, index: int = 0) -> str:
        """Return the review body from *block*, skipping the duplicated preview."""
        preview_length = self.patterns.preview_length
        start = 0
        if len(block) >= preview_length:
            second = block.find(block[:preview_length], 1)
            if second != -1:
                start = second
            else:
                logger.debug("Body block #%d has no duplicated preview", index)

        match = self._truncation.search(block, start) if self._truncation else None
        end = match.start() if match else len(block)
        return block[start:end].strip()

    # ------------------------------------------------------------------
    # Whole-page extraction
    # ------------------------------------------------------------------
    def extract(self, blocks: Sequence[str], book: str) -> List[ReviewRecord]:
        """Parse *blocks* pairwise into records for *book*.

        An odd trailing block has no partner and is dropped.  Blocks whose
        reviewer half cannot be split are handled according to ``policy``.
        """
        if len(blocks) % 2:
            logger.debug("Dropping unpaired trailing block: %r", blocks[-1][:80])

        records: List[ReviewRecord] = []
        for index in range(len(blocks) // 2):
            head, body = blocks[2 * index], blocks[2 * index + 1]
            try:
                reviewer, rating = self.split_reviewer_block(head, index)
            except ReviewParseError as exc:
                if self.policy is ParseErrorPolicy.RAISE:
                    raise
                logger.warning("%s (policy=%s)", exc, self.policy.value)
                if self.policy is ParseErrorPolicy.SKIP:
                    continue
                reviewer, rating = "", ""
            records.append(
                ReviewRecord(
                    book=book,
                    reviewer=reviewer,
                    rating=rating,
                    review=self.extract_body(body, index),
                )
            )
        return records


def extract(
    blocks: Sequence[str],
    book: str,
    policy: ParseErrorPolicy | str = ParseErrorPolicy.SKIP,
) -> List[ReviewRecord]:
    """Extract records with the default pattern tables."""
    return ReviewRecordExtractor(policy=policy).extract(blocks, book)
