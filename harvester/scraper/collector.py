"""Raw block collection: turns matched markup fragments into plain text blocks."""

from __future__ import annotations

import re
from typing import Iterable, List

from bs4 import BeautifulSoup

# Runs of periods first so "..." becomes one space, then anything that is not
# an ASCII letter or a dash.
_NON_WORD = re.compile(r"\.+|[^A-Za-z\-]")
_WHITESPACE_RUN = re.compile(r"[ \t\r\n]+")


def _strip_markup(fragment: str) -> str:
    """Return the rendered text of *fragment* with every tag removed."""
    soup = BeautifulSoup(fragment, "html.parser")
    return soup.get_text(separator=" ")


def clean_fragment(fragment: str) -> str:
    """Normalize one raw fragment into a single-line text block.

    Never raises: malformed markup degrades to whatever text survives, which
    may be an empty string or a lone space.
    """
    text = _strip_markup(fragment)
    text = _NON_WORD.sub(" ", text)
    return _WHITESPACE_RUN.sub(" ", text)


def clean(fragments: Iterable[str]) -> List[str]:
    """Clean every fragment in order; one block per fragment."""
    return [clean_fragment(fragment) for fragment in fragments]
