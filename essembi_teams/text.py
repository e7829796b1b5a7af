"""
text.py — Small text helpers shared by the dialog, cards and parser.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup

LINE_BREAK = re.compile(r"\r\n|\r|\n")
RICH_TEXT_BREAK = "<br />"
BLOCK_TAGS = ["p", "div", "li", "tr"]


def first_line(text: Optional[str]) -> Optional[str]:
    """Return the first non-empty line of ``text``, or None."""
    for line in LINE_BREAK.split(text or ""):
        if line:
            return line
    return None


def normalize_line_breaks(value: str) -> str:
    """
    Turn a multi-line value into the backend's rich-text form.

    Each line is trimmed and the lines are joined with ``<br />``. A value
    with no line breaks comes back unchanged, so applying this twice is
    the same as applying it once.
    """
    if "\r" not in value and "\n" not in value:
        return value
    return RICH_TEXT_BREAK.join(segment.strip() for segment in LINE_BREAK.split(value))


def strip_markup(html: Optional[str]) -> str:
    """Plain text content of an HTML fragment, keeping its line structure."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.append("\n")
    return soup.get_text().strip()
