"""List output parser."""

import re
from typing import List, Optional

from .base import OutputParser
from catena.exceptions import ParsingError

_ITEM_PREFIX = re.compile(r"^(?:\d+[.)]|[-*•])\s*")


class ListParser(OutputParser):
    """Parser for list completions such as numbered, bulleted or comma-separated items."""

    def __init__(self, separator: Optional[str] = None, strip_items: bool = True):
        """
        Initialize list parser.

        Args:
            separator: String to split on. If None, splits on lines for
                multi-line text and on commas otherwise.
            strip_items: Whether to strip whitespace and list markers from items.
        """
        self.separator = separator
        self.strip_items = strip_items

    def parse(self, text: str) -> List[str]:
        if self.separator:
            items = text.split(self.separator)
        elif "\n" in text.strip():
            items = text.strip().split("\n")
        else:
            items = text.split(",")

        if self.strip_items:
            items = [_ITEM_PREFIX.sub("", item.strip()).strip() for item in items]

        items = [item for item in items if item]
        if not items:
            raise ParsingError("No list items found", original_text=text, parser_type="ListParser")
        return items
