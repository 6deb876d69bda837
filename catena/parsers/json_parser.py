"""JSON output parser."""

import json
import re
from typing import Any, Optional

from .base import OutputParser
from catena.exceptions import ParsingError

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class JSONParser(OutputParser):
    """Parser for JSON completions."""

    def __init__(self, strict: bool = False):
        """
        Initialize JSON parser.

        Args:
            strict: If True, requires valid JSON. If False, also looks for JSON
                inside a fenced code block or embedded in surrounding text.
        """
        self.strict = strict

    def parse(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            if self.strict:
                raise ParsingError(f"Invalid JSON: {e}", original_text=text, parser_type="JSONParser") from e

        candidate = self._extract_json(text)
        if candidate is not None:
            return json.loads(candidate)

        raise ParsingError(
            f"Could not parse JSON from text: {text[:100]}",
            original_text=text,
            parser_type="JSONParser",
        )

    def _extract_json(self, text: str) -> Optional[str]:
        fenced = _FENCE.search(text)
        if fenced and self._is_json(fenced.group(1)):
            return fenced.group(1)

        # Widest span between the first opening and last closing bracket
        for opener, closer in (("{", "}"), ("[", "]")):
            start = text.find(opener)
            end = text.rfind(closer)
            if start != -1 and end > start and self._is_json(text[start:end + 1]):
                return text[start:end + 1]

        return None

    @staticmethod
    def _is_json(candidate: str) -> bool:
        try:
            json.loads(candidate)
            return True
        except json.JSONDecodeError:
            return False
