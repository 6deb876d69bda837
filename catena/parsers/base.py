"""Base output parser interface."""

from abc import ABC, abstractmethod
from typing import Any


class OutputParser(ABC):
    """Base class for parsers applied to a model's primary completion."""

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Parse text into structured format, raising ParsingError on failure."""
        pass
