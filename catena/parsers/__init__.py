"""Output parsers for structured data extraction."""

from .base import OutputParser
from .json_parser import JSONParser
from .list_parser import ListParser

__all__ = ["OutputParser", "JSONParser", "ListParser"]
