"""Parser package exports."""

from .html_parser import HTMLParser, HTMLParserConfig

__all__ = [
    "HTMLParser",
    "HTMLParserConfig",
]
