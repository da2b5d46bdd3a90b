"""Search tools used by the agents."""

from .base import BaseTool
from .registry import ToolRegistry, create_default_registry
from .restaurant_search import (
    MenuSearchTool, WineSearchTool, keyword_match,
    MENU_NOT_FOUND, WINE_NOT_FOUND, NOT_FOUND_MARKER,
)
from .web_search import TavilySearchTool, WEB_NOT_FOUND
from .wikipedia import WikipediaSummaryTool, WIKI_NOT_FOUND

__all__ = [
    "BaseTool", "ToolRegistry", "create_default_registry",
    "MenuSearchTool", "WineSearchTool", "keyword_match",
    "MENU_NOT_FOUND", "WINE_NOT_FOUND", "NOT_FOUND_MARKER",
    "TavilySearchTool", "WEB_NOT_FOUND",
    "WikipediaSummaryTool", "WIKI_NOT_FOUND",
]
