"""Base interface for search tools."""

from abc import ABC, abstractmethod
from typing import Any, Dict


class BaseTool(ABC):
    """
    A named search capability that turns a query into text.

    Implementations return a "not found" sentinel for empty results instead
    of raising.
    """

    name: str = ""
    description: str = ""
    source: str = ""

    @abstractmethod
    def run(self, query: str) -> str:
        """Execute the tool for ``query``."""

    def schema(self) -> Dict[str, Any]:
        """OpenAI-style function schema passed to the model."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "검색어"}
                    },
                    "required": ["query"],
                },
            },
        }
