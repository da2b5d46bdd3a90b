"""Document records held by the document store."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from ..utils import InvalidInputError


class DocumentType(str, Enum):
    MENU = "MENU"
    WINE = "WINE"
    RECIPE = "RECIPE"
    REVIEW = "REVIEW"
    GENERAL = "GENERAL"

    @classmethod
    def parse(cls, value: Union[str, "DocumentType"]) -> "DocumentType":
        """
        Resolve a type filter supplied by a caller.

        Raises:
            InvalidInputError: if the value is not one of the known types.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidInputError(
                f"Unknown document type: {value!r}",
                valid_values=[t.value for t in cls]
            )


@dataclass
class Document:
    """
    A retrievable text item.

    ``relevance_score`` is only set on copies returned by a search and is
    meaningful for that query alone.
    """

    id: str
    title: str
    content: str
    source: str
    type: DocumentType = DocumentType.GENERAL
    relevance_score: Optional[float] = None
    created_at: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_score(self, score: Optional[float]) -> "Document":
        """Return an independent copy carrying a query-specific score."""
        return replace(self, relevance_score=score, metadata=dict(self.metadata))

    def summary(self, max_length: int = 100) -> str:
        if len(self.content) <= max_length:
            return self.content
        return self.content[:max_length] + "..."

    def is_empty(self) -> bool:
        return not self.content or not self.content.strip()

    def contains_keyword(self, keyword: str) -> bool:
        if not keyword:
            return False
        needle = keyword.lower()
        return needle in self.content.lower() or needle in self.title.lower()

    def format(self) -> str:
        """Render the document for inclusion in a prompt."""
        return f"[{self.title}]\n{self.content}\n(출처: {self.source})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "source": self.source,
            "type": self.type.value,
            "relevance_score": self.relevance_score,
            "created_at": self.created_at.isoformat(),
        }
