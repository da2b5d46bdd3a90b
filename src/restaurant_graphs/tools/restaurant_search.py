"""Keyword search over the restaurant menu and wine lists."""

from pathlib import Path
from typing import List, Optional, Union

from ..utils import config, get_tools_logger
from .base import BaseTool

logger = get_tools_logger()

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

MENU_NOT_FOUND = "관련 메뉴 정보를 찾을 수 없습니다."
WINE_NOT_FOUND = "관련 와인 정보를 찾을 수 없습니다."
NOT_FOUND_MARKER = "찾을 수 없습니다"


def keyword_match(content: str, query: str, max_results: int = 2) -> List[str]:
    """
    Return up to ``max_results`` blank-line separated blocks of ``content``
    containing any whitespace-separated token of ``query``.
    """
    keywords = [k for k in query.lower().split() if k]
    if not keywords:
        return []

    found = []
    for item in content.split("\n\n"):
        item = item.strip()
        if not item:
            continue
        lowered = item.lower()
        if any(keyword in lowered for keyword in keywords):
            found.append(item)
            if len(found) >= max_results:
                break
    return found


class _FileSearchTool(BaseTool):
    file_name = ""
    not_found = ""

    def __init__(self, content: Optional[str] = None, data_dir: Optional[Union[str, Path]] = None):
        if content is None:
            data_dir = Path(data_dir or config.retrieval.data_dir or DEFAULT_DATA_DIR)
            path = data_dir / self.file_name
            content = path.read_text(encoding="utf-8") if path.exists() else ""
            if not content:
                logger.warning(f"{self.name}: no data loaded from {path}")
        self.content = content.replace("\r\n", "\n")
        self.source = self.file_name

    def run(self, query: str) -> str:
        logger.debug(f"{self.name}: {query}")
        results = keyword_match(self.content, query or "")
        return "\n\n".join(results) if results else self.not_found


class MenuSearchTool(_FileSearchTool):
    name = "search_menu"
    description = "레스토랑 메뉴 정보(가격, 재료, 설명)를 검색합니다."
    file_name = "restaurant_menu.txt"
    not_found = MENU_NOT_FOUND


class WineSearchTool(_FileSearchTool):
    name = "search_wine"
    description = "와인 정보와 음식 페어링 추천을 검색합니다."
    file_name = "restaurant_wine.txt"
    not_found = WINE_NOT_FOUND
