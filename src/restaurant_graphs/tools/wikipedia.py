"""Korean Wikipedia lookup with LLM summarization."""

from typing import Optional

import httpx

from ..llm import get_prompt
from ..utils import config, get_tools_logger, LLMUnavailableError
from .base import BaseTool

logger = get_tools_logger()

WIKI_NOT_FOUND = "Wikipedia에서 관련 정보를 찾을 수 없습니다."
WIKI_NO_CONTENT = "Wikipedia 페이지 내용을 가져올 수 없습니다."
WIKI_ERROR = "Wikipedia 검색 중 오류가 발생했습니다."


class WikipediaSummaryTool(BaseTool):
    """
    Finds the best matching article, fetches its intro and asks the LLM
    for a short summary. If summarization fails the intro is returned as is.
    """

    name = "search_wikipedia"
    description = "위키피디아에서 음식, 식재료, 와인 품종 등 일반 지식을 찾아 요약합니다."
    source = "wikipedia"

    def __init__(self, llm=None, client: Optional[httpx.Client] = None):
        self.llm = llm
        self.url = config.tools.wikipedia_url
        self._client = client or httpx.Client(timeout=config.tools.http_timeout)

    def _search_title(self, query: str) -> Optional[str]:
        resp = self._client.get(self.url, params={
            "action": "query",
            "format": "json",
            "list": "search",
            "srsearch": query,
            "srlimit": 1,
        })
        resp.raise_for_status()
        results = resp.json().get("query", {}).get("search", [])
        return results[0].get("title") if results else None

    def _fetch_extract(self, title: str) -> Optional[str]:
        resp = self._client.get(self.url, params={
            "action": "query",
            "format": "json",
            "prop": "extracts",
            "exintro": "true",
            "explaintext": "true",
            "titles": title,
        })
        resp.raise_for_status()
        pages = resp.json().get("query", {}).get("pages", {})
        for page in pages.values():
            extract = page.get("extract")
            if extract:
                return f'<Document source="Wikipedia: {title}"/>\n{extract}\n</Document>'
        return None

    def _summarize(self, query: str, content: str) -> str:
        if self.llm is None:
            return content
        try:
            return self.llm.generate(get_prompt("wikipedia", "user").format(query=query, content=content))
        except LLMUnavailableError as e:
            logger.warning(f"Wikipedia summary failed, returning extract: {e}")
            return content

    def run(self, query: str) -> str:
        try:
            title = self._search_title(query)
            if not title:
                return WIKI_NOT_FOUND
            content = self._fetch_extract(title)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Wikipedia lookup failed: {e}")
            return WIKI_ERROR

        if not content:
            return WIKI_NO_CONTENT
        return self._summarize(query, content)

    def close(self) -> None:
        self._client.close()
