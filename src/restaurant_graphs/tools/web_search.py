"""Tavily web search tool."""

from typing import Any, Dict, List, Optional

import httpx

from ..utils import config, get_tools_logger
from .base import BaseTool

logger = get_tools_logger()

WEB_NOT_FOUND = "관련 정보를 찾을 수 없습니다."
WEB_NO_RESULTS = "검색 결과가 없습니다."


def format_search_results(results: List[Dict[str, Any]]) -> str:
    if not results:
        return WEB_NO_RESULTS
    return "\n---\n".join(
        f'<Document href="{r.get("url", "")}"/>\n{r.get("content", "")}\n</Document>'
        for r in results
    )


class TavilySearchTool(BaseTool):
    """
    Live web search through the Tavily API.

    Any transport or API failure, and a missing API key, yield the
    "not found" sentinel.
    """

    name = "search_web"
    description = "웹에서 최신 정보를 검색합니다."
    source = "web_search"

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        max_results: Optional[int] = None
    ):
        self.api_key = api_key if api_key is not None else config.tools.tavily_api_key
        self.url = config.tools.tavily_url
        self.max_results = max_results or config.tools.max_web_results
        self._client = client or httpx.Client(timeout=config.tools.http_timeout)

    def run(self, query: str) -> str:
        if not self.api_key:
            logger.warning("Tavily API key not configured, skipping web search")
            return WEB_NOT_FOUND

        body = {
            "api_key": self.api_key,
            "query": query,
            "search_depth": "basic",
            "max_results": self.max_results,
        }
        try:
            resp = self._client.post(self.url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Tavily search failed: {e}")
            return WEB_NOT_FOUND

        return format_search_results(data.get("results") or [])

    def close(self) -> None:
        self._client.close()
