"""Tests for the search tools and the registry."""

import json

import httpx
import pytest

from restaurant_graphs.messages import ToolCall, ToolCallStatus
from restaurant_graphs.tools import (
    MENU_NOT_FOUND, WEB_NOT_FOUND, WIKI_NOT_FOUND, WINE_NOT_FOUND,
    MenuSearchTool, TavilySearchTool, ToolRegistry, WikipediaSummaryTool, WineSearchTool,
    create_default_registry, keyword_match,
)
from restaurant_graphs.tools.web_search import WEB_NO_RESULTS
from restaurant_graphs.tools.wikipedia import WIKI_ERROR, WIKI_NO_CONTENT

from conftest import EchoTool, StubLLM


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestKeywordMatch:

    CONTENT = "1. 스테이크\n가격: 35,000원\n\n2. 연어구이\n가격: 28,000원\n\n3. 샐러드\n가격: 18,000원"

    def test_any_token_matches_block(self):
        assert keyword_match(self.CONTENT, "연어구이 추천") == ["2. 연어구이\n가격: 28,000원"]

    def test_case_insensitive(self):
        assert keyword_match("Chardonnay\n\nMerlot", "merlot") == ["Merlot"]

    def test_limited_to_two_blocks(self):
        assert len(keyword_match(self.CONTENT, "가격")) == 2

    def test_blank_query(self):
        assert keyword_match(self.CONTENT, "   ") == []


class TestRestaurantTools:

    def test_menu_lookup(self):
        result = MenuSearchTool().run("리조또")
        assert result.startswith("5. 트러플 리조또")
        assert "22,000원" in result

    def test_wine_lookup(self):
        assert "샤토 마고" in WineSearchTool().run("스테이크")

    def test_not_found_sentinels(self):
        assert MenuSearchTool().run("없는메뉴") == MENU_NOT_FOUND
        assert WineSearchTool().run("없는와인") == WINE_NOT_FOUND

    def test_inline_content(self):
        tool = MenuSearchTool(content="떡볶이\r\n가격: 5,000원")
        assert tool.run("떡볶이") == "떡볶이\n가격: 5,000원"

    def test_missing_data_dir_yields_sentinel(self, tmp_path):
        assert MenuSearchTool(data_dir=tmp_path).run("스테이크") == MENU_NOT_FOUND

    def test_schema(self):
        function = MenuSearchTool().schema()["function"]
        assert function["name"] == "search_menu"
        assert function["parameters"]["required"] == ["query"]


class TestTavilySearch:

    def test_formats_results(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(200, json={"results": [
                {"url": "https://a.example", "content": "첫 번째"},
                {"url": "https://b.example", "content": "두 번째"},
            ]})

        tool = TavilySearchTool(api_key="key", client=mock_client(handler))
        result = tool.run("와인 트렌드")

        assert result == (
            '<Document href="https://a.example"/>\n첫 번째\n</Document>\n---\n'
            '<Document href="https://b.example"/>\n두 번째\n</Document>'
        )
        assert seen["url"] == "https://api.tavily.com/search"
        assert json.loads(seen["body"])["query"] == "와인 트렌드"

    def test_empty_results(self):
        tool = TavilySearchTool(
            api_key="key", client=mock_client(lambda r: httpx.Response(200, json={"results": []}))
        )
        assert tool.run("x") == WEB_NO_RESULTS

    def test_missing_key_skips_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert TavilySearchTool(api_key="", client=mock_client(handler)).run("x") == WEB_NOT_FOUND

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="error"),
        httpx.Response(200, text="not json"),
    ])
    def test_failures_yield_sentinel(self, response):
        tool = TavilySearchTool(api_key="key", client=mock_client(lambda r: response))
        assert tool.run("x") == WEB_NOT_FOUND

    def test_transport_error_yields_sentinel(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        tool = TavilySearchTool(api_key="key", client=mock_client(handler))
        assert tool.run("x") == WEB_NOT_FOUND


def wiki_handler(title="트러플", extract="트러플은 땅속에서 자라는 버섯이다."):
    def handler(request):
        params = request.url.params
        if params.get("list") == "search":
            search = [{"title": title}] if title else []
            return httpx.Response(200, json={"query": {"search": search}})
        pages = {"1": {"title": params.get("titles"), "extract": extract}} if extract else {"-1": {}}
        return httpx.Response(200, json={"query": {"pages": pages}})
    return handler


class TestWikipedia:

    def test_summarizes_extract(self):
        llm = StubLLM(["트러플은 고급 버섯입니다."])
        tool = WikipediaSummaryTool(llm=llm, client=mock_client(wiki_handler()))

        assert tool.run("트러플") == "트러플은 고급 버섯입니다."
        assert "트러플은 땅속에서 자라는 버섯이다." in llm.prompts[0]
        assert '<Document source="Wikipedia: 트러플"/>' in llm.prompts[0]

    def test_summary_failure_returns_extract(self):
        tool = WikipediaSummaryTool(llm=StubLLM(fail=True), client=mock_client(wiki_handler()))
        result = tool.run("트러플")
        assert result.startswith('<Document source="Wikipedia: 트러플"/>')
        assert "땅속에서" in result

    def test_no_article(self):
        tool = WikipediaSummaryTool(client=mock_client(wiki_handler(title=None)))
        assert tool.run("zzz") == WIKI_NOT_FOUND

    def test_no_extract(self):
        tool = WikipediaSummaryTool(client=mock_client(wiki_handler(extract=None)))
        assert tool.run("트러플") == WIKI_NO_CONTENT

    def test_http_error(self):
        tool = WikipediaSummaryTool(client=mock_client(lambda r: httpx.Response(503)))
        assert tool.run("트러플") == WIKI_ERROR


class TestRegistry:

    def test_execute_success(self):
        registry = ToolRegistry([EchoTool("search_menu", "menu")])
        call = registry.execute(ToolCall(tool_name="search_menu", parameters={"query": "파스타"}))

        assert call.status == ToolCallStatus.SUCCESS
        assert call.result == "menu: 파스타"
        assert call.duration_ms() is not None

    def test_unknown_tool(self):
        call = ToolRegistry().execute(ToolCall(tool_name="nope", parameters={"query": "x"}))
        assert call.status == ToolCallStatus.FAILED
        assert call.error_message == "Unknown tool: nope"

    def test_failing_tool_is_recorded(self):
        registry = ToolRegistry([EchoTool("search_web", error=TimeoutError("slow"))])
        call = registry.execute(ToolCall(tool_name="search_web", parameters={"query": "x"}))

        assert call.status == ToolCallStatus.FAILED
        assert call.error_message == "slow"
        assert registry.run("search_web", "x") == "slow"

    def test_default_registry(self):
        registry = create_default_registry(llm=StubLLM(), tavily_api_key="")
        assert registry.names() == ["search_menu", "search_wine", "search_web", "search_wikipedia"]
        assert registry.source_of("search_menu") == "restaurant_menu.txt"
        assert registry.source_of("missing") is None
