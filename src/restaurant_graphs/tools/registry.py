"""Tool registry and execution."""

from typing import Any, Dict, Iterable, List, Optional

from ..utils import get_tools_logger, log_tool_call, Timer
from ..messages import ToolCall
from .base import BaseTool

logger = get_tools_logger()


class ToolRegistry:
    """Name-indexed collection of tools, in registration order."""

    def __init__(self, tools: Optional[Iterable[BaseTool]] = None):
        self._tools: Dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def schemas(self) -> List[Dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]

    def source_of(self, name: str) -> Optional[str]:
        tool = self._tools.get(name)
        return tool.source if tool else None

    def execute(self, call: ToolCall) -> ToolCall:
        """
        Run a pending tool call and record its outcome on it.

        A failing tool leaves the call FAILED with the error message; the
        exception is not propagated.
        """
        call.start()
        tool = self._tools.get(call.tool_name)

        with Timer() as timer:
            if tool is None:
                call.fail(f"Unknown tool: {call.tool_name}")
            else:
                try:
                    call.succeed(tool.run(call.query))
                except Exception as e:
                    call.fail(str(e))

        log_tool_call(
            logger, call.tool_name, call.query, call.status.value,
            timer.elapsed_ms(), call.error_message
        )
        return call

    def run(self, name: str, query: str) -> str:
        """Execute a tool directly, returning its text or the error message."""
        call = self.execute(ToolCall(tool_name=name, parameters={"query": query}))
        return call.result if call.result is not None else (call.error_message or "")


def create_default_registry(
    llm=None,
    data_dir=None,
    web_client=None,
    wiki_client=None,
    tavily_api_key: Optional[str] = None
) -> ToolRegistry:
    """Registry with the menu, wine, web and Wikipedia tools."""
    from .restaurant_search import MenuSearchTool, WineSearchTool
    from .web_search import TavilySearchTool
    from .wikipedia import WikipediaSummaryTool

    return ToolRegistry([
        MenuSearchTool(data_dir=data_dir),
        WineSearchTool(data_dir=data_dir),
        TavilySearchTool(api_key=tavily_api_key, client=web_client),
        WikipediaSummaryTool(llm=llm, client=wiki_client),
    ])
