"""Tests for the ReAct agent and its thread memory."""

from unittest.mock import Mock

from restaurant_graphs.agents import ReasonerAgent
from restaurant_graphs.memory import MemoryStore
from restaurant_graphs.messages import MessageRole, ToolCallStatus
from restaurant_graphs.tools import ToolRegistry
from restaurant_graphs.workflow import ReActAgentWorkflow, ReActStep, create_react_state
from restaurant_graphs.workflow.react_agent import MAX_ITERATIONS_MESSAGE

from conftest import EchoTool, StubLLM


def reasoner_saying(*texts, default=None):
    reasoner = Mock(spec=ReasonerAgent)
    if default is not None:
        reasoner.reason.return_value = default
    else:
        reasoner.reason.side_effect = list(texts)
    return reasoner


class TestReActLoop:

    def test_answer_without_marker_finishes_in_one_iteration(self, echo_registry):
        workflow = ReActAgentWorkflow(
            echo_registry, reasoner=reasoner_saying("Final Answer: 스테이크는 35,000원입니다.")
        )
        final = workflow.run("스테이크 가격은?")

        assert final["step"] == ReActStep.COMPLETED
        assert final["iteration"] == 1
        assert final["tool_calls"] == []
        assert final["answer"] == "Final Answer: 스테이크는 35,000원입니다."

    def test_marker_every_time_hits_iteration_cap(self, echo_registry):
        reasoner = reasoner_saying(default='Action: search_menu("스테이크")')
        workflow = ReActAgentWorkflow(echo_registry, reasoner=reasoner)

        final = workflow.run("스테이크 가격은?")

        assert final["step"] == ReActStep.MAX_ITERATIONS_REACHED
        assert final["iteration"] == 5
        assert len(final["tool_calls"]) == 5
        assert final["answer"] == MAX_ITERATIONS_MESSAGE
        assert final["messages"][-1].role == MessageRole.SYSTEM
        assert reasoner.reason.call_count == 5

    def test_large_iteration_budget_reaches_the_cap(self, echo_registry):
        reasoner = reasoner_saying(default='Action: search_menu("스테이크")')
        workflow = ReActAgentWorkflow(echo_registry, reasoner=reasoner, max_iterations=30)

        final = workflow.run("스테이크 가격은?", thread_id="thread_long")

        assert final["step"] == ReActStep.MAX_ITERATIONS_REACHED
        assert final["iteration"] == 30
        assert len(final["tool_calls"]) == 30
        assert final["error_message"] is None
        assert len(workflow.memory.history("thread_long")) == 31

    def test_tool_result_is_observed(self, echo_registry):
        reasoner = reasoner_saying('Action: search_wine("스테이크 와인")', "Final Answer: 샤토 마고")
        final = ReActAgentWorkflow(echo_registry, reasoner=reasoner).run("와인 추천")

        call = final["tool_calls"][0]
        assert call.tool_name == "search_wine"
        assert call.status == ToolCallStatus.SUCCESS
        assert call.result == "wine: 스테이크 와인"

        roles = [m.role for m in final["messages"]]
        assert roles == [
            MessageRole.USER, MessageRole.ASSISTANT, MessageRole.TOOL_CALL,
            MessageRole.TOOL_RESULT, MessageRole.ASSISTANT,
        ]
        assert final["messages"][3].source == "restaurant_wine.txt"
        assert final["observations"][0].startswith("도구 실행 결과:")

    def test_marker_without_tool_uses_menu_search_and_user_query(self, echo_registry):
        reasoner = reasoner_saying("Action: 검색", "Final Answer: 완료")
        final = ReActAgentWorkflow(echo_registry, reasoner=reasoner).run("파스타 있어요?")
        call = final["tool_calls"][0]
        assert call.tool_name == "search_menu"
        assert call.query == "파스타 있어요?"

    def test_failing_tool_does_not_stop_the_loop(self):
        registry = ToolRegistry([EchoTool("search_menu", error=RuntimeError("file missing"))])
        reasoner = reasoner_saying('search_menu("x")', "Final Answer: 정보를 찾지 못했습니다")

        final = ReActAgentWorkflow(registry, reasoner=reasoner).run("메뉴")

        assert final["step"] == ReActStep.COMPLETED
        assert final["tool_calls"][0].status == ToolCallStatus.FAILED
        assert "file missing" in final["messages"][3].content

    def test_reasoning_failure_ends_in_error(self, echo_registry):
        workflow = ReActAgentWorkflow(echo_registry, llm=StubLLM(fail=True))
        final = workflow.run("스테이크")

        assert final["step"] == ReActStep.ERROR
        assert final["error_message"] == "both models failed"
        assert final["messages"][-1].content == "오류가 발생했습니다: both models failed"


class TestThreadMemory:

    def test_cycles_are_checkpointed(self, echo_registry):
        reasoner = reasoner_saying('Action: search_menu("a")', 'Action: search_menu("b")', "Final Answer: done")
        workflow = ReActAgentWorkflow(echo_registry, reasoner=reasoner)

        final = workflow.run("질문", thread_id="thread_cp")

        # two cycle checkpoints plus the final save
        history = workflow.memory.history("thread_cp")
        assert len(history) == 3
        assert history[-1] == final["last_checkpoint_id"]
        second_cycle = workflow.memory.restore(history[1])
        assert len(second_cycle["tool_calls"]) == 2

    def test_second_turn_sees_previous_conversation(self, echo_registry):
        reasoner = reasoner_saying("Final Answer: 스테이크 35,000원", "Final Answer: 샤토 마고")
        workflow = ReActAgentWorkflow(echo_registry, reasoner=reasoner)

        first = workflow.run("스테이크 가격은?")
        thread_id = first["session_key"]
        second = workflow.run("어울리는 와인은?", thread_id=thread_id)

        assert thread_id.startswith("thread_")
        assert second["iteration"] == 1
        contents = [m.content for m in second["messages"]]
        assert contents == [
            "스테이크 가격은?", "Final Answer: 스테이크 35,000원",
            "어울리는 와인은?", "Final Answer: 샤토 마고",
        ]
        seen_by_reasoner = reasoner.reason.call_args_list[1][0][0]
        assert [m.content for m in seen_by_reasoner][:3] == contents[:3]

    def test_conversation_and_thread_removal(self, echo_registry):
        workflow = ReActAgentWorkflow(echo_registry, reasoner=reasoner_saying("Final Answer: ok"))
        workflow.run("hello", thread_id="thread_x")

        assert len(workflow.get_conversation("thread_x")) == 2
        assert workflow.delete_thread("thread_x")
        assert workflow.get_conversation("thread_x") == []

    def test_cleanup_evicts_idle_threads(self, echo_registry, clock):
        memory = MemoryStore(lambda key: create_react_state(key), clock=clock, name="threads")
        workflow = ReActAgentWorkflow(
            echo_registry,
            reasoner=reasoner_saying(default="Final Answer: ok"),
            memory=memory,
        )
        workflow.run("hello", thread_id="thread_old")
        clock.advance(hours=2)
        workflow.run("hello again", thread_id="thread_new")

        removed = workflow.cleanup(hours=1)

        assert removed["sessions"] == 1
        assert memory.session_keys() == ["thread_new"]
