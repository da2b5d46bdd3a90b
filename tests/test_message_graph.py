"""Tests for the message-log quality loop."""

from unittest.mock import Mock

from restaurant_graphs.agents import QualityEvaluatorAgent, QualityGrade
from restaurant_graphs.messages import MessageRole
from restaurant_graphs.workflow import EXHAUSTED_REASON, MessageGraphWorkflow, ProcessingStep
from restaurant_graphs.workflow.message_graph import GENERATION_ERROR_ANSWER, NO_CONTEXT

from conftest import StubLLM


def grading(*scores):
    evaluator = Mock(spec=QualityEvaluatorAgent)
    evaluator.evaluate.side_effect = [QualityGrade(s, "graded") for s in scores]
    return evaluator


def build(llm, evaluator, restaurant_tools, **kwargs):
    menu_tool, wine_tool = restaurant_tools
    return MessageGraphWorkflow(
        llm,
        evaluator=evaluator,
        menu_tool=menu_tool,
        wine_tool=wine_tool,
        max_attempts=3,
        quality_threshold=0.7,
        **kwargs
    )


class TestMessageGraph:

    def test_good_answer_is_accepted(self, restaurant_tools):
        llm = StubLLM(["스테이크는 35,000원이며 샤토 마고와 잘 어울립니다."])
        final = build(llm, grading(0.9), restaurant_tools).run("스테이크")

        assert final["step"] == ProcessingStep.COMPLETED
        assert final["attempts"] == 1
        assert final["failure_reason"] is None
        assert [m.role for m in final["messages"]] == [MessageRole.USER, MessageRole.ASSISTANT]

    def test_retrieval_labels_menu_and_wine_context(self, restaurant_tools):
        llm = StubLLM(default="답변")
        final = build(llm, grading(0.9), restaurant_tools).run("스테이크")

        assert final["documents"][0].startswith("메뉴 정보: 1. 시그니처 스테이크")
        assert final["documents"][1].startswith("와인 정보: ")
        assert "샤토 마고" in final["documents"][1]
        assert "사용자 질문: 스테이크" in llm.prompts[0]

    def test_nothing_found_uses_no_context(self, restaurant_tools):
        llm = StubLLM(default="답변")
        final = build(llm, grading(0.9), restaurant_tools).run("zzz")

        assert final["documents"] == [NO_CONTEXT]

    def test_exhausted_run_still_completes_by_default(self, restaurant_tools):
        llm = StubLLM(["a1", "a2", "a3"])
        evaluator = grading(0.2, 0.3, 0.4)
        final = build(llm, evaluator, restaurant_tools).run("스테이크")

        assert final["step"] == ProcessingStep.COMPLETED
        assert final["attempts"] == 3
        assert final["failure_reason"] == EXHAUSTED_REASON
        assert final["answer"] == "a3"
        assert evaluator.evaluate.call_args_list[1][0][1] == "a2"
        assistant = [m.content for m in final["messages"] if m.role == MessageRole.ASSISTANT]
        assert assistant == ["a1", "a2", "a3"]

    def test_exhausted_run_fails_without_best_effort(self, restaurant_tools):
        final = build(StubLLM(default="x"), grading(0.1, 0.1, 0.1), restaurant_tools).run(
            "스테이크", best_effort=False
        )
        assert final["step"] == ProcessingStep.FAILED
        assert final["failure_reason"] == EXHAUSTED_REASON

    def test_unavailable_model_gives_canned_answer(self, restaurant_tools):
        final = build(StubLLM(fail=True), grading(0.8), restaurant_tools).run("스테이크")

        assert final["answer"] == GENERATION_ERROR_ANSWER
        assert final["step"] == ProcessingStep.COMPLETED

    def test_grader_failure_fails_run(self, restaurant_tools):
        evaluator = Mock(spec=QualityEvaluatorAgent)
        evaluator.evaluate.side_effect = RuntimeError("grader crashed")

        final = build(StubLLM(default="x"), evaluator, restaurant_tools).run("스테이크")

        assert final["step"] == ProcessingStep.FAILED
        assert final["error_message"] == "grader crashed"
