"""Tests for the linear recommendation and routed menu Q&A workflows."""

import random

from restaurant_graphs.agents import keyword_topic_classifier
from restaurant_graphs.workflow import MenuQAWorkflow, MenuRecommendationWorkflow, ProcessingStep
from restaurant_graphs.workflow.menu_qa import GENERAL_ERROR_ANSWER, MENU_ERROR_ANSWER, search_menu_info
from restaurant_graphs.workflow.menu_recommendation import (
    MENU_INFO, PREFERENCE_TO_MENU, PREFERENCES,
)

from conftest import StubLLM


class TestMenuRecommendation:

    def test_seeded_run_is_reproducible(self):
        first = MenuRecommendationWorkflow(seed=7).run()
        second = MenuRecommendationWorkflow(seed=7).run()
        assert first["preference"] == second["preference"]
        assert first["recommended_menu"] == second["recommended_menu"]

    def test_run_follows_the_preference_chain(self):
        expected = random.Random(3).choice(PREFERENCES)
        final = MenuRecommendationWorkflow(seed=3).run()

        assert final["preference"] == expected
        assert final["recommended_menu"] == PREFERENCE_TO_MENU[expected]
        assert final["menu_info"] == MENU_INFO[PREFERENCE_TO_MENU[expected]]
        assert final["step"] == ProcessingStep.COMPLETED
        assert final["ended_at"] is not None

    def test_every_preference_maps_to_a_described_menu(self):
        for preference in PREFERENCES:
            assert PREFERENCE_TO_MENU[preference] in MENU_INFO


class TestMenuQA:

    def test_price_question_takes_menu_branch(self):
        llm = StubLLM(["시그니처 스테이크는 35,000원입니다."])
        workflow = MenuQAWorkflow(llm, classifier=keyword_topic_classifier)

        final = workflow.run("스테이크 가격 알려주세요")

        assert final["is_menu_related"] is True
        assert final["branch"] == "menu"
        assert any("스테이크" in r for r in final["search_results"])
        assert final["answer"] == "시그니처 스테이크는 35,000원입니다."
        assert final["step"] == ProcessingStep.COMPLETED

    def test_unrelated_question_takes_general_branch(self):
        llm = StubLLM(["맑습니다."])
        final = MenuQAWorkflow(llm, classifier=keyword_topic_classifier).run("오늘 날씨 어때요")
        assert final["branch"] == "general"
        assert final["search_results"] == []
        assert final["answer"] == "맑습니다."

    def test_generation_failure_returns_canned_answer(self):
        llm = StubLLM(fail=True)
        workflow = MenuQAWorkflow(llm, classifier=keyword_topic_classifier)

        menu = workflow.run("스테이크 가격 알려주세요")
        general = workflow.run("오늘 날씨 어때요")

        assert menu["answer"] == MENU_ERROR_ANSWER
        assert menu["used_fallback_answer"]
        assert general["answer"] == GENERAL_ERROR_ANSWER
        assert menu["step"] == ProcessingStep.COMPLETED

    def test_classifier_exception_fails_the_run(self):
        def broken(query):
            raise RuntimeError("classifier down")

        final = MenuQAWorkflow(StubLLM(), classifier=broken).run("메뉴")
        assert final["step"] == ProcessingStep.FAILED
        assert final["error_message"] == "classifier down"
        assert final["answer"] is None

    def test_search_menu_info(self):
        assert search_menu_info("연어구이 어때요") == [f"연어구이: {MENU_INFO['연어구이']}"]
        assert len(search_menu_info("메뉴 보여주세요")) == len(MENU_INFO)
        assert search_menu_info("xyz") == ["관련 메뉴 정보를 찾을 수 없습니다."]
