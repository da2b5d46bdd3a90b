"""Linear menu recommendation: preference -> menu -> menu info."""

import random
from datetime import datetime
from typing import Any, Dict, Optional

from ..utils import get_workflow_logger, log_step
from .engine import WorkflowEngine
from .state_definitions import (
    MenuRecommendationState, ProcessingStep, create_menu_recommendation_state,
)

logger = get_workflow_logger("menu_recommendation")

PREFERENCES = ("육류", "해산물", "채식", "아무거나")

PREFERENCE_TO_MENU = {
    "육류": "스테이크",
    "해산물": "연어구이",
    "채식": "퀴노아 샐러드",
    "아무거나": "오늘의 추천 파스타",
}

MENU_INFO = {
    "스테이크": "최상급 소고기로 만든 juicy한 스테이크입니다. 가격: 35,000원",
    "연어구이": "신선한 연어에 허브를 곁들인 건강한 요리입니다. 가격: 28,000원",
    "퀴노아 샐러드": "영양가 높은 퀴노아와 신선한 채소의 조합입니다. 가격: 18,000원",
    "오늘의 추천 파스타": "셰프가 특별히 준비한 오늘의 파스타입니다. 가격: 22,000원",
}

DEFAULT_MENU = "오늘의 추천 파스타"
MENU_NOT_FOUND = "죄송합니다. 해당 메뉴 정보를 찾을 수 없습니다."


class MenuRecommendationWorkflow:
    """
    Three fixed steps, no branching. The only nondeterminism is the
    preference pick, drawn from an injectable ``random.Random``.
    """

    name = "menu_recommendation"

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng or random.Random(seed)
        self.engine = (
            WorkflowEngine(self.name, MenuRecommendationState)
            .add_step("get_user_preference", self._get_user_preference)
            .add_step("recommend_menu", self._recommend_menu)
            .add_step("provide_menu_info", self._provide_menu_info)
            .set_entry("get_user_preference")
            .add_sequence(["get_user_preference", "recommend_menu", "provide_menu_info"])
            .add_finish("provide_menu_info")
            .compile()
        )
        logger.info("MenuRecommendationWorkflow initialized")

    def _get_user_preference(self, state: MenuRecommendationState) -> Dict[str, Any]:
        preference = self.rng.choice(PREFERENCES)
        log_step(logger, self.name, "preference", {"preference": preference})
        return {"preference": preference, "step": ProcessingStep.PREFERENCE_SELECTION}

    def _recommend_menu(self, state: MenuRecommendationState) -> Dict[str, Any]:
        menu = PREFERENCE_TO_MENU.get(state["preference"], DEFAULT_MENU)
        log_step(logger, self.name, "recommend", {"menu": menu})
        return {"recommended_menu": menu, "step": ProcessingStep.MENU_RECOMMENDATION}

    def _provide_menu_info(self, state: MenuRecommendationState) -> Dict[str, Any]:
        info = MENU_INFO.get(state["recommended_menu"], MENU_NOT_FOUND)
        log_step(logger, self.name, "menu_info", {"menu_info": info})
        return {
            "menu_info": info,
            "step": ProcessingStep.COMPLETED,
            "ended_at": datetime.now(),
        }

    def run(self) -> MenuRecommendationState:
        logger.info("Running linear menu recommendation")
        return self.engine.run(create_menu_recommendation_state())
