"""Quality Evaluator Agent."""

import re
from dataclasses import dataclass
from typing import Optional

from ..llm import get_llm, get_prompt
from ..utils import config, get_agent_logger, log_agent_decision, LLMUnavailableError

logger = get_agent_logger("quality_evaluator")

SCORE_KEYS = ("SCORE:", "점수:")
REASON_KEYS = ("REASON:", "설명:")

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


@dataclass
class QualityGrade:
    score: float
    explanation: str
    parsed: bool = True


def clamp_score(value: float) -> float:
    return max(0.0, min(1.0, value))


def parse_quality_response(response: str, fallback_score: float) -> QualityGrade:
    """
    Read ``SCORE:``/``REASON:`` (or ``점수:``/``설명:``) lines.

    A missing or non-numeric score yields ``fallback_score`` with the raw
    response kept as the explanation.
    """
    score: Optional[float] = None
    explanation = ""

    for line in (response or "").split("\n"):
        line = line.strip()
        for key in SCORE_KEYS:
            if line.upper().startswith(key) and score is None:
                match = _NUMBER.search(line[len(key):])
                if match:
                    score = float(match.group())
        for key in REASON_KEYS:
            if line.upper().startswith(key):
                explanation = line[len(key):].strip()

    if score is None:
        return QualityGrade(
            score=fallback_score,
            explanation=f"점수를 파싱할 수 없습니다: {response}",
            parsed=False,
        )
    return QualityGrade(score=clamp_score(score), explanation=explanation)


class QualityEvaluatorAgent:

    def __init__(self, llm=None, fallback_score: Optional[float] = None):
        self.llm = llm if llm is not None else get_llm()
        self.name = "Quality Evaluator"
        self.fallback_score = (
            fallback_score if fallback_score is not None else config.quality.fallback_score
        )

    def evaluate(self, question: str, answer: str, context: str) -> QualityGrade:
        """
        Score an answer against its question and supporting context.

        Never raises on model failure or malformed output; both fall back
        to the configured default score.
        """
        prompt = get_prompt("quality_evaluator", "user").format(
            question=question,
            answer=answer,
            context=context[:6000]
        )

        try:
            response = self.llm.complete(prompt, get_prompt("quality_evaluator", "system"))
        except LLMUnavailableError as e:
            logger.error(f"Quality evaluation failed: {e}")
            return QualityGrade(
                score=self.fallback_score,
                explanation=f"평가 시스템 오류: {e}",
                parsed=False,
            )

        grade = parse_quality_response(response, self.fallback_score)
        if not grade.parsed:
            logger.warning(f"Could not parse quality response: {response[:200]}")

        log_agent_decision(
            logger, self.name,
            {"question": question[:50], "answer_length": len(answer or "")},
            {"score": grade.score, "parsed": grade.parsed},
            f"Quality score {grade.score:.2f}"
        )
        return grade
