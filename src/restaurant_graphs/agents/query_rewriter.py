"""Query Rewriter Agent."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..llm import get_prompt
from ..utils import get_agent_logger, log_agent_decision, LLMUnavailableError

logger = get_agent_logger("query_rewriter")


class QueryIntent(str, Enum):
    MENU_SEARCH = "MENU_SEARCH"
    WINE_PAIRING = "WINE_PAIRING"
    RECIPE_INQUIRY = "RECIPE_INQUIRY"
    PRICE_INQUIRY = "PRICE_INQUIRY"
    GENERAL_QUESTION = "GENERAL_QUESTION"
    COMPARISON = "COMPARISON"
    RECOMMENDATION = "RECOMMENDATION"


# Declaration order breaks ties between equally scored intents.
INTENT_KEYWORDS: Dict[QueryIntent, List[str]] = {
    QueryIntent.MENU_SEARCH: ["메뉴", "음식", "요리", "스테이크", "파스타", "샐러드"],
    QueryIntent.WINE_PAIRING: ["와인", "페어링", "어울리는", "추천", "매칭"],
    QueryIntent.PRICE_INQUIRY: ["가격", "얼마", "비용", "원", "달러"],
    QueryIntent.RECIPE_INQUIRY: ["레시피", "만드는법", "요리법", "재료"],
    QueryIntent.COMPARISON: ["비교", "차이", "vs", "어떤게", "뭐가 더"],
    QueryIntent.RECOMMENDATION: ["추천", "좋은", "best", "인기", "맛있는"],
}

INTENT_DESCRIPTIONS = {
    QueryIntent.MENU_SEARCH: "메뉴 검색",
    QueryIntent.WINE_PAIRING: "와인 페어링",
    QueryIntent.RECIPE_INQUIRY: "레시피 문의",
    QueryIntent.PRICE_INQUIRY: "가격 문의",
    QueryIntent.COMPARISON: "비교 질문",
    QueryIntent.RECOMMENDATION: "추천 요청",
    QueryIntent.GENERAL_QUESTION: "일반 질문",
}

_KOREAN_WORD = re.compile(r"[가-힣]{2,}")
_ENGLISH_WORD = re.compile(r"[a-zA-Z]{3,}")

RULE_CONFIDENCE_CUTOFF = 0.8
LLM_CONFIDENCE = 0.9


@dataclass
class QueryRewriteResult:
    original_query: str
    rewritten_query: str
    intent: QueryIntent = QueryIntent.GENERAL_QUESTION
    keywords: List[str] = field(default_factory=list)
    confidence: float = 0.0
    reason: str = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.rewritten_query and self.rewritten_query.strip()) and self.confidence >= 0.5

    def summary(self) -> str:
        return (
            f"{self.original_query} → {self.rewritten_query} "
            f"(confidence: {self.confidence:.2f}, intent: {self.intent.value})"
        )


def extract_keywords(query: str) -> List[str]:
    """Hangul words of 2+ chars and latin words of 3+ chars, deduplicated and sorted."""
    words = _KOREAN_WORD.findall(query) + [w.lower() for w in _ENGLISH_WORD.findall(query)]
    return sorted(set(words))


def classify_intent(query: str, keywords: List[str]) -> QueryIntent:
    best_intent = QueryIntent.GENERAL_QUESTION
    best_score = 0
    for intent, intent_keywords in INTENT_KEYWORDS.items():
        score = sum(1 for k in intent_keywords if k in query or k in keywords)
        if score > best_score:
            best_intent, best_score = intent, score
    return best_intent


def enhance_query(query: str, intent: QueryIntent) -> str:
    def contains_any(*words):
        lowered = query.lower()
        return any(w in lowered for w in words)

    enhanced = query
    if intent == QueryIntent.MENU_SEARCH and not contains_any("메뉴", "음식"):
        enhanced += " 메뉴"
    elif intent == QueryIntent.WINE_PAIRING and not contains_any("와인", "페어링"):
        enhanced += " 와인 페어링"
    elif intent == QueryIntent.RECOMMENDATION and not contains_any("추천", "좋은"):
        enhanced += " 추천"
    return enhanced.strip()


def rule_confidence(original: str, rewritten: str, keywords: List[str], intent: QueryIntent) -> float:
    score = 0.5
    score += min(len(keywords) * 0.1, 0.3)
    if intent != QueryIntent.GENERAL_QUESTION:
        score += 0.2
    if original != rewritten:
        score += 0.1
    return min(score, 1.0)


def _extract_value(response: str, key: str) -> str:
    for line in response.split("\n"):
        line = line.strip()
        if line.startswith(key):
            return line[len(key):].strip()
    return ""


class QueryRewriterAgent:
    """
    Rule-based query rewriting, refined by the LLM when the rules are not
    confident and an LLM is available.
    """

    def __init__(self, llm=None):
        self.llm = llm
        self.name = "Query Rewriter"

    def rewrite_with_rules(self, query: str) -> QueryRewriteResult:
        normalized = query.lower().strip()
        keywords = extract_keywords(normalized)
        intent = classify_intent(normalized, keywords)
        rewritten = enhance_query(query, intent)

        reason = f"의도 분류: {INTENT_DESCRIPTIONS[intent]}"
        if keywords:
            reason += f", 추출 키워드: {', '.join(keywords)}"

        return QueryRewriteResult(
            original_query=query,
            rewritten_query=rewritten,
            intent=intent,
            keywords=keywords,
            confidence=rule_confidence(query, rewritten, keywords, intent),
            reason=reason,
        )

    def rewrite_with_llm(self, query: str) -> QueryRewriteResult:
        response = self.llm.complete(
            get_prompt("query_rewriter", "user").format(query=query),
            get_prompt("query_rewriter", "system"),
        )
        rewritten = _extract_value(response, "REWRITTEN_QUERY:")
        keywords = [k.strip() for k in _extract_value(response, "KEYWORDS:").split(",") if k.strip()]
        return QueryRewriteResult(
            original_query=query,
            rewritten_query=rewritten,
            intent=classify_intent(query.lower(), keywords),
            keywords=keywords,
            confidence=LLM_CONFIDENCE if rewritten else 0.0,
            reason=_extract_value(response, "REASON:"),
        )

    def rewrite(self, query: Optional[str]) -> QueryRewriteResult:
        """
        Rewrite a query for retrieval.

        Returns:
            QueryRewriteResult; confidence 0.0 for an empty query.
        """
        if not query or not query.strip():
            return QueryRewriteResult(
                original_query=query or "",
                rewritten_query=query or "",
                reason="빈 쿼리",
            )

        result = self.rewrite_with_rules(query)

        if result.confidence < RULE_CONFIDENCE_CUTOFF and self.llm is not None:
            try:
                llm_result = self.rewrite_with_llm(query)
                if llm_result.is_valid:
                    result = llm_result
                else:
                    logger.warning("LLM rewrite unusable, keeping rule-based result")
            except LLMUnavailableError as e:
                logger.warning(f"LLM rewrite failed, keeping rule-based result: {e}")

        log_agent_decision(
            logger, self.name,
            {"query": query[:50]},
            {"rewritten": result.rewritten_query[:50], "intent": result.intent.value,
             "confidence": result.confidence},
            result.summary()
        )
        return result
