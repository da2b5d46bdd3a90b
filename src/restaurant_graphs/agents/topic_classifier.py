"""Topic Classifier Agent: is a question about the menu?"""

from ..llm import get_llm, get_prompt
from ..utils import get_agent_logger, log_agent_decision, LLMUnavailableError

logger = get_agent_logger("topic_classifier")

MENU_TOPIC_KEYWORDS = (
    "메뉴", "음식", "요리", "가격", "얼마", "재료", "추천",
    "스테이크", "연어", "샐러드", "파스타", "리조또", "디저트",
)


def keyword_topic_classifier(query: str) -> bool:
    """Deterministic classifier keyed on menu and price tokens."""
    return any(keyword in query for keyword in MENU_TOPIC_KEYWORDS)


class TopicClassifierAgent:

    def __init__(self, llm=None):
        self.llm = llm if llm is not None else get_llm()
        self.name = "Topic Classifier"

    def __call__(self, query: str) -> bool:
        return self.classify(query)

    def classify(self, query: str) -> bool:
        """
        Ask the model for YES/NO. If the model is unavailable the question
        is treated as menu related.
        """
        try:
            response = self.llm.generate(get_prompt("topic_classifier", "user").format(query=query))
        except LLMUnavailableError as e:
            logger.error(f"Topic classification failed, assuming menu related: {e}")
            return True

        is_menu_related = "YES" in response.strip().upper()
        log_agent_decision(
            logger, self.name,
            {"query": query[:50]},
            {"menu_related": is_menu_related},
            f"Menu related: {is_menu_related}"
        )
        return is_menu_related
