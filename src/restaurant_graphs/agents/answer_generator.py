"""Answer Generator Agent."""

from typing import List, Tuple

from ..llm import get_llm, get_prompt, format_documents_for_prompt
from ..retrieval import Document
from ..utils import get_agent_logger, log_agent_decision, LLMUnavailableError

logger = get_agent_logger("answer_generator")


def canned_answer(question: str, documents: List[Document]) -> str:
    """Answer assembled from the best document when the model is unavailable."""
    if not documents:
        return f"죄송합니다. '{question}'에 대한 관련 정보를 찾을 수 없습니다. 다른 질문을 해보시겠어요?"
    return (
        f"'{question}'에 대한 정보를 찾았습니다.\n\n{documents[0].content}\n\n"
        "추가 정보가 필요하시면 언제든 문의해 주세요!"
    )


class AnswerGeneratorAgent:

    def __init__(self, llm=None):
        self.llm = llm if llm is not None else get_llm()
        self.name = "Answer Generator"

    def generate(self, question: str, documents: List[Document]) -> Tuple[str, bool]:
        """
        Generate an answer grounded in ``documents``.

        Returns:
            Tuple of (answer, used_fallback).
        """
        prompt = get_prompt("rag", "user").format(
            documents=format_documents_for_prompt(documents) or "관련 문서가 없습니다.",
            question=question
        )

        try:
            answer = self.llm.complete(prompt, get_prompt("rag", "system"))
        except LLMUnavailableError as e:
            logger.error(f"Answer generation failed, using canned answer: {e}")
            return canned_answer(question, documents), True

        log_agent_decision(
            logger, self.name,
            {"question": question[:50], "num_documents": len(documents)},
            {"answer_length": len(answer)},
            f"Generated {len(answer)} char answer from {len(documents)} documents"
        )
        return answer, False
