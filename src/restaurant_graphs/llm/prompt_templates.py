"""
Prompt templates for the restaurant workflows.
"""

from typing import List, Sequence


# =============================================================================
# ROUTED Q&A PROMPTS
# =============================================================================

TOPIC_CLASSIFIER_USER = """다음 질문이 레스토랑 메뉴와 관련된 질문인지 판단해주세요. 메뉴, 음식, 가격, 재료, 추천 등과 관련된 질문이면 'YES', 그렇지 않으면 'NO'라고만 답해주세요.

질문: {query}"""

MENU_RESPONSE_USER = """다음은 레스토랑 메뉴 정보입니다:
{search_results}

사용자 질문: {query}

위 메뉴 정보를 바탕으로 사용자의 질문에 친절하고 정확하게 답변해주세요."""

GENERAL_RESPONSE_USER = """{query}"""


# =============================================================================
# QUALITY-GATED RAG PROMPTS
# =============================================================================

RAG_SYSTEM = """당신은 레스토랑 정보 전문 AI 어시스턴트입니다.

제공된 문서들을 바탕으로 사용자의 질문에 정확하고 도움이 되는 답변을 제공하세요.

답변 규칙:
1. 반드시 제공된 문서 내용을 기반으로 답변하세요
2. 문서에 없는 정보는 추측하지 마세요
3. 가격, 메뉴, 와인 페어링 등 구체적인 정보를 포함하세요
4. 답변은 친근하고 전문적인 톤으로 작성하세요"""

RAG_USER = """참고 문서:
{documents}

질문: {question}

위 문서를 바탕으로 답변해주세요."""

QUALITY_EVALUATOR_SYSTEM = """당신은 레스토랑 안내 답변의 품질을 평가하는 평가자입니다.
반드시 지정된 형식으로만 응답하세요."""

QUALITY_EVALUATOR_USER = """다음 답변의 품질을 0.0-1.0 점수로 평가하세요.

평가 기준:
1. 정확성: 문서 내용과 일치하는가?
2. 완성도: 질문에 충분히 답변했는가?
3. 유용성: 사용자에게 도움이 되는가?
4. 명확성: 이해하기 쉬운가?

응답 형식:
SCORE: [0.0-1.0 점수]
REASON: [평가 이유]

질문: {question}
답변: {answer}
참고 문서: {context}"""

QUERY_REWRITER_SYSTEM = """당신은 레스토랑 정보 검색을 위한 쿼리 재작성 전문가입니다.

사용자의 질문을 분석하여 다음 작업을 수행하세요:
1. 검색에 적합한 키워드 추출
2. 모호한 표현을 구체적으로 변환
3. 검색 성능을 높이는 쿼리로 재작성

다음 형식으로 응답하세요:
REWRITTEN_QUERY: [재작성된 쿼리]
KEYWORDS: [키워드1, 키워드2, 키워드3]
REASON: [재작성 이유]

예시:
원본: "맛있는 음식 추천해줘"
REWRITTEN_QUERY: 인기 메뉴 추천 맛있는 음식
KEYWORDS: 인기, 메뉴, 추천, 맛있는
REASON: 모호한 "맛있는 음식"을 "인기 메뉴"로 구체화하고 검색 키워드 보강"""

QUERY_REWRITER_USER = """원본: "{query}\""""


# =============================================================================
# MESSAGE GRAPH PROMPTS
# =============================================================================

MESSAGE_GRAPH_USER = """다음은 레스토랑 관련 정보입니다:
{context}

사용자 질문: {query}

위 정보를 바탕으로 사용자의 질문에 정확하고 친절하게 답변해주세요. 정보가 부족하면 일반적인 지식을 활용하되, 가능한 한 제공된 정보를 우선적으로 사용하세요."""


# =============================================================================
# REACT AGENT PROMPTS
# =============================================================================

REACT_SYSTEM = """당신은 레스토랑 메뉴 정보를 제공하는 ReAct (Reasoning + Acting) 에이전트입니다.

다음 형식에 따라 단계별로 추론하고 행동하세요:

Thought: 사용자의 질문을 분석하고 어떤 도구를 사용할지 결정합니다.
Action: 필요한 도구를 호출합니다. 예: search_menu("스테이크")
Observation: 도구 실행 결과를 확인합니다.
Thought: 결과를 바탕으로 추가 행동이 필요한지 판단합니다.
Final Answer: 최종 답변을 제공합니다.

사용 가능한 도구:
1. search_menu(query): 레스토랑 메뉴 정보 검색
2. search_wine(query): 와인 정보 및 페어링 검색
3. search_web(query): 웹에서 최신 정보 검색

도구가 더 필요하지 않으면 Action 없이 최종 답변만 작성하세요."""

REACT_USER = """대화 기록:
{conversation}

다음 단계를 진행하세요."""


# =============================================================================
# TOOL CALLING PROMPTS
# =============================================================================

TOOL_CALLING_SYSTEM = """당신은 레스토랑 메뉴 정보와 일반적인 음식 관련 지식을 제공하는 AI 어시스턴트입니다.

다음 도구들을 적절히 사용하세요:
1. search_menu: 레스토랑 메뉴 정보 검색
2. search_wine: 와인 추천 및 페어링 정보 검색
3. search_wikipedia: 일반적인 음식 정보 검색
4. search_web: 최신 정보나 추가 웹 검색이 필요한 경우

사용자의 질문에 정확하고 도움이 되는 답변을 제공하세요."""

TOOL_CALLING_FEW_SHOT_SYSTEM = TOOL_CALLING_SYSTEM + """

예제:
사용자: "트러플 리조또의 가격과 특징, 그리고 어울리는 와인에 대해 알려주세요."
어시스턴트: 먼저 메뉴 정보를 검색하고, 어울리는 와인을 찾아보겠습니다.
[search_menu 호출: "트러플 리조또"]
[search_wine 호출: "트러플 리조또에 어울리는 와인"]

트러플 리조또는 가격이 22,000원이며, 아르보리오 쌀과 블랙 트러플을 사용합니다.
크리미한 텍스처와 풍부한 트러플 향이 특징입니다.
어울리는 와인으로는 중간 바디의 화이트 와인인 샤르도네나 피노 그리지오를 추천합니다.

이제 사용자의 질문에 답변하세요."""

TOOL_CALLING_MEMORY_SYSTEM = TOOL_CALLING_SYSTEM + """
이전 대화 내용을 참고하여 일관성 있는 답변을 제공하세요.

대화 히스토리:
{history}"""


# =============================================================================
# TOOL PROMPTS
# =============================================================================

WIKIPEDIA_SUMMARY_USER = """다음 위키피디아 내용을 질문에 맞게 3~4문장으로 요약해주세요.

질문: {query}

내용:
{content}"""


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_prompt(agent_name: str, prompt_type: str) -> str:
    """
    Get a prompt template for a specific agent.

    Args:
        agent_name: Name of the agent (quality_evaluator, react, etc.)
        prompt_type: Type of prompt (system, user, ...)

    Returns:
        The prompt template string.
    """
    prompts = {
        "topic_classifier": {"user": TOPIC_CLASSIFIER_USER},
        "menu_response": {"user": MENU_RESPONSE_USER},
        "general_response": {"user": GENERAL_RESPONSE_USER},
        "rag": {"system": RAG_SYSTEM, "user": RAG_USER},
        "quality_evaluator": {
            "system": QUALITY_EVALUATOR_SYSTEM,
            "user": QUALITY_EVALUATOR_USER
        },
        "query_rewriter": {
            "system": QUERY_REWRITER_SYSTEM,
            "user": QUERY_REWRITER_USER
        },
        "message_graph": {"user": MESSAGE_GRAPH_USER},
        "react": {"system": REACT_SYSTEM, "user": REACT_USER},
        "tool_calling": {
            "system": TOOL_CALLING_SYSTEM,
            "few_shot": TOOL_CALLING_FEW_SHOT_SYSTEM,
            "memory": TOOL_CALLING_MEMORY_SYSTEM
        },
        "wikipedia": {"user": WIKIPEDIA_SUMMARY_USER},
    }

    if agent_name not in prompts:
        raise ValueError(f"Unknown agent: {agent_name}")

    if prompt_type not in prompts[agent_name]:
        raise ValueError(f"Unknown prompt type: {prompt_type}")

    return prompts[agent_name][prompt_type]


def format_documents_for_prompt(documents: Sequence, max_length: int = 6000) -> str:
    """
    Render documents as numbered blocks for a prompt.

    Args:
        documents: Document objects with ``format()``.
        max_length: Maximum character length of the result.
    """
    parts: List[str] = []
    current_length = 0

    for i, doc in enumerate(documents, 1):
        chunk = f"[{i}] {doc.format()}"
        if current_length + len(chunk) > max_length:
            remaining = max_length - current_length - 50
            if remaining > 200:
                parts.append(chunk[:remaining] + "...")
            break
        parts.append(chunk)
        current_length += len(chunk) + 2

    return "\n\n".join(parts)
