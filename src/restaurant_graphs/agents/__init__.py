"""Agents package: the model-backed decision makers used by the workflows."""

from .query_rewriter import QueryRewriterAgent, QueryRewriteResult, QueryIntent
from .answer_generator import AnswerGeneratorAgent, canned_answer
from .quality_evaluator import QualityEvaluatorAgent, QualityGrade, parse_quality_response
from .topic_classifier import TopicClassifierAgent, keyword_topic_classifier
from .reasoner import ReasonerAgent
from .action_parser import ActionRequest, extract_intended_action, needs_action

__all__ = [
    "QueryRewriterAgent",
    "QueryRewriteResult",
    "QueryIntent",
    "AnswerGeneratorAgent",
    "canned_answer",
    "QualityEvaluatorAgent",
    "QualityGrade",
    "parse_quality_response",
    "TopicClassifierAgent",
    "keyword_topic_classifier",
    "ReasonerAgent",
    "ActionRequest",
    "extract_intended_action",
    "needs_action",
]
