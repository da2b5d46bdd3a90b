"""Reasoner Agent for the ReAct loop."""

from typing import Sequence

from ..llm import get_llm, get_prompt
from ..messages import Message, format_conversation
from ..utils import get_agent_logger, log_agent_decision

logger = get_agent_logger("reasoner")


class ReasonerAgent:
    """
    Produces the next Thought/Action text from the conversation so far.

    Model failures propagate; the ReAct workflow turns them into its
    error terminal.
    """

    def __init__(self, llm=None):
        self.llm = llm if llm is not None else get_llm()
        self.name = "Reasoner"

    def reason(self, messages: Sequence[Message], iteration: int) -> str:
        prompt = get_prompt("react", "user").format(conversation=format_conversation(messages))
        text = self.llm.complete(prompt, get_prompt("react", "system"))

        log_agent_decision(
            logger, self.name,
            {"messages": len(messages), "iteration": iteration},
            {"response_length": len(text)},
            f"Iteration {iteration}: {text[:80]!r}"
        )
        return text
