"""
Workflow engine on top of a LangGraph ``StateGraph``.

Steps are functions ``state -> partial update``. The engine wraps every
step so an exception becomes a failure update instead of a crash, and
every edge out of a step checks for that failure before moving on.
Branching comes only from router return values, never from ``step``.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Type

from langgraph.graph import StateGraph, END

from ..utils import config, get_workflow_logger, metrics_collector, Timer
from .state_definitions import ProcessingStep

logger = get_workflow_logger("engine")

STOP = "__stop__"

StepFn = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]
ErrorHandler = Callable[[Dict[str, Any], str, Exception], Dict[str, Any]]
Router = Callable[[Dict[str, Any]], str]


def failure_update(state: Dict[str, Any], step_name: str, error: Exception) -> Dict[str, Any]:
    """Default failure: FAILED with the exception message verbatim."""
    return {
        "step": ProcessingStep.FAILED,
        "error_message": str(error),
        "ended_at": datetime.now(),
    }


def has_failed(state: Mapping[str, Any]) -> bool:
    return bool(state.get("error_message"))


class WorkflowEngine:
    """
    Builder and runner for one fixed workflow graph.

    Args:
        name: Workflow name used in logs and metrics.
        state_schema: TypedDict describing the state.
        on_error: Failure update used by steps that don't supply their own.
        recursion_limit: Upper bound on graph super-steps per run.
    """

    def __init__(
        self,
        name: str,
        state_schema: Type,
        on_error: ErrorHandler = failure_update,
        recursion_limit: Optional[int] = None
    ):
        self.name = name
        self.graph = StateGraph(state_schema)
        self.on_error = on_error
        self.recursion_limit = recursion_limit or config.recursion_limit
        self.app = None

    def add_step(self, name: str, fn: StepFn, on_error: Optional[ErrorHandler] = None) -> "WorkflowEngine":
        self.graph.add_node(name, self._guard(name, fn, on_error or self.on_error))
        return self

    def _guard(self, name: str, fn: StepFn, on_error: ErrorHandler) -> StepFn:
        qualified = f"{self.name}.{name}"

        def guarded(state: Dict[str, Any]) -> Dict[str, Any]:
            try:
                with Timer() as timer:
                    update = fn(state) or {}
            except Exception as e:
                logger.error_with_metadata(
                    f"Step {qualified} failed: {e}",
                    {"workflow": self.name, "step": name, "error": str(e)}
                )
                return on_error(state, name, e)
            metrics_collector.record_step_timing(qualified, timer.elapsed)
            return update

        return guarded

    def set_entry(self, name: str) -> "WorkflowEngine":
        self.graph.set_entry_point(name)
        return self

    def add_sequence(self, names: Iterable[str]) -> "WorkflowEngine":
        """Chain steps in order; a failed step ends the run."""
        names = list(names)
        for current, following in zip(names, names[1:]):
            self.graph.add_conditional_edges(
                current,
                self._continue_to(following),
                {following: following, STOP: END}
            )
        return self

    @staticmethod
    def _continue_to(following: str) -> Router:
        def route(state: Dict[str, Any]) -> str:
            return STOP if has_failed(state) else following
        return route

    def add_router(self, source: str, router: Router, branches: Mapping[str, str]) -> "WorkflowEngine":
        """
        Branch after ``source`` on the key returned by ``router``.

        ``branches`` maps router keys to step names; ``END`` is allowed as
        a target. A failed state always stops.
        """
        path_map = dict(branches)
        path_map[STOP] = END

        def route(state: Dict[str, Any]) -> str:
            if has_failed(state):
                return STOP
            decision = router(state)
            logger.debug(f"[{self.name}] {source} -> {decision}")
            return decision

        self.graph.add_conditional_edges(source, route, path_map)
        return self

    def add_finish(self, name: str) -> "WorkflowEngine":
        self.graph.add_edge(name, END)
        return self

    def compile(self) -> "WorkflowEngine":
        self.app = self.graph.compile()
        return self

    def run(self, initial_state: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute the graph to a terminal state.

        Exceptions escaping the graph itself are caught here and reported
        as a failed copy of the initial state.
        """
        if self.app is None:
            self.compile()

        try:
            return self.app.invoke(initial_state, config={"recursion_limit": self.recursion_limit})
        except Exception as e:
            logger.error(f"Workflow {self.name} failed: {e}")
            failed = dict(initial_state)
            failed.update(self.on_error(initial_state, "engine", e))
            return failed
