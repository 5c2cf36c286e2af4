"""Base class for the discovery pipelines built on LangGraph."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from langgraph.graph import StateGraph

from src.utils.errors import raise_for_error_code
from src.utils.logging_config import get_logger

Node = Callable[[dict], dict]


def with_state(state: dict, **updates) -> dict:
    """Return a new state dict with updates applied."""

    return {**state, **updates}


def with_error(state: dict, code: str, message: str) -> dict:
    """Return a new state dict carrying a terminal error.

    ``code`` must be a key of ``src.utils.errors.ERROR_CODES``.
    """

    return {**state, "error": message, "error_code": code}


class BaseGraph(ABC):
    """Linear pipeline of graph nodes sharing one state dict.

    Subclasses set ``state_schema`` and list their nodes in ``steps()``. A
    node that fails records ``error``/``error_code`` instead of raising, and
    every later node passes such a state through unchanged, so the final
    node always runs and can shape the error response.
    """

    state_schema: type = dict

    def __init__(self):
        self.logger = get_logger("graph." + type(self).__name__)

    @abstractmethod
    def steps(self) -> list[tuple[str, Node]]:
        """Return (node name, node) pairs in execution order."""

    def build_graph(self) -> StateGraph:
        """Wire ``steps()`` into a StateGraph, one edge per consecutive pair."""

        steps = self.steps()
        graph = StateGraph(self.state_schema)
        for name, node in steps:
            graph.add_node(name, node)

        names = [name for name, _ in steps]
        graph.set_entry_point(names[0])
        for current, following in zip(names, names[1:]):
            graph.add_edge(current, following)
        graph.set_finish_point(names[-1])

        return graph

    def _log_node_execution(self, node_name: str, state: dict) -> None:
        self.logger.debug("Executing node %s for pet %s", node_name, state.get("pet_id"))

    def _log_node_error(self, node_name: str, error: Exception) -> None:
        """Log node failure without leaking profile data."""

        self.logger.error("Node %s failed: %s", node_name, str(error))

    def compile(self):
        return self.build_graph().compile()

    def run(self, initial_state: dict) -> dict:
        """Invoke the compiled graph and raise for any recorded error.

        Raises:
            InvalidInputError, NotFoundError, ForbiddenError, DependencyError
        """

        result = self.compile().invoke(initial_state)
        raise_for_error_code(result)
        return result
