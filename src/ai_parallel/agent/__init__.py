"""Agent CLI orchestration utilities."""

from .runner import AgentExecutionResult, AgentNotFoundError, AgentRunner, AgentRunnerError
from .utils import derive_model_name

__all__ = [
    "AgentExecutionResult",
    "AgentNotFoundError",
    "AgentRunner",
    "AgentRunnerError",
    "derive_model_name",
]
