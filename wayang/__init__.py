"""Interpreter for a JSON browser-automation DSL."""

from .config import RunConfig, load_config
from .dsl.models import Program
from .errors import ActionError, ErrorCode, Outcome
from .interpreter import Frame, Interpreter
from .runner import Runner, RunResult, run_program
from .store import Store

__all__ = [
    "ActionError",
    "ErrorCode",
    "Frame",
    "Interpreter",
    "Outcome",
    "Program",
    "RunConfig",
    "RunResult",
    "Runner",
    "Store",
    "load_config",
    "run_program",
]
