"""Action models, registry and name resolution for the wayang DSL."""

from . import models
from .registry import ActionParseError, ActionRegistry, build_registry, default_registry
from .resolution import Resolver

__all__ = [
    "models",
    "ActionParseError",
    "ActionRegistry",
    "Resolver",
    "build_registry",
    "default_registry",
]
