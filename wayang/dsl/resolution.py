"""Name resolution for selectors and custom actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional, Tuple

from .models import ActionBase, Program

SIGIL = "$"


@dataclass(slots=True)
class ResolvedReference:
    """Outcome of resolving a ``$``-prefixed value inside ``store`` items."""

    kind: Literal["selector", "action", "literal"]
    name: str
    value: Any


@dataclass(slots=True)
class Resolver:
    """Exact-name lookups into a loaded :class:`Program`."""

    program: Program

    def selector(self, expression: str) -> Tuple[Optional[str], bool]:
        if not expression.startswith(SIGIL):
            return expression, True
        selector = self.program.selectors.get(expression[len(SIGIL):])
        return selector, selector is not None

    def custom_action(self, name: str) -> Tuple[Optional[ActionBase], bool]:
        if name.startswith(SIGIL):
            name = name[len(SIGIL):]
        action = self.program.actions.get(name)
        return action, action is not None

    def reference(self, value: str) -> ResolvedReference:
        """Resolve a store value: selectors first, then custom actions."""

        if not value.startswith(SIGIL):
            return ResolvedReference("literal", value, value)
        name = value[len(SIGIL):]
        if name in self.program.selectors:
            return ResolvedReference("selector", name, self.program.selectors[name])
        if name in self.program.actions:
            return ResolvedReference("action", name, self.program.actions[name])
        return ResolvedReference("literal", name, value)
