"""Matchers map a request onto the key a node limits it by.

A matcher returns None when the request does not concern the node. Matchers
are pure and may be shared between threads.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from limitree.node import Node
from limitree.rates import RateConfig

logger = logging.getLogger(__name__)


class Matcher[T, R]:
    """Wraps a function ``T -> R | None``.

    Args:
        function: The matching function.
        name: Label used in ``repr``.
    """

    def __init__(self, function: Callable[[T], R | None], name: str | None = None):
        self._function = function
        self._name = name or getattr(function, "__name__", "matcher")

    def match_or_none(self, target: T) -> R | None:
        return self._function(target)

    def matches(self, target: T) -> bool:
        return self.match_or_none(target) is not None

    def and_then[U](self, after: Matcher[R, U]) -> Matcher[T, U]:
        """Feed this matcher's result into ``after``, stopping at the first None."""

        def composed(target: T) -> U | None:
            result = self.match_or_none(target)
            if result is None:
                return None
            return after.match_or_none(result)

        return Matcher(composed, f"{self._name}.and_then({after._name})")

    def __call__(self, target: T) -> R | None:
        return self.match_or_none(target)

    def __repr__(self) -> str:
        return f"Matcher({self._name})"


MATCH_NONE: Matcher[Any, Any] = Matcher(lambda target: None, "match_none")
IDENTITY: Matcher[Any, Any] = Matcher(lambda target: target, "identity")


def node_name_matcher(name: str) -> Matcher[Any, str]:
    """Matches a request equal to ``name``, yielding the name as the key."""

    def match_name(target: Any) -> str | None:
        return name if target == name else None

    return Matcher(match_name, f"name={name}")


@runtime_checkable
class MatcherProvider(Protocol):
    def __call__(self, node: Node[Any]) -> Matcher[Any, Any]: ...


ConditionMatcherFactory = Callable[[Node[Any], str], Matcher[Any, Any]]


class DefaultMatcherProvider:
    """Gives every node a matcher on its own name.

    Nodes whose ``RateConfig`` carries a condition get their matcher from
    ``condition_matcher_factory`` instead, when one is supplied; parsing the
    condition is entirely up to that factory. Matchers are cached per node;
    same-named nodes in different branches each get their own.

    Args:
        condition_matcher_factory: Builds a matcher for ``(node, condition)``.
    """

    def __init__(self, condition_matcher_factory: ConditionMatcherFactory | None = None):
        self._condition_matcher_factory = condition_matcher_factory
        self._cache: dict[Node[Any], Matcher[Any, Any]] = {}
        self._lock = threading.Lock()

    def __call__(self, node: Node[Any]) -> Matcher[Any, Any]:
        with self._lock:
            matcher = self._cache.get(node)
            if matcher is None:
                matcher = self._create(node)
                self._cache[node] = matcher
            return matcher

    def _create(self, node: Node[Any]) -> Matcher[Any, Any]:
        condition = node.value.condition if isinstance(node.value, RateConfig) else ""
        if condition and self._condition_matcher_factory is not None:
            logger.debug("Node %r matches on condition %r", node.name, condition)
            return self._condition_matcher_factory(node, condition)
        return node_name_matcher(node.name)
