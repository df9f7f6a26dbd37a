"""Hierarchical evaluation of limits over a tree of resources.

Each leaf of the tree starts a chain that climbs towards the root. Every
node on the chain that carries a value is asked, in turn, to match the
request and consume permits. A chain stops climbing at the first node that
does not match or that denies; ancestors above that point are left
untouched. A request is allowed only when no node on any visited chain
denied it.

Example::

    root = Node("root")
    api = Node("api", RateConfig("api", Rates.of(Rate.per_second(100))), root)
    Node("search", RateConfig("search", Rates.of(Rate.per_second(5))), api)

    limiter = MatchedResourceLimiter.of_annotations(root, matcher_provider=my_matchers)
    if limiter.try_consume(request):
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from limitree.core.temporal import Duration
from limitree.limiter import NO_OP_LIMITER, DefaultLimiterProvider, LimiterProvider, ResourceLimiter, rates_of
from limitree.listener import NO_OP_LISTENER, UsageListener
from limitree.matcher import DefaultMatcherProvider, MatcherProvider
from limitree.node import Node
from limitree.rates import NodeValue
from limitree.store.base import BandwidthsStore

logger = logging.getLogger(__name__)


class VisitResult(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    NOMATCH = "nomatch"


NodeVisitor = Callable[[Node[Any]], VisitResult]


def _configured_limit(node: Node[Any]) -> Any:
    rates = rates_of(node.value)
    return rates if rates is not None else node.value


class MatchedResourceLimiter[R](ResourceLimiter[R]):
    """Evaluates a request against every leaf-to-root chain of a tree.

    Args:
        root: Tree root. It is never evaluated itself.
        matcher_provider: Gives each node the matcher that maps a request to
            that node's key.
        limiter_provider: Gives each node its limiter. ``NO_OP_LIMITER``
            means the node does not limit anything.
        first_match_only: Stop after the first chain in which at least one
            node consumed successfully.
        listener: Notified after every node-level attempt.
        limit_of: Describes a node's limit to the listener.

    Raises:
        ValueError: If a required argument is None.
    """

    def __init__(
        self,
        root: Node[Any],
        matcher_provider: MatcherProvider | None = None,
        limiter_provider: LimiterProvider | None = None,
        first_match_only: bool = False,
        listener: UsageListener = NO_OP_LISTENER,
        limit_of: Callable[[Node[Any]], Any] = _configured_limit,
    ):
        if root is None:
            raise ValueError("root must not be None")
        if listener is None:
            raise ValueError("listener must not be None")
        self._root = root
        self._matcher_provider = matcher_provider if matcher_provider is not None else DefaultMatcherProvider()
        self._limiter_provider = limiter_provider if limiter_provider is not None else DefaultLimiterProvider()
        self._first_match_only = first_match_only
        self._listener = listener
        self._limit_of = limit_of
        self._leaves: tuple[Node[Any], ...] = tuple(leaf for leaf in root.leaves() if leaf is not root)
        logger.debug("Limiter tree with %d leaves:\n%s", len(self._leaves), root)

    @classmethod
    def of_annotations(cls, root: Node[Any], **kwargs: Any) -> MatchedResourceLimiter[R]:
        """Every matching chain is charged."""
        return cls(root, first_match_only=False, **kwargs)

    @classmethod
    def of_properties(cls, root: Node[Any], **kwargs: Any) -> MatchedResourceLimiter[R]:
        """Only the first chain that consumed anything is charged."""
        return cls(root, first_match_only=True, **kwargs)

    @classmethod
    def of_node_values(
        cls,
        root: Node[NodeValue[Any]],
        first_match_only: bool = True,
        **kwargs: Any,
    ) -> MatchedResourceLimiter[R]:
        """Evaluator over a tree whose values are ``NodeValue`` wrappers.

        The listener is told the wrapped value as the node's limit.
        """
        return cls(
            root,
            first_match_only=first_match_only,
            limit_of=lambda node: node.value.value if node.value is not None else None,
            **kwargs,
        )

    @property
    def root(self) -> Node[Any]:
        return self._root

    @property
    def leaves(self) -> tuple[Node[Any], ...]:
        return self._leaves

    @property
    def first_match_only(self) -> bool:
        return self._first_match_only

    @property
    def listener(self) -> UsageListener:
        return self._listener

    def visit_nodes(self, visitor: NodeVisitor, first_match_only: bool) -> bool:
        """Walk every leaf-to-root chain, calling ``visitor`` on each valued node.

        A chain ends at the root, at a node without a value, or at the first
        node the visitor does not report as SUCCESS.

        Returns:
            True if the visitor never reported FAILURE.
        """
        failures = 0
        for leaf in self._leaves:
            successes = 0
            node = leaf
            while node is not self._root and node is not None and node.has_value():
                result = visitor(node)
                if result is VisitResult.SUCCESS:
                    successes += 1
                elif result is VisitResult.FAILURE:
                    failures += 1
                if result is not VisitResult.SUCCESS:
                    break
                node = node.parent
            if first_match_only and successes > 0:
                break
        return failures == 0

    def try_consume(self, request: R, permits: int = 1, timeout: Duration | int | float = Duration.ZERO) -> bool:
        timeout = Duration.of(timeout)

        def consume(node: Node[Any]) -> VisitResult:
            limiter = self._limiter_provider(node)
            if limiter is NO_OP_LIMITER:
                return VisitResult.NOMATCH
            key = self._matcher_provider(node).match_or_none(request)
            if key is None:
                return VisitResult.NOMATCH
            granted = limiter.try_consume(key, permits, timeout)
            limit = self._limit_of(node)
            self._listener.on_consumed(request, key, permits, limit)
            if not granted:
                self._listener.on_rejected(request, key, permits, limit)
            logger.debug("Node %r, key %r, %d permit(s): %s", node.name, key, permits, "granted" if granted else "denied")
            return VisitResult.SUCCESS if granted else VisitResult.FAILURE

        return self.visit_nodes(consume, self._first_match_only)

    def _rebuild(self, limiter_provider: LimiterProvider, listener: UsageListener) -> MatchedResourceLimiter[R]:
        return MatchedResourceLimiter(
            self._root,
            self._matcher_provider,
            limiter_provider,
            self._first_match_only,
            listener,
            self._limit_of,
        )

    def with_store(self, store: BandwidthsStore) -> MatchedResourceLimiter[R]:
        """An evaluator whose node limiters all keep their state in ``store``."""
        limiters: dict[Node[Any], ResourceLimiter[Any]] = {}

        def rewire(node: Node[Any]) -> VisitResult:
            limiters[node] = self._limiter_provider(node).with_store(store)
            return VisitResult.SUCCESS

        self.visit_nodes(rewire, False)
        return self._rebuild(lambda node: limiters.get(node, NO_OP_LIMITER), self._listener)

    def with_listener(self, listener: UsageListener) -> MatchedResourceLimiter[R]:
        return self._rebuild(self._limiter_provider, listener)

    def __repr__(self) -> str:
        return (
            f"MatchedResourceLimiter(root={self._root.name!r}, leaves={len(self._leaves)}, "
            f"first_match_only={self._first_match_only})"
        )
