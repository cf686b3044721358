# -------------------------------------
# derivation counter
# -------------------------------------
"""
Exact derivation counting.

  count(Lit, d)      = 1
  count(Ref(n), d)   = 0 if d < 0 else sum(count(o, d-1) for o in options(n))
  count(Seq(ps), d)  = prod(count(p, d) for p in ps)
  count(Alt(os), d)  = sum(count(o, d) for o in os)

A reference to an undefined symbol has exactly one derivation, the
((missing:name)) sentinel. Counts are Python ints, so they stay exact no
matter how large the space gets; nothing is ever materialised.

The memo (pattern, depth) -> count lives on a Counter built for one
top-level call, never on the engine.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .grammar import Alt, CyclicGrammar, Lit, Node, Ref, RuleTable, Seq

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "Counter",
    "count",
    "find_cycle",
    "resolve_depth",
]

# Stands in for "unbounded": large, finite, only ever used on acyclic grammars.
DEFAULT_MAX_DEPTH = 1_000_000


class Counter:
    """
    Memoised derivation counter over one RuleTable.

    Evaluation runs on an explicit work stack, so grammar depth is bounded
    by max_depth and memory, not by the interpreter's recursion limit.
    """

    def __init__(self, rules: RuleTable):
        self.rules = rules
        self.memo: dict[tuple[str, int], int] = {}

    def symbol(self, name: str, depth: int) -> int:
        return self.node(Ref(name), depth)

    def node(self, node: Node, depth: int) -> int:
        if isinstance(node, Alt):
            return sum(self.node(o, depth) for o in node.options)
        known = self._known(node, depth)
        if known is not None:
            return known

        stack = [(node, depth)]
        while stack:
            pending = self._settle(*stack[-1])
            if pending is None:
                stack.pop()
            else:
                stack.append(pending)
        return self.memo[(node.pattern, depth)]

    def _known(self, node: Node, depth: int) -> int | None:
        if depth < 0:
            return 0
        if isinstance(node, Lit):
            return 1
        if isinstance(node, (Ref, Seq)):
            return self.memo.get((node.pattern, depth))
        if isinstance(node, Alt):
            raise TypeError("Alt nodes only occur at the top of a rule")
        raise TypeError(f"not a grammar node: {node!r}")

    def _settle(self, node: Ref | Seq, depth: int) -> tuple[Node, int] | None:
        """Memoise node at depth, or return the first (node, depth) it still waits on."""
        key = (node.pattern, depth)
        if key in self.memo:
            return None

        if isinstance(node, Ref):
            options = self.rules.options(node.name)
            total = 1 if options is None else 0
            for option in options or ():
                value = self._known(option, depth - 1)
                if value is None:
                    return option, depth - 1
                total += value
        else:
            total = 1
            for part in node.parts:
                value = self._known(part, depth)
                if value is None:
                    return part, depth
                total *= value
                if total == 0:
                    break
        self.memo[key] = total
        return None


# ============================================================
# Cycles
# ============================================================

def find_cycle(rules: RuleTable, start: str) -> list[str] | None:
    """
    Depth-first search over the references reachable from start (through the
    constrained options). Returns the first cycle found as a closed path,
    e.g. ['expr', 'term', 'expr'], or None.
    """
    if rules.options(start) is None:
        return None

    state: dict[str, int] = {start: 1}  # 1 = on stack, 2 = done
    path = [start]
    stack = [iter(rules.references(start))]
    while stack:
        child = next(stack[-1], None)
        if child is None:
            state[path.pop()] = 2
            stack.pop()
            continue
        mark = state.get(child)
        if mark == 1:
            return path[path.index(child):] + [child]
        if mark == 2 or rules.options(child) is None:
            continue
        state[child] = 1
        path.append(child)
        stack.append(iter(rules.references(child)))
    return None


def resolve_depth(rules: RuleTable, start: str, max_depth: int | None) -> int:
    """
    Explicit depths pass through untouched. Without one, the grammar must be
    acyclic from start, and the large sentinel is used.
    """
    if max_depth is not None:
        return int(max_depth)
    cycle = find_cycle(rules, start)
    if cycle is not None:
        raise CyclicGrammar(cycle)
    return DEFAULT_MAX_DEPTH


# ============================================================
# Entry point
# ============================================================

def count(
    compiled: Mapping[str, Alt],
    start: str = "origin",
    constraints: Mapping[str, str | Iterable[str]] | None = None,
    max_depth: int | None = None,
) -> int:
    """
    Exact number of derivations of start.

    Constraints that rule out every alternative of a symbol make that
    subtree count 0; this never raises for them.

    Raises:
        CyclicGrammar: start reaches a cycle and max_depth is None.
    """
    rules = RuleTable(compiled, constraints)
    depth = resolve_depth(rules, start, max_depth)
    total = Counter(rules).symbol(start, depth)
    logger.debug("count(%s, depth=%d) = %d", start, depth, total)
    return total
