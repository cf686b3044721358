# -------------------------------------
# sampling + exhaustive expansion
# -------------------------------------
"""
generator.py

Three ways to turn a compiled grammar into text, each returning Samples
(text + per-symbol trace):

  - generate       one random derivation
  - generate_many  a batch, optionally unique by text
  - expand_all     every derivation in order, optionally capped

Random choice comes from an explicit random.Random. When none is passed a
fresh one is seeded from OS entropy; there is no module-level RNG.

Selection strategies:
  - WEIGHTED: an option is picked with probability proportional to the
    number of derivations below it, so every derivation is equally likely.
  - UNIFORM: every option that can still complete within the depth limit
    is equally likely, however much it expands to.

Nothing here raises for missing symbols or exhausted depth: a missing
symbol becomes ((missing:name)); a reference that cannot be expanded
within the depth limit is left as #name#.
"""
from __future__ import annotations

import bisect
import itertools
import logging
import random
import secrets
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from .counter import Counter, resolve_depth
from .grammar import Alt, Lit, Node, Ref, RuleTable, Seq, choice_label
from .render import missing

logger = logging.getLogger(__name__)

__all__ = [
    "Strategy",
    "Sample",
    "Piece",
    "new_rng",
    "generate",
    "generate_many",
    "iter_all",
    "expand_all",
]

Constraints = Mapping[str, "str | Iterable[str]"]
Event = tuple[str, str]


class Strategy(Enum):
    """How to choose among a symbol's alternatives."""
    WEIGHTED = "weighted"  # uniform over derivations
    UNIFORM = "uniform"    # uniform over options


@dataclass
class Sample:
    text: str
    trace: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {"text": self.text, "trace": {k: list(v) for k, v in self.trace.items()}}


def _trace(events: Iterable[Event]) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for symbol, label in events:
        out.setdefault(symbol, []).append(label)
    return out


# ============================================================
# Rendered pieces
# ============================================================

PieceKind = Literal["text", "missing", "truncated"]


@dataclass(frozen=True)
class Piece:
    """One chunk of output: resolved text, or a symbol that could not be expanded."""
    kind: PieceKind
    value: str

    def fold(self) -> str:
        if self.kind == "missing":
            return missing(self.value)
        if self.kind == "truncated":
            return f"#{self.value}#"
        return self.value


# ============================================================
# RNG
# ============================================================

def new_rng(seed: int | str | None = None) -> random.Random:
    """
    random.Random seeded with seed, or from OS entropy when seed is None or
    one of "auto"/"rand"/"random"/"entropy".
    """
    if seed is None or str(seed).lower() in ("auto", "rand", "random", "entropy"):
        return random.Random(secrets.randbits(128))
    return random.Random(int(seed))


# ============================================================
# Sampling
# ============================================================

class _Sampler:
    def __init__(self, rules: RuleTable, counter: Counter, rng: random.Random, strategy: Strategy):
        self.rules = rules
        self.counter = counter
        self.rng = rng
        self.strategy = strategy
        # (symbol, depth) -> (options, cumulative weights, live options)
        self._tables: dict[tuple[str, int], tuple[tuple[Node, ...], list[int], list[Node]]] = {}

    def sample(self, start: str, depth: int) -> Sample:
        pieces: list[Piece] = []
        events: list[Event] = []
        # (node, depth) still to render, rightmost at the bottom
        work: list[tuple[Node, int]] = [(Ref(start), depth)]
        while work:
            node, d = work.pop()
            if isinstance(node, Lit):
                pieces.append(Piece("text", node.text))
            elif isinstance(node, Ref):
                chosen = self._symbol(node.name, d, pieces, events)
                if chosen is not None:
                    work.append((chosen, d - 1))
            elif isinstance(node, Seq):
                work.extend((part, d) for part in reversed(node.parts))
            elif isinstance(node, Alt):
                raise TypeError("Alt nodes only occur at the top of a rule")
            else:
                raise TypeError(f"not a grammar node: {node!r}")
        return Sample("".join(p.fold() for p in pieces), _trace(events))

    def _table(self, name: str, depth: int, options: tuple[Node, ...]):
        key = (name, depth)
        table = self._tables.get(key)
        if table is None:
            weights = [self.counter.node(o, depth - 1) for o in options]
            live = [o for o, w in zip(options, weights) if w]
            table = self._tables[key] = (options, list(itertools.accumulate(weights)), live)
        return table

    def _choose(self, options: tuple[Node, ...], cumulative: list[int], live: list[Node]) -> Node:
        if self.strategy is Strategy.UNIFORM:
            return live[self.rng.randrange(len(live))]
        pick = self.rng.randrange(cumulative[-1])
        return options[bisect.bisect_right(cumulative, pick)]

    def _symbol(self, name: str, depth: int, pieces: list[Piece], events: list[Event]) -> Node | None:
        """Pick an option for name, or record why it stays unexpanded and return None."""
        if depth < 0:
            pieces.append(Piece("truncated", name))
            return None
        options = self.rules.options(name)
        if options is None:
            pieces.append(Piece("missing", name))
            return None
        options, cumulative, live = self._table(name, depth, options)
        if not live:
            pieces.append(Piece("truncated", name))
            return None
        chosen = self._choose(options, cumulative, live)
        events.append((name, choice_label(chosen)))
        return chosen


def _prepare(
    compiled: Mapping[str, Alt],
    start: str,
    constraints: Constraints | None,
    max_depth: int | None,
) -> tuple[RuleTable, Counter, int]:
    rules = RuleTable(compiled, constraints)
    rules.check()
    depth = resolve_depth(rules, start, max_depth)
    return rules, Counter(rules), depth


def generate(
    compiled: Mapping[str, Alt],
    start: str = "origin",
    constraints: Constraints | None = None,
    max_depth: int | None = None,
    rng: random.Random | None = None,
    strategy: Strategy | str = Strategy.WEIGHTED,
) -> Sample:
    """
    Draw one derivation.

    Raises:
        ConstraintViolation: a constraint rules out every alternative of a symbol.
        CyclicGrammar: start reaches a cycle and max_depth is None.
    """
    rules, counter, depth = _prepare(compiled, start, constraints, max_depth)
    sampler = _Sampler(rules, counter, rng or new_rng(), Strategy(strategy))
    return sampler.sample(start, depth)


def generate_many(
    compiled: Mapping[str, Alt],
    n: int,
    start: str = "origin",
    constraints: Constraints | None = None,
    unique: bool = False,
    max_depth: int | None = None,
    rng: random.Random | None = None,
    strategy: Strategy | str = Strategy.WEIGHTED,
    max_attempts: int | None = None,
) -> list[Sample]:
    """
    Draw n derivations. With unique=True, duplicates by text are dropped and
    drawing stops at n results or at the total derivation count, whichever
    comes first. Distinct texts can be fewer than derivations (two templates
    producing the same string), so unique drawing also stops after
    max_attempts draws (default max(1000, 50 * n)).
    """
    if n <= 0:
        return []
    rules, counter, depth = _prepare(compiled, start, constraints, max_depth)
    sampler = _Sampler(rules, counter, rng or new_rng(), Strategy(strategy))

    if not unique:
        return [sampler.sample(start, depth) for _ in range(n)]

    target = min(n, counter.symbol(start, depth))
    attempts = max_attempts if max_attempts is not None else max(1000, 50 * n)
    seen: set[str] = set()
    out: list[Sample] = []
    tries = 0
    while len(out) < target and tries < attempts:
        s = sampler.sample(start, depth)
        tries += 1
        if s.text in seen:
            continue
        seen.add(s.text)
        out.append(s)

    if len(out) < target:
        logger.warning(
            "unique sampling of '%s' stopped after %d draws with %d of %d texts",
            start, tries, len(out), target,
        )
    return out


# ============================================================
# Exhaustive expansion
# ============================================================

# Work still to render, as an immutable linked list (node, depth, rest), so a
# choice point can keep its continuation without copying it.
_Work = Union[tuple[Node, int, "_Work"], None]


@dataclass
class _Choice:
    work: _Work
    text_len: int
    events_len: int
    name: str
    depth: int
    live: list[Node]
    index: int = 0


class _Expander:
    """
    Lazy cartesian expansion by backtracking over choice points. Mirrors
    Counter exactly, so yields == counts.

    A derivation is the sequence of choices met in a left-to-right walk of
    the tree; advancing the last choice point that has options left gives
    the next derivation, so the first choice varies slowest.
    """

    def __init__(self, rules: RuleTable, counter: Counter):
        self.rules = rules
        self.counter = counter

    def symbol(self, name: str, depth: int) -> Iterator[tuple[str, tuple[Event, ...]]]:
        if not self.counter.symbol(name, depth):
            return
        text: list[str] = []
        events: list[Event] = []
        choices: list[_Choice] = []
        work: _Work = (Ref(name), depth, None)

        while True:
            while work is not None:
                node, d, work = work
                if isinstance(node, Lit):
                    text.append(node.text)
                elif isinstance(node, Ref):
                    options = self.rules.options(node.name)
                    if options is None:
                        text.append(missing(node.name))
                        continue
                    # only options with derivations left are live, so this never dead-ends
                    live = [o for o in options if self.counter.node(o, d - 1)]
                    choices.append(_Choice(work, len(text), len(events), node.name, d, live))
                    events.append((node.name, choice_label(live[0])))
                    work = (live[0], d - 1, work)
                elif isinstance(node, Seq):
                    for part in reversed(node.parts):
                        work = (part, d, work)
                elif isinstance(node, Alt):
                    raise TypeError("Alt nodes only occur at the top of a rule")
                else:
                    raise TypeError(f"not a grammar node: {node!r}")

            yield "".join(text), tuple(events)

            while choices and choices[-1].index + 1 >= len(choices[-1].live):
                choices.pop()
            if not choices:
                return
            choice = choices[-1]
            choice.index += 1
            del text[choice.text_len:]
            del events[choice.events_len:]
            option = choice.live[choice.index]
            events.append((choice.name, choice_label(option)))
            work = (option, choice.depth - 1, choice.work)


def iter_all(
    compiled: Mapping[str, Alt],
    start: str = "origin",
    constraints: Constraints | None = None,
    max_depth: int | None = None,
) -> Iterator[Sample]:
    """
    Every derivation of start, lazily, options in declaration order and
    sequences varying the rightmost part fastest.

    Constraints and cycles are checked before the first item is produced.
    """
    rules, counter, depth = _prepare(compiled, start, constraints, max_depth)
    expander = _Expander(rules, counter)
    return (Sample(text, _trace(events)) for text, events in expander.symbol(start, depth))


def expand_all(
    compiled: Mapping[str, Alt],
    start: str = "origin",
    constraints: Constraints | None = None,
    max_depth: int | None = None,
    cap: int | None = None,
) -> list[Sample]:
    """
    All derivations as a list; with cap, only the first cap of them.
    The cap stops the lazy expansion, the rest of the space is never built.
    """
    it = iter_all(compiled, start, constraints, max_depth)
    if cap is None:
        return list(it)
    return list(itertools.islice(it, max(0, int(cap))))
