# -------------------------------------
# structure extraction
# -------------------------------------
"""
Descriptive metadata for one derivation.

The trace of a Sample is replayed against the compiled grammar to recover
the applied rules (which template each invocation chose, at what depth, and
what text it produced). An extractor turns that list into a flat dict.

GenericStructureExtractor only looks at text: references, token order,
length, capitalisation, punctuation, uppercase runs, quoted and numeric
values, operator runs, brackets. It knows nothing about any domain, so the
same extractor serves word-order, arithmetic and DNA grammars. Pass another
object with an extract_structure method to use domain knowledge instead.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .grammar import (
    PLACEHOLDER,
    Alt,
    GrammarError,
    Lit,
    Node,
    Ref,
    Seq,
    choice_label,
    referenced_symbols,
)
from .render import missing

__all__ = [
    "AppliedRule",
    "StructureExtractor",
    "GenericStructureExtractor",
    "applied_rules",
]


@dataclass(frozen=True)
class AppliedRule:
    symbol: str
    selected_rule: str
    result: str
    depth: int
    alternatives: tuple[str, ...]


@runtime_checkable
class StructureExtractor(Protocol):
    def extract_structure(self, applied: Sequence[AppliedRule]) -> dict[str, Any]:
        ...


# ============================================================
# Trace replay
# ============================================================

class _Replay:
    def __init__(self, compiled: Mapping[str, Alt], trace: Mapping[str, Sequence[str]]):
        self.compiled = compiled
        self.labels = {k: list(v) for k, v in trace.items()}
        self.cursor: dict[str, int] = {}
        self.rules: list[AppliedRule | None] = []

    def _next_label(self, name: str) -> str | None:
        i = self.cursor.get(name, 0)
        labels = self.labels.get(name, ())
        if i >= len(labels):
            return None
        self.cursor[name] = i + 1
        return labels[i]

    def _choose(self, name: str) -> Node | str:
        """The option the trace chose for name, or the text standing in for it."""
        alt = self.compiled.get(name)
        if alt is None:
            return missing(name)
        label = self._next_label(name)
        if label is None:
            # never chosen: the sampler stopped here for lack of depth
            return f"#{name}#"
        chosen = next((o for o in alt.options if choice_label(o) == label), None)
        if chosen is None:
            raise GrammarError(f"trace label {label!r} is not an alternative of '{name}'")
        return chosen

    def run(self, start: str) -> str:
        out: list[str] = []
        # ("node", node, depth) renders; ("close", slot, ...) fills in the rule once its text is out
        work: list[tuple] = [("node", Ref(start), 0)]
        while work:
            item = work.pop()
            if item[0] == "close":
                _, slot, name, chosen, depth, begin = item
                self.rules[slot] = AppliedRule(
                    symbol=name,
                    selected_rule=chosen.pattern,
                    result="".join(out[begin:]),
                    depth=depth,
                    alternatives=tuple(o.pattern for o in self.compiled[name].options),
                )
                continue

            _, node, depth = item
            if isinstance(node, Lit):
                out.append(node.text)
            elif isinstance(node, Ref):
                chosen = self._choose(node.name)
                if isinstance(chosen, str):
                    out.append(chosen)
                    continue
                slot = len(self.rules)
                self.rules.append(None)
                work.append(("close", slot, node.name, chosen, depth, len(out)))
                work.append(("node", chosen, depth + 1))
            elif isinstance(node, Seq):
                work.extend(("node", p, depth) for p in reversed(node.parts))
            else:
                raise TypeError(f"unexpected node in a template: {node!r}")
        return "".join(out)


def applied_rules(
    compiled: Mapping[str, Alt],
    trace: Mapping[str, Sequence[str]],
    start: str = "origin",
) -> list[AppliedRule]:
    """
    Rebuild the applied rules of a derivation from its trace, in invocation
    order (parents before children). The start symbol has depth 0.

    Raises:
        GrammarError: the trace names an alternative the grammar does not have.
    """
    replay = _Replay(compiled, trace)
    replay.run(start)
    return [r for r in replay.rules if r is not None]


# ============================================================
# Generic extractor
# ============================================================

_UPPER_RUN_RE = re.compile(r"[A-Z]{2,}")
_QUOTED_RE = re.compile(r'"([^"]+)"')
_NUMBER_RE = re.compile(r"\d+")
_OPERATOR_RE = re.compile(r"[+\-*/=<>!&|]+")


def _extend_unique(out: list, items: Iterable[Any]) -> None:
    for item in items:
        if item not in out:
            out.append(item)


class GenericStructureExtractor:
    """Text-only structure of a derivation. Keys are present only when something was found,
    except length and word_count."""

    name = "GenericStructureExtractor"

    def extract_structure(self, applied: Sequence[AppliedRule]) -> dict[str, Any]:
        structure: dict[str, Any] = {}
        references: list[str] = []
        patterns: list[str] = []
        quoted: list[str] = []
        numbers: list[int] = []
        operators: list[str] = []

        for rule in applied:
            template = rule.selected_rule
            _extend_unique(references, referenced_symbols(template))
            # literal text only; symbol names are not content
            bare = PLACEHOLDER.sub(" ", template)
            _extend_unique(patterns, _UPPER_RUN_RE.findall(bare))
            _extend_unique(quoted, _QUOTED_RE.findall(bare))
            _extend_unique(numbers, (int(n) for n in _NUMBER_RE.findall(bare)))
            _extend_unique(operators, _OPERATOR_RE.findall(bare))
            if "sequence" not in structure and len(template.split()) > 1:
                structure["sequence"] = [t.replace("#", "") for t in template.split()]
            if "(" in template and ")" in template:
                structure["has_parentheses"] = True
            if "[" in template and "]" in template:
                structure["has_brackets"] = True

        if references:
            structure["references"] = references
        if patterns:
            structure["patterns"] = patterns
        if quoted:
            structure["quoted_values"] = quoted
        if numbers:
            structure["numeric_values"] = numbers
        if operators:
            structure["operators"] = operators

        text = applied[0].result if applied else ""
        structure["length"] = len(text)
        structure["word_count"] = len(text.split())
        if re.match(r"[A-Z]", text):
            structure["starts_with_capital"] = True
        if re.search(r"[.!?]$", text):
            structure["ends_with_punctuation"] = True

        structure["extractor"] = self.name
        return structure
