# -------------------------------------
# grammar compiler
# -------------------------------------
"""
grammar.py

Template compiler + constraint resolution.

Compiler output (structure, no expansion):
  - Lit(text)        literal text between placeholders
  - Ref(name)        a #name# placeholder, resolved by name at count/generate time
  - Seq(parts)       the Lit/Ref parts of one template (one part collapses to the part)
  - Alt(options)     one per symbol; the only node that holds alternatives

Constraints ({symbol: value | [values]}) are resolved once per call into
matchers and applied through a RuleTable, a per-call view of the compiled
grammar with every symbol's options already filtered.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Union

logger = logging.getLogger(__name__)

__all__ = [
    "GrammarError",
    "GrammarFormatError",
    "ConstraintViolation",
    "CyclicGrammar",
    "Lit",
    "Ref",
    "Seq",
    "Alt",
    "PatternMatch",
    "NameMatch",
    "RuleTable",
    "PLACEHOLDER",
    "normalize_grammar",
    "compile_template",
    "compile_grammar",
    "referenced_symbols",
    "choice_label",
    "strip_placeholder",
    "resolve_constraints",
    "apply_constraint",
    "validate_constraints",
]


# ============================================================
# Errors
# ============================================================

class GrammarError(ValueError):
    pass


class GrammarFormatError(GrammarError):
    pass


class ConstraintViolation(GrammarError):
    """A constraint leaves a symbol with no alternative to choose from."""

    def __init__(self, symbol: str, alternatives: Iterable[str], requested: Iterable[str]):
        self.symbol = symbol
        self.alternatives = list(alternatives)
        self.requested = list(requested)
        super().__init__(
            f"constraint on '{symbol}' matches none of its alternatives: "
            f"requested {self.requested!r}, valid {self.alternatives!r}"
        )


class CyclicGrammar(GrammarError):
    """A symbol reaches itself and no max_depth was given to cut the recursion."""

    def __init__(self, cycle: Iterable[str]):
        self.cycle = list(cycle)
        super().__init__(
            "cyclic grammar: " + " -> ".join(self.cycle) + " (pass max_depth to truncate)"
        )


# ============================================================
# Nodes (compiler output)
# ============================================================

@dataclass(frozen=True)
class Lit:
    text: str
    pattern: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "pattern", self.text)


@dataclass(frozen=True)
class Ref:
    name: str
    pattern: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "pattern", f"#{self.name}#")


@dataclass(frozen=True)
class Seq:
    parts: tuple[Node, ...]
    pattern: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "pattern", "".join(p.pattern for p in self.parts))


@dataclass(frozen=True)
class Alt:
    options: tuple[Node, ...]
    pattern: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "pattern", "|".join(o.pattern for o in self.options))


Node = Union[Lit, Ref, Seq, Alt]


# ============================================================
# regexes
# ============================================================

PLACEHOLDER = re.compile(r"#([A-Za-z_][A-Za-z0-9_]*)#")
_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


# ============================================================
# Grammar input
# ============================================================

def normalize_grammar(data: object) -> dict[str, list[str]]:
    """
    Validate a raw grammar and return a fresh {symbol: [templates]} copy.

    A bare string value is a one-template rule; numbers (as YAML likes to
    produce them) are converted to their text. Anything else is rejected.
    """
    if not isinstance(data, Mapping):
        raise GrammarFormatError(
            f"grammar must be a mapping of symbol -> list of templates, got {type(data).__name__}"
        )

    out: dict[str, list[str]] = {}
    for symbol, templates in data.items():
        if not isinstance(symbol, str) or not symbol:
            raise GrammarFormatError(f"symbol names must be non-empty strings, got {symbol!r}")
        if isinstance(templates, str):
            templates = [templates]
        elif not isinstance(templates, (list, tuple)):
            raise GrammarFormatError(
                f"rule '{symbol}' must be a list of templates, got {type(templates).__name__}"
            )
        items: list[str] = []
        for t in templates:
            if isinstance(t, bool) or not isinstance(t, (str, int, float)):
                raise GrammarFormatError(f"rule '{symbol}' has a non-text template: {t!r}")
            items.append(t if isinstance(t, str) else str(t))
        if not _IDENT_RE.fullmatch(symbol):
            logger.debug("symbol %r cannot be referenced by a #placeholder#", symbol)
        out[symbol] = items
    return out


# ============================================================
# Compiler
# ============================================================

def compile_template(template: str) -> Node:
    """
    One left-to-right pass over the template:
      "#NP# eats #OP#" -> Seq((Ref("NP"), Lit(" eats "), Ref("OP")))
      "#SVO#"          -> Ref("SVO")
      "girl"           -> Lit("girl")
      ""               -> Lit("")
    """
    parts: list[Node] = []
    last = 0
    for m in PLACEHOLDER.finditer(template):
        if m.start() > last:
            parts.append(Lit(template[last:m.start()]))
        parts.append(Ref(m.group(1)))
        last = m.end()
    if last < len(template):
        parts.append(Lit(template[last:]))

    if not parts:
        return Lit("")
    if len(parts) == 1:
        return parts[0]
    return Seq(tuple(parts))


def compile_grammar(grammar: Mapping[str, Iterable[str]]) -> dict[str, Alt]:
    """Compile every symbol into an Alt over its compiled templates."""
    return {
        symbol: Alt(tuple(compile_template(t) for t in templates))
        for symbol, templates in grammar.items()
    }


def referenced_symbols(template: str) -> list[str]:
    """Symbol names referenced by a template, in order, repeats kept."""
    return [m.group(1) for m in PLACEHOLDER.finditer(template)]


def choice_label(node: Node) -> str:
    """Trace label for a chosen alternative: bare name for a lone reference, else the template."""
    if isinstance(node, Ref):
        return node.name
    return node.pattern


def strip_placeholder(text: str) -> str:
    """'#origin#' -> 'origin'; anything else unchanged."""
    m = PLACEHOLDER.fullmatch(text.strip())
    return m.group(1) if m else text.strip()


# ============================================================
# Constraints
# ============================================================

@dataclass(frozen=True)
class PatternMatch:
    """Allowed value given as the full template text, e.g. '#S##S#' or 'girl'."""
    pattern: str

    def matches(self, option: Node) -> bool:
        return option.pattern == self.pattern


@dataclass(frozen=True)
class NameMatch:
    """Allowed value given as a bare symbol name, matching a single-reference alternative."""
    name: str

    def matches(self, option: Node) -> bool:
        return isinstance(option, Ref) and option.name == self.name


Matcher = Union[PatternMatch, NameMatch]


def resolve_constraints(
    constraints: Mapping[str, str | Iterable[str]] | None,
) -> dict[str, tuple[Matcher, ...]]:
    """
    Turn {symbol: value | [values]} into {symbol: (matchers...)}.

    Every value matches as template text; a value that is also a valid
    identifier additionally matches a lone #value# reference.
    """
    if not constraints:
        return {}
    out: dict[str, tuple[Matcher, ...]] = {}
    for symbol, allowed in constraints.items():
        values = [allowed] if isinstance(allowed, str) else list(allowed)
        matchers: list[Matcher] = []
        for v in values:
            v = str(v)
            matchers.append(PatternMatch(v))
            if _IDENT_RE.fullmatch(v):
                matchers.append(NameMatch(v))
        out[symbol] = tuple(matchers)
    return out


def _requested(matchers: Iterable[Matcher]) -> list[str]:
    return [m.pattern for m in matchers if isinstance(m, PatternMatch)]


def apply_constraint(
    name: str,
    alt: Alt,
    resolved: Mapping[str, tuple[Matcher, ...]],
) -> tuple[Node, ...]:
    """Options of alt that the resolved constraints allow for symbol name."""
    matchers = resolved.get(name)
    if matchers is None:
        return alt.options
    return tuple(o for o in alt.options if any(m.matches(o) for m in matchers))


def validate_constraints(
    compiled: Mapping[str, Alt],
    resolved: Mapping[str, tuple[Matcher, ...]],
) -> None:
    """
    Generation-time validation: a constraint that rules out every
    alternative of a defined symbol is an error. Constraints on symbols
    the grammar does not define are ignored.
    """
    for name, matchers in resolved.items():
        alt = compiled.get(name)
        if alt is None:
            logger.warning("constraint on undefined symbol '%s' ignored", name)
            continue
        if not apply_constraint(name, alt, resolved):
            raise ConstraintViolation(name, [o.pattern for o in alt.options], _requested(matchers))


class RuleTable:
    """
    Per-call view of a compiled grammar with constraints applied.

    options(name) returns the filtered options of a symbol, or None when the
    symbol is not defined. Filtering happens once per symbol per call.
    """

    def __init__(
        self,
        compiled: Mapping[str, Alt],
        constraints: Mapping[str, str | Iterable[str]] | None = None,
    ):
        self.compiled = compiled
        self.constraints = resolve_constraints(constraints)
        self._options: dict[str, tuple[Node, ...]] = {}

    def options(self, name: str) -> tuple[Node, ...] | None:
        cached = self._options.get(name)
        if cached is not None:
            return cached
        alt = self.compiled.get(name)
        if alt is None:
            return None
        opts = self._options[name] = apply_constraint(name, alt, self.constraints)
        return opts

    def check(self) -> None:
        validate_constraints(self.compiled, self.constraints)

    def references(self, name: str) -> list[str]:
        """Names referenced by the (filtered) options of a symbol, first-seen order."""
        seen: dict[str, None] = {}
        for option in self.options(name) or ():
            parts = option.parts if isinstance(option, Seq) else (option,)
            for part in parts:
                if isinstance(part, Ref):
                    seen.setdefault(part.name, None)
        return list(seen)
