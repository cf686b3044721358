# -------------------------------------
# parameter classification
# -------------------------------------
"""
Decide which symbols are parameters, i.e. which choices vary the output.

A symbol is a parameter when it has more than one alternative, or when its
only alternative references a symbol that has more than one. The check is
one hop deep: a single-alternative chain A -> B -> C only marks B if C varies.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from itertools import product

from .grammar import referenced_symbols

__all__ = [
    "ParameterDescriptor",
    "classify",
    "parameters",
    "parameter_combinations",
    "filter_parameters",
]


@dataclass(frozen=True)
class ParameterDescriptor:
    symbol: str
    values: tuple[str, ...] = ()
    current_value: str | None = None
    is_parameter: bool = False

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))


def _is_parameter(templates: list[str], grammar: Mapping[str, list[str]]) -> bool:
    if len(templates) > 1:
        return True
    if len(templates) == 1:
        return any(len(grammar.get(ref, ())) > 1 for ref in referenced_symbols(templates[0]))
    return False


def classify(
    grammar: Mapping[str, list[str]],
) -> tuple[dict[str, ParameterDescriptor], dict[str, list[str]]]:
    """
    Describe every symbol and build the reverse reference map.

    Returns:
        (descriptors, contexts) where descriptors maps each symbol to its
        ParameterDescriptor and contexts maps a referenced symbol to the
        symbols whose templates reference it (no repeats, first-seen order).
        Referenced symbols that the grammar does not define still appear in
        contexts.
    """
    descriptors: dict[str, ParameterDescriptor] = {}
    contexts: dict[str, list[str]] = {}

    for symbol, templates in grammar.items():
        descriptors[symbol] = ParameterDescriptor(
            symbol=symbol,
            values=tuple(templates),
            is_parameter=_is_parameter(list(templates), grammar),
        )
        for template in templates:
            for ref in referenced_symbols(template):
                sources = contexts.setdefault(ref, [])
                if symbol not in sources:
                    sources.append(symbol)

    return descriptors, contexts


def parameters(grammar: Mapping[str, list[str]]) -> dict[str, ParameterDescriptor]:
    """Only the descriptors that are parameters."""
    descriptors, _ = classify(grammar)
    return {k: d for k, d in descriptors.items() if d.is_parameter}


def parameter_combinations(params: Mapping[str, ParameterDescriptor]) -> list[dict[str, str]]:
    """
    Cartesian product of parameter values, first parameter varying slowest:
      {A: [x, y], B: [1, 2]} -> [{A:x,B:1}, {A:x,B:2}, {A:y,B:1}, {A:y,B:2}]
    """
    names = list(params)
    if not names:
        return [{}]
    return [dict(zip(names, picks)) for picks in product(*(params[n].values for n in names))]


def filter_parameters(
    params: Mapping[str, ParameterDescriptor],
    required: Mapping[str, str] | None = None,
    excluded: Mapping[str, Iterable[str]] | None = None,
) -> dict[str, ParameterDescriptor]:
    """
    Pin parameters to a single value (required) and/or drop values (excluded).
    Names not present in params are ignored. Returns new descriptors.
    """
    out = dict(params)
    for name, value in (required or {}).items():
        if name in out:
            out[name] = replace(out[name], values=(value,), current_value=value)
    for name, values in (excluded or {}).items():
        if name in out:
            drop = set(values)
            out[name] = replace(out[name], values=tuple(v for v in out[name].values if v not in drop))
    return out
