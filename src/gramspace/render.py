# -------------------------------------
# template rendering
# -------------------------------------
"""
Ordered #symbol# substitution for templates whose choices were already made
elsewhere (e.g. a list of (symbol, value) pairs collected while walking a
derivation).
"""
from __future__ import annotations

import re
from collections.abc import Iterable

__all__ = ["render", "missing"]

# Anything between two #s: leftovers are reported whether or not they are valid names.
_LEFTOVER_RE = re.compile(r"#([^#\s]+)#")


def missing(symbol: str) -> str:
    return f"((missing:{symbol}))"


def render(template: str, params: Iterable[tuple[str, str]]) -> tuple[str, dict[str, str]]:
    """
    Replace #symbol# placeholders, one (symbol, value) pair at a time, in order.

    Each pair fills the leftmost remaining occurrence of its symbol, so a
    repeated symbol takes one pair per occurrence, and a value may introduce
    new placeholders that later pairs resolve:

        render("#NP# loves #NP#", [("NP", "cat"), ("NP", "girl")]) -> ("cat loves girl", {"NP": "girl"})
        render("#S#", [("S", "#V##C#"), ("V", "a"), ("C", "b")])   -> ("ab", {...})

    Whatever is still a placeholder at the end becomes ((missing:symbol)).
    The leftover scan is looser than the compiler: any #token# without
    whitespace counts, so "#42#" also becomes ((missing:42)) even though
    compile_template keeps it as literal text. Never raises.

    Returns:
        (text, applied) where applied maps each symbol that matched to the
        last value substituted for it.
    """
    text = template
    applied: dict[str, str] = {}
    for symbol, value in params:
        token = f"#{symbol}#"
        if token in text:
            value = str(value)
            applied[symbol] = value
            text = text.replace(token, value, 1)
    text = _LEFTOVER_RE.sub(lambda m: missing(m.group(1)), text)
    return text, applied
