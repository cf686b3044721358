# -------------------------------------
# grammar files
# -------------------------------------
"""
Load and save grammars as YAML or JSON.

Both formats hold the same object, either the grammar itself or the grammar
under a top-level "grammar" key:

    origin: ["#word_order#"]
    word_order: ["#SVO#", "#VSO#"]
    ...
"""
import json
from pathlib import Path
from typing import Any

import yaml

from .grammar import GrammarFormatError, normalize_grammar

__all__ = ["load_grammar", "dump_grammar", "clear_cache"]

_YAML_SUFFIXES = {".yml", ".yaml"}
_JSON_SUFFIXES = {".json"}

# Module-level cache of parsed files, keyed by resolved path
_GRAMMAR_CACHE: dict[str, dict[str, list[str]]] = {}


def _parse(path: Path) -> Any:
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in _JSON_SUFFIXES:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise GrammarFormatError(f"invalid JSON grammar '{path}': {e}") from e
    if suffix in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise GrammarFormatError(f"invalid YAML grammar '{path}': {e}") from e
    raise GrammarFormatError(f"unsupported grammar file type '{suffix}' (use .json, .yml or .yaml)")


def load_grammar(path: str | Path) -> dict[str, list[str]]:
    """
    Load a grammar file.

    Args:
        path: .json, .yml or .yaml file

    Returns:
        A fresh {symbol: [templates]} dict (callers may modify it freely)

    Raises:
        FileNotFoundError: If the file doesn't exist
        GrammarFormatError: If the file can't be parsed or isn't a grammar
    """
    path = Path(path)
    key = str(path.resolve())

    if key not in _GRAMMAR_CACHE:
        data = _parse(path)
        if isinstance(data, dict) and isinstance(data.get("grammar"), dict):
            data = data["grammar"]
        _GRAMMAR_CACHE[key] = normalize_grammar(data)

    return {k: list(v) for k, v in _GRAMMAR_CACHE[key].items()}


def dump_grammar(grammar: dict[str, list[str]], path: str | Path) -> None:
    """Write a grammar as JSON or YAML, chosen by the file suffix."""
    path = Path(path)
    grammar = normalize_grammar(grammar)
    suffix = path.suffix.lower()
    if suffix in _JSON_SUFFIXES:
        path.write_text(json.dumps(grammar, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    elif suffix in _YAML_SUFFIXES:
        path.write_text(
            yaml.safe_dump(grammar, allow_unicode=True, sort_keys=False, default_flow_style=None),
            encoding="utf-8",
        )
    else:
        raise GrammarFormatError(f"unsupported grammar file type '{suffix}' (use .json, .yml or .yaml)")
    _GRAMMAR_CACHE.pop(str(path.resolve()), None)


def clear_cache() -> None:
    """Clear the grammar file cache."""
    _GRAMMAR_CACHE.clear()
