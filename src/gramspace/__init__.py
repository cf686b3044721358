# -------------------------------------
# gramspace
# -------------------------------------
"""
Grammar-driven text generation over #symbol# templates.

A grammar maps symbol names to lists of alternative templates:

    {"origin": ["#A##B#"], "A": ["a1", "a2"], "B": ["b1", "b2", "b3"]}

This package provides:
- Compiling grammars and resolving constraints (grammar)
- Exact derivation counts (counter)
- Weighted/uniform sampling and capped enumeration (generator)
- Parameter classification (params)
- Structure extraction from derivation traces (structure)
- Ordered template rendering (render)
- A per-grammar engine with statistics and parameter matrices (engine)
- YAML/JSON grammar files (loader) and bundled grammars (fixtures)

Imports are lazy so that `python -m gramspace` does not import the CLI twice.
Use: from gramspace import GrammarEngine, count, generate, etc.
"""

__all__ = [
    # errors
    "GrammarError",
    "GrammarFormatError",
    "ConstraintViolation",
    "CyclicGrammar",
    # grammar
    "compile_grammar",
    "compile_template",
    "normalize_grammar",
    # counter
    "count",
    "DEFAULT_MAX_DEPTH",
    # generator
    "Strategy",
    "Sample",
    "generate",
    "generate_many",
    "expand_all",
    "iter_all",
    "new_rng",
    # params
    "ParameterDescriptor",
    "classify",
    "parameters",
    "parameter_combinations",
    "filter_parameters",
    # structure
    "AppliedRule",
    "GenericStructureExtractor",
    "applied_rules",
    # render
    "render",
    # engine
    "EngineConfig",
    "GenerationResult",
    "GrammarEngine",
    # files
    "load_grammar",
    "dump_grammar",
    "get_fixture",
]

# Lazy import mapping: attribute -> (module, name)
_LAZY_IMPORTS = {
    # errors
    "GrammarError": (".grammar", "GrammarError"),
    "GrammarFormatError": (".grammar", "GrammarFormatError"),
    "ConstraintViolation": (".grammar", "ConstraintViolation"),
    "CyclicGrammar": (".grammar", "CyclicGrammar"),
    # grammar
    "compile_grammar": (".grammar", "compile_grammar"),
    "compile_template": (".grammar", "compile_template"),
    "normalize_grammar": (".grammar", "normalize_grammar"),
    # counter
    "count": (".counter", "count"),
    "DEFAULT_MAX_DEPTH": (".counter", "DEFAULT_MAX_DEPTH"),
    # generator
    "Strategy": (".generator", "Strategy"),
    "Sample": (".generator", "Sample"),
    "generate": (".generator", "generate"),
    "generate_many": (".generator", "generate_many"),
    "expand_all": (".generator", "expand_all"),
    "iter_all": (".generator", "iter_all"),
    "new_rng": (".generator", "new_rng"),
    # params
    "ParameterDescriptor": (".params", "ParameterDescriptor"),
    "classify": (".params", "classify"),
    "parameters": (".params", "parameters"),
    "parameter_combinations": (".params", "parameter_combinations"),
    "filter_parameters": (".params", "filter_parameters"),
    # structure
    "AppliedRule": (".structure", "AppliedRule"),
    "GenericStructureExtractor": (".structure", "GenericStructureExtractor"),
    "applied_rules": (".structure", "applied_rules"),
    # render
    "render": (".render", "render"),
    # engine
    "EngineConfig": (".engine", "EngineConfig"),
    "GenerationResult": (".engine", "GenerationResult"),
    "GrammarEngine": (".engine", "GrammarEngine"),
    # files
    "load_grammar": (".loader", "load_grammar"),
    "dump_grammar": (".loader", "dump_grammar"),
    "get_fixture": (".fixtures", "get_fixture"),
}


def __getattr__(name: str):
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        from importlib import import_module
        module = import_module(module_name, __package__)
        return getattr(module, attr_name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
