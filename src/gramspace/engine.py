# -------------------------------------
# grammar engine
# -------------------------------------
"""
One object per grammar.

GrammarEngine keeps a private copy of the grammar, compiles it and
classifies its parameters once, and then serves every operation of the
package with its configured defaults:

    engine = GrammarEngine(grammar, EngineConfig(seed=42))
    engine.count()                          # exact number of derivations
    engine.generate(constraints={"NP": "girl"})
    engine.generate_many(10, unique=True)
    engine.expand_all(cap=100)
    engine.generate_with_parameters("origin", {"word_order": "SVO"})
    engine.parameter_matrix("origin", {"word_order": [...], "NP": [...]})
    engine.statistics(sample_size=200)

The engine's rng is the only mutable state it holds. Calls that run
concurrently should each pass their own rng.
"""
from __future__ import annotations

import logging
import random
import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .counter import count as _count
from .generator import (
    Sample,
    Strategy,
    expand_all as _expand_all,
    generate as _generate,
    generate_many as _generate_many,
    iter_all as _iter_all,
    new_rng,
)
from .grammar import compile_grammar, normalize_grammar, strip_placeholder
from .params import ParameterDescriptor, classify
from .structure import AppliedRule, GenericStructureExtractor, StructureExtractor, applied_rules

logger = logging.getLogger(__name__)

__all__ = ["EngineConfig", "GenerationResult", "GrammarEngine"]

Constraints = Mapping[str, "str | Iterable[str]"]


@dataclass
class EngineConfig:
    """Defaults for every engine call; each call can still override them."""
    start: str = "origin"
    max_depth: int | None = None       # None: acyclic grammars only
    strategy: Strategy | str = Strategy.WEIGHTED
    seed: int | str | None = None      # None: OS entropy
    sample_attempts_factor: int = 50   # unique sampling gives up after max(1000, factor * n) draws

    def __post_init__(self):
        self.strategy = Strategy(self.strategy)
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.sample_attempts_factor < 1:
            raise ValueError(f"sample_attempts_factor must be >= 1, got {self.sample_attempts_factor}")


@dataclass
class GenerationResult:
    """A sample together with everything known about how it was derived."""
    content: str
    trace: dict[str, list[str]]
    parameters: dict[str, Any] = field(default_factory=dict)
    relevant_parameters: dict[str, str] = field(default_factory=dict)
    applied_rules: list[AppliedRule] = field(default_factory=list)
    generation_path: list[str] = field(default_factory=list)
    structure: dict[str, Any] = field(default_factory=dict)
    generation_time: float | None = None  # milliseconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "trace": {k: list(v) for k, v in self.trace.items()},
            "parameters": dict(self.parameters),
            "relevant_parameters": dict(self.relevant_parameters),
            "applied_rules": [
                {
                    "symbol": r.symbol,
                    "selected_rule": r.selected_rule,
                    "result": r.result,
                    "depth": r.depth,
                    "alternatives": list(r.alternatives),
                }
                for r in self.applied_rules
            ],
            "generation_path": list(self.generation_path),
            "structure": dict(self.structure),
            "generation_time": self.generation_time,
        }


class GrammarEngine:
    def __init__(
        self,
        grammar: Mapping[str, Any],
        config: EngineConfig | None = None,
        extractor: StructureExtractor | None = None,
    ):
        self.grammar = normalize_grammar(grammar)
        self.config = config or EngineConfig()
        self.compiled = compile_grammar(self.grammar)
        self._descriptors, self._contexts = classify(self.grammar)
        self.extractor: StructureExtractor = extractor or GenericStructureExtractor()
        self.rng = new_rng(self.config.seed)
        logger.debug(
            "compiled grammar: %d symbols, %d parameters",
            len(self.compiled), sum(d.is_parameter for d in self._descriptors.values()),
        )

    def seed(self, seed: int | str | None) -> GrammarEngine:
        """Replace the engine rng; None or "auto"/"rand"/"random"/"entropy" seed from OS entropy."""
        self.rng = new_rng(seed)
        return self

    # ------------------------------------------------------------
    # defaults
    # ------------------------------------------------------------

    def _start(self, start: str | None) -> str:
        return strip_placeholder(self.config.start if start is None else start)

    def _depth(self, max_depth: int | None) -> int | None:
        return self.config.max_depth if max_depth is None else max_depth

    def _strategy(self, strategy: Strategy | str | None) -> Strategy:
        return self.config.strategy if strategy is None else Strategy(strategy)

    # ------------------------------------------------------------
    # parameters
    # ------------------------------------------------------------

    @property
    def parameters(self) -> dict[str, ParameterDescriptor]:
        """Symbols whose choice varies the output."""
        return {k: d for k, d in self._descriptors.items() if d.is_parameter}

    @property
    def all_parameters(self) -> dict[str, ParameterDescriptor]:
        return dict(self._descriptors)

    @property
    def contexts(self) -> dict[str, list[str]]:
        """symbol -> symbols whose templates reference it."""
        return {k: list(v) for k, v in self._contexts.items()}

    # ------------------------------------------------------------
    # core operations
    # ------------------------------------------------------------

    def count(
        self,
        start: str | None = None,
        constraints: Constraints | None = None,
        max_depth: int | None = None,
    ) -> int:
        return _count(self.compiled, self._start(start), constraints, self._depth(max_depth))

    def generate(
        self,
        start: str | None = None,
        constraints: Constraints | None = None,
        max_depth: int | None = None,
        strategy: Strategy | str | None = None,
        rng: random.Random | None = None,
    ) -> Sample:
        return _generate(
            self.compiled,
            self._start(start),
            constraints,
            self._depth(max_depth),
            rng or self.rng,
            self._strategy(strategy),
        )

    def generate_many(
        self,
        n: int,
        start: str | None = None,
        constraints: Constraints | None = None,
        unique: bool = False,
        max_depth: int | None = None,
        strategy: Strategy | str | None = None,
        rng: random.Random | None = None,
    ) -> list[Sample]:
        return _generate_many(
            self.compiled,
            n,
            self._start(start),
            constraints,
            unique=unique,
            max_depth=self._depth(max_depth),
            rng=rng or self.rng,
            strategy=self._strategy(strategy),
            max_attempts=max(1000, self.config.sample_attempts_factor * n),
        )

    def iter_all(
        self,
        start: str | None = None,
        constraints: Constraints | None = None,
        max_depth: int | None = None,
    ) -> Iterator[Sample]:
        return _iter_all(self.compiled, self._start(start), constraints, self._depth(max_depth))

    def expand_all(
        self,
        start: str | None = None,
        constraints: Constraints | None = None,
        max_depth: int | None = None,
        cap: int | None = None,
    ) -> list[Sample]:
        return _expand_all(self.compiled, self._start(start), constraints, self._depth(max_depth), cap)

    # ------------------------------------------------------------
    # results
    # ------------------------------------------------------------

    def applied_rules(self, sample: Sample, start: str | None = None) -> list[AppliedRule]:
        return applied_rules(self.compiled, sample.trace, self._start(start))

    def result(
        self,
        sample: Sample,
        start: str | None = None,
        parameters: Mapping[str, Any] | None = None,
        generation_time: float | None = None,
    ) -> GenerationResult:
        """Wrap a sample: applied rules, structure and the per-symbol choices."""
        applied = self.applied_rules(sample, start)
        return GenerationResult(
            content=sample.text,
            trace={k: list(v) for k, v in sample.trace.items()},
            parameters=dict(parameters or {}),
            relevant_parameters={k: ",".join(v) for k, v in sample.trace.items()},
            applied_rules=applied,
            generation_path=list(sample.trace),
            structure=self.extractor.extract_structure(applied),
            generation_time=generation_time,
        )

    def generate_with_parameters(
        self,
        start: str | None = None,
        values: Constraints | None = None,
        rng: random.Random | None = None,
    ) -> GenerationResult:
        """
        One sample with the given symbols pinned to the given values.

        Raises:
            ConstraintViolation: a value is not an alternative of its symbol.
        """
        t0 = time.perf_counter()
        sample = self.generate(start, constraints=values, rng=rng)
        elapsed = (time.perf_counter() - t0) * 1000.0
        return self.result(sample, start, values, elapsed)

    def generate_all_combinations(
        self,
        start: str | None = None,
        constraints: Constraints | None = None,
        cap: int | None = None,
    ) -> list[GenerationResult]:
        return [
            self.result(s, start, constraints)
            for s in self.expand_all(start, constraints, cap=cap)
        ]

    def parameter_matrix(
        self,
        start: str | None,
        space: Mapping[str, Iterable[str]],
        rng: random.Random | None = None,
    ) -> list[list[GenerationResult]]:
        """
        Grid of samples over the first two parameters of space: one row per
        value of the first, one column per value of the second. Fewer than
        two parameters give an empty matrix; parameters past the second are
        ignored.
        """
        names = list(space)
        if len(names) < 2:
            return []
        p1, p2 = names[0], names[1]
        cols = list(space[p2])
        return [
            [self.generate_with_parameters(start, {p1: v1, p2: v2}, rng=rng) for v2 in cols]
            for v1 in space[p1]
        ]

    # ------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------

    def statistics(
        self,
        sample_size: int = 100,
        start: str | None = None,
        constraints: Constraints | None = None,
        rng: random.Random | None = None,
    ) -> dict[str, Any]:
        """
        Exact size of the space plus aggregates over a random sample.

        Returns:
            total_variants      exact derivation count
            parameter_counts    {parameter: number of alternatives}
            value_frequencies   {parameter: {label: times chosen in the sample}}
            sample_size         samples drawn
            average_length, min_length, max_length   of the sampled texts
            average_depth, max_depth                 derivation tree depth of the samples
            generation_time     milliseconds spent sampling
        """
        start = self._start(start)
        total = self.count(start, constraints)

        t0 = time.perf_counter()
        samples = self.generate_many(max(0, sample_size), start, constraints, rng=rng)
        elapsed = (time.perf_counter() - t0) * 1000.0

        params = self.parameters
        frequencies: dict[str, dict[str, int]] = {name: {} for name in params}
        depths = []
        for s in samples:
            for name, labels in s.trace.items():
                if name in frequencies:
                    for label in labels:
                        frequencies[name][label] = frequencies[name].get(label, 0) + 1
            rules = self.applied_rules(s, start)
            depths.append(max((r.depth for r in rules), default=-1) + 1)

        lengths = np.array([len(s.text) for s in samples], dtype=np.int64)
        depth_arr = np.array(depths, dtype=np.int64)

        stats = {
            "total_variants": total,
            "parameter_counts": {name: len(d.values) for name, d in params.items()},
            "value_frequencies": frequencies,
            "sample_size": len(samples),
            "average_length": float(lengths.mean()) if lengths.size else 0.0,
            "min_length": int(lengths.min()) if lengths.size else 0,
            "max_length": int(lengths.max()) if lengths.size else 0,
            "average_depth": float(depth_arr.mean()) if depth_arr.size else 0.0,
            "max_depth": int(depth_arr.max()) if depth_arr.size else 0,
            "generation_time": elapsed,
        }
        logger.debug("statistics(%s): %d variants, %d samples", start, total, len(samples))
        return stats
