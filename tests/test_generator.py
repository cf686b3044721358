"""Tests for gramspace.generator module."""

import logging
import re
import time
import pytest

from gramspace.counter import count
from gramspace.fixtures import get_fixture
from gramspace.generator import (
    Piece,
    Sample,
    Strategy,
    expand_all,
    generate,
    generate_many,
    iter_all,
    new_rng,
)
from gramspace.grammar import ConstraintViolation, CyclicGrammar, compile_grammar


AB = {"origin": ["#A##B#"], "A": ["a1", "a2"], "B": ["b1", "b2", "b3"]}

LINGUISTIC = {
    "SP": ["#NP#"],
    "OP": ["#NP#"],
    "NP": ["girl", "cat"],
    "VP": ["loves", "eats", "pets"],
    "SVO": ["#SP# #VP# #OP#"],
    "VSO": ["#VP# #SP# #OP#"],
    "word_order": ["#SVO#", "#VSO#"],
    "origin": ["#word_order#"],
}

SKEWED = {"A": ["x", "y"], "B": ["z"], "origin": ["#A#", "#B#"]}

NESTED = {"origin": ["#x#"], "x": ["a", "(#x#)"]}


@pytest.fixture
def linguistic():
    return compile_grammar(LINGUISTIC)


@pytest.fixture
def syllable():
    return compile_grammar(get_fixture("syllable"))


class TestRng:
    """Tests for new_rng."""

    def test_seeded_is_reproducible(self, linguistic):
        a = [s.text for s in generate_many(linguistic, 20, rng=new_rng(7))]
        b = [s.text for s in generate_many(linguistic, 20, rng=new_rng(7))]
        assert a == b

    def test_string_seed(self):
        assert new_rng("42").random() == new_rng(42).random()

    def test_entropy_seeds(self):
        for seed in (None, "auto", "rand", "random", "entropy"):
            assert 0.0 <= new_rng(seed).random() < 1.0


class TestGenerate:
    """Tests for single derivations."""

    def test_text_and_trace(self, linguistic):
        s = generate(linguistic, rng=new_rng(1))
        assert isinstance(s, Sample)
        assert s.trace["origin"] == ["word_order"]
        assert s.trace["word_order"][0] in ("SVO", "VSO")
        assert len(s.trace["NP"]) == 2
        assert len(s.text.split()) == 3

    def test_pinned_svo(self, linguistic):
        s = generate(linguistic, constraints={"word_order": "#SVO#", "NP": "girl", "VP": "loves"})
        assert s.text == "girl loves girl"

    def test_pinned_vso(self, linguistic):
        s = generate(linguistic, constraints={"word_order": "#VSO#", "NP": "cat", "VP": "eats"})
        assert s.text == "eats cat cat"

    def test_shared_constraint(self, linguistic):
        for _ in range(20):
            s = generate(linguistic, constraints={"NP": "girl"})
            assert s.text.split().count("girl") == 2
            assert "cat" not in s.text

    def test_to_dict(self):
        s = generate(compile_grammar(AB), constraints={"A": "a2", "B": "b1"})
        assert s.to_dict() == {
            "text": "a2b1",
            "trace": {"origin": ["#A##B#"], "A": ["a2"], "B": ["b1"]},
        }

    def test_strategy_as_string(self, linguistic):
        s = generate(linguistic, strategy="uniform", rng=new_rng(3))
        assert len(s.text.split()) == 3


class TestMissingAndTruncated:
    """Missing symbols and exhausted depth degrade to visible markers."""

    def test_missing_start_empty_grammar(self):
        assert "((missing:missingSymbol))" in generate(compile_grammar({}), "missingSymbol").text

    def test_missing_start_any_grammar(self, linguistic):
        s = generate(linguistic, "missingSymbol")
        assert s.text == "((missing:missingSymbol))"
        assert s.trace == {}

    def test_missing_reference(self):
        s = generate(compile_grammar({"origin": ["a #nope# b"]}))
        assert s.text == "a ((missing:nope)) b"

    def test_truncated_start(self):
        compiled = compile_grammar({"origin": ["a"]})
        assert count(compiled, max_depth=0) == 0
        s = generate(compiled, max_depth=0)
        assert s.text == "#origin#"
        assert s.trace == {}

    def test_piece_fold(self):
        assert Piece("text", "abc").fold() == "abc"
        assert Piece("missing", "X").fold() == "((missing:X))"
        assert Piece("truncated", "X").fold() == "#X#"


class TestErrors:
    """Tests for errors raised while generating."""

    def test_constraint_violation(self, linguistic):
        with pytest.raises(ConstraintViolation):
            generate(linguistic, constraints={"NP": "dog"})
        with pytest.raises(ConstraintViolation):
            generate_many(linguistic, 3, constraints={"NP": "dog"})

    def test_cycle_needs_depth(self):
        with pytest.raises(CyclicGrammar):
            generate(compile_grammar(NESTED))

    def test_cycle_with_depth(self):
        compiled = compile_grammar(NESTED)
        for s in generate_many(compiled, 30, max_depth=6, rng=new_rng(5)):
            assert re.fullmatch(r"(\(*)a(\)*)", s.text)
            assert s.text.count("(") == s.text.count(")") <= 4

    def test_undefined_constraint_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="gramspace"):
            s = generate(compile_grammar(AB), constraints={"nothere": "x"})
        assert len(s.text) == 4
        assert "nothere" in caplog.text


class TestStrategies:
    """Weighted picks derivations uniformly, uniform picks alternatives uniformly."""

    def _a_share(self, strategy):
        samples = generate_many(compile_grammar(SKEWED), 1000, rng=new_rng(12345), strategy=strategy)
        return sum(s.trace["origin"] == ["A"] for s in samples)

    def test_weighted(self):
        # #A# has 2 derivations, #B# has 1
        assert 600 <= self._a_share(Strategy.WEIGHTED) <= 730

    def test_uniform(self):
        assert 430 <= self._a_share(Strategy.UNIFORM) <= 570

    def test_uniform_skips_dead_options(self):
        compiled = compile_grammar({"origin": ["#A#", "#nope#"], "A": ["#A#"]})
        # A cannot finish within any depth, so only the missing branch is live
        for s in generate_many(compiled, 10, max_depth=4, strategy="uniform"):
            assert s.text == "((missing:nope))"


class TestGenerateMany:
    """Tests for batch sampling."""

    def test_count(self, linguistic):
        assert len(generate_many(linguistic, 50)) == 50
        assert generate_many(linguistic, 0) == []

    def test_unique_stops_at_total(self):
        compiled = compile_grammar(get_fixture("simple"))
        samples = generate_many(compiled, 20, unique=True, rng=new_rng(2))
        texts = [s.text for s in samples]
        assert len(texts) == 9
        assert len(set(texts)) == 9

    def test_unique_smaller_than_total(self, linguistic):
        texts = [s.text for s in generate_many(linguistic, 10, unique=True)]
        assert len(texts) == 10
        assert len(set(texts)) == 10

    def test_unique_bounded_attempts(self, caplog):
        # two derivations, one text
        compiled = compile_grammar({"origin": ["#a#", "#b#"], "a": ["x"], "b": ["x"]})
        with caplog.at_level(logging.WARNING, logger="gramspace.generator"):
            samples = generate_many(compiled, 2, unique=True, max_attempts=50)
        assert [s.text for s in samples] == ["x"]
        assert "stopped after 50 draws" in caplog.text


class TestSyllableSampling:
    """Sampling a ~10M space stays fast."""

    def test_thousand_samples(self, syllable):
        t0 = time.perf_counter()
        samples = generate_many(syllable, 1000, rng=new_rng(0))
        assert time.perf_counter() - t0 < 0.2
        assert len(samples) == 1000

    def test_thousand_unique_samples(self, syllable):
        t0 = time.perf_counter()
        samples = generate_many(syllable, 1000, unique=True, rng=new_rng(0))
        assert time.perf_counter() - t0 < 0.2
        assert len({s.text for s in samples}) == 1000


class TestExpandAll:
    """Enumeration agrees with counting, in a fixed order."""

    def test_order(self):
        texts = [s.text for s in expand_all(compile_grammar(AB))]
        assert texts == ["a1b1", "a1b2", "a1b3", "a2b1", "a2b2", "a2b3"]

    def test_traces(self):
        first = expand_all(compile_grammar(AB))[0]
        assert first.trace == {"origin": ["#A##B#"], "A": ["a1"], "B": ["b1"]}

    @pytest.mark.parametrize("name", ["simple", "linguistic", "mathematical", "biological"])
    def test_matches_count(self, name):
        compiled = compile_grammar(get_fixture(name))
        assert len(expand_all(compiled)) == count(compiled)

    @pytest.mark.parametrize(
        "constraints",
        [None, {"NP": "girl"}, {"VP": ["loves", "pets"]}, {"word_order": "VSO", "NP": "cat"}],
    )
    def test_matches_count_constrained(self, linguistic, constraints):
        assert len(expand_all(linguistic, constraints=constraints)) == count(linguistic, constraints=constraints)

    def test_syllable_constrained(self, syllable):
        samples = expand_all(syllable, constraints={"V": "a", "C": "b"})
        assert len(samples) == 39
        assert samples[0].text == "ab"

    def test_with_depth(self):
        compiled = compile_grammar(NESTED)
        texts = [s.text for s in expand_all(compiled, max_depth=5)]
        assert texts == ["a", "(a)", "((a))", "(((a)))"]
        assert len(texts) == count(compiled, max_depth=5)

    def test_missing_symbol(self):
        samples = expand_all(compile_grammar({"origin": ["#A# #nope#"], "A": ["x", "y"]}))
        assert [s.text for s in samples] == ["x ((missing:nope))", "y ((missing:nope))"]

    def test_truncated_start_is_empty(self):
        assert expand_all(compile_grammar({"origin": ["a"]}), max_depth=0) == []

    def test_cap(self, linguistic):
        full = [s.text for s in expand_all(linguistic)]
        capped = [s.text for s in expand_all(linguistic, cap=5)]
        assert capped == full[:5]
        assert expand_all(linguistic, cap=0) == []
        assert len(expand_all(linguistic, cap=1000)) == 24

    def test_cap_on_huge_space(self, syllable):
        t0 = time.perf_counter()
        samples = expand_all(syllable, cap=10)
        assert time.perf_counter() - t0 < 0.1
        assert [s.text for s in samples[:3]] == ["ab", "ac", "ad"]

    def test_constraint_violation(self, linguistic):
        assert count(linguistic, constraints={"NP": "dog"}) == 0
        with pytest.raises(ConstraintViolation):
            expand_all(linguistic, constraints={"NP": "dog"})

    def test_iter_all_checks_eagerly(self, linguistic):
        with pytest.raises(ConstraintViolation):
            iter_all(linguistic, constraints={"NP": "dog"})
        with pytest.raises(CyclicGrammar):
            iter_all(compile_grammar(NESTED))


class TestDeepGrammars:
    """Deep derivations run on explicit stacks, not the interpreter's call stack."""

    PARENS = {"origin": ["#E#"], "E": ["(#E#)", "x"]}

    def test_generate_deep_limit(self):
        s = generate(compile_grammar(self.PARENS), max_depth=2000, rng=new_rng(8))
        m = re.fullmatch(r"(\(*)x(\)*)", s.text)
        assert m is not None
        assert len(m.group(1)) == len(m.group(2)) <= 1998
        assert len(s.trace["E"]) == len(m.group(1)) + 1

    def test_generate_many_deep_limit(self):
        samples = generate_many(compile_grammar(self.PARENS), 20, max_depth=2000, rng=new_rng(2))
        assert all(s.text.count("(") <= 1998 for s in samples)

    def test_expand_all_deep_limit(self):
        samples = expand_all(compile_grammar(self.PARENS), max_depth=2000, cap=5)
        assert [s.text.count("(") for s in samples] == [1998, 1997, 1996, 1995, 1994]
        assert samples[0].text == "(" * 1998 + "x" + ")" * 1998

    def test_long_acyclic_chain(self):
        grammar = {"origin": ["#s0#"], "s599": ["a", "b"]}
        grammar.update({f"s{i}": [f"#s{i + 1}#"] for i in range(599)})
        compiled = compile_grammar(grammar)
        assert generate(compiled, rng=new_rng(1)).text in ("a", "b")
        assert [s.text for s in expand_all(compiled)] == ["a", "b"]
