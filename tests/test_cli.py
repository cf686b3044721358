"""Tests for the gramspace command line."""

import json
import pytest

from gramspace.__main__ import main


@pytest.fixture
def nested_file(tmp_path):
    path = tmp_path / "nested.json"
    path.write_text(json.dumps({"origin": ["#x#"], "x": ["a", "(#x#)"]}))
    return str(path)


class TestCount:
    """--count"""

    def test_fixture(self, capsys):
        assert main(["--fixture", "simple", "--count"]) == 0
        assert capsys.readouterr().out == "9\n"

    def test_constraints(self, capsys):
        assert main(["--fixture", "linguistic", "--count", "--constraint", "NP=girl"]) == 0
        assert capsys.readouterr().out.strip() == "9"

    def test_repeated_constraint_allows_both(self, capsys):
        args = ["--fixture", "linguistic", "--count", "--constraint", "VP=loves", "--constraint", "VP=eats"]
        assert main(args) == 0
        assert capsys.readouterr().out.strip() == "24"

    def test_json(self, capsys):
        assert main(["--fixture", "syllable", "--count", "--format", "json"]) == 0
        assert json.loads(capsys.readouterr().out) == {"start": "origin", "count": 9984815}

    def test_start(self, capsys):
        assert main(["--fixture", "syllable", "--count", "--start", "S"]) == 0
        assert capsys.readouterr().out.strip() == "215"

    def test_deep_max_depth(self, capsys, nested_file):
        assert main([nested_file, "--count", "--max-depth", "2000"]) == 0
        assert capsys.readouterr().out.strip() == "1999"

    def test_deep_expand(self, capsys, nested_file):
        assert main([nested_file, "--expand", "--max-depth", "2000", "--limit", "2"]) == 0
        assert capsys.readouterr().out.splitlines() == ["a", "(a)"]


class TestSampleAndExpand:
    """--sample and --expand"""

    def test_default_is_one_sample(self, capsys):
        assert main(["--fixture", "simple", "--seed", "1"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert len(out) == 1
        assert out[0].startswith("The ")

    def test_sample_json(self, capsys):
        assert main(["--fixture", "linguistic", "--sample", "3", "--seed", "5", "--format", "json", "--trace"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 3
        for line in lines:
            obj = json.loads(line)
            assert set(obj) == {"text", "trace"}
            assert obj["trace"]["origin"] == ["word_order"]

    def test_unique(self, capsys):
        assert main(["--fixture", "simple", "--sample", "50", "--unique"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 9
        assert len(set(lines)) == 9

    def test_expand_limit(self, capsys):
        assert main(["--fixture", "linguistic", "--expand", "--limit", "3"]) == 0
        assert capsys.readouterr().out.splitlines() == ["girl loves girl", "girl loves cat", "girl eats girl"]

    def test_expand_trace(self, capsys):
        assert main(["--fixture", "simple", "--expand", "--limit", "1", "--trace"]) == 0
        out = capsys.readouterr().out.strip()
        assert out == "The cat runs\torigin=sentence sentence=The #animal# #action# animal=cat action=runs"

    def test_recursive_with_depth(self, capsys, nested_file):
        assert main([nested_file, "--expand", "--max-depth", "4"]) == 0
        assert capsys.readouterr().out.splitlines() == ["a", "(a)", "((a))"]

    def test_params(self, capsys):
        assert main(["--fixture", "simple", "--params"]) == 0
        out = capsys.readouterr().out
        assert "animal\t3\tsentence\tcat | dog | bird" in out
        assert "origin" not in out.split("\n")[0]


class TestErrors:
    """Failures exit with status 2."""

    def test_constraint_violation(self, capsys):
        assert main(["--fixture", "linguistic", "--sample", "1", "--constraint", "NP=dog"]) == 2
        assert capsys.readouterr().err.startswith("gramspace error:")

    def test_cycle(self, capsys, nested_file):
        assert main([nested_file, "--count"]) == 2
        assert "cyclic grammar" in capsys.readouterr().err

    def test_missing_file(self, capsys, tmp_path):
        assert main([str(tmp_path / "nope.yml")]) == 2
        assert "gramspace error:" in capsys.readouterr().err

    def test_bad_constraint_syntax(self):
        with pytest.raises(SystemExit):
            main(["--fixture", "simple", "--constraint", "NP"])

    def test_grammar_required(self):
        with pytest.raises(SystemExit):
            main(["--count"])
