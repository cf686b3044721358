# -------------------------------------
# gramspace CLI
# -------------------------------------
"""
python -m gramspace GRAMMAR [options]

    gramspace grammar.yml --count
    gramspace grammar.yml --sample 5 --seed 1 --trace
    gramspace --fixture linguistic --expand --limit 10 --constraint NP=girl
    gramspace --fixture syllable --sample 20 --unique --format json
"""
import argparse
import itertools
import json
import logging
import sys

from .engine import EngineConfig, GrammarEngine
from .fixtures import GRAMMARS, get_fixture
from .grammar import GrammarError
from .loader import load_grammar


# ============================================================
# CLI helpers
# ============================================================

def _parse_constraint(text: str) -> tuple[str, str]:
    """Parse a SYMBOL=VALUE constraint."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"constraint must be SYMBOL=VALUE, got {text!r}")
    k, v = text.split("=", 1)
    k = k.strip()
    if not k:
        raise argparse.ArgumentTypeError("constraint symbol is empty")
    return k, v


def _constraints(pairs: list[tuple[str, str]]) -> dict[str, list[str]]:
    """Repeated symbols accumulate allowed values."""
    out: dict[str, list[str]] = {}
    for k, v in pairs:
        out.setdefault(k, []).append(v)
    return out


def _format_trace(trace: dict[str, list[str]]) -> str:
    return " ".join(f"{k}={','.join(v)}" for k, v in trace.items())


def _print_samples(samples, fmt: str, with_trace: bool) -> None:
    for s in samples:
        if fmt == "json":
            obj = s.to_dict() if with_trace else {"text": s.text}
            print(json.dumps(obj, ensure_ascii=False))
        elif with_trace:
            print(f"{s.text}\t{_format_trace(s.trace)}")
        else:
            print(s.text)


def _print_params(engine: GrammarEngine, fmt: str) -> None:
    params = engine.parameters
    contexts = engine.contexts
    if fmt == "json":
        obj = {
            name: {"values": list(d.values), "contexts": contexts.get(name, [])}
            for name, d in params.items()
        }
        print(json.dumps({"parameters": obj}, ensure_ascii=False))
        return
    for name, d in params.items():
        used_in = ",".join(contexts.get(name, [])) or "-"
        print(f"{name}\t{len(d.values)}\t{used_in}\t{' | '.join(d.values)}")


# ============================================================
# CLI
# ============================================================

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(
        prog="gramspace",
        description="Count, sample and enumerate the derivations of a #symbol# grammar.",
    )
    ap.add_argument("grammar", nargs="?", help="Grammar file (.json, .yml, .yaml).")
    ap.add_argument(
        "--fixture", choices=sorted(GRAMMARS), help="Use a bundled grammar instead of a file."
    )
    ap.add_argument("--start", default="origin", help="Start symbol (default: origin).")
    ap.add_argument("--count", action="store_true", help="Print the exact number of derivations.")
    ap.add_argument("--sample", type=int, metavar="N", help="Print N random derivations.")
    ap.add_argument("--unique", action="store_true", help="With --sample: no repeated texts.")
    ap.add_argument("--expand", action="store_true", help="Print every derivation in order.")
    ap.add_argument("--limit", type=int, metavar="N", help="With --expand: stop after N derivations.")
    ap.add_argument(
        "--constraint",
        action="append",
        default=[],
        type=_parse_constraint,
        metavar="SYMBOL=VALUE",
        help="Pin a symbol to a value. Repeatable; repeats of one symbol allow several values.",
    )
    ap.add_argument("--max-depth", type=int, help="Depth bound; required for recursive grammars.")
    ap.add_argument(
        "--strategy", choices=["weighted", "uniform"], default="weighted",
        help="weighted: every derivation equally likely; uniform: every alternative equally likely.",
    )
    ap.add_argument("--seed", help="RNG seed (integer, or 'auto' for OS entropy).")
    ap.add_argument("--params", action="store_true", help="List the parameters of the grammar.")
    ap.add_argument("--trace", action="store_true", help="Show the choices behind each text.")
    ap.add_argument(
        "--format", choices=["text", "json"], default="text",
        help="Output format: text, or json (one object per line).",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.grammar and args.fixture:
        ap.error("give either GRAMMAR or --fixture, not both")
    if not args.grammar and not args.fixture:
        ap.error("GRAMMAR is required unless --fixture is used")

    constraints = _constraints(args.constraint)

    try:
        grammar = get_fixture(args.fixture) if args.fixture else load_grammar(args.grammar)
        engine = GrammarEngine(
            grammar,
            EngineConfig(
                start=args.start,
                max_depth=args.max_depth,
                strategy=args.strategy,
                seed=args.seed,
            ),
        )

        if args.params:
            _print_params(engine, args.format)

        if args.count:
            n = engine.count(constraints=constraints)
            if args.format == "json":
                print(json.dumps({"start": args.start, "count": n}))
            else:
                print(n)

        if args.expand:
            samples = engine.iter_all(constraints=constraints)
            if args.limit is not None:
                samples = itertools.islice(samples, max(0, args.limit))
            _print_samples(samples, args.format, args.trace)
        elif args.sample is not None or not (args.params or args.count):
            n = 1 if args.sample is None else args.sample
            samples = engine.generate_many(n, constraints=constraints, unique=args.unique)
            _print_samples(samples, args.format, args.trace)
    except (GrammarError, ValueError, OSError) as e:
        print(f"gramspace error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
