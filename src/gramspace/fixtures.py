# -------------------------------------
# bundled grammars
# -------------------------------------
"""
Example grammars, one per kind of rule space the engine is meant for.

Usage:
    from gramspace.fixtures import get_fixture
    engine = GrammarEngine(get_fixture("syllable"))
"""

__all__ = ["GRAMMARS", "DESCRIPTIONS", "get_fixture"]


GRAMMARS: dict[str, dict[str, list[str]]] = {
    # 3 animals x 3 actions = 9
    "simple": {
        "animal": ["cat", "dog", "bird"],
        "action": ["runs", "jumps", "flies"],
        "sentence": ["The #animal# #action#"],
        "origin": ["#sentence#"],
    },
    # 3 orders x (2 x 3 x 2) = 36; SP and OP share NP
    "linguistic": {
        "SP": ["#NP#"],
        "OP": ["#NP#"],
        "NP": ["girl", "cat"],
        "VP": ["loves", "eats", "pets"],
        "SVO": ["#SP# #VP# #OP#"],
        "VSO": ["#VP# #SP# #OP#"],
        "SOV": ["#SP# #OP# #VP#"],
        "word_order": ["#SVO#", "#VSO#", "#SOV#"],
        "origin": ["#word_order#"],
    },
    # 4 x 4 x 4 + 4 x 4 x 4 x 4 x 4 = 1088
    "mathematical": {
        "origin": ["#expr#"],
        "expr": ["#term# #op# #term#", "(#term# #op# #term#) #op# #term#"],
        "term": ["x", "y", "2", "10"],
        "op": ["+", "-", "*", "/"],
    },
    # ATG + codon(s) + stop: 64 x 3 + 64 x 64 x 3 = 12480
    "biological": {
        "origin": ["#gene#"],
        "gene": ["#start##codon##stop#", "#start##codon##codon##stop#"],
        "start": ["ATG"],
        "codon": ["#base##base##base#"],
        "base": ["A", "C", "G", "T"],
        "stop": ["TAA", "TAG", "TGA"],
    },
    # 215 syllables; 215 + 215**2 + 215**3 = 9984815
    "syllable": {
        "origin": ["#S#", "#S##S#", "#S##S##S#"],
        "S": ["#V##C#", "#V#", "#C##V#"],
        "V": ["a", "e", "i", "o", "u"],
        "C": ["b", "c", "d", "f", "g", "h", "j", "k", "l", "m", "n",
              "p", "q", "r", "s", "t", "v", "w", "x", "y", "z"],
    },
}

DESCRIPTIONS: dict[str, str] = {
    "simple": "Basic animal-action grammar",
    "linguistic": "Word order study with SVO, VSO and SOV patterns",
    "mathematical": "Arithmetic expressions with operators and parentheses",
    "biological": "Gene-like DNA sequences built from codons",
    "syllable": "One to three syllables from vowels and consonants",
}


def get_fixture(name: str) -> dict[str, list[str]]:
    """Fresh copy of a bundled grammar."""
    try:
        grammar = GRAMMARS[name]
    except KeyError:
        raise KeyError(f"unknown fixture '{name}', choose from {sorted(GRAMMARS)}") from None
    return {k: list(v) for k, v in grammar.items()}
