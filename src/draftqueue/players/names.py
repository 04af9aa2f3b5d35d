"""
Player name normalization and comparison utilities.

Player names reach us in many shapes:
- Typed by the user: "Mike Evans", "ja'marr chase", "AJ Brown"
- From the roster API: "Michael Pittman", "A.J. Brown"
- Rendered on the draft board: "Ja'Marr ChaseWR - CIN" once whitespace is lost
- With accents: "Zoë Smith" vs "Zoe Smith"

This module provides three levels of comparison, from strict to loose:

1. names_match(): pattern-based matching used to resolve a typed name to
   roster records. Handles diacritics, optional punctuation joints and
   nickname/first-name equivalence ("Mike" == "Michael").
2. name_in_text(): containment check used to recognise a player's row on
   the board, where names are squashed together with position and team.
3. loose_names_match(): token comparison used when checking typed names
   against names parsed back out of the queue.

similarity() is a fuzzy score used only to suggest alternatives for names
that did not match anything.
"""

import re
from functools import lru_cache
from typing import Optional

import jellyfish
from rapidfuzz import fuzz

# =============================================================================
# Diacritic folding
# =============================================================================

_ASCII_TO_DIACRITIC = {
    "A": "ÀÁÂÄÃÅĀ", "AE": "Æ",
    "C": "ÇĆČ", "E": "ÈÉÊËĒĖĘ",
    "I": "ÎÏÍĪĮÌ", "L": "Ł",
    "N": "ÑŃ", "O": "ÔÖÒÓØŌÕ",
    "OE": "Œ", "S": "ŚŠ",
    "U": "ÛÜÙÚŪ", "Y": "Ÿ",
    "Z": "ŽŹŻ", "a": "àáâäãå",
    "ae": "æ", "c": "çćč",
    "e": "èéêëēėę", "i": "îïíīįì",
    "l": "ł", "n": "ñń",
    "o": "ôöòóøōõ", "oe": "œ",
    "s": "śš", "ss": "ß",
    "u": "ûüùúū", "y": "ÿ",
    "z": "žźż",
}

_FOLD_TABLE = {
    ord(diacritic): ascii_
    for ascii_, diacritics in _ASCII_TO_DIACRITIC.items()
    for diacritic in diacritics
}


def fold(name: str) -> str:
    """
    Replace accented characters with their ASCII base letters.

    Characters without a mapping are left alone, so the result is not
    guaranteed to be pure ASCII. Every mapped output is ASCII, which makes
    fold(fold(x)) == fold(x).

    Examples:
        >>> fold("Zoë Ußmann")
        'Zoe Ussmann'
    """
    if not name:
        return ""
    return name.translate(_FOLD_TABLE)


# =============================================================================
# Pattern building
# =============================================================================

# Common first-name abbreviations. A typed "Mike X" must find "Michael X"
# and the other way round, so the prefix is rewritten to the alternation.
FIRST_NAME_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^Alex(ander)? ",
        r"^Ben(jamin)? ",
        r"^Brad(ley)? ",
        r"^Cam(eron)? ",
        r"^Chris(topher)? ",
        r"^Dan(iel)? ",
        r"^Dav(e|id) ",
        r"^Greg(ory)? ",
        r"^Ja(ke|[ck]ob) ",
        r"^Jo(e|seph) ",
        r"^Jon(athan)? ",
        r"^Josh(ua)? ",
        r"^Ken(neth)? ",
        r"^Matt(hew)? ",
        r"^Mi(ke|chael) ",
        r"^Mitch(ell)? ",
        r"^Nat(e|han) ",
        r"^Nic(ky?|holas) ",
        r"^Rob(ert)? ",
        r"^Ste(vi?e|phen) ",
        r"^T(om|homas) ",
        r"^Vince(nt)? ",
        r"^Wil(l(iam)?)? ",
        r"^Zach?(ary)? ",
    )
]

# Hand-written patterns for names the generic rules get wrong. Keys are
# compared case-insensitively against the literal name being matched.
NAME_OVERRIDES = {
    "corey brown": r"^(Corey|Philly) Brown",
    "carl edwards jr.": r"^(Carl|C\.J\.) Edwards( Jr\.)?",
    "michael a. taylor": r"^Michael (A\. )?Taylor",
    "marquise brown": r"^(Marquise|Hollywood) Brown",
    "hollywood brown": r"^(Marquise|Hollywood) Brown",
    "gabe davis": r"^Gabe?(riel)? Davis",
    "kenneth walker iii": r"^Ken(neth)? Walker( III)?",
    "travis etienne jr.": r"^Travis Etienne( Jr\.)?",
    "michael pittman jr.": r"^Mi(ke|chael) Pittman( Jr\.)?",
    "odell beckham jr.": r"^Odell Beckham( Jr\.)?",
}

_JOINT_CHARS = "-."


def _escape(name: str) -> str:
    """Escape regex syntax, turning '-' and '.' into optional joints."""
    parts = []
    for char in name:
        if char in _JOINT_CHARS:
            # "A.J." matches "AJ", "A J" and "A.J."
            parts.append(f"[ \\{char}]?")
        elif char == " ":
            parts.append(" ")
        else:
            parts.append(re.escape(char))
    return "".join(parts)


def expand_first_name_prefix(pattern: str) -> str:
    """
    Rewrite a leading first-name abbreviation into an anchored alternation.

    The input is an escaped pattern string. When no rule applies the
    pattern is returned unchanged (and unanchored), so callers can tell
    whether an expansion happened by checking for a leading "^".

    Examples:
        >>> expand_first_name_prefix("Mike Evans")
        '^Mi(ke|chael) Evans'
        >>> expand_first_name_prefix("Ja'Marr Chase")
        "Ja'Marr Chase"
    """
    for rule in FIRST_NAME_PATTERNS:
        match = rule.match(pattern)
        if match:
            return rule.pattern + pattern[match.end():]
    return pattern


@lru_cache(maxsize=None)
def build_pattern(name: str) -> re.Pattern:
    """
    Compile the matching pattern for one literal name.

    Order of operations:
    1. Manual override table (exact, case-insensitive key)
    2. Escape, with '-' and '.' as optional joints
    3. First-name expansion
    4. Anchor to the start if step 3 did not already

    The cache is unbounded. A session only ever sees the names the user
    typed plus the roster names they matched, so it stays small.
    """
    override = NAME_OVERRIDES.get(name.strip().lower())
    if override is not None:
        return re.compile(override, re.IGNORECASE)

    pattern = expand_first_name_prefix(_escape(name))
    if not pattern.startswith("^"):
        pattern = "^" + pattern
    return re.compile(pattern, re.IGNORECASE)


def names_match(name_a: str, name_b: str) -> bool:
    """
    Check whether two names refer to the same player.

    Both names are folded, then each is tested against the other's pattern.
    The check is symmetric. Blank input never matches.

    Examples:
        >>> names_match("Mike Evans", "Michael Evans")
        True
        >>> names_match("AJ Brown", "A.J. Brown")
        True
        >>> names_match("Josh", "Josh Allen")
        True
        >>> names_match("Allen", "Josh Allen")
        False
    """
    if not name_a or not name_b:
        return False

    folded_a = fold(name_a).strip()
    folded_b = fold(name_b).strip()
    if not folded_a or not folded_b:
        return False

    if build_pattern(folded_b).search(folded_a):
        return True
    if build_pattern(folded_a).search(folded_b):
        return True
    return False


# =============================================================================
# Looser comparisons used against rendered board text
# =============================================================================

_NON_LETTERS = re.compile(r"[^a-z\s]")


def letters_only(text: str, replacement: str = "") -> str:
    """Fold, lowercase and drop everything that is not a letter or space."""
    return _NON_LETTERS.sub(replacement, fold(text or "").lower())


def name_in_text(name: str, text: str) -> bool:
    """
    Check whether a player's name appears in a block of rendered text.

    Matches when the whole name is contained in the text, or when the first
    and last name are both present as separate tokens. Deliberately looser
    than names_match() because the board renders names compactly.

    Examples:
        >>> name_in_text("Ja'Marr Chase", "Ja'Marr ChaseWR - CIN")
        True
        >>> name_in_text("Josh Allen", "Allen, Josh QB BUF")
        True
    """
    if not name or not text:
        return False

    normalized_text = letters_only(text, " ")
    normalized_name = " ".join(letters_only(name, " ").split())
    if not normalized_name:
        return False

    if normalized_name in " ".join(normalized_text.split()):
        return True

    name_parts = [part for part in normalized_name.split() if len(part) > 1]
    if len(name_parts) >= 2:
        tokens = set(normalized_text.split())
        return name_parts[0] in tokens and name_parts[-1] in tokens

    return False


def loose_names_match(name_a: str, name_b: str) -> bool:
    """
    Token-based comparison for reviewing typed names against the queue.

    Intentionally more permissive than names_match():
    - identical after normalization
    - one side is a single word contained in the other
    - first and last tokens equal
    - first token equal and any later token equal
    - one whole phrase contained in the other
    """
    n1 = " ".join(letters_only(name_a).split())
    n2 = " ".join(letters_only(name_b).split())

    if not n1 or not n2:
        return False
    if n1 == n2:
        return True

    words1 = n1.split()
    words2 = n2.split()

    if len(words1) == 1 or len(words2) == 1:
        return n1 in n2 or n2 in n1

    if words1[0] == words2[0]:
        if words1[-1] == words2[-1]:
            return True
        if set(words1[1:]) & set(words2[1:]):
            return True

    return n1 in n2 or n2 in n1


# =============================================================================
# Search variations
# =============================================================================

_STRIP_PUNCTUATION = re.compile(r"['’.]")


def name_variations(name: str) -> list[str]:
    """
    Generate the texts typed into the board's search box, in order.

    Full name, punctuation stripped ("Ja'Marr" -> "JaMarr"), first name,
    last name, lowercase, uppercase. Duplicates are dropped while keeping
    the order.

    Examples:
        >>> name_variations("Ja'Marr Chase")
        ["Ja'Marr Chase", 'JaMarr Chase', "Ja'Marr", 'Chase', "ja'marr chase", "JA'MARR CHASE"]
    """
    cleaned = " ".join((name or "").split())
    if not cleaned:
        return []

    parts = cleaned.split(" ")
    candidates = [
        cleaned,
        _STRIP_PUNCTUATION.sub("", cleaned),
        parts[0],
        parts[-1],
        cleaned.lower(),
        cleaned.upper(),
    ]

    variations: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in variations:
            variations.append(candidate)
    return variations


# =============================================================================
# Fuzzy similarity (suggestions only)
# =============================================================================

def _normalize_for_similarity(name: str) -> str:
    return " ".join(fold(name or "").lower().replace(".", " ").split())


def similarity(name1: str, name2: str) -> float:
    """
    Compare two player names and return a similarity score.

    Uses multiple comparison algorithms and takes the best score:
    1. Jaro-Winkler: Good for typos and minor variations
    2. Token sort ratio: Handles word order differences
    3. Partial ratio: Handles abbreviations

    Args:
        name1: First name
        name2: Second name

    Returns:
        Similarity score from 0.0 (no match) to 1.0 (same name)

    Examples:
        >>> similarity("Patrick Mahomes", "patrick mahomes")
        1.0
        >>> similarity("Patrik Mahomes", "Patrick Mahomes") > 0.9
        True
    """
    n1 = _normalize_for_similarity(name1)
    n2 = _normalize_for_similarity(name2)

    # Empty strings don't match
    if not n1 or not n2:
        return 0.0

    if n1 == n2:
        return 1.0

    jw_score = jellyfish.jaro_winkler_similarity(n1, n2)
    token_sort = fuzz.token_sort_ratio(n1, n2) / 100.0
    partial = fuzz.partial_ratio(n1, n2) / 100.0

    # "p mahomes" vs "patrick mahomes"
    abbreviated_bonus = 0.0
    parts1 = n1.split()
    parts2 = n2.split()
    if len(parts1) >= 2 and len(parts2) >= 2 and parts1[-1] == parts2[-1]:
        first1 = parts1[0]
        first2 = parts2[0]
        if len(first1) == 1 and first2.startswith(first1):
            abbreviated_bonus = 0.15
        elif len(first2) == 1 and first1.startswith(first2):
            abbreviated_bonus = 0.15

    base_score = max(jw_score, token_sort, partial)
    # Never report a fuzzy pair as identical
    return min(0.99, base_score + abbreviated_bonus)
