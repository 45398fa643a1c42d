# src/reserved_names.py
"""
Pseudonyms that impersonate staff are rejected at signup, including
look-alike spellings such as "Adm1n" or "m0d_team".
"""
import re
import unicodedata

RESERVED_WORDS = (
    "admin", "administrator", "moderator", "mod", "support", "staff", "official",
    "superadmin", "root", "owner", "system", "sysop", "team", "security", "help",
)

_LEET = str.maketrans({"0": "o", "1": "i", "3": "e", "4": "a", "5": "s", "7": "t"})
_NON_WORD = re.compile(r"[^a-z0-9]+")


def normalize_name(name: str) -> str:
    """Lowercase, strip accents and separators, undo digit substitutions."""
    s = unicodedata.normalize("NFKD", str(name or "")).encode("ascii", "ignore").decode("ascii")
    s = _NON_WORD.sub("", s.lower())
    return s.translate(_LEET)


def is_reserved_name(name: str) -> bool:
    norm = normalize_name(name)
    if not norm:
        return False
    return any(word in norm for word in RESERVED_WORDS)
