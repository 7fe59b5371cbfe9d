import unicodedata
from typing import Optional

def remove_accents(value: str) -> str:
    """Strip combining marks after NFD decomposition ("João" -> "Joao")."""
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(char for char in decomposed if not unicodedata.combining(char))

def fold(value: Optional[str]) -> str:
    return remove_accents((value or "").lower())

def matches_search_query(text: Optional[str], query: Optional[str]) -> bool:
    """Case and accent insensitive substring match."""
    return fold(query) in fold(text)
