"""
Text processing utilities for trigger matching.

Task text, persona descriptions and trigger examples all go through the same
normalisation so that their term sets are comparable: lower-casing, word
tokenisation, stop-word removal (scikit-learn's English list) and Porter
stemming (NLTK).
"""

import re
from functools import lru_cache
from typing import FrozenSet, Iterable, List, Optional

from nltk.stem import PorterStemmer
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS


_TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9+#.\-]*")
_STEMMER = PorterStemmer()


def tokenize_text(text: str) -> List[str]:
    """
    Split text into lower-case word tokens.

    Technology names keep their punctuation (``c++``, ``c#``, ``node.js``)
    while sentence punctuation is dropped.

    Examples:
        >>> tokenize_text("Refactor this React component.")
        ['refactor', 'this', 'react', 'component']
        >>> tokenize_text("Port it to Node.js / C++")
        ['port', 'it', 'to', 'node.js', 'c++']
    """
    if not text:
        return []

    tokens = []
    for raw in _TOKEN_PATTERN.findall(text.lower()):
        token = raw.rstrip(".-")
        if token:
            tokens.append(token)
    return tokens


def build_stopwords(extra: Optional[Iterable[str]] = None) -> FrozenSet[str]:
    """English stop-words plus any configured extras"""
    words = set(ENGLISH_STOP_WORDS)
    if extra:
        words.update(w.strip().lower() for w in extra if w and w.strip())
    return frozenset(words)


DEFAULT_STOPWORDS = build_stopwords()


@lru_cache(maxsize=8192)
def stem_token(token: str) -> str:
    # only plain words are stemmed; "node.js" or "c++" stay as written
    if token.isalpha():
        return _STEMMER.stem(token)
    return token


def normalize_terms(
    text: str,
    stopwords: FrozenSet[str] = DEFAULT_STOPWORDS,
    use_stemming: bool = True
) -> FrozenSet[str]:
    """
    Reduce text to the set of terms used for matching.

    Args:
        text: Raw text
        stopwords: Words to discard (compared before stemming)
        use_stemming: Apply Porter stemming to alphabetic tokens

    Returns:
        Frozen set of normalised terms
    """
    terms = set()
    for token in tokenize_text(text):
        if len(token) < 2 or token in stopwords:
            continue
        terms.add(stem_token(token) if use_stemming else token)
    return frozenset(terms)


def dice_similarity(left: FrozenSet[str], right: FrozenSet[str]) -> float:
    """Dice coefficient of two term sets, 0.0 when either is empty"""
    if not left or not right:
        return 0.0
    return 2.0 * len(left & right) / (len(left) + len(right))
