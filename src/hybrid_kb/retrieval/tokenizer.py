"""
Tokenizer for term vectors and keyword matching.

Tokenization pipeline:
1. Lowercase conversion
2. Extract ASCII word runs (letters, digits, underscore)
3. Return every token, short ones included

Short tokens are NOT filtered here: the vectorizer needs them in the
denominator of its term weights, and drops them from the vector keys itself.
"""

import re
from typing import List

# ASCII word characters only: "café" -> ["caf"], CJK text yields no tokens
WORD_PATTERN = re.compile(r'\b\w+\b', re.ASCII)

# Query words shorter than this never contribute word-level keyword matches
MIN_TERM_LENGTH = 3


def tokenize(text: str) -> List[str]:
    """
    Tokenize text into lowercase word tokens.
    
    Args:
        text: Input text to tokenize
        
    Returns:
        List of lowercase tokens in order of appearance (may contain duplicates)
        
    Examples:
        >>> tokenize("Alpha Systems, v2 of a_b!")
        ['alpha', 'systems', 'v2', 'of', 'a_b']
        
        >>> tokenize("   ")
        []
    """
    if not text:
        return []
    
    return WORD_PATTERN.findall(text.lower())


def query_words(query: str) -> List[str]:
    """
    Split a query on whitespace and keep the words long enough to match.
    
    Unlike tokenize(), punctuation stays attached: the keyword scorer counts
    literal occurrences of each word exactly as the user typed it.
    
    Examples:
        >>> query_words("What is RAG retrieval?")
        ['what', 'rag', 'retrieval?']
    """
    return [word for word in query.lower().split() if len(word) >= MIN_TERM_LENGTH]
