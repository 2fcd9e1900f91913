"""
Term-frequency vectorizer.

Turns text into a sparse weighted term vector:

    weight(term) = count(term) / total_tokens

Where:
    count = occurrences of the term (only terms longer than 2 characters)
    total_tokens = number of ALL tokens in the text, short ones included

Two texts with the same meaningful words but a different amount of short
filler ("a", "of", "is") therefore get different weights for the same word.
This is intentional and must stay stable: persisted vector tables depend on it.

The vectorizer sits behind BaseVectorizer so a real embedding provider can be
plugged in without touching the similarity index or the fusion ranker.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict

from .tokenizer import MIN_TERM_LENGTH, tokenize

logger = logging.getLogger(__name__)

TermVector = Dict[str, float]


class BaseVectorizer(ABC):
    """
    Abstract base class for vectorizers.
    
    All vectorizers must implement this interface to be swappable.
    """
    
    @abstractmethod
    def vectorize(self, text: str) -> TermVector:
        """
        Convert text into a sparse vector.
        
        Args:
            text: Source text (document title + content, or a query)
            
        Returns:
            Mapping of feature -> non-negative weight (may be empty)
        """
        pass
    
    def get_info(self) -> dict:
        """Describe the vectorizer (name and parameters)."""
        return {"name": type(self).__name__}


class TermFrequencyVectorizer(BaseVectorizer):
    """Raw term-frequency vectorizer, no IDF, no stemming."""
    
    def __init__(self, min_term_length: int = MIN_TERM_LENGTH):
        """
        Args:
            min_term_length: Shortest token kept as a vector key
                Default: 3 (tokens of length <= 2 only count in the denominator)
        """
        self.min_term_length = min_term_length
    
    def vectorize(self, text: str) -> TermVector:
        """
        Build the term-frequency vector for a text.
        
        Example:
            >>> TermFrequencyVectorizer().vectorize("alpha beta of alpha")
            {'alpha': 0.5, 'beta': 0.25}
        """
        tokens = tokenize(text)
        total_tokens = len(tokens)
        
        if total_tokens == 0:
            return {}
        
        term_counts = defaultdict(int)
        for token in tokens:
            if len(token) >= self.min_term_length:
                term_counts[token] += 1
        
        vector = {term: count / total_tokens for term, count in term_counts.items()}
        
        logger.debug(f"Vectorized text: {len(vector)} terms from {total_tokens} tokens")
        
        return vector
    
    def get_info(self) -> dict:
        return {
            "name": "term_frequency",
            "min_term_length": self.min_term_length,
        }


_default_vectorizer = TermFrequencyVectorizer()


def vectorize(text: str) -> TermVector:
    """Vectorize text with the default term-frequency vectorizer."""
    return _default_vectorizer.vectorize(text)
