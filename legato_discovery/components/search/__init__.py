"""
Search Components for Legato Discovery

- SearchEngine: faceted token-overlap search
- AutocompleteEngine: prefix suggestions over song and user fields
"""

from .autocomplete_engine import AutocompleteEngine
from .search_engine import SearchEngine
from .text_utils import tokenize

__all__ = [
    'AutocompleteEngine',
    'SearchEngine',
    'tokenize',
]
