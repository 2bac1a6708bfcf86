from alchemist.search.filters import FilterResult, apply_filter, search_all, simple_text_search
from alchemist.search.translator import FilterTranslator, natural_language_search

__all__ = [
    "FilterResult",
    "apply_filter",
    "simple_text_search",
    "search_all",
    "FilterTranslator",
    "natural_language_search",
]
