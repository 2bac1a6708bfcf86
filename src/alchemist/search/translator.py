# src/alchemist/search/translator.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from alchemist.errors import DataError
from alchemist.schemas.models import SearchFilter
from alchemist.search.filters import FilterResult, apply_filter, parse_filter_payload

logger = logging.getLogger(__name__)

SEARCH_FAILED = "Failed to process search query"


@runtime_checkable
class FilterTranslator(Protocol):
    """
    @brief
    Collaborator turning a free-text question into a SearchFilter.

    @details
    Typically backed by a language-model service. It may return a model, a
    mapping, raw JSON text (possibly wrapped in prose), or None when it has
    no answer, and it may raise.
    """

    def translate_to_filter(self, query: str) -> SearchFilter | Mapping[str, Any] | str | None:
        ...


def natural_language_search(
    query: str,
    translator: FilterTranslator,
    clients: Iterable[Any],
    workers: Iterable[Any],
    tasks: Iterable[Any],
) -> FilterResult:
    """
    @brief
    Translate a free-text query and apply the resulting filter.

    @details
    Every failure of the translation step (exception, no answer, payload
    that is not a filter) collapses into a single generic error result and
    is logged. A recovered filter naming an unknown collection still yields
    "Invalid entity type" from apply_filter().

    @returns
        FilterResult from apply_filter(), or the generic failure result.
    """
    # (1) Ask the collaborator; its failures are not ours to propagate
    try:
        payload = translator.translate_to_filter(query)
        if payload is None:
            raise DataError("translator returned no filter", source="search.translator")
        search_filter = parse_filter_payload(payload)
    except Exception:
        logger.exception("Error in natural language search for query %r", query)
        return FilterResult(entity_type=None, results=[], error=SEARCH_FAILED)

    # (2) Apply the recovered filter
    logger.info("Query %r translated to filter on %s", query, search_filter.entity_type)
    return apply_filter(search_filter, clients, workers, tasks)


__all__ = ["FilterTranslator", "SEARCH_FAILED", "natural_language_search"]
