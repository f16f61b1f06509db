"""
Result filtering and pagination service.

Filters results by:
- Evidence level (empty filter list means no constraint)
- Content type (empty filter list means no constraint)
- Specialty (unclassified results always pass)

Then applies the offset/limit window to the already-ranked list.
"""

from typing import List

import structlog

from medsearch.models.search import SearchFilters, SearchResult

logger = structlog.get_logger()

UNKNOWN_LABEL = "unknown"


class FilterService:
    """
    Narrow a ranked result list to the requested page.

    Stateless; ordering of the input is preserved.
    """

    def apply(
        self, results: List[SearchResult], filters: SearchFilters
    ) -> List[SearchResult]:
        """
        Filter and paginate results.

        Args:
            results: Ranked results
            filters: Request filters and pagination window

        Returns:
            Requested page (empty when offset is past the end)
        """
        filtered = self.filter(results, filters)
        page = self.paginate(filtered, filters.offset, filters.limit)

        logger.debug(
            "filtering_complete",
            input=len(results),
            filtered_out=len(results) - len(filtered),
            offset=filters.offset,
            limit=filters.limit,
            output=len(page),
        )

        return page

    def filter(
        self, results: List[SearchResult], filters: SearchFilters
    ) -> List[SearchResult]:
        """
        Apply evidence level, content type and specialty filters.

        Args:
            results: Results to filter

        Returns:
            Results that pass all filters
        """
        filtered = []

        for result in results:
            # Evidence level filter
            if filters.evidence_level and (
                (result.evidence_level or UNKNOWN_LABEL) not in filters.evidence_level
            ):
                continue

            # Content type filter
            if filters.content_type and (
                (result.content_type or UNKNOWN_LABEL) not in filters.content_type
            ):
                continue

            # Specialty filter never drops unclassified results
            if (
                filters.specialty
                and result.specialty
                and result.specialty != filters.specialty
            ):
                continue

            filtered.append(result)

        return filtered

    @staticmethod
    def paginate(
        results: List[SearchResult], offset: int, limit: int
    ) -> List[SearchResult]:
        """
        Apply the offset/limit window.

        Args:
            results: Filtered results
            offset: Number of results to skip (>= 0)
            limit: Maximum page size

        Returns:
            Page of at most ``limit`` results
        """
        offset = max(offset, 0)
        return results[offset : offset + limit]
