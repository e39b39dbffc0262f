"""
Service for handling pagination logic.

Provides pure, testable pagination functions independent of storage.
"""

from typing import Dict

from convokeep.config import DEFAULT_PAGE_SIZE


class PaginationService:
    """Service for page number and page count calculations."""

    def calculate_pagination(
        self,
        total_items: int,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, int]:
        """
        Calculate pagination information for a result set.

        Args:
            total_items: Number of matching conversations
            page: Current page number (1-indexed)
            per_page: Items per page

        Returns:
            Dict with current_page, total_pages, total_conversations, per_page
        """
        total_pages = self.page_count(total_items, per_page)

        return {
            "current_page": self.validate_page(page, total_pages),
            "total_pages": total_pages,
            "total_conversations": total_items,
            "per_page": per_page
        }

    @staticmethod
    def page_count(total_items: int, per_page: int) -> int:
        """Ceiling division; zero items means zero pages."""
        if total_items <= 0 or per_page <= 0:
            return 0
        return (total_items + per_page - 1) // per_page

    def validate_page(self, page: int, page_count: int) -> int:
        """
        Validate and clamp page number to valid range.

        Args:
            page: Requested page number
            page_count: Total number of pages

        Returns:
            Valid page number (1 to page_count, or 1 if no pages)
        """
        if page_count == 0:
            return 1

        return max(1, min(page, page_count))
