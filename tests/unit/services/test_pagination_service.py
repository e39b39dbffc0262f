"""
Unit tests for PaginationService.

Tests pagination math independently of storage.
"""

import pytest
from convokeep.db.services.pagination_service import PaginationService


@pytest.fixture
def pagination_service():
    """Provide a PaginationService instance."""
    return PaginationService()


class TestCalculatePagination:
    """Test pagination calculation logic."""

    def test_calculate_pagination_empty(self, pagination_service):
        """Test pagination with no matching conversations."""
        result = pagination_service.calculate_pagination(0, page=1, per_page=20)

        assert result == {
            "current_page": 1,
            "total_pages": 0,
            "total_conversations": 0,
            "per_page": 20,
        }

    def test_calculate_pagination_single_page(self, pagination_service):
        result = pagination_service.calculate_pagination(10, page=1, per_page=20)

        assert result["total_pages"] == 1
        assert result["current_page"] == 1

    def test_calculate_pagination_partial_last_page(self, pagination_service):
        result = pagination_service.calculate_pagination(101, page=3, per_page=20)

        assert result["total_pages"] == 6
        assert result["current_page"] == 3
        assert result["total_conversations"] == 101

    def test_calculate_pagination_exact_multiple(self, pagination_service):
        """Test pagination when items divide evenly by per_page."""
        result = pagination_service.calculate_pagination(60, page=1, per_page=20)
        assert result["total_pages"] == 3

    def test_current_page_is_clamped(self, pagination_service):
        result = pagination_service.calculate_pagination(30, page=9, per_page=10)
        assert result["current_page"] == 3


class TestValidatePage:
    """Test page validation logic."""

    def test_validate_page_within_range(self, pagination_service):
        assert pagination_service.validate_page(2, page_count=5) == 2

    def test_validate_page_too_high(self, pagination_service):
        """Test that page number is clamped to page_count."""
        assert pagination_service.validate_page(10, page_count=5) == 5

    def test_validate_page_zero(self, pagination_service):
        assert pagination_service.validate_page(0, page_count=5) == 1

    def test_validate_page_negative(self, pagination_service):
        assert pagination_service.validate_page(-5, page_count=5) == 1

    def test_validate_page_zero_pages(self, pagination_service):
        """Test validation when there are no pages."""
        assert pagination_service.validate_page(1, page_count=0) == 1


class TestPageCount:
    """Test page count edge cases."""

    def test_page_count_with_invalid_per_page(self, pagination_service):
        assert pagination_service.page_count(10, 0) == 0
