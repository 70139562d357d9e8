"""Unit tests for app.services.user_query helpers (no database)."""

import unittest

from app.schemas.user import SortOrder, UserSortField
from app.services.user_query import (
    MAX_LIMIT,
    build_pagination_meta,
    build_sort,
    normalize_pagination,
    sanitize_search_term,
)


class TestNormalizePagination(unittest.TestCase):
    def test_defaults(self) -> None:
        self.assertEqual(normalize_pagination(None, None), (1, 10, 0))

    def test_offset(self) -> None:
        self.assertEqual(normalize_pagination(3, 20), (3, 20, 40))

    def test_clamps(self) -> None:
        self.assertEqual(normalize_pagination(-2, 1000), (1, MAX_LIMIT, 0))


class TestSanitizeSearchTerm(unittest.TestCase):
    def test_blank_is_none(self) -> None:
        self.assertIsNone(sanitize_search_term(None))
        self.assertIsNone(sanitize_search_term(""))
        self.assertIsNone(sanitize_search_term("   "))

    def test_wildcards_escaped(self) -> None:
        self.assertEqual(sanitize_search_term("50%_off"), "50\\%\\_off")
        self.assertEqual(sanitize_search_term("a\\b"), "a\\\\b")

    def test_plain_term_trimmed(self) -> None:
        self.assertEqual(sanitize_search_term("  jane "), "jane")


class TestPaginationMeta(unittest.TestCase):
    def test_middle_page(self) -> None:
        meta = build_pagination_meta(total=25, page=2, limit=10)
        self.assertEqual(meta.total_pages, 3)
        self.assertTrue(meta.has_next_page)
        self.assertTrue(meta.has_previous_page)

    def test_empty(self) -> None:
        meta = build_pagination_meta(total=0, page=1, limit=10)
        self.assertEqual(meta.total_pages, 0)
        self.assertFalse(meta.has_next_page)
        self.assertFalse(meta.has_previous_page)


class TestBuildSort(unittest.TestCase):
    def test_id_is_tiebreaker(self) -> None:
        clauses = build_sort(UserSortField.EMAIL, SortOrder.ASC)
        self.assertEqual(len(clauses), 2)
        self.assertIn("email", str(clauses[0]))
        self.assertIn("id", str(clauses[1]))

    def test_descending(self) -> None:
        clauses = build_sort(UserSortField.CREATED_AT, SortOrder.DESC)
        self.assertIn("DESC", str(clauses[0]))


if __name__ == "__main__":
    unittest.main()
