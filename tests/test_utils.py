import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from wefed.utils import as_utc, count_query, page_count, page_query, paginate


class UtilsTestCase(unittest.TestCase):
    def test_as_utc_parses_zulu_strings(self):
        self.assertEqual(
            as_utc("2026-03-01T12:00:00Z"),
            datetime(2026, 3, 1, 12, tzinfo=timezone.utc),
        )

    def test_as_utc_marks_naive_datetimes_as_utc(self):
        value = as_utc(datetime(2026, 3, 1))
        self.assertEqual(value.tzinfo, timezone.utc)
        self.assertIsNone(as_utc(None))

    def test_paginate(self):
        items = list(range(45))
        self.assertEqual(paginate(items, 1, 20), list(range(20)))
        self.assertEqual(paginate(items, 3, 20), list(range(40, 45)))
        self.assertEqual(paginate(items, 4, 20), [])

    def test_page_count(self):
        self.assertEqual(page_count(45, 20), 3)
        self.assertEqual(page_count(0, 20), 0)
        self.assertEqual(page_count(40, 20), 2)

    def test_page_query_fetches_one_extra_document(self):
        query = MagicMock()
        page_query(query, 3, 20)
        query.offset.assert_called_once_with(40)
        query.offset.return_value.limit.assert_called_once_with(21)

    def test_count_query_reads_the_aggregation_value(self):
        query = MagicMock()
        query.count.return_value.get.return_value = [[MagicMock(value=7)]]
        self.assertEqual(count_query(query), 7)
