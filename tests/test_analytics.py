"""
Tests for dashboard analytics.
"""

from datetime import datetime, timezone

import pytest

from linksnap_app.schemas.url import ShortURL
from linksnap_app.services.analytics import average_clicks, summarize


def make_url(short_code: str, clicks: int) -> ShortURL:
    return ShortURL(
        id=f"id-{short_code}",
        user_id="user-1",
        original_url=f"https://example.com/{short_code}",
        short_code=short_code,
        clicks=clicks,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


class TestAverageClicks:

    def test_zero_urls_is_zero(self):
        assert average_clicks(0, 0) == 0
        assert average_clicks(12, 0) == 0

    @pytest.mark.parametrize("total_clicks,total_urls,expected", [
        (10, 1, 10.0),
        (5, 2, 2.5),
        (10, 3, 3.3),
        (20, 3, 6.7),
        (1, 4, 0.3),  # halves round up
        (0, 5, 0.0),
    ])
    def test_rounds_to_one_decimal(self, total_clicks, total_urls, expected):
        assert average_clicks(total_clicks, total_urls) == expected


class TestSummarize:

    def test_empty(self):
        summary = summarize([])
        assert summary.total_urls == 0
        assert summary.total_clicks == 0
        assert summary.average_clicks == 0

    def test_totals(self):
        summary = summarize([make_url("abc", 3), make_url("def", 4)])
        assert summary.total_urls == 2
        assert summary.total_clicks == 7
        assert summary.average_clicks == 3.5
