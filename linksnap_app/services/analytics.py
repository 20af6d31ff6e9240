"""
Click analytics shown on the dashboard.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from linksnap_app.schemas.url import AnalyticsSummary, ShortURL


def average_clicks(total_clicks: int, total_urls: int) -> float:
    """
    Average clicks per URL, rounded half-up to one decimal.

    Returns 0 when there are no URLs.
    """
    if total_urls <= 0:
        return 0
    # Decimal(float) keeps the exact binary value, so 0.25 rounds to 0.3
    average = Decimal(total_clicks / total_urls)
    return float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def summarize(urls: Iterable[ShortURL]) -> AnalyticsSummary:
    """Totals over a user's URLs"""
    clicks = [url.clicks or 0 for url in urls]
    total_clicks = sum(clicks)
    total_urls = len(clicks)
    return AnalyticsSummary(
        total_clicks=total_clicks,
        total_urls=total_urls,
        average_clicks=average_clicks(total_clicks, total_urls),
    )
