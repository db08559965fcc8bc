"""Revenue, cost and profit aggregation over the sales log."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from .models import Sale, SalesSummary

TREND_DAYS = 7
# Empty format: short weekday name in the shop language plus the unpadded
# day of month ("ส. 9", "Sat 9"). Any other value is an strftime format.
DEFAULT_LABEL_FORMAT = ""
DEFAULT_LABEL_LANGUAGE = "Thai"

# Monday first, matching date.weekday()
SHORT_WEEKDAYS = {
    "Thai": ("จ.", "อ.", "พ.", "พฤ.", "ศ.", "ส.", "อา."),
    "English": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
}


@dataclass
class TrendPoint:
    day: date
    label: str
    revenue: float = 0.0
    profit: float = 0.0


@dataclass
class DashboardSummary:
    """Everything the dashboard shows, computed in one pass per call."""

    daily: SalesSummary
    monthly: SalesSummary
    lifetime: SalesSummary
    trend: list[TrendPoint] = field(default_factory=list)

    def summary_dict(self) -> dict:
        return {
            "daily": self.daily.summary_dict(),
            "monthly": self.monthly.summary_dict(),
            "lifetime": self.lifetime.summary_dict(),
            "trend": [
                {
                    "label": p.label,
                    "revenue": round(p.revenue, 2),
                    "profit": round(p.profit, 2),
                }
                for p in self.trend
            ],
        }


def sale_datetime(sale: Sale) -> datetime:
    """Local wall-clock time of a sale."""
    return datetime.fromtimestamp(sale.timestamp / 1000)


def _millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def day_label(
    day: date,
    label_format: str = DEFAULT_LABEL_FORMAT,
    language: str = DEFAULT_LABEL_LANGUAGE,
) -> str:
    if label_format:
        return _start_of_day(day).strftime(label_format)
    names = SHORT_WEEKDAYS.get(language, SHORT_WEEKDAYS["English"])
    return f"{names[day.weekday()]} {day.day}"


def summarize_sales(sales: Iterable[Sale]) -> SalesSummary:
    result = SalesSummary()
    for s in sales:
        result.revenue += s.total_amount
        result.cost += s.total_cost
        result.count += 1
    return result


def daily_summary(sales: Iterable[Sale], now: datetime | None = None) -> SalesSummary:
    """Sales at or after local midnight of ``now``."""
    now = now or datetime.now()
    start = _millis(_start_of_day(now.date()))
    return summarize_sales(s for s in sales if s.timestamp >= start)


def monthly_summary(sales: Iterable[Sale], now: datetime | None = None) -> SalesSummary:
    """Sales in the same calendar month and year as ``now``."""
    now = now or datetime.now()

    def same_month(s: Sale) -> bool:
        d = sale_datetime(s)
        return d.month == now.month and d.year == now.year

    return summarize_sales(s for s in sales if same_month(s))


def lifetime_summary(sales: Iterable[Sale]) -> SalesSummary:
    return summarize_sales(sales)


def trend(
    sales: Iterable[Sale],
    now: datetime | None = None,
    days: int = TREND_DAYS,
    label_format: str = DEFAULT_LABEL_FORMAT,
    language: str = DEFAULT_LABEL_LANGUAGE,
) -> list[TrendPoint]:
    """Per-day revenue and profit for the ``days`` days ending today, oldest first.

    Always returns exactly ``days`` points; days without sales are zero.
    """
    now = now or datetime.now()
    sales = list(sales)
    points: list[TrendPoint] = []
    for offset in range(days - 1, -1, -1):
        day = now.date() - timedelta(days=offset)
        start = _millis(_start_of_day(day))
        end = _millis(_start_of_day(day + timedelta(days=1)))
        bucket = summarize_sales(s for s in sales if start <= s.timestamp < end)
        points.append(
            TrendPoint(
                day=day,
                label=day_label(day, label_format, language),
                revenue=bucket.revenue,
                profit=bucket.profit,
            )
        )
    return points


def summarize(
    sales: Iterable[Sale],
    now: datetime | None = None,
    label_format: str = DEFAULT_LABEL_FORMAT,
    language: str = DEFAULT_LABEL_LANGUAGE,
) -> DashboardSummary:
    now = now or datetime.now()
    sales = list(sales)
    return DashboardSummary(
        daily=daily_summary(sales, now),
        monthly=monthly_summary(sales, now),
        lifetime=lifetime_summary(sales),
        trend=trend(sales, now, label_format=label_format, language=language),
    )


def payment_breakdown(sales: Iterable[Sale]) -> dict[str, SalesSummary]:
    """Revenue and cost per payment method."""
    result: dict[str, SalesSummary] = {}
    for s in sales:
        key = getattr(s.payment_method, "value", s.payment_method)
        bucket = result.setdefault(key, SalesSummary())
        bucket.revenue += s.total_amount
        bucket.cost += s.total_cost
        bucket.count += 1
    return result


def top_items(sales: Iterable[Sale], limit: int = 5) -> list[dict]:
    """Best sellers by quantity across all sale lines."""
    agg: dict[str, dict] = {}
    for s in sales:
        for line in s.items:
            entry = agg.setdefault(
                line.id, {"id": line.id, "name": line.name, "qty": 0, "revenue": 0.0}
            )
            entry["qty"] += line.qty
            entry["revenue"] += line.price * line.qty
    ranked = sorted(agg.values(), key=lambda e: (-e["qty"], -e["revenue"]))
    return ranked[:limit]
