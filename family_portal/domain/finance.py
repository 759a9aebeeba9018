"""家計簿（取引・資産）の集計ロジック

Firestore から取得した Transaction / Asset のリストをメモリ上で集計する。
件数は家庭1世帯分なので、ページングやストア側集計は行わない。
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from family_portal.domain.errors import ValidationError
from family_portal.domain.models import Asset, Transaction, TransactionType

EASTERN = ZoneInfo("America/New_York")

DATE_RANGES = ("all", "today", "week", "month", "year")


@dataclass(frozen=True)
class Category:
    name: str
    icon: str
    subcategories: tuple[str, ...] = ()


EXPENSE_CATEGORIES: tuple[Category, ...] = (
    Category("Housing", "🏠", ("Rent", "Mortgage", "Property Tax", "HOA Fees", "Maintenance")),
    Category("Utilities", "⚡", ("Electric", "Gas", "Water", "Internet", "Phone")),
    Category("Food", "🍔", ("Groceries", "Restaurants", "Coffee", "Delivery")),
    Category(
        "Transportation",
        "🚗",
        ("Gas", "Car Payment", "Insurance", "Maintenance", "Parking", "Public Transit"),
    ),
    Category("Healthcare", "⚕️", ("Insurance", "Doctor", "Pharmacy", "Dental", "Vision")),
    Category("Entertainment", "🎬", ("Streaming", "Movies", "Concerts", "Hobbies", "Sports")),
    Category("Shopping", "🛍️", ("Clothing", "Electronics", "Home Goods", "Gifts")),
    Category("Personal Care", "💇", ("Haircut", "Gym", "Beauty", "Spa")),
    Category("Education", "📚", ("Tuition", "Books", "Courses", "Supplies")),
    Category("Travel", "✈️", ("Flights", "Hotels", "Vacation", "Car Rental")),
    Category("Insurance", "🛡️", ("Life", "Health", "Auto", "Home")),
    Category("Debt", "💳", ("Credit Card", "Student Loan", "Personal Loan")),
    Category("Savings", "🐷", ("Emergency Fund", "Retirement", "Investment")),
    Category("Other", "📌"),
)

INCOME_CATEGORIES: tuple[Category, ...] = (
    Category("Salary", "💼", ("Regular Paycheck", "Bonus", "Commission")),
    Category("Investment", "📈", ("Dividends", "Interest", "Capital Gains", "Rental Income")),
    Category("Business", "🏢", ("Self-Employment", "Freelance", "Side Hustle")),
    Category("Other Income", "💰", ("Gift", "Refund", "Tax Return", "Other")),
)


@dataclass(frozen=True)
class MonthlyTotal:
    month: str  # "Jan" 〜 "Dec"
    expenses: float
    income: float

    @property
    def net(self) -> float:
        return self.income - self.expenses


@dataclass(frozen=True)
class PeriodSummary:
    total_expenses: float
    total_income: float
    expense_count: int
    income_count: int

    @property
    def net_income(self) -> float:
        return self.total_income - self.total_expenses


@dataclass(frozen=True)
class OverviewStats:
    monthly_expenses: float
    monthly_income: float
    net_worth: float
    transaction_count: int

    @property
    def net_income(self) -> float:
        return self.monthly_income - self.monthly_expenses


def categories_for(transaction_type: TransactionType) -> tuple[Category, ...]:
    if transaction_type == TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


def validate_transaction_input(amount: float | None, category: str | None) -> None:
    """金額とカテゴリは必須。金額は正の数のみ"""
    if amount is None or not category or not category.strip():
        raise ValidationError("Please fill in required fields (Amount and Category)")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")


def validate_asset_input(name: str | None, balance: float | None) -> None:
    if not name or not name.strip() or balance is None:
        raise ValidationError("Please fill in required fields")


def today_in_eastern(now: datetime | None = None) -> date:
    """新規取引のデフォルト日付（America/New_York の今日）"""
    now = now or datetime.now(timezone.utc)
    return _aware(now).astimezone(EASTERN).date()


def entry_datetime(value: date) -> datetime:
    """日付入力を取引日時にする（12:00 UTC。どのタイムゾーンで表示しても同じ日付）"""
    return datetime.combine(value, time(12, 0), tzinfo=timezone.utc)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """now を含む月の [1日 00:00:00, 末日 23:59:59]"""
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(day=last_day, hour=23, minute=59, second=59, microsecond=0)
    return start, end


def range_start(date_range: str, now: datetime) -> datetime | None:
    """期間フィルタの開始日時。"all" なら None"""
    if date_range == "all":
        return None
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == "today":
        return midnight
    if date_range == "week":
        return now - timedelta(days=7)
    if date_range == "month":
        return midnight.replace(day=1)
    if date_range == "year":
        return midnight.replace(month=1, day=1)
    raise ValidationError(f"Unknown date range: {date_range}")


def filter_transactions(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType | None = None,
    category: str | None = None,
    date_range: str = "all",
    search: str | None = None,
    now: datetime | None = None,
) -> list[Transaction]:
    """
    取引一覧の絞り込み。

    Args:
        transaction_type: 種別（None なら全件）
        category: カテゴリ完全一致（None なら全件）
        date_range: "all" | "today" | "week" | "month" | "year"
        search: description / category / subcategory / merchant の部分一致（大文字小文字無視）
        now: 期間の基準時刻（省略時は America/New_York の現在時刻）
    """
    now = _aware(now) if now else datetime.now(EASTERN)
    start = range_start(date_range, now)
    term = search.lower() if search else ""

    result = []
    for t in transactions:
        if transaction_type is not None and t.type != transaction_type:
            continue
        if category and t.category != category:
            continue
        if start is not None and _aware(t.date) < start:
            continue
        if term and not _matches(t, term):
            continue
        result.append(t)
    return result


def _matches(t: Transaction, term: str) -> bool:
    fields = (t.description, t.category, t.subcategory, t.merchant)
    return any(f and term in f.lower() for f in fields)


def ledger_total(transactions: Iterable[Transaction]) -> float:
    """収入は加算、支出は減算した合計"""
    total = 0.0
    for t in transactions:
        total += t.amount if t.type == TransactionType.INCOME else -t.amount
    return total


def filter_by_month(transactions: Iterable[Transaction], month: str) -> list[Transaction]:
    """month: "YYYY-MM"（UTC 基準で比較）"""
    return [t for t in transactions if _month_key(t.date) == month]


def filter_by_year(transactions: Iterable[Transaction], year: int) -> list[Transaction]:
    return [t for t in transactions if t.date.year == year]


def expenses_by_category(transactions: Iterable[Transaction]) -> list[tuple[str, float]]:
    """支出のカテゴリ別合計（金額の降順）"""
    totals: dict[str, float] = {}
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            totals[t.category] = totals.get(t.category, 0.0) + t.amount
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def top_categories(
    transactions: Iterable[Transaction], n: int = 5
) -> list[tuple[str, float]]:
    return expenses_by_category(transactions)[:n]


def monthly_totals(transactions: Iterable[Transaction], year: int) -> list[MonthlyTotal]:
    """year の1月〜12月の収支（取引の無い月も 0 で含める）"""
    txns = list(transactions)
    result = []
    for month in range(1, 13):
        key = f"{year}-{month:02d}"
        month_txns = filter_by_month(txns, key)
        result.append(
            MonthlyTotal(
                month=calendar.month_abbr[month],
                expenses=_sum(month_txns, TransactionType.EXPENSE),
                income=_sum(month_txns, TransactionType.INCOME),
            )
        )
    return result


def period_summary(transactions: Iterable[Transaction]) -> PeriodSummary:
    txns = list(transactions)
    return PeriodSummary(
        total_expenses=_sum(txns, TransactionType.EXPENSE),
        total_income=_sum(txns, TransactionType.INCOME),
        expense_count=sum(1 for t in txns if t.type == TransactionType.EXPENSE),
        income_count=sum(1 for t in txns if t.type == TransactionType.INCOME),
    )


def available_years(transactions: Iterable[Transaction]) -> list[int]:
    """取引のある年（降順）"""
    return sorted({t.date.year for t in transactions}, reverse=True)


def net_worth(assets: Iterable[Asset]) -> float:
    return sum(a.balance for a in assets)


def overview_stats(
    month_transactions: Iterable[Transaction],
    assets: Iterable[Asset],
    transaction_count: int,
) -> OverviewStats:
    txns = list(month_transactions)
    return OverviewStats(
        monthly_expenses=_sum(txns, TransactionType.EXPENSE),
        monthly_income=_sum(txns, TransactionType.INCOME),
        net_worth=net_worth(assets),
        transaction_count=transaction_count,
    )


def _sum(transactions: Iterable[Transaction], transaction_type: TransactionType) -> float:
    return sum(t.amount for t in transactions if t.type == transaction_type)


def _month_key(value: datetime) -> str:
    return _aware(value).astimezone(timezone.utc).strftime("%Y-%m")


def _aware(value: datetime) -> datetime:
    # Firestore は tz-aware (UTC) を返すが、テスト等で naive が来たら UTC とみなす
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
