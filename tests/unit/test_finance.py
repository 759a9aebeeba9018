"""家計簿集計ロジックのユニットテスト"""

from datetime import date, datetime, timezone

import pytest
from family_portal.domain.errors import ValidationError
from family_portal.domain.finance import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    available_years,
    categories_for,
    entry_datetime,
    expenses_by_category,
    filter_by_month,
    filter_by_year,
    filter_transactions,
    ledger_total,
    month_bounds,
    monthly_totals,
    net_worth,
    overview_stats,
    period_summary,
    range_start,
    today_in_eastern,
    top_categories,
    validate_asset_input,
    validate_transaction_input,
)
from family_portal.domain.models import Transaction, TransactionType


def _txn(txn_id, txn_type, amount, category, when, **kwargs) -> Transaction:
    return Transaction(
        id=txn_id, type=txn_type, amount=amount, category=category, date=when, **kwargs
    )


NOW = datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc)


class TestCategories:
    def test_expense_and_income_lists(self):
        assert categories_for(TransactionType.EXPENSE) is EXPENSE_CATEGORIES
        assert categories_for(TransactionType.INCOME) is INCOME_CATEGORIES

    def test_other_has_no_subcategories(self):
        other = next(c for c in EXPENSE_CATEGORIES if c.name == "Other")

        assert other.subcategories == ()

    def test_salary_subcategories(self):
        salary = next(c for c in INCOME_CATEGORIES if c.name == "Salary")

        assert "Regular Paycheck" in salary.subcategories


class TestValidation:
    @pytest.mark.parametrize("amount, category", [(None, "Food"), (10.0, ""), (10.0, "  ")])
    def test_required_fields(self, amount, category):
        with pytest.raises(ValidationError, match="Amount and Category"):
            validate_transaction_input(amount, category)

    @pytest.mark.parametrize("amount", [0, -5.0])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError, match="greater than zero"):
            validate_transaction_input(amount, "Food")

    def test_valid_transaction(self):
        validate_transaction_input(0.01, "Food")

    def test_asset_requires_name_and_balance(self):
        with pytest.raises(ValidationError, match="required fields"):
            validate_asset_input("", 100.0)
        with pytest.raises(ValidationError, match="required fields"):
            validate_asset_input("Savings", None)

    def test_asset_negative_balance_allowed(self):
        """負債を表すため残高のマイナスは許可"""
        validate_asset_input("Mortgage", -250000.0)


class TestDates:
    def test_today_in_eastern_crosses_midnight(self):
        """UTC では翌日でも New York ではまだ前日"""
        now = datetime(2026, 3, 16, 2, 0, tzinfo=timezone.utc)

        assert today_in_eastern(now) == date(2026, 3, 15)

    def test_entry_datetime_is_noon_utc(self):
        assert entry_datetime(date(2026, 3, 1)) == datetime(
            2026, 3, 1, 12, 0, tzinfo=timezone.utc
        )

    def test_month_bounds(self):
        start, end = month_bounds(datetime(2024, 2, 10, 8, 0, tzinfo=timezone.utc))

        assert start == datetime(2024, 2, 1, 0, 0, 0, tzinfo=timezone.utc)
        assert end == datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "date_range, expected",
        [
            ("all", None),
            ("today", datetime(2026, 3, 15, tzinfo=timezone.utc)),
            ("week", datetime(2026, 3, 8, 9, 30, tzinfo=timezone.utc)),
            ("month", datetime(2026, 3, 1, tzinfo=timezone.utc)),
            ("year", datetime(2026, 1, 1, tzinfo=timezone.utc)),
        ],
    )
    def test_range_start(self, date_range, expected):
        assert range_start(date_range, NOW) == expected

    def test_range_start_unknown(self):
        with pytest.raises(ValidationError):
            range_start("decade", NOW)


class TestFilterTransactions:
    def test_by_type(self, sample_transactions):
        result = filter_transactions(
            sample_transactions, transaction_type=TransactionType.INCOME, now=NOW
        )

        assert [t.id for t in result] == ["t1"]

    def test_by_category(self, sample_transactions):
        result = filter_transactions(sample_transactions, category="Food", now=NOW)

        assert [t.id for t in result] == ["t3", "t4"]

    def test_by_month_range(self, sample_transactions):
        result = filter_transactions(sample_transactions, date_range="month", now=NOW)

        # t4 は未来日付だが開始日時より後なので含まれる
        assert [t.id for t in result] == ["t1", "t2", "t3", "t4"]

    def test_search_is_case_insensitive_across_fields(self, sample_transactions):
        """description / merchant / subcategory を部分一致で検索"""
        assert [t.id for t in filter_transactions(sample_transactions, search="whole", now=NOW)] == ["t3"]
        assert [t.id for t in filter_transactions(sample_transactions, search="PIZZA", now=NOW)] == ["t4"]
        assert [t.id for t in filter_transactions(sample_transactions, search="rent", now=NOW)] == ["t2"]

    def test_naive_now_treated_as_utc(self, sample_transactions):
        result = filter_transactions(
            sample_transactions, date_range="year", now=datetime(2026, 3, 15)
        )

        assert "t5" not in [t.id for t in result]


class TestAggregation:
    def test_ledger_total(self, sample_transactions):
        # 5000 - 1500 - 120.5 - 60 - 300
        assert ledger_total(sample_transactions) == pytest.approx(3019.5)

    def test_filter_by_month_and_year(self, sample_transactions):
        assert [t.id for t in filter_by_month(sample_transactions, "2026-03")] == ["t1", "t2", "t3"]
        assert [t.id for t in filter_by_year(sample_transactions, 2025)] == ["t5"]

    def test_expenses_by_category_sorted_desc(self, sample_transactions):
        assert expenses_by_category(sample_transactions) == [
            ("Housing", 1500.0),
            ("Travel", 300.0),
            ("Food", 180.5),
        ]

    def test_top_categories_limit(self, sample_transactions):
        assert top_categories(sample_transactions, n=1) == [("Housing", 1500.0)]

    def test_monthly_totals_has_twelve_months(self, sample_transactions):
        """取引の無い月も 0 で含める"""
        totals = monthly_totals(sample_transactions, 2026)

        assert [m.month for m in totals][:3] == ["Jan", "Feb", "Mar"]
        assert len(totals) == 12
        assert totals[0].expenses == 0 and totals[0].income == 0
        assert totals[2].income == 5000.0
        assert totals[2].expenses == pytest.approx(1620.5)
        assert totals[2].net == pytest.approx(3379.5)
        assert totals[3].expenses == 60.0

    def test_period_summary(self, sample_transactions):
        summary = period_summary(filter_by_year(sample_transactions, 2026))

        assert summary.total_income == 5000.0
        assert summary.total_expenses == pytest.approx(1680.5)
        assert summary.expense_count == 3
        assert summary.income_count == 1
        assert summary.net_income == pytest.approx(3319.5)

    def test_available_years_desc(self, sample_transactions):
        assert available_years(sample_transactions) == [2026, 2025]

    def test_available_years_empty(self):
        assert available_years([]) == []

    def test_net_worth(self, sample_assets):
        assert net_worth(sample_assets) == pytest.approx(65000.5)

    def test_overview_stats(self, sample_transactions, sample_assets):
        month_txns = filter_by_month(sample_transactions, "2026-03")

        stats = overview_stats(month_txns, sample_assets, transaction_count=5)

        assert stats.monthly_income == 5000.0
        assert stats.monthly_expenses == pytest.approx(1620.5)
        assert stats.net_income == pytest.approx(3379.5)
        assert stats.net_worth == pytest.approx(65000.5)
        assert stats.transaction_count == 5
