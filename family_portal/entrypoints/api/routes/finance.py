"""家計簿 API ルート（管理者のみ）

GET    /api/finance/overview                → 200 今月の収支・純資産
GET    /api/finance/categories?type=        → 200 カテゴリ一覧
GET    /api/finance/transactions            → 200 { transactions, total }
POST   /api/finance/transactions            → 201 Transaction
PATCH  /api/finance/transactions/{id}       → 200 Transaction
DELETE /api/finance/transactions/{id}       → 204
GET    /api/finance/assets                  → 200 { assets, net_worth }
POST   /api/finance/assets                  → 201 Asset
PUT    /api/finance/assets/{id}             → 200 Asset
DELETE /api/finance/assets/{id}             → 204
GET    /api/finance/reports?view=&month=&year= → 200 月次/年次レポート

全ルートで require_admin を要求する（管理者以外は 403）。
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import replace
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from family_portal.domain import finance
from family_portal.domain.errors import NotFoundError, ValidationError
from family_portal.domain.models import (
    Asset,
    AssetType,
    Principal,
    Transaction,
    TransactionType,
)
from family_portal.domain.ports import AssetRepository, TransactionRepository
from family_portal.entrypoints.api.deps import (
    get_asset_repo,
    get_transaction_repo,
    require_admin,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/finance", tags=["finance"], dependencies=[Depends(require_admin)]
)

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


# ── スキーマ ──────────────────────────────────────────────────────────────────


class CategoryResponse(BaseModel):
    name: str
    icon: str
    subcategories: list[str]


class CategoriesResponse(BaseModel):
    type: TransactionType
    categories: list[CategoryResponse]
    default_date: dt.date


class TransactionRequest(BaseModel):
    type: TransactionType = TransactionType.EXPENSE
    amount: float | None = None
    category: str = ""
    subcategory: str | None = None
    description: str | None = None
    date: dt.date | None = None
    merchant: str | None = None
    payment_method: str | None = None


class TransactionUpdateRequest(BaseModel):
    amount: float | None = None
    date: dt.date | None = None
    description: str | None = None
    merchant: str | None = None
    payment_method: str | None = None


class TransactionResponse(BaseModel):
    id: str
    type: TransactionType
    amount: float
    category: str
    subcategory: str | None
    description: str | None
    date: dt.datetime
    merchant: str | None
    payment_method: str | None
    created_by: str


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: float


class AssetRequest(BaseModel):
    type: AssetType = AssetType.SAVINGS
    name: str = ""
    balance: float | None = None
    as_of_date: dt.date | None = None
    institution: str | None = None
    account_number: str | None = None
    notes: str | None = None


class AssetResponse(BaseModel):
    id: str
    type: AssetType
    name: str
    balance: float
    as_of_date: dt.date
    institution: str | None
    account_number: str | None
    notes: str | None


class AssetListResponse(BaseModel):
    assets: list[AssetResponse]
    net_worth: float


class OverviewResponse(BaseModel):
    month: str
    monthly_expenses: float
    monthly_income: float
    net_income: float
    net_worth: float
    transaction_count: int


class CategoryTotal(BaseModel):
    category: str
    amount: float


class MonthlyTotalResponse(BaseModel):
    month: str
    expenses: float
    income: float
    net: float


class ReportResponse(BaseModel):
    view: str
    month: str | None
    year: int
    available_years: list[int]
    total_expenses: float
    total_income: float
    net_income: float
    expense_count: int
    income_count: int
    expenses_by_category: list[CategoryTotal]
    top_categories: list[CategoryTotal]
    monthly: list[MonthlyTotalResponse]


def _transaction_response(t: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=t.id,
        type=t.type,
        amount=t.amount,
        category=t.category,
        subcategory=t.subcategory,
        description=t.description,
        date=t.date,
        merchant=t.merchant,
        payment_method=t.payment_method,
        created_by=t.created_by,
    )


def _asset_response(a: Asset) -> AssetResponse:
    return AssetResponse(
        id=a.id,
        type=a.type,
        name=a.name,
        balance=a.balance,
        as_of_date=a.as_of_date,
        institution=a.institution,
        account_number=a.account_number,
        notes=a.notes,
    )


def _category_totals(items: list[tuple[str, float]]) -> list[CategoryTotal]:
    return [CategoryTotal(category=name, amount=amount) for name, amount in items]


# ── 概要・カテゴリ ────────────────────────────────────────────────────────────


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    txn_repo: TransactionRepository = Depends(get_transaction_repo),
    asset_repo: AssetRepository = Depends(get_asset_repo),
) -> OverviewResponse:
    """今月の収支・純資産・取引件数"""
    now = dt.datetime.now(finance.EASTERN)
    start, end = finance.month_bounds(now)
    stats = finance.overview_stats(
        txn_repo.list_between(start, end), asset_repo.list(), txn_repo.count()
    )
    return OverviewResponse(
        month=now.strftime("%B %Y"),
        monthly_expenses=stats.monthly_expenses,
        monthly_income=stats.monthly_income,
        net_income=stats.net_income,
        net_worth=stats.net_worth,
        transaction_count=stats.transaction_count,
    )


@router.get("/categories", response_model=CategoriesResponse)
async def list_categories(
    type: TransactionType = Query(TransactionType.EXPENSE),
) -> CategoriesResponse:
    """取引入力フォーム用のカテゴリ一覧と既定の日付"""
    return CategoriesResponse(
        type=type,
        categories=[
            CategoryResponse(
                name=c.name, icon=c.icon, subcategories=list(c.subcategories)
            )
            for c in finance.categories_for(type)
        ],
        default_date=finance.today_in_eastern(),
    )


# ── 取引 ──────────────────────────────────────────────────────────────────────


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    type: TransactionType | None = None,
    category: str | None = None,
    date_range: Literal["all", "today", "week", "month", "year"] = "all",
    search: str | None = None,
    repo: TransactionRepository = Depends(get_transaction_repo),
) -> TransactionListResponse:
    """取引一覧（日付の新しい順）と、絞り込み結果の収支合計"""
    filtered = finance.filter_transactions(
        repo.list(),
        transaction_type=type,
        category=category,
        date_range=date_range,
        search=search,
    )
    return TransactionListResponse(
        transactions=[_transaction_response(t) for t in filtered],
        total=finance.ledger_total(filtered),
    )


@router.post(
    "/transactions",
    status_code=status.HTTP_201_CREATED,
    response_model=TransactionResponse,
)
async def create_transaction(
    body: TransactionRequest,
    principal: Principal = Depends(require_admin),
    repo: TransactionRepository = Depends(get_transaction_repo),
) -> TransactionResponse:
    """取引を登録する（日付省略時は America/New_York の今日）"""
    finance.validate_transaction_input(body.amount, body.category)
    transaction = Transaction(
        id="",
        type=body.type,
        amount=float(body.amount),
        category=body.category.strip(),
        subcategory=body.subcategory or None,
        description=body.description or None,
        date=finance.entry_datetime(body.date or finance.today_in_eastern()),
        merchant=body.merchant or None,
        payment_method=body.payment_method or None,
        created_by=principal.email,
    )
    transaction_id = repo.create(transaction)
    logger.info("Transaction created: id=%s, type=%s", transaction_id, body.type.value)
    return _transaction_response(replace(transaction, id=transaction_id))


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: str,
    body: TransactionUpdateRequest,
    repo: TransactionRepository = Depends(get_transaction_repo),
) -> TransactionResponse:
    """金額・日付・説明・店舗・支払方法のみ更新できる"""
    current = repo.get(transaction_id)
    if current is None:
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    changes = body.model_dump(exclude_unset=True)
    if "amount" in changes:
        finance.validate_transaction_input(changes["amount"], current.category)
    if "date" in changes:
        if changes["date"] is None:
            raise ValidationError("Date is required")
        changes["date"] = finance.entry_datetime(changes["date"])
    if not changes:
        return _transaction_response(current)

    repo.update(transaction_id, changes)
    logger.info("Transaction updated: id=%s, fields=%s", transaction_id, sorted(changes))
    return _transaction_response(replace(current, **changes))


@router.delete("/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    repo: TransactionRepository = Depends(get_transaction_repo),
) -> None:
    if repo.get(transaction_id) is None:
        raise NotFoundError(f"Transaction not found: {transaction_id}")
    repo.delete(transaction_id)
    logger.info("Transaction deleted: id=%s", transaction_id)


# ── 資産 ──────────────────────────────────────────────────────────────────────


@router.get("/assets", response_model=AssetListResponse)
async def list_assets(
    repo: AssetRepository = Depends(get_asset_repo),
) -> AssetListResponse:
    """資産一覧（名前順）と純資産"""
    assets = repo.list()
    return AssetListResponse(
        assets=[_asset_response(a) for a in assets],
        net_worth=finance.net_worth(assets),
    )


@router.post("/assets", status_code=status.HTTP_201_CREATED, response_model=AssetResponse)
async def create_asset(
    body: AssetRequest,
    repo: AssetRepository = Depends(get_asset_repo),
) -> AssetResponse:
    finance.validate_asset_input(body.name, body.balance)
    asset = Asset(
        id="",
        type=body.type,
        name=body.name.strip(),
        balance=float(body.balance),
        as_of_date=body.as_of_date or finance.today_in_eastern(),
        institution=body.institution or None,
        account_number=body.account_number or None,
        notes=body.notes or None,
    )
    asset_id = repo.create(asset)
    logger.info("Asset created: id=%s, type=%s", asset_id, body.type.value)
    return _asset_response(replace(asset, id=asset_id))


@router.put("/assets/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: str,
    body: AssetRequest,
    repo: AssetRepository = Depends(get_asset_repo),
) -> AssetResponse:
    current = repo.get(asset_id)
    if current is None:
        raise NotFoundError(f"Asset not found: {asset_id}")
    finance.validate_asset_input(body.name, body.balance)

    changes = {
        "type": body.type,
        "name": body.name.strip(),
        "balance": float(body.balance),
        "as_of_date": body.as_of_date or current.as_of_date,
        "institution": body.institution or None,
        "account_number": body.account_number or None,
        "notes": body.notes or None,
    }
    repo.update(asset_id, changes)
    logger.info("Asset updated: id=%s", asset_id)
    return _asset_response(replace(current, **changes))


@router.delete("/assets/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_asset(
    asset_id: str,
    repo: AssetRepository = Depends(get_asset_repo),
) -> None:
    if repo.get(asset_id) is None:
        raise NotFoundError(f"Asset not found: {asset_id}")
    repo.delete(asset_id)
    logger.info("Asset deleted: id=%s", asset_id)


# ── レポート ──────────────────────────────────────────────────────────────────


@router.get("/reports", response_model=ReportResponse)
async def get_report(
    view: Literal["month", "year"] = "month",
    month: str | None = None,
    year: int | None = None,
    repo: TransactionRepository = Depends(get_transaction_repo),
) -> ReportResponse:
    """
    月次または年次のレポート。

    月次: month（YYYY-MM、省略時は今月）の取引を集計
    年次: year（省略時は取引のある最新の年）の取引を集計
    月別推移（monthly）は常に対象年の1〜12月。
    """
    transactions = repo.list()
    years = finance.available_years(transactions)
    now = dt.datetime.now(finance.EASTERN)

    if view == "month":
        month = month or now.strftime("%Y-%m")
        if not _MONTH_PATTERN.match(month):
            raise ValidationError(f"month must be YYYY-MM: {month}")
        report_year = int(month[:4])
        selected = finance.filter_by_month(transactions, month)
    else:
        report_year = year or (years[0] if years else now.year)
        month = None
        selected = finance.filter_by_year(transactions, report_year)

    summary = finance.period_summary(selected)
    return ReportResponse(
        view=view,
        month=month,
        year=report_year,
        available_years=years,
        total_expenses=summary.total_expenses,
        total_income=summary.total_income,
        net_income=summary.net_income,
        expense_count=summary.expense_count,
        income_count=summary.income_count,
        expenses_by_category=_category_totals(finance.expenses_by_category(selected)),
        top_categories=_category_totals(finance.top_categories(selected)),
        monthly=[
            MonthlyTotalResponse(
                month=m.month, expenses=m.expenses, income=m.income, net=m.net
            )
            for m in finance.monthly_totals(transactions, report_year)
        ],
    )
