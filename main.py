import asyncio
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from http_service import ApiError, UnauthorizedError
from insights import (
    EXPENSE_FILTERS,
    filter_by_period,
    filter_payment_method_expenses,
    group_expenses_by_month,
    group_expenses_by_urgency,
    summarize_payment_method,
)
from money import format_currency, format_date
from optimistic import MutationResult
from periods import local_today, local_zone, resolve_timeline
from scheduler import CacheWarmer
from schemas import (
    CategoryIn,
    ExpenseIn,
    IncomeIn,
    LoginCredentials,
    PayExpenseIn,
    PaymentMethodIn,
    PurchaseIn,
    RecurringBillIn,
    SignupData,
    StatusIn,
    TransferIn,
    WalletIn,
)
from services import CollectionStore, ServiceContainer, active_wallets

logger = logging.getLogger(__name__)

app = FastAPI(title="Mad Wallet")


@lru_cache(maxsize=1)
def get_services() -> ServiceContainer:
    return ServiceContainer()


cache_warmer: Optional[CacheWarmer] = None


@app.on_event("startup")
async def startup_event():
    global cache_warmer
    services = get_services()
    services.http.on_unauthorized = lambda: logger.warning("Session cleared; login required")
    cache_warmer = CacheWarmer(services)
    cache_warmer.start()


@app.on_event("shutdown")
async def shutdown_event():
    if cache_warmer is not None:
        cache_warmer.stop()
    await get_services().aclose()


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError):
    return JSONResponse(status_code=401, content={"detail": str(exc), "redirect": "/login"})


def outcome(result: MutationResult):
    if result.ok:
        return result.value
    raise HTTPException(status_code=400 if result.rejected else 502, detail=result.error)


async def list_store(store: CollectionStore, refresh: bool) -> list:
    await store.fetch(force_refresh=refresh)
    if isinstance(store.error, UnauthorizedError):
        raise store.error
    if store.error is not None and store.cache.data is None:
        raise HTTPException(status_code=502, detail=f"Failed to Fetch {store.label}")
    return store.items


@app.post("/auth/login")
async def login(data: LoginCredentials, services: ServiceContainer = Depends(get_services)):
    try:
        user = await services.auth.login(data)
    except ApiError as exc:
        raise HTTPException(
            status_code=exc.status_code or 502, detail=exc.server_message or str(exc)
        ) from exc
    return {"user": user}


@app.post("/auth/signup")
async def signup(data: SignupData, services: ServiceContainer = Depends(get_services)):
    try:
        user = await services.auth.signup(data)
    except ApiError as exc:
        raise HTTPException(
            status_code=exc.status_code or 502, detail=exc.server_message or str(exc)
        ) from exc
    return {"user": user}


@app.post("/auth/logout")
def logout(services: ServiceContainer = Depends(get_services)):
    services.logout()
    return {"ok": True}


@app.get("/auth/me")
def me(services: ServiceContainer = Depends(get_services)):
    if not services.tokens.is_authenticated:
        raise HTTPException(status_code=401, detail="Not logged in")
    return {"user": services.tokens.user}


@app.get("/dashboard")
async def dashboard(services: ServiceContainer = Depends(get_services)):
    view = await services.dashboard_view()
    balance = view.summary.total_balance_cents if view.summary else 0
    currency = services.settings.currency
    return {
        "today": format_date(local_today(local_zone(services.settings))),
        "summary": view.summary,
        "totalBalance": format_currency(balance, currency),
        "overdue": view.urgency.overdue,
        "overdueTotal": view.urgency.overdue_total,
        "overdueTotalDisplay": format_currency(view.urgency.overdue_total, currency),
        "upcoming": view.upcoming,
        "categoryTotals": view.category_totals,
        "recentTransactions": view.recent_transactions,
    }


@app.get("/pending-debts")
async def pending_debts(services: ServiceContainer = Depends(get_services)):
    await services.expenses.fetch()
    tz = local_zone(services.settings)
    return group_expenses_by_urgency(services.expenses.items, tz=tz)


@app.get("/expenses")
async def api_expenses(
    timeline: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    refresh: bool = False,
    services: ServiceContainer = Depends(get_services),
):
    tz = local_zone(services.settings)
    try:
        period = resolve_timeline(timeline, start, end, today=local_today(tz))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    items = await list_store(services.expenses, refresh)
    return filter_by_period(items, period, tz=tz)


@app.get("/expenses/by-month")
async def expenses_by_month(services: ServiceContainer = Depends(get_services)):
    items = await list_store(services.expenses, False)
    return group_expenses_by_month(items, tz=local_zone(services.settings))


@app.post("/expenses")
async def create_expense(data: ExpenseIn, services: ServiceContainer = Depends(get_services)):
    await services.categories.fetch()
    await services.statuses.fetch()
    return outcome(await services.expense_service.create(data))


@app.put("/expenses/{expense_id}")
async def update_expense(
    expense_id: int, data: ExpenseIn, services: ServiceContainer = Depends(get_services)
):
    await services.categories.fetch()
    await services.statuses.fetch()
    return outcome(await services.expense_service.update(expense_id, data))


@app.delete("/expenses/{expense_id}")
async def delete_expense(expense_id: int, services: ServiceContainer = Depends(get_services)):
    return {"id": outcome(await services.expense_service.delete(expense_id))}


@app.post("/expenses/{expense_id}/pay")
async def pay_expense(
    expense_id: int, data: PayExpenseIn, services: ServiceContainer = Depends(get_services)
):
    await asyncio.gather(services.expenses.fetch(), services.wallets.fetch())
    return {"id": outcome(await services.expense_service.pay(expense_id, data.wallet_id))}


@app.get("/wallets")
async def api_wallets(
    active_only: bool = False,
    refresh: bool = False,
    services: ServiceContainer = Depends(get_services),
):
    items = await list_store(services.wallets, refresh)
    return active_wallets(items) if active_only else items


@app.post("/wallets")
async def create_wallet(data: WalletIn, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.wallet_service.create(data))


@app.put("/wallets/{wallet_id}")
async def update_wallet(
    wallet_id: int, data: WalletIn, services: ServiceContainer = Depends(get_services)
):
    await services.wallets.fetch()
    return outcome(await services.wallet_service.update(wallet_id, data))


@app.delete("/wallets/{wallet_id}")
async def delete_wallet(wallet_id: int, services: ServiceContainer = Depends(get_services)):
    await services.wallets.fetch()
    return {"id": outcome(await services.wallet_service.delete(wallet_id))}


@app.get("/wallet-transactions")
async def api_wallet_transactions(
    refresh: bool = False, services: ServiceContainer = Depends(get_services)
):
    return await list_store(services.transactions, refresh)


@app.post("/wallet-transactions/income")
async def record_income(data: IncomeIn, services: ServiceContainer = Depends(get_services)):
    await services.wallets.fetch()
    return outcome(await services.transaction_service.record_income(data))


@app.post("/wallet-transactions/transfer")
async def transfer(data: TransferIn, services: ServiceContainer = Depends(get_services)):
    if data.from_wallet_id != data.to_wallet_id:
        await services.wallets.fetch()
    return outcome(await services.transaction_service.transfer(data))


@app.get("/categories")
async def api_categories(refresh: bool = False, services: ServiceContainer = Depends(get_services)):
    return await list_store(services.categories, refresh)


@app.post("/categories")
async def create_category(data: CategoryIn, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.category_service.create(data))


@app.put("/categories/{category_id}")
async def update_category(
    category_id: int, data: CategoryIn, services: ServiceContainer = Depends(get_services)
):
    return outcome(await services.category_service.update(category_id, data))


@app.delete("/categories/{category_id}")
async def delete_category(category_id: int, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.category_service.delete(category_id))


@app.get("/statuses")
async def api_statuses(refresh: bool = False, services: ServiceContainer = Depends(get_services)):
    return await list_store(services.statuses, refresh)


@app.post("/statuses")
async def create_status(data: StatusIn, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.status_service.create(data))


@app.put("/statuses/{status_id}")
async def update_status(
    status_id: int, data: StatusIn, services: ServiceContainer = Depends(get_services)
):
    return outcome(await services.status_service.update(status_id, data))


@app.delete("/statuses/{status_id}")
async def delete_status(status_id: int, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.status_service.delete(status_id))


@app.get("/payment-methods")
async def api_payment_methods(
    refresh: bool = False, services: ServiceContainer = Depends(get_services)
):
    return await list_store(services.payment_methods, refresh)


@app.get("/payment-methods/{payment_method_id}/details")
async def payment_method_details(
    payment_method_id: int,
    filter: Optional[str] = None,
    services: ServiceContainer = Depends(get_services),
):
    if filter and filter not in EXPENSE_FILTERS:
        raise HTTPException(status_code=400, detail=f"Unknown expense filter: {filter}")
    details = await services.payment_method_service.details(payment_method_id)
    if details is None:
        raise HTTPException(status_code=502, detail="Failed to load payment method details")
    summary, expenses = details
    tz = local_zone(services.settings)
    filtered = filter_payment_method_expenses(expenses, filter, tz=tz)
    return {
        "summary": summary,
        "localSummary": summarize_payment_method(expenses, tz=tz),
        "filter": filter,
        "months": group_expenses_by_month(filtered, tz=tz),
    }


@app.post("/payment-methods")
async def create_payment_method(
    data: PaymentMethodIn, services: ServiceContainer = Depends(get_services)
):
    return outcome(await services.payment_method_service.create(data))


@app.put("/payment-methods/{payment_method_id}")
async def update_payment_method(
    payment_method_id: int,
    data: PaymentMethodIn,
    services: ServiceContainer = Depends(get_services),
):
    return outcome(await services.payment_method_service.update(payment_method_id, data))


@app.delete("/payment-methods/{payment_method_id}")
async def delete_payment_method(
    payment_method_id: int, services: ServiceContainer = Depends(get_services)
):
    return outcome(await services.payment_method_service.delete(payment_method_id))


@app.get("/purchases")
async def api_purchases(refresh: bool = False, services: ServiceContainer = Depends(get_services)):
    return await list_store(services.purchases, refresh)


@app.post("/purchases")
async def create_purchase(data: PurchaseIn, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.purchase_service.create(data))


@app.put("/purchases/{purchase_id}")
async def update_purchase(
    purchase_id: int, data: PurchaseIn, services: ServiceContainer = Depends(get_services)
):
    return outcome(await services.purchase_service.update(purchase_id, data))


@app.delete("/purchases/{purchase_id}")
async def delete_purchase(purchase_id: int, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.purchase_service.delete(purchase_id))


@app.get("/recurring-bills")
async def api_recurring_bills(
    refresh: bool = False, services: ServiceContainer = Depends(get_services)
):
    return await list_store(services.recurring_bills, refresh)


@app.post("/recurring-bills")
async def create_recurring_bill(
    data: RecurringBillIn, services: ServiceContainer = Depends(get_services)
):
    return outcome(await services.recurring_bill_service.create(data))


@app.put("/recurring-bills/{bill_id}")
async def update_recurring_bill(
    bill_id: int, data: RecurringBillIn, services: ServiceContainer = Depends(get_services)
):
    return outcome(await services.recurring_bill_service.update(bill_id, data))


@app.delete("/recurring-bills/{bill_id}")
async def delete_recurring_bill(bill_id: int, services: ServiceContainer = Depends(get_services)):
    return outcome(await services.recurring_bill_service.delete(bill_id))


@app.patch("/recurring-bills/{bill_id}/toggle-active")
async def toggle_recurring_bill(bill_id: int, services: ServiceContainer = Depends(get_services)):
    await services.recurring_bills.fetch()
    return {"id": outcome(await services.recurring_bill_service.toggle_active(bill_id))}


@app.post("/recurring-bills/{bill_id}/generate")
async def generate_recurring_expense(
    bill_id: int, services: ServiceContainer = Depends(get_services)
):
    return {"id": outcome(await services.recurring_bill_service.generate_expense(bill_id))}


@app.get("/notifications")
def notifications(services: ServiceContainer = Depends(get_services)):
    return [
        {"level": n.level, "message": n.message, "createdAt": n.created_at.isoformat()}
        for n in services.notifier.drain()
    ]


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
