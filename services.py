from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Callable, Generic, Optional, TypeVar

from auth import TokenStore
from cache import TimedCache
from config import Settings, get_settings
from http_service import ApiError, HttpService, unwrap
from insights import (
    current_month_category_totals,
    filter_upcoming_expenses,
    group_expenses_by_urgency,
)
from models import (
    AuthResponse,
    Category,
    DashboardSummary,
    Entity,
    Expense,
    IncomeResult,
    PaymentMethod,
    PaymentMethodSummary,
    Purchase,
    RecurringBill,
    Status,
    TransferResult,
    User,
    Wallet,
    WalletTransaction,
    WalletTransactionType,
)
from notifications import Notifier
from optimistic import (
    MutationResult,
    OptimisticMutation,
    Pending,
    confirm,
    entity_ref,
    next_placeholder_id,
    prepend,
    remove_by_id,
    replace_by_id,
    replace_many,
)
from periods import local_zone
from schemas import (
    CategoryTotal,
    ExpenseIn,
    IncomeIn,
    LoginCredentials,
    SignupData,
    TransferIn,
    UrgencyGroup,
    WalletIn,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

RECENT_TRANSACTIONS_LIMIT = 5
UPCOMING_DAYS = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _failure_message(exc: Exception, default: str) -> str:
    if isinstance(exc, ApiError) and exc.server_message:
        return exc.server_message
    return default


def _still_saving(entity_id: int) -> bool:
    # placeholders exist only locally until their create is confirmed
    return isinstance(entity_ref(entity_id), Pending)


class CollectionStore(Generic[E]):
    """The single cached copy of one backend collection."""

    def __init__(
        self,
        http: HttpService,
        url: str,
        model: type[E],
        *,
        label: str,
        cache_minutes: float = 10,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.http = http
        self.url = url
        self.model = model
        self.label = label
        kwargs = {"clock": clock} if clock is not None else {}
        self.cache: TimedCache[list[E]] = TimedCache(
            self._load, cache_minutes, label=label, **kwargs
        )

    async def _load(self) -> list[E]:
        payload = unwrap(await self.http.get(self.url, label=self.label))
        return [self.model.model_validate(item) for item in payload or []]

    @property
    def items(self) -> list[E]:
        return list(self.cache.data or [])

    @property
    def loading(self) -> bool:
        return self.cache.loading

    @property
    def error(self) -> Optional[Exception]:
        return self.cache.error

    def get(self, entity_id: int) -> Optional[E]:
        return next((item for item in self.items if item.id == entity_id), None)

    async def fetch(self, force_refresh: bool = False) -> None:
        await self.cache.fetch(force_refresh)

    async def refresh(self, force_refresh: bool = True) -> None:
        await self.cache.fetch(force_refresh)


class DashboardStore:
    def __init__(
        self,
        http: HttpService,
        *,
        cache_minutes: float = 10,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.http = http
        kwargs = {"clock": clock} if clock is not None else {}
        self.cache: TimedCache[DashboardSummary] = TimedCache(
            self._load, cache_minutes, label="dashboard summary", **kwargs
        )

    async def _load(self) -> DashboardSummary:
        payload = unwrap(await self.http.get("/dashboard/summary", label="dashboard summary"))
        return DashboardSummary.model_validate(payload or {})

    @property
    def summary(self) -> Optional[DashboardSummary]:
        return self.cache.data

    async def fetch(self, force_refresh: bool = False) -> None:
        await self.cache.fetch(force_refresh)

    async def refresh(self, force_refresh: bool = True) -> None:
        await self.cache.fetch(force_refresh)


class ExpenseService:
    def __init__(
        self,
        http: HttpService,
        notifier: Notifier,
        expenses: CollectionStore[Expense],
        categories: CollectionStore[Category],
        statuses: CollectionStore[Status],
        payment_methods: CollectionStore[PaymentMethod],
        wallets: CollectionStore[Wallet],
        dashboard: DashboardStore,
    ) -> None:
        self.http = http
        self.notifier = notifier
        self.expenses = expenses
        self.categories = categories
        self.statuses = statuses
        self.payment_methods = payment_methods
        self.wallets = wallets
        self.dashboard = dashboard

    def _reject(self, message: str) -> MutationResult:
        self.notifier.error(message)
        return MutationResult.failed(message, rejected=True)

    def _resolve_refs(
        self, data: ExpenseIn
    ) -> tuple[Optional[Category], Optional[Status], Optional[PaymentMethod]]:
        category = self.categories.get(data.category_id)
        status = self.statuses.get(data.status_id)
        payment_method = (
            self.payment_methods.get(data.payment_method_id)
            if data.payment_method_id
            else None
        )
        return category, status, payment_method

    async def _send(self, method: str, url: str, data: ExpenseIn) -> Expense:
        payload = await self.http.request(method, url, json=data.to_wire(), label="expense")
        return Expense.model_validate(unwrap(payload))

    async def create(
        self, data: ExpenseIn, *, on_applied: Optional[Callable[[], None]] = None
    ) -> MutationResult[Expense]:
        category, status, payment_method = self._resolve_refs(data)
        if category is None:
            return self._reject("Invalid category selected")
        if status is None:
            return self._reject("Invalid status selected")

        now = _now()
        optimistic = Expense(
            id=next_placeholder_id(),
            description=data.description,
            amount_cents=data.amount_cents,
            category_id=category.id,
            category=category,
            status_id=status.id,
            status=status,
            payment_method_id=data.payment_method_id,
            payment_method=payment_method,
            date=_day_start(data.date),
            due_date=_day_start(data.due_date) if data.due_date else None,
            created_at=now,
            updated_at=now,
        )
        cache = self.expenses.cache

        result = await OptimisticMutation(
            label="create expense",
            caches=[cache],
            apply=lambda: cache.update(lambda items: prepend(items, optimistic)),
            remote=lambda: self._send("POST", "/expenses", data),
            reconcile=lambda created: cache.update(
                lambda items: confirm(items, {optimistic.id: created})
            ),
            notifier=self.notifier,
            success_message="Expense created successfully!",
            on_applied=on_applied,
        ).run()
        if result.ok:
            await self.dashboard.refresh()
        return result

    async def update(
        self,
        expense_id: int,
        data: ExpenseIn,
        *,
        on_applied: Optional[Callable[[], None]] = None,
    ) -> MutationResult[Expense]:
        if _still_saving(expense_id):
            return self._reject("Expense is still being saved")
        existing = self.expenses.get(expense_id)
        if existing is None:
            return self._reject("Expense not found")
        category, status, payment_method = self._resolve_refs(data)
        if category is None:
            return self._reject("Invalid category selected")
        if status is None:
            return self._reject("Invalid status selected")

        updated = existing.model_copy(
            update={
                "description": data.description,
                "amount_cents": data.amount_cents,
                "category_id": category.id,
                "category": category,
                "status_id": status.id,
                "status": status,
                "payment_method_id": data.payment_method_id,
                "payment_method": payment_method,
                "date": _day_start(data.date),
                "due_date": _day_start(data.due_date) if data.due_date else existing.due_date,
                "updated_at": _now(),
            }
        )
        cache = self.expenses.cache

        result = await OptimisticMutation(
            label="update expense",
            caches=[cache],
            apply=lambda: cache.update(lambda items: replace_by_id(items, expense_id, updated)),
            remote=lambda: self._send("PUT", f"/expenses/{expense_id}", data),
            reconcile=lambda saved: cache.update(
                lambda items: replace_by_id(items, expense_id, saved)
            ),
            notifier=self.notifier,
            success_message="Expense updated successfully!",
            on_applied=on_applied,
        ).run()
        if result.ok:
            await self.dashboard.refresh()
        return result

    async def delete(self, expense_id: int) -> MutationResult[int]:
        if _still_saving(expense_id):
            return self._reject("Expense is still being saved")
        try:
            await self.http.delete(f"/expenses/{expense_id}", label="expense")
        except ApiError as exc:
            message = _failure_message(exc, "Failed to delete expense")
            self.notifier.error(message, exc)
            return MutationResult.failed(message)

        self.expenses.cache.update(lambda items: remove_by_id(items, expense_id))
        self.notifier.success("Expense deleted successfully!")
        await self.dashboard.refresh()
        return MutationResult.succeeded(expense_id)

    async def pay(self, expense_id: int, wallet_id: Optional[int]) -> MutationResult[int]:
        if not wallet_id:
            return self._reject("Please select a wallet")
        if _still_saving(expense_id):
            return self._reject("Expense is still being saved")
        expense = self.expenses.get(expense_id)
        if expense is None:
            return self._reject("Expense not found")
        wallet = self.wallets.get(wallet_id)
        if wallet is None:
            return self._reject("Wallet not found")
        if not has_sufficient_balance(wallet, expense):
            return self._reject("Selected wallet has insufficient balance")
        try:
            await self.http.post(
                f"/expenses/{expense_id}/pay", {"walletId": wallet_id}, label="payment"
            )
        except ApiError as exc:
            message = _failure_message(exc, "Failed to pay expense")
            self.notifier.error(message, exc)
            return MutationResult.failed(message)

        self.notifier.success("Expense paid successfully!")
        await asyncio.gather(
            self.expenses.refresh(), self.wallets.refresh(), self.dashboard.refresh()
        )
        return MutationResult.succeeded(expense_id)


def active_wallets(wallets: list[Wallet]) -> list[Wallet]:
    return [w for w in wallets if w.is_active and not w.is_deleted]


def has_sufficient_balance(wallet: Optional[Wallet], expense: Expense) -> bool:
    return wallet is not None and wallet.balance_cents >= expense.amount_cents


class WalletService:
    def __init__(
        self,
        http: HttpService,
        notifier: Notifier,
        wallets: CollectionStore[Wallet],
        dashboard: DashboardStore,
        settings: Optional[Settings] = None,
    ) -> None:
        self.http = http
        self.notifier = notifier
        self.wallets = wallets
        self.dashboard = dashboard
        self.settings = settings or get_settings()

    def _reject(self, message: str) -> MutationResult:
        self.notifier.error(message)
        return MutationResult.failed(message, rejected=True)

    def active(self) -> list[Wallet]:
        return active_wallets(self.wallets.items)

    async def _send(self, method: str, url: str, payload: dict) -> Wallet:
        body = await self.http.request(method, url, json=payload, label="wallet")
        return Wallet.model_validate(unwrap(body))

    async def create(
        self, data: WalletIn, *, on_applied: Optional[Callable[[], None]] = None
    ) -> MutationResult[Wallet]:
        payload = data.to_create_wire(self.settings.currency)
        now = _now()
        optimistic = Wallet(
            id=next_placeholder_id(),
            name=data.name,
            description=data.description,
            type=data.type,
            balance_cents=payload["balanceCents"],
            currency=payload["currency"],
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        cache = self.wallets.cache

        result = await OptimisticMutation(
            label="create wallet",
            caches=[cache],
            apply=lambda: cache.update(lambda items: prepend(items, optimistic)),
            remote=lambda: self._send("POST", "/wallets", payload),
            reconcile=lambda created: cache.update(
                lambda items: confirm(items, {optimistic.id: created})
            ),
            notifier=self.notifier,
            success_message="Wallet created successfully!",
            on_applied=on_applied,
        ).run()
        if result.ok:
            await self.dashboard.refresh()
        return result

    async def update(
        self,
        wallet_id: int,
        data: WalletIn,
        *,
        on_applied: Optional[Callable[[], None]] = None,
    ) -> MutationResult[Wallet]:
        if _still_saving(wallet_id):
            return self._reject("Wallet is still being saved")
        existing = self.wallets.get(wallet_id)
        if existing is None:
            return self._reject("Wallet not found")

        changes: dict[str, object] = {
            "name": data.name,
            "description": data.description,
            "type": data.type,
            "updated_at": _now(),
        }
        if data.is_active is not None:
            changes["is_active"] = data.is_active
        updated = existing.model_copy(update=changes)
        cache = self.wallets.cache

        result = await OptimisticMutation(
            label="update wallet",
            caches=[cache],
            apply=lambda: cache.update(lambda items: replace_by_id(items, wallet_id, updated)),
            remote=lambda: self._send("PUT", f"/wallets/{wallet_id}", data.to_update_wire()),
            reconcile=lambda saved: cache.update(
                lambda items: replace_by_id(items, wallet_id, saved)
            ),
            notifier=self.notifier,
            success_message="Wallet updated successfully!",
            on_applied=on_applied,
        ).run()
        if result.ok:
            await self.dashboard.refresh()
        return result

    async def delete(self, wallet_id: int) -> MutationResult[int]:
        if _still_saving(wallet_id):
            return self._reject("Wallet is still being saved")
        if self.wallets.get(wallet_id) is None:
            return self._reject("Wallet not found")
        cache = self.wallets.cache

        async def remote() -> int:
            await self.http.delete(f"/wallets/{wallet_id}", label="wallet")
            return wallet_id

        result = await OptimisticMutation(
            label="delete wallet",
            caches=[cache],
            apply=lambda: cache.update(lambda items: remove_by_id(items, wallet_id)),
            remote=remote,
            reconcile=lambda deleted: None,
            notifier=self.notifier,
            success_message="Wallet deleted successfully!",
            error_message="Failed to delete wallet",
        ).run()
        if result.ok:
            await self.dashboard.refresh()
        return result


class WalletTransactionService:
    def __init__(
        self,
        http: HttpService,
        notifier: Notifier,
        transactions: CollectionStore[WalletTransaction],
        wallets: CollectionStore[Wallet],
        dashboard: DashboardStore,
    ) -> None:
        self.http = http
        self.notifier = notifier
        self.transactions = transactions
        self.wallets = wallets
        self.dashboard = dashboard

    def _reject(self, message: str) -> MutationResult:
        self.notifier.error(message)
        return MutationResult.failed(message, rejected=True)

    def recent(self, limit: int = RECENT_TRANSACTIONS_LIMIT) -> list[WalletTransaction]:
        return self.transactions.items[:limit]

    async def record_income(
        self, data: IncomeIn, *, on_applied: Optional[Callable[[], None]] = None
    ) -> MutationResult[IncomeResult]:
        wallet = self.wallets.get(data.wallet_id)
        if wallet is None:
            return self._reject("Wallet not found")

        new_balance = wallet.balance_cents + data.amount_cents
        placeholder = WalletTransaction(
            id=next_placeholder_id(),
            description=data.description,
            amount_cents=data.amount_cents,
            type=WalletTransactionType.income,
            date=_day_start(data.date),
            wallet_id=wallet.id,
            balance_after_cents=new_balance,
            created_at=_now(),
        )
        tentative_wallet = wallet.model_copy(update={"balance_cents": new_balance})

        def apply() -> None:
            self.transactions.cache.update(lambda items: prepend(items, placeholder))
            self.wallets.cache.update(
                lambda items: replace_by_id(items, wallet.id, tentative_wallet)
            )

        async def remote() -> IncomeResult:
            body = await self.http.post(
                "/wallet-transactions/income", data.to_wire(), label="income transaction"
            )
            return IncomeResult.model_validate(unwrap(body))

        def reconcile(result: IncomeResult) -> None:
            self.transactions.cache.update(
                lambda items: confirm(items, {placeholder.id: result.transaction})
            )
            self.wallets.cache.update(
                lambda items: replace_by_id(items, result.wallet.id, result.wallet)
            )

        outcome = await OptimisticMutation(
            label="add income transaction",
            caches=[self.transactions.cache, self.wallets.cache],
            apply=apply,
            remote=remote,
            reconcile=reconcile,
            notifier=self.notifier,
            success_message="Income transaction added successfully!",
            on_applied=on_applied,
        ).run()
        if outcome.ok:
            await self.dashboard.refresh()
        return outcome

    async def transfer(
        self, data: TransferIn, *, on_applied: Optional[Callable[[], None]] = None
    ) -> MutationResult[TransferResult]:
        if data.from_wallet_id == data.to_wallet_id:
            return self._reject("Cannot transfer to the same wallet")
        source = self.wallets.get(data.from_wallet_id)
        target = self.wallets.get(data.to_wallet_id)
        if source is None or target is None:
            return self._reject("Wallet not found")

        amount = data.amount_cents
        source_balance = source.balance_cents - amount
        target_balance = target.balance_cents + amount
        outgoing = WalletTransaction(
            id=next_placeholder_id(),
            description=data.description,
            amount_cents=amount,
            type=WalletTransactionType.transfer_out,
            date=_day_start(data.date),
            wallet_id=source.id,
            transfer_wallet_id=target.id,
            balance_after_cents=source_balance,
            created_at=_now(),
        )
        incoming = WalletTransaction(
            id=next_placeholder_id(),
            description=data.description,
            amount_cents=amount,
            type=WalletTransactionType.transfer_in,
            date=_day_start(data.date),
            wallet_id=target.id,
            transfer_wallet_id=source.id,
            balance_after_cents=target_balance,
            created_at=_now(),
        )
        tentative_wallets = {
            source.id: source.model_copy(update={"balance_cents": source_balance}),
            target.id: target.model_copy(update={"balance_cents": target_balance}),
        }

        def apply() -> None:
            self.transactions.cache.update(
                lambda items: [outgoing, incoming, *(items or [])]
            )
            self.wallets.cache.update(lambda items: replace_many(items, tentative_wallets))

        async def remote() -> TransferResult:
            body = await self.http.post(
                "/wallet-transactions/transfer", data.to_wire(), label="transfer"
            )
            result = TransferResult.model_validate(unwrap(body))
            if len(result.transactions) != 2:
                raise ApiError("Unexpected transfer response")
            return result

        def reconcile(result: TransferResult) -> None:
            by_type = {txn.type: txn for txn in result.transactions}
            confirmed = {
                outgoing.id: by_type.get(
                    WalletTransactionType.transfer_out, result.transactions[0]
                ),
                incoming.id: by_type.get(
                    WalletTransactionType.transfer_in, result.transactions[1]
                ),
            }
            self.transactions.cache.update(lambda items: confirm(items, confirmed))
            self.wallets.cache.update(
                lambda items: replace_many(items, {w.id: w for w in result.wallets})
            )

        outcome = await OptimisticMutation(
            label="complete transfer",
            caches=[self.transactions.cache, self.wallets.cache],
            apply=apply,
            remote=remote,
            reconcile=reconcile,
            notifier=self.notifier,
            success_message="Transfer completed successfully!",
            on_applied=on_applied,
        ).run()
        if outcome.ok:
            await self.dashboard.refresh()
        return outcome


class CrudService(Generic[E]):
    """Create/update/delete for reference collections; the store is refreshed after each write."""

    def __init__(
        self,
        http: HttpService,
        notifier: Notifier,
        store: CollectionStore[E],
        *,
        url: str,
        label: str,
    ) -> None:
        self.http = http
        self.notifier = notifier
        self.store = store
        self.url = url
        self.label = label

    async def _write(
        self, action: str, method: str, url: str, payload: Optional[dict] = None
    ) -> MutationResult[Optional[E]]:
        try:
            body = await self.http.request(method, url, json=payload, label=self.label)
        except ApiError as exc:
            message = _failure_message(
                exc, f"Failed to {action} {self.label}. Please try again."
            )
            self.notifier.error(message, exc)
            return MutationResult.failed(message)

        data = unwrap(body)
        value = None
        if action != "delete" and isinstance(data, dict):
            value = self.store.model.model_validate(data)
        await self.store.refresh()
        self.notifier.success(f"{self.label.capitalize()} {action}d successfully!")
        return MutationResult.succeeded(value)

    async def create(self, data) -> MutationResult[Optional[E]]:
        return await self._write("create", "POST", self.url, data.to_wire())

    async def update(self, entity_id: int, data) -> MutationResult[Optional[E]]:
        return await self._write("update", "PUT", f"{self.url}/{entity_id}", data.to_wire())

    async def delete(self, entity_id: int) -> MutationResult[Optional[E]]:
        return await self._write("delete", "DELETE", f"{self.url}/{entity_id}")


class PaymentMethodService(CrudService[PaymentMethod]):
    async def details(
        self, payment_method_id: int
    ) -> Optional[tuple[PaymentMethodSummary, list[Expense]]]:
        try:
            summary_body, expenses_body = await asyncio.gather(
                self.http.get(f"{self.url}/{payment_method_id}/summary", label=self.label),
                self.http.get(f"{self.url}/{payment_method_id}/expenses", label="expenses"),
            )
        except ApiError as exc:
            logger.warning(
                f"payment_method_details_failed: id={payment_method_id} error={exc}"
            )
            self.notifier.error("Failed to load payment method details", exc)
            return None
        summary = PaymentMethodSummary.model_validate(unwrap(summary_body) or {})
        expenses = [Expense.model_validate(item) for item in unwrap(expenses_body) or []]
        return summary, expenses


class RecurringBillService(CrudService[RecurringBill]):
    def __init__(self, *args, expenses: CollectionStore[Expense], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.expenses = expenses

    async def toggle_active(self, bill_id: int) -> MutationResult[int]:
        bill = self.store.get(bill_id)
        verb = "pause" if bill is None or bill.is_active else "activate"
        try:
            await self.http.patch(f"{self.url}/{bill_id}/toggle-active", label=self.label)
        except ApiError as exc:
            message = f"Failed to {verb} bill"
            self.notifier.error(message, exc)
            return MutationResult.failed(message)
        await self.store.refresh()
        self.notifier.success(f"Bill {verb}d successfully!")
        return MutationResult.succeeded(bill_id)

    async def generate_expense(self, bill_id: int) -> MutationResult[int]:
        try:
            await self.http.post(f"{self.url}/{bill_id}/generate", label="expense")
        except ApiError as exc:
            message = _failure_message(exc, "Failed to generate expense")
            self.notifier.error(message, exc)
            return MutationResult.failed(message)
        await asyncio.gather(self.store.refresh(), self.expenses.refresh())
        self.notifier.success("Expense generated successfully!")
        return MutationResult.succeeded(bill_id)


class AuthService:
    def __init__(self, http: HttpService, tokens: TokenStore) -> None:
        self.http = http
        self.tokens = tokens

    async def _authenticate(self, url: str, payload: dict) -> User:
        body = await self.http.post(url, payload, label="session")
        response = AuthResponse.model_validate(unwrap(body))
        self.tokens.save(response.token, response.user)
        logger.info(f"auth_session_started: user_id={response.user.id}")
        return response.user

    async def login(self, credentials: LoginCredentials) -> User:
        return await self._authenticate("/auth/login", credentials.to_wire())

    async def signup(self, data: SignupData) -> User:
        return await self._authenticate("/auth/signup", data.to_wire())

    def logout(self) -> None:
        self.tokens.clear()


@dataclass
class DashboardView:
    summary: Optional[DashboardSummary]
    urgency: UrgencyGroup
    upcoming: list[Expense]
    category_totals: list[CategoryTotal]
    recent_transactions: list[WalletTransaction]


class ServiceContainer:
    """One store per entity type, built once at startup and passed to callers."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        tokens: Optional[TokenStore] = None,
        http: Optional[HttpService] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.tokens = tokens or TokenStore(self.settings.session_file)
        self.http = http or HttpService(self.tokens, self.settings)
        self.notifier = Notifier()
        minutes = self.settings.cache_minutes

        def store(url: str, model: type[E], label: str) -> CollectionStore[E]:
            return CollectionStore(
                self.http, url, model, label=label, cache_minutes=minutes, clock=clock
            )

        self.categories = store("/categories", Category, "categories")
        self.statuses = store("/statuses", Status, "statuses")
        self.payment_methods = store("/payment-methods", PaymentMethod, "payment methods")
        self.purchases = store("/purchases", Purchase, "purchases")
        self.recurring_bills = store("/recurring-bills", RecurringBill, "recurring bills")
        self.expenses = store("/expenses", Expense, "expenses")
        self.wallets = store("/wallets", Wallet, "wallets")
        self.transactions = store(
            "/wallet-transactions", WalletTransaction, "wallet transactions"
        )
        self.dashboard = DashboardStore(self.http, cache_minutes=minutes, clock=clock)

        self.auth = AuthService(self.http, self.tokens)
        self.expense_service = ExpenseService(
            self.http,
            self.notifier,
            self.expenses,
            self.categories,
            self.statuses,
            self.payment_methods,
            self.wallets,
            self.dashboard,
        )
        self.wallet_service = WalletService(
            self.http, self.notifier, self.wallets, self.dashboard, self.settings
        )
        self.transaction_service = WalletTransactionService(
            self.http, self.notifier, self.transactions, self.wallets, self.dashboard
        )
        self.category_service = CrudService(
            self.http, self.notifier, self.categories, url="/categories", label="category"
        )
        self.status_service = CrudService(
            self.http, self.notifier, self.statuses, url="/statuses", label="status"
        )
        self.payment_method_service = PaymentMethodService(
            self.http,
            self.notifier,
            self.payment_methods,
            url="/payment-methods",
            label="payment method",
        )
        self.purchase_service = CrudService(
            self.http, self.notifier, self.purchases, url="/purchases", label="purchase"
        )
        self.recurring_bill_service = RecurringBillService(
            self.http,
            self.notifier,
            self.recurring_bills,
            url="/recurring-bills",
            label="recurring bill",
            expenses=self.expenses,
        )

    @property
    def caches(self) -> list[TimedCache]:
        stores = [
            self.categories,
            self.statuses,
            self.payment_methods,
            self.purchases,
            self.recurring_bills,
            self.expenses,
            self.wallets,
            self.transactions,
        ]
        return [s.cache for s in stores] + [self.dashboard.cache]

    def logout(self) -> None:
        self.auth.logout()
        for cache in self.caches:
            cache.clear()

    async def dashboard_view(self, *, today: Optional[date] = None) -> DashboardView:
        await asyncio.gather(
            self.dashboard.fetch(), self.expenses.fetch(), self.transactions.fetch()
        )
        tz = local_zone(self.settings)
        expenses = self.expenses.items
        return DashboardView(
            summary=self.dashboard.summary,
            urgency=group_expenses_by_urgency(expenses, today=today, tz=tz),
            upcoming=filter_upcoming_expenses(expenses, UPCOMING_DAYS, today=today, tz=tz),
            category_totals=current_month_category_totals(expenses, today=today, tz=tz),
            recent_transactions=self.transaction_service.recent(),
        )

    async def aclose(self) -> None:
        await self.http.aclose()
