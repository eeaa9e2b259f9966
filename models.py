from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

# The backend has no paid flag; an expense is paid when its status is named "Paid".
PAID_STATUS_NAME = "Paid"

DEFAULT_CATEGORY_COLOR = "#90caf9"


class WalletTransactionType(str, Enum):
    income = "income"
    transfer_in = "transfer_in"
    transfer_out = "transfer_out"


class WalletType(str, Enum):
    bank_account = "bank_account"
    e_wallet = "e_wallet"
    cash = "cash"
    savings = "savings"


class RecurringBillFrequency(str, Enum):
    monthly = "monthly"
    quarterly = "quarterly"
    annual = "annual"


class PurchaseFrequency(str, Enum):
    once = "once"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class PurchaseStatus(str, Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class ApiModel(BaseModel):
    """Base for everything that crosses the REST boundary (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TimestampMixin(BaseModel):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Entity(ApiModel, TimestampMixin):
    id: int

    @property
    def is_pending(self) -> bool:
        # Server ids are positive; optimistic rows carry negative placeholders.
        return self.id < 0


class Category(Entity):
    name: str
    description: Optional[str] = None
    color: str = DEFAULT_CATEGORY_COLOR
    is_deleted: bool = False


class Status(Entity):
    name: str
    description: Optional[str] = None
    is_system: bool = False
    is_deleted: bool = False


class PaymentMethod(Entity):
    name: str
    type: str
    description: Optional[str] = None
    statement_date: Optional[int] = Field(default=None, ge=1, le=31)
    payment_due_date: Optional[int] = Field(default=None, ge=1, le=31)
    is_deleted: bool = False


class Purchase(Entity):
    description: str
    total_amount: int
    installment_count: int = 1
    frequency: PurchaseFrequency = PurchaseFrequency.once
    start_date: datetime
    end_date: Optional[datetime] = None
    status: PurchaseStatus = PurchaseStatus.active
    category_id: int
    category: Optional[Category] = None
    status_id: int
    default_status: Optional[Status] = None
    payment_method_id: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None


class Expense(Entity):
    description: str = ""
    amount_cents: int = Field(..., ge=0)
    category_id: int
    category: Optional[Category] = None
    status_id: Optional[int] = None
    status: Optional[Status] = None
    payment_method_id: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    date: datetime
    purchase_id: Optional[int] = None
    purchase: Optional[Purchase] = None
    installment_number: Optional[int] = None
    due_date: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.status is not None and self.status.name == PAID_STATUS_NAME

    @computed_field(alias="installmentLabel")
    @property
    def installment_label(self) -> Optional[str]:
        if self.purchase is None or not self.installment_number:
            return None
        return f"{self.installment_number}/{self.purchase.installment_count}"


class RecurringBill(Entity):
    user_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    amount_cents: int = Field(..., ge=0)
    frequency: RecurringBillFrequency = RecurringBillFrequency.monthly
    day_of_month: int = Field(..., ge=1, le=31)
    category_id: int
    category: Optional[Category] = None
    status_id: int
    status: Optional[Status] = None
    payment_method_id: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    start_date: datetime
    next_due_date: datetime
    last_generated: Optional[datetime] = None
    is_active: bool = True
    is_deleted: bool = False


class Wallet(Entity):
    user_id: Optional[int] = None
    name: str = ""
    description: Optional[str] = None
    type: WalletType = WalletType.cash
    balance_cents: int = 0
    currency: str = "PHP"
    is_active: bool = True
    is_deleted: bool = False


class WalletTransaction(Entity):
    user_id: Optional[int] = None
    description: str = ""
    amount_cents: int = Field(..., ge=0)
    type: WalletTransactionType
    date: Optional[datetime] = None
    wallet_id: int
    wallet: Optional[Wallet] = None
    transfer_wallet_id: Optional[int] = None
    balance_after_cents: int
    is_deleted: bool = False


class User(ApiModel):
    id: int
    name: str = ""
    email: str


class AuthResponse(ApiModel):
    user: User
    token: str


class DashboardSummary(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    total_balance_cents: int = 0
    total_unpaid_cents: int = 0


class PaymentMethodSummary(ApiModel):
    total_unpaid_cents: int = 0
    unpaid_count: int = 0
    due_this_month_cents: int = 0
    due_this_month_count: int = 0
    overdue_cents: int = 0
    overdue_count: int = 0
    total_paid_cents: int = 0
    paid_count: int = 0


class IncomeResult(ApiModel):
    transaction: WalletTransaction
    wallet: Wallet


class TransferResult(ApiModel):
    transactions: list[WalletTransaction]
    wallets: list[Wallet]
