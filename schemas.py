from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import Field, model_validator

from models import (
    DEFAULT_CATEGORY_COLOR,
    ApiModel,
    Expense,
    PurchaseFrequency,
    PurchaseStatus,
    RecurringBillFrequency,
    WalletType,
)
from money import parse_amount


class LoginCredentials(ApiModel):
    email: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=1)


class SignupData(LoginCredentials):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, max_length=9)


class StatusIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class PaymentMethodIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    statement_date: Optional[int] = Field(default=None, ge=1, le=31)
    payment_due_date: Optional[int] = Field(default=None, ge=1, le=31)


class ExpenseIn(ApiModel):
    """Expense form; ``amount`` is the decimal the user typed."""

    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0)
    category_id: int = Field(..., gt=0)
    status_id: int = Field(..., gt=0)
    payment_method_id: Optional[int] = Field(default=None, gt=0)
    date: date
    due_date: Optional[date] = None

    @property
    def amount_cents(self) -> int:
        return parse_amount(self.amount)

    def to_wire(self) -> dict:
        # The expenses endpoints take the cent count under "amount".
        payload = {
            "description": self.description,
            "amount": self.amount_cents,
            "categoryId": self.category_id,
            "statusId": self.status_id,
            "date": self.date.isoformat(),
        }
        if self.payment_method_id is not None:
            payload["paymentMethodId"] = self.payment_method_id
        if self.due_date is not None:
            payload["dueDate"] = self.due_date.isoformat()
        return payload


class PayExpenseIn(ApiModel):
    wallet_id: Optional[int] = None


class WalletIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    type: WalletType
    balance: Decimal = Field(default=Decimal("0"), ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    is_active: Optional[bool] = None

    def to_create_wire(self, default_currency: str) -> dict:
        payload = {
            "name": self.name,
            "type": self.type.value,
            "balanceCents": parse_amount(self.balance),
            "currency": (self.currency or default_currency).upper(),
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload

    def to_update_wire(self) -> dict:
        payload: dict[str, object] = {"name": self.name, "type": self.type.value}
        if self.description is not None:
            payload["description"] = self.description
        if self.is_active is not None:
            payload["isActive"] = self.is_active
        return payload


class IncomeIn(ApiModel):
    description: str = Field(..., min_length=2, max_length=500)
    amount_cents: int = Field(..., gt=0)
    date: date
    wallet_id: int = Field(..., gt=0)


class TransferIn(ApiModel):
    description: str = Field(..., min_length=2, max_length=500)
    amount_cents: int = Field(..., gt=0)
    date: date
    from_wallet_id: int = Field(..., gt=0)
    to_wallet_id: int = Field(..., gt=0)


class PurchaseIn(ApiModel):
    description: str = Field(..., min_length=1, max_length=500)
    total_amount: Decimal = Field(..., ge=0)
    installment_count: int = Field(default=1, ge=1)
    frequency: PurchaseFrequency = PurchaseFrequency.once
    start_date: date
    status: PurchaseStatus = PurchaseStatus.active
    category_id: int = Field(..., gt=0)
    status_id: int = Field(..., gt=0)
    payment_method_id: Optional[int] = Field(default=None, gt=0)
    has_paid_installments: bool = False
    paid_installments: Optional[int] = Field(default=None, ge=0)
    paid_installments_status_id: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_installments(self) -> "PurchaseIn":
        if self.frequency == PurchaseFrequency.once and self.installment_count != 1:
            raise ValueError('Installment count must be 1 when frequency is "once"')
        if self.has_paid_installments:
            if self.paid_installments is None:
                raise ValueError(
                    "Paid installments is required when tracking previous payments"
                )
            if self.paid_installments > self.installment_count:
                raise ValueError(
                    f"Paid installments ({self.paid_installments}) cannot exceed "
                    f"total installments ({self.installment_count})"
                )
            if not self.paid_installments_status_id:
                raise ValueError(
                    "Status for paid installments is required when tracking previous payments"
                )
        return self

    def to_wire(self) -> dict:
        payload: dict[str, object] = {
            "description": self.description,
            "totalAmount": parse_amount(self.total_amount),
            "installmentCount": self.installment_count,
            "frequency": self.frequency.value,
            "startDate": self.start_date.isoformat(),
            "status": self.status.value,
            "categoryId": self.category_id,
            "statusId": self.status_id,
        }
        if self.payment_method_id is not None:
            payload["paymentMethodId"] = self.payment_method_id
        if self.has_paid_installments:
            payload["paidInstallments"] = self.paid_installments
            payload["paidInstallmentsStatusId"] = self.paid_installments_status_id
        return payload


class RecurringBillIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    amount: Decimal = Field(..., ge=0)
    frequency: RecurringBillFrequency = RecurringBillFrequency.monthly
    day_of_month: int = Field(..., ge=1, le=31)
    category_id: int = Field(..., gt=0)
    status_id: int = Field(..., gt=0)
    payment_method_id: Optional[int] = Field(default=None, gt=0)
    start_date: date

    def to_wire(self) -> dict:
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload.pop("amount")
        payload["amountCents"] = parse_amount(self.amount)
        return payload


class CategoryTotal(ApiModel):
    category_id: int
    category_name: str
    color: str
    total_cents: int
    count: int
    # share of the input set, rounded per category; the shares may not sum to 100
    percentage: int = 0


class UrgencyGroup(ApiModel):
    overdue: list[Expense] = Field(default_factory=list)
    due_today: list[Expense] = Field(default_factory=list)
    upcoming: list[Expense] = Field(default_factory=list)
    overdue_total: int = 0
    due_today_total: int = 0
    upcoming_total: int = 0


class MonthGroup(ApiModel):
    month: str
    year: int
    month_number: int  # 0-11
    expenses: list[Expense] = Field(default_factory=list)
    total_paid_cents: int = 0
    total_unpaid_cents: int = 0
    paid_count: int = 0
    unpaid_count: int = 0
