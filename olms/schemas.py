from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from .models import OrderStatus, Role


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=100)
    role: Role


class UserRead(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuthUser(BaseModel):
    """Identity attached to an authenticated request."""

    id: str
    name: str
    email: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


class LoginResult(BaseModel):
    user: AuthUser
    token: str


class PasswordUpdate(BaseModel):
    userId: str
    newPassword: str = Field(..., min_length=6)


class OrderCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    status: OrderStatus
    customer_name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=Decimal("0"))
    details: Optional[Any] = None

    @field_validator("amount")
    def positive(cls, v: Decimal):
        if v <= 0:
            raise ValueError("amount must be positive")
        # Do not quantize here; business logic will round using HALF_UP
        return v


class OrderRead(BaseModel):
    id: str
    user_id: str
    status: OrderStatus
    customer_name: str
    amount: Decimal
    details: Optional[str] = None
    suggestion: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusUpdate(BaseModel):
    id: str
    status: OrderStatus
    description: Optional[str] = Field(default=None, max_length=500)


class SuggestionCreate(BaseModel):
    id: str
    suggestion: str = Field(..., min_length=1, max_length=2000)


class OrderRef(BaseModel):
    id: str


class TimelineEventRead(BaseModel):
    id: int
    order_id: str
    status: OrderStatus
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusSlice(BaseModel):
    status: OrderStatus
    count: int
    percentage: float


class Analytics(BaseModel):
    totalOrders: int
    byStatus: Dict[str, int]
    pieChartData: List[StatusSlice]


class InventoryUpdate(BaseModel):
    productId: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class FactoryStatusUpdate(BaseModel):
    orderId: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
