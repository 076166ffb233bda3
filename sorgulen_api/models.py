"""Pydantic models for the order-intake API.

Request models are the validation layer: every inbound payload is parsed
through one of them before it reaches a store. Response models describe what
the API returns and never carry password hashes.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, validator


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ServiceType(str, Enum):
    """Services a customer can order."""
    SNOW_CLEARING = "broeyting"
    TREE_FELLING = "trefelling"
    LAWN_MOWING = "plenklipping"
    MISCELLANEOUS = "diverse"


SERVICE_LABELS = {
    ServiceType.SNOW_CLEARING: "Brøyting",
    ServiceType.TREE_FELLING: "Trefelling",
    ServiceType.LAWN_MOWING: "Plenklipping",
    ServiceType.MISCELLANEOUS: "Diverse",
}


class OrderStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EmailStatus(str, Enum):
    """Outcome of the customer confirmation email."""
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


# =============================================================================
# INPUT VALIDATION PATTERNS
# =============================================================================

DOCUMENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')
MIN_PASSWORD_LENGTH = 8


def check_email(value: Optional[str]) -> Optional[str]:
    """Validate an email address and return it exactly as submitted.

    Display-name forms such as "Name <addr>" are rejected.
    """
    if value is None:
        return value
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}")
    return value


# =============================================================================
# REQUEST MODELS (Input Validation)
# =============================================================================

class CustomerInfo(BaseModel):
    """Contact details submitted with an order. All fields are required."""
    name: StrictStr = Field(..., min_length=1)
    email: StrictStr
    phone: StrictStr = Field(..., min_length=1)
    address: StrictStr = Field(..., min_length=1)
    zip: StrictStr = Field(..., min_length=1)
    city: StrictStr = Field(..., min_length=1)

    @validator('email')
    def validate_email_address(cls, v):
        return check_email(v)


class OrderCreateRequest(BaseModel):
    """Public order submission."""
    service: ServiceType
    customer: CustomerInfo
    details: StrictStr = ""
    consent: StrictBool
    sourcePage: StrictStr = ""
    priceEstimate: Optional[float] = None

    @validator('consent')
    def validate_consent(cls, v):
        if v is not True:
            raise ValueError('Consent is required')
        return v


class OrderUpdateRequest(BaseModel):
    """Admin patch for an order. Only status and priceEstimate are honoured."""
    status: Optional[OrderStatus] = None
    priceEstimate: Optional[float] = None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly present in the patch.

        An explicit null priceEstimate clears the estimate; a null status is
        ignored because status is not nullable.
        """
        updates: Dict[str, Any] = {}
        if self.status is not None:
            updates["status"] = self.status.value
        if "priceEstimate" in self.model_fields_set:
            updates["priceEstimate"] = self.priceEstimate
        return updates


class LoginRequest(BaseModel):
    email: StrictStr
    password: StrictStr = Field(..., min_length=1)

    @validator('email')
    def validate_email_address(cls, v):
        return check_email(v)


class AdminCreateRequest(BaseModel):
    email: StrictStr
    password: StrictStr = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @validator('email')
    def validate_email_address(cls, v):
        return check_email(v)


class AdminUpdateRequest(BaseModel):
    email: Optional[StrictStr] = None
    password: Optional[StrictStr] = Field(default=None, min_length=MIN_PASSWORD_LENGTH)

    @validator('email')
    def validate_email_address(cls, v):
        return check_email(v)


# =============================================================================
# STORED DOCUMENTS
# =============================================================================

class Order(BaseModel):
    """Order document as stored in Firestore."""
    model_config = ConfigDict(extra='ignore')

    id: str
    service: ServiceType
    customer: CustomerInfo
    details: str = ""
    consent: bool
    sourcePage: str = ""
    priceEstimate: Optional[float] = None
    status: OrderStatus = OrderStatus.NEW
    emailStatus: EmailStatus = EmailStatus.QUEUED
    createdAt: datetime
    updatedAt: datetime


class Admin(BaseModel):
    """Administrator document. Never returned to clients as-is."""
    model_config = ConfigDict(extra='ignore')

    id: str
    email: str
    passwordHash: str
    createdAt: datetime


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class OrderCreatedResponse(BaseModel):
    id: str
    status: OrderStatus


class OrderResponse(BaseModel):
    order: Order


class OrderListResponse(BaseModel):
    orders: List[Order]


class AdminInfo(BaseModel):
    """Public view of an administrator."""
    id: str
    email: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_admin(cls, admin: Admin) -> "AdminInfo":
        return cls(id=admin.id, email=admin.email, createdAt=admin.createdAt)


class AdminResponse(BaseModel):
    admin: AdminInfo


class AdminListResponse(BaseModel):
    admins: List[AdminInfo]


class LoginUser(BaseModel):
    id: str
    email: str


class LoginResponse(BaseModel):
    token: str
    user: LoginUser


class ErrorResponse(BaseModel):
    """Standard error response format."""
    message: str
    code: str


# =============================================================================
# ERROR FORMATTING
# =============================================================================

_VALUE_ERROR_PREFIX = "Value error, "


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> List[str]:
    """Turn pydantic error dicts into one human-readable line per violation."""
    messages: List[str] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith(_VALUE_ERROR_PREFIX):
            msg = msg[len(_VALUE_ERROR_PREFIX):]
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return messages
