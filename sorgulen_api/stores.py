"""Firestore-backed stores for orders and administrators.

Collections:
    orders/{orderId}          - order documents
    admins/{adminId}          - administrator documents
    adminEmails/{email}       - email index, {adminId}; guarantees uniqueness

Every write is a single-document update or a single batch, so each operation
is atomic without any in-process locking.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud import firestore

from .errors import DuplicateAdminError, ValidationError
from .models import (
    DOCUMENT_ID_PATTERN,
    Admin,
    EmailStatus,
    Order,
    OrderCreateRequest,
    OrderStatus,
)

logger = logging.getLogger("sorgulen_api.stores")

ORDERS = "orders"
ADMINS = "admins"
ADMIN_EMAILS = "adminEmails"

# Fields an admin may change after an order is created
ORDER_MUTABLE_FIELDS = ("status", "priceEstimate")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _valid_id(doc_id: Any) -> bool:
    return isinstance(doc_id, str) and bool(DOCUMENT_ID_PATTERN.match(doc_id))


def normalize_email(email: str) -> str:
    """Canonical form used for every administrator lookup and insert."""
    return (email or "").strip().lower()


def _check_admin_email(normalized: str) -> None:
    # The email doubles as a document id in the index collection
    if not normalized:
        raise ValidationError(["email: Email is required"])
    if "/" in normalized:
        raise ValidationError(["email: Email must not contain '/'"])


class OrderStore:
    """Order records and their lifecycle status."""

    def __init__(self, db: firestore.Client):
        self._db = db

    def _ref(self, order_id: str):
        return self._db.collection(ORDERS).document(order_id)

    def create(self, payload: OrderCreateRequest) -> Order:
        """Persist a validated submission as a new order."""
        now = _now()
        order_id = _new_id()
        doc = {
            "id": order_id,
            "service": payload.service.value,
            "customer": payload.customer.model_dump(),
            "details": payload.details,
            "consent": payload.consent,
            "sourcePage": payload.sourcePage,
            "priceEstimate": None,
            "status": OrderStatus.NEW.value,
            "emailStatus": EmailStatus.QUEUED.value,
            "createdAt": now,
            "updatedAt": now,
        }
        self._ref(order_id).set(doc)
        logger.info(f"Order {order_id} created ({doc['service']})")
        return Order(**doc)

    def list_all(self) -> List[Order]:
        """All orders, newest first."""
        query = self._db.collection(ORDERS).order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        )
        return [Order(**(snap.to_dict() or {})) for snap in query.stream()]

    def find_by_id(self, order_id: str) -> Optional[Order]:
        if not _valid_id(order_id):
            return None
        snap = self._ref(order_id).get()
        if not snap.exists:
            return None
        return Order(**(snap.to_dict() or {}))

    def update(self, order_id: str, changes: Dict[str, Any]) -> Optional[Order]:
        """Apply an admin patch and return the updated order.

        Only status and priceEstimate are written; anything else in
        `changes` is dropped. Returns None if the order does not exist.

        Raises:
            ValidationError if status is outside the closed enumeration.
        """
        updates = {k: v for k, v in changes.items() if k in ORDER_MUTABLE_FIELDS}
        if "status" in updates:
            try:
                updates["status"] = OrderStatus(updates["status"]).value
            except ValueError:
                allowed = ", ".join(s.value for s in OrderStatus)
                raise ValidationError([f"status: Input should be one of {allowed}"])
        if updates.get("priceEstimate") is not None:
            updates["priceEstimate"] = float(updates["priceEstimate"])

        if not _valid_id(order_id):
            return None
        if not updates:
            return self.find_by_id(order_id)

        updates["updatedAt"] = _now()
        try:
            self._ref(order_id).update(updates)
        except NotFound:
            return None
        return self.find_by_id(order_id)

    def mark_email_status(self, order_id: str, status: EmailStatus) -> None:
        """Record the outcome of the customer confirmation email."""
        self._ref(order_id).update({
            "emailStatus": status.value,
            "updatedAt": _now(),
        })


class AdminStore:
    """Administrator identities. Sole source of truth for who may log in."""

    def __init__(self, db: firestore.Client):
        self._db = db

    def _ref(self, admin_id: str):
        return self._db.collection(ADMINS).document(admin_id)

    def _email_ref(self, email: str):
        return self._db.collection(ADMIN_EMAILS).document(email)

    def find_by_email(self, email: str) -> Optional[Admin]:
        normalized = normalize_email(email)
        if not normalized or "/" in normalized:
            return None
        index = self._email_ref(normalized).get()
        if not index.exists:
            return None
        admin_id = (index.to_dict() or {}).get("adminId")
        return self.find_by_id(admin_id)

    def find_by_id(self, admin_id: str) -> Optional[Admin]:
        if not _valid_id(admin_id):
            return None
        snap = self._ref(admin_id).get()
        if not snap.exists:
            return None
        return Admin(**(snap.to_dict() or {}))

    def list_all(self) -> List[Admin]:
        query = self._db.collection(ADMINS).order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        )
        return [Admin(**(snap.to_dict() or {})) for snap in query.stream()]

    def count(self) -> int:
        results = self._db.collection(ADMINS).count().get()
        return int(results[0][0].value)

    def create(self, email: str, password_hash: str) -> Admin:
        """Create an administrator.

        The admin document and its email index are written in one batch with
        create semantics, so two concurrent creates for the same email cannot
        both succeed.

        Raises:
            DuplicateAdminError if the email is already registered.
            ValidationError if the email is empty or contains '/'.
        """
        normalized = normalize_email(email)
        _check_admin_email(normalized)
        admin_id = _new_id()
        doc = {
            "id": admin_id,
            "email": normalized,
            "passwordHash": password_hash,
            "createdAt": _now(),
        }
        batch = self._db.batch()
        batch.create(self._email_ref(normalized), {"adminId": admin_id})
        batch.create(self._ref(admin_id), doc)
        try:
            batch.commit()
        except AlreadyExists:
            raise DuplicateAdminError()
        logger.info(f"Administrator {admin_id} created")
        return Admin(**doc)

    def update(
        self,
        admin_id: str,
        email: Optional[str] = None,
        password_hash: Optional[str] = None,
    ) -> Optional[Admin]:
        """Change an administrator's email and/or password hash.

        Returns None if the administrator does not exist.

        Raises:
            DuplicateAdminError if the new email belongs to someone else.
            ValidationError if the new email is empty or contains '/'.
        """
        current = self.find_by_id(admin_id)
        if current is None:
            return None

        updates: Dict[str, Any] = {}
        if password_hash:
            updates["passwordHash"] = password_hash

        batch = self._db.batch()
        if email is not None:
            normalized = normalize_email(email)
            _check_admin_email(normalized)
            if normalized != current.email:
                batch.create(self._email_ref(normalized), {"adminId": admin_id})
                batch.delete(self._email_ref(current.email))
                updates["email"] = normalized

        if not updates:
            return current

        batch.update(self._ref(admin_id), updates)
        try:
            batch.commit()
        except AlreadyExists:
            raise DuplicateAdminError()
        except NotFound:
            return None
        return self.find_by_id(admin_id)
