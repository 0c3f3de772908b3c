"""
Local notification log.

An append-only list of user-facing notices (newest first), persisted to
local storage under the "notifications" key after every change. Entries
only ever change by being marked read or deleted. This is a UI aid, not an
audit trail: the server keeps its own audit log.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping
from uuid import uuid4

from pydantic import BaseModel, Field

from sdk.local_storage import LocalStorage
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    INVOICE_CREATED = "invoice_created"
    INVOICE_PAID = "invoice_paid"
    INVOICE_OVERDUE = "invoice_overdue"
    CLIENT_ADDED = "client_added"
    SYNC_FAILED = "sync_failed"


class Notification(BaseModel):
    """One notice shown to the user."""

    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
    read: bool = False
    invoice_id: str | None = None
    client_id: str | None = None


Listener = Callable[[list[Notification]], None]


def _name(record: Mapping[str, Any], key: str) -> str:
    return str(record.get(key) or "")


class NotificationLog:
    """
    Observable, persisted notification list.

    Usage:
        log = NotificationLog(LocalStorage("~/.invoiceflow"))
        unsubscribe = log.subscribe(lambda items: print(len(items)))
        log.add(NotificationType.CLIENT_ADDED, "Client Added", "Acme was added")
        unsubscribe()
    """

    STORAGE_KEY = "notifications"

    def __init__(self, storage: LocalStorage):
        self._storage = storage
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._items: list[Notification] = [
            Notification.model_validate(raw) for raw in storage.get(self.STORAGE_KEY, [])
        ]

    @property
    def notifications(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._items if not n.read)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, items: list[Notification]) -> None:
        """Replace the list, persist it, then tell every listener."""
        with self._lock:
            self._items = items
            self._storage.set(
                self.STORAGE_KEY, [n.model_dump(mode="json") for n in items]
            )
            snapshot = list(items)
            listeners = list(self._listeners)
        for listener in listeners:
            listener(snapshot)

    def add(
        self,
        type: NotificationType,
        title: str,
        message: str,
        invoice_id: str | None = None,
        client_id: str | None = None,
    ) -> Notification:
        """Prepend a new unread notification."""
        notification = Notification(
            id=f"notif-{uuid4().hex}",
            type=type,
            title=title,
            message=message,
            timestamp=now_utc(),
            invoice_id=invoice_id,
            client_id=client_id,
        )
        with self._lock:
            self._commit([notification, *self._items])
        return notification

    def mark_read(self, notification_id: str) -> None:
        with self._lock:
            self._commit([
                n.model_copy(update={"read": True}) if n.id == notification_id else n
                for n in self._items
            ])

    def mark_all_read(self) -> None:
        with self._lock:
            self._commit([n.model_copy(update={"read": True}) for n in self._items])

    def delete(self, notification_id: str) -> None:
        with self._lock:
            self._commit([n for n in self._items if n.id != notification_id])

    # Helpers for common notifications

    def notify_invoice_created(self, invoice: Mapping[str, Any], client: Mapping[str, Any]) -> Notification:
        return self.add(
            NotificationType.INVOICE_CREATED,
            "Invoice Created",
            f"Invoice {_name(invoice, 'invoice_number')} created for {_name(client, 'name')}",
            invoice_id=_name(invoice, "id"),
        )

    def notify_invoice_paid(self, invoice: Mapping[str, Any], client: Mapping[str, Any]) -> Notification:
        return self.add(
            NotificationType.INVOICE_PAID,
            "Payment Received",
            f"Invoice {_name(invoice, 'invoice_number')} from {_name(client, 'name')} has been paid",
            invoice_id=_name(invoice, "id"),
        )

    def notify_invoice_overdue(self, invoice: Mapping[str, Any], client: Mapping[str, Any]) -> Notification:
        return self.add(
            NotificationType.INVOICE_OVERDUE,
            "Invoice Overdue",
            f"Invoice {_name(invoice, 'invoice_number')} for {_name(client, 'name')} is overdue",
            invoice_id=_name(invoice, "id"),
        )

    def notify_client_added(self, client: Mapping[str, Any]) -> Notification:
        return self.add(
            NotificationType.CLIENT_ADDED,
            "Client Added",
            f"{_name(client, 'name')} has been added to your clients",
            client_id=_name(client, "id"),
        )

    def notify_sync_failed(
        self,
        entity: str,
        action: str,
        record_id: str,
        reason: str,
    ) -> Notification:
        """Persistent warning that a local change never reached the server."""
        return self.add(
            NotificationType.SYNC_FAILED,
            "Changes Not Saved",
            f"Could not {action} {entity} on the server: {reason}. "
            "The change is kept locally only.",
            invoice_id=record_id if entity == "invoice" else None,
            client_id=record_id if entity == "client" else None,
        )
