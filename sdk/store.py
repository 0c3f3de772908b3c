"""
Client-side state store.

Mirrors the server's clients and invoices in memory and in local storage.
Mutations apply locally at once (state PENDING), are persisted and
announced to subscribers, then sent to the server on a background worker.
The server's answer moves the record to CONFIRMED (its copy, including its
id, replaces the local one) or FAILED (a persistent sync_failed
notification is added). Failed changes are neither rolled back nor retried.

The local cache is last-write-wins; there is no conflict resolution.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Mapping
from uuid import uuid4

from core.totals import ZERO, compute_totals, to_decimal
from sdk.api_client import ApiClientError, ApiUnavailableError, InvoiceFlowClient
from sdk.csv_import import parse_client_csv
from sdk.local_storage import LocalStorage
from sdk.notifications import NotificationLog

logger = logging.getLogger(__name__)

_INVOICE_FIELDS = (
    "invoice_number", "client_id", "tenant_id", "status", "date", "due_date",
    "tax_rate", "discount", "notes",
)
_CLIENT_FIELDS = ("name", "email", "phone", "address", "company", "tenant_id")


class SyncState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ClientInUseError(Exception):
    """Client still has invoices and cannot be deleted."""


class RecordNotFoundError(LookupError):
    """No record with that id in the store."""


@dataclass(frozen=True)
class ClientStats:
    invoice_count: int
    revenue: Decimal
    outstanding: Decimal


Listener = Callable[[list[dict], list[dict]], None]


def prepare_invoice(draft: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize an invoice draft and compute its amounts.

    Line totals, subtotal, tax_amount and total come from core.totals;
    any totals in the draft are overwritten. Amounts are stored as strings.
    """
    record = dict(draft)
    tax_rate = to_decimal(record.get("tax_rate") or ZERO)
    discount = to_decimal(record.get("discount") or ZERO)
    items = [dict(item) for item in record.get("line_items") or []]

    totals = compute_totals(items, tax_rate, discount)
    for item, total in zip(items, totals.line_totals):
        item["quantity"] = int(item["quantity"])
        item["unit_price"] = str(to_decimal(item["unit_price"]))
        item["total"] = str(total)

    record.update(
        line_items=items,
        tax_rate=str(tax_rate),
        discount=str(discount),
        subtotal=str(totals.subtotal),
        tax_amount=str(totals.tax_amount),
        total=str(totals.total),
    )
    record.setdefault("status", "unpaid")
    for key in ("date", "due_date"):
        if hasattr(record.get(key), "isoformat"):
            record[key] = record[key].isoformat()
    return record


def _invoice_payload(record: Mapping[str, Any]) -> dict[str, Any]:
    """The part of a local invoice the server accepts."""
    payload = {k: record[k] for k in _INVOICE_FIELDS if record.get(k) is not None}
    payload["line_items"] = [
        {
            "description": item["description"],
            "quantity": item["quantity"],
            "unit_price": item["unit_price"],
        }
        for item in record.get("line_items") or []
    ]
    return payload


def _client_payload(record: Mapping[str, Any]) -> dict[str, Any]:
    return {k: record[k] for k in _CLIENT_FIELDS if record.get(k) is not None}


class InvoiceStore:
    """
    Local mirror of clients and invoices with optimistic mutations.

    Build one per session and pass it to whatever needs it:

        store = InvoiceStore(api, LocalStorage(path), NotificationLog(storage))
        store.load()
        invoice = store.add_invoice({...})
        store.flush()
        store.sync_state(invoice["id"])  # CONFIRMED or FAILED
    """

    INVOICES_KEY = "invoices"
    CLIENTS_KEY = "clients"

    def __init__(
        self,
        api: InvoiceFlowClient,
        storage: LocalStorage,
        notifications: NotificationLog,
        max_workers: int = 1,
    ):
        self._api = api
        self._storage = storage
        self.notifications = notifications

        self._lock = threading.RLock()
        self._invoices: list[dict] = []
        self._clients: list[dict] = []
        self._states: dict[str, SyncState] = {}
        # local id -> server id, once a create is confirmed
        self._aliases: dict[str, str] = {}
        self._listeners: list[Listener] = []

        # One worker keeps a record's create/update/delete in submission order
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="invoiceflow-sync")
        self._futures: set[Future] = set()
        self.online = False

    # -------------------------------------------------------------------------
    # Loading and reading
    # -------------------------------------------------------------------------

    def load(self) -> bool:
        """
        Fetch clients and invoices from the server.

        Falls back to the local cache when the server is unreachable.

        Returns:
            True if server data was loaded, False if the cache was used.
        """
        try:
            clients = self._api.list_clients()
            invoices = self._api.list_invoices()
        except ApiUnavailableError:
            logger.warning("Server unreachable, loading local cache")
            with self._lock:
                self._clients = self._storage.get(self.CLIENTS_KEY, [])
                self._invoices = self._storage.get(self.INVOICES_KEY, [])
                self.online = False
            self._publish()
            return False

        with self._lock:
            self._clients = clients
            self._invoices = invoices
            self._states = {r["id"]: SyncState.CONFIRMED for r in clients + invoices}
            self.online = True
            self._persist()
        self._publish()
        return True

    @property
    def invoices(self) -> list[dict]:
        with self._lock:
            return [dict(r) for r in self._invoices]

    @property
    def clients(self) -> list[dict]:
        with self._lock:
            return [dict(r) for r in self._clients]

    def _resolve(self, record_id: str) -> str:
        return self._aliases.get(record_id, record_id)

    def get_invoice(self, invoice_id: str) -> dict | None:
        with self._lock:
            found = self._find(self._invoices, self._resolve(invoice_id))
            return dict(found) if found else None

    def get_client(self, client_id: str) -> dict | None:
        with self._lock:
            found = self._find(self._clients, self._resolve(client_id))
            return dict(found) if found else None

    def client_stats(self, client_id: str) -> ClientStats:
        """
        Invoice count and amounts for one client.

        revenue sums paid invoices; outstanding sums every other status.
        """
        with self._lock:
            current_id = self._resolve(client_id)
            owned = [inv for inv in self._invoices if self._resolve(inv.get("client_id") or "") == current_id]

        revenue = outstanding = ZERO
        for invoice in owned:
            total = to_decimal(invoice.get("total") or ZERO)
            if invoice.get("status") == "paid":
                revenue += total
            else:
                outstanding += total
        return ClientStats(invoice_count=len(owned), revenue=revenue, outstanding=outstanding)

    def search_invoices(self, query: str = "", status: str | None = None) -> list[dict]:
        """
        Invoices whose number or client name contains query, ignoring case.

        An empty query matches everything. status, when given, must match exactly.
        """
        needle = query.strip().lower()
        with self._lock:
            names = {c["id"]: (c.get("name") or "").lower() for c in self._clients}
            matches = []
            for invoice in self._invoices:
                if status is not None and invoice.get("status") != status:
                    continue
                client_name = names.get(self._resolve(invoice.get("client_id") or ""), "")
                if needle in (invoice.get("invoice_number") or "").lower() or (client_name and needle in client_name):
                    matches.append(dict(invoice))
            return matches

    def sync_state(self, record_id: str) -> SyncState | None:
        """Sync state of a record, by local or server id."""
        with self._lock:
            return self._states.get(self._resolve(record_id))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """listener(invoices, clients) after every change; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def add_invoice(self, draft: Mapping[str, Any]) -> dict:
        """Add an invoice locally and queue its creation on the server."""
        record = prepare_invoice(draft)
        record["id"] = f"local-{uuid4()}"
        with self._lock:
            self._invoices.insert(0, record)
            self._states[record["id"]] = SyncState.PENDING
            self._persist()
        self._publish()
        self.notifications.notify_invoice_created(record, self.get_client(record.get("client_id") or "") or {})
        self._submit(self._sync_create, "invoice", record["id"], _invoice_payload(record))
        return dict(record)

    def update_invoice(self, invoice_id: str, changes: Mapping[str, Any]) -> dict:
        """Merge changes into a local invoice, recompute amounts, queue the update."""
        with self._lock:
            current_id = self._resolve(invoice_id)
            current = self._find(self._invoices, current_id)
            if current is None:
                raise RecordNotFoundError(invoice_id)
            record = prepare_invoice({**current, **changes})
            record["id"] = current_id
            self._replace(self._invoices, current_id, record)
            self._states[current_id] = SyncState.PENDING
            self._persist()
        self._publish()
        if record["status"] != current.get("status"):
            self._notify_status(record)
        self._submit(self._sync_update, "invoice", current_id, _invoice_payload(record))
        return dict(record)

    def _notify_status(self, record: dict) -> None:
        client = self.get_client(record.get("client_id") or "") or {}
        if record["status"] == "paid":
            self.notifications.notify_invoice_paid(record, client)
        elif record["status"] == "overdue":
            self.notifications.notify_invoice_overdue(record, client)

    def delete_invoice(self, invoice_id: str) -> None:
        with self._lock:
            current_id = self._resolve(invoice_id)
            if self._find(self._invoices, current_id) is None:
                raise RecordNotFoundError(invoice_id)
            self._invoices = [r for r in self._invoices if r["id"] != current_id]
            self._states[current_id] = SyncState.PENDING
            self._persist()
        self._publish()
        self._submit(self._sync_delete, "invoice", current_id, None)

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    def add_client(self, data: Mapping[str, Any]) -> dict:
        record = {**data, "id": f"local-{uuid4()}"}
        with self._lock:
            self._clients.insert(0, record)
            self._states[record["id"]] = SyncState.PENDING
            self._persist()
        self._publish()
        self.notifications.notify_client_added(record)
        self._submit(self._sync_create, "client", record["id"], _client_payload(record))
        return dict(record)

    def update_client(self, client_id: str, changes: Mapping[str, Any]) -> dict:
        with self._lock:
            current_id = self._resolve(client_id)
            current = self._find(self._clients, current_id)
            if current is None:
                raise RecordNotFoundError(client_id)
            record = {**current, **changes, "id": current_id}
            self._replace(self._clients, current_id, record)
            self._states[current_id] = SyncState.PENDING
            self._persist()
        self._publish()
        self._submit(self._sync_update, "client", current_id, _client_payload(changes))
        return dict(record)

    def delete_client(self, client_id: str) -> None:
        """
        Delete a client locally and on the server.

        Raises:
            ClientInUseError: A cached invoice still references the client
        """
        with self._lock:
            current_id = self._resolve(client_id)
            if self._find(self._clients, current_id) is None:
                raise RecordNotFoundError(client_id)
            in_use = sum(1 for inv in self._invoices if self._resolve(inv.get("client_id", "")) == current_id)
            if in_use:
                raise ClientInUseError(
                    f"Client has {in_use} invoice(s); delete or reassign them first"
                )
            self._clients = [r for r in self._clients if r["id"] != current_id]
            self._states[current_id] = SyncState.PENDING
            self._persist()
        self._publish()
        self._submit(self._sync_delete, "client", current_id, None)

    def import_clients(self, csv_text: str) -> int:
        """
        Bulk-create clients from CSV text, then refresh the client list.

        Synchronous: the server creates all rows or none.

        Returns:
            Number of clients created (0 when the text holds no valid rows)
        """
        rows = parse_client_csv(csv_text)
        if not rows:
            return 0

        count = self._api.bulk_create_clients(rows)
        clients = self._api.list_clients()
        with self._lock:
            self._clients = clients
            for record in clients:
                self._states[record["id"]] = SyncState.CONFIRMED
            self._persist()
        self._publish()
        return count

    # -------------------------------------------------------------------------
    # Background sync
    # -------------------------------------------------------------------------

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued sync work to finish."""
        with self._lock:
            pending = set(self._futures)
        done, _ = wait(pending, timeout=timeout)
        for future in done:
            # Re-raise anything unexpected from a worker
            future.result()

    def close(self) -> None:
        """Finish queued work and stop the worker pool."""
        self.flush()
        self._executor.shutdown(wait=True)

    def _submit(self, fn: Callable, entity: str, record_id: str, payload: dict | None) -> None:
        future = self._executor.submit(fn, entity, record_id, payload)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    def _resolve_refs(self, entity: str, payload: dict) -> dict:
        """Point an invoice at its client's server id once that client is confirmed."""
        if entity == "invoice" and payload.get("client_id"):
            with self._lock:
                return {**payload, "client_id": self._resolve(payload["client_id"])}
        return payload

    def _records(self, entity: str) -> list[dict]:
        return self._invoices if entity == "invoice" else self._clients

    def _sync_create(self, entity: str, local_id: str, payload: dict) -> None:
        create = self._api.create_invoice if entity == "invoice" else self._api.create_client
        payload = self._resolve_refs(entity, payload)
        try:
            server = create(payload)
        except ApiClientError as e:
            self._mark_failed(entity, local_id, "create", e)
            return

        with self._lock:
            server_id = server["id"]
            self._aliases[local_id] = server_id
            self._states.pop(local_id, None)
            self._states[server_id] = SyncState.CONFIRMED
            records = self._records(entity)
            if self._find(records, local_id) is not None:
                self._replace(records, local_id, server)
            if entity == "client":
                for invoice in self._invoices:
                    if invoice.get("client_id") == local_id:
                        invoice["client_id"] = server_id
            self._persist()
        self._publish()

    def _sync_update(self, entity: str, record_id: str, payload: dict) -> None:
        update = self._api.update_invoice if entity == "invoice" else self._api.update_client
        server_id = self._resolve(record_id)
        payload = self._resolve_refs(entity, payload)
        try:
            server = update(server_id, payload)
        except ApiClientError as e:
            self._mark_failed(entity, server_id, "update", e)
            return

        with self._lock:
            self._states[server_id] = SyncState.CONFIRMED
            records = self._records(entity)
            if self._find(records, server_id) is not None:
                self._replace(records, server_id, server)
            self._persist()
        self._publish()

    def _sync_delete(self, entity: str, record_id: str, payload: None) -> None:
        delete = self._api.delete_invoice if entity == "invoice" else self._api.delete_client
        server_id = self._resolve(record_id)
        try:
            delete(server_id)
        except ApiClientError as e:
            self._mark_failed(entity, server_id, "delete", e)
            return

        with self._lock:
            self._states[server_id] = SyncState.CONFIRMED
        self._publish()

    def _mark_failed(self, entity: str, record_id: str, action: str, error: ApiClientError) -> None:
        logger.warning(f"Sync failed: {action} {entity} {record_id}: {error}")
        with self._lock:
            self._states[record_id] = SyncState.FAILED
        self.notifications.notify_sync_failed(entity, action, record_id, str(error))
        self._publish()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _find(records: list[dict], record_id: str) -> dict | None:
        for record in records:
            if record.get("id") == record_id:
                return record
        return None

    @staticmethod
    def _replace(records: list[dict], record_id: str, new: dict) -> None:
        for i, record in enumerate(records):
            if record.get("id") == record_id:
                records[i] = new
                return

    def _persist(self) -> None:
        self._storage.set(self.INVOICES_KEY, self._invoices)
        self._storage.set(self.CLIENTS_KEY, self._clients)

    def _publish(self) -> None:
        with self._lock:
            invoices = [dict(r) for r in self._invoices]
            clients = [dict(r) for r in self._clients]
            listeners = list(self._listeners)
        for listener in listeners:
            listener(invoices, clients)
