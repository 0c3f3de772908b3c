"""Python SDK for the InvoiceFlow API: REST client, local store, notifications."""

from sdk.api_client import ApiClientError, ApiUnavailableError, InvoiceFlowClient
from sdk.csv_import import parse_client_csv
from sdk.local_storage import LocalStorage
from sdk.notifications import Notification, NotificationLog, NotificationType
from sdk.store import ClientInUseError, InvoiceStore, RecordNotFoundError, SyncState, prepare_invoice
