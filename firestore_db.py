"""
Order event log kept in Firestore.

Every committed order change (created, cancelled, status changed, deleted)
is appended to one collection as a small document. The SQL tables stay the
source of truth, the log is an audit trail.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import current_app
from google.cloud import firestore
from google.api_core.exceptions import GoogleAPICallError, RetryError

from config import Config

logger = logging.getLogger(__name__)

ORDER_CREATED = "ORDER_CREATED"
ORDER_CANCELLED = "ORDER_CANCELLED"
ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
ORDER_DELETED = "ORDER_DELETED"

BACKOFF_SECONDS = 1.0

_client: Optional[firestore.Client] = None


class OrderEventError(Exception):
    """The event could not be written after every attempt."""


def get_client() -> firestore.Client:
    global _client
    if _client is None:
        _client = firestore.Client(database=Config.ORDER_EVENTS_DATABASE)
    return _client


def event_document(order_id: Any, user_email: str, event: str, payload: Optional[Dict[str, Any]] = None) -> dict:
    return {
        "order_id": str(order_id),
        "user_email": user_email or "",
        "event": event,
        "payload": payload or {},
        "created_at": firestore.SERVER_TIMESTAMP,
        "created_at_iso": datetime.now(timezone.utc).isoformat(),
    }


def log_order_event(
    order_id: Any,
    user_email: str,
    event: str,
    payload: Optional[Dict[str, Any]] = None,
    client=None,
    attempts: int = Config.ORDER_EVENTS_ATTEMPTS,
    backoff: float = BACKOFF_SECONDS,
) -> str:
    """
    Appends one event and returns its document id.

    Google API errors are retried with a linear backoff; after ``attempts``
    failures an OrderEventError is raised.
    """
    collection = (client or get_client()).collection(Config.ORDER_EVENTS_COLLECTION)
    doc = event_document(order_id, user_email, event, payload)

    for attempt in range(1, attempts + 1):
        try:
            ref = collection.document()
            ref.set(doc)
            return ref.id
        except (GoogleAPICallError, RetryError) as e:
            logger.warning("order event %s for order %s, attempt %s/%s failed: %s",
                           event, order_id, attempt, attempts, e)
            if attempt == attempts:
                raise OrderEventError(f"{event} for order {order_id} not written") from e
            time.sleep(backoff * attempt)


def record_order_event(order_id: Any, user_email: str, event: str, payload: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """
    Called by the request handlers after commit. Does nothing unless
    ORDER_EVENTS_ENABLED is set, and only logs a write failure.
    """
    if not current_app.config.get("ORDER_EVENTS_ENABLED"):
        return None

    try:
        doc_id = log_order_event(order_id, user_email, event, payload)
    except OrderEventError as e:
        logger.warning("%s", e)
        return None

    logger.debug("order event %s recorded as %s", event, doc_id)
    return doc_id
