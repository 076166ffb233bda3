"""Background dispatch of new-order emails.

After an order is stored, the request handler hands it to the dispatcher and
responds without waiting. The two emails run as independent jobs on a thread
pool; neither is retried and neither can fail the request.

The customer confirmation owns the order's emailStatus: queued -> sent on
success, queued -> failed on any error. The internal alert only logs.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import List, Optional

from .mailer import Mailer
from .models import EmailStatus, Order
from .stores import OrderStore

logger = logging.getLogger("sorgulen_api.notifications")


class NotificationDispatcher:
    """Runs order emails off the request path."""

    def __init__(self, mailer: Mailer, orders: OrderStore, max_workers: int = 4):
        self.mailer = mailer
        self.orders = orders
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="order-mail",
        )
        self._pending: List[Future] = []

    def dispatch_order_created(self, order: Order) -> List[Future]:
        """Queue the confirmation and the alert for a new order.

        Returns immediately with the two futures.
        """
        futures = [
            self._executor.submit(self._confirm_customer, order),
            self._executor.submit(self._alert_operations, order),
        ]
        self._pending = [f for f in self._pending if not f.done()] + futures
        return futures

    def _confirm_customer(self, order: Order) -> EmailStatus:
        try:
            self.mailer.send_customer_confirmation(order)
            status = EmailStatus.SENT
        except Exception:
            logger.exception(f"Failed to send customer email for order {order.id}")
            status = EmailStatus.FAILED

        try:
            self.orders.mark_email_status(order.id, status)
        except Exception:
            logger.exception(f"Failed to update emailStatus={status.value} for order {order.id}")
        return status

    def _alert_operations(self, order: Order) -> bool:
        try:
            return self.mailer.send_internal_alert(order)
        except Exception:
            logger.exception(f"Failed to send internal email for order {order.id}")
            return False

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every dispatched job has finished. True if none are left."""
        pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self) -> None:
        """Stop accepting jobs and let in-flight ones run to completion."""
        self._executor.shutdown(wait=True)
        logger.info("Notification dispatcher stopped")
