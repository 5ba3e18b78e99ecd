"""
Payment reconciliation job.

Runs on a schedule to repair missed payment confirmations. Pending orders
older than the staleness threshold are re-verified against the gateway's
authoritative payment list; any captured attempt settles the order.

Each order is processed independently: a gateway or store failure on one
order is logged and recorded, its partial work rolled back, and the sweep
continues. Failed orders stay pending and are retried by the next sweep.
Safe to run repeatedly or concurrently with the webhook fast path.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from access_core.config import RECONCILE_BATCH_LIMIT, RECONCILE_STALE_AFTER
from access_core.integrations.payments.gateway_client import (
    PaymentGatewayClient,
    PaymentGatewayError,
)
from access_core.repositories.order_repository import get_order, list_stale_pending_orders
from access_core.services.settlement import SettlementSource, SettlementStatus, settle_order

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Summary of one sweep."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    scanned: int = 0
    fixed: int = 0
    already_settled: int = 0
    still_pending: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "scanned": self.scanned,
            "fixed": self.fixed,
            "already_settled": self.already_settled,
            "still_pending": self.still_pending,
            "errors": list(self.errors),
        }


class PaymentReconciliationJob:
    """
    Reconciles stale pending orders with the payment gateway.

    Should run every few minutes via cron or task scheduler.
    Handles:
    - Captured payments whose webhook never arrived
    - Captured payments whose webhook processing failed
    """

    def __init__(
        self,
        db_session: Session,
        gateway: PaymentGatewayClient,
        stale_after: timedelta = RECONCILE_STALE_AFTER,
        batch_limit: int = RECONCILE_BATCH_LIMIT,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.db_session = db_session
        self.gateway = gateway
        self.stale_after = stale_after
        self.batch_limit = batch_limit
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def run(self) -> ReconcileResult:
        """
        Execute one sweep.

        Returns:
            Summary of reconciliation results
        """
        result = ReconcileResult(started_at=self._now())
        cutoff = result.started_at - self.stale_after

        logger.info("Starting payment reconciliation", extra={"cutoff": cutoff.isoformat()})

        try:
            # Plain identifiers: a per-order rollback expires ORM instances
            candidates = [
                (order.id, order.external_order_reference)
                for order in list_stale_pending_orders(self.db_session, cutoff, self.batch_limit)
            ]
            # No read transaction held open across gateway calls
            self.db_session.commit()
        except Exception as e:
            logger.error("Failed to load reconciliation candidates", extra={"error": str(e)})
            self.db_session.rollback()
            result.errors.append(f"candidate scan failed: {e}")
            result.completed_at = self._now()
            return result

        result.scanned = len(candidates)

        for order_id, reference in candidates:
            try:
                await self._reconcile_order(order_id, reference, result)
            except PaymentGatewayError as e:
                logger.warning("Gateway lookup failed; order left pending", extra={
                    "order_id": order_id,
                    "external_order_reference": reference,
                    "error": str(e),
                    "code": e.code,
                })
                result.errors.append(f"order {order_id}: gateway error: {e}")
            except Exception as e:
                self.db_session.rollback()
                logger.error("Failed to reconcile order", extra={
                    "order_id": order_id,
                    "external_order_reference": reference,
                    "error": str(e),
                    "error_type": type(e).__name__,
                })
                result.errors.append(f"order {order_id}: {e}")

        result.completed_at = self._now()
        logger.info("Payment reconciliation completed", extra=result.to_dict())
        return result

    async def _reconcile_order(self, order_id: str, reference: str, result: ReconcileResult) -> None:
        payments = await self.gateway.list_payments(reference)

        if not any(payment.is_captured for payment in payments):
            result.still_pending += 1
            return

        order = get_order(self.db_session, order_id)
        if order is None:
            raise LookupError(f"order {order_id} no longer exists")

        settlement = settle_order(self.db_session, order, SettlementSource.RECONCILIATION)
        if settlement.status == SettlementStatus.SETTLED:
            result.fixed += 1
        elif settlement.status == SettlementStatus.ALREADY_SETTLED:
            result.already_settled += 1


async def run_reconciliation(
    db_session: Session,
    gateway: Optional[PaymentGatewayClient] = None,
) -> ReconcileResult:
    """
    Convenience function to run one sweep.

    Opens (and closes) a gateway client from the environment when none is
    supplied.
    """
    if gateway is not None:
        return await PaymentReconciliationJob(db_session, gateway).run()

    async with PaymentGatewayClient() as client:
        return await PaymentReconciliationJob(db_session, client).run()


# Entry point for cron/scheduler
if __name__ == "__main__":
    import os
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    logging.basicConfig(level=logging.INFO)

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("DATABASE_URL environment variable is required")
        raise SystemExit(1)

    engine = create_engine(database_url)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        summary = asyncio.run(run_reconciliation(session))
        print(f"Reconciliation completed: {summary.to_dict()}")
    finally:
        session.close()
