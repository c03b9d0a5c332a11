"""
Order persistence.

`OrderStore` wraps the process-wide engine and is created once in the app
lifespan. Payment confirmations go through `confirm_payment`, which is safe
under redelivery and under the verify/webhook race:

1. a `PaymentConfirmation` row keyed by (reference, source) is inserted; a
   unique violation means this exact confirmation was already processed;
2. the order is moved to paid with a compare-and-set update that only matches
   `paid = false AND status = 'pending'`, writing fixed values;
3. a losing writer only back-fills payment metadata that is still empty.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import Engine, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from app.models import AuditLog, Order, PaymentConfirmation
from app.services.order_status import (
    CONFIRMED_STATUSES,
    OrderStatus,
    PaymentMethod,
    can_transition,
)

logger = logging.getLogger(__name__)


class InvalidTransition(ValueError):
    def __init__(self, current: str, new: str):
        super().__init__(f"Cannot move order from '{current}' to '{new}'.")
        self.current = current
        self.new = new


@dataclass
class ConfirmResult:
    order: Order | None
    applied: bool  # this call moved the order to paid
    duplicate: bool  # this (reference, source) pair was seen before

    @property
    def found(self) -> bool:
        return self.order is not None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStore:
    def __init__(self, engine: Engine):
        self._engine = engine

    def create(self, order: Order) -> Order:
        order.status = OrderStatus.PENDING.value
        order.paid = False
        with Session(self._engine) as db:
            db.add(order)
            db.commit()
            db.refresh(order)
        logger.info("Order created: id=%s method=%s total_kobo=%s", order.id, order.payment_method, order.total_kobo)
        return order

    def get(self, order_id: str) -> Order | None:
        if not order_id:
            return None
        with Session(self._engine) as db:
            return db.get(Order, order_id)

    def list_for_user(self, email: str) -> list[Order]:
        with Session(self._engine) as db:
            stmt = (
                select(Order)
                .where(Order.user_email == email.strip().lower())
                .order_by(col(Order.created_at).desc())
            )
            return list(db.exec(stmt).all())

    def list_all(self, status: OrderStatus | None = None, limit: int = 200) -> list[Order]:
        with Session(self._engine) as db:
            stmt = select(Order).order_by(col(Order.created_at).desc()).limit(limit)
            if status is not None:
                stmt = stmt.where(Order.status == status.value)
            return list(db.exec(stmt).all())

    def _set_fields(self, order_id: str, **values: Any) -> None:
        values["updated_at"] = _utcnow()
        with Session(self._engine) as db:
            db.execute(
                update(Order)
                .where(col(Order.id) == order_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            db.commit()

    def set_checkout_reference(self, order_id: str, reference: str) -> None:
        self._set_fields(order_id, checkout_reference=reference, payment_error=None)

    def record_payment_error(self, order_id: str, message: str) -> None:
        self._set_fields(order_id, payment_error=message[:500])

    def confirm_payment(
        self,
        order_id: str,
        *,
        reference: str,
        status: OrderStatus,
        source: str,
        payment_data: dict[str, Any] | None = None,
    ) -> ConfirmResult:
        if status not in CONFIRMED_STATUSES:
            raise ValueError(f"{status.value} is not a payment confirmation status")
        now = _utcnow()
        with Session(self._engine) as db:
            if db.get(Order, order_id) is None:
                return ConfirmResult(order=None, applied=False, duplicate=False)

            ledger = PaymentConfirmation(reference=reference, source=source, order_id=order_id)
            db.add(ledger)
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                logger.info("Duplicate payment confirmation ignored: reference=%s source=%s", reference, source)
                return ConfirmResult(order=db.get(Order, order_id), applied=False, duplicate=True)

            values: dict[str, Any] = {
                "paid": True,
                "status": status.value,
                "payment_reference": reference,
                "payment_verified_at": now,
                "updated_at": now,
            }
            if payment_data is not None:
                values["payment_data"] = payment_data
            result = db.execute(
                update(Order)
                .where(
                    col(Order.id) == order_id,
                    col(Order.paid).is_(False),
                    col(Order.status) == OrderStatus.PENDING.value,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            applied = result.rowcount == 1

            if not applied:
                backfill: dict[str, Any] = {}
                if payment_data is not None:
                    backfill["payment_data"] = payment_data
                if backfill:
                    db.execute(
                        update(Order)
                        .where(
                            col(Order.id) == order_id,
                            col(Order.paid).is_(True),
                            col(Order.payment_data).is_(None),
                        )
                        .values(updated_at=now, **backfill)
                        .execution_options(synchronize_session=False)
                    )
            ledger.applied = applied
            db.add(ledger)
            db.commit()

            order = db.get(Order, order_id)
            if applied:
                logger.info("Order paid: id=%s status=%s reference=%s source=%s", order_id, status.value, reference, source)
            elif order is not None and order.status == OrderStatus.CANCELLED.value and not order.paid:
                logger.error(
                    "Payment received for cancelled order, refund needed: id=%s reference=%s source=%s",
                    order_id,
                    reference,
                    source,
                )
            else:
                logger.info("Order already confirmed: id=%s status=%s source=%s", order_id, order and order.status, source)
            return ConfirmResult(order=order, applied=applied, duplicate=False)

    def update_status(self, order_id: str, new_status: OrderStatus, *, strict: bool = True) -> Order | None:
        """Administrative status change. Raises InvalidTransition when strict and not a forward move."""
        with Session(self._engine) as db:
            order = db.get(Order, order_id)
            if order is None:
                return None
            if strict and not can_transition(order.status, new_status):
                raise InvalidTransition(order.status, new_status.value)
            order.status = new_status.value
            order.updated_at = _utcnow()
            db.add(order)
            db.commit()
            db.refresh(order)
            logger.info("Order status updated: id=%s status=%s", order_id, new_status.value)
            return order

    def record_audit(
        self,
        event: str,
        *,
        order_id: str | None = None,
        reference: str | None = None,
        detail: str | None = None,
    ) -> None:
        """Best effort: an audit write failure is logged and never breaks the payment path."""
        try:
            with Session(self._engine) as db:
                db.add(AuditLog(event=event, order_id=order_id, reference=reference, detail=detail))
                db.commit()
        except SQLAlchemyError as e:
            logger.warning("AuditLog write failed (%s): %s", event, e)

    def cancel_stale_pending(self, older_than: timedelta) -> int:
        """Cancels unpaid gateway orders whose payment never completed. Manual-payment orders are left alone."""
        cutoff = _utcnow() - older_than
        with Session(self._engine) as db:
            result = db.execute(
                update(Order)
                .where(
                    col(Order.paid).is_(False),
                    col(Order.status) == OrderStatus.PENDING.value,
                    col(Order.payment_method) != PaymentMethod.CALL_REP.value,
                    col(Order.created_at) < cutoff,
                )
                .values(status=OrderStatus.CANCELLED.value, updated_at=_utcnow())
                .execution_options(synchronize_session=False)
            )
            db.commit()
            count = result.rowcount or 0
        if count:
            logger.info("Cancelled %d stale pending orders (older than %s)", count, older_than)
        return count
