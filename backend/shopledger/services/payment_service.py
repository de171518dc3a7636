# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Ledger Service

WHY: Credit customers settle sales over time. Each call applies one
incremental payment to one sale and keeps amount_paid, payment_status and
balance due consistent.

DESIGN PRINCIPLES:
- Payment fields live on the sale row; recording a payment touches nothing else
- Overpayment is capped at the outstanding balance, never rejected
- PAID is terminal: further payments raise AlreadySettledError
- Read-modify-write runs under a row lock plus the sale's version_id, so two
  concurrent payments can never both start from the same amount_paid
"""

import logging

from ..extensions import db
from ..models import Sale
from ..errors import NotFoundError, AlreadySettledError, InvalidAmountError
from .concurrency import lock_for_update, begin_write, run_with_retry

logger = logging.getLogger(__name__)


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"

OUTSTANDING_STATUSES = (PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIAL)


def classify_payment_status(amount_paid_cents: int, total_amount_cents: int) -> str:
    """
    Pure, total classification of a sale's settlement progress.

    PAYMENT STATUS:
    - paid: amount_paid >= total (a zero-total sale is paid immediately)
    - partial: 0 < amount_paid < total
    - unpaid: amount_paid == 0
    """
    if amount_paid_cents >= total_amount_cents:
        return PAYMENT_STATUS_PAID
    if amount_paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


def clamp_amount_paid(offered_cents: int, total_amount_cents: int) -> int:
    """clamp(offered, 0, total)"""
    return max(0, min(offered_cents, total_amount_cents))


def _validate_amount(amount_received_cents) -> int:
    if isinstance(amount_received_cents, bool) or not isinstance(amount_received_cents, int):
        raise InvalidAmountError("Payment amount must be a whole number of cents")
    if amount_received_cents <= 0:
        raise InvalidAmountError(
            "Payment amount must be greater than 0",
            details={"amount_received_cents": amount_received_cents},
        )
    return amount_received_cents


# =============================================================================
# PAYMENT RECORDING
# =============================================================================

def record_payment(sale_id: int, amount_received_cents: int) -> Sale:
    """
    Apply one incremental payment to a sale.

    Args:
        sale_id: Sale being paid
        amount_received_cents: Amount tendered (in cents), must be > 0

    Returns:
        The updated Sale (committed)

    Raises:
        InvalidAmountError: amount missing, non-integer or <= 0
        NotFoundError: sale does not exist
        AlreadySettledError: sale is already paid
        StorageFailure: lock timeout or commit failure
    """
    amount = _validate_amount(amount_received_cents)

    def _op():
        begin_write()

        # Get sale (locked for payment updates)
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})

        if sale.payment_status == PAYMENT_STATUS_PAID:
            raise AlreadySettledError(
                "This sale is already fully paid",
                details={"sale_id": sale_id, "amount_paid_cents": sale.amount_paid_cents},
            )

        previous = sale.amount_paid_cents or 0
        new_amount_paid = min(previous + amount, sale.total_amount_cents)

        sale.amount_paid_cents = new_amount_paid
        sale.payment_status = classify_payment_status(new_amount_paid, sale.total_amount_cents)

        db.session.commit()

        if previous + amount > sale.total_amount_cents:
            logger.info(
                "Payment on sale %s capped: received %s, applied %s",
                sale_id, amount, new_amount_paid - previous,
            )
        logger.info(
            "Recorded payment on sale %s: %s -> %s (%s)",
            sale_id, previous, new_amount_paid, sale.payment_status,
        )
        return sale

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_balance(sale_id: int) -> dict:
    """
    Outstanding balance projection for one sale.

    Returns:
        - total_amount_cents
        - amount_paid_cents
        - balance_due_cents
        - payment_status
    """
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})

    return {
        "sale_id": sale.id,
        "total_amount_cents": sale.total_amount_cents,
        "amount_paid_cents": sale.amount_paid_cents,
        "balance_due_cents": sale.balance_due_cents,
        "payment_status": sale.payment_status,
    }
