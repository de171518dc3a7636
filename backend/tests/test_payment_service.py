import pytest

from shopledger.extensions import db
from shopledger.errors import AlreadySettledError, InvalidAmountError, NotFoundError
from shopledger.models import Sale
from shopledger.services import payment_service, sales_service
from shopledger.services.payment_service import classify_payment_status, clamp_amount_paid

pytestmark = pytest.mark.payments


@pytest.fixture
def partial_sale(customer, product):
    """Two units at 100 with 50 paid up front."""
    receipt = sales_service.create_sale(
        customer.id,
        [{"product_id": product.id, "quantity": 2}],
        declared_total_cents=200,
        amount_paid_cents=50,
    )
    return receipt.sale_id


def _sale(sale_id):
    db.session.expire_all()
    return db.session.get(Sale, sale_id)


@pytest.mark.parametrize(
    "paid,total,expected",
    [
        (0, 200, "unpaid"),
        (1, 200, "partial"),
        (199, 200, "partial"),
        (200, 200, "paid"),
        (250, 200, "paid"),
        (0, 0, "paid"),
    ],
)
def test_classify_payment_status(paid, total, expected):
    assert classify_payment_status(paid, total) == expected


def test_clamp_amount_paid():
    assert clamp_amount_paid(-5, 200) == 0
    assert clamp_amount_paid(120, 200) == 120
    assert clamp_amount_paid(500, 200) == 200


def test_payments_settle_sale_then_lock_it(partial_sale):
    sale = payment_service.record_payment(partial_sale, 75)
    assert (sale.amount_paid_cents, sale.payment_status) == (125, "partial")

    sale = payment_service.record_payment(partial_sale, 100)
    assert (sale.amount_paid_cents, sale.payment_status) == (200, "paid")

    with pytest.raises(AlreadySettledError):
        payment_service.record_payment(partial_sale, 10)

    assert _sale(partial_sale).amount_paid_cents == 200


def test_unpaid_sale_can_be_settled_in_one_payment(customer, product):
    receipt = sales_service.create_sale(customer.id, [{"product_id": product.id, "quantity": 1}])

    sale = payment_service.record_payment(receipt.sale_id, 100)

    assert sale.payment_status == "paid"
    assert sale.balance_due_cents == 0


def test_overpayment_is_capped_at_total(partial_sale):
    sale = payment_service.record_payment(partial_sale, 5_000)

    assert sale.amount_paid_cents == 200
    assert sale.payment_status == "paid"


def test_payment_touches_only_payment_fields(partial_sale):
    before = _sale(partial_sale)
    snapshot = (before.total_amount_cents, before.total_cost_cents, before.created_at, len(before.items))

    payment_service.record_payment(partial_sale, 10)

    after = _sale(partial_sale)
    assert (after.total_amount_cents, after.total_cost_cents, after.created_at, len(after.items)) == snapshot


@pytest.mark.parametrize("bad", [0, -10, "10", 1.5, None, True])
def test_invalid_amount_is_rejected(partial_sale, bad):
    with pytest.raises(InvalidAmountError):
        payment_service.record_payment(partial_sale, bad)

    assert _sale(partial_sale).amount_paid_cents == 50


def test_missing_sale(db_session):
    with pytest.raises(NotFoundError):
        payment_service.record_payment(31337, 10)


def test_get_balance(partial_sale):
    balance = payment_service.get_balance(partial_sale)

    assert balance == {
        "sale_id": partial_sale,
        "total_amount_cents": 200,
        "amount_paid_cents": 50,
        "balance_due_cents": 150,
        "payment_status": "partial",
    }


def test_version_increments_on_each_payment(partial_sale):
    start = _sale(partial_sale).version_id

    payment_service.record_payment(partial_sale, 10)
    payment_service.record_payment(partial_sale, 10)

    assert _sale(partial_sale).version_id == start + 2
