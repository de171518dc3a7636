import pytest

from shopledger.extensions import db
from shopledger.errors import InsufficientStockError, NotFoundError, ValidationError
from shopledger.models import Product
from shopledger.services import stock_service

pytestmark = pytest.mark.stock


def _quantity(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id).quantity


def test_receive_increases_quantity(product):
    updated = stock_service.receive_stock(product.id, 5)

    assert updated.quantity == 15
    assert _quantity(product.id) == 15


@pytest.mark.parametrize("bad", [0, -3, True, 2.5, "4"])
def test_receive_rejects_non_positive_or_non_integer(product, bad):
    with pytest.raises(ValidationError):
        stock_service.receive_stock(product.id, bad)
    assert _quantity(product.id) == 10


@pytest.mark.parametrize("delta", [10**20, -(10**20), 1_000_000_001])
def test_oversized_delta_is_rejected(product, delta):
    with pytest.raises(ValidationError):
        stock_service.adjust_stock(product.id, delta)
    with pytest.raises(ValidationError):
        stock_service.adjust_stock(product.id, delta, commit=False)
    assert _quantity(product.id) == 10


def test_receive_rejects_oversized_quantity(product):
    with pytest.raises(ValidationError):
        stock_service.receive_stock(product.id, 10**20)
    assert _quantity(product.id) == 10


def test_decrement_to_exactly_zero_is_allowed(product):
    updated = stock_service.adjust_stock(product.id, -10)
    assert updated.quantity == 0


def test_decrement_below_zero_is_rejected_and_leaves_stock(product):
    with pytest.raises(InsufficientStockError) as exc:
        stock_service.adjust_stock(product.id, -11)

    assert exc.value.details["on_hand"] == 10
    assert exc.value.details["requested_quantity"] == 11
    assert _quantity(product.id) == 10


def test_zero_delta_is_rejected(product):
    with pytest.raises(ValidationError):
        stock_service.adjust_stock(product.id, 0)


def test_missing_product_is_not_found(db_session):
    with pytest.raises(NotFoundError):
        stock_service.adjust_stock(999, 1)


def test_inactive_product_cannot_be_adjusted(make_product):
    archived = make_product(name="Old stock", quantity=4, is_active=False)

    with pytest.raises(NotFoundError):
        stock_service.adjust_stock(archived.id, -1)
    assert _quantity(archived.id) == 4


def test_uncommitted_adjust_joins_caller_transaction(product):
    stock_service.adjust_stock(product.id, -3, commit=False)
    db.session.rollback()

    assert _quantity(product.id) == 10


def test_get_quantity_on_hand(product):
    assert stock_service.get_quantity_on_hand(product.id) == 10
