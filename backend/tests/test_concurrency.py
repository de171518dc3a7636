# Overview: Threaded tests against a file-backed SQLite database.

"""
Concurrency tests: parallel sales never oversell, parallel payments never
exceed the sale total. Each worker runs in its own app context and session.
"""
import os
import tempfile
import threading
import unittest

import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.errors import AlreadySettledError, InsufficientStockError
from shopledger.models import Customer, Product, Sale, SaleItem
from shopledger.services import payment_service, sales_service

WORKERS = 10


@pytest.mark.sales
@pytest.mark.payments
class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
            "DB_RETRY_ATTEMPTS": 5,
            "LOG_LEVEL": "WARNING",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            customer = Customer(name="Concurrent Customer")
            product = Product(name="Concurrent Product", quantity=10, price_cents=1000, cost_cents=400)
            db.session.add_all([customer, product])
            db.session.commit()
            self.customer_id = customer.id
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_workers(self, target, count=WORKERS):
        results = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    outcome = target()
                except Exception as exc:
                    outcome = exc
                finally:
                    db.session.remove()
                with lock:
                    results.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_concurrent_sales_do_not_oversell(self):
        def buy_two():
            return sales_service.create_sale(
                self.customer_id,
                [{"product_id": self.product_id, "quantity": 2}],
            )

        results = self._run_workers(buy_two)

        successes = [r for r in results if isinstance(r, sales_service.SaleReceipt)]
        rejected = [r for r in results if isinstance(r, InsufficientStockError)]
        unexpected = [r for r in results if not isinstance(r, (sales_service.SaleReceipt, InsufficientStockError))]

        self.assertFalse(unexpected, unexpected)
        self.assertEqual(len(successes), 5)
        self.assertEqual(len(rejected), WORKERS - 5)

        with self.app.app_context():
            product = db.session.get(Product, self.product_id)
            sold = db.session.query(db.func.sum(SaleItem.quantity)).scalar()
            self.assertEqual(product.quantity, 0)
            self.assertEqual(sold, 10)
            self.assertEqual(db.session.query(Sale).count(), 5)

    def test_concurrent_payments_never_exceed_total(self):
        with self.app.app_context():
            receipt = sales_service.create_sale(
                self.customer_id,
                [{"product_id": self.product_id, "quantity": 1}],
            )
            sale_id = receipt.sale_id

        results = self._run_workers(lambda: payment_service.record_payment(sale_id, 300))

        settled = [r for r in results if isinstance(r, AlreadySettledError)]
        applied = [r for r in results if isinstance(r, Sale)]

        self.assertEqual(len(applied) + len(settled), WORKERS, results)
        # 300, 600, 900, then 1000 (capped); everything after hits a paid sale
        self.assertEqual(len(applied), 4)

        with self.app.app_context():
            sale = db.session.get(Sale, sale_id)
            self.assertEqual(sale.amount_paid_cents, 1000)
            self.assertEqual(sale.payment_status, "paid")


if __name__ == "__main__":
    unittest.main()
