import unittest
from datetime import date
from unittest import mock
from flask import Flask

from tradebook.config import Config
from tradebook.domain import (
    AlreadySettledError,
    InvoiceKind,
    OverpaymentError,
    UnauthorizedReversalError,
)
from tradebook.extensions import db
from tradebook.models import DailyLedger, DocumentSequence, DualCurrencyInvoice, Sale, User, ROLE_ADMIN
from tradebook.services import daily_ledger_service, document_service, dual_currency_service, sales_service
from tradebook.services.auth_service import AdminAuthorizationError, authorize_admin_action, hash_password
from tradebook.validation import ConflictError, NotFoundError


class InvoiceServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.from_object(Config)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from tradebook import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        self.admin = User(
            name="Admin",
            email="admin@tradebook.test",
            password_hash=hash_password("Admin123!"),
            role=ROLE_ADMIN,
        )
        db.session.add(self.admin)
        db.session.commit()

    def _sale(self, **overrides):
        patch = {
            "customer": "Al Noor",
            "product": "Rice",
            "invoice_date": date(2026, 1, 5),
            "due_date": date(2099, 1, 1),
            "quantity": 10.0,
            "rate": 100.0,
        }
        patch.update(overrides)
        return sales_service.create_sale(patch=patch, user_id=self.admin.id)

    def test_document_numbers_are_per_type(self):
        self.assertEqual(document_service.next_document_number(document_type="sale", prefix="INV"), "INV-000001")
        self.assertEqual(document_service.next_document_number(document_type="sale", prefix="INV"), "INV-000002")
        self.assertEqual(document_service.next_document_number(document_type="freight", prefix="FRT"), "FRT-000001")
        db.session.commit()
        self.assertEqual(db.session.query(DocumentSequence).count(), 2)

    def _update_misses(self, misses):
        """The first `misses` sequence UPDATEs match no row, as if a racing insert landed after them."""
        execute = db.session.execute
        calls = []

        def fake_execute(stmt, *args, **kwargs):
            calls.append(stmt)
            if len(calls) <= misses:
                return mock.Mock(rowcount=0)
            return execute(stmt, *args, **kwargs)

        return mock.patch.object(db.session, "execute", side_effect=fake_execute)

    def test_first_number_race_falls_back_to_update(self):
        db.session.add(DocumentSequence(document_type="sale", next_number=5))
        db.session.commit()
        with self._update_misses(1):
            number = document_service.next_document_number(document_type="sale", prefix="INV")
        self.assertEqual(number, "INV-000005")

    def test_first_number_race_that_keeps_missing_is_a_conflict(self):
        db.session.add(DocumentSequence(document_type="sale", next_number=5))
        db.session.commit()
        with self._update_misses(2):
            with self.assertRaises(ConflictError):
                document_service.next_document_number(document_type="sale", prefix="INV")
        self.assertEqual(db.session.query(DocumentSequence).count(), 1)

    def test_manual_number_skips_sequence(self):
        sale = self._sale(invoice_number="CUSTOM-9")
        self.assertEqual(sale.invoice_number, "CUSTOM-9")
        with self.assertRaises(ConflictError):
            self._sale(invoice_number="CUSTOM-9")
        self.assertEqual(db.session.query(Sale).count(), 1)

    def test_payment_flow_keeps_balance_consistent(self):
        sale = self._sale()
        sale, _ = sales_service.add_sale_payment(sale.id, data={"amount": 400}, user_id=self.admin.id)
        self.assertEqual(sale.received_amount, 400)
        self.assertEqual(sale.outstanding_amount, 600)
        self.assertEqual(sale.status, "partially_paid")

        with self.assertRaises(OverpaymentError):
            sales_service.add_sale_payment(sale.id, data={"amount": 601}, user_id=self.admin.id)

        sale, _ = sales_service.add_sale_payment(sale.id, data={"amount": 600}, user_id=self.admin.id)
        self.assertEqual(sale.status, "paid")
        with self.assertRaises(AlreadySettledError):
            sales_service.add_sale_payment(sale.id, data={"amount": 1}, user_id=self.admin.id)

        fresh = db.session.get(Sale, sale.id)
        self.assertEqual(fresh.received_amount, 1000)
        self.assertEqual(len(fresh.payments), 2)

    def test_reversal_needs_authorization(self):
        sale = self._sale()
        sale, payment = sales_service.add_sale_payment(sale.id, data={"amount": 400}, user_id=self.admin.id)

        with self.assertRaises(UnauthorizedReversalError):
            sales_service.reverse_sale_payment(sale.id, payment.id, authorization=None, user_id=self.admin.id)
        with self.assertRaises(AdminAuthorizationError):
            authorize_admin_action(self.admin, "wrong")

        grant = authorize_admin_action(self.admin, "Admin123!")
        sale = sales_service.reverse_sale_payment(sale.id, payment.id, authorization=grant.token, user_id=self.admin.id)
        self.assertEqual(sale.received_amount, 0)
        self.assertEqual(sale.status, "unpaid")

    def test_cash_payment_posts_to_ledger(self):
        sale = self._sale()
        sales_service.add_sale_payment(
            sale.id,
            data={"amount": 250, "payment_method": "cash", "payment_date": "2026-01-10"},
            user_id=self.admin.id,
        )
        ledger = daily_ledger_service.get_ledger("2026-01-10")
        self.assertEqual(ledger.receipts_cash, 250)
        self.assertEqual(ledger.auto_sales_inflow, 250)
        self.assertEqual(len(ledger.entries), 1)

    def test_refresh_statuses_marks_overdue(self):
        sale = self._sale(invoice_date=date(2020, 1, 1), due_date=date(2020, 1, 11))
        invoice = dual_currency_service.create_invoice(
            InvoiceKind.TRANSPORT,
            patch={
                "agent": "Gulf Lines",
                "invoice_date": date(2020, 1, 1),
                "due_date": date(2020, 1, 11),
                "conversion_rate": 76.0,
                "amount_pkr": 7600.0,
            },
            user_id=self.admin.id,
        )
        # Stored status is what it was at creation time
        sale.status = "unpaid"
        invoice.status = "unpaid"
        db.session.commit()

        self.assertEqual(sales_service.refresh_statuses(), 1)
        self.assertEqual(dual_currency_service.refresh_statuses(), 1)
        self.assertEqual(db.session.get(Sale, sale.id).status, "overdue")
        self.assertEqual(db.session.get(DualCurrencyInvoice, invoice.id).status, "overdue")
        self.assertEqual(sales_service.refresh_statuses(), 0)

    def test_invoice_kinds_do_not_leak(self):
        invoice = dual_currency_service.create_invoice(
            InvoiceKind.FREIGHT,
            patch={"agent": "Gulf Lines", "invoice_date": date(2026, 1, 5), "conversion_rate": 76.0, "amount_pkr": 760.0},
            user_id=self.admin.id,
        )
        self.assertEqual(invoice.amount_aed, 10)
        self.assertEqual(invoice.due_date, date(2026, 1, 15))
        with self.assertRaises(NotFoundError):
            dual_currency_service.get_invoice(InvoiceKind.DUBAI_TRANSPORT, invoice.id)

    def test_closed_ledger_keeps_sales_receipt_on_reversal(self):
        sale = self._sale()
        sale, payment = sales_service.add_sale_payment(
            sale.id,
            data={"amount": 100, "payment_method": "cash", "payment_date": "2026-01-10"},
            user_id=self.admin.id,
        )
        daily_ledger_service.close_ledger("2026-01-10", user_id=self.admin.id)

        grant = authorize_admin_action(self.admin, "Admin123!")
        sales_service.reverse_sale_payment(sale.id, payment.id, authorization=grant.token, user_id=self.admin.id)

        ledger = db.session.query(DailyLedger).one()
        self.assertTrue(ledger.is_closed)
        self.assertEqual(ledger.receipts_cash, 100)


if __name__ == "__main__":
    unittest.main()
