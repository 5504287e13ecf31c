# Overview: Pytest coverage for payment recording, automatic paid transition and the wallet guard.

from datetime import date
from decimal import Decimal

import pytest

from shopdesk.errors import InsufficientBalanceError, NotFoundError, ValidationError
from shopdesk.models import LedgerEvent


@pytest.fixture
def invoice_200(ledger, make_customer, make_product):
    """Unpaid invoice of 200.00 for a customer with 60.00 in the wallet."""
    customer = make_customer("Wallet", "Owner", wallet_balance="60.00")
    product = make_product("Console", "100.00", 10)
    return ledger.create_invoice(customer.id, [{"product_id": product.id, "quantity": 2}])


class TestAddPayment:
    def test_partial_then_full_payment(self, store, recorder, invoice_200):
        """150 then 50 on 200: unpaid after the first, paid after the second."""
        recorder.add_payment(invoice_200.id, "150.00", "cash", date="2024-06-01")
        invoice = store.get("invoices", invoice_200.id)
        assert invoice.status == "unpaid"
        assert invoice.paid_date is None

        recorder.add_payment(invoice_200.id, "50.00", "upi", reference="UPI-77", date="2024-06-03")
        invoice = store.get("invoices", invoice_200.id)
        assert invoice.status == "paid"
        assert invoice.paid_date == date(2024, 6, 3)

    def test_single_full_payment(self, store, recorder, invoice_200):
        recorder.add_payment(invoice_200.id, Decimal("200"), "bank_transfer")
        assert store.get("invoices", invoice_200.id).status == "paid"

    def test_payment_fields_are_stored(self, recorder, invoice_200):
        payment = recorder.add_payment(
            invoice_200.id, "25.5", "cheque", reference="  CHQ-1 ", notes="post-dated", date="2024-01-02",
        )
        assert payment.amount == Decimal("25.50")
        assert payment.method == "cheque"
        assert payment.reference == "CHQ-1"
        assert payment.notes == "post-dated"
        assert payment.date == date(2024, 1, 2)

    @pytest.mark.parametrize("amount", ["0", "-5", 0, "", "abc"])
    def test_non_positive_or_invalid_amount(self, store, recorder, invoice_200, amount):
        with pytest.raises(ValidationError):
            recorder.add_payment(invoice_200.id, amount, "cash")
        assert store.list("payments") == []

    @pytest.mark.parametrize("amount", ["1e30", "-1e30", "10000000000.00", Decimal("1E+40")])
    def test_out_of_range_amount(self, store, recorder, invoice_200, amount):
        with pytest.raises(ValidationError):
            recorder.add_payment(invoice_200.id, amount, "cash")
        assert store.list("payments") == []

    def test_malformed_date(self, store, recorder, invoice_200):
        with pytest.raises(ValidationError):
            recorder.add_payment(invoice_200.id, "10.00", "cash", date="2024-01-15garbage")
        assert store.list("payments") == []

    def test_unknown_method(self, recorder, invoice_200):
        with pytest.raises(ValidationError):
            recorder.add_payment(invoice_200.id, "10.00", "bitcoin")

    def test_unknown_invoice(self, recorder):
        with pytest.raises(NotFoundError):
            recorder.add_payment("missing", "10.00", "cash")

    def test_payment_on_paid_invoice_is_recorded(self, store, ledger, recorder, invoice_200):
        ledger.mark_invoice_as_paid(invoice_200.id, "2024-02-01")
        recorder.add_payment(invoice_200.id, "10.00", "cash", date="2024-02-05")

        invoice = store.get("invoices", invoice_200.id)
        assert invoice.status == "paid"
        assert invoice.paid_date == date(2024, 2, 1)
        assert len(store.find("payments", invoice_id=invoice.id)) == 1

    def test_payments_do_not_touch_customer_totals(self, store, recorder, invoice_200):
        before = store.get("customers", invoice_200.customer_id).total_spent
        recorder.add_payment(invoice_200.id, "200.00", "cash")
        assert store.get("customers", invoice_200.customer_id).total_spent == before


class TestWalletPayments:
    def test_insufficient_balance_changes_nothing(self, db_session, store, recorder, invoice_200):
        with pytest.raises(InsufficientBalanceError) as exc:
            recorder.add_payment(invoice_200.id, "60.01", "wallet")

        assert exc.value.available == Decimal("60.00")
        assert exc.value.requested == Decimal("60.01")
        assert store.get("customers", invoice_200.customer_id).wallet_balance == Decimal("60.00")
        assert store.list("payments") == []
        assert db_session.query(LedgerEvent).filter_by(event_type="WALLET_DEBITED").count() == 0

    def test_wallet_payment_debits_balance(self, db_session, store, recorder, invoice_200):
        recorder.add_payment(invoice_200.id, "60.00", "wallet")

        assert store.get("customers", invoice_200.customer_id).wallet_balance == Decimal("0.00")
        assert store.get("invoices", invoice_200.id).status == "unpaid"
        assert db_session.query(LedgerEvent).filter_by(event_type="WALLET_DEBITED").count() == 1

    def test_non_wallet_methods_leave_wallet_alone(self, store, recorder, invoice_200):
        recorder.add_payment(invoice_200.id, "100.00", "credit_card")
        assert store.get("customers", invoice_200.customer_id).wallet_balance == Decimal("60.00")


class TestPaymentReads:
    def test_payments_newest_first(self, recorder, invoice_200):
        first = recorder.add_payment(invoice_200.id, "10.00", "cash")
        second = recorder.add_payment(invoice_200.id, "20.00", "cash")
        assert [p.id for p in recorder.get_invoice_payments(invoice_200.id)] == [second.id, first.id]

    def test_summary(self, recorder, invoice_200):
        recorder.add_payment(invoice_200.id, "120.00", "cash")
        recorder.add_payment(invoice_200.id, "30.00", "upi")

        summary = recorder.get_payment_summary(invoice_200.id)
        assert summary.invoice_amount == Decimal("200.00")
        assert summary.total_paid == Decimal("150.00")
        assert summary.remaining == Decimal("50.00")
        assert summary.payment_count == 2

    def test_summary_remaining_never_negative(self, recorder, invoice_200):
        recorder.add_payment(invoice_200.id, "250.00", "cash")
        assert recorder.get_payment_summary(invoice_200.id).remaining == Decimal("0.00")

    def test_reads_for_unknown_invoice(self, recorder):
        with pytest.raises(NotFoundError):
            recorder.get_invoice_payments("missing")
        with pytest.raises(NotFoundError):
            recorder.get_payment_summary("missing")
