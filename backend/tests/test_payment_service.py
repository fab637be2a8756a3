from datetime import date
from decimal import Decimal

import pytest

from app import models
from app.core.errors import PaymentError, ValidationError
from app.schemas.payments import FarmerPayoutRequest, MillPaymentCreate
from app.services import load_service, payment_service


TODAY = date(2025, 3, 31)


@pytest.fixture
def two_loads(db_session, make_load):
    """Two loads for the same mill, 252400 receivable / 244296 payable each."""
    older = load_service.create_load(db_session, make_load(load_date=date(2025, 1, 1)), today=TODAY)
    newer = load_service.create_load(db_session, make_load(load_date=date(2025, 1, 5)), today=TODAY)
    return older, newer


def _mill_payment(mill_id, amount, **extra) -> MillPaymentCreate:
    return MillPaymentCreate(
        mill_id=mill_id, amount=Decimal(amount), payment_date=date(2025, 1, 20), **extra
    )


# =============================================================================
# Mill payments
# =============================================================================


def test_fifo_pays_oldest_load_first(db_session, parties, two_loads):
    older, newer = two_loads
    result = payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "300000"))

    assert [p.load_id for p in result.payments] == [older.id, newer.id]
    assert [p.amount for p in result.payments] == [Decimal("252400"), Decimal("47600")]
    assert all(p.allocation_method == "FIFO" for p in result.payments)
    assert result.unallocated == 0

    assert older.mill_payment_status == models.PaymentStatus.FULL
    assert older.mill_paid_amount == Decimal("252400")
    assert newer.mill_payment_status == models.PaymentStatus.PARTIAL
    assert payment_service.mill_outstanding(newer) == Decimal("204800")


def test_fifo_skips_fully_paid_loads(db_session, parties, two_loads):
    older, newer = two_loads
    payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "252400"))
    result = payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "1000"))

    assert [p.load_id for p in result.payments] == [newer.id]


def test_overpayment_is_refused(db_session, parties, two_loads):
    with pytest.raises(PaymentError):
        payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "504801"))

    assert payment_service.list_mill_payments(db_session, mill_id=parties.mill_id) == []
    assert all(ld.mill_paid_amount == 0 for ld in two_loads)


def test_exact_total_settles_every_load(db_session, parties, two_loads):
    payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "504800"))
    assert all(ld.mill_payment_status == models.PaymentStatus.FULL for ld in two_loads)


def test_mill_without_pending_loads(db_session, parties):
    with pytest.raises(PaymentError):
        payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "100"))


def test_manual_allocation_to_one_load(db_session, parties, two_loads):
    older, newer = two_loads
    result = payment_service.record_mill_payment(
        db_session, _mill_payment(parties.mill_id, "5000", load_id=newer.id)
    )

    assert [p.load_id for p in result.payments] == [newer.id]
    assert result.payments[0].allocation_method == "MANUAL"
    assert older.mill_paid_amount == 0


def test_manual_allocation_checks_the_mill(db_session, parties, two_loads):
    with pytest.raises(ValidationError):
        payment_service.record_mill_payment(
            db_session, _mill_payment(parties.mill_id + 100, "5000", load_id=two_loads[0].id)
        )


def test_deleting_a_payment_reopens_the_load(db_session, parties, two_loads):
    older, newer = two_loads
    result = payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "300000"))

    payment_service.delete_mill_payment(db_session, result.payments[1].id)
    assert newer.mill_paid_amount == 0
    assert newer.mill_payment_status == models.PaymentStatus.PENDING

    payment_service.delete_mill_payment(db_session, result.payments[0].id)
    assert older.mill_payment_status == models.PaymentStatus.PENDING
    assert payment_service.list_mill_payments(db_session, mill_id=parties.mill_id) == []


def test_derive_status():
    assert payment_service.derive_status(Decimal("100"), Decimal("0")) == models.PaymentStatus.PENDING
    assert payment_service.derive_status(Decimal("100"), Decimal("40")) == models.PaymentStatus.PARTIAL
    assert payment_service.derive_status(Decimal("100"), Decimal("100")) == models.PaymentStatus.FULL


# =============================================================================
# Farmer payouts
# =============================================================================


def test_early_payout_takes_credit_cut(db_session, two_loads):
    older, _ = two_loads
    quote = payment_service.preview_farmer_payout(db_session, older.id, date(2025, 1, 6))
    assert quote.outstanding == Decimal("244296")
    assert quote.credit_cut.credit_cut == Decimal("2443")

    payout = payment_service.record_farmer_payout(
        db_session, FarmerPayoutRequest(load_id=older.id, payment_date=date(2025, 1, 6))
    )

    assert payout.invoice_number == "INV-20250106-001"
    assert payout.gross_amount == Decimal("244296")
    assert payout.credit_cut_amount == Decimal("2443")
    assert payout.net_amount == Decimal("241853")

    assert older.farmer_payment_status == models.PaymentStatus.FULL
    assert older.farmer_paid_amount == Decimal("241853")
    assert older.credit_cut_amount == Decimal("2443")
    assert payment_service.farmer_outstanding(older) == 0
    # the stored settlement is not rewritten by the cut
    assert older.farmer_payable == Decimal("244296")


def test_late_payout_pays_in_full(db_session, two_loads):
    older, _ = two_loads
    payout = payment_service.record_farmer_payout(
        db_session, FarmerPayoutRequest(load_id=older.id, payment_date=date(2025, 1, 20))
    )
    assert payout.credit_cut_amount == 0
    assert payout.net_amount == Decimal("244296")


def test_invoice_numbers_count_per_day(db_session, two_loads):
    older, newer = two_loads
    day = date(2025, 1, 8)
    first = payment_service.record_farmer_payout(db_session, FarmerPayoutRequest(load_id=older.id, payment_date=day))
    second = payment_service.record_farmer_payout(db_session, FarmerPayoutRequest(load_id=newer.id, payment_date=day))

    assert (first.invoice_number, second.invoice_number) == ("INV-20250108-001", "INV-20250108-002")


def test_given_invoice_number_is_kept(db_session, two_loads):
    payout = payment_service.record_farmer_payout(
        db_session,
        FarmerPayoutRequest(load_id=two_loads[0].id, payment_date=date(2025, 1, 8), invoice_number=" BK-77 "),
    )
    assert payout.invoice_number == "BK-77"


def test_second_payout_is_refused(db_session, two_loads):
    older, _ = two_loads
    request = FarmerPayoutRequest(load_id=older.id, payment_date=date(2025, 1, 6))
    payment_service.record_farmer_payout(db_session, request)

    with pytest.raises(PaymentError):
        payment_service.record_farmer_payout(db_session, request)


def test_deleting_payout_reopens_the_load(db_session, two_loads):
    older, _ = two_loads
    payout = payment_service.record_farmer_payout(
        db_session, FarmerPayoutRequest(load_id=older.id, payment_date=date(2025, 1, 6))
    )

    payment_service.delete_farmer_payout(db_session, payout.id)

    assert older.farmer_payment_status == models.PaymentStatus.PENDING
    assert older.farmer_paid_amount == 0
    assert older.credit_cut_amount == 0
    assert older.farmer_paid_date is None
    assert payment_service.list_farmer_payouts(db_session, load_id=older.id) == []


def test_load_with_nothing_due_from_the_mill(db_session, parties, make_load):
    expenses = {
        "labour": {"amount": "1800", "payer": "MILL"},
        "weight_fee": {"amount": "200", "payer": "MILL"},
        "vehicle_rent": {"amount": "3000", "payer": "MILL"},
        "other": {"amount": "300000", "payer": "MILL"},
    }
    owed_to_mill = load_service.create_load(
        db_session, make_load(load_date=date(2025, 1, 1), expenses=expenses), today=TODAY
    )
    regular = load_service.create_load(db_session, make_load(load_date=date(2025, 1, 5)), today=TODAY)

    assert owed_to_mill.mill_receivable == Decimal("-47600")
    assert owed_to_mill.mill_payment_status == models.PaymentStatus.FULL
    assert owed_to_mill.farmer_payment_status == models.PaymentStatus.PENDING

    result = payment_service.record_mill_payment(db_session, _mill_payment(parties.mill_id, "252400"))

    assert [p.load_id for p in result.payments] == [regular.id]
    assert regular.mill_payment_status == models.PaymentStatus.FULL
    assert owed_to_mill.mill_paid_amount == 0


def test_derive_status_with_nothing_due():
    assert payment_service.derive_status(Decimal("0"), Decimal("0")) == models.PaymentStatus.FULL
    assert payment_service.derive_status(Decimal("-47600"), Decimal("0")) == models.PaymentStatus.FULL
