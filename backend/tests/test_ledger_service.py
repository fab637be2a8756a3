from datetime import date
from decimal import Decimal

from app.schemas.payments import FarmerPayoutRequest, MillPaymentCreate
from app.services import ledger_service, load_service, payment_service


TODAY = date(2025, 3, 31)


def test_farmer_ledger_tracks_payouts_and_cuts(db_session, make_load, parties):
    paid = load_service.create_load(db_session, make_load(load_date=date(2025, 1, 1)), today=TODAY)
    open_ = load_service.create_load(db_session, make_load(load_date=date(2025, 1, 4)), today=TODAY)
    payment_service.record_farmer_payout(
        db_session, FarmerPayoutRequest(load_id=paid.id, payment_date=date(2025, 1, 6))
    )

    ledger = ledger_service.farmer_ledger(db_session, parties.farmer_id)

    assert ledger.farmer_name == "Ravi Kumar"
    assert ledger.total_loads == 2
    assert ledger.total_bags == 234
    assert ledger.total_payable == Decimal("488592")
    assert ledger.total_paid == Decimal("241853")
    assert ledger.total_credit_cut == Decimal("2443")
    assert ledger.outstanding == Decimal("244296")
    assert [p.load_id for p in ledger.pending_loads] == [open_.id]
    assert ledger.pending_loads[0].status == "PENDING"


def test_mill_ledger_lists_partial_loads(db_session, make_load, parties):
    older = load_service.create_load(db_session, make_load(load_date=date(2025, 1, 1)), today=TODAY)
    newer = load_service.create_load(db_session, make_load(load_date=date(2025, 1, 5)), today=TODAY)
    payment_service.record_mill_payment(
        db_session,
        MillPaymentCreate(mill_id=parties.mill_id, amount=Decimal("300000"), payment_date=date(2025, 1, 20)),
    )

    ledger = ledger_service.mill_ledger(db_session, parties.mill_id)

    assert ledger.mill_name == "Shree Rice Mill"
    assert ledger.total_receivable == Decimal("504800")
    assert ledger.total_received == Decimal("300000")
    assert ledger.outstanding == Decimal("204800")
    assert [p.load_id for p in ledger.pending_loads] == [newer.id]
    assert ledger.pending_loads[0].status == "PARTIAL"
    assert ledger.pending_loads[0].outstanding == Decimal("204800")
    assert older.id not in [p.load_id for p in ledger.pending_loads]


def test_ledger_for_missing_party_is_empty(db_session):
    ledger = ledger_service.farmer_ledger(db_session, 12345)
    assert ledger.farmer_name == "Unknown"
    assert ledger.total_loads == 0
    assert ledger.outstanding == 0


def test_load_profit_includes_credit_cut(db_session, make_load):
    load = load_service.create_load(db_session, make_load(), today=TODAY)
    before = ledger_service.load_profit(load)
    payment_service.record_farmer_payout(
        db_session, FarmerPayoutRequest(load_id=load.id, payment_date=date(2025, 1, 6))
    )
    after = ledger_service.load_profit(load)

    assert before.net_profit == Decimal("12870")  # 11700 margin + 1170 commission
    assert after.credit_cut_income == Decimal("2443")
    assert after.net_profit == Decimal("15313")


def test_profit_report_respects_date_range(db_session, make_load):
    load_service.create_load(db_session, make_load(load_date=date(2025, 1, 1)), today=TODAY)
    load_service.create_load(
        db_session,
        make_load(
            load_date=date(2025, 2, 1),
            expenses={"other": {"amount": "500", "payer": "COMPANY"}},
        ),
        today=TODAY,
    )
    load_service.create_load(db_session, make_load(load_date=date(2025, 3, 1)), today=TODAY)

    report = ledger_service.profit_report(
        db_session, start_date=date(2025, 1, 1), end_date=date(2025, 2, 1)
    )

    assert report.load_count == 2
    assert report.total_bags == 234
    assert report.commission_income == Decimal("2340")
    assert report.rate_margin == Decimal("23400")
    assert report.total_expenses == Decimal("500")
    assert report.net_profit == Decimal("25240")

    everything = ledger_service.profit_report(db_session)
    assert everything.load_count == 3
