from decimal import Decimal


LOAD_BODY = {
    "load_date": "2025-01-01",
    "case": "CASE1",
    "gross_kg": "9000",
    "declared_bags": 120,
    "buy_rate_per_bag": "2100",
    "sell_rate_per_bag": "2200",
    "commission_policy": "FARMER",
    "expenses": {
        "labour": {"amount": "1800", "payer": "MILL"},
        "weight_fee": {"amount": "200", "payer": "MILL"},
        "vehicle_rent": {"amount": "3000", "payer": "MILL"},
    },
}


def _create_parties(client):
    farmer = client.post("/api/farmers", json={"name": "Ravi Kumar", "village": "Kharkhoda"})
    mill = client.post("/api/mills", json={"name": "Shree Rice Mill"})
    vehicle = client.post("/api/vehicles", json={"number": "hr38 ab 1234"})
    assert farmer.status_code == 201
    assert mill.status_code == 201
    assert vehicle.status_code == 201
    return farmer.json()["id"], mill.json()["id"], vehicle.json()["id"]


def _create_load(client, **overrides):
    farmer_id, mill_id, vehicle_id = _create_parties(client)
    body = {**LOAD_BODY, "farmer_id": farmer_id, "mill_id": mill_id, "vehicle_id": vehicle_id, **overrides}
    r = client.post("/api/loads", json=body, headers={"X-Actor": "clerk"})
    assert r.status_code == 201, r.text
    return r.json()


# =============================================================================
# Meta
# =============================================================================


def test_healthcheck_and_request_id_header(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["database"] == "ok"
    assert "uptime_seconds" in body
    assert "X-Request-ID" in r.headers


def test_liveness(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


# =============================================================================
# Settings
# =============================================================================


def test_settings_defaults_and_update(client):
    r = client.get("/api/settings")
    assert r.status_code == 200
    assert Decimal(r.json()["bag_weight_kg"]) == Decimal("75")

    r = client.put("/api/settings", json={"commission_per_bag": "12"}, headers={"X-Actor": "admin"})
    assert r.status_code == 200
    assert Decimal(r.json()["commission_per_bag"]) == Decimal("12")
    assert r.json()["version"] == 2


def test_invalid_settings_are_refused(client):
    r = client.put("/api/settings", json={"payout_rounding": 5})
    assert r.status_code == 409
    assert r.json()["code"] == "CONFIGURATION_ERROR"
    assert r.json()["field"] == "payout_rounding"

    assert client.get("/api/settings").json()["payout_rounding"] == 1


def test_settings_cannot_be_cleared(client):
    for field in ("default_commission_policy", "organization_name", "load_number_prefix"):
        r = client.put("/api/settings", json={field: None})
        assert r.status_code == 409, r.text
        assert r.json()["field"] == field

    assert client.get("/api/settings").json()["version"] == 1


# =============================================================================
# Master data
# =============================================================================


def test_vehicle_number_is_normalized_and_unique(client):
    r = client.post("/api/vehicles", json={"number": "pb12 cd5678"})
    assert r.status_code == 201
    assert r.json()["number"] == "PB12CD5678"

    dup = client.post("/api/vehicles", json={"number": "PB12CD5678"})
    assert dup.status_code == 400


def test_stale_update_returns_409(client):
    farmer_id = client.post("/api/farmers", json={"name": "Suresh Singh"}).json()["id"]

    ok = client.put(f"/api/farmers/{farmer_id}", json={"phone": "9876543211", "expected_version": 1})
    assert ok.status_code == 200
    assert ok.json()["version"] == 2

    stale = client.put(f"/api/farmers/{farmer_id}", json={"phone": "1", "expected_version": 1})
    assert stale.status_code == 409
    assert stale.json()["code"] == "STALE_RECORD"
    assert stale.json()["current_version"] == 2


def test_required_party_fields_cannot_be_nulled(client):
    farmer_id = client.post("/api/farmers", json={"name": "Ravi Kumar"}).json()["id"]
    mill_id = client.post("/api/mills", json={"name": "Shree Rice Mill"}).json()["id"]
    vehicle_id = client.post("/api/vehicles", json={"number": "HR38AB1234"}).json()["id"]

    for path, field in (
        (f"/api/farmers/{farmer_id}", "name"),
        (f"/api/mills/{mill_id}", "name"),
        (f"/api/vehicles/{vehicle_id}", "number"),
    ):
        r = client.put(path, json={field: None})
        assert r.status_code == 422, r.text
        assert r.json()["code"] == "VALIDATION_ERROR"
        assert [e["field"] for e in r.json()["errors"]] == [field]


def test_farmer_search_and_soft_delete(client):
    keep = client.post("/api/farmers", json={"name": "Ravi Kumar", "village": "Kharkhoda"}).json()["id"]
    gone = client.post("/api/farmers", json={"name": "Suresh Singh", "village": "Panipat"}).json()["id"]

    hits = client.get("/api/farmers", params={"q": "khar"}).json()
    assert [f["id"] for f in hits] == [keep]

    assert client.delete(f"/api/farmers/{gone}").status_code == 204
    assert [f["id"] for f in client.get("/api/farmers").json()] == [keep]
    assert client.get(f"/api/farmers/{gone}").json()["active"] is False


def test_missing_record_is_404(client):
    r = client.get("/api/loads/999")
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


# =============================================================================
# Loads
# =============================================================================


def test_preview_matches_saved_load(client):
    preview = client.post("/api/loads/preview", json=LOAD_BODY)
    assert preview.status_code == 200

    load = _create_load(client)
    assert load["load_number"] == "ORG-20250101-001"
    assert load["farmer_name"] == "Ravi Kumar"
    assert load["vehicle_number"] == "HR38AB1234"

    settlement = load["settlement"]
    assert settlement["net_bags"] == preview.json()["net_bags"] == 117
    assert Decimal(settlement["farmer_payable_rounded"]) == Decimal(preview.json()["farmer_payable_rounded"])
    assert Decimal(settlement["farmer_payable_rounded"]) == Decimal("244296")
    assert Decimal(settlement["mill_receivable_rounded"]) == Decimal("252400")

    assert client.get("/api/loads").json()[0]["id"] == load["id"]


def test_load_errors_are_reported_per_field(client):
    body = {**LOAD_BODY, "gross_kg": None, "declared_bags": 0}
    r = client.post("/api/loads", json=body)
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert {e["field"] for e in r.json()["errors"]} == {"gross_kg", "declared_bags"}


def test_future_load_date_is_refused(client):
    r = client.post("/api/loads", json={**LOAD_BODY, "load_date": "2100-01-01"})
    assert r.status_code == 422
    assert r.json()["errors"][0]["field"] == "date"


def test_invoice_and_profit(client):
    load = _create_load(client)

    invoice = client.get(f"/api/loads/{load['id']}/invoice").json()
    assert invoice["load_number"] == load["load_number"]
    assert [i["label"] for i in invoice["add_items"]] == ["Brokerage", "Freight/Vehicle Rent"]
    assert Decimal(invoice["final_amount"]) == Decimal("259336")

    profit = client.get(f"/api/loads/{load['id']}/profit").json()
    assert Decimal(profit["net_profit"]) == Decimal("12870")


def test_credit_cut_quote(client):
    load = _create_load(client)
    r = client.get(f"/api/loads/{load['id']}/credit-cut", params={"payment_date": "2025-01-06"})
    assert r.status_code == 200
    assert r.json()["eligible"] is True
    assert Decimal(r.json()["credit_cut"]) == Decimal("2443")


def test_recalculate_and_change_log(client):
    load = _create_load(client)
    r = client.put(
        f"/api/loads/{load['id']}",
        json={"gross_kg": "9075", "expected_version": 1},
        headers={"X-Actor": "clerk"},
    )
    assert r.status_code == 200
    assert r.json()["settlement"]["net_bags"] == 118
    assert r.json()["version"] == 2

    log = client.get("/api/change-log", params={"entity_type": "loads", "entity_id": load["id"]}).json()
    assert [e["action"] for e in log] == ["UPDATE", "INSERT"]
    assert all(e["actor"] == "clerk" for e in log)


def test_clearing_the_intake_case_is_a_field_error(client):
    load = _create_load(client)
    r = client.put(f"/api/loads/{load['id']}", json={"case": None})
    assert r.status_code == 422, r.text
    assert [e["field"] for e in r.json()["errors"]] == ["case"]


# =============================================================================
# Payments / reports
# =============================================================================


def test_mill_payment_and_ledger(client):
    load = _create_load(client)
    mill_id = load["mill_id"]

    r = client.post(
        "/api/payments/mill",
        json={"mill_id": mill_id, "amount": "100000", "payment_date": "2025-01-10"},
    )
    assert r.status_code == 201
    assert r.json()["loads"][0]["status"] == "PARTIAL"
    assert Decimal(r.json()["loads"][0]["outstanding"]) == Decimal("152400")

    over = client.post(
        "/api/payments/mill",
        json={"mill_id": mill_id, "amount": "200000", "payment_date": "2025-01-11"},
    )
    assert over.status_code == 409
    assert over.json()["code"] == "PAYMENT_REFUSED"

    ledger = client.get(f"/api/ledgers/mills/{mill_id}").json()
    assert Decimal(ledger["outstanding"]) == Decimal("152400")

    # a recorded payment freezes the settlement
    blocked = client.put(f"/api/loads/{load['id']}", json={"gross_kg": "9100"})
    assert blocked.status_code == 409


def test_farmer_payout_flow(client):
    load = _create_load(client)

    quote = client.get(
        "/api/payments/farmer/preview", params={"load_id": load["id"], "payment_date": "2025-01-06"}
    ).json()
    assert Decimal(quote["credit_cut"]) == Decimal("2443")
    assert Decimal(quote["net_payment"]) == Decimal("241853")

    r = client.post("/api/payments/farmer", json={"load_id": load["id"], "payment_date": "2025-01-06"})
    assert r.status_code == 201
    assert r.json()["invoice_number"] == "INV-20250106-001"

    again = client.post("/api/payments/farmer", json={"load_id": load["id"], "payment_date": "2025-01-06"})
    assert again.status_code == 409

    ledger = client.get(f"/api/ledgers/farmers/{load['farmer_id']}").json()
    assert Decimal(ledger["outstanding"]) == 0
    assert Decimal(ledger["total_credit_cut"]) == Decimal("2443")

    assert client.delete(f"/api/payments/farmer/{r.json()['id']}").status_code == 204
    assert client.get(f"/api/loads/{load['id']}").json()["farmer_payment_status"] == "PENDING"


def test_profit_report(client):
    _create_load(client)
    r = client.get("/api/reports/profit", params={"start_date": "2025-01-01", "end_date": "2025-01-31"})
    assert r.status_code == 200
    assert r.json()["load_count"] == 1
    assert Decimal(r.json()["net_profit"]) == Decimal("12870")

    bad = client.get("/api/reports/profit", params={"start_date": "2025-02-01", "end_date": "2025-01-01"})
    assert bad.status_code == 400
