"""HTTP endpoints."""

import pytest

from app import create_app
from document_core.service import DocumentService

from .conftest import pdf_pages_text

OWNER = "owner-1"


@pytest.fixture
def service(allocator, asset_store, settings) -> DocumentService:
    return DocumentService(allocator, asset_store, settings)


@pytest.fixture
def client(settings, service):
    app = create_app(settings=settings, service=service)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def payload(profile, customer, billing):
    return {
        "owner_id": OWNER,
        "profile": profile.model_dump(),
        "customer": customer.model_dump(),
        "billing": billing.model_dump(),
        "source": {
            "number": "AB-1",
            "date": "2026-03-02",
            "tax_rate": "19",
            "positions": [
                {"type": "heading", "description": "Wohnzimmer"},
                {"type": "item", "description": "Wand streichen", "quantity": 2, "unitPrice": "100,00"},
                {"type": "item", "description": "Material", "quantity": "1", "unitPrice": 50},
                {"type": "subtotal"},
            ],
        },
    }


def test_invoices_order(client, payload) -> None:
    response = client.post("/invoices/from-order", json=payload)

    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")
    assert response.headers["X-Document-Number"] == "RE-42/26"
    assert response.headers["X-Gross-Total"] == "297.50"
    assert response.headers["X-Committed"] == "true"
    assert "Rechnung_RE_42_26_K_42.pdf" in response.headers["Content-Disposition"]


def test_direct_invoice_and_edit(client, payload) -> None:
    payload["source"]["number"] = None
    created = client.post("/invoices", json=payload)
    assert created.status_code == 200
    assert created.headers["X-Document-Number"] == "RE-42/26"

    payload["source"]["number"] = "RE-42/26"
    payload["source"]["date"] = "2026-04-01"
    edited = client.post("/invoices", json=payload)
    assert edited.headers["X-Document-Number"] == "RE-42/26"
    text = pdf_pages_text(edited.data)[0]
    assert "02.03.2026" in text
    assert "01.04.2026" not in text


def test_preview_takes_no_number(client, payload, allocator) -> None:
    payload["source"]["number"] = None
    payload["commit"] = False

    response = client.post("/offers", json=payload)

    assert response.status_code == 200
    assert response.headers["X-Committed"] == "false"
    assert "X-Document-Number" not in response.headers
    assert allocator.peek(OWNER, "offer", start=1000) == 1001


def test_idempotency_header_repeats_the_number(client, payload) -> None:
    payload["source"]["number"] = None
    headers = {"X-Idempotency-Key": "form-7"}

    first = client.post("/invoices", json=payload, headers=headers)
    second = client.post("/invoices", json=payload, headers=headers)

    assert first.headers["X-Document-Number"] == second.headers["X-Document-Number"] == "RE-42/26"


def test_generates_offer_and_confirmation(client, payload) -> None:
    payload["source"]["number"] = None
    offer = client.post("/offers", json=payload)
    assert offer.headers["X-Document-Number"] == "AN-1001"

    payload["source"]["number"] = "AN-1001"
    confirmation = client.post("/order-confirmations", json=payload)
    assert confirmation.status_code == 200
    assert confirmation.headers["X-Document-Number"] == "AB-1"


def test_rejects_non_json(client) -> None:
    assert client.post("/invoices", data="hallo", content_type="text/plain").status_code == 400
    assert client.post("/invoices", json=[1, 2]).status_code == 400


def test_rejects_invalid_payload(client, payload) -> None:
    payload["source"]["positions"] = "keine"
    assert client.post("/invoices", json=payload).status_code == 400


def test_rejects_out_of_range_amounts(client, payload) -> None:
    payload["source"]["positions"][1]["unitPrice"] = "1e27"
    assert client.post("/invoices", json=payload).status_code == 400


def test_missing_data_is_unprocessable(client, payload) -> None:
    del payload["billing"]
    response = client.post("/invoices", json=payload)
    assert response.status_code == 422
    assert b"Billing settings not found" in response.data


def test_unexpected_errors_are_hidden(client, payload, service, monkeypatch) -> None:
    def boom(kind, request):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(service, "generate", boom)
    response = client.post("/invoices", json=payload)
    assert response.status_code == 500
    assert b"disk on fire" not in response.data


def test_preview_next_number(client) -> None:
    response = client.get(f"/numbers/invoice/next?owner_id={OWNER}&start=41&prefix=RE-&suffix=/26")
    assert response.status_code == 200
    assert response.get_json() == {"kind": "invoice", "next_number": "RE-42/26"}
    # previewing twice does not consume the number
    assert client.get(f"/numbers/invoice/next?owner_id={OWNER}&start=41").get_json()["next_number"] == "42"


def test_preview_errors(client) -> None:
    assert client.get(f"/numbers/receipt/next?owner_id={OWNER}").status_code == 404
    assert client.get("/numbers/offer/next").status_code == 400
