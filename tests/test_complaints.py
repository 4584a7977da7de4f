import httpx
import pytest

from airdesa import complaints, notify
from airdesa.errors import InvalidState, ValidationError
from airdesa.notify import Notification


@pytest.fixture
def customer(make_customer):
    return make_customer()


def _submit(session, code, **overrides):
    fields = dict(
        reporter_name="Budi",
        customer_code=code,
        category="Pipe Leak",
        detail="Pipe burst in front of the mosque",
        whatsapp="0812-3456-7890",
    )
    fields.update(overrides)
    return complaints.submit_complaint(session, **fields)


def test_submit_creates_pending_complaint(session, customer, monkeypatch):
    monkeypatch.setattr(notify, "ADMIN_WHATSAPP", "085700000001")
    c, outbox = _submit(session, customer.code.lower())
    assert c.status == "pending"
    assert c.customer_code == customer.code
    assert len(outbox) == 1
    assert outbox[0].phone == "6285700000001"
    assert f"#{c.id}" in outbox[0].message


def test_submit_without_admin_number_sends_nothing(session, customer, monkeypatch):
    monkeypatch.setattr(notify, "ADMIN_WHATSAPP", "")
    _, outbox = _submit(session, customer.code)
    assert outbox == []


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"customer_code": "HPM99999"}, "customer_code"),
        ({"category": "Noise"}, "category"),
        ({"detail": "too short"}, "detail"),
        ({"reporter_name": ""}, "reporter_name"),
    ],
)
def test_submit_validation(session, customer, overrides, field):
    with pytest.raises(ValidationError) as exc:
        _submit(session, customer.code, **overrides)
    assert field in exc.value.errors


def test_status_moves_forward_and_notifies_reporter(session, customer):
    c, _ = _submit(session, customer.code)

    c, outbox = complaints.update_status(session, c.id, "processing")
    assert c.status == "processing"
    assert outbox[0].phone == "6281234567890"
    assert "PROCESSING" in outbox[0].message

    c, outbox = complaints.update_status(session, c.id, "done", "Pipe replaced")
    assert c.admin_note == "Pipe replaced"
    assert "DONE" in outbox[0].message
    assert "Pipe replaced" in outbox[0].message


def test_same_status_only_updates_note(session, customer):
    c, _ = _submit(session, customer.code)
    c, outbox = complaints.update_status(session, c.id, "pending", "Checking schedule")
    assert outbox == []
    assert c.admin_note == "Checking schedule"


def test_status_cannot_go_back(session, customer):
    c, _ = _submit(session, customer.code)
    complaints.update_status(session, c.id, "done")
    with pytest.raises(InvalidState):
        complaints.update_status(session, c.id, "processing")


def test_unknown_status(session, customer):
    c, _ = _submit(session, customer.code)
    with pytest.raises(ValidationError):
        complaints.update_status(session, c.id, "closed")


def test_listing_and_pending_count(session, customer):
    first, _ = _submit(session, customer.code)
    _submit(session, customer.code, category="No Water", detail="No water since yesterday morning")
    complaints.update_status(session, first.id, "processing")

    assert complaints.pending_count(session) == 1
    out = complaints.list_complaints(session, category="No Water")
    assert out["pagination"]["total_items"] == 1
    assert out["items"][0]["category"] == "No Water"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0812-3456-7890", "6281234567890"),
        ("+62 812 3456 7890", "6281234567890"),
        ("812345678", "62812345678"),
        ("", ""),
    ],
)
def test_format_phone(raw, expected):
    assert notify.format_phone(raw) == expected


def test_dispatch_posts_to_gateway(monkeypatch):
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append((url, data, headers))
        return httpx.Response(200, request=httpx.Request("POST", url))

    monkeypatch.setattr(notify, "WHATSAPP_TOKEN", "secret")
    monkeypatch.setattr(notify.httpx, "post", fake_post)

    sent = notify.dispatch([Notification("6281234567890", "hello"), Notification("", "skipped")])

    assert sent == 1
    url, data, headers = calls[0]
    assert url == notify.WHATSAPP_API_URL
    assert data == {"target": "6281234567890", "message": "hello"}
    assert headers == {"Authorization": "secret"}


def test_dispatch_swallows_gateway_errors(monkeypatch):
    def failing_post(url, **kwargs):
        raise httpx.ConnectError("gateway down")

    monkeypatch.setattr(notify, "WHATSAPP_TOKEN", "secret")
    monkeypatch.setattr(notify.httpx, "post", failing_post)
    assert notify.dispatch([Notification("6281234567890", "hello")]) == 0


def test_no_token_skips_delivery(monkeypatch):
    monkeypatch.setattr(notify, "WHATSAPP_TOKEN", "")
    assert notify.send_whatsapp("6281234567890", "hello") is False
