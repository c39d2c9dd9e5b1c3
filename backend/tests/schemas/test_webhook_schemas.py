"""Webhook Schemas — inbound payload shapes parsed once at the boundary.

Tests:
    - Board payload resolves to ChallengePayload or ColumnChangePayload
    - Column values parse into the right variant (string, date, label, text,
      label string, name); a cleared column (null or absent) reads as ""
    - Missing item ids are rejected
    - Ledger notifications parse job id and status change
    - Payment payloads require id, type and data.object.id
"""

import pytest
from pydantic import ValidationError

from app.schemas.webhooks import (
    ChallengePayload, ColumnChangePayload, DateValue, LabelString, LabelValue,
    LedgerWebhookPayload, NameValue, PaymentEventPayload, board_payload_adapter,
)


def test_challenge_payload():
    payload = board_payload_adapter.validate_python({"challenge": "abc"})
    assert isinstance(payload, ChallengePayload)
    assert payload.challenge == "abc"


def test_column_change_with_date_value():
    payload = board_payload_adapter.validate_python({
        "event": {
            "columnId": "date", "pulseId": 42,
            "value": {"date": "2025-03-14", "time": None},
        },
    })
    assert isinstance(payload, ColumnChangePayload)
    assert isinstance(payload.event.value, DateValue)
    assert payload.event.value_text == "2025-03-14"
    assert payload.event.board_item_id == "42"


def test_column_change_with_label_value():
    payload = board_payload_adapter.validate_python({
        "event": {
            "columnId": "status3", "pulseId": 42,
            "value": {"label": {"text": "Confirmed", "index": 1}},
        },
    })
    assert isinstance(payload.event.value, LabelValue)
    assert payload.event.value_text == "Confirmed"


def test_column_change_with_text_value():
    payload = board_payload_adapter.validate_python({
        "event": {"columnId": "text7", "itemId": "7", "value": {"text": "4521"}},
    })
    assert payload.event.value_text == "4521"


def test_column_change_string_value_is_stripped():
    payload = board_payload_adapter.validate_python({
        "event": {"columnId": "date", "pulseId": 1, "value": " 2025-03-14 "},
    })
    assert payload.event.value_text == "2025-03-14"


def test_unknown_value_shape_reads_as_empty():
    payload = board_payload_adapter.validate_python({
        "event": {"columnId": "numbers", "pulseId": 1, "value": {"number": 3}},
    })
    assert payload.event.value_text == ""


def test_column_change_requires_an_item_id():
    with pytest.raises(ValidationError):
        board_payload_adapter.validate_python({
            "event": {"columnId": "date", "value": "2025-03-14"},
        })


@pytest.mark.parametrize("event", [
    {"columnId": "person", "pulseId": 1, "value": None},
    {"columnId": "date", "pulseId": 1},
    {"columnId": "date", "pulseId": 1, "value": "   "},
])
def test_cleared_column_reads_as_empty(event):
    payload = board_payload_adapter.validate_python({"event": event})
    assert isinstance(payload, ColumnChangePayload)
    assert payload.event.value_text == ""


def test_column_change_with_label_string_value():
    payload = board_payload_adapter.validate_python({
        "event": {"columnId": "status3", "pulseId": 1, "value": {"label": "Confirmed"}},
    })
    assert isinstance(payload.event.value, LabelString)
    assert payload.event.value_text == "Confirmed"


def test_column_change_with_name_value():
    payload = board_payload_adapter.validate_python({
        "event": {"columnId": "status3", "pulseId": 1, "value": {"name": "No dice"}},
    })
    assert isinstance(payload.event.value, NameValue)
    assert payload.event.value_text == "No dice"


def test_unrecognized_board_payload_rejected():
    with pytest.raises(ValidationError):
        board_payload_adapter.validate_python({"something": "else"})


def test_payment_payload_parses_metadata_aliases():
    payload = PaymentEventPayload.model_validate({
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_1",
            "amount_total": 5000,
            "metadata": {"jobId": "4521", "paymentType": "deposit", "isPreAuth": "false"},
        }},
    })
    meta = payload.data.object.metadata
    assert (meta.job_id, meta.payment_type, meta.is_pre_auth) == ("4521", "deposit", "false")
    assert payload.data.object.amount_minor == 5000


def test_payment_payload_without_metadata_defaults_empty():
    payload = PaymentEventPayload.model_validate({
        "id": "evt_1", "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_1", "amount_received": 100}},
    })
    assert payload.data.object.metadata.job_id is None
    assert payload.data.object.amount_minor == 100


def test_payment_payload_requires_object_id():
    with pytest.raises(ValidationError):
        PaymentEventPayload.model_validate({
            "id": "evt_1", "type": "x", "data": {"object": {}},
        })


def test_ledger_payload_parses_status_change():
    payload = LedgerWebhookPayload.model_validate({
        "event": "job.status",
        "export_key": "k",
        "data": {"ID": 4521, "NAME": "Festival"},
        "changes": {"STATUS": {"from": "1", "to": "2"}},
    })
    assert payload.data.job_id == "4521"
    assert payload.changes.status.from_status == 1
    assert payload.changes.status.to_status == 2


def test_ledger_payload_fields_are_optional():
    payload = LedgerWebhookPayload.model_validate({})
    assert payload.event is None
    assert payload.data is None


def test_ledger_payload_rejects_non_numeric_status():
    with pytest.raises(ValidationError):
        LedgerWebhookPayload.model_validate(
            {"changes": {"STATUS": {"from": 1, "to": "booked"}}},
        )
