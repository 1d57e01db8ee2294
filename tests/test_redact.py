from __future__ import annotations

from ndzwatch._redact import mask, redact_for_log
from ndzwatch.models.pilot import PilotInfo


def test_mask_keeps_tail_and_email_domain() -> None:
    assert mask("+210155544433") == "***********33"
    assert mask("jane@example.com") == "**ne@example.com"
    assert mask("ab") == "**"


def test_redact_for_log_masks_personal_fields() -> None:
    payload = {
        "pilotId": "P-1",
        "firstName": "Jane",
        "last_name": "Doe",
        "phoneNumber": "+210155544433",
        "email": "jane@example.com",
        "nested": [{"EMAIL": "x@y.z"}],
    }

    redacted = redact_for_log(payload)

    assert redacted["pilotId"] == "P-1"
    assert redacted["firstName"] == "**ne"
    assert redacted["last_name"] == "*oe"
    assert redacted["phoneNumber"].endswith("33")
    assert "jane" not in redacted["email"]
    assert redacted["nested"][0]["EMAIL"] == "*@y.z"
    assert payload["firstName"] == "Jane"


def test_redact_for_log_handles_models() -> None:
    pilot = PilotInfo.model_validate({"pilotId": "P-1", "firstName": "Jane", "email": "jane@example.com"})

    redacted = redact_for_log(pilot)

    assert redacted["pilotId"] == "P-1"
    assert redacted["firstName"] == "**ne"
    assert "raw" not in redacted


def test_redact_for_log_truncates_long_strings() -> None:
    redacted = redact_for_log({"value": "x" * 600}, max_string=10)

    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]
