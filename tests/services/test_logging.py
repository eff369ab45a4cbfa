from __future__ import annotations

import io
import json
import logging

from guardian_shell.services.logging import configure_logging, redact


def test_redact():
    assert redact(None) == "-"
    assert redact("abc") == "***"
    assert redact("tok_abcdefghij") == "tok_ab..."


def test_json_output_inlines_extra_fields():
    stream = io.StringIO()
    configure_logging("INFO", json_output=True, stream=stream)
    logging.getLogger("guardian_shell.mfa.service").info("enrolling device", extra={"device_id": "device-001"})
    line = json.loads(stream.getvalue().strip())
    assert line["msg"] == "enrolling device"
    assert line["level"] == "INFO"
    assert line["logger"] == "guardian_shell.mfa.service"
    assert line["device_id"] == "device-001"
    assert "time" in line


def test_default_level_hides_info():
    stream = io.StringIO()
    configure_logging(stream=stream)
    logging.getLogger("guardian_shell.mfa.service").info("quiet")
    logging.getLogger("guardian_shell.mfa.service").warning("loud")
    output = stream.getvalue()
    assert "quiet" not in output
    assert "WARNING guardian_shell.mfa.service: loud" in output
