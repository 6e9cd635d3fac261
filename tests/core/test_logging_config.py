import json
import logging

import pytest

from aiact_compliance.core.config import AppSettings, ComplianceApiSettings
from aiact_compliance.core.logging_config import CustomJsonFormatter, setup_logging


def test_json_formatter_adds_context_fields():
    formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(module)s %(lineno)d %(message)s')
    record = logging.LogRecord("aiact_compliance.test", logging.WARNING, __file__, 12, "stage failed", None, None)

    payload = json.loads(formatter.format(record))

    assert payload["level"] == "WARNING"
    assert payload["lineno"] == 12
    assert payload["service"] == "aiact-compliance"
    assert payload["message"] == "stage failed"


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_installs_one_handler(root_logger):
    root = root_logger
    setup_logging("DEBUG")
    setup_logging("INFO")

    ours = [h for h in root.handlers if getattr(h, "_aiact_handler", False)]
    assert len(ours) == 1
    assert root.level == logging.INFO


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("COMPLIANCE_API_BASE_URL", "http://remote.test")
    monkeypatch.setenv("COMPLIANCE_API_REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("COMPLIANCE_CORS_ORIGINS", "http://a.test, http://b.test")

    assert ComplianceApiSettings().base_url == "http://remote.test"
    assert ComplianceApiSettings().request_timeout == 5.0
    assert AppSettings().cors_origin_list == ["http://a.test", "http://b.test"]
