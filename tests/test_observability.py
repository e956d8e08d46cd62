import json
import logging

import pytest

from observability.logging import ConsoleFormatter, JSONFormatter, get_structured_logger
from observability.prometheus_metrics import record_pipeline_run, sitescribe_registry


class _Capture(logging.Handler):

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    handler = _Capture()
    base = logging.getLogger("tests.structured")
    base.addHandler(handler)
    base.setLevel(logging.DEBUG)
    yield handler.records
    base.removeHandler(handler)


def test_bound_context_is_nested_in_json(captured):
    log = get_structured_logger("tests.structured").bind(url="https://acme.test")
    log.info("Corpus built", pages=3)

    record = captured[0]
    assert record.ctx_url == "https://acme.test"

    payload = json.loads(JSONFormatter("sitescribe").format(record))
    assert payload["message"] == "Corpus built"
    assert payload["service"] == "sitescribe"
    assert payload["context"] == {"url": "https://acme.test", "pages": 3}
    assert "ctx_pages" not in payload


def test_console_line_appends_context(captured):
    get_structured_logger("tests.structured", stage="writing").warning("Repairing")
    line = ConsoleFormatter(use_colors=False).format(captured[0])
    assert "Repairing" in line
    assert line.endswith("[stage=writing]")


def test_timed_block_records_duration_and_results(captured):
    log = get_structured_logger("tests.structured")
    with log.timed("Extraction", url="https://acme.test") as stats:
        stats["pages"] = 4

    record = captured[0]
    assert record.getMessage() == "Extraction"
    assert record.ctx_pages == 4
    assert record.ctx_duration >= 0


def test_timed_block_logs_and_reraises(captured):
    log = get_structured_logger("tests.structured")
    with pytest.raises(RuntimeError):
        with log.timed("Extraction"):
            raise RuntimeError("boom")

    assert captured[0].levelno == logging.ERROR
    assert captured[0].ctx_error == "boom"


def test_pipeline_run_counter():
    before = sitescribe_registry.get_sample_value("sitescribe_pipeline_runs_total", {"status": "success"}) or 0
    record_pipeline_run("success")
    after = sitescribe_registry.get_sample_value("sitescribe_pipeline_runs_total", {"status": "success"})
    assert after == before + 1
