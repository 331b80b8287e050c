from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from report_engine.models.config_models import EngineConfig
from report_engine.services.orchestrator import process_all
from report_engine.services.report import SCHEMA_PATH

"""Report payload contract test (contracts/report_schema.json).

Documents written by the batch runner must validate against the schema and
carry only finite numbers.
"""


@pytest.fixture()
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def _walk_numbers(value):
    if isinstance(value, bool):
        return
    if isinstance(value, (int, float)):
        yield value
    elif isinstance(value, dict):
        for v in value.values():
            yield from _walk_numbers(v)
    elif isinstance(value, list):
        for v in value:
            yield from _walk_numbers(v)


def test_written_documents_match_schema(temp_workdir: Path, sales_xlsx: Path, report_xlsx: Path, schema):
    result = process_all([sales_xlsx, report_xlsx], EngineConfig(output_directory="reports"))
    assert result.failed_files == 0

    for out in sorted((temp_workdir / "reports").glob("*.report.json")):
        # json.loads accepts NaN/Infinity, so numbers are checked explicitly
        document = json.loads(out.read_text(encoding="utf-8"))
        jsonschema.validate(document["report"], schema)
        assert document["report"]["meta"]["generatedAt"].endswith("Z")
        for number in _walk_numbers(document["report"]):
            assert number == number and number not in (float("inf"), float("-inf"))
        assert len(document["report"]["tables"][0]["rows"]) <= 30


def test_schema_rejects_unknown_report_type(schema):
    payload = {
        "meta": {"client": "a", "period": "p", "reportType": "weekly", "generatedAt": "2024-01-01T00:00:00Z"},
        "metrics": [],
        "tables": [],
        "charts": [],
        "trendAnalysis": None,
        "notes": "",
    }
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(payload, schema)


def test_schema_rejects_negative_forecast(schema):
    payload = {
        "meta": {"client": "a", "period": "p", "reportType": "sales", "generatedAt": "2024-01-01T00:00:00Z"},
        "metrics": [],
        "tables": [],
        "charts": [],
        "trendAnalysis": {
            "dateColumn": "date",
            "valueColumn": "v",
            "growthRates": {},
            "anomalies": {},
            "forecast": {"predictions": [{"predictedValue": -1}], "confidence": "low"},
            "trends": {},
            "movingAverage": [],
        },
        "notes": "",
    }
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(payload, schema)
