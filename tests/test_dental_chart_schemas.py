import pytest
from pydantic import ValidationError

from app.schemas.dental_chart import ChartLoadRequest, PatientInfo, SavedChartState, Tooth
from app.services.chart_mutation_service import build_tooth


def _missing_with_caries() -> dict:
    raw = build_tooth(16).model_dump(mode="json", by_alias=True)
    raw["presence"] = "missing"
    raw["surfaces"]["occlusal"]["conditions"] = [{
        "id": 1,
        "type": "caries",
        "color": "bg-red-500",
        "timestamp": "2026-01-01T00:00:00+00:00",
        "status": "planned",
    }]
    return raw


def test_missing_tooth_with_findings_is_rejected():
    with pytest.raises(ValidationError):
        Tooth.model_validate(_missing_with_caries())


@pytest.mark.parametrize(
    "field, value",
    [
        ("conditions", [{
            "id": 2, "type": "implant", "color": "bg-green-600",
            "timestamp": "2026-01-01T00:00:00+00:00", "status": "existing",
        }]),
        ("periodontal", {"pocketDepth": [3, 3, 3, 3, 3, 3]}),
    ],
)
def test_missing_tooth_rejects_whole_tooth_data(field, value):
    raw = build_tooth(16).model_dump(mode="json", by_alias=True)
    raw["presence"] = "missing"
    raw[field] = value
    with pytest.raises(ValidationError):
        Tooth.model_validate(raw)


def test_missing_tooth_without_data_is_valid():
    raw = build_tooth(16).model_dump(mode="json", by_alias=True)
    raw["presence"] = "missing"
    assert Tooth.model_validate(raw).is_missing


def test_load_rejects_duplicate_teeth():
    with pytest.raises(ValidationError):
        ChartLoadRequest(teeth=[build_tooth(11), build_tooth(11)])


def test_saved_state_rejects_duplicate_teeth():
    with pytest.raises(ValidationError):
        SavedChartState(
            version=2,
            patient_info=PatientInfo(),
            teeth=[build_tooth(21), build_tooth(36), build_tooth(21)],
        )
