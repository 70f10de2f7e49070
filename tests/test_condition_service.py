import pytest

from app.models.dental_chart import AppliesTo, TargetKind
from app.services.condition_service import (
    CONDITIONS,
    available_conditions,
    default_selection,
    definition_of,
    is_applicable,
)


def test_catalog_ids_are_unique():
    ids = [c.id for c in CONDITIONS]
    assert len(ids) == len(set(ids))


def test_definition_of_known_and_unknown():
    caries = definition_of("caries")
    assert caries is not None
    assert caries.applies_to == AppliesTo.SURFACE
    assert caries.color == "bg-red-500"
    assert definition_of("does-not-exist") is None
    assert definition_of(None) is None
    assert definition_of("") is None


@pytest.mark.parametrize(
    ("target", "allowed"),
    [
        ("surface", {AppliesTo.SURFACE, AppliesTo.BOTH}),
        ("root", {AppliesTo.ROOT, AppliesTo.WHOLE, AppliesTo.BOTH}),
        ("whole", {AppliesTo.WHOLE, AppliesTo.BOTH}),
    ],
)
def test_available_conditions_filters_by_target(target, allowed):
    result = available_conditions(target)
    assert result
    assert all(c.applies_to in allowed for c in result)


def test_available_conditions_membership():
    surface_ids = {c.id for c in available_conditions(TargetKind.SURFACE)}
    root_ids = {c.id for c in available_conditions(TargetKind.ROOT)}
    whole_ids = {c.id for c in available_conditions(TargetKind.WHOLE)}

    assert "caries" in surface_ids and "crown-pfm" not in surface_ids
    assert "abscess" in root_ids and "crown-pfm" in root_ids and "caries" not in root_ids
    assert "crown-pfm" in whole_ids and "abscess" not in whole_ids


def test_whole_target_accepts_root_conditions_when_applying():
    abscess = definition_of("abscess")
    assert is_applicable(abscess, TargetKind.WHOLE)
    assert not is_applicable(abscess, TargetKind.SURFACE)
    assert not is_applicable(definition_of("caries"), TargetKind.WHOLE)


def test_default_selection_keeps_previous_when_available():
    available = available_conditions(TargetKind.SURFACE)
    assert default_selection(available, "sealant") == "sealant"


def test_default_selection_falls_back_to_first():
    available = available_conditions(TargetKind.WHOLE)
    assert default_selection(available, "caries") == available[0].id
    assert default_selection(available, None) == available[0].id
    assert default_selection([], "caries") is None
