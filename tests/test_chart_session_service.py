import json

import pytest

from app.core.exceptions import ChartCorruptionError, ChartSaveError, InvalidToothError
from app.database import chart_store
from app.models.dental_chart import (
    DentitionMode,
    SurfaceName,
    TargetKind,
    ToothPresence,
    TreatmentStatus,
)
from app.schemas.dental_chart import ChartLoadRequest, PerioUpdate, SavedChartState
from app.services.chart_session_service import ChartSession


def _dump(teeth):
    return [t.model_dump() for t in teeth]


def _tooth(session, tooth_id):
    return next(t for t in session.teeth if t.id == tooth_id)


# ── Selección ────────────────────────────────────────

def test_new_session_starts_with_full_roster(session):
    assert len(session.teeth) == 52
    assert session.history.undo_depth == 0
    assert session.targets == []
    assert session.dentition_mode == DentitionMode.PERMANENT


def test_surface_selection_defaults_to_first_surface_condition(session):
    session.select_surface(16, SurfaceName.OCCLUSAL)

    assert session.target_kind == TargetKind.SURFACE
    assert session.selected_condition_id == "caries"


def test_condition_falls_back_when_target_changes(session):
    session.select_surface(16, SurfaceName.OCCLUSAL)
    session.select_tooth(16)

    assert session.target_kind == TargetKind.WHOLE
    assert session.selected_condition_id == "crown-pfm"


def test_root_selection_is_root_target(session):
    session.select_surface(16, SurfaceName.ROOT)
    assert session.target_kind == TargetKind.ROOT
    assert "abscess" in {c.id for c in session.available_conditions()}


def test_select_condition_rejects_unavailable(session):
    session.select_surface(16, SurfaceName.OCCLUSAL)
    assert session.select_condition("crown-pfm") is False
    assert session.select_condition("sealant") is True
    assert session.selected_condition_id == "sealant"


def test_multi_selection_toggles_membership(session):
    session.select_tooth(16, multi=True)
    session.select_tooth(26, multi=True)
    session.select_tooth(16, multi=True)
    assert session.targets == [26]


def test_select_unknown_tooth_raises(session):
    with pytest.raises(InvalidToothError):
        session.select_tooth(99)


# ── Mutaciones ───────────────────────────────────────

def test_submit_annotation_uses_selection(session):
    session.select_surface(16, SurfaceName.OCCLUSAL)
    result = session.submit_annotation(TreatmentStatus.PLANNED, note="  dolor al frío  ")

    assert result.applied_count == 1
    finding = _tooth(session, 16).surfaces[SurfaceName.OCCLUSAL].conditions[0]
    assert finding.type == "caries"
    assert finding.text == "dolor al frío"
    assert session.history.undo_depth == 1
    assert session.history.entries[0].text == "Caries (planned) agregado a 1 diente"
    assert session.selected_tooth_id is None


def test_submit_annotation_over_multi_selection(session):
    session.select_tooth(16, multi=True)
    session.select_tooth(26, multi=True)
    session.select_condition("crown-zirconia")

    result = session.submit_annotation(TreatmentStatus.COMPLETED)

    assert result.applied_count == 2
    assert [c.type for c in _tooth(session, 26).conditions] == ["crown-zirconia"]


def test_rejected_mutation_leaves_no_undo_entry(session):
    before = _dump(session.teeth)
    result = session.add_finding(
        [16], TargetKind.SURFACE, SurfaceName.OCCLUSAL, "crown-pfm", TreatmentStatus.PLANNED
    )

    assert result.applied_count == 0
    assert session.history.undo_depth == 0
    assert session.history.entries == []
    assert _dump(session.teeth) == before


def test_undo_redo_restore_snapshots(session):
    pristine = _dump(session.teeth)
    session.add_finding([11], TargetKind.WHOLE, None, "veneer", TreatmentStatus.EXISTING)
    charted = _dump(session.teeth)

    assert session.undo() is True
    assert _dump(session.teeth) == pristine
    assert session.history.entries[0].text == "Deshacer realizado"

    assert session.redo() is True
    assert _dump(session.teeth) == charted
    assert session.redo() is False


def test_remove_finding_logs_and_is_undoable(session):
    added = session.add_finding(
        [16], TargetKind.SURFACE, SurfaceName.MESIAL, "caries", TreatmentStatus.PLANNED
    )
    result = session.remove_finding(16, added.finding_ids[0], SurfaceName.MESIAL)

    assert result.removed is True
    assert session.history.entries[0].text == "Caries eliminado de superficie mesial del diente 16"
    assert session.history.undo_depth == 2

    session.undo()
    assert len(_tooth(session, 16).surfaces[SurfaceName.MESIAL].conditions) == 1


def test_remove_unknown_finding_is_noop(session):
    result = session.remove_finding(16, 12345)
    assert result.removed is False
    assert session.history.undo_depth == 0


def test_set_perio_on_missing_tooth_is_rejected(session):
    session.set_presence(36, ToothPresence.MISSING)
    assert session.set_perio(36, PerioUpdate(pocket_depth=[3, 3, 3, 3, 3, 3])) is False
    assert session.history.undo_depth == 1


def test_reset_requires_confirmation(session):
    session.set_presence(18, ToothPresence.MISSING)

    assert session.reset_all() is False
    assert _tooth(session, 18).presence == ToothPresence.MISSING

    assert session.reset_all(confirm=True) is True
    assert _tooth(session, 18).presence is None
    assert session.history.undo_depth == 2


def test_corrupted_history_leaves_teeth_unchanged(session):
    session.add_finding([21], TargetKind.WHOLE, None, "implant", TreatmentStatus.EXISTING)
    current = _dump(session.teeth)
    session.history._undo.append("{roto")

    with pytest.raises(ChartCorruptionError):
        session.undo()
    assert _dump(session.teeth) == current


def test_load_replaces_state_and_stacks(session):
    session.select_tooth(16)
    session.add_finding([16], TargetKind.WHOLE, None, "implant", TreatmentStatus.EXISTING)

    session.load(ChartLoadRequest())

    assert session.history.undo_depth == 0
    assert session.history.redo_depth == 0
    assert session.selected_tooth_id is None
    assert _tooth(session, 16).conditions == []


# ── Acción rápida ────────────────────────────────────

def test_arming_same_condition_twice_disarms(session):
    assert session.arm_quick_condition("caries") == "caries"
    assert session.arm_quick_condition("caries") is None
    assert session.arm_quick_condition("no-existe") is None


def test_quick_surface_click_applies_and_disarms(session):
    session.arm_quick_condition("caries")
    result = session.click_surface(16, SurfaceName.DISTAL)

    assert result.applied is True
    finding = _tooth(session, 16).surfaces[SurfaceName.DISTAL].conditions[0]
    assert finding.status == TreatmentStatus.PLANNED
    assert finding.text == "(Quick)"
    assert session.armed_condition is None


def test_quick_whole_condition_stays_armed_on_surface_click(session):
    session.arm_quick_condition("extraction")
    result = session.click_surface(16, SurfaceName.OCCLUSAL)

    assert result.applied is False
    assert session.armed_condition == "extraction"
    assert session.history.undo_depth == 0
    assert session.history.entries[0].text == "La acción rápida 'Extraction Needed' no aplica a superficies"

    result = session.click_tooth(16)
    assert result.applied is True
    assert session.armed_condition is None
    assert [c.type for c in _tooth(session, 16).conditions] == ["extraction"]


def test_click_without_armed_condition_selects(session):
    assert session.click_tooth(21) is None
    assert session.selected_tooth_id == 21


def test_cancel_disarms_before_clearing_selection(session):
    session.select_tooth(16)
    session.arm_quick_condition("caries")

    session.cancel()
    assert session.armed_condition is None
    assert session.selected_tooth_id == 16

    session.cancel()
    assert session.selected_tooth_id is None


# ── Guardado / exportación ───────────────────────────

async def test_save_hands_state_to_callback(session):
    session.add_finding([46], TargetKind.WHOLE, None, "root-canal", TreatmentStatus.COMPLETED)

    await session.save(chart_store.saver_for("pac-001"))
    stored = await chart_store.load("pac-001")

    assert stored is not None
    assert stored.version == 2
    assert _dump(stored.teeth) == _dump(session.teeth)
    assert session.history.entries[0].text == "Cambios del odontograma guardados"


async def test_failed_save_keeps_state(session):
    session.add_finding([46], TargetKind.WHOLE, None, "root-canal", TreatmentStatus.COMPLETED)
    before = _dump(session.teeth)

    def broken(state):
        raise RuntimeError("sin conexión")

    with pytest.raises(ChartSaveError):
        await session.save(broken)

    assert _dump(session.teeth) == before
    assert session.history.undo_depth == 1
    assert session.history.entries[0].text.startswith("Se intentó guardar")


def test_export_json_round_trip(session):
    session.add_finding(
        [16], TargetKind.SURFACE, SurfaceName.OCCLUSAL, "caries", TreatmentStatus.PLANNED
    )
    session.set_view(dentition_mode=DentitionMode.MIXED)

    payload = session.export_json()
    data = json.loads(payload)

    assert data["version"] == 2
    assert data["dentitionMode"] == "mixed"
    assert "isDeciduous" in data["teeth"][0]
    assert all("presence" not in t for t in data["teeth"])

    restored = ChartSession.from_saved_state("pac-001", SavedChartState.model_validate_json(payload))
    assert _dump(restored.teeth) == _dump(session.teeth)
    assert restored.dentition_mode == DentitionMode.MIXED
    assert restored.history.undo_depth == 0


def test_export_filename(session):
    filename = session.export_filename()
    assert filename.startswith("ana_p_rez_")
    assert filename.endswith("_v2.json")


# ── Mutaciones sin cambios ───────────────────────────

def test_unchanged_presence_is_not_committed(session):
    assert session.set_presence(16, ToothPresence.PRESENT) is True
    assert session.set_presence(16, ToothPresence.PRESENT) is False
    assert session.history.undo_depth == 1
    assert len(session.history.entries) == 1


def test_unchanged_perio_is_not_committed(session):
    update = PerioUpdate(pocket_depth=[3, 2, 3, 3, 2, 3])
    assert session.set_perio(26, update) is True
    assert session.set_perio(26, update) is False
    assert session.history.undo_depth == 1


def test_reset_of_pristine_chart_keeps_redo(session):
    session.add_finding([11], TargetKind.WHOLE, None, "veneer", TreatmentStatus.EXISTING)
    session.undo()

    assert session.reset_all(confirm=True) is False
    assert session.history.undo_depth == 0
    assert session.history.redo_depth == 1
