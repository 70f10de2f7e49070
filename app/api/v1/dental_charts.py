"""
Endpoints del odontograma: carga por paciente, hallazgos, presencia,
periodontograma, deshacer/rehacer, vista, guardado y exportación.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.core.exceptions import (
    ChartCorruptionError,
    ChartSaveError,
    ConflictException,
    EmptyTargetError,
    InvalidToothError,
    NotFoundException,
    SaveFailedException,
    UnknownConditionError,
    ValidationException,
)
from app.database import ChartStore, get_chart_store
from app.models.dental_chart import SurfaceName, TargetKind
from app.schemas.dental_chart import (
    AddFindingRequest,
    ArchView,
    ChartLoadRequest,
    ChartView,
    ConditionDefinition,
    MutationResponse,
    PerioSummary,
    PerioUpdate,
    PresenceUpdate,
    QuickFindingRequest,
    SavedChartState,
    ViewUpdate,
)
from app.services.chart_session_service import (
    ChartSession,
    ChartSessionRegistry,
    get_session_registry,
)
from app.services.condition_service import available_conditions

router = APIRouter()


def _session(
    patient_id: str,
    registry: ChartSessionRegistry = Depends(get_session_registry),
) -> ChartSession:
    return registry.get(patient_id)


def _mutation(session: ChartSession, applied: bool, message: str, **extra) -> MutationResponse:
    return MutationResponse(applied=applied, message=message, chart=session.to_view(), **extra)


# ── Catálogo ─────────────────────────────────────────

@router.get(
    "/conditions",
    response_model=list[ConditionDefinition],
    response_model_exclude_none=True,
)
async def list_conditions(target: TargetKind = Query(TargetKind.WHOLE)):
    """Condiciones seleccionables para un objetivo (superficie, raíz o diente)."""
    return available_conditions(target)


# ── Carga ────────────────────────────────────────────

@router.post(
    "/{patient_id}/load",
    response_model=ChartView,
    response_model_exclude_none=True,
)
async def load_chart(
    patient_id: str,
    data: ChartLoadRequest,
    registry: ChartSessionRegistry = Depends(get_session_registry),
):
    """
    Abre el odontograma de un paciente. Reemplaza cualquier estado
    previo: snapshot, pilas de deshacer y selección.
    """
    return registry.open(patient_id, data).to_view()


@router.post(
    "/{patient_id}/import",
    response_model=ChartView,
    response_model_exclude_none=True,
)
async def import_chart(
    patient_id: str,
    state: SavedChartState,
    registry: ChartSessionRegistry = Depends(get_session_registry),
):
    """Abre un odontograma a partir de un JSON exportado."""
    return registry.restore(patient_id, state).to_view()


@router.post(
    "/{patient_id}/restore",
    response_model=ChartView,
    response_model_exclude_none=True,
)
async def restore_chart(
    patient_id: str,
    registry: ChartSessionRegistry = Depends(get_session_registry),
    store: ChartStore = Depends(get_chart_store),
):
    """Reabre el último estado guardado del paciente."""
    state = await store.load(patient_id)
    if state is None:
        raise NotFoundException("Odontograma guardado")
    return registry.restore(patient_id, state).to_view()


@router.get(
    "/{patient_id}",
    response_model=ChartView,
    response_model_exclude_none=True,
)
async def get_chart(session: ChartSession = Depends(_session)):
    return session.to_view()


@router.get(
    "/{patient_id}/visible",
    response_model=ArchView,
    response_model_exclude_none=True,
)
async def get_visible_teeth(session: ChartSession = Depends(_session)):
    """Dientes visibles según el modo de dentición, por arcada, con el filtro de vista aplicado."""
    return session.arches()


@router.get(
    "/{patient_id}/perio-summary",
    response_model=PerioSummary,
    response_model_exclude_none=True,
)
async def get_perio_summary(session: ChartSession = Depends(_session)):
    return session.perio_summary()


# ── Hallazgos ────────────────────────────────────────

@router.post(
    "/{patient_id}/findings",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def add_finding(data: AddFindingRequest, session: ChartSession = Depends(_session)):
    try:
        result = session.add_finding(
            data.tooth_ids,
            data.target,
            data.surface,
            data.condition_id,
            data.status,
            data.details,
            data.note,
        )
    except (UnknownConditionError, EmptyTargetError) as exc:
        raise ValidationException(str(exc))
    return _mutation(
        session,
        result.applied_count > 0,
        result.message,
        applied_count=result.applied_count,
        finding_ids=result.finding_ids,
    )


@router.delete(
    "/{patient_id}/teeth/{tooth_id}/findings/{finding_id}",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def remove_finding(
    tooth_id: int,
    finding_id: int,
    surface: SurfaceName | None = Query(None),
    session: ChartSession = Depends(_session),
):
    result = session.remove_finding(tooth_id, finding_id, surface)
    if not result.removed:
        return _mutation(session, False, f"Hallazgo {finding_id} no encontrado en diente {tooth_id}")
    return _mutation(session, True, f"{result.removed_name} eliminado", applied_count=1)


@router.post(
    "/{patient_id}/quick-findings",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def apply_quick_finding(data: QuickFindingRequest, session: ChartSession = Depends(_session)):
    try:
        result = session.apply_quick_finding(data.tooth_id, data.surface, data.condition_id)
    except UnknownConditionError as exc:
        raise ValidationException(str(exc))
    return _mutation(session, result.applied, result.message, applied_count=int(result.applied))


# ── Presencia y periodontograma ──────────────────────

@router.put(
    "/{patient_id}/teeth/{tooth_id}/presence",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def set_presence(
    tooth_id: int,
    data: PresenceUpdate,
    session: ChartSession = Depends(_session),
):
    try:
        applied = session.set_presence(tooth_id, data.presence)
    except InvalidToothError as exc:
        raise NotFoundException("Diente", detail=str(exc))
    if not applied:
        return _mutation(session, False, f"El diente {tooth_id} ya está en estado {data.presence.value}")
    return _mutation(session, True, f"Presencia del diente {tooth_id}: {data.presence.value}", applied_count=1)


@router.put(
    "/{patient_id}/teeth/{tooth_id}/perio",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def set_perio(
    tooth_id: int,
    data: PerioUpdate,
    session: ChartSession = Depends(_session),
):
    try:
        applied = session.set_perio(tooth_id, data)
    except InvalidToothError as exc:
        raise NotFoundException("Diente", detail=str(exc))
    if not applied:
        return _mutation(session, False, f"Periodontograma no aplicado al diente {tooth_id} (ausente o sin cambios)")
    return _mutation(session, True, f"Periodontograma actualizado para diente {tooth_id}", applied_count=1)


@router.post(
    "/{patient_id}/reset",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def reset_chart(
    confirm: bool = Query(False, description="Confirmación explícita del operador"),
    session: ChartSession = Depends(_session),
):
    """Borra todas las anotaciones, periodontograma y presencias."""
    if not confirm:
        raise ValidationException("Debe confirmar el borrado completo (confirm=true)")
    if not session.reset_all(confirm=True):
        return _mutation(session, False, "El odontograma ya está vacío")
    return _mutation(session, True, "Odontograma reiniciado", applied_count=len(session.teeth))


# ── Deshacer / rehacer ───────────────────────────────

@router.post(
    "/{patient_id}/undo",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def undo(session: ChartSession = Depends(_session)):
    try:
        applied = session.undo()
    except ChartCorruptionError as exc:
        raise ConflictException(str(exc))
    return _mutation(session, applied, "Deshacer realizado" if applied else "Nada que deshacer")


@router.post(
    "/{patient_id}/redo",
    response_model=MutationResponse,
    response_model_exclude_none=True,
)
async def redo(session: ChartSession = Depends(_session)):
    try:
        applied = session.redo()
    except ChartCorruptionError as exc:
        raise ConflictException(str(exc))
    return _mutation(session, applied, "Rehacer realizado" if applied else "Nada que rehacer")


# ── Vista ────────────────────────────────────────────

@router.put(
    "/{patient_id}/view",
    response_model=ChartView,
    response_model_exclude_none=True,
)
async def update_view(data: ViewUpdate, session: ChartSession = Depends(_session)):
    session.set_view(
        dentition_mode=data.dentition_mode,
        view_filter=data.view_filter,
        show_perio_visuals=data.show_perio_visuals,
        show_perio_summary=data.show_perio_summary,
    )
    return session.to_view()


# ── Guardado / exportación ───────────────────────────

@router.post(
    "/{patient_id}/save",
    response_model=ChartView,
    response_model_exclude_none=True,
)
async def save_chart(
    patient_id: str,
    session: ChartSession = Depends(_session),
    store: ChartStore = Depends(get_chart_store),
):
    try:
        await session.save(store.saver_for(patient_id))
    except ChartSaveError as exc:
        raise SaveFailedException(f"No se pudo guardar el odontograma: {exc}")
    return session.to_view()


@router.get("/{patient_id}/export")
async def export_chart(session: ChartSession = Depends(_session)):
    """Exporta el odontograma como JSON indentado (formato de guardado)."""
    payload = session.export_json()
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{session.export_filename()}"'},
    )
