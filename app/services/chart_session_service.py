"""
Sesión de odontograma de un paciente.

Mantiene el snapshot confirmado, la selección en curso (diente,
superficie, multiselección, acción rápida armada), el historial y
el estado de vista. Toda mutación pasa por el motor y se confirma
con _commit(), que captura el estado previo en la pila de deshacer.
"""

import inspect
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import date

from app.config import get_settings
from app.core.exceptions import (
    ChartCorruptionError,
    ChartSaveError,
    InvalidToothError,
    NotFoundException,
)
from app.models.dental_chart import (
    DentitionMode,
    SurfaceName,
    TargetKind,
    ToothPresence,
    TreatmentStatus,
    ViewFilter,
)
from app.schemas.dental_chart import (
    AddFindingResult,
    ArchView,
    ChartLoadRequest,
    ChartView,
    ConditionDefinition,
    FindingDetails,
    PatientInfo,
    PerioSummary,
    PerioUpdate,
    QuickFindingResult,
    RemoveFindingResult,
    SavedChartState,
    Tooth,
)
from app.services import chart_mutation_service as engine
from app.services.chart_history_service import ChartHistory
from app.services.chart_projection_service import (
    arch_split,
    filtered_tooth,
    perio_summary,
    visible_teeth,
)
from app.services.condition_service import (
    available_conditions,
    default_selection,
    definition_of,
    supports_surface,
)

logger = logging.getLogger(__name__)

SaveCallback = Callable[[SavedChartState], Awaitable[None] | None]


class ChartSession:
    def __init__(self, patient_id: str, request: ChartLoadRequest | None = None):
        self.patient_id = patient_id
        self._settings = get_settings()
        self.dentition_mode = DentitionMode(self._settings.DEFAULT_DENTITION_MODE)
        self.view_filter = ViewFilter(self._settings.DEFAULT_VIEW_FILTER)
        self.show_perio_visuals = True
        self.show_perio_summary = False
        self.load(request or ChartLoadRequest())

    # ── Carga ────────────────────────────────────────

    def load(self, request: ChartLoadRequest) -> None:
        """Reemplaza por completo snapshot, historial y selección."""
        teeth = request.teeth if request.teeth is not None else engine.initial_roster()
        self.teeth: list[Tooth] = [t.model_copy(deep=True) for t in teeth]
        self.patient_info = request.patient_info.model_copy(deep=True)
        self.history = ChartHistory(self._settings.UNDO_STACK_LIMIT, request.history)
        self.clear_selection()
        self.armed_condition: str | None = None
        logger.info(f"Odontograma cargado: paciente={self.patient_id} dientes={len(self.teeth)}")

    @classmethod
    def from_saved_state(cls, patient_id: str, state: SavedChartState) -> "ChartSession":
        session = cls(
            patient_id,
            ChartLoadRequest(
                teeth=state.teeth,
                patient_info=state.patient_info,
                history=state.history,
            ),
        )
        session.dentition_mode = state.dentition_mode
        session.view_filter = state.view_filter
        session.show_perio_visuals = state.show_perio_visuals
        session.show_perio_summary = state.show_perio_summary
        return session

    # ── Selección ────────────────────────────────────

    def clear_selection(self) -> None:
        self.selected_tooth_id: int | None = None
        self.selected_surface: SurfaceName | None = None
        self.multi_selected: list[int] = []
        self.selected_condition_id: str | None = None
        self._refresh_condition()

    @property
    def target_kind(self) -> TargetKind:
        if self.selected_surface is None:
            return TargetKind.WHOLE
        if self.selected_surface == SurfaceName.ROOT:
            return TargetKind.ROOT
        return TargetKind.SURFACE

    @property
    def targets(self) -> list[int]:
        if self.multi_selected:
            return list(self.multi_selected)
        return [self.selected_tooth_id] if self.selected_tooth_id is not None else []

    def available_conditions(self) -> list[ConditionDefinition]:
        return available_conditions(self.target_kind)

    def _refresh_condition(self) -> None:
        self.selected_condition_id = default_selection(
            self.available_conditions(), self.selected_condition_id
        )

    def select_tooth(self, tooth_id: int, multi: bool = False) -> None:
        """Selección simple, o alterna la pertenencia a la multiselección."""
        self._require_tooth(tooth_id)
        self.selected_tooth_id = tooth_id
        if multi:
            if tooth_id in self.multi_selected:
                self.multi_selected.remove(tooth_id)
            else:
                self.multi_selected.append(tooth_id)
        else:
            self.multi_selected = []
            self.selected_surface = None
        self._refresh_condition()

    def select_surface(self, tooth_id: int, surface: SurfaceName) -> None:
        self._require_tooth(tooth_id)
        self.selected_tooth_id = tooth_id
        self.selected_surface = SurfaceName(surface)
        self.multi_selected = []
        self._refresh_condition()

    def select_condition(self, condition_id: str) -> bool:
        if not any(c.id == condition_id for c in self.available_conditions()):
            logger.info("Condición %s no disponible para objetivo %s", condition_id, self.target_kind.value)
            return False
        self.selected_condition_id = condition_id
        return True

    def arm_quick_condition(self, condition_id: str | None) -> str | None:
        """Arma una acción rápida; armar la que ya está armada la desarma."""
        if condition_id is not None and definition_of(condition_id) is None:
            return self.armed_condition
        self.armed_condition = None if condition_id == self.armed_condition else condition_id
        return self.armed_condition

    def cancel(self) -> None:
        """Escape: desarma la acción rápida o, si no hay, limpia la selección."""
        if self.armed_condition is not None:
            self.armed_condition = None
        else:
            self.clear_selection()

    def click_tooth(self, tooth_id: int, multi: bool = False) -> QuickFindingResult | None:
        """Con acción rápida armada la aplica al diente; si no, selecciona."""
        if self.armed_condition is None:
            self.select_tooth(tooth_id, multi=multi)
            return None
        result = self.apply_quick_finding(tooth_id, None, self.armed_condition)
        self.armed_condition = None
        return result

    def click_surface(self, tooth_id: int, surface: SurfaceName) -> QuickFindingResult | None:
        if self.armed_condition is None:
            self.select_surface(tooth_id, surface)
            return None
        definition = definition_of(self.armed_condition)
        result = self.apply_quick_finding(tooth_id, surface, self.armed_condition)
        # Una acción que no aplica a superficies queda armada para otro clic
        if supports_surface(definition):
            self.armed_condition = None
        return result

    # ── Mutaciones ───────────────────────────────────

    def _require_tooth(self, tooth_id: int) -> Tooth:
        tooth = next((t for t in self.teeth if t.id == tooth_id), None)
        if tooth is None:
            raise InvalidToothError(tooth_id)
        return tooth

    def _commit(self, teeth: list[Tooth]) -> bool:
        """Confirma el nuevo snapshot; sin cambios no toca las pilas."""
        if teeth == self.teeth:
            return False
        self.history.before_mutate(self.teeth)
        self.teeth = teeth
        return True

    def add_finding(
        self,
        tooth_ids: list[int],
        target: TargetKind,
        surface: SurfaceName | None,
        condition_id: str,
        status: TreatmentStatus,
        details: FindingDetails | None = None,
        note: str = "",
    ) -> AddFindingResult:
        result = engine.add_finding(
            self.teeth, tooth_ids, target, surface, condition_id, status, details, note.strip()
        )
        if result.applied_count:
            self._commit(result.teeth)
            self.history.log(result.message)
        else:
            logger.info(f"Hallazgo rechazado para paciente {self.patient_id}: {result.message}")
        return result

    def submit_annotation(
        self,
        status: TreatmentStatus,
        details: FindingDetails | None = None,
        note: str = "",
    ) -> AddFindingResult:
        """Aplica la condición seleccionada a la selección actual."""
        if self.selected_condition_id is None:
            return AddFindingResult(
                teeth=self.teeth, applied_count=0, message="No hay condición seleccionada"
            )
        result = self.add_finding(
            self.targets,
            self.target_kind,
            self.selected_surface if self.target_kind == TargetKind.SURFACE else None,
            self.selected_condition_id,
            status,
            details,
            note,
        )
        if result.applied_count:
            self.clear_selection()
        return result

    def remove_finding(
        self,
        tooth_id: int,
        finding_id: int,
        surface: SurfaceName | None = None,
    ) -> RemoveFindingResult:
        result = engine.remove_finding(self.teeth, tooth_id, finding_id, surface)
        if not result.removed:
            logger.debug(f"Hallazgo {finding_id} no encontrado en diente {tooth_id}")
            return result
        self._commit(result.teeth)
        where = f"superficie {SurfaceName(surface).value} del diente" if surface else "diente completo"
        self.history.log(f"{result.removed_name} eliminado de {where} {tooth_id}")
        return result

    def apply_quick_finding(
        self,
        tooth_id: int,
        surface: SurfaceName | None,
        condition_id: str,
    ) -> QuickFindingResult:
        result = engine.apply_quick_finding(
            self.teeth, tooth_id, surface, condition_id, self._settings.QUICK_FINDING_MARKER
        )
        if result.applied:
            self._commit(result.teeth)
        self.history.log(result.message)
        return result

    def set_presence(self, tooth_id: int, presence: ToothPresence) -> bool:
        self._require_tooth(tooth_id)
        presence = ToothPresence(presence)
        if not self._commit(engine.set_presence(self.teeth, tooth_id, presence)):
            logger.debug(f"Presencia del diente {tooth_id} sin cambios")
            return False
        self.history.log(f"Presencia del diente {tooth_id}: {presence.value}")
        return True

    def set_perio(self, tooth_id: int, update: PerioUpdate) -> bool:
        tooth = self._require_tooth(tooth_id)
        if tooth.is_missing:
            logger.info(f"Periodontograma ignorado: diente {tooth_id} ausente")
            return False
        if not self._commit(engine.set_perio(self.teeth, tooth_id, update)):
            return False
        self.history.log(f"Periodontograma actualizado para diente {tooth_id}")
        return True

    def reset_all(self, confirm: bool = False) -> bool:
        """Borra todo el odontograma. Requiere confirmación explícita."""
        if not confirm:
            return False
        self.clear_selection()
        if not self._commit(engine.reset_all(self.teeth)):
            return False
        self.history.log("Se borraron todas las anotaciones, periodontograma y presencias")
        return True

    def undo(self) -> bool:
        return self._step(self.history.undo, "Deshacer")

    def redo(self) -> bool:
        return self._step(self.history.redo, "Rehacer")

    def _step(self, action, label: str) -> bool:
        try:
            restored = action(self.teeth)
        except ChartCorruptionError:
            logger.error(f"{label} falló para paciente {self.patient_id}: historial corrupto")
            raise
        if restored is None:
            return False
        self.teeth = restored
        self.history.log(f"{label} realizado")
        return True

    # ── Vista ────────────────────────────────────────

    def set_view(
        self,
        dentition_mode: DentitionMode | None = None,
        view_filter: ViewFilter | None = None,
        show_perio_visuals: bool | None = None,
        show_perio_summary: bool | None = None,
    ) -> None:
        if dentition_mode is not None:
            self.dentition_mode = DentitionMode(dentition_mode)
        if view_filter is not None:
            self.view_filter = ViewFilter(view_filter)
        if show_perio_visuals is not None:
            self.show_perio_visuals = show_perio_visuals
        if show_perio_summary is not None:
            self.show_perio_summary = show_perio_summary

    def visible_teeth(self) -> list[Tooth]:
        return visible_teeth(self.teeth, self.dentition_mode)

    def arches(self, apply_filter: bool = True) -> ArchView:
        teeth = self.visible_teeth()
        if apply_filter:
            teeth = [filtered_tooth(t, self.view_filter) for t in teeth]
        return arch_split(teeth)

    def perio_summary(self) -> PerioSummary:
        return perio_summary(self.visible_teeth())

    def to_view(self) -> ChartView:
        return ChartView(
            patient_id=self.patient_id,
            patient_info=self.patient_info,
            teeth=self.teeth,
            history=self.history.entries,
            dentition_mode=self.dentition_mode,
            view_filter=self.view_filter,
            show_perio_visuals=self.show_perio_visuals,
            show_perio_summary=self.show_perio_summary,
            undo_depth=self.history.undo_depth,
            redo_depth=self.history.redo_depth,
            armed_condition=self.armed_condition,
        )

    # ── Guardado / exportación ───────────────────────

    def to_saved_state(self) -> SavedChartState:
        return SavedChartState(
            version=self._settings.CHART_STATE_VERSION,
            patient_info=self.patient_info.model_copy(deep=True),
            teeth=[t.model_copy(deep=True) for t in self.teeth],
            history=self.history.entries,
            dentition_mode=self.dentition_mode,
            view_filter=self.view_filter,
            show_perio_visuals=self.show_perio_visuals,
            show_perio_summary=self.show_perio_summary,
        )

    async def save(self, save_fn: SaveCallback) -> SavedChartState:
        """
        Entrega una copia del estado al callback de guardado. Si falla,
        el estado en memoria se conserva y se lanza ChartSaveError.
        """
        state = self.to_saved_state()
        try:
            outcome = save_fn(state)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.exception(f"Error al guardar odontograma del paciente {self.patient_id}")
            self.history.log("Se intentó guardar el odontograma, pero ocurrió un error")
            raise ChartSaveError(str(exc)) from exc
        self.history.log("Cambios del odontograma guardados")
        return state

    def export_json(self) -> str:
        payload = self.to_saved_state().model_dump_json(by_alias=True, exclude_none=True, indent=2)
        self.history.log("Odontograma exportado como JSON")
        return payload

    def export_filename(self) -> str:
        slug = re.sub(r"[^a-z0-9]", "_", self.patient_info.name, flags=re.IGNORECASE).lower()
        return f"{slug or 'dental_chart'}_{date.today().isoformat()}_v{self._settings.CHART_STATE_VERSION}.json"


class ChartSessionRegistry:
    """Sesiones abiertas por paciente (un único escritor por paciente)."""

    def __init__(self) -> None:
        self._sessions: dict[str, ChartSession] = {}

    def open(self, patient_id: str, request: ChartLoadRequest) -> ChartSession:
        session = ChartSession(patient_id, request)
        self._sessions[patient_id] = session
        return session

    def restore(self, patient_id: str, state: SavedChartState) -> ChartSession:
        session = ChartSession.from_saved_state(patient_id, state)
        self._sessions[patient_id] = session
        return session

    def get(self, patient_id: str) -> ChartSession:
        session = self._sessions.get(patient_id)
        if session is None:
            raise NotFoundException("Odontograma", detail=f"No hay odontograma abierto para el paciente {patient_id}")
        return session

    def clear(self) -> None:
        self._sessions.clear()


_registry = ChartSessionRegistry()


def get_session_registry() -> ChartSessionRegistry:
    return _registry
