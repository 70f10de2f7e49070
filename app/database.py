"""
Almacén de snapshots guardados del odontograma.

Implementación en memoria del callback de guardado; la persistencia
real (base de datos, almacenamiento remoto) la provee el integrador
reemplazando la dependencia get_chart_store().
"""

import logging

from app.schemas.dental_chart import SavedChartState

logger = logging.getLogger(__name__)


class ChartStore:
    """Guarda el último estado por paciente como JSON (copia profunda)."""

    def __init__(self) -> None:
        self._states: dict[str, str] = {}

    async def save(self, patient_id: str, state: SavedChartState) -> None:
        self._states[patient_id] = state.model_dump_json(by_alias=True, exclude_none=True)
        logger.info(f"Odontograma guardado: paciente={patient_id} version={state.version}")

    async def load(self, patient_id: str) -> SavedChartState | None:
        raw = self._states.get(patient_id)
        if raw is None:
            return None
        return SavedChartState.model_validate_json(raw)

    def saver_for(self, patient_id: str):
        """Callback de guardado ligado a un paciente."""

        async def _save(state: SavedChartState) -> None:
            await self.save(patient_id, state)

        return _save

    def clear(self) -> None:
        self._states.clear()


chart_store = ChartStore()


# ── Dependency: almacén de snapshots ─────────────────
async def get_chart_store() -> ChartStore:
    """Dependency de FastAPI que provee el almacén de snapshots."""
    return chart_store
