"""
Motor de mutaciones del odontograma.

Cada operación recibe el snapshot actual (lista de Tooth) y devuelve
uno nuevo; el snapshot de entrada nunca se modifica. Registrar el
historial y confirmar el resultado es responsabilidad del llamador.
"""

import logging
import time
from datetime import datetime, timezone

from app.core.exceptions import EmptyTargetError, InvalidToothError, UnknownConditionError
from app.models.dental_chart import (
    AppliesTo,
    SurfaceName,
    TargetKind,
    ToothPresence,
    TreatmentStatus,
)
from app.schemas.dental_chart import (
    AddFindingResult,
    Finding,
    FindingDetails,
    PerioMeasurements,
    PerioUpdate,
    QuickFindingResult,
    RemoveFindingResult,
    Surface,
    Tooth,
)
from app.services.condition_service import definition_of, is_applicable, supports_surface
from app.services.dentition_service import (
    VALID_TEETH,
    is_deciduous,
    is_valid_tooth_id,
    quadrant_of,
    surfaces_for_type,
    tooth_type_for,
)

logger = logging.getLogger(__name__)

_last_finding_id = 0


def new_finding_id() -> int:
    """ID único derivado del reloj (ms); estrictamente creciente en el proceso."""
    global _last_finding_id
    candidate = int(time.time() * 1000)
    if candidate <= _last_finding_id:
        candidate = _last_finding_id + 1
    _last_finding_id = candidate
    return candidate


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clone(teeth: list[Tooth]) -> list[Tooth]:
    return [t.model_copy(deep=True) for t in teeth]


def _find(teeth: list[Tooth], tooth_id: int) -> Tooth | None:
    return next((t for t in teeth if t.id == tooth_id), None)


# ── Roster ───────────────────────────────────────────

def build_tooth(tooth_id: int) -> Tooth:
    """Diente en estado prístino: sin presencia explícita ni hallazgos."""
    if not is_valid_tooth_id(tooth_id):
        raise InvalidToothError(tooth_id)
    tooth_type = tooth_type_for(tooth_id)
    return Tooth(
        id=tooth_id,
        name=str(tooth_id),
        quadrant=quadrant_of(tooth_id),
        is_deciduous=is_deciduous(tooth_id),
        type=tooth_type,
        surfaces={name: Surface() for name in surfaces_for_type(tooth_type)},
    )


def initial_roster() -> list[Tooth]:
    """Superconjunto permanente + deciduo (52 dientes), ordenado por número FDI."""
    return [build_tooth(tooth_id) for tooth_id in sorted(VALID_TEETH)]


# ── Hallazgos ────────────────────────────────────────

def _rejection_reason(
    tooth: Tooth,
    target_kind: TargetKind,
    surface: SurfaceName | None,
    applies_to: AppliesTo,
    applicable: bool,
) -> str | None:
    if tooth.is_missing:
        return "diente ausente"
    if not applicable:
        return f"condición de '{applies_to.value}' no aplicable a objetivo '{target_kind.value}'"
    if target_kind == TargetKind.SURFACE:
        if surface not in tooth.surfaces:
            return f"el diente no tiene superficie '{surface.value}'"
        return None
    if tooth.presence == ToothPresence.UNERUPTED and applies_to != AppliesTo.ROOT:
        return "diente no erupcionado"
    return None


def add_finding(
    teeth: list[Tooth],
    tooth_ids: list[int],
    target_kind: TargetKind,
    surface: SurfaceName | None,
    condition_id: str,
    status: TreatmentStatus,
    details: FindingDetails | None = None,
    note: str = "",
) -> AddFindingResult:
    """
    Agrega un hallazgo a cada diente objetivo.

    Los dientes que no admiten el hallazgo (ausente, condición
    incompatible, superficie inexistente, no erupcionado) se omiten
    sin error y no cuentan en applied_count.
    """
    definition = definition_of(condition_id)
    if definition is None:
        raise UnknownConditionError(condition_id)
    if not tooth_ids:
        raise EmptyTargetError()
    target_kind = TargetKind(target_kind)
    status = TreatmentStatus(status)
    surface = SurfaceName(surface) if surface is not None else None
    if target_kind == TargetKind.SURFACE and surface is None:
        raise EmptyTargetError("Debe indicar la superficie para un hallazgo de superficie")

    applicable = is_applicable(definition, target_kind)
    result = _clone(teeth)
    finding_ids: list[int] = []
    timestamp = now_iso()

    for tooth_id in dict.fromkeys(tooth_ids):
        tooth = _find(result, tooth_id)
        if tooth is None:
            logger.debug("Diente %s no está en el odontograma, se omite", tooth_id)
            continue
        reason = _rejection_reason(tooth, target_kind, surface, definition.applies_to, applicable)
        if reason:
            logger.info("%s no aplicado al diente %s: %s", definition.name, tooth_id, reason)
            continue

        finding = Finding(
            id=new_finding_id(),
            text=note,
            type=definition.id,
            color=definition.color,
            timestamp=timestamp,
            status=status,
            details=details.model_copy(deep=True) if details else None,
        )
        if target_kind == TargetKind.SURFACE:
            tooth.surfaces[surface].conditions.append(finding)
        elif target_kind == TargetKind.ROOT:
            tooth.surfaces.setdefault(SurfaceName.ROOT, Surface()).conditions.append(finding)
        else:
            tooth.conditions.append(finding)
        finding_ids.append(finding.id)

    count = len(finding_ids)
    if count:
        noun = "dientes" if count > 1 else "diente"
        message = f"{definition.name} ({status.value}) agregado a {count} {noun}"
    else:
        message = f"La condición '{definition.name}' no se pudo aplicar a la selección"
    return AddFindingResult(
        teeth=result if count else _clone(teeth),
        applied_count=count,
        finding_ids=finding_ids,
        message=message,
    )


def remove_finding(
    teeth: list[Tooth],
    tooth_id: int,
    finding_id: int,
    surface: SurfaceName | None = None,
) -> RemoveFindingResult:
    """Quita un hallazgo por id de la superficie indicada o del diente completo."""
    result = _clone(teeth)
    tooth = _find(result, tooth_id)
    if tooth is None:
        return RemoveFindingResult(teeth=result, removed=False)

    if surface is not None:
        surface = SurfaceName(surface)
        container = tooth.surfaces.get(surface)
        findings = container.conditions if container else []
    else:
        findings = tooth.conditions

    for index, finding in enumerate(findings):
        if finding.id == finding_id:
            del findings[index]
            # La raíz solo existe mientras tenga hallazgos
            if surface == SurfaceName.ROOT and not findings:
                del tooth.surfaces[SurfaceName.ROOT]
            definition = definition_of(finding.type)
            return RemoveFindingResult(
                teeth=result,
                removed=True,
                removed_name=definition.name if definition else finding.type,
            )
    return RemoveFindingResult(teeth=result, removed=False)


def apply_quick_finding(
    teeth: list[Tooth],
    tooth_id: int,
    surface: SurfaceName | None,
    condition_id: str,
    marker: str = "(Quick)",
) -> QuickFindingResult:
    """Atajo de un solo diente con estado 'planned' y nota fija."""
    definition = definition_of(condition_id)
    if definition is None:
        raise UnknownConditionError(condition_id)
    surface = SurfaceName(surface) if surface is not None else None
    if surface is not None and not supports_surface(definition):
        return QuickFindingResult(
            teeth=_clone(teeth),
            applied=False,
            message=f"La acción rápida '{definition.name}' no aplica a superficies",
        )

    added = add_finding(
        teeth,
        [tooth_id],
        TargetKind.SURFACE if surface is not None else TargetKind.WHOLE,
        surface,
        condition_id,
        TreatmentStatus.PLANNED,
        None,
        marker,
    )
    where = f"superficie {surface.value} del " if surface is not None else ""
    if added.applied_count:
        message = f"Acción rápida: {definition.name} (planned) en {where}diente {tooth_id}"
    else:
        message = f"Acción rápida fallida: {definition.name} en diente {tooth_id}"
    return QuickFindingResult(teeth=added.teeth, applied=bool(added.applied_count), message=message)


# ── Presencia y periodontograma ──────────────────────

def set_presence(teeth: list[Tooth], tooth_id: int, presence: ToothPresence) -> list[Tooth]:
    """Marca presencia. 'missing' borra hallazgos, superficies y periodontograma."""
    result = _clone(teeth)
    tooth = _find(result, tooth_id)
    if tooth is None:
        logger.debug("set_presence: diente %s no encontrado", tooth_id)
        return result

    tooth.presence = ToothPresence(presence)
    if tooth.presence == ToothPresence.MISSING:
        tooth.conditions = []
        tooth.periodontal = None
        tooth.surfaces.pop(SurfaceName.ROOT, None)
        for surface in tooth.surfaces.values():
            surface.conditions = []
    return result


def set_perio(teeth: list[Tooth], tooth_id: int, update: PerioUpdate) -> list[Tooth]:
    """
    Fusiona mediciones periodontales por array completo: un array
    enviado reemplaza al guardado, uno omitido se conserva (o seis
    nulls si no existía). No se fusiona sitio por sitio.
    """
    result = _clone(teeth)
    tooth = _find(result, tooth_id)
    if tooth is None or tooth.is_missing:
        logger.debug("set_perio ignorado para diente %s (inexistente o ausente)", tooth_id)
        return result

    current = tooth.periodontal or PerioMeasurements()
    tooth.periodontal = PerioMeasurements(
        pocket_depth=update.pocket_depth if update.pocket_depth is not None else current.pocket_depth,
        recession=update.recession if update.recession is not None else current.recession,
        bleeding_on_probing=(
            update.bleeding_on_probing
            if update.bleeding_on_probing is not None
            else current.bleeding_on_probing
        ),
    )
    return result


def reset_all(teeth: list[Tooth]) -> list[Tooth]:
    """Reconstruye cada diente a su forma prístina (conserva id, cuadrante y tipo)."""
    return [
        Tooth(
            id=tooth.id,
            name=tooth.name,
            quadrant=tooth.quadrant,
            is_deciduous=tooth.is_deciduous,
            type=tooth.type,
            surfaces={name: Surface() for name in surfaces_for_type(tooth.type)},
        )
        for tooth in teeth
    ]
