"""
Proyecciones de lectura del odontograma: dientes visibles por modo
de dentición, división por arcadas, filtro de vista y resumen
periodontal. Nada de este módulo modifica el snapshot.
"""

from app.models.dental_chart import DentitionMode, ViewFilter
from app.schemas.dental_chart import (
    ArchView,
    Finding,
    PerioSummary,
    PerioToothSummary,
    Tooth,
)
from app.services.dentition_service import LOWER_QUADRANTS, UPPER_QUADRANTS, successor_of

DEEP_POCKET_MM = 5

# Lado que se muestra primero (a la izquierda): derecha del paciente
_FIRST_SIDE = frozenset({1, 5, 4, 8})


# ── Dentición visible ────────────────────────────────

def visible_teeth(teeth: list[Tooth], mode: DentitionMode | str) -> list[Tooth]:
    """
    Dientes a mostrar según el modo.

    En dentición mixta un deciduo se oculta cuando su sucesor
    permanente existe y no está ausente (exfoliación natural). Un
    sucesor 'unerupted' también lo oculta.
    """
    mode = DentitionMode(mode)
    if mode == DentitionMode.PERMANENT:
        return [t for t in teeth if not t.is_deciduous and not t.is_missing]
    if mode == DentitionMode.DECIDUOUS:
        return [t for t in teeth if t.is_deciduous and not t.is_missing]

    by_id: dict[int, Tooth] = {}
    for tooth in teeth:
        by_id.setdefault(tooth.id, tooth)
    shown: list[Tooth] = []
    seen: set[int] = set()
    for tooth in teeth:
        if tooth.id in seen or tooth.is_missing:
            continue
        if tooth.is_deciduous:
            successor = by_id.get(successor_of(tooth.id))
            if successor is not None and not successor.is_missing:
                continue
        shown.append(tooth)
        seen.add(tooth.id)
    return shown


def _midline_key(tooth: Tooth) -> tuple[int, int, bool]:
    position = tooth.id % 10
    if tooth.quadrant in _FIRST_SIDE:
        return (0, -position, tooth.is_deciduous)
    return (1, position, tooth.is_deciduous)


def arch_split(visible: list[Tooth]) -> ArchView:
    """
    Divide por arcada y ordena de izquierda a derecha en pantalla:
    superior 18→11 | 21→28, inferior 48→41 | 31→38 (y sus deciduos).
    """
    upper = [t for t in visible if t.quadrant in UPPER_QUADRANTS]
    lower = [t for t in visible if t.quadrant in LOWER_QUADRANTS]
    return ArchView(
        upper=sorted(upper, key=_midline_key),
        lower=sorted(lower, key=_midline_key),
    )


# ── Filtro de vista ──────────────────────────────────

def filter_findings(findings: list[Finding], view_filter: ViewFilter | str) -> list[Finding]:
    view_filter = ViewFilter(view_filter)
    if view_filter == ViewFilter.ALL:
        return list(findings)
    return [f for f in findings if f.status.value == view_filter.value]


def filtered_tooth(tooth: Tooth, view_filter: ViewFilter | str) -> Tooth:
    """Copia del diente con solo los hallazgos que pasan el filtro."""
    copy = tooth.model_copy(deep=True)
    copy.conditions = filter_findings(copy.conditions, view_filter)
    for surface in copy.surfaces.values():
        surface.conditions = filter_findings(surface.conditions, view_filter)
    return copy


# ── Periodontograma ──────────────────────────────────

def perio_summary(teeth: list[Tooth]) -> PerioSummary:
    """CAL por sitio, sangrado y bolsas profundas (≥ 5 mm) por diente."""
    rows: list[PerioToothSummary] = []
    recorded = 0
    bleeding = 0
    for tooth in teeth:
        perio = tooth.periodontal
        if perio is None or tooth.is_missing:
            continue
        bleeding_sites = sum(1 for b in perio.bleeding_on_probing if b)
        recorded += sum(1 for b in perio.bleeding_on_probing if b is not None)
        bleeding += bleeding_sites
        rows.append(PerioToothSummary(
            tooth_id=tooth.id,
            clinical_attachment_level=perio.clinical_attachment_level(),
            bleeding_sites=bleeding_sites,
            deep_sites=sum(1 for pd in perio.pocket_depth if pd is not None and pd >= DEEP_POCKET_MM),
        ))

    return PerioSummary(
        teeth=rows,
        recorded_sites=recorded,
        bleeding_percentage=round(100 * bleeding / recorded, 1) if recorded else None,
    )
