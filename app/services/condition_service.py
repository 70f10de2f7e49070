"""
Catálogo de condiciones clínicas.

Datos estáticos de solo lectura, construidos una vez al importar el
módulo. Cada condición declara a qué objetivo anatómico puede
aplicarse (superficie, diente completo, raíz o ambos).
"""

from app.models.dental_chart import AppliesTo, TargetKind, TreatmentStatus
from app.schemas.dental_chart import ConditionDefinition, DisplayHints, StatusStyle

_PLANNED = StatusStyle(
    surface_class="outline outline-blue-500 outline-1 outline-offset-[-1px]",
    tooth_class="outline outline-blue-500 outline-1",
)
_COMPLETED = StatusStyle(surface_class="opacity-80", tooth_class="opacity-80")

_PLANNED_COMPLETED = {TreatmentStatus.PLANNED: _PLANNED, TreatmentStatus.COMPLETED: _COMPLETED}
_PLANNED_ONLY = {TreatmentStatus.PLANNED: _PLANNED}


def _condition(
    id: str,
    name: str,
    abbreviation: str,
    color: str,
    applies_to: AppliesTo,
    *,
    style: str | None = None,
    icon: str | None = None,
    status_styles: dict | None = None,
) -> ConditionDefinition:
    return ConditionDefinition(
        id=id,
        name=name,
        abbreviation=abbreviation,
        color=color,
        applies_to=applies_to,
        display_hints=DisplayHints(
            whole_tooth_style=style,
            whole_tooth_icon=icon,
            status_styles=status_styles or {},
        ),
    )


S, W, R = AppliesTo.SURFACE, AppliesTo.WHOLE, AppliesTo.ROOT

CONDITIONS: tuple[ConditionDefinition, ...] = (
    # ── Superficie ───────────────────────────────────
    _condition("caries", "Caries", "C", "bg-red-500", S, status_styles=_PLANNED_COMPLETED),
    _condition("filling-composite", "Filling (Comp)", "Co", "bg-blue-500", S, status_styles=_PLANNED_COMPLETED),
    _condition("filling-amalgam", "Filling (Amal)", "Am", "bg-gray-500", S, status_styles=_PLANNED_COMPLETED),
    _condition("filling-gic", "Filling (GIC)", "GI", "bg-yellow-200", S, status_styles=_PLANNED_COMPLETED),
    _condition("filling-temp", "Filling (Temp)", "Tmp", "bg-pink-300", S, status_styles=_PLANNED_ONLY),
    _condition("sealant", "Sealant", "Se", "bg-green-300", S, status_styles=_PLANNED_COMPLETED),
    _condition("sensitivity", "Sensitivity", "S", "bg-indigo-400", S),
    _condition("fractured-cusp", "Fractured Cusp", "FrC", "bg-yellow-700 border border-dashed border-black", S),

    # ── Diente completo ──────────────────────────────
    _condition("crown-pfm", "Crown (PFM)", "PFM", "bg-yellow-400", W,
               style="border-2 border-yellow-600", status_styles=_PLANNED_COMPLETED),
    _condition("crown-zirconia", "Crown (Zr)", "Zr", "bg-stone-300", W,
               style="border-2 border-stone-500", status_styles=_PLANNED_COMPLETED),
    _condition("crown-gold", "Crown (Gold)", "Au", "bg-amber-400", W,
               style="border-2 border-amber-600", status_styles=_PLANNED_COMPLETED),
    _condition("crown-temp", "Crown (Temp)", "TCr", "bg-rose-300", W,
               style="border-2 border-rose-500", status_styles=_PLANNED_ONLY),
    _condition("implant", "Implant", "I", "bg-green-600", W,
               style="border-2 border-green-800",
               status_styles={TreatmentStatus.PLANNED: StatusStyle(tooth_class="outline outline-green-800 outline-2")}),
    _condition("missing", "Missing", "M", "bg-gray-400", W, style="opacity-20 pointer-events-none"),
    _condition("extraction", "Extraction Needed", "X", "bg-black text-white", W,
               style="border-2 border-red-700", icon="M1 1 L9 9 M9 1 L1 9"),
    _condition("root-canal", "RCT", "RC", "bg-orange-500", W,
               style="border-b-4 border-orange-500", status_styles=_PLANNED_COMPLETED),
    _condition("fractured-tooth", "Fractured Tooth", "FrT", "bg-yellow-700", W,
               style="border border-dashed border-black", icon="M2 8 L5 2 L8 8"),
    _condition("veneer", "Veneer", "V", "bg-teal-300", W,
               style="border-l-4 border-teal-500", status_styles=_PLANNED_COMPLETED),
    _condition("impacted", "Impacted", "Imp", "bg-pink-500", W, style="rotate-12 opacity-80"),
    _condition("unerupted", "Unerupted", "U", "bg-sky-200", W,
               style="opacity-60 border border-dashed border-sky-400"),
    _condition("mobility-1", "Mobility I", "Mo1", "bg-amber-500", W),
    _condition("mobility-2", "Mobility II", "Mo2", "bg-amber-600", W),
    _condition("mobility-3", "Mobility III", "Mo3", "bg-amber-700", W),
    _condition("bridge-pontic", "Bridge Pontic", "BP", "bg-purple-400", W,
               style="opacity-50 border-2 border-purple-600", status_styles=_PLANNED_COMPLETED),
    _condition("bridge-abutment", "Bridge Abutment", "BA", "bg-purple-600", W,
               style="border-2 border-purple-800", status_styles=_PLANNED_COMPLETED),

    # ── Raíz ─────────────────────────────────────────
    _condition("abscess", "Abscess", "Abs", "bg-red-700", R, status_styles=_PLANNED_ONLY),
)

_BY_ID: dict[str, ConditionDefinition] = {c.id: c for c in CONDITIONS}

# Compatibilidad objetivo → appliesTo para la selección en pantalla
SELECTABLE_FOR_TARGET: dict[TargetKind, frozenset[AppliesTo]] = {
    TargetKind.SURFACE: frozenset({AppliesTo.SURFACE, AppliesTo.BOTH}),
    TargetKind.ROOT: frozenset({AppliesTo.ROOT, AppliesTo.WHOLE, AppliesTo.BOTH}),
    TargetKind.WHOLE: frozenset({AppliesTo.WHOLE, AppliesTo.BOTH}),
}

# Compatibilidad que acepta el motor al aplicar un hallazgo. Un objetivo
# de diente completo también admite condiciones de raíz (ej: absceso).
APPLICABLE_FOR_TARGET: dict[TargetKind, frozenset[AppliesTo]] = {
    TargetKind.SURFACE: frozenset({AppliesTo.SURFACE, AppliesTo.BOTH}),
    TargetKind.ROOT: frozenset({AppliesTo.ROOT, AppliesTo.WHOLE, AppliesTo.BOTH}),
    TargetKind.WHOLE: frozenset({AppliesTo.WHOLE, AppliesTo.BOTH, AppliesTo.ROOT}),
}


def definition_of(condition_id: str | None) -> ConditionDefinition | None:
    if not condition_id:
        return None
    return _BY_ID.get(condition_id)


def available_conditions(target_kind: TargetKind | str) -> list[ConditionDefinition]:
    """Condiciones seleccionables para el objetivo indicado, en orden de catálogo."""
    allowed = SELECTABLE_FOR_TARGET[TargetKind(target_kind)]
    return [c for c in CONDITIONS if c.applies_to in allowed]


def is_applicable(definition: ConditionDefinition, target_kind: TargetKind) -> bool:
    return definition.applies_to in APPLICABLE_FOR_TARGET[target_kind]


def supports_surface(definition: ConditionDefinition) -> bool:
    return definition.applies_to in (AppliesTo.SURFACE, AppliesTo.BOTH)


def default_selection(
    available: list[ConditionDefinition],
    previous: str | None,
) -> str | None:
    """
    Condición seleccionada por defecto: conserva la anterior si sigue
    disponible, si no la primera de la lista (None si está vacía).
    """
    if previous and any(c.id == previous for c in available):
        return previous
    return available[0].id if available else None
