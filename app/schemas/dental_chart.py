"""
Schemas para el odontograma: modelo de datos del diagrama dental (FDI).

El JSON de guardado/exportación usa camelCase (alias) para ser
compatible con el formato del cliente; en Python se usan snake_case.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.models.dental_chart import (
    PROBING_SITES,
    AppliesTo,
    ApexStatus,
    DentitionMode,
    SurfaceName,
    TargetKind,
    ToothPresence,
    ToothType,
    TreatmentStatus,
    ViewFilter,
)
from app.services.dentition_service import is_valid_tooth_id

CAMEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}

PERIO_SITE_COUNT = len(PROBING_SITES)


def _six_nulls() -> list:
    return [None] * PERIO_SITE_COUNT


def _check_sites(v: list | None) -> list | None:
    if v is not None and len(v) != PERIO_SITE_COUNT:
        raise ValueError(
            f"Se esperan {PERIO_SITE_COUNT} sitios de sondaje ({', '.join(PROBING_SITES)}), "
            f"se recibieron {len(v)}"
        )
    return v


def _check_unique_teeth(teeth: list) -> list:
    seen: set[int] = set()
    repeated: set[int] = set()
    for tooth in teeth:
        if tooth.id in seen:
            repeated.add(tooth.id)
        seen.add(tooth.id)
    if repeated:
        raise ValueError(f"Dientes repetidos en el odontograma: {sorted(repeated)}")
    return teeth


# ── Hallazgos ────────────────────────────────────────

class FindingDetails(BaseModel):
    """Atributos clínicos libres. Los campos ausentes se omiten, nunca null."""
    model_config = CAMEL_CONFIG

    material: str | None = None
    shade: str | None = None
    procedure_code: str | None = None
    canals_filled: int | str | None = None
    fill_material: str | None = None
    apex_status: ApexStatus | None = None
    linked_tooth_ids: list[int] | None = None
    bridge_id: str | int | None = None


class Finding(BaseModel):
    """Hallazgo clínico sobre un diente o superficie. Inmutable salvo borrado."""
    model_config = {**CAMEL_CONFIG, "frozen": True}

    id: int
    text: str = ""
    type: str = Field(..., description="ID de condición del catálogo")
    color: str = Field(..., description="Color copiado del catálogo al crear")
    timestamp: str
    status: TreatmentStatus
    details: FindingDetails | None = None


class Surface(BaseModel):
    conditions: list[Finding] = Field(default_factory=list)


# ── Periodontograma ──────────────────────────────────

class PerioMeasurements(BaseModel):
    """Tres arrays paralelos de 6 sitios: MB, B, DB, ML, L, DL."""
    model_config = CAMEL_CONFIG

    pocket_depth: list[int | None] = Field(default_factory=_six_nulls)
    recession: list[int | None] = Field(default_factory=_six_nulls)
    bleeding_on_probing: list[bool | None] = Field(default_factory=_six_nulls)

    @field_validator("pocket_depth", "recession", "bleeding_on_probing")
    @classmethod
    def validate_sites(cls, v: list) -> list:
        return _check_sites(v)

    def clinical_attachment_level(self) -> list[int | None]:
        """CAL derivado: profundidad + recesión cuando ambos existen."""
        return [
            pd + rec if pd is not None and rec is not None else None
            for pd, rec in zip(self.pocket_depth, self.recession)
        ]


class PerioUpdate(BaseModel):
    """Actualización parcial: cada array presente reemplaza al guardado."""
    model_config = CAMEL_CONFIG

    pocket_depth: list[int | None] | None = None
    recession: list[int | None] | None = None
    bleeding_on_probing: list[bool | None] | None = None

    @field_validator("pocket_depth", "recession", "bleeding_on_probing")
    @classmethod
    def validate_sites(cls, v: list | None) -> list | None:
        return _check_sites(v)


# ── Diente ───────────────────────────────────────────

class Tooth(BaseModel):
    model_config = CAMEL_CONFIG

    id: int = Field(..., description="Número FDI del diente")
    name: str
    quadrant: int = Field(..., ge=1, le=8)
    is_deciduous: bool
    type: ToothType
    presence: ToothPresence | None = None
    conditions: list[Finding] = Field(default_factory=list)
    surfaces: dict[SurfaceName, Surface] = Field(default_factory=dict)
    periodontal: PerioMeasurements | None = None

    @field_validator("id")
    @classmethod
    def validate_tooth(cls, v: int) -> int:
        if not is_valid_tooth_id(v):
            raise ValueError(
                f"Número de diente FDI inválido: {v}. "
                "Permanentes: 11-18, 21-28, 31-38, 41-48. "
                "Deciduos: 51-55, 61-65, 71-75, 81-85."
            )
        return v

    @field_validator("surfaces")
    @classmethod
    def drop_empty_root(cls, v: dict[SurfaceName, Surface]) -> dict[SurfaceName, Surface]:
        # La raíz solo existe mientras tenga hallazgos
        root = v.get(SurfaceName.ROOT)
        if root is not None and not root.conditions:
            del v[SurfaceName.ROOT]
        return v

    @model_validator(mode="after")
    def validate_missing(self) -> "Tooth":
        if self.presence == ToothPresence.MISSING and (
            self.conditions
            or self.periodontal is not None
            or any(s.conditions for s in self.surfaces.values())
        ):
            raise ValueError(
                f"El diente {self.id} está ausente y no puede tener hallazgos ni periodontograma"
            )
        return self

    @property
    def is_missing(self) -> bool:
        return self.presence == ToothPresence.MISSING


class HistoryEntry(BaseModel):
    """Entrada del registro de actividad (append-only, más reciente primero)."""
    id: int
    timestamp: str
    text: str


class PatientInfo(BaseModel):
    """Datos del paciente; opacos para el motor, se conservan tal cual."""
    model_config = {**CAMEL_CONFIG, "extra": "allow"}

    name: str = ""
    id: str = ""
    dob: str | None = None
    last_visit: str | None = None
    next_appointment: str | None = None


# ── Catálogo de condiciones ──────────────────────────

class StatusStyle(BaseModel):
    model_config = CAMEL_CONFIG

    surface_class: str | None = None
    tooth_class: str | None = None
    icon: str | None = None


class DisplayHints(BaseModel):
    """Pistas de presentación; el motor no las interpreta."""
    model_config = CAMEL_CONFIG

    whole_tooth_style: str | None = None
    whole_tooth_icon: str | None = None
    status_styles: dict[TreatmentStatus, StatusStyle] = Field(default_factory=dict)


class ConditionDefinition(BaseModel):
    model_config = {**CAMEL_CONFIG, "frozen": True}

    id: str
    name: str
    abbreviation: str
    color: str
    applies_to: AppliesTo
    display_hints: DisplayHints = Field(default_factory=DisplayHints)


# ── Estado guardado / exportado ──────────────────────

class SavedChartState(BaseModel):
    """Contrato de guardado y de exportación JSON."""
    model_config = CAMEL_CONFIG

    version: int
    patient_info: PatientInfo
    teeth: list[Tooth]
    history: list[HistoryEntry] = Field(default_factory=list)
    dentition_mode: DentitionMode = DentitionMode.PERMANENT
    view_filter: ViewFilter = ViewFilter.ALL
    show_perio_visuals: bool = True
    show_perio_summary: bool = False

    @field_validator("teeth")
    @classmethod
    def validate_teeth(cls, v: list[Tooth]) -> list[Tooth]:
        return _check_unique_teeth(v)


# ── Requests ─────────────────────────────────────────

class ChartLoadRequest(BaseModel):
    """Carga inicial de un paciente. Sin dientes se usa el roster completo."""
    model_config = CAMEL_CONFIG

    teeth: list[Tooth] | None = None
    patient_info: PatientInfo = Field(default_factory=PatientInfo)
    history: list[HistoryEntry] = Field(default_factory=list)

    @field_validator("teeth")
    @classmethod
    def validate_teeth(cls, v: list[Tooth] | None) -> list[Tooth] | None:
        return _check_unique_teeth(v) if v is not None else v


class AddFindingRequest(BaseModel):
    model_config = CAMEL_CONFIG

    tooth_ids: list[int] = Field(..., min_length=1)
    target: TargetKind = TargetKind.WHOLE
    surface: SurfaceName | None = None
    condition_id: str
    status: TreatmentStatus = TreatmentStatus.EXISTING
    details: FindingDetails | None = None
    note: str = Field("", max_length=2000)

    @field_validator("tooth_ids")
    @classmethod
    def validate_teeth(cls, v: list[int]) -> list[int]:
        invalid = [t for t in v if not is_valid_tooth_id(t)]
        if invalid:
            raise ValueError(f"Números de diente FDI inválidos: {invalid}")
        return v

    @model_validator(mode="after")
    def validate_target(self) -> "AddFindingRequest":
        if self.target == TargetKind.SURFACE and self.surface is None:
            raise ValueError("Debe indicar la superficie para un hallazgo de superficie")
        if self.target != TargetKind.SURFACE and self.surface is not None:
            raise ValueError("Solo los hallazgos de superficie aceptan 'surface'")
        return self


class QuickFindingRequest(BaseModel):
    model_config = CAMEL_CONFIG

    tooth_id: int
    surface: SurfaceName | None = None
    condition_id: str


class PresenceUpdate(BaseModel):
    presence: ToothPresence


class ViewUpdate(BaseModel):
    model_config = CAMEL_CONFIG

    dentition_mode: DentitionMode | None = None
    view_filter: ViewFilter | None = None
    show_perio_visuals: bool | None = None
    show_perio_summary: bool | None = None


# ── Resultados del motor ─────────────────────────────

class AddFindingResult(BaseModel):
    teeth: list[Tooth]
    applied_count: int
    finding_ids: list[int] = Field(default_factory=list)
    message: str


class RemoveFindingResult(BaseModel):
    teeth: list[Tooth]
    removed: bool
    removed_name: str | None = None


class QuickFindingResult(BaseModel):
    teeth: list[Tooth]
    applied: bool
    message: str


# ── Responses ────────────────────────────────────────

class ArchView(BaseModel):
    model_config = CAMEL_CONFIG

    upper: list[Tooth]
    lower: list[Tooth]


class PerioToothSummary(BaseModel):
    model_config = CAMEL_CONFIG

    tooth_id: int
    clinical_attachment_level: list[int | None]
    bleeding_sites: int
    deep_sites: int


class PerioSummary(BaseModel):
    model_config = CAMEL_CONFIG

    teeth: list[PerioToothSummary]
    recorded_sites: int
    bleeding_percentage: float | None = None


class ChartView(BaseModel):
    """Estado actual del odontograma para la API."""
    model_config = CAMEL_CONFIG

    patient_id: str
    patient_info: PatientInfo
    teeth: list[Tooth]
    history: list[HistoryEntry]
    dentition_mode: DentitionMode
    view_filter: ViewFilter
    show_perio_visuals: bool
    show_perio_summary: bool
    undo_depth: int
    redo_depth: int
    armed_condition: str | None = None


class MutationResponse(BaseModel):
    """Resultado de una mutación: aplicada o rechazada con motivo."""
    model_config = CAMEL_CONFIG

    applied: bool
    applied_count: int = 0
    message: str
    finding_ids: list[int] = Field(default_factory=list)
    chart: ChartView
