"""
Enumeraciones del dominio, exportadas todas desde un único punto.
"""

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

__all__ = [
    "PROBING_SITES",
    "AppliesTo",
    "ApexStatus",
    "DentitionMode",
    "SurfaceName",
    "TargetKind",
    "ToothPresence",
    "ToothType",
    "TreatmentStatus",
    "ViewFilter",
]
