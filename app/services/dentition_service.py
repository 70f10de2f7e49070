"""
Catálogo de dentición FDI: identificadores válidos, clasificación
por cuadrante/arcada/tipo y sucesión deciduo ↔ permanente.

Funciones totales: ninguna lanza excepción por un número fuera de
rango, devuelven None. La proyección de dentición las consulta de
forma oportunista.
"""

from app.models.dental_chart import SurfaceName, ToothType

# Dientes válidos FDI: permanentes (11-18, 21-28, 31-38, 41-48)
# y deciduos (51-55, 61-65, 71-75, 81-85)
PERMANENT_TEETH: frozenset[int] = frozenset(
    q * 10 + p for q in (1, 2, 3, 4) for p in range(1, 9)
)
DECIDUOUS_TEETH: frozenset[int] = frozenset(
    q * 10 + p for q in (5, 6, 7, 8) for p in range(1, 6)
)
VALID_TEETH: frozenset[int] = PERMANENT_TEETH | DECIDUOUS_TEETH

UPPER_QUADRANTS = frozenset({1, 2, 5, 6})
LOWER_QUADRANTS = frozenset({3, 4, 7, 8})

# Superficies comunes a todos los dientes
_BASE_SURFACES = (
    SurfaceName.MESIAL,
    SurfaceName.DISTAL,
    SurfaceName.BUCCAL,
    SurfaceName.LINGUAL,
)
_POSTERIOR_TYPES = frozenset({ToothType.MOLAR, ToothType.PREMOLAR})


def is_valid_tooth_id(tooth_id: object) -> bool:
    return isinstance(tooth_id, int) and not isinstance(tooth_id, bool) and tooth_id in VALID_TEETH


def quadrant_of(tooth_id: int) -> int | None:
    if not is_valid_tooth_id(tooth_id):
        return None
    return tooth_id // 10


def position_of(tooth_id: int) -> int | None:
    if not is_valid_tooth_id(tooth_id):
        return None
    return tooth_id % 10


def is_deciduous(tooth_id: int) -> bool:
    return tooth_id in DECIDUOUS_TEETH


def arch_of(tooth_id: int) -> str | None:
    """'upper' o 'lower' según el cuadrante."""
    quadrant = quadrant_of(tooth_id)
    if quadrant is None:
        return None
    return "upper" if quadrant in UPPER_QUADRANTS else "lower"


def tooth_type_for(tooth_id: int) -> ToothType | None:
    """
    Tipo anatómico por posición.
    Permanentes: 1-2 incisivo, 3 canino, 4-5 premolar, 6-8 molar.
    Deciduos: 1-2 incisivo, 3 canino, 4-5 molar (no hay premolares).
    """
    position = position_of(tooth_id)
    if position is None:
        return None
    if position <= 2:
        return ToothType.INCISOR
    if position == 3:
        return ToothType.CANINE
    if is_deciduous(tooth_id) or position >= 6:
        return ToothType.MOLAR
    return ToothType.PREMOLAR


def surfaces_for_type(tooth_type: ToothType) -> tuple[SurfaceName, ...]:
    """Set fijo de superficies: posteriores con oclusal, anteriores con incisal."""
    if tooth_type in _POSTERIOR_TYPES:
        return (SurfaceName.OCCLUSAL, *_BASE_SURFACES)
    return (SurfaceName.INCISAL, *_BASE_SURFACES)


# ── Sucesión deciduo ↔ permanente ────────────────────

def successor_of(deciduous_id: int) -> int | None:
    """
    Permanente que reemplaza a un deciduo (cuadrante - 4).
    Solo incisivos, caninos y primer molar deciduo (posiciones 1-4);
    el segundo molar deciduo (posición 5) no tiene sucesor modelado.
    """
    if not is_valid_tooth_id(deciduous_id) or not is_deciduous(deciduous_id):
        return None
    position = deciduous_id % 10
    if position > 4:
        return None
    return (deciduous_id // 10 - 4) * 10 + position


def predecessor_of(permanent_id: int) -> int | None:
    """Deciduo predecesor de un permanente (cuadrante + 4). Molares: None."""
    if not is_valid_tooth_id(permanent_id) or is_deciduous(permanent_id):
        return None
    position = permanent_id % 10
    if position > 5:
        return None
    return (permanent_id // 10 + 4) * 10 + position
