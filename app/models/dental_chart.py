"""
Enumeraciones del odontograma (sistema FDI).

Los valores de cada enum son los mismos que viajan en el JSON
exportado, por eso son strings en minúscula.
"""

import enum


class ToothType(str, enum.Enum):
    """Tipo anatómico del diente."""
    MOLAR = "molar"
    PREMOLAR = "premolar"
    CANINE = "canine"
    INCISOR = "incisor"


class ToothPresence(str, enum.Enum):
    """Presencia física del diente. Ausencia de valor equivale a PRESENT."""
    PRESENT = "present"
    MISSING = "missing"
    UNERUPTED = "unerupted"


class TreatmentStatus(str, enum.Enum):
    """Ciclo de vida de un hallazgo."""
    EXISTING = "existing"
    PLANNED = "planned"
    COMPLETED = "completed"
    REFERRED = "referred"


class SurfaceName(str, enum.Enum):
    """Superficies dentales."""
    OCCLUSAL = "occlusal"
    INCISAL = "incisal"
    MESIAL = "mesial"
    DISTAL = "distal"
    BUCCAL = "buccal"
    LINGUAL = "lingual"
    ROOT = "root"


class AppliesTo(str, enum.Enum):
    """Objetivo anatómico admitido por una condición del catálogo."""
    SURFACE = "surface"
    WHOLE = "whole"
    ROOT = "root"
    BOTH = "both"


class TargetKind(str, enum.Enum):
    """Tipo de objetivo de una mutación."""
    SURFACE = "surface"
    ROOT = "root"
    WHOLE = "whole"


class DentitionMode(str, enum.Enum):
    PERMANENT = "permanent"
    DECIDUOUS = "deciduous"
    MIXED = "mixed"


class ViewFilter(str, enum.Enum):
    """Filtro de lectura sobre el estado de los hallazgos."""
    ALL = "all"
    EXISTING = "existing"
    PLANNED = "planned"
    COMPLETED = "completed"


class ApexStatus(str, enum.Enum):
    """Estado apical en endodoncia."""
    SEALED = "sealed"
    OPEN = "open"
    LESION = "lesion"
    RESORPTION = "resorption"


# Sitios de sondaje periodontal, en el orden de los arrays de 6 posiciones
PROBING_SITES: tuple[str, ...] = ("MB", "B", "DB", "ML", "L", "DL")
