"""
Excepciones del odontograma.

Dos familias:
- Errores de dominio (ChartError y derivados), lanzados por el motor.
- Excepciones HTTP personalizadas para la API.
"""

from fastapi import HTTPException, status


# ── Errores de dominio ───────────────────────────────

class ChartError(Exception):
    """Error base del motor de odontograma."""


class UnknownConditionError(ChartError):
    """La condición solicitada no existe en el catálogo."""

    def __init__(self, condition_id: str):
        self.condition_id = condition_id
        super().__init__(f"Condición desconocida: '{condition_id}'")


class InvalidToothError(ChartError):
    """Número FDI fuera del rango válido."""

    def __init__(self, tooth_id: int):
        self.tooth_id = tooth_id
        super().__init__(
            f"Número de diente FDI inválido: {tooth_id}. "
            "Permanentes: 11-18, 21-28, 31-38, 41-48. "
            "Deciduos: 51-55, 61-65, 71-75, 81-85."
        )


class ChartCorruptionError(ChartError):
    """Una entrada del historial de deshacer/rehacer no se pudo deserializar."""


class ChartSaveError(ChartError):
    """El callback de guardado falló; el estado en memoria se conserva."""


class EmptyTargetError(ChartError):
    """Se pidió una mutación sin ningún diente objetivo."""

    def __init__(self, detail: str = "Debe seleccionar al menos un diente"):
        super().__init__(detail)


# ── Excepciones HTTP ─────────────────────────────────

class NotFoundException(HTTPException):
    """Recurso no encontrado (404)."""

    def __init__(self, resource: str = "Recurso", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} no encontrado",
        )


class ConflictException(HTTPException):
    """Conflicto de estado (409), ej: historial corrupto."""

    def __init__(self, detail: str = "El estado del recurso no permite la operación"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class ValidationException(HTTPException):
    """Error de validación de negocio (422)."""

    def __init__(self, detail: str = "Error de validación"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class SaveFailedException(HTTPException):
    """El guardado del odontograma falló (502)."""

    def __init__(self, detail: str = "No se pudo guardar el odontograma"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
        )
