"""Jerarquia de errores del dominio/SDK.

Se diferencian errores de configuracion y validacion local, de transporte
(red/timeouts) y errores reportados por la API de Dealers League Marine.
"""

from __future__ import annotations


class MarineError(Exception):
    """Error base del cliente."""
    pass


class ConfigurationError(MarineError):
    """Credenciales o configuracion ausentes/invalidas al construir el cliente."""
    pass


class ValidationError(MarineError):
    """Entrada invalida en el cliente (shape/tipos/rango)."""
    pass


class TransportError(MarineError):
    """Fallo de transporte (timeouts, DNS, conexion rechazada). No se reintenta."""
    pass


class RequestCancelled(MarineError):
    """La llamada se cancelo antes de resolverse."""
    pass


class ParsingError(MarineError):
    """El cuerpo de la respuesta no es JSON valido."""

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body


class GenericServiceError(MarineError):
    """La API respondio con un codigo no mapeado o sin codigo reconocible."""

    def __init__(self, message: str, code: str = "", service_message: str = "",
                 status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.service_message = service_message
        self.status_code = status_code


class MalformedRequest(GenericServiceError):
    pass


class InvalidValue(GenericServiceError):
    pass


class ResourceAlreadyExists(GenericServiceError):
    pass


class ResourceNotFound(GenericServiceError):
    pass


class FileMissing(GenericServiceError):
    pass


class ResourceNotEmpty(GenericServiceError):
    pass
