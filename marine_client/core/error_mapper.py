"""Traduccion de respuestas de error de la API a excepciones tipadas.

La API devuelve errores como `{"code": str, "message": str}`. El codigo se
busca en una tabla fija; si no aparece se usa `GenericServiceError`.
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Mapping, NoReturn, Type

from marine_client.core.errors import (
    FileMissing,
    GenericServiceError,
    InvalidValue,
    MalformedRequest,
    ParsingError,
    ResourceAlreadyExists,
    ResourceNotEmpty,
    ResourceNotFound,
)
from marine_client.core.models import ResponseEnvelope

logger = logging.getLogger(__name__)

SERVICE_NAME = "Dealers League Marine"

ERROR_MAPPINGS: Mapping[str, Type[GenericServiceError]] = MappingProxyType({
    "bad_json": MalformedRequest,
    "bad_value": InvalidValue,
    "duplicate_bucket_name": ResourceAlreadyExists,
    "not_found": ResourceNotFound,
    "file_not_present": FileMissing,
    "cannot_delete_non_empty_bucket": ResourceNotEmpty,
})


def error_for_response(response: ResponseEnvelope) -> GenericServiceError:
    """Construye (sin lanzar) el error tipado que corresponde a `response`.

    Lanza ParsingError si el cuerpo no es JSON.
    """
    text = response.text()
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise ParsingError(
            f"Received non-JSON error body from {SERVICE_NAME} (HTTP {response.status_code})", body=text
        ) from e

    code = message = ""
    if isinstance(payload, dict):
        code = "" if payload.get("code") is None else str(payload.get("code"))
        message = "" if payload.get("message") is None else str(payload.get("message"))

    error_cls = ERROR_MAPPINGS.get(code, GenericServiceError)
    logger.info("HTTP %s from %s mapped to %s (code=%r)",
                response.status_code, SERVICE_NAME, error_cls.__name__, code)
    return error_cls(
        f"Received error from {SERVICE_NAME}: {message}. Code: {code}",
        code=code,
        service_message=message,
        status_code=response.status_code,
    )


def raise_for_error_response(response: ResponseEnvelope) -> NoReturn:
    raise error_for_response(response)
