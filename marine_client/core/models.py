from __future__ import annotations

"""Modelos del SDK del cliente en formato simple.

Se usan desde el despachador y los transportes. Ninguno se conserva mas
alla de una llamada salvo `Credentials`, que es inmutable.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Credentials:
    """Credenciales estaticas (email de usuario + API key)."""
    user_email: str
    api_key: str

    def is_complete(self) -> bool:
        return bool(self.user_email) and bool(self.api_key)


@dataclass
class RequestSpec:
    """Peticion logica ya resuelta (URL absoluta y opciones fusionadas)."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    decode_json: bool = True
    return_raw: bool = True


@dataclass(frozen=True)
class ResponseEnvelope:
    """Respuesta del transporte: status, cabeceras y cuerpo en bytes."""
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class RetryState:
    """Estado de reintentos de una sola llamada.

    Campos:
    - attempts_made: reintentos ya realizados (no cuenta el primer envio)
    - wait_seconds: espera antes del proximo reintento
    """
    attempts_made: int = 0
    wait_seconds: float = 10.0
    growth: float = 1.2

    def can_retry(self, limit: int) -> bool:
        return self.attempts_made < limit

    def advance(self) -> None:
        self.attempts_made += 1
        self.wait_seconds *= self.growth


@dataclass
class Outcome:
    """Resultado de una llamada: valor decodificado o error tipado."""
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


class CancelToken:
    """Senal de cancelacion compartible entre hilos."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Espera hasta `timeout` segundos; devuelve True si se cancelo antes."""
        return self._event.wait(timeout)
