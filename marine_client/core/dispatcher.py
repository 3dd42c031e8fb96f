"""Despachador de peticiones autenticadas con reintentos ante 503.

Flujo por llamada:
1. Fusiona la cabecera Authorization con las opciones del llamador.
2. Resuelve la URL (absoluta `https://` tal cual, relativa concatenada a base_url).
3. Envia; mientras el status sea 503 y queden reintentos, espera y reenvia
   (la espera crece un 20% por reintento).
4. Status final distinto de 200 -> error tipado via error_mapper.
5. Status 200 -> JSON decodificado o texto del cuerpo.
"""

from __future__ import annotations

import copy
import json
import logging
import random
import time
from typing import Any, Callable, Dict, Optional, Protocol

from marine_client.config import MarineConfig, __version__
from marine_client.core.auth import build_authorization
from marine_client.core.error_mapper import error_for_response
from marine_client.core.errors import ParsingError, RequestCancelled, ValidationError
from marine_client.core.models import (
    CancelToken,
    Credentials,
    Outcome,
    RequestSpec,
    ResponseEnvelope,
    RetryState,
)

logger = logging.getLogger(__name__)

SECURE_PREFIX = "https://"
OVERLOADED = 503


class Transport(Protocol):
    def dispatch(self, method: str, url: str, headers: Dict[str, str], body: bytes | None = None) -> ResponseEnvelope:
        ...


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Fusion recursiva: los valores de `override` reemplazan a los de `base`.

    Solo se combinan recursivamente los dict; listas y escalares se reemplazan.
    """
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


class RequestDispatcher:
    def __init__(
        self,
        credentials: Credentials,
        cfg: MarineConfig,
        transport: Transport,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.credentials = credentials
        self.cfg = cfg
        self.transport = transport
        self._sleep = sleep or time.sleep
        self._sleep_injected = sleep is not None

    def resolve_url(self, path: str) -> str:
        if path.startswith(SECURE_PREFIX):
            return path
        return self.cfg.base_url + path

    def build_request(
        self,
        method: str,
        path: str,
        options: Optional[Dict[str, Any]] = None,
        decode_json: bool = True,
        return_raw: bool = True,
    ) -> RequestSpec:
        headers: Dict[str, str] = {}
        if self.credentials.is_complete():
            headers["Authorization"] = build_authorization(
                self.credentials.user_email, self.credentials.api_key
            )
        options = options or {}
        if "headers" in options and not isinstance(options["headers"], dict):
            raise ValidationError("options['headers'] must be a dict")
        merged = deep_merge({"headers": headers}, options)
        return RequestSpec(
            method=method.upper(),
            url=self.resolve_url(path),
            headers=dict(merged.get("headers") or {}),
            body=merged.get("body"),
            decode_json=decode_json,
            return_raw=return_raw,
        )

    def _wire(self, spec: RequestSpec) -> tuple[Dict[str, str], bytes | None]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"marine-client/{__version__}",
        }
        data = None
        if spec.body is not None:
            data = json.dumps(spec.body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        headers.update(spec.headers)
        return headers, data

    def _backoff(self, seconds: float, cancel: CancelToken | None) -> None:
        """Espera antes de reintentar.

        Con `sleep` inyectado siempre se usa ese hook (la cancelacion se
        comprueba despues); sin hook y con token, la espera es `cancel.wait`
        y termina antes si se cancela.
        """
        if self.cfg.retry_jitter > 0:
            seconds *= 1 + random.uniform(0, self.cfg.retry_jitter)
        if cancel is not None and not self._sleep_injected:
            if cancel.wait(seconds):
                raise RequestCancelled("request cancelled during retry backoff")
            return
        self._sleep(seconds)
        if cancel is not None and cancel.cancelled:
            raise RequestCancelled("request cancelled during retry backoff")

    def _send_once(self, spec: RequestSpec, headers: Dict[str, str], data: bytes | None,
                   cancel: CancelToken | None) -> ResponseEnvelope:
        if cancel is not None and cancel.cancelled:
            raise RequestCancelled(f"request cancelled before {spec.method} {spec.url}")
        logger.debug("%s %s", spec.method, spec.url)
        return self.transport.dispatch(spec.method, spec.url, headers, data)

    def execute(self, spec: RequestSpec, cancel: CancelToken | None = None) -> ResponseEnvelope:
        """Envia `spec` aplicando la politica de reintentos ante 503.

        Devuelve la respuesta final: la primera distinta de 503 o la ultima
        503 tras agotar los reintentos.
        """
        headers, data = self._wire(spec)
        response = self._send_once(spec, headers, data, cancel)
        state = RetryState(wait_seconds=self.cfg.retry_wait_s)
        while response.status_code == OVERLOADED and state.can_retry(self.cfg.retry_limit):
            logger.warning(
                "%s %s returned 503, retry %d/%d in %.1fs",
                spec.method, spec.url, state.attempts_made + 1, self.cfg.retry_limit, state.wait_seconds,
            )
            self._backoff(state.wait_seconds, cancel)
            response = self._send_once(spec, headers, data, cancel)
            state.advance()
        return response

    @staticmethod
    def resolve(spec: RequestSpec, response: ResponseEnvelope) -> Outcome:
        if response.status_code != 200:
            try:
                return Outcome(error=error_for_response(response))
            except ParsingError as e:
                return Outcome(error=e)
        if spec.decode_json:
            text = response.text()
            if not text.strip():
                return Outcome(value=None)
            try:
                return Outcome(value=json.loads(text))
            except ValueError as e:
                err = ParsingError(f"invalid JSON in response from {spec.url}: {e}", body=text)
                return Outcome(error=err)
        # return_raw no altera el resultado: siempre el texto del cuerpo
        return Outcome(value=response.text())

    def send(
        self,
        method: str,
        path: str,
        options: Optional[Dict[str, Any]] = None,
        decode_json: bool = True,
        return_raw: bool = True,
        cancel: CancelToken | None = None,
    ) -> Any:
        spec = self.build_request(method, path, options, decode_json, return_raw)
        response = self.execute(spec, cancel)
        return self.resolve(spec, response).unwrap()
