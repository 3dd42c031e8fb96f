from __future__ import annotations

import http.client
import logging
import socket
import ssl
from typing import Dict

import urllib.request
import urllib.error

from marine_client.core.models import ResponseEnvelope
from marine_client.core.errors import TransportError
from marine_client.config import MarineConfig

logger = logging.getLogger(__name__)


class HttpTransportClient:
    """Transporte por defecto sobre urllib.

    Los status HTTP (incluidos 4xx/5xx) se devuelven como ResponseEnvelope;
    solo los fallos de red se elevan como TransportError.
    """

    def __init__(self, cfg: MarineConfig) -> None:
        self.cfg = cfg
        self._ssl_context = None
        if not cfg.verify_tls:
            # Solo para entornos de prueba controlados
            ctx = ssl.create_default_context()
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
            self._ssl_context = ctx

    def dispatch(self, method: str, url: str, headers: Dict[str, str], body: bytes | None = None) -> ResponseEnvelope:
        req = urllib.request.Request(url, data=body, method=method)
        for name, value in headers.items():
            req.add_header(name, value)
        try:
            with urllib.request.urlopen(req, timeout=self.cfg.timeout_s, context=self._ssl_context) as resp:
                return ResponseEnvelope(
                    status_code=resp.status,
                    headers=dict(resp.headers.items()),
                    body=resp.read(),
                )
        except urllib.error.HTTPError as e:
            # Errores HTTP: el despachador decide (reintento 503 o mapeo de error)
            try:
                data = e.read()
            except OSError:
                data = b""
            return ResponseEnvelope(
                status_code=e.code,
                headers=dict(e.headers.items()) if e.headers else {},
                body=data,
            )
        except urllib.error.URLError as e:
            logger.debug("%s %s failed: %s", method, url, e.reason)
            raise TransportError(f"could not reach {url}: {e.reason}") from e
        except (socket.timeout, TimeoutError) as e:
            raise TransportError(f"timeout after {self.cfg.timeout_s}s calling {url}") from e
        except OSError as e:
            raise TransportError(str(e)) from e
        except http.client.HTTPException as e:
            # Linea de status invalida o cuerpo truncado
            raise TransportError(f"malformed HTTP response from {url}: {e!r}") from e
