"""Configuracion basica del cliente.

Valores por defecto pensados para produccion. Las credenciales no viven
aqui: se pasan al construir `MarineClient` (o se leen del entorno con
`MarineConfig.from_env`).
"""

import os
from dataclasses import dataclass

__version__ = "0.1.0"

DEFAULT_API_URL = "https://api.dlcrm.local/v1/"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


@dataclass
class MarineConfig:
    """Config para el despachador y el transporte HTTP del cliente.

    Campos:
    - base_url: URL base; las rutas relativas se concatenan tal cual
    - retry_limit: reintentos maximos ante 503
    - retry_wait_s: espera inicial entre reintentos (crece x1.2)
    - retry_jitter: fraccion aleatoria extra sobre cada espera (0 = sin jitter)
    - timeout_s: timeout del transporte por intento
    - verify_tls: desactivar solo en entornos de prueba controlados
    """
    base_url: str = DEFAULT_API_URL
    user_email: str = ""
    api_key: str = ""
    retry_limit: int = 10
    retry_wait_s: float = 10.0
    retry_jitter: float = 0.0
    timeout_s: float = 30.0
    verify_tls: bool = True

    @classmethod
    def from_env(cls) -> "MarineConfig":
        """Construye la config desde variables de entorno MARINE_*."""
        return cls(
            base_url=os.environ.get("MARINE_API_URL", DEFAULT_API_URL),
            user_email=os.environ.get("MARINE_USER_EMAIL", ""),
            api_key=os.environ.get("MARINE_API_KEY", ""),
            retry_limit=max(0, _env_int("MARINE_RETRY_LIMIT", 10)),
            retry_wait_s=max(0.0, _env_float("MARINE_RETRY_WAIT_S", 10.0)),
            retry_jitter=max(0.0, _env_float("MARINE_RETRY_JITTER", 0.0)),
            timeout_s=_env_float("MARINE_TIMEOUT_S", 30.0),
            verify_tls=_env_bool("MARINE_VERIFY_TLS", True),
        )
