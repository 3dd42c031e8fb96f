"""Construccion de la cabecera Authorization (Basic)."""

import base64

from marine_client.core.errors import ConfigurationError


def build_authorization(user_email: str, api_key: str) -> str:
    if not user_email or not api_key:
        raise ConfigurationError("user email and API key are required to build Authorization")
    token = base64.b64encode(f"{user_email}:{api_key}".encode("utf-8")).decode("ascii")
    return "Basic " + token
