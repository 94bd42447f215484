"""
API key lookup for translation providers.

Secrets come from the process environment only. They are never written to
dictionaries, reports or logs; status displays use a masked form.

Usage:
    from letterriver_i18n.keys import KeyManager

    km = KeyManager()
    key = km.get_key("deepl")
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from letterriver_i18n.errors import MissingCredential


# Supported services and their env var names
SERVICES = {
    "deepl": "DEEPL_AUTH_KEY",
    "mymemory": "MYMEMORY_EMAIL",
}

# Services a backend cannot run without
REQUIRED_BY_BACKEND = {
    "deepl": "deepl",
}


@dataclass
class KeyInfo:
    """Information about an API key."""
    service: str
    env_var: str
    is_set: bool
    masked_value: str  # e.g., "abcd...wxyz"


class KeyManager:
    """Read provider secrets from an environment mapping."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    def get_key(self, service: str) -> Optional[str]:
        """Get the secret for a service, or None when unset or blank."""
        service = service.lower()
        env_var = SERVICES.get(service, f"{service.upper()}_API_KEY")
        value = self._environ.get(env_var, "")
        return value.strip() or None

    def get_key_info(self, service: str) -> KeyInfo:
        service = service.lower()
        env_var = SERVICES.get(service, f"{service.upper()}_API_KEY")
        key = self.get_key(service)
        return KeyInfo(
            service=service,
            env_var=env_var,
            is_set=key is not None,
            masked_value=mask_key(key) if key else "",
        )

    def list_keys(self) -> list[KeyInfo]:
        """List all known services and their key status."""
        return [self.get_key_info(service) for service in SERVICES]


def mask_key(key: str) -> str:
    """Mask a key for display (show first 4 and last 4 chars)."""
    if len(key) <= 12:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def get_key(service: str) -> Optional[str]:
    """Convenience function to get an API key."""
    return KeyManager().get_key(service)


def require_key(service: str) -> str:
    """Get API key or raise MissingCredential if not found."""
    key = get_key(service)
    if not key:
        raise MissingCredential(service, SERVICES.get(service, service.upper() + "_API_KEY"))
    return key


def check_backend_credentials(backend: str) -> None:
    """Fail fast when the chosen backend needs a secret that is not set."""
    service = REQUIRED_BY_BACKEND.get(backend.lower())
    if service:
        require_key(service)
