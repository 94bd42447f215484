"""
Error taxonomy for the synchronization pipeline.

Only StructuralConflict, PersistenceFailure and MissingCredential ever
propagate out of the library. ProviderFailure and UnsupportedLanguage are
raised inside translation backends and converted to per-leaf null results
(or skip counts) at the adapter boundary.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all pipeline errors."""


class StructuralConflict(SyncError):
    """A patch would replace a leaf with a subtree (or the reverse)."""

    def __init__(self, path: str, detail: str = ""):
        self.path = path
        message = f"Structural conflict at '{path}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProviderFailure(SyncError):
    """A translation backend failed for a single request."""


class UnsupportedLanguage(SyncError):
    """The backend cannot translate into the requested language."""

    def __init__(self, backend: str, language: str):
        self.backend = backend
        self.language = language
        super().__init__(f"Backend '{backend}' does not support language '{language}'")


class PersistenceFailure(SyncError):
    """A dictionary, patch, backup or report could not be read or written."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class MissingCredential(SyncError):
    """A required provider secret is not configured."""

    def __init__(self, service: str, env_var: str):
        self.service = service
        self.env_var = env_var
        super().__init__(
            f"API key for '{service}' not found. "
            f"Set the {env_var} environment variable before running this command."
        )
