"""
Exception hierarchy for the dispatcher.

Per-file pipeline failures are NOT modelled as exceptions escaping a
batch. The orchestrator resolves them into skipped files. The classes
below are raised by port adapters (and caught by the orchestrator) or by
configuration and certificate loading (and propagated to the caller).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DispatchError(Exception):
    """Base exception for all dispatcher errors."""

    def __init__(
        self,
        message: str,
        *,
        file_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.file_name = file_name
        self.details = details or {}
        super().__init__(message)


class SigningError(DispatchError):
    """Raised when a signing backend cannot produce signed content."""


class CertificateError(DispatchError):
    """Raised when certificate or key material cannot be loaded."""


class ConfigurationError(DispatchError):
    """Raised when the dispatcher cannot be wired from its settings."""
