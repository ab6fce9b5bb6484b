"""
X.509 certificate loading.

Certificates are accepted as PEM or DER. The dispatcher never validates
trust chains: the certificate handed to a batch is used as-is.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from cryptography import x509

from dispatcher.app.cache.read_through import ReadThroughCache
from dispatcher.app.errors import CertificateError

logger = logging.getLogger(__name__)

CERTIFICATE_SUFFIXES = (".pem", ".crt", ".der")


def load_certificate(data: bytes) -> x509.Certificate:
    """Parse a single X.509 certificate from PEM or DER bytes."""
    data = data.strip()

    try:
        if data.startswith(b"-----BEGIN"):
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise CertificateError(
            "Certificate is not X.509 (PEM or DER)"
        ) from exc


def load_certificate_file(path: Union[str, Path]) -> x509.Certificate:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CertificateError(
            f"Cannot read certificate file {path}: {exc}"
        ) from exc

    try:
        return load_certificate(data)
    except CertificateError as exc:
        raise CertificateError(
            f"{exc} (path={path})", details={"path": str(path)}
        ) from exc


class CertificateDirectoryReader:
    """Reads certificates named `<certificate_id><suffix>` from a directory."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self._directory = Path(directory)

    def try_read(self, certificate_id: str) -> Optional[x509.Certificate]:
        # Identifiers are plain file stems; anything path-like is a miss.
        if not certificate_id or Path(certificate_id).name != certificate_id:
            return None

        for suffix in CERTIFICATE_SUFFIXES:
            candidate = self._directory / f"{certificate_id}{suffix}"
            if not candidate.is_file():
                continue
            try:
                return load_certificate_file(candidate)
            except CertificateError as exc:
                logger.warning("Unreadable certificate %s: %s", candidate, exc)
                return None

        return None


class CertificateStore:
    """
    Memoized certificate lookup by identifier.

    The first successful read per identifier is cached for the lifetime
    of the store. Misses are not cached.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self._cache: ReadThroughCache[str, x509.Certificate] = ReadThroughCache(
            CertificateDirectoryReader(directory)
        )

    def get(self, certificate_id: str) -> Optional[x509.Certificate]:
        return self._cache.get(certificate_id)

    def require(self, certificate_id: str) -> x509.Certificate:
        certificate = self.get(certificate_id)
        if certificate is None:
            raise CertificateError(
                f"No certificate found for id {certificate_id!r}",
                details={"certificate_id": certificate_id},
            )
        return certificate
