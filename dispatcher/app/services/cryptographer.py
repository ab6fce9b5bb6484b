"""
PKCS#7 signing of validated document content.

Produces a DER-encoded PKCS#7 SignedData structure (SHA-256) that embeds
both the content and the batch certificate, so the receiving side gets a
single self-contained payload.

Design guarantees:
- The content is signed byte-for-byte (binary mode, no MIME
  canonicalization)
- The private key never leaves this object
- A certificate that does not belong to the private key is refused
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs7, pkcs12

from dispatcher.app.errors import CertificateError, SigningError

SigningKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]

PKCS12_SUFFIXES = (".p12", ".pfx")


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class Pkcs7Cryptographer:
    """Signs content with a locally held RSA or EC private key."""

    def __init__(self, private_key: SigningKey) -> None:
        if not isinstance(
            private_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)
        ):
            raise CertificateError(
                "Only RSA and EC private keys can sign PKCS#7 content, "
                f"got {type(private_key).__name__}"
            )

        self._private_key = private_key
        self._public_key_der = _public_key_der(private_key.public_key())

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_key_file(
        cls,
        path: Union[str, Path],
        password: Optional[str] = None,
    ) -> "Pkcs7Cryptographer":
        """
        Load the signing key from a PEM private key or a PKCS#12 bundle.

        The format is chosen by file suffix (.p12/.pfx are PKCS#12).
        """
        path = Path(path)
        passphrase = password.encode("utf-8") if password else None

        try:
            data = path.read_bytes()
        except OSError as exc:
            raise CertificateError(
                f"Cannot read signing key {path}: {exc}"
            ) from exc

        try:
            if path.suffix.lower() in PKCS12_SUFFIXES:
                private_key, _, _ = pkcs12.load_key_and_certificates(
                    data, passphrase
                )
            else:
                private_key = serialization.load_pem_private_key(
                    data, password=passphrase
                )
        except (ValueError, TypeError) as exc:
            raise CertificateError(
                f"Failed to load signing key {path}: {exc}"
            ) from exc

        if private_key is None:
            raise CertificateError(f"No private key found in {path}")

        return cls(private_key)

    # ------------------------------------------------------------------
    # Cryptographer port
    # ------------------------------------------------------------------

    def sign(self, content: bytes, certificate: x509.Certificate) -> bytes:
        if not isinstance(certificate, x509.Certificate):
            raise SigningError(
                "Expected an X.509 certificate, "
                f"got {type(certificate).__name__}"
            )

        if _public_key_der(certificate.public_key()) != self._public_key_der:
            raise SigningError(
                "Certificate does not match the signing key",
                details={"subject": certificate.subject.rfc4514_string()},
            )

        try:
            return (
                pkcs7.PKCS7SignatureBuilder()
                .set_data(content)
                .add_signer(certificate, self._private_key, hashes.SHA256())
                .sign(serialization.Encoding.DER, [pkcs7.PKCS7Options.Binary])
            )
        except (ValueError, TypeError) as exc:
            raise SigningError(f"PKCS#7 signing failed: {exc}") from exc
