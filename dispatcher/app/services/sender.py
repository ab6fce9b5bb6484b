"""
HTTP transmission of signed content.

Contract:
- input: DER-encoded PKCS#7 SignedData bytes
- output: True iff the receiver acknowledged with a 2xx status
- never raises for transport or protocol failures
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

SIGNED_CONTENT_TYPE = "application/pkcs7-mime; smime-type=signed-data"


class HttpSender:
    """
    Sender posting signed content to a single endpoint.

    The httpx.Client is owned by the caller when injected, otherwise by
    the sender (see `close`). httpx clients are safe to share between
    worker threads.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self._endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def try_send(self, signed_content: bytes) -> bool:
        correlation_id = f"dispatcher-{uuid.uuid4()}"

        try:
            response = self._client.post(
                self._endpoint,
                content=signed_content,
                headers={
                    "Content-Type": SIGNED_CONTENT_TYPE,
                    "X-Correlation-ID": correlation_id,
                },
                follow_redirects=False,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Transmission failed (correlation_id=%s): %s",
                correlation_id,
                exc,
            )
            return False

        if not response.is_success:
            logger.warning(
                "Receiver rejected signed content "
                "(status=%s, correlation_id=%s)",
                response.status_code,
                correlation_id,
            )
            return False

        logger.debug(
            "signed_content_sent",
            extra={
                "correlation_id": correlation_id,
                "bytes": len(signed_content),
            },
        )
        return True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpSender":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
