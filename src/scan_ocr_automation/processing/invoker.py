"""Trigger the remote OCR function for an uploaded object."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import httpx

from ..domain.errors import ProcessingError
from ..logging import get_logger

LOG = get_logger("processing-invoker")

DEFAULT_TIMEOUT = 60.0


def parse_result_key(body: str) -> str:
    """Return the result key from the function's response body.

    The body is a JSON string literal such as ``"image123_ocr.pdf"``;
    surrounding quote characters are stripped.
    """
    text = (body or "").strip()
    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = text
    if not isinstance(decoded, str):
        decoded = text
    return decoded.replace('"', "").strip()


class ProcessingInvoker:
    """Issue ``GET <function_url>?file=<key>`` once per job.

    ``timeout`` applies to connect, read, write and pool waits, and also
    bounds the whole call.
    """

    def __init__(
        self,
        function_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.function_url = function_url
        self.timeout = float(timeout)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )

    async def invoke(self, key: str) -> str:
        LOG.info(f"Invoking processing for {key!r}")
        try:
            async with self._client() as client:
                response = await asyncio.wait_for(
                    client.get(self.function_url, params={"file": key}),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError as exc:
            raise ProcessingError(f"Processing call exceeded {self.timeout}s", key=key) from exc
        except httpx.HTTPError as exc:
            raise ProcessingError(f"Processing request failed: {exc}", key=key) from exc

        if not response.is_success:
            LOG.debug(f"Processing response preview: {response.text[:500]!r}")
            raise ProcessingError(
                f"Processing endpoint returned HTTP {response.status_code}",
                key=key,
                status_code=response.status_code,
            )

        result_key = parse_result_key(response.text)
        if not result_key:
            raise ProcessingError(
                "Processing endpoint returned an empty result key",
                key=key,
                status_code=response.status_code,
            )
        LOG.info(f"Result is = {result_key}")
        return result_key
