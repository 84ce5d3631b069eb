"""HTTP client for the public exchange-rate endpoint."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from calccore.exceptions import RateSourceError
from calccore.schemas.rates import RateQuote

logger = logging.getLogger(__name__)

NBU_URL = "https://bank.gov.ua/NBUStatService/v1/statdirectory/exchange?json"

_QUOTES = TypeAdapter(List[RateQuote])


class NbuRateSource:
    """Callable fetcher returning the endpoint's rows as ``RateQuote`` objects.

    Every transport, status or decode failure surfaces as ``RateSourceError``.
    """

    def __init__(
        self,
        url: str = NBU_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    def __call__(self) -> List[RateQuote]:
        try:
            if self._client is not None:
                response = self._client.get(self.url, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.get(self.url, headers={"Cache-Control": "no-store"})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise RateSourceError("Exchange endpoint request failed", {"url": self.url, "reason": str(e)}) from e
        except ValueError as e:
            raise RateSourceError("Exchange endpoint returned invalid JSON", {"url": self.url}) from e

        try:
            quotes = _QUOTES.validate_python(payload)
        except ValidationError as e:
            raise RateSourceError(
                "Exchange endpoint payload has an unexpected shape",
                {"url": self.url, "errors": e.error_count()},
            ) from e

        logger.debug("Fetched %d quotes from %s", len(quotes), self.url)
        return quotes
