"""Client for the external pricing authority.

Business-level rejections come back as ``Err(LineIneligibleError)`` so the
caller can keep pricing other lines. Transport problems and malformed
answers raise ``PricingUnavailableError``, which callers may retry.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

import httpx
import pydantic

from lifepass.clients.schemas import CalculatedPricePayload
from lifepass.domain import CalculatedPrice, Err, Ok, Result
from lifepass.domain.errors import LineIneligibleError, PricingUnavailableError

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429})


@dataclass(frozen=True)
class PriceRequest:
    resort_id: int
    product_id: str
    consumer_category_id: str
    date: date

    def to_payload(self) -> dict:
        return {
            "resortId": self.resort_id,
            "productId": self.product_id,
            "consumerCategoryId": self.consumer_category_id,
            "date": self.date.isoformat(),
        }


class PricingClient(ABC):
    """Interface to the pricing authority."""

    @abstractmethod
    async def calculate_price(
        self, request: PriceRequest
    ) -> Result[CalculatedPrice, LineIneligibleError]:
        """Price one (product, consumer category, date) triple.

        Raises:
            PricingUnavailableError: If the authority is unreachable or its
                answer cannot be validated.
        """
        ...


class HttpPricingClient(PricingClient):
    """Pricing authority reached over HTTP with an API key."""

    path = "/api/click-and-collect/calculate-price"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def calculate_price(
        self, request: PriceRequest
    ) -> Result[CalculatedPrice, LineIneligibleError]:
        logger.debug("Requesting price %s", request)
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers={"x-api-key": self._api_key},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self.path, json=request.to_payload())
        except httpx.HTTPError as exc:
            raise PricingUnavailableError(f"transport error: {exc!r}") from exc

        if response.status_code >= 500 or response.status_code in RETRYABLE_STATUSES:
            raise PricingUnavailableError(f"authority answered {response.status_code}")
        if response.is_client_error:
            logger.info(
                "Pricing rejected product=%s category=%s status=%s",
                request.product_id,
                request.consumer_category_id,
                response.status_code,
            )
            return Err(LineIneligibleError(_rejection_message(response)))

        try:
            payload = CalculatedPricePayload.model_validate_json(response.content)
        except pydantic.ValidationError as exc:
            raise PricingUnavailableError(f"malformed price response: {exc}") from exc

        if not payload.success:
            return Err(LineIneligibleError(payload.message or "Line cannot be priced"))
        return Ok(payload.to_domain())


def _rejection_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Line rejected by pricing authority"
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return "Line rejected by pricing authority"
