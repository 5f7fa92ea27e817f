"""Prices every line of an order and folds the results into one total."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping

from lifepass.clients.pricing import PriceRequest, PricingClient
from lifepass.clients.retry import RetryPolicy
from lifepass.domain import (
    CalculatedPrice,
    ConsumerCategory,
    DateRange,
    Err,
    LinePrices,
    Ok,
    OrderItemPrice,
    OrderLine,
    OrderPrice,
    Result,
    TaxDetail,
)
from lifepass.domain.errors import LineIneligibleError, PricingError, PricingUnavailableError
from lifepass.domain.models import ZERO

logger = logging.getLogger(__name__)


class OrderAggregator:
    """Fans pricing calls out per line and joins them in input order.

    A failed line never fails the order: it is kept with its error and
    contributes nothing to the cumulated price.
    """

    def __init__(
        self,
        client: PricingClient,
        retry_policy: RetryPolicy = RetryPolicy(),
        max_concurrency: int = 4,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._client = client
        self._retry_policy = retry_policy
        self._max_concurrency = max_concurrency
        self._sleep = sleep

    async def price_order(
        self,
        resort_id: int,
        date_range: DateRange,
        lines: Iterable[OrderLine],
        consumer_categories: Mapping[str, ConsumerCategory] | None,
        currency_code: str,
    ) -> OrderPrice:
        """Price every line; ``consumer_categories`` is None when the catalog is unreadable."""
        lines = tuple(lines)
        semaphore = asyncio.Semaphore(self._max_concurrency)
        tasks = [
            asyncio.ensure_future(
                self._price_line(
                    semaphore, resort_id, date_range, line, consumer_categories, currency_code
                )
            )
            for line in lines
        ]
        try:
            # in-flight calls finish even if the caller goes away
            items = await asyncio.shield(asyncio.gather(*tasks))
        except asyncio.CancelledError:
            logger.info("Pricing for resort %s cancelled, discarding %d lines", resort_id, len(lines))
            raise

        failed = sum(1 for item in items if not item.success)
        if failed:
            logger.warning("%d of %d lines failed pricing for resort %s", failed, len(items), resort_id)

        return OrderPrice(
            start_date=date_range.start,
            days_validity=date_range.days,
            cumulated_price=cumulate(items, currency_code),
            order_item_prices=tuple(items),
        )

    async def _price_line(
        self,
        semaphore: asyncio.Semaphore,
        resort_id: int,
        date_range: DateRange,
        line: OrderLine,
        consumer_categories: Mapping[str, ConsumerCategory] | None,
        currency_code: str,
    ) -> OrderItemPrice:
        async with semaphore:
            result = await self._line_result(
                resort_id, date_range, line, consumer_categories, currency_code
            )
        return OrderItemPrice(
            product_id=line.product_id,
            consumer_category_id=line.consumer_category_id,
            result=result,
        )

    async def _line_result(
        self,
        resort_id: int,
        date_range: DateRange,
        line: OrderLine,
        consumer_categories: Mapping[str, ConsumerCategory] | None,
        currency_code: str,
    ) -> Result[LinePrices, PricingError]:
        if consumer_categories is None:
            return Err(PricingUnavailableError("Consumer categories unavailable"))
        category = consumer_categories.get(line.consumer_category_id)
        if category is None:
            return Err(LineIneligibleError("Unknown consumer category"))
        if line.age is not None and not category.age_range.contains(line.age):
            return Err(LineIneligibleError("Age is outside the consumer category range"))

        request = PriceRequest(
            resort_id=resort_id,
            product_id=line.product_id,
            consumer_category_id=line.consumer_category_id,
            date=date_range.start,
        )
        try:
            priced = await self._retry_policy.run(
                lambda: self._client.calculate_price(request),
                retry_on=PricingUnavailableError,
                sleep=self._sleep,
            )
        except PricingUnavailableError as exc:
            logger.error("Pricing unavailable for %s after retries: %s", request, exc.reason)
            return Err(exc)

        match priced:
            case Err():
                return priced
            case Ok(value=product_price):
                return _line_prices(line, category, product_price, date_range.days, currency_code)


def _line_prices(
    line: OrderLine,
    category: ConsumerCategory,
    product_price: CalculatedPrice,
    days: int,
    currency_code: str,
) -> Result[LinePrices, PricingError]:
    if product_price.currency_code != currency_code:
        return Err(
            LineIneligibleError(f"Priced in {product_price.currency_code}, expected {currency_code}")
        )

    insurance_price = None
    if line.insurance:
        if category.insurance_price_per_day is None:
            return Err(LineIneligibleError("Insurance is not offered for this category"))
        insurance_price = category.insurance_price_per_day.scaled(days)

    rental_price = None
    if line.needs_device and category.lifepass_rental_price_per_day is not None:
        rental_price = category.lifepass_rental_price_per_day.scaled(days)

    return Ok(
        LinePrices(
            product_price=product_price,
            insurance_price=insurance_price,
            lifepass_rental_price=rental_price,
        )
    )


def cumulate(items: Iterable[OrderItemPrice], currency_code: str) -> CalculatedPrice:
    """Sum successful lines; merge tax lines sharing a short name."""
    items = tuple(items)
    amount_net = ZERO
    amount_gross = ZERO
    taxes: dict[str, TaxDetail] = {}

    for item in items:
        match item.result:
            case Ok(value=line_prices):
                for price in line_prices.prices():
                    amount_net += price.amount_net
                    amount_gross += price.amount_gross
                    for tax in price.tax_details:
                        taxes[tax.short_name] = _merge_tax(taxes.get(tax.short_name), tax)
            case Err():
                pass

    return CalculatedPrice(
        amount_net=amount_net,
        amount_gross=amount_gross,
        currency_code=currency_code,
        tax_details=tuple(sorted(taxes.values(), key=lambda tax: (tax.sort_order, tax.short_name))),
        success=bool(items) and all(item.success for item in items),
    )


def _merge_tax(existing: TaxDetail | None, tax: TaxDetail) -> TaxDetail:
    if existing is None:
        return tax
    return TaxDetail(
        name=existing.name if existing.sort_order <= tax.sort_order else tax.name,
        rate=existing.rate,
        amount=existing.amount + tax.amount,
        short_name=existing.short_name,
        sort_order=min(existing.sort_order, tax.sort_order),
    )

