"""JSON payloads stored on order rows.

Keys are camelCase so the stored ``orderPrice`` keeps the shape the pricing
authority and the admin front-end already use. Amounts are strings to keep
Decimal precision.
"""

from datetime import date
from decimal import Decimal

from lifepass.domain import (
    Allocation,
    CalculatedPrice,
    Err,
    LineFulfilment,
    LinePrices,
    Ok,
    OrderItemPrice,
    OrderLine,
    OrderPrice,
    PriceComponent,
    TaxDetail,
)
from lifepass.domain.errors import ErrorCode, LineIneligibleError, PricingUnavailableError


def price_to_payload(price: CalculatedPrice | None) -> dict | None:
    if price is None:
        return None
    return {
        "amountNet": str(price.amount_net),
        "amountGross": str(price.amount_gross),
        "currencyCode": price.currency_code,
        "taxDetails": [
            {
                "name": tax.name,
                "taxValue": str(tax.rate),
                "taxAmount": str(tax.amount),
                "taxShortName": tax.short_name,
                "sortOrder": tax.sort_order,
            }
            for tax in price.tax_details
        ],
        "components": [
            {"name": c.name, "amountGross": str(c.amount_gross)} for c in price.components
        ],
        "success": price.success,
    }


def price_from_payload(data: dict | None) -> CalculatedPrice | None:
    if data is None:
        return None
    return CalculatedPrice(
        amount_net=Decimal(data["amountNet"]),
        amount_gross=Decimal(data["amountGross"]),
        currency_code=data["currencyCode"],
        tax_details=tuple(
            TaxDetail(
                name=tax["name"],
                rate=Decimal(tax["taxValue"]),
                amount=Decimal(tax["taxAmount"]),
                short_name=tax["taxShortName"],
                sort_order=tax["sortOrder"],
            )
            for tax in data.get("taxDetails", [])
        ),
        components=tuple(
            PriceComponent(name=c["name"], amount_gross=Decimal(c["amountGross"]))
            for c in data.get("components", [])
        ),
        success=data.get("success", True),
    )


def item_to_payload(item: OrderItemPrice) -> dict:
    payload = {
        "productId": item.product_id,
        "consumerCategoryId": item.consumer_category_id,
        "success": item.success,
    }
    match item.result:
        case Ok(value=prices):
            payload["productPrice"] = price_to_payload(prices.product_price)
            payload["insurancePrice"] = price_to_payload(prices.insurance_price)
            payload["lifepassRentalPrice"] = price_to_payload(prices.lifepass_rental_price)
        case Err(error=error):
            payload["error"] = {
                "code": error.code.value,
                "message": error.message,
                "reason": error.reason,
            }
    return payload


def item_from_payload(data: dict) -> OrderItemPrice:
    if data["success"]:
        result = Ok(
            LinePrices(
                product_price=price_from_payload(data["productPrice"]),
                insurance_price=price_from_payload(data.get("insurancePrice")),
                lifepass_rental_price=price_from_payload(data.get("lifepassRentalPrice")),
            )
        )
    else:
        error = data.get("error") or {}
        reason = error.get("reason", "")
        if error.get("code") == ErrorCode.PRICING_UNAVAILABLE.value:
            result = Err(PricingUnavailableError(reason))
        else:
            result = Err(LineIneligibleError(reason))
    return OrderItemPrice(
        product_id=data["productId"],
        consumer_category_id=data["consumerCategoryId"],
        result=result,
    )


def order_price_to_payload(order_price: OrderPrice) -> dict:
    return {
        "startDate": order_price.start_date.isoformat(),
        "daysValidity": order_price.days_validity,
        "cumulatedPrice": price_to_payload(order_price.cumulated_price),
        "orderItemPrices": [item_to_payload(item) for item in order_price.order_item_prices],
    }


def order_price_from_payload(data: dict | None) -> OrderPrice | None:
    if data is None:
        return None
    return OrderPrice(
        start_date=date.fromisoformat(data["startDate"]),
        days_validity=data["daysValidity"],
        cumulated_price=price_from_payload(data["cumulatedPrice"]),
        order_item_prices=tuple(item_from_payload(item) for item in data["orderItemPrices"]),
    )


def line_to_payload(line: OrderLine) -> dict:
    return {
        "productId": line.product_id,
        "consumerCategoryId": line.consumer_category_id,
        "insurance": line.insurance,
        "deviceCode": line.device_code,
        "kioskId": line.kiosk_id,
        "age": line.age,
    }


def line_from_payload(data: dict) -> OrderLine:
    return OrderLine(
        product_id=data["productId"],
        consumer_category_id=data["consumerCategoryId"],
        insurance=data.get("insurance", False),
        device_code=data.get("deviceCode"),
        kiosk_id=data.get("kioskId"),
        age=data.get("age"),
    )


def fulfilment_to_payload(fulfilment: LineFulfilment) -> dict:
    allocation = fulfilment.allocation
    return {
        "lineIndex": fulfilment.line_index,
        "allocation": None
        if allocation is None
        else {
            "deviceSerial": allocation.device_serial,
            "orderId": allocation.order_id,
            "kioskId": allocation.kiosk_id,
            "slotNumber": allocation.slot_number,
        },
        "errorCode": fulfilment.error_code,
        "errorMessage": fulfilment.error_message,
    }


def fulfilment_from_payload(data: dict) -> LineFulfilment:
    allocation = data.get("allocation")
    return LineFulfilment(
        line_index=data["lineIndex"],
        allocation=None
        if allocation is None
        else Allocation(
            device_serial=allocation["deviceSerial"],
            order_id=allocation["orderId"],
            kiosk_id=allocation.get("kioskId"),
            slot_number=allocation.get("slotNumber"),
        ),
        error_code=data.get("errorCode"),
        error_message=data.get("errorMessage"),
    )
