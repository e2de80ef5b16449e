"""Live price previews for the booking forms."""

from fastapi import APIRouter, HTTPException, status

from carbookers.core.config import settings
from carbookers.models.booking import TimeWindow
from carbookers.schemas import BillingOut, PriceQuoteOut, QuoteOut, QuoteRequest
from carbookers.services.duration import InvalidWindow
from carbookers.services.pricing import quote_window

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteOut)
async def create_quote(body: QuoteRequest):
    window = TimeWindow(body.pickup_date, body.pickup_time, body.return_date, body.return_time)
    try:
        billing, quote = quote_window(body.daily_rate, window, settings.lateness_threshold_minutes)
    except InvalidWindow as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"field": exc.field, "rule": "invalid_window", "message": exc.message}],
        ) from None

    return QuoteOut(
        billing=BillingOut.model_validate(billing),
        quote=PriceQuoteOut.model_validate(quote),
    )
