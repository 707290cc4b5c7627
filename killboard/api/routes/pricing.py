"""Item pricing.

Prices are resolved in priority order: a custom price set by operators,
then the average market price in the requested region, then zero.
"""

from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from killboard.infrastructure.database.dependencies import StoreDep
from killboard.validation import ENTITY_ID, REGION_QUERY, validated

CUSTOM_PRICE_QUERY = 'SELECT * FROM customprices WHERE "typeId" = :id'
MARKET_PRICE_QUERY = (
    'SELECT * FROM prices WHERE "typeId" = :id AND "regionId" = :regionId'
)

ITEM_PRICING = ENTITY_ID | REGION_QUERY

router = APIRouter(tags=["Items"])


class ItemPricing(BaseModel):
    """Resolved price of an item type."""

    model_config = ConfigDict(populate_by_name=True)

    type_id: int = Field(..., alias="typeId", examples=[34])
    price: float = Field(..., examples=[4.52])
    source: Literal["custom", "market", "none"] = Field(..., examples=["market"])
    region_id: int | None = Field(
        default=None,
        alias="regionId",
        description="Only present for market prices",
        examples=[10000002],
    )


@router.get(
    "/api/items/{id}/pricing",
    summary="Get item pricing information",
    response_model=ItemPricing,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def get_item_pricing(
    params: Annotated[Any, Depends(validated(ITEM_PRICING, "request"))],
    store: StoreDep,
) -> ItemPricing:
    """Return the custom, market or zero price of an item type."""
    custom_price = await store.find_one(CUSTOM_PRICE_QUERY, {"id": params.id})
    if custom_price is not None:
        return ItemPricing(
            type_id=params.id, price=custom_price["price"], source="custom"
        )

    market_price = await store.find_one(
        MARKET_PRICE_QUERY, {"id": params.id, "regionId": params.regionId}
    )
    if market_price is not None:
        return ItemPricing(
            type_id=params.id,
            price=market_price["averagePrice"],
            source="market",
            region_id=params.regionId,
        )

    return ItemPricing(type_id=params.id, price=0, source="none")
