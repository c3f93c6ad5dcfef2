"""Pandera schemas for IKEA furniture listings (Saudi Arabian store)."""

import pandera.pandas as pa
from pandera.typing import Series


class IkeaItemSchema(pa.DataFrameModel):
    """
    Schema for scraped IKEA listings.

    Dimensions are in centimetres and frequently missing.
    """

    item_id: Series[int] = pa.Field(description="IKEA item number")
    name: Series[str] = pa.Field(description="Product line name, e.g. 'BILLY'")
    category: Series[str]
    price: Series[float] = pa.Field(gt=0.0, description="Price in SAR")
    old_price: Series[str] = pa.Field(nullable=True)
    sellable_online: Series[bool]
    other_colors: Series[str] = pa.Field(nullable=True)
    short_description: Series[str] = pa.Field(nullable=True)
    designer: Series[str] = pa.Field(nullable=True)
    depth: Series[float] = pa.Field(nullable=True, ge=0.0)
    height: Series[float] = pa.Field(nullable=True, ge=0.0)
    width: Series[float] = pa.Field(nullable=True, ge=0.0)

    class Config:
        """Schema configuration."""

        name = "IkeaItemSchema"
        strict = False
        coerce = True
