"""
Pandera schemas for Great Pumpkin Commonwealth weigh-off results.

Numeric fields arrive as text with thousands separators ("1,234.50"),
so they are validated as strings and parsed during normalization.
"""

import pandera.pandas as pa
from pandera.typing import Series


class PumpkinSchema(pa.DataFrameModel):
    """Schema for raw weigh-off entries."""

    id: Series[str] = pa.Field(
        str_matches=r"^\d{4}-[A-Z]$",
        description="'<year>-<type code>', e.g. '2013-P' for giant pumpkin",
    )
    place: Series[str] = pa.Field(nullable=True)
    weight_lbs: Series[str] = pa.Field(description="Weight in pounds (text)")
    grower_name: Series[str] = pa.Field(nullable=True)
    city: Series[str] = pa.Field(nullable=True)
    state_prov: Series[str] = pa.Field(nullable=True)
    country: Series[str] = pa.Field(nullable=True)
    gpc_site: Series[str] = pa.Field(nullable=True, description="Weigh-off site")
    seed_mother: Series[str] = pa.Field(nullable=True)
    pollinator_father: Series[str] = pa.Field(nullable=True)
    ot: Series[str] = pa.Field(nullable=True, description="Over-the-top inches")
    est_weight: Series[str] = pa.Field(nullable=True)
    pct_chart: Series[str] = pa.Field(nullable=True)
    variety: Series[str] = pa.Field(nullable=True)

    class Config:
        """Schema configuration."""

        name = "PumpkinSchema"
        strict = False
        coerce = True
