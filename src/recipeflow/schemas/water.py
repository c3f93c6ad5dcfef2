"""
Pandera schemas for water point survey data (Water Point Data Exchange).

Each row is a reported water point with its location and whether water
was available at the time of the report.
"""

import pandera.pandas as pa
from pandera.typing import Series

# y = water available, n = not available, u = unknown
STATUS_LEVELS = ["y", "n", "u"]


class WaterPointSchema(pa.DataFrameModel):
    """Schema for raw water point reports."""

    row_id: Series[int] = pa.Field(unique=True, description="Report identifier")
    lat_deg: Series[float] = pa.Field(ge=-90.0, le=90.0, description="Latitude")
    lon_deg: Series[float] = pa.Field(ge=-180.0, le=180.0, description="Longitude")
    report_date: Series[str] = pa.Field(nullable=True, description="Report date")
    status_id: Series[str] = pa.Field(
        isin=STATUS_LEVELS,
        description="Water availability at report time",
    )
    water_source: Series[str] = pa.Field(nullable=True)
    water_tech: Series[str] = pa.Field(nullable=True)
    facility_type: Series[str] = pa.Field(nullable=True)
    country_name: Series[str] = pa.Field(nullable=True)
    install_year: Series[float] = pa.Field(
        nullable=True,
        description="Installation year (float to allow missing values)",
    )
    installer: Series[str] = pa.Field(nullable=True)
    pay: Series[str] = pa.Field(nullable=True, description="Free-text payment info")

    class Config:
        """Schema configuration."""

        name = "WaterPointSchema"
        strict = False
        coerce = True
