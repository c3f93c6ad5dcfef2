"""
Pandera schemas for telecom customer churn data.

One row per customer with account, service and billing attributes and
whether the customer left within the last month.
"""

import pandera.pandas as pa
from pandera.typing import Series

YES_NO = ["Yes", "No"]


class ChurnSchema(pa.DataFrameModel):
    """Schema for the raw telecom churn table."""

    customerID: Series[str] = pa.Field(unique=True)  # noqa: N815
    gender: Series[str] = pa.Field(isin=["Female", "Male"])
    SeniorCitizen: Series[int] = pa.Field(isin=[0, 1])  # noqa: N815
    Partner: Series[str] = pa.Field(isin=YES_NO)  # noqa: N815
    Dependents: Series[str] = pa.Field(isin=YES_NO)  # noqa: N815
    tenure: Series[int] = pa.Field(ge=0, description="Months with the company")
    PhoneService: Series[str] = pa.Field(isin=YES_NO)  # noqa: N815
    MultipleLines: Series[str]  # noqa: N815
    InternetService: Series[str]  # noqa: N815
    OnlineSecurity: Series[str]  # noqa: N815
    OnlineBackup: Series[str]  # noqa: N815
    DeviceProtection: Series[str]  # noqa: N815
    TechSupport: Series[str]  # noqa: N815
    StreamingTV: Series[str]  # noqa: N815
    StreamingMovies: Series[str]  # noqa: N815
    Contract: Series[str]  # noqa: N815
    PaperlessBilling: Series[str] = pa.Field(isin=YES_NO)  # noqa: N815
    PaymentMethod: Series[str]  # noqa: N815
    MonthlyCharges: Series[float] = pa.Field(ge=0.0)  # noqa: N815
    # Blank for customers in their first month, so kept as text here
    TotalCharges: Series[str] = pa.Field(nullable=True)  # noqa: N815
    Churn: Series[str] = pa.Field(isin=YES_NO)  # noqa: N815

    class Config:
        """Schema configuration."""

        name = "ChurnSchema"
        strict = False
        coerce = True
