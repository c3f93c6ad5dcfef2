"""
Pandera schemas for United Nations General Assembly voting data.

One row per (roll call, country) vote, plus a lookup of roll calls to
issue categories.
"""

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series

VOTE_LEVELS = ["yes", "no", "abstain"]


class UnVoteSchema(pa.DataFrameModel):
    """
    Schema for individual country votes.

    rcid identifies the roll call; each country votes at most once per rcid.
    """

    rcid: Series[int] = pa.Field(ge=1, description="Roll call identifier")
    country: Series[str] = pa.Field(description="Country name")
    country_code: Series[str] = pa.Field(
        nullable=True,
        description="ISO 3166 two-letter country code",
    )
    vote: Series[str] = pa.Field(
        isin=VOTE_LEVELS,
        description="Vote cast: yes, no or abstain",
    )

    @pa.dataframe_check
    def one_vote_per_country(cls, df: pd.DataFrame) -> bool:
        """A country votes at most once per roll call."""
        return not df.duplicated(subset=["rcid", "country"]).any()

    class Config:
        """Schema configuration."""

        name = "UnVoteSchema"
        strict = False
        coerce = True


class UnIssueSchema(pa.DataFrameModel):
    """Schema for the roll call -> issue lookup."""

    rcid: Series[int] = pa.Field(ge=1, description="Roll call identifier")
    short_name: Series[str] = pa.Field(description="Issue abbreviation (e.g. 'me')")
    issue: Series[str] = pa.Field(description="Issue description")

    class Config:
        """Schema configuration."""

        name = "UnIssueSchema"
        strict = False
        coerce = True
