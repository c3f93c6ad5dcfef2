"""
Dataset-specific cleaning.

Each ``prepare_*`` function takes the validated raw frame and returns the
modelling frame for its analysis.
"""

import numpy as np
import pandas as pd

from recipeflow.normalization.cleaning import clean_levels, parse_number, pivot_wider
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)

# Numeric encoding of UN votes
VOTE_VALUES: dict[str, int] = {"yes": 1, "abstain": 0, "no": -1}

WATER_COLUMNS = [
    "row_id",
    "lat_deg",
    "lon_deg",
    "status_id",
    "water_source",
    "water_tech",
    "facility_type",
    "install_year",
    "installer",
    "pay",
]

PUMPKIN_COLUMNS = [
    "weight_lbs",
    "year",
    "place",
    "ot",
    "est_weight",
    "pct_chart",
    "variety",
    "country",
    "state_prov",
    "gpc_site",
]

IKEA_COLUMNS = ["price", "name", "category", "depth", "height", "width"]


def prepare_unvotes(votes: pd.DataFrame, *, min_votes: int = 0) -> pd.DataFrame:
    """
    Encode votes numerically and pivot to one row per country.

    Args:
        votes: Validated votes (rcid, country, vote).
        min_votes: Drop countries that cast fewer votes than this.

    Returns:
        Frame with a ``country`` column and one column per roll call
        (named by rcid), yes=1, abstain=0, no=-1, missing=0.
    """
    encoded = votes.assign(vote=votes["vote"].map(VOTE_VALUES))

    if min_votes > 0:
        counts = encoded.groupby("country")["rcid"].transform("size")
        encoded = encoded[counts >= min_votes]

    wide = pivot_wider(
        encoded, index="country", columns="rcid", values="vote", fill_value=0
    )
    log.info("Prepared UN votes", countries=len(wide), roll_calls=wide.shape[1] - 1)
    return wide


def prepare_water(
    water: pd.DataFrame,
    *,
    country: str = "Sierra Leone",
    max_install_year: int = 2021,
) -> pd.DataFrame:
    """
    Restrict water point reports to one country with a known status.

    - keeps points inside the country's plausible bounding box
      (latitude 0-15, negative longitude)
    - drops unknown status (``u``)
    - collapses ``pay`` to yes/no (free or "no ..." -> no)
    - treats install years after ``max_install_year`` as missing
    """
    df = water[water["country_name"] == country]
    df = df[(df["lat_deg"] > 0) & (df["lat_deg"] < 15) & (df["lon_deg"] < 0)]
    df = df[df["status_id"].isin(["y", "n"])].copy()

    pay = df["pay"].astype("string").str.lower()
    no_pay = pay.str.match(r"^(no|free)").fillna(False).to_numpy(dtype=bool)
    collapsed = pd.Series(np.where(no_pay, "no", "yes"), index=df.index, dtype=object)
    df["pay"] = collapsed.where(pay.notna())

    df["install_year"] = df["install_year"].where(
        df["install_year"] <= max_install_year
    )

    log.info(
        "Prepared water points",
        country=country,
        rows=len(df),
        available_share=round(float((df["status_id"] == "y").mean()), 3)
        if len(df)
        else None,
    )
    return df[WATER_COLUMNS].reset_index(drop=True)


def prepare_churn(churn: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce billing totals to numbers and make the senior flag categorical.

    TotalCharges is blank for customers in their first month and becomes NaN.
    """
    df = churn.copy()
    df["TotalCharges"] = pd.to_numeric(df["TotalCharges"], errors="coerce")
    df["SeniorCitizen"] = df["SeniorCitizen"].map({1: "Yes", 0: "No"})
    log.info(
        "Prepared churn data",
        rows=len(df),
        churn_rate=round(float((df["Churn"] == "Yes").mean()), 3) if len(df) else None,
        missing_total_charges=int(df["TotalCharges"].isna().sum()),
    )
    return df


def prepare_pumpkins(
    pumpkins: pd.DataFrame,
    *,
    type_code: str = "P",
    ot_min: float = 20.0,
    ot_max: float = 1000.0,
) -> pd.DataFrame:
    """
    Split the entry id, parse numeric text and keep one crop type.

    ``id`` is "<year>-<type>"; type P is giant pumpkin. Entries with an
    implausible over-the-top measurement (outside ``(ot_min, ot_max)``)
    are dropped.
    """
    parts = pumpkins["id"].str.split("-", n=1, expand=True)
    df = pumpkins.assign(
        year=pd.to_numeric(parts[0], errors="coerce"),
        type=parts[1],
    )
    for col in ["weight_lbs", "ot", "est_weight", "pct_chart", "place"]:
        df[col] = parse_number(df[col])

    df = df[df["type"] == type_code]
    df = df[(df["ot"] > ot_min) & (df["ot"] < ot_max)]
    df = df.dropna(subset=["weight_lbs"])

    log.info("Prepared pumpkins", type_code=type_code, rows=len(df))
    return df[PUMPKIN_COLUMNS].reset_index(drop=True)


def prepare_ikea(ikea: pd.DataFrame) -> pd.DataFrame:
    """Model log10 price from product line, category and dimensions."""
    df = ikea.assign(
        price=np.log10(ikea["price"]),
        category=clean_levels(ikea["category"]),
    )
    log.info("Prepared IKEA listings", rows=len(df))
    return df[IKEA_COLUMNS].reset_index(drop=True)
