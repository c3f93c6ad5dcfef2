"""Tests for cleaning helpers and dataset preparation."""

import numpy as np
import pandas as pd
import pytest

from recipeflow.normalization import (
    VOTE_VALUES,
    clean_levels,
    lump_rare,
    parse_number,
    pivot_wider,
    prepare_churn,
    prepare_ikea,
    prepare_pumpkins,
    prepare_unvotes,
    prepare_water,
)
from recipeflow.normalization.datasets import PUMPKIN_COLUMNS, WATER_COLUMNS


class TestParseNumber:
    """Tests for parse_number."""

    def test_grouping_and_units(self) -> None:
        values = pd.Series(["1,234.50", "  85 in", "", "n/a", None])
        parsed = parse_number(values)
        assert parsed.iloc[0] == pytest.approx(1234.5)
        assert parsed.iloc[1] == pytest.approx(85.0)
        assert parsed.iloc[2:].isna().all()

    def test_numeric_passthrough(self) -> None:
        parsed = parse_number(pd.Series([1, 2, 3]))
        assert parsed.dtype == float
        assert parsed.tolist() == [1.0, 2.0, 3.0]


class TestPivotWider:
    """Tests for pivot_wider."""

    def test_fill_and_names(self) -> None:
        long = pd.DataFrame(
            {"country": ["A", "A", "B"], "rcid": [1, 2, 1], "vote": [1, -1, 0]}
        )
        wide = pivot_wider(
            long, index="country", columns="rcid", values="vote", fill_value=0
        )
        assert list(wide.columns) == ["country", "1", "2"]
        assert wide.loc[wide["country"] == "B", "2"].item() == 0

    def test_prefix_and_missing(self) -> None:
        long = pd.DataFrame({"k": ["a", "b"], "c": ["x", "y"], "v": [1.0, 2.0]})
        wide = pivot_wider(long, index="k", columns="c", values="v", prefix="c_")
        assert list(wide.columns) == ["k", "c_x", "c_y"]
        assert np.isnan(wide.loc[0, "c_y"])


class TestLumpRare:
    """Tests for lump_rare."""

    def test_share_threshold(self) -> None:
        series = pd.Series(["a"] * 90 + ["b"] * 6 + ["c"] * 2 + ["d"] * 2)
        lumped = lump_rare(series, threshold=0.05)
        assert set(lumped) == {"a", "b", "other"}
        assert (lumped == "other").sum() == 4

    def test_count_threshold(self) -> None:
        series = pd.Series(["a"] * 5 + ["b"] * 2 + ["c"] * 2)
        assert set(lump_rare(series, threshold=3)) == {"a", "other"}

    def test_single_rare_level_kept(self) -> None:
        series = pd.Series(["a"] * 95 + ["b"] * 5 + ["c"])
        assert "c" in set(lump_rare(series, threshold=0.02))

    def test_missing_stays_missing(self) -> None:
        series = pd.Series(["a"] * 10 + ["b", "c", None])
        lumped = lump_rare(series, threshold=0.2)
        assert lumped.isna().sum() == 1


class TestCleanLevels:
    def test_snake_case(self) -> None:
        cleaned = clean_levels(pd.Series(["Chairs & stools", "Café tables", None]))
        assert cleaned.tolist()[:2] == ["chairs_stools", "cafe_tables"]
        assert pd.isna(cleaned.iloc[2])


class TestPrepareUnvotes:
    """Tests for prepare_unvotes."""

    def test_encoding_and_shape(self, raw_votes: pd.DataFrame) -> None:
        wide = prepare_unvotes(raw_votes)
        assert len(wide) == raw_votes["country"].nunique()
        assert wide.shape[1] == raw_votes["rcid"].nunique() + 1
        values = set(np.unique(wide.drop(columns="country").to_numpy()))
        assert values <= set(VOTE_VALUES.values())

    def test_explicit_values(self) -> None:
        votes = pd.DataFrame(
            {
                "rcid": [1, 2, 3, 1],
                "country": ["A", "A", "A", "B"],
                "vote": ["yes", "no", "abstain", "no"],
            }
        )
        wide = prepare_unvotes(votes).set_index("country")
        assert wide.loc["A"].tolist() == [1, -1, 0]
        # B did not vote on 2 and 3
        assert wide.loc["B"].tolist() == [-1, 0, 0]

    def test_min_votes(self) -> None:
        votes = pd.DataFrame(
            {
                "rcid": [1, 2, 3, 1],
                "country": ["A", "A", "A", "B"],
                "vote": ["yes", "no", "abstain", "no"],
            }
        )
        wide = prepare_unvotes(votes, min_votes=2)
        assert wide["country"].tolist() == ["A"]


class TestPrepareWater:
    """Tests for prepare_water."""

    def test_filters(self, raw_water: pd.DataFrame) -> None:
        df = prepare_water(raw_water)
        assert list(df.columns) == WATER_COLUMNS
        assert set(df["status_id"]) == {"y", "n"}
        assert (df["lat_deg"] > 0).all() and (df["lon_deg"] < 0).all()
        assert len(df) < (raw_water["country_name"] == "Sierra Leone").sum()

    def test_install_year_cap(self, raw_water: pd.DataFrame) -> None:
        df = prepare_water(raw_water)
        assert (df["install_year"].dropna() <= 2021).all()

    def test_pay_collapsed(self) -> None:
        water = pd.DataFrame(
            {
                "row_id": [1, 2, 3, 4],
                "lat_deg": [8.0] * 4,
                "lon_deg": [-12.0] * 4,
                "status_id": ["y", "n", "y", "y"],
                "water_source": ["Borehole"] * 4,
                "water_tech": ["Hand Pump"] * 4,
                "facility_type": ["Improved"] * 4,
                "country_name": ["Sierra Leone"] * 4,
                "install_year": [2000.0, 2010.0, 2030.0, np.nan],
                "installer": ["NGO"] * 4,
                "pay": ["No payment - its free", "Free", "Pay monthly", None],
            }
        )
        df = prepare_water(water)
        assert df["pay"].tolist()[:3] == ["no", "no", "yes"]
        assert pd.isna(df["pay"].iloc[3])
        assert np.isnan(df["install_year"].iloc[2])


class TestPrepareChurn:
    def test_types(self, raw_churn: pd.DataFrame) -> None:
        raw = raw_churn.assign(
            TotalCharges=raw_churn["TotalCharges"].str.strip().replace("", np.nan)
        )
        df = prepare_churn(raw)
        assert df["TotalCharges"].dtype == float
        assert df["TotalCharges"].isna().sum() == 3
        assert set(df["SeniorCitizen"]) <= {"Yes", "No"}


class TestPreparePumpkins:
    """Tests for prepare_pumpkins."""

    def test_giant_pumpkins_only(self, raw_pumpkins: pd.DataFrame) -> None:
        df = prepare_pumpkins(raw_pumpkins)
        assert list(df.columns) == PUMPKIN_COLUMNS
        # 150 giant pumpkins minus the two implausible ot values
        assert len(df) == 148
        assert df["ot"].between(20, 1000, inclusive="neither").all()
        assert set(df["year"]) <= {2013, 2014, 2015}

    def test_numbers_parsed(self, raw_pumpkins: pd.DataFrame) -> None:
        df = prepare_pumpkins(raw_pumpkins)
        assert df["weight_lbs"].dtype == float
        assert (df["weight_lbs"] > 1000).any()

    def test_other_type(self, raw_pumpkins: pd.DataFrame) -> None:
        assert len(prepare_pumpkins(raw_pumpkins, type_code="S")) == 10


class TestPrepareIkea:
    def test_log_price(self, raw_ikea: pd.DataFrame) -> None:
        df = prepare_ikea(raw_ikea)
        assert list(df.columns) == ["price", "name", "category", "depth", "height", "width"]
        np.testing.assert_allclose(df["price"], np.log10(raw_ikea["price"]))
        assert "bookcases_shelving_units" in set(df["category"])
