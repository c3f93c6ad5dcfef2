"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
import structlog

from recipeflow.config.loader import _deep_merge, build_config
from recipeflow.config.settings import AnalysisConfig


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo logging configuration done by a test (e.g. via CliRunner streams)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


# Modelling frames


@pytest.fixture
def regression_frame(rng: np.random.Generator) -> pd.DataFrame:
    """120 rows: two numeric predictors, one nominal, linear outcome."""
    n = 120
    x1 = rng.normal(size=n)
    x2 = rng.uniform(0, 10, size=n)
    cat = rng.choice(["a", "b", "c"], size=n, p=[0.5, 0.3, 0.2])
    effect = pd.Series(cat).map({"a": 0.0, "b": 2.0, "c": -2.0}).to_numpy()
    y = 3.0 * x1 - 0.5 * x2 + effect + rng.normal(scale=0.5, size=n)
    return pd.DataFrame({"id": np.arange(n), "x1": x1, "x2": x2, "cat": cat, "y": y})


@pytest.fixture
def classification_frame(rng: np.random.Generator) -> pd.DataFrame:
    """160 rows with a Yes/No outcome driven by x1 and the nominal column."""
    n = 160
    x1 = rng.normal(size=n)
    x2 = rng.normal(size=n)
    cat = rng.choice(["a", "b"], size=n)
    logit = 2.0 * x1 + np.where(cat == "a", 0.5, -0.5)
    outcome = np.where(rng.uniform(size=n) < 1 / (1 + np.exp(-logit)), "Yes", "No")
    return pd.DataFrame(
        {"id": np.arange(n), "x1": x1, "x2": x2, "cat": cat, "outcome": outcome}
    )


# Raw datasets, shaped like the CSV files


@pytest.fixture
def raw_votes(rng: np.random.Generator) -> pd.DataFrame:
    """30 countries in three voting blocs, 40 roll calls, some votes missing."""
    rows = []
    for c in range(30):
        bloc = c % 3
        for rcid in range(1, 41):
            if rng.uniform() < 0.1:
                continue
            p_yes = 0.85 if (rcid + bloc) % 3 else 0.2
            vote = rng.choice(["yes", "no", "abstain"], p=[p_yes, 0.9 - p_yes, 0.1])
            rows.append(
                {
                    "rcid": rcid,
                    "country": f"Country {c:02d}",
                    "country_code": f"C{c:02d}",
                    "vote": vote,
                }
            )
    return pd.DataFrame(rows)


@pytest.fixture
def raw_issues() -> pd.DataFrame:
    short = ["me", "nu", "di", "hr", "co", "ec"]
    names = {
        "me": "Palestinian conflict",
        "nu": "Nuclear weapons and nuclear material",
        "di": "Arms control and disarmament",
        "hr": "Human rights",
        "co": "Colonialism",
        "ec": "Economic development",
    }
    rows = []
    for rcid in range(1, 41):
        first = short[rcid % len(short)]
        rows.append({"rcid": rcid, "short_name": first, "issue": names[first]})
        if rcid % 7 == 0:
            rows.append({"rcid": rcid, "short_name": "hr", "issue": names["hr"]})
    return pd.DataFrame(rows).drop_duplicates(subset=["rcid", "short_name"])


@pytest.fixture
def raw_water(rng: np.random.Generator) -> pd.DataFrame:
    """300 reports, mostly Sierra Leone, with unknown statuses and bad years."""
    n = 300
    tech = rng.choice(["Hand Pump", "Mechanized Pump", "Tapstand"], size=n)
    p_available = np.where(tech == "Hand Pump", 0.5, 0.8)
    status = np.where(rng.uniform(size=n) < p_available, "y", "n")
    status[rng.uniform(size=n) < 0.05] = "u"
    install_year = rng.integers(1990, 2021, size=n).astype(float)
    install_year[rng.uniform(size=n) < 0.15] = np.nan
    install_year[:3] = 2035.0
    return pd.DataFrame(
        {
            "row_id": np.arange(1, n + 1),
            "lat_deg": rng.uniform(7.0, 10.0, size=n),
            "lon_deg": rng.uniform(-13.0, -10.5, size=n),
            "report_date": "2021-03-01",
            "status_id": status,
            "water_source": rng.choice(
                ["Borehole", "Protected Well", "Rainwater Harvesting", "Spring"],
                size=n,
                p=[0.5, 0.3, 0.18, 0.02],
            ),
            "water_tech": tech,
            "facility_type": rng.choice(["Improved", "Unimproved"], size=n),
            "country_name": np.where(
                np.arange(n) < 280, "Sierra Leone", "Liberia"
            ),
            "install_year": install_year,
            "installer": rng.choice(["Government", "NGO", "Private", "Church"], size=n),
            "pay": rng.choice(
                ["No payment - its free", "Pay monthly", "Pay per bucket", "Free"],
                size=n,
            ),
        }
    )


@pytest.fixture
def raw_churn(rng: np.random.Generator) -> pd.DataFrame:
    """200 customers; month-to-month contracts churn more often."""
    n = 200
    tenure = rng.integers(1, 72, size=n)
    tenure[:3] = 0
    monthly = rng.uniform(20, 110, size=n).round(2)
    contract = rng.choice(["Month-to-month", "One year", "Two year"], size=n)
    logit = -1.0 + np.where(contract == "Month-to-month", 1.5, -1.0) - tenure / 30
    churn = np.where(rng.uniform(size=n) < 1 / (1 + np.exp(-logit)), "Yes", "No")
    internet = rng.choice(["DSL", "Fiber optic", "No"], size=n)
    addon = ["Yes", "No", "No internet service"]
    total = [" " if t == 0 else f"{t * m:.2f}" for t, m in zip(tenure, monthly)]
    return pd.DataFrame(
        {
            "customerID": [f"{i:04d}-CUST" for i in range(n)],
            "gender": rng.choice(["Female", "Male"], size=n),
            "SeniorCitizen": rng.choice([0, 1], size=n, p=[0.8, 0.2]),
            "Partner": rng.choice(["Yes", "No"], size=n),
            "Dependents": rng.choice(["Yes", "No"], size=n),
            "tenure": tenure,
            "PhoneService": rng.choice(["Yes", "No"], size=n),
            "MultipleLines": rng.choice(["Yes", "No", "No phone service"], size=n),
            "InternetService": internet,
            "OnlineSecurity": rng.choice(addon, size=n),
            "OnlineBackup": rng.choice(addon, size=n),
            "DeviceProtection": rng.choice(addon, size=n),
            "TechSupport": rng.choice(addon, size=n),
            "StreamingTV": rng.choice(addon, size=n),
            "StreamingMovies": rng.choice(addon, size=n),
            "Contract": contract,
            "PaperlessBilling": rng.choice(["Yes", "No"], size=n),
            "PaymentMethod": rng.choice(
                ["Electronic check", "Mailed check", "Credit card (automatic)"],
                size=n,
            ),
            "MonthlyCharges": monthly,
            "TotalCharges": total,
            "Churn": churn,
        }
    )


@pytest.fixture
def raw_pumpkins(rng: np.random.Generator) -> pd.DataFrame:
    """160 giant pumpkins, some squash, text numbers with grouping marks."""
    n = 160
    ot = rng.uniform(250, 460, size=n)
    country = rng.choice(
        ["United States", "Canada", "Germany", "Italy", "Japan"],
        size=n,
        p=[0.5, 0.25, 0.12, 0.11, 0.02],
    )
    weight = 7.0 * ot - 1400 + np.where(country == "Germany", 60, 0)
    weight = weight + rng.normal(scale=40, size=n)
    kind = np.where(np.arange(n) < 150, "P", "S")
    ot_text = [f"{v:.1f}" for v in ot]
    ot_text[0] = "5.0"
    ot_text[1] = "2000.0"
    return pd.DataFrame(
        {
            "id": [f"{rng.choice([2013, 2014, 2015])}-{k}" for k in kind],
            "place": [str(i + 1) if i % 10 else "EXH" for i in range(n)],
            "weight_lbs": [f"{w:,.1f}" for w in weight],
            "grower_name": "Grower",
            "city": "Town",
            "state_prov": rng.choice(["Ohio", "Ontario", "Bavaria"], size=n),
            "country": country,
            "gpc_site": rng.choice(
                ["Ohio Valley Giant Pumpkin Growers", "Pumpkinfest", "Ludwigsburg"],
                size=n,
            ),
            "seed_mother": "2009 Wallace",
            "pollinator_father": "self",
            "ot": ot_text,
            "est_weight": [f"{w * 0.95:,.0f}" for w in weight],
            "pct_chart": [f"{v:.0f}" for v in rng.normal(size=n) * 5],
            "variety": None,
        }
    )


@pytest.fixture
def raw_ikea(rng: np.random.Generator) -> pd.DataFrame:
    """180 listings; bigger items cost more, dimensions partly missing."""
    n = 180
    name = rng.choice(
        ["BILLY", "MALM", "HEMNES", "KALLAX", "PAX", "LACK", "RARE ONE"],
        size=n,
        p=[0.2, 0.2, 0.15, 0.15, 0.15, 0.145, 0.005],
    )
    category = rng.choice(
        ["Bookcases & shelving units", "Beds", "Chairs", "Tables & desks"], size=n
    )
    width = rng.uniform(30, 200, size=n)
    height = rng.uniform(40, 220, size=n)
    depth = rng.uniform(20, 80, size=n)
    price = np.exp(3.0 + 0.012 * width + 0.005 * height + rng.normal(scale=0.2, size=n))
    for values in (width, height, depth):
        values[rng.uniform(size=n) < 0.2] = np.nan
    return pd.DataFrame(
        {
            "item_id": rng.integers(10_000_000, 99_999_999, size=n),
            "name": name,
            "category": category,
            "price": price.round(1),
            "old_price": "No old price",
            "sellable_online": rng.choice([True, False], size=n, p=[0.9, 0.1]),
            "other_colors": rng.choice(["Yes", "No"], size=n),
            "short_description": "Bookcase",
            "designer": "IKEA of Sweden",
            "depth": depth,
            "height": height,
            "width": width,
        }
    )


@pytest.fixture
def data_dir(
    tmp_path: Path,
    raw_votes: pd.DataFrame,
    raw_issues: pd.DataFrame,
    raw_water: pd.DataFrame,
    raw_churn: pd.DataFrame,
    raw_pumpkins: pd.DataFrame,
    raw_ikea: pd.DataFrame,
) -> Path:
    """Write every raw dataset as CSV under a temporary data root."""
    root = tmp_path / "data"
    root.mkdir()
    raw_votes.to_csv(root / "unvotes.csv", index=False)
    raw_issues.to_csv(root / "issues.csv", index=False)
    raw_water.to_csv(root / "water.csv", index=False)
    raw_churn.to_csv(root / "churn.csv", index=False)
    raw_pumpkins.to_csv(root / "pumpkins.csv", index=False)
    raw_ikea.to_csv(root / "ikea.csv", index=False)
    return root


DATA_FILES = {
    "unvotes": {"votes": "unvotes.csv", "issues": "issues.csv"},
    "water": {"water": "water.csv"},
    "churn": {"churn": "churn.csv"},
    "pumpkins": {"pumpkins": "pumpkins.csv"},
    "ikea": {"ikea": "ikea.csv"},
}


def small_config_dict(analysis: str, data_root: Path, output_root: Path) -> dict[str, Any]:
    """Configuration that keeps resampling and forests small."""
    return {
        "project": f"test-{analysis}",
        "analysis": analysis,
        "data": {"root": str(data_root), "files": DATA_FILES[analysis]},
        "resampling": {"folds": 3},
        "models": {
            "params": {
                "random_forest": {"n_estimators": 20},
            }
        },
        "output": {"root": str(output_root)},
        "random_state": 1,
        "options": {"umap": False, "importance_repeats": 2},
    }


@pytest.fixture
def make_config(
    tmp_path: Path, data_dir: Path
) -> Callable[..., AnalysisConfig]:
    """Factory for small analysis configs; keyword overrides are deep-merged."""

    def factory(analysis: str, **overrides: Any) -> AnalysisConfig:
        base = small_config_dict(analysis, data_dir, tmp_path / "output")
        return build_config(_deep_merge(base, overrides))

    return factory


@pytest.fixture
def sample_yaml(tmp_path: Path, data_dir: Path) -> Path:
    """A base.yaml plus a pumpkins config next to it."""
    config_dir = tmp_path / "configs"
    config_dir.mkdir()
    (config_dir / "base.yaml").write_text(
        "random_state: 7\n"
        "resampling:\n"
        "  folds: 3\n"
        "output:\n"
        f"  root: {tmp_path / 'output'}\n"
    )
    path = config_dir / "pumpkins.yaml"
    path.write_text(
        "project: pumpkins-test\n"
        "analysis: pumpkins\n"
        "data:\n"
        f"  root: {data_dir}\n"
        "  files:\n"
        "    pumpkins: pumpkins.csv\n"
        "models:\n"
        "  enabled: [linear_regression, mars]\n"
    )
    return path
