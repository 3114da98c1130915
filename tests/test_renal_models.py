import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from cardiorenal_types import ALBUMINURIA_STAGES, CLASSIFICATIONS, GFR_STAGES
from classifier import classify_renal
from derived_values import resolve
from renal_models import (
    KDIGO_RISK_GRID,
    albuminuria_stage,
    gfr_stage,
    kfre_4_variable,
    kfre_preconditions,
    monitoring_for,
)


GFR_BOUNDARIES = [
    (120, "G1"), (90, "G1"), (89.9, "G2"),
    (60, "G2"), (59.9, "G3a"),
    (45, "G3a"), (44.9, "G3b"),
    (30, "G3b"), (29.9, "G4"),
    (15, "G4"), (14.9, "G5"), (2, "G5"),
]

ACR_BOUNDARIES = [
    (None, "A1"), (0, "A1"), (29.9, "A1"),
    (30, "A2"), (299.9, "A2"),
    (300, "A3"), (5000, "A3"),
]


@pytest.mark.parametrize("egfr,stage", GFR_BOUNDARIES)
def test_gfr_stage_boundaries_map_to_higher_band(egfr, stage):
    assert gfr_stage(egfr) == stage


@pytest.mark.parametrize("acr,stage", ACR_BOUNDARIES)
def test_albuminuria_stage_boundaries_map_to_higher_band(acr, stage):
    assert albuminuria_stage(acr) == stage


def test_kdigo_grid_is_complete_and_monotone():
    order = {c: i for i, c in enumerate(CLASSIFICATIONS)}
    assert list(KDIGO_RISK_GRID) == list(GFR_STAGES)
    for g in GFR_STAGES:
        row = [order[KDIGO_RISK_GRID[g][a]] for a in ALBUMINURIA_STAGES]
        assert row == sorted(row)
    for a in ALBUMINURIA_STAGES:
        col = [order[KDIGO_RISK_GRID[g][a]] for g in GFR_STAGES]
        assert col == sorted(col)


def test_kdigo_grid_anchor_cells():
    assert classify_renal("G1", "A1") == "low"
    assert classify_renal("G2", "A2") == "moderate"
    assert classify_renal("G3a", "A1") == "moderate"
    assert classify_renal("G3b", "A1") == "high"
    assert classify_renal("G4", "A3") == "very_high"
    assert classify_renal("G5", "A1") == "very_high"


def test_monitoring_recommendation_is_bilingual():
    for c in CLASSIFICATIONS:
        m = monitoring_for(c)
        assert set(m) == {"en", "pt"}
    assert "nephrology" in monitoring_for("very_high")["en"]
    assert monitoring_for("moderate")["pt"] == "Monitoramento anual"


def test_kfre_preconditions(make_patient, make_clinical):
    ok, _ = kfre_preconditions(resolve(make_patient(), make_clinical(egfr=25, acr=350), []))
    assert ok

    for clinical_kw, fragment in (
        ({"egfr": 75, "acr": 350}, "eGFR"),
        ({"egfr": 60, "acr": 350}, "eGFR"),
        ({"egfr": 2, "acr": 350}, "eGFR"),
        ({"egfr": 25}, "ACR unavailable"),
        ({"egfr": 25, "acr": 0}, "ACR must be > 0"),
    ):
        ok, why = kfre_preconditions(resolve(make_patient(), make_clinical(**clinical_kw), []))
        assert not ok
        assert fragment in why


def test_kfre_reference_profile(make_patient, make_clinical):
    r = resolve(make_patient(age=65), make_clinical(egfr=25, acr=350), [])
    k = kfre_4_variable(r)
    assert k.risk_2y_percent == pytest.approx(9.6, abs=0.2)
    assert k.risk_5y_percent == pytest.approx(32.4, abs=0.3)
    assert k.calibration == "non_north_american"


def test_kfre_north_american_calibration_is_higher(make_patient, make_clinical):
    r = resolve(make_patient(age=65), make_clinical(egfr=25, acr=350), [])
    non_na = kfre_4_variable(r, "non_north_american")
    na = kfre_4_variable(r, "north_american")
    assert na.risk_2y_percent > non_na.risk_2y_percent
    assert na.risk_5y_percent > non_na.risk_5y_percent


def test_kfre_properties_random_profiles(make_patient, make_clinical):
    rng = random.Random(1729)
    for _ in range(150):
        r = resolve(
            make_patient(age=rng.randint(18, 95), sex=rng.choice(["male", "female"])),
            make_clinical(egfr=round(rng.uniform(3, 59.9), 1), acr=round(rng.uniform(1, 5000), 1)),
            [],
        )
        assert kfre_preconditions(r)[0]
        k = kfre_4_variable(r)
        assert 0.0 <= k.risk_2y_percent <= k.risk_5y_percent <= 100.0


def test_kfre_worsens_with_lower_egfr_and_higher_acr(make_patient, make_clinical):
    def five_year(egfr, acr):
        return kfre_4_variable(resolve(make_patient(age=60), make_clinical(egfr=egfr, acr=acr), [])).risk_5y_percent

    assert five_year(20, 300) > five_year(40, 300)
    assert five_year(30, 1000) > five_year(30, 50)
