import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from cardiac_models import (
    CARDIAC_MODELS,
    PCE_NON_MONOTONE_NOTE,
    ModelContext,
    five_year_from_ten,
    pce_equation_key,
)
from derived_values import resolve


def _resolved(make_patient, make_clinical, patient_kw, clinical_kw):
    return resolve(make_patient(**patient_kw), make_clinical(**clinical_kw), [])


def _risk(model_id, r, region="moderate"):
    return CARDIAC_MODELS[model_id].compute(r, ModelContext(score2_region=region)).risk_10y_percent


def _pce_tc_slope_negative(model_id, patient_kw):
    # Non-Black female PCE: d(lp)/d(ln TC) = 13.540 - 3.114 * ln(age) < 0 from age 78 (see PCE limitations)
    return (
        model_id == "ascvd"
        and patient_kw["sex"] == "female"
        and patient_kw["ethnicity"] != "black"
        and patient_kw["age"] >= 78
    )


def _typical_profile(rng, model_id):
    # Non-smokers with HDL >= 40 and TC <= 240 stay outside the PCE age non-monotone region
    lo, hi = CARDIAC_MODELS[model_id].age_range
    patient_kw = {
        "age": rng.randint(lo, hi),
        "sex": rng.choice(["male", "female"]),
        "ethnicity": rng.choice(["white", "black", "hispanic", "asian", "other", None]),
    }
    sbp = rng.randint(110, 160)
    clinical_kw = {
        "systolic_bp": sbp,
        "diastolic_bp": rng.randint(60, min(100, sbp - 10)),
        "total_cholesterol": rng.randint(150, 240),
        "hdl_cholesterol": rng.randint(40, 70),
        "on_bp_medication": rng.choice([True, False]),
        "has_diabetes": rng.choice([True, False]),
        "is_smoker": False,
    }
    return patient_kw, clinical_kw


def test_pce_reference_scenario_white_male_smoker(make_patient, make_clinical):
    r = _resolved(
        make_patient, make_clinical,
        {"age": 55, "sex": "male"},
        {"systolic_bp": 150, "total_cholesterol": 240, "hdl_cholesterol": 40, "is_smoker": True},
    )
    out = CARDIAC_MODELS["ascvd"].compute(r, ModelContext())
    assert out.risk_10y_percent == pytest.approx(19.7, abs=0.3)
    assert out.details["equation"] == "white_male"
    assert 0 < out.risk_5y_percent < out.risk_10y_percent


def test_pce_equation_routing(make_patient, make_clinical):
    for eth, expected in (("black", "black"), ("white", "white"), ("hispanic", "white"),
                          ("asian", "white"), ("other", "white"), (None, "white")):
        r = _resolved(make_patient, make_clinical, {"ethnicity": eth, "sex": "female"}, {})
        assert pce_equation_key(r) == (expected, "female")


def test_five_year_constant_hazard():
    assert five_year_from_ten(0.0) == 0.0
    assert five_year_from_ten(0.75) == pytest.approx(0.5)
    assert five_year_from_ten(1.0) == 1.0


@pytest.mark.parametrize("model_id", ["ascvd", "framingham", "score2"])
def test_risk_bounds_random_profiles(make_patient, make_clinical, model_id):
    rng = random.Random(11)
    for _ in range(120):
        patient_kw, clinical_kw = _typical_profile(rng, model_id)
        clinical_kw["is_smoker"] = rng.choice([True, False])
        r = _resolved(make_patient, make_clinical, patient_kw, clinical_kw)
        out = CARDIAC_MODELS[model_id].compute(r, ModelContext(score2_region="moderate"))
        assert 0.0 <= out.risk_10y_percent <= 100.0
        assert 0.0 <= out.risk_5y_percent <= out.risk_10y_percent
        assert round(out.risk_10y_percent, 1) == out.risk_10y_percent


@pytest.mark.parametrize("model_id", ["ascvd", "framingham", "score2"])
def test_monotone_in_systolic_bp(make_patient, make_clinical, model_id):
    rng = random.Random(23)
    for _ in range(60):
        patient_kw, clinical_kw = _typical_profile(rng, model_id)
        clinical_kw["diastolic_bp"] = 60
        prev = None
        for sbp in range(100, 200, 10):
            clinical_kw["systolic_bp"] = sbp
            risk = _risk(model_id, _resolved(make_patient, make_clinical, patient_kw, clinical_kw))
            if prev is not None:
                assert risk >= prev, (patient_kw, clinical_kw)
            prev = risk


@pytest.mark.parametrize("model_id", ["ascvd", "framingham", "score2"])
def test_monotone_in_total_cholesterol(make_patient, make_clinical, model_id):
    rng = random.Random(29)
    for _ in range(60):
        patient_kw, clinical_kw = _typical_profile(rng, model_id)
        if _pce_tc_slope_negative(model_id, patient_kw):
            continue
        prev = None
        for tc in range(150, 310, 10):
            clinical_kw["total_cholesterol"] = tc
            risk = _risk(model_id, _resolved(make_patient, make_clinical, patient_kw, clinical_kw))
            if prev is not None:
                assert risk >= prev, (patient_kw, clinical_kw)
            prev = risk


@pytest.mark.parametrize("model_id", ["ascvd", "framingham", "score2"])
def test_monotone_in_age(make_patient, make_clinical, model_id):
    rng = random.Random(31)
    lo, hi = CARDIAC_MODELS[model_id].age_range
    for _ in range(40):
        patient_kw, clinical_kw = _typical_profile(rng, model_id)
        prev = None
        for age in range(lo, hi + 1):
            patient_kw["age"] = age
            risk = _risk(model_id, _resolved(make_patient, make_clinical, patient_kw, clinical_kw))
            if prev is not None:
                assert risk >= prev, (patient_kw, clinical_kw)
            prev = risk


def test_smoking_and_diabetes_raise_risk(make_patient, make_clinical):
    for model_id in CARDIAC_MODELS:
        base = _resolved(make_patient, make_clinical, {"age": 60}, {})
        smoker = _resolved(make_patient, make_clinical, {"age": 60}, {"is_smoker": True})
        diabetic = _resolved(make_patient, make_clinical, {"age": 60}, {"has_diabetes": True})
        assert _risk(model_id, smoker) > _risk(model_id, base)
        assert _risk(model_id, diabetic) > _risk(model_id, base)


def test_score2_region_recalibration_orders_low_below_very_high(make_patient, make_clinical):
    rng = random.Random(5)
    for _ in range(60):
        patient_kw, clinical_kw = _typical_profile(rng, "score2")
        r = _resolved(make_patient, make_clinical, patient_kw, clinical_kw)
        assert _risk("score2", r, "low") <= _risk("score2", r, "very_high")


def test_score2_records_region_in_details(make_patient, make_clinical):
    r = _resolved(make_patient, make_clinical, {"age": 50}, {})
    out = CARDIAC_MODELS["score2"].compute(r, ModelContext(score2_region="high"))
    assert out.details["risk_region"] == "high"
    assert 0.0 < out.details["uncalibrated_risk_percent"] < 100.0


def test_applicability_age_windows(make_patient, make_clinical):
    ctx = ModelContext(score2_region="moderate")
    cases = {
        "ascvd": ((40, True), (79, True), (39, False), (80, False)),
        "score2": ((40, True), (69, True), (39, False), (70, False)),
        "framingham": ((30, True), (74, True), (29, False), (75, False)),
    }
    for model_id, rows in cases.items():
        for age, expected in rows:
            r = _resolved(make_patient, make_clinical, {"age": age}, {})
            assert CARDIAC_MODELS[model_id].is_applicable(r, ctx) is expected, (model_id, age)


def test_score2_needs_supported_region(make_patient, make_clinical):
    r = _resolved(make_patient, make_clinical, {"age": 50}, {})
    ok, why = CARDIAC_MODELS["score2"].check(r, ModelContext(score2_region=None))
    assert not ok
    assert "region" in why


def test_pce_documented_non_monotone_regions(make_patient, make_clinical):
    assert PCE_NON_MONOTONE_NOTE in CARDIAC_MODELS["ascvd"].limitations

    # Total cholesterol at ages 78-79, non-Black female equation
    for age in (78, 79):
        low_tc = _resolved(make_patient, make_clinical, {"age": age, "sex": "female"},
                           {"total_cholesterol": 160, "hdl_cholesterol": 50})
        high_tc = _resolved(make_patient, make_clinical, {"age": age, "sex": "female"},
                            {"total_cholesterol": 300, "hdl_cholesterol": 50})
        assert _pce_tc_slope_negative("ascvd", {"age": age, "sex": "female", "ethnicity": None})
        assert _risk("ascvd", high_tc) < _risk("ascvd", low_tc)

    # Age with low HDL and high total cholesterol, female smoker
    kw = {"systolic_bp": 120, "total_cholesterol": 300, "hdl_cholesterol": 30, "is_smoker": True}
    at_40 = _resolved(make_patient, make_clinical, {"age": 40, "sex": "female"}, kw)
    at_45 = _resolved(make_patient, make_clinical, {"age": 45, "sex": "female"}, kw)
    assert _risk("ascvd", at_45) < _risk("ascvd", at_40)

    # Outside the region the same woman's risk rises with cholesterol
    young = [_risk("ascvd", _resolved(make_patient, make_clinical, {"age": 77, "sex": "female"},
                                      {"total_cholesterol": tc, "hdl_cholesterol": 50}))
             for tc in (160, 300)]
    assert young[1] >= young[0]
