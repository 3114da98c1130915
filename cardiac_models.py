# cardiac_models.py
# Cardiac model family: Pooled Cohort Equations, Framingham (general CVD), SCORE2.
#
# Each model is a CardiacModel variant carrying its own applicability check and
# compute function; selection happens in model_selector via an explicit priority list.
# Coefficients are the published ones (see each model's reference).

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from cardiorenal_types import SCORE2_REGIONS, ResolvedInputs
from units import cholesterol_to_mmol


@dataclass(frozen=True)
class ModelContext:
    """Per-call options a model may consult (never mutated)."""
    score2_region: Optional[str] = None


@dataclass(frozen=True)
class CardiacComputation:
    risk_10y_percent: float
    risk_5y_percent: Optional[float]
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CardiacModel:
    model_id: str
    name: str
    version: str
    reference: str
    population: str
    age_range: Tuple[int, int]
    inputs: Tuple[str, ...]
    weighted_factors: Tuple[str, ...]
    limitations: Tuple[str, ...]
    check: Callable[[ResolvedInputs, ModelContext], Tuple[bool, str]]
    compute: Callable[[ResolvedInputs, ModelContext], CardiacComputation]

    def is_applicable(self, r: ResolvedInputs, ctx: ModelContext) -> bool:
        return self.check(r, ctx)[0]


# ----------------------------
# Shared helpers
# ----------------------------
_LIPID_BP_FIELDS = ("total_cholesterol", "hdl_cholesterol", "systolic_bp")


def _pct(risk: float) -> float:
    return round(max(0.0, min(1.0, risk)) * 100.0, 1)


def five_year_from_ten(risk10: float) -> float:
    # Constant-hazard extrapolation: S(5) = S(10) ** 0.5
    r = max(0.0, min(1.0, risk10))
    return 1.0 - math.sqrt(1.0 - r)


def _age_and_data_check(lo: int, hi: int, label: str) -> Callable[[ResolvedInputs, ModelContext], Tuple[bool, str]]:
    def check(r: ResolvedInputs, ctx: ModelContext) -> Tuple[bool, str]:
        missing = [k for k in _LIPID_BP_FIELDS if not r.has(k)]
        if missing:
            return False, f"{label}: missing {', '.join(missing)}"
        if r.age < lo or r.age > hi:
            return False, f"{label}: valid for ages {lo}–{hi} (age {r.age})"
        return True, f"{label}: applicable"
    return check


# ----------------------------
# Pooled Cohort Equations (10-year ASCVD risk)
# ----------------------------
PCE = {
    ("white", "female"): {
        "ln_age": -29.799, "ln_age_sq": 4.884,
        "ln_tc": 13.540, "ln_age_ln_tc": -3.114,
        "ln_hdl": -13.578, "ln_age_ln_hdl": 3.149,
        "ln_sbp_treated": 2.019, "ln_sbp_untreated": 1.957,
        "smoker": 7.574, "ln_age_smoker": -1.665,
        "diabetes": 0.661,
        "mean": -29.18, "s0": 0.9665,
    },
    ("black", "female"): {
        "ln_age": 17.114,
        "ln_tc": 0.940,
        "ln_hdl": -18.920, "ln_age_ln_hdl": 4.475,
        "ln_sbp_treated": 29.291, "ln_age_ln_sbp_treated": -6.432,
        "ln_sbp_untreated": 27.820, "ln_age_ln_sbp_untreated": -6.087,
        "smoker": 0.691,
        "diabetes": 0.874,
        "mean": 86.61, "s0": 0.9533,
    },
    ("white", "male"): {
        "ln_age": 12.344,
        "ln_tc": 11.853, "ln_age_ln_tc": -2.664,
        "ln_hdl": -7.990, "ln_age_ln_hdl": 1.769,
        "ln_sbp_treated": 1.797, "ln_sbp_untreated": 1.764,
        "smoker": 7.837, "ln_age_smoker": -1.795,
        "diabetes": 0.658,
        "mean": 61.18, "s0": 0.9144,
    },
    ("black", "male"): {
        "ln_age": 2.469,
        "ln_tc": 0.302,
        "ln_hdl": -0.307,
        "ln_sbp_treated": 1.916, "ln_sbp_untreated": 1.809,
        "smoker": 0.549,
        "diabetes": 0.645,
        "mean": 19.54, "s0": 0.8954,
    },
}


def pce_equation_key(r: ResolvedInputs) -> Tuple[str, str]:
    # Race other/hispanic/asian/unknown -> non-Black (white) equations
    race_key = "black" if r.ethnicity == "black" else "white"
    return race_key, r.sex


def pooled_cohort_equations(r: ResolvedInputs, ctx: ModelContext) -> CardiacComputation:
    key = pce_equation_key(r)
    c = PCE[key]

    ln_age = math.log(r.age); ln_tc = math.log(r.total_cholesterol)
    ln_hdl = math.log(r.hdl_cholesterol); ln_sbp = math.log(r.systolic_bp)

    lp = 0.0
    lp += c.get("ln_age", 0) * ln_age
    if "ln_age_sq" in c: lp += c["ln_age_sq"] * (ln_age ** 2)
    lp += c.get("ln_tc", 0) * ln_tc
    if "ln_age_ln_tc" in c: lp += c["ln_age_ln_tc"] * (ln_age * ln_tc)
    lp += c.get("ln_hdl", 0) * ln_hdl
    if "ln_age_ln_hdl" in c: lp += c["ln_age_ln_hdl"] * (ln_age * ln_hdl)

    if r.on_bp_medication:
        lp += c.get("ln_sbp_treated", 0) * ln_sbp
        if "ln_age_ln_sbp_treated" in c: lp += c["ln_age_ln_sbp_treated"] * (ln_age * ln_sbp)
    else:
        lp += c.get("ln_sbp_untreated", 0) * ln_sbp
        if "ln_age_ln_sbp_untreated" in c: lp += c["ln_age_ln_sbp_untreated"] * (ln_age * ln_sbp)

    if r.is_smoker:
        lp += c.get("smoker", 0)
        if "ln_age_smoker" in c: lp += c["ln_age_smoker"] * ln_age
    if r.has_diabetes:
        lp += c.get("diabetes", 0)

    risk = 1 - (c["s0"] ** math.exp(lp - c["mean"]))
    return CardiacComputation(
        risk_10y_percent=_pct(risk),
        risk_5y_percent=_pct(five_year_from_ten(risk)),
        details={"equation": "_".join(key), "linear_predictor": round(lp, 4)},
    )


# ----------------------------
# Framingham general CVD (D'Agostino 2008)
# ----------------------------
FRAMINGHAM = {
    "male": {
        "ln_age": 3.06117, "ln_tc": 1.12370, "ln_hdl": -0.93263,
        "ln_sbp_untreated": 1.93303, "ln_sbp_treated": 1.99881,
        "smoker": 0.65451, "diabetes": 0.57367,
        "mean": 23.9802, "s0": 0.88936,
    },
    "female": {
        "ln_age": 2.32888, "ln_tc": 1.20904, "ln_hdl": -0.70833,
        "ln_sbp_untreated": 2.76157, "ln_sbp_treated": 2.82263,
        "smoker": 0.52873, "diabetes": 0.69154,
        "mean": 26.1931, "s0": 0.95012,
    },
}


def framingham_general_cvd(r: ResolvedInputs, ctx: ModelContext) -> CardiacComputation:
    c = FRAMINGHAM[r.sex]
    sbp_coeff = c["ln_sbp_treated"] if r.on_bp_medication else c["ln_sbp_untreated"]

    lp = (
        c["ln_age"] * math.log(r.age)
        + c["ln_tc"] * math.log(r.total_cholesterol)
        + c["ln_hdl"] * math.log(r.hdl_cholesterol)
        + sbp_coeff * math.log(r.systolic_bp)
    )
    if r.is_smoker:
        lp += c["smoker"]
    if r.has_diabetes:
        lp += c["diabetes"]

    risk = 1 - (c["s0"] ** math.exp(lp - c["mean"]))
    return CardiacComputation(
        risk_10y_percent=_pct(risk),
        risk_5y_percent=_pct(five_year_from_ten(risk)),
        details={"equation": f"framingham_{r.sex}", "linear_predictor": round(lp, 4)},
    )


# ----------------------------
# SCORE2 (ESC 2021)
# ----------------------------
# Transformed predictors: cage=(age-60)/5, csbp=(sbp-120)/20, ctchol=tc_mmol-6, chdl=(hdl_mmol-1.3)/0.5
SCORE2 = {
    "male": {
        "age": 0.3742, "smoking": 0.6012, "sbp": 0.2777, "diabetes": 0.6457,
        "tchol": 0.1458, "hdl": -0.2698,
        "age_smoking": -0.0755, "age_sbp": -0.0255, "age_tchol": -0.0281,
        "age_hdl": 0.0426, "age_diabetes": -0.0983,
        "s0": 0.9605,
    },
    "female": {
        "age": 0.4648, "smoking": 0.7744, "sbp": 0.3131, "diabetes": 0.8096,
        "tchol": 0.1002, "hdl": -0.2606,
        "age_smoking": -0.1088, "age_sbp": -0.0277, "age_tchol": -0.0226,
        "age_hdl": 0.0613, "age_diabetes": -0.1272,
        "s0": 0.9776,
    },
}

# Region recalibration scales (scale1, scale2)
SCORE2_REGION_SCALES = {
    "male": {
        "low": (-0.5699, 0.7476),
        "moderate": (-0.1565, 0.8009),
        "high": (0.3207, 0.9360),
        "very_high": (0.5836, 0.8294),
    },
    "female": {
        "low": (-0.7380, 0.7019),
        "moderate": (-0.3143, 0.7701),
        "high": (0.5710, 0.9369),
        "very_high": (0.9412, 0.8329),
    },
}


def _score2_check(r: ResolvedInputs, ctx: ModelContext) -> Tuple[bool, str]:
    ok, why = _age_and_data_check(40, 69, "SCORE2")(r, ctx)
    if not ok:
        return ok, why
    if ctx.score2_region not in SCORE2_REGIONS:
        return False, f"SCORE2: unsupported risk region {ctx.score2_region!r}"
    return True, f"SCORE2: applicable (region {ctx.score2_region})"


def score2(r: ResolvedInputs, ctx: ModelContext) -> CardiacComputation:
    c = SCORE2[r.sex]
    cage = (r.age - 60) / 5.0
    csbp = (r.systolic_bp - 120) / 20.0
    ctchol = cholesterol_to_mmol(r.total_cholesterol) - 6.0
    chdl = (cholesterol_to_mmol(r.hdl_cholesterol) - 1.3) / 0.5
    smoking = 1.0 if r.is_smoker else 0.0
    dm = 1.0 if r.has_diabetes else 0.0

    lp = (
        c["age"] * cage
        + c["smoking"] * smoking
        + c["sbp"] * csbp
        + c["diabetes"] * dm
        + c["tchol"] * ctchol
        + c["hdl"] * chdl
        + c["age_smoking"] * cage * smoking
        + c["age_sbp"] * cage * csbp
        + c["age_tchol"] * cage * ctchol
        + c["age_hdl"] * cage * chdl
        + c["age_diabetes"] * cage * dm
    )
    uncalibrated = 1 - (c["s0"] ** math.exp(lp))

    s1, s2 = SCORE2_REGION_SCALES[r.sex][ctx.score2_region]
    risk = 1 - math.exp(-math.exp(s1 + s2 * math.log(-math.log(1 - uncalibrated))))

    return CardiacComputation(
        risk_10y_percent=_pct(risk),
        risk_5y_percent=_pct(five_year_from_ten(risk)),
        details={
            "risk_region": ctx.score2_region,
            "linear_predictor": round(lp, 4),
            "uncalibrated_risk_percent": _pct(uncalibrated),
        },
    )


# ----------------------------
# Registry
# ----------------------------
_FIVE_YEAR_NOTE = "5-year risk is extrapolated from the 10-year estimate assuming a constant hazard"
PCE_NON_MONOTONE_NOTE = (
    "Published coefficients are not monotone everywhere: in the non-Black female equation risk falls "
    "with rising total cholesterol at ages 78-79, and falls with rising age when HDL is low and total "
    "cholesterol high (e.g. smokers with HDL 30, TC 300); in the Black female equation risk can fall "
    "with age at high treated SBP and low HDL"
)

CARDIAC_MODELS: Dict[str, CardiacModel] = {
    "ascvd": CardiacModel(
        model_id="ascvd",
        name="Pooled Cohort Equations (ASCVD)",
        version="2013-PCE-v1.0",
        reference=(
            "Goff DC Jr, et al. 2013 ACC/AHA Guideline on the Assessment of Cardiovascular Risk. "
            "Circulation. 2014;129(suppl 2):S49-S73."
        ),
        population="Adults aged 40-79, non-Hispanic white or African American",
        age_range=(40, 79),
        inputs=("age", "sex", "ethnicity", "total_cholesterol", "hdl_cholesterol", "systolic_bp",
                "on_bp_medication", "has_diabetes", "is_smoker"),
        weighted_factors=("smoking", "diabetes", "systolic_bp", "total_cholesterol", "hdl_cholesterol",
                          "glycemia", "cardiac_history", "bmi", "age"),
        limitations=(
            "Developed primarily in US non-Hispanic white and African American populations",
            "May overestimate risk in some populations (e.g., Hispanic, East Asian)",
            "Not validated for ages < 40 or > 79",
            "Does not account for family history, CRP, coronary calcium score, or other risk enhancers",
            "May overestimate risk in statin-treated patients",
            PCE_NON_MONOTONE_NOTE,
            _FIVE_YEAR_NOTE,
        ),
        check=_age_and_data_check(40, 79, "PCE"),
        compute=pooled_cohort_equations,
    ),
    "score2": CardiacModel(
        model_id="score2",
        name="SCORE2 (Systematic COronary Risk Evaluation 2)",
        version="SCORE2-2021-v1.0",
        reference=(
            "SCORE2 working group and ESC Cardiovascular risk collaboration. SCORE2 risk prediction algorithms: "
            "new models to estimate 10-year risk of cardiovascular disease in Europe. "
            "Eur Heart J. 2021;42(25):2439-2454."
        ),
        population="Adults aged 40-69 without prior CVD, European risk regions",
        age_range=(40, 69),
        inputs=("age", "sex", "total_cholesterol", "hdl_cholesterol", "systolic_bp", "is_smoker", "has_diabetes"),
        weighted_factors=("smoking", "diabetes", "systolic_bp", "non_hdl_cholesterol", "glycemia",
                          "cardiac_history", "bmi", "age"),
        limitations=(
            "Valid for ages 40-69 (SCORE2-OP for ≥ 70)",
            "Developed for and validated in European populations; requires a risk region",
            "Not intended for patients with established CVD, diabetes-specific risk (SCORE2-Diabetes) or CKD",
            _FIVE_YEAR_NOTE,
        ),
        check=_score2_check,
        compute=score2,
    ),
    "framingham": CardiacModel(
        model_id="framingham",
        name="Framingham Risk Score (General CVD)",
        version="FRS-2008-v1.0",
        reference=(
            "D'Agostino RB Sr, et al. General cardiovascular risk profile for use in primary care: "
            "the Framingham Heart Study. Circulation. 2008;117(6):743-753."
        ),
        population="Adults aged 30-74 without prior CVD",
        age_range=(30, 74),
        inputs=("age", "sex", "total_cholesterol", "hdl_cholesterol", "systolic_bp",
                "on_bp_medication", "has_diabetes", "is_smoker"),
        weighted_factors=("smoking", "diabetes", "systolic_bp", "total_cholesterol", "hdl_cholesterol",
                          "glycemia", "cardiac_history", "bmi", "age"),
        limitations=(
            "Based on Framingham, MA population (primarily white Americans)",
            "May overestimate risk in low-risk populations",
            "May underestimate risk in South Asian and some Hispanic populations",
            "Valid for ages 30-74",
            _FIVE_YEAR_NOTE,
        ),
        check=_age_and_data_check(30, 74, "Framingham"),
        compute=framingham_general_cvd,
    ),
}
