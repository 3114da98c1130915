# renal_models.py
# Renal model family: KDIGO staging / risk grid (always) and the 4-variable
# Kidney Failure Risk Equation (when its preconditions hold).

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from cardiorenal_types import ResolvedInputs
from units import creatinine_to_umol


# ----------------------------
# KDIGO staging
# ----------------------------
GFR_BREAKPOINTS = (
    (90.0, "G1"),
    (60.0, "G2"),
    (45.0, "G3a"),
    (30.0, "G3b"),
    (15.0, "G4"),
)

ACR_BREAKPOINTS = (
    (300.0, "A3"),
    (30.0, "A2"),
)


def gfr_stage(egfr: float) -> str:
    for cut, stage in GFR_BREAKPOINTS:
        if egfr >= cut:
            return stage
    return "G5"


def albuminuria_stage(acr: Optional[float]) -> str:
    if acr is None:
        return "A1"
    for cut, stage in ACR_BREAKPOINTS:
        if acr >= cut:
            return stage
    return "A1"


# Heat map (KDIGO 2012, Figure 9); rows GFR stage, columns A1/A2/A3
KDIGO_RISK_GRID: Dict[str, Dict[str, str]] = {
    "G1":  {"A1": "low",       "A2": "moderate",  "A3": "high"},
    "G2":  {"A1": "low",       "A2": "moderate",  "A3": "high"},
    "G3a": {"A1": "moderate",  "A2": "high",      "A3": "very_high"},
    "G3b": {"A1": "high",      "A2": "very_high", "A3": "very_high"},
    "G4":  {"A1": "very_high", "A2": "very_high", "A3": "very_high"},
    "G5":  {"A1": "very_high", "A2": "very_high", "A3": "very_high"},
}

GFR_STAGE_LABELS = {
    "G1":  {"range": "≥ 90",  "en": "Normal or high",                   "pt": "Normal ou elevado"},
    "G2":  {"range": "60-89", "en": "Mildly decreased",                 "pt": "Levemente reduzido"},
    "G3a": {"range": "45-59", "en": "Mildly to moderately decreased",   "pt": "Leve a moderadamente reduzido"},
    "G3b": {"range": "30-44", "en": "Moderately to severely decreased", "pt": "Moderada a gravemente reduzido"},
    "G4":  {"range": "15-29", "en": "Severely decreased",               "pt": "Gravemente reduzido"},
    "G5":  {"range": "< 15",  "en": "Kidney failure",                   "pt": "Insuficiência renal"},
}

ALBUMINURIA_STAGE_LABELS = {
    "A1": {"range": "< 30",   "en": "Normal to mildly increased", "pt": "Normal a levemente aumentada"},
    "A2": {"range": "30-299", "en": "Moderately increased",       "pt": "Moderadamente aumentada"},
    "A3": {"range": "≥ 300",  "en": "Severely increased",         "pt": "Gravemente aumentada"},
}

MONITORING = {
    "low": {
        "en": "Annual monitoring (if other risk factors are present)",
        "pt": "Monitoramento anual (se outros fatores de risco presentes)",
    },
    "moderate": {
        "en": "Annual monitoring",
        "pt": "Monitoramento anual",
    },
    "high": {
        "en": "Monitoring every 6 months",
        "pt": "Monitoramento a cada 6 meses",
    },
    "very_high": {
        "en": "Monitoring every 3-4 months; refer to nephrology",
        "pt": "Monitoramento a cada 3-4 meses; encaminhar a nefrologista",
    },
}


def monitoring_for(risk_category: str) -> Dict[str, str]:
    return dict(MONITORING[risk_category])


KDIGO_VERSION = {
    "name": "KDIGO CKD Classification",
    "version": "KDIGO-2012-v1.0",
    "reference": (
        "KDIGO 2012 Clinical Practice Guideline for the Evaluation and Management of Chronic Kidney Disease. "
        "Kidney Int Suppl. 2013;3:1-150."
    ),
    "population": "Adults with or at risk for CKD",
    "inputs": ("egfr", "acr", "serum_creatinine", "age", "sex"),
    "limitations": (
        "Staging requires persistence ≥ 3 months for CKD diagnosis",
        "Single measurement may not reflect chronic kidney disease",
        "ACR from spot urine may vary; consider confirming with repeat testing",
    ),
    "weighted_factors": ("egfr", "acr", "diabetes", "systolic_bp", "potassium", "renal_history"),
}


# ----------------------------
# Kidney Failure Risk Equation (4-variable)
# ----------------------------
KFRE_COEFFS = {
    "age_per_10y": -0.2201, "age_mean": 7.036,
    "male": 0.2467, "male_mean": 0.5642,
    "egfr_per_5": -0.5567, "egfr_mean": 7.222,
    "ln_acr": 0.4510, "ln_acr_mean": 5.137,
}

# Baseline survival S0(t) by calibration set
KFRE_BASELINE = {
    "non_north_american": {"2y": 0.9832, "5y": 0.9365},
    "north_american": {"2y": 0.9750, "5y": 0.9240},
}

KFRE_EGFR_RANGE = (3.0, 60.0)  # [lo, hi)
KFRE_MIN_AGE = 18

KFRE_VERSION = {
    "name": "Kidney Failure Risk Equation (4-variable)",
    "version": "KFRE-2016-4v-v1.0",
    "reference": (
        "Tangri N, et al. Multinational Assessment of Accuracy of Equations for Predicting Risk of Kidney Failure: "
        "A Meta-analysis. JAMA. 2016;315(2):164-174."
    ),
    "population": "Adults with CKD G3a-G5 (eGFR < 60 mL/min/1.73m²)",
    "inputs": ("age", "sex", "egfr", "acr"),
    "limitations": (
        "Validated for CKD stages G3a-G5 only",
        "Predicts kidney failure requiring dialysis or transplant, not death",
        "Requires a measured or equivalent albumin-creatinine ratio",
    ),
}


@dataclass(frozen=True)
class KfreResult:
    risk_2y_percent: float
    risk_5y_percent: float
    calibration: str
    linear_predictor: float


def kfre_preconditions(r: ResolvedInputs) -> Tuple[bool, str]:
    if r.egfr is None:
        return False, "eGFR unavailable"
    if r.acr is None:
        return False, "ACR unavailable (no ACR or protein/creatinine ratio supplied)"
    if r.acr <= 0:
        return False, "ACR must be > 0 for KFRE"
    if r.age < KFRE_MIN_AGE:
        return False, f"KFRE requires age ≥ {KFRE_MIN_AGE}"
    lo, hi = KFRE_EGFR_RANGE
    if not (lo <= r.egfr < hi):
        return False, f"KFRE applies to eGFR {lo:g}-{hi:g} mL/min/1.73m² (eGFR {r.egfr})"
    return True, "KFRE applicable (CKD G3a-G5 with ACR)"


def kfre_4_variable(r: ResolvedInputs, calibration: str = "non_north_american") -> KfreResult:
    age = r.require("age", "KFRE")
    egfr = r.require("egfr", "KFRE")
    acr = r.require("acr", "KFRE")
    c = KFRE_COEFFS
    male = 1.0 if r.sex == "male" else 0.0

    lp = (
        c["age_per_10y"] * (age / 10.0 - c["age_mean"])
        + c["male"] * (male - c["male_mean"])
        + c["egfr_per_5"] * (egfr / 5.0 - c["egfr_mean"])
        + c["ln_acr"] * (math.log(acr) - c["ln_acr_mean"])
    )
    s0 = KFRE_BASELINE[calibration]
    hr = math.exp(lp)

    def pct(s: float) -> float:
        return round(max(0.0, min(100.0, (1.0 - s ** hr) * 100.0)), 1)

    return KfreResult(
        risk_2y_percent=pct(s0["2y"]),
        risk_5y_percent=pct(s0["5y"]),
        calibration=calibration,
        linear_predictor=round(lp, 4),
    )


def kdigo_inputs_used(r: ResolvedInputs) -> Dict[str, Any]:
    d = r.snapshot(KDIGO_VERSION["inputs"])
    d["egfr_derived"] = r.egfr_derived
    d["acr_derived"] = r.acr_derived
    d["serum_creatinine_umol"] = creatinine_to_umol(r.serum_creatinine)
    return d
