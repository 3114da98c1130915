# contributing_factors.py
# Ranked contributing factors. Each factor has tiered bands; a model declares
# which factors it weighs and the extractor evaluates only those.
#
# Ordering is deterministic: impact (high > moderate > low), then FACTOR_PRIORITY.

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from cardiorenal_types import ContributingFactor, ResolvedInputs
from renal_models import albuminuria_stage, gfr_stage

# (impact, name, description) or None when the factor does not fire
Hit = Optional[Tuple[str, str, str]]

IMPACT_RANK = {"high": 0, "moderate": 1, "low": 2}

# Tie-break order inside an impact tier
FACTOR_PRIORITY = (
    "smoking",
    "diabetes",
    "systolic_bp",
    "egfr",
    "acr",
    "total_cholesterol",
    "non_hdl_cholesterol",
    "hdl_cholesterol",
    "potassium",
    "glycemia",
    "cardiac_history",
    "renal_history",
    "bmi",
    "age",
)

MODIFIABLE = {
    "smoking": True,
    "diabetes": True,
    "systolic_bp": True,
    "egfr": False,
    "acr": True,
    "total_cholesterol": True,
    "non_hdl_cholesterol": True,
    "hdl_cholesterol": True,
    "potassium": True,
    "glycemia": True,
    "cardiac_history": False,
    "renal_history": False,
    "bmi": True,
    "age": False,
}

FACTOR_LABELS_PT = {
    "smoking": "Tabagismo",
    "diabetes": "Diabetes mellitus",
    "systolic_bp": "Pressão arterial sistólica",
    "egfr": "TFG reduzida",
    "acr": "Albuminúria",
    "total_cholesterol": "Colesterol total",
    "non_hdl_cholesterol": "Colesterol não-HDL",
    "hdl_cholesterol": "HDL baixo",
    "potassium": "Hipercalemia",
    "glycemia": "Glicemia (HbA1c)",
    "cardiac_history": "História cardiovascular",
    "renal_history": "História renal",
    "bmi": "Obesidade",
    "age": "Idade",
}


# ----------------------------
# Per-factor bands
# ----------------------------
def _age(r: ResolvedInputs) -> Hit:
    if r.age >= 65:
        return "high", "Advanced age", f"Age {r.age} years substantially increases cardiovascular risk"
    if r.age >= 55:
        return "moderate", "Age", f"Age {r.age} years contributes to risk"
    if r.age >= 45:
        return "low", "Age", f"Age {r.age} years"
    return None


def _systolic_bp(r: ResolvedInputs) -> Hit:
    sbp = r.systolic_bp
    if sbp >= 140:
        return "high", "Hypertension", f"Systolic BP {sbp:g} mmHg above target (< 130-140 mmHg)"
    if sbp >= 130:
        return "moderate", "Elevated blood pressure", f"Systolic BP {sbp:g} mmHg moderately elevated"
    if sbp >= 120:
        return "low", "Elevated blood pressure", f"Systolic BP {sbp:g} mmHg (elevated, < 130)"
    return None


def _total_cholesterol(r: ResolvedInputs) -> Hit:
    tc = r.total_cholesterol
    if tc >= 240:
        return "high", "High total cholesterol", f"Total cholesterol {tc:g} mg/dL (desirable < 200 mg/dL)"
    if tc >= 200:
        return "moderate", "Borderline total cholesterol", f"Total cholesterol {tc:g} mg/dL (borderline high)"
    return None


def _non_hdl_cholesterol(r: ResolvedInputs) -> Hit:
    non_hdl = r.total_cholesterol - r.hdl_cholesterol
    if non_hdl >= 190:
        return "high", "High non-HDL cholesterol", f"Non-HDL cholesterol {non_hdl:g} mg/dL"
    if non_hdl >= 160:
        return "moderate", "Elevated non-HDL cholesterol", f"Non-HDL cholesterol {non_hdl:g} mg/dL"
    return None


def _hdl_cholesterol(r: ResolvedInputs) -> Hit:
    hdl = r.hdl_cholesterol
    if hdl < 40:
        return "high", "Low HDL", f"HDL {hdl:g} mg/dL (< 40 mg/dL) is an independent risk factor"
    if hdl < 50 and r.sex == "female":
        return "moderate", "Low HDL", f"HDL {hdl:g} mg/dL (< 50 mg/dL for women)"
    return None


def _diabetes(r: ResolvedInputs) -> Hit:
    if r.has_diabetes:
        return "high", "Diabetes mellitus", "Diabetes raises both cardiovascular and kidney disease risk"
    return None


def _smoking(r: ResolvedInputs) -> Hit:
    if r.is_smoker:
        return "high", "Smoking", "Active smoking roughly doubles cardiovascular risk"
    return None


def _glycemia(r: ResolvedInputs) -> Hit:
    # Only meaningful without a diabetes diagnosis; diabetes is its own factor
    if r.has_diabetes or r.hba1c is None:
        return None
    if r.hba1c >= 6.5:
        return "high", "HbA1c in diabetic range", f"HbA1c {r.hba1c:g}% (≥ 6.5%) without a diabetes diagnosis"
    if r.hba1c >= 5.7:
        return "moderate", "Prediabetes", f"HbA1c {r.hba1c:g}% (5.7-6.4%)"
    return None


def _bmi(r: ResolvedInputs) -> Hit:
    if r.bmi is None:
        return None
    if r.bmi >= 35:
        return "moderate", "Obesity", f"BMI {r.bmi:g} kg/m² (class II or higher)"
    if r.bmi >= 30:
        return "low", "Obesity", f"BMI {r.bmi:g} kg/m²"
    return None


def _history(r: ResolvedInputs, conditions: Iterable[Tuple[str, str, str]], name: str) -> Hit:
    present = [(impact, label) for attr, impact, label in conditions if getattr(r, attr)]
    if not present:
        return None
    impact = min((p[0] for p in present), key=IMPACT_RANK.get)
    return impact, name, "History of " + ", ".join(p[1] for p in present)


_CARDIAC_HISTORY = (
    ("has_heart_failure", "high", "heart failure"),
    ("has_cad", "high", "coronary artery disease"),
    ("has_stroke", "high", "stroke"),
    ("has_arrhythmia", "moderate", "arrhythmia"),
)

_RENAL_HISTORY = (
    ("has_transplant", "high", "kidney transplant"),
    ("has_nephropathy", "high", "nephropathy"),
    ("has_ckd", "moderate", "chronic kidney disease"),
)


def _cardiac_history(r: ResolvedInputs) -> Hit:
    return _history(r, _CARDIAC_HISTORY, "Cardiovascular history")


def _renal_history(r: ResolvedInputs) -> Hit:
    return _history(r, _RENAL_HISTORY, "Renal history")


def _egfr(r: ResolvedInputs) -> Hit:
    if r.egfr is None:
        return None
    stage = gfr_stage(r.egfr)
    if r.egfr < 30:
        return "high", "Severely reduced GFR", f"eGFR {r.egfr:g} mL/min/1.73m² (stage {stage})"
    if r.egfr < 60:
        return "moderate", "Reduced GFR", f"eGFR {r.egfr:g} mL/min/1.73m² (stage {stage})"
    return None


def _acr(r: ResolvedInputs) -> Hit:
    if r.acr is None:
        return None
    stage = albuminuria_stage(r.acr)
    if r.acr >= 300:
        return "high", "Severe albuminuria", f"ACR {r.acr:g} mg/g ({stage})"
    if r.acr >= 30:
        return "moderate", "Moderate albuminuria", f"ACR {r.acr:g} mg/g ({stage})"
    return None


def _potassium(r: ResolvedInputs) -> Hit:
    if r.potassium is None:
        return None
    if r.potassium > 5.5:
        return "high", "Hyperkalemia", f"Potassium {r.potassium:g} mEq/L (> 5.5)"
    if r.potassium > 5.0:
        return "moderate", "Borderline hyperkalemia", f"Potassium {r.potassium:g} mEq/L (> 5.0)"
    return None


FACTOR_RULES: Dict[str, Callable[[ResolvedInputs], Hit]] = {
    "age": _age,
    "systolic_bp": _systolic_bp,
    "total_cholesterol": _total_cholesterol,
    "non_hdl_cholesterol": _non_hdl_cholesterol,
    "hdl_cholesterol": _hdl_cholesterol,
    "diabetes": _diabetes,
    "smoking": _smoking,
    "glycemia": _glycemia,
    "bmi": _bmi,
    "cardiac_history": _cardiac_history,
    "renal_history": _renal_history,
    "egfr": _egfr,
    "acr": _acr,
    "potassium": _potassium,
}


def _sort_key(f: ContributingFactor) -> Tuple[int, int]:
    return IMPACT_RANK[f.impact], FACTOR_PRIORITY.index(f.factor)


def extract(r: ResolvedInputs, weighted_factors: Iterable[str], limit: int = 5) -> List[ContributingFactor]:
    factors: List[ContributingFactor] = []
    for key in weighted_factors:
        hit = FACTOR_RULES[key](r)
        if hit is None:
            continue
        impact, name, description = hit
        factors.append(ContributingFactor(
            factor=key,
            name=name,
            impact=impact,
            modifiable=MODIFIABLE[key],
            description=description,
        ))
    factors.sort(key=_sort_key)
    return factors[:limit]
