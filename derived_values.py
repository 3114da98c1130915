# derived_values.py
# Fills in values the models need but the caller did not supply.
# Caller-supplied values always win; every substitution is announced as a warning.

import logging
from typing import Any, Dict, List, Optional

import units
from cardiorenal_types import ClinicalRecord, PatientRecord, ResolvedInputs
from trace_log import add_trace

logger = logging.getLogger(__name__)


CKD_EPI_VERSION = {
    "name": "CKD-EPI 2021 (Race-Free)",
    "version": "CKD-EPI-2021-v1.0",
    "reference": (
        "Inker LA, et al. New Creatinine- and Cystatin C-Based Equations to Estimate GFR without Race. "
        "N Engl J Med. 2021;385(19):1737-1749."
    ),
    "population": "Adults aged 18+",
    "limitations": (
        "Accuracy may be lower at extremes of body composition (very muscular or cachectic patients)",
        "Not validated in pregnancy",
        "Acute kidney injury may cause inaccurate results",
        "Diet (e.g., high meat intake) can temporarily affect serum creatinine",
    ),
}


# ----------------------------
# CKD-EPI 2021 creatinine equation
# ----------------------------
def ckd_epi_2021_egfr(serum_creatinine: float, age: float, sex: str) -> float:
    female = (sex == "female")
    kappa = 0.7 if female else 0.9
    alpha = -0.241 if female else -0.302

    ratio = float(serum_creatinine) / kappa
    egfr = 142.0 * (min(ratio, 1.0) ** alpha) * (max(ratio, 1.0) ** -1.200) * (0.9938 ** float(age))
    if female:
        egfr *= 1.012
    return round(egfr, 1)


# ----------------------------
# Protein/creatinine -> albumin/creatinine equivalent
# ----------------------------
# Piecewise-linear map anchored on the KDIGO category boundaries, so PCR-based
# staging and ACR-based staging agree: PCR 150 -> ACR 30, PCR 500 -> ACR 300.
_PCR_ANCHORS = ((0.0, 0.0), (150.0, 30.0), (500.0, 300.0))
_PCR_SLOPE_ABOVE = 300.0 / 500.0


def acr_from_pcr(pcr: float) -> float:
    x = float(pcr)
    if x >= _PCR_ANCHORS[-1][0]:
        return round(x * _PCR_SLOPE_ABOVE, 1)
    for (x0, y0), (x1, y1) in zip(_PCR_ANCHORS, _PCR_ANCHORS[1:]):
        if x0 <= x < x1:
            return round(y0 + (x - x0) * (y1 - y0) / (x1 - x0), 1)
    return 0.0


def _opt_float(v: Any) -> Optional[float]:
    return None if v is None else float(v)


def resolve(
    patient: PatientRecord,
    clinical: ClinicalRecord,
    warnings: List[str],
    trace: Optional[List[Dict[str, Any]]] = None,
) -> ResolvedInputs:
    trace = trace if trace is not None else []

    creatinine = float(clinical.serum_creatinine)
    if clinical.serum_creatinine_unit == "umol/L":
        creatinine = units.creatinine_to_mgdl(creatinine)
        warnings.append("converted serum_creatinine from umol/L to mg/dL")
        add_trace(trace, "Converted_Creatinine", creatinine, f"{clinical.serum_creatinine} µmol/L = {creatinine} mg/dL")

    egfr = _opt_float(clinical.egfr)
    egfr_derived = False
    if egfr is None:
        egfr = ckd_epi_2021_egfr(creatinine, patient.age, patient.sex)
        egfr_derived = True
        warnings.append("derived egfr from serum_creatinine, age, sex (CKD-EPI 2021)")
        add_trace(trace, "Derived_eGFR", egfr, "eGFR computed with CKD-EPI 2021 (race-free)")
        logger.debug("Derived eGFR %.1f from creatinine %.2f", egfr, creatinine)
    else:
        add_trace(trace, "Supplied_eGFR", egfr, "Caller-supplied eGFR used as-is")

    acr = _opt_float(clinical.acr)
    acr_derived = False
    if acr is None and clinical.proteinuria is not None:
        acr = acr_from_pcr(clinical.proteinuria)
        acr_derived = True
        warnings.append("derived acr from proteinuria (KDIGO category-equivalent mapping)")
        add_trace(trace, "Derived_ACR", acr, f"ACR equivalent from PCR {clinical.proteinuria} mg/g")

    bmi = None
    if patient.height_cm is not None and patient.weight_kg is not None:
        bmi = units.bmi(patient.height_cm, patient.weight_kg)
        warnings.append("derived bmi from height_cm, weight_kg")
        add_trace(trace, "Derived_BMI", bmi, "BMI computed from height and weight")

    return ResolvedInputs(
        age=int(float(patient.age)),
        sex=patient.sex,
        ethnicity=patient.ethnicity,
        systolic_bp=float(clinical.systolic_bp),
        diastolic_bp=float(clinical.diastolic_bp),
        on_bp_medication=bool(clinical.on_bp_medication),
        has_diabetes=bool(clinical.has_diabetes),
        is_smoker=bool(clinical.is_smoker),
        total_cholesterol=float(clinical.total_cholesterol),
        hdl_cholesterol=float(clinical.hdl_cholesterol),
        serum_creatinine=creatinine,
        egfr=egfr,
        egfr_derived=egfr_derived,
        acr=acr,
        acr_derived=acr_derived,
        proteinuria=_opt_float(clinical.proteinuria),
        hba1c=_opt_float(clinical.hba1c),
        ldl_cholesterol=_opt_float(clinical.ldl_cholesterol),
        triglycerides=_opt_float(clinical.triglycerides),
        bmi=bmi,
        potassium=_opt_float(clinical.potassium),
        has_heart_failure=bool(clinical.has_heart_failure),
        has_cad=bool(clinical.has_cad),
        has_stroke=bool(clinical.has_stroke),
        has_ckd=bool(clinical.has_ckd),
        has_transplant=bool(clinical.has_transplant),
        has_nephropathy=bool(clinical.has_nephropathy),
        has_arrhythmia=bool(clinical.has_arrhythmia),
        on_statin=bool(clinical.on_statin),
        on_acei_or_arb=bool(clinical.on_acei_or_arb),
        on_sglt2=bool(clinical.on_sglt2),
    )
