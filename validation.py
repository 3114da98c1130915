# validation.py
# Input validation. Reports every problem as data; never raises.

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from cardiorenal_types import (
    CREATININE_UNITS,
    ETHNICITIES,
    SEXES,
    ClinicalRecord,
    PatientRecord,
    ValidationError,
)
from units import CREATININE_MGDL_TO_UMOLL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RangeRule:
    field: str
    min: float
    max: float
    unit: str
    required: bool
    label: str
    label_pt_br: str
    integer: bool = False


# Inclusive bounds. Patient fields first, then clinical fields.
PATIENT_RULES: Tuple[RangeRule, ...] = (
    RangeRule("age", 18, 120, "years", True, "Age", "Idade", integer=True),
    RangeRule("height_cm", 50, 250, "cm", False, "Height", "Altura"),
    RangeRule("weight_kg", 10, 400, "kg", False, "Weight", "Peso"),
)

CLINICAL_RULES: Tuple[RangeRule, ...] = (
    RangeRule("systolic_bp", 50, 300, "mmHg", True, "Systolic blood pressure", "Pressão arterial sistólica"),
    RangeRule("diastolic_bp", 30, 200, "mmHg", True, "Diastolic blood pressure", "Pressão arterial diastólica"),
    RangeRule("total_cholesterol", 50, 500, "mg/dL", True, "Total cholesterol", "Colesterol total"),
    RangeRule("hdl_cholesterol", 10, 150, "mg/dL", True, "HDL cholesterol", "Colesterol HDL"),
    RangeRule("serum_creatinine", 0.1, 30, "mg/dL", True, "Serum creatinine", "Creatinina sérica"),
    RangeRule("ldl_cholesterol", 20, 400, "mg/dL", False, "LDL cholesterol", "Colesterol LDL"),
    RangeRule("triglycerides", 20, 2000, "mg/dL", False, "Triglycerides", "Triglicerídeos"),
    RangeRule("egfr", 1, 200, "mL/min/1.73m²", False, "eGFR", "TFGe"),
    RangeRule("acr", 0, 30000, "mg/g", False, "Albumin-creatinine ratio", "Relação albumina-creatinina"),
    RangeRule("proteinuria", 0, 50000, "mg/g", False, "Protein-creatinine ratio", "Relação proteína-creatinina"),
    RangeRule("hba1c", 3, 20, "%", False, "HbA1c", "HbA1c"),
    RangeRule("potassium", 1, 10, "mEq/L", False, "Potassium", "Potássio"),
    RangeRule("sodium", 100, 180, "mEq/L", False, "Sodium", "Sódio"),
    RangeRule("calcium", 4, 18, "mg/dL", False, "Calcium", "Cálcio"),
    RangeRule("phosphorus", 1, 15, "mg/dL", False, "Phosphorus", "Fósforo"),
)

# serum_creatinine reported in umol/L; bounds are the mg/dL ones converted
CREATININE_UMOL_RULE = RangeRule(
    "serum_creatinine", round(0.1 * CREATININE_MGDL_TO_UMOLL, 1), round(30 * CREATININE_MGDL_TO_UMOLL, 1), "µmol/L", True,
    "Serum creatinine", "Creatinina sérica",
)


def _as_number(v: Any) -> Optional[float]:
    if isinstance(v, bool):
        return None
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    if math.isnan(x) or math.isinf(x):
        return None
    return x


def _fmt_bound(x: float) -> str:
    return f"{x:g}"


_UNITS_PT_BR = {"years": "anos"}


def _check_rule(rule: RangeRule, value: Any, errors: List[ValidationError]) -> Optional[float]:
    if value is None or value == "":
        if rule.required:
            errors.append(ValidationError(
                field=rule.field,
                message=f"{rule.label} is required",
                message_pt_br=f"{rule.label_pt_br} é obrigatório",
            ))
        return None

    x = _as_number(value)
    if x is None:
        errors.append(ValidationError(
            field=rule.field,
            message=f"{rule.label} must be a number",
            message_pt_br=f"{rule.label_pt_br} deve ser um número",
        ))
        return None

    if rule.integer and not x.is_integer():
        errors.append(ValidationError(
            field=rule.field,
            message=f"{rule.label} must be a whole number",
            message_pt_br=f"{rule.label_pt_br} deve ser um número inteiro",
        ))
        return None

    if x < rule.min or x > rule.max:
        lo, hi = _fmt_bound(rule.min), _fmt_bound(rule.max)
        errors.append(ValidationError(
            field=rule.field,
            message=f"{rule.label} must be between {lo} and {hi} {rule.unit}",
            message_pt_br=f"{rule.label_pt_br} deve estar entre {lo} e {hi} {_UNITS_PT_BR.get(rule.unit, rule.unit)}",
        ))
        return None
    return x


def validate_patient(patient: PatientRecord) -> List[ValidationError]:
    errors: List[ValidationError] = []

    for rule in PATIENT_RULES:
        _check_rule(rule, getattr(patient, rule.field, None), errors)

    if patient.sex not in SEXES:
        errors.append(ValidationError(
            field="sex",
            message="Sex is required (male/female)",
            message_pt_br="Sexo é obrigatório (masculino/feminino)",
        ))

    if patient.ethnicity is not None and patient.ethnicity not in ETHNICITIES:
        errors.append(ValidationError(
            field="ethnicity",
            message=f"Ethnicity must be one of: {', '.join(ETHNICITIES)}",
            message_pt_br=f"Etnia deve ser uma das opções: {', '.join(ETHNICITIES)}",
        ))
    return errors


def validate_clinical(clinical: ClinicalRecord) -> List[ValidationError]:
    errors: List[ValidationError] = []
    checked = {}

    unit = clinical.serum_creatinine_unit
    if unit not in CREATININE_UNITS:
        errors.append(ValidationError(
            field="serum_creatinine_unit",
            message=f"Serum creatinine unit must be one of: {', '.join(CREATININE_UNITS)}",
            message_pt_br=f"Unidade de creatinina sérica deve ser uma das opções: {', '.join(CREATININE_UNITS)}",
        ))

    for rule in CLINICAL_RULES:
        if rule.field == "serum_creatinine":
            if unit not in CREATININE_UNITS:
                continue
            if unit == "umol/L":
                rule = CREATININE_UMOL_RULE
        checked[rule.field] = _check_rule(rule, getattr(clinical, rule.field, None), errors)

    # Cross-field ordering, only once both pressures passed their own range check
    sbp, dbp = checked.get("systolic_bp"), checked.get("diastolic_bp")
    if sbp is not None and dbp is not None and sbp <= dbp:
        errors.append(ValidationError(
            field="systolic_bp",
            message="Systolic BP must be greater than diastolic BP",
            message_pt_br="PAS deve ser maior que PAD",
        ))
    return errors


def validate(patient: PatientRecord, clinical: ClinicalRecord) -> List[ValidationError]:
    errors = validate_patient(patient) + validate_clinical(clinical)
    if errors:
        logger.info("Validation failed: %s", ", ".join(e.field for e in errors))
    return errors

