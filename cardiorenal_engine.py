# cardiorenal_engine.py
# CardioRenal risk engine: validate -> resolve -> select -> compute -> classify -> explain.
#
# - Cardiac: PCE (ASCVD), SCORE2, Framingham general CVD; one model per call
#   (caller preference, else fixed priority ascvd -> score2 -> framingham)
# - Renal: KDIGO staging + risk grid always; KFRE 2y/5y when eGFR 3-60 and ACR > 0
# - Invalid input comes back as InputValidationFailure (data), not an exception
# - Every selection and substitution is recorded in warnings and the rule trace
# - The clock is read once per call and only feeds metadata.calculated_at

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from cardiac_models import ModelContext
from cardiorenal_types import (
    AssessmentResult,
    CalculatorMetadata,
    CalculatorPreferences,
    CardiacResult,
    ClinicalRecord,
    InputValidationFailure,
    PatientRecord,
    RenalResult,
    ResolvedInputs,
)
from classifier import cardiac_justification, classify_cardiac_risk, classify_renal
from config import EngineSettings, get_settings
from contributing_factors import extract
from derived_values import CKD_EPI_VERSION, resolve
from errors import MissingDerivedInput
from model_selector import select_cardiac_model, select_renal_models
from renal_models import (
    KDIGO_VERSION,
    KFRE_VERSION,
    albuminuria_stage,
    gfr_stage,
    kdigo_inputs_used,
    kfre_4_variable,
    monitoring_for,
)
from trace_log import add_trace
from validation import validate

logger = logging.getLogger(__name__)


VERSION = {
    "engine": "cardiorenal v1.0",
    "cardiac": "PCE 2013 / SCORE2 2021 / Framingham 2008",
    "renal": "KDIGO 2012 + KFRE 4-variable (Tangri 2016)",
    "egfr": CKD_EPI_VERSION["version"],
}


def _iso(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# ----------------------------
# Cardiac
# ----------------------------
def _assess_cardiac(
    r: ResolvedInputs,
    prefs: CalculatorPreferences,
    settings: EngineSettings,
    calculated_at: str,
    warnings: List[str],
    trace: List[Dict[str, Any]],
) -> CardiacResult:
    ctx = ModelContext(score2_region=prefs.score2_region or settings.score2_default_region)
    model = select_cardiac_model(prefs.cardiac, r, ctx, warnings, trace)

    out = model.compute(r, ctx)
    category = classify_cardiac_risk(out.risk_10y_percent)
    add_trace(trace, "Cardiac_Risk", out.risk_10y_percent, f"{model.model_id} 10y risk → {category}")

    inputs_used = r.snapshot(model.inputs)
    inputs_used.update(out.details)

    return CardiacResult(
        model_used=model.model_id,
        risk_10y_percent=out.risk_10y_percent,
        risk_5y_percent=out.risk_5y_percent,
        classification=category,
        classification_justification=cardiac_justification(out.risk_10y_percent, category),
        contributing_factors=tuple(extract(r, model.weighted_factors, settings.max_contributing_factors)),
        metadata=CalculatorMetadata(
            model_name=model.name,
            model_version=model.version,
            reference=model.reference,
            applicable_population=model.population,
            calculated_at=calculated_at,
            inputs_used=inputs_used,
            limitations=model.limitations,
        ),
    )


# ----------------------------
# Renal
# ----------------------------
def _assess_renal(
    r: ResolvedInputs,
    prefs: CalculatorPreferences,
    settings: EngineSettings,
    calculated_at: str,
    warnings: List[str],
    trace: List[Dict[str, Any]],
) -> RenalResult:
    selection = select_renal_models(r, prefs.renal, warnings, trace)

    g = gfr_stage(r.egfr)
    a = albuminuria_stage(r.acr)
    if r.acr is None:
        warnings.append("albuminuria stage assumed A1: no ACR or protein/creatinine ratio supplied")
        add_trace(trace, "Albuminuria_Default", "A1", "No ACR available; A1 assumed")
    risk = classify_renal(g, a)
    add_trace(trace, "KDIGO_Stage", f"{g}/{a}", f"KDIGO risk → {risk}")

    kfre2 = kfre5 = None
    kfre_meta = None
    if selection.kfre:
        try:
            k = kfre_4_variable(r, settings.kfre_calibration)
        except MissingDerivedInput as e:
            warnings.append(f"KFRE not calculated: {e}")
            add_trace(trace, "KFRE_Skipped", e.field, str(e))
        else:
            kfre2, kfre5 = k.risk_2y_percent, k.risk_5y_percent
            add_trace(trace, "KFRE_Risk", kfre5, f"2y {kfre2}% / 5y {kfre5}% ({k.calibration})")
            kfre_inputs = r.snapshot(KFRE_VERSION["inputs"])
            kfre_inputs.update({"calibration": k.calibration, "linear_predictor": k.linear_predictor})
            kfre_meta = CalculatorMetadata(
                model_name=KFRE_VERSION["name"],
                model_version=KFRE_VERSION["version"],
                reference=KFRE_VERSION["reference"],
                applicable_population=KFRE_VERSION["population"],
                calculated_at=calculated_at,
                inputs_used=kfre_inputs,
                limitations=KFRE_VERSION["limitations"],
            )

    limitations = KDIGO_VERSION["limitations"]
    if r.egfr_derived:
        limitations = limitations + ("eGFR calculated with CKD-EPI 2021 (race-free)",) + CKD_EPI_VERSION["limitations"]

    return RenalResult(
        model_used="kdigo",
        egfr_calculated=r.egfr,
        egfr_derived=r.egfr_derived,
        gfr_stage=g,
        albuminuria_stage=a,
        risk_category=risk,
        kfre_2y_percent=kfre2,
        kfre_5y_percent=kfre5,
        monitoring=monitoring_for(risk),
        contributing_factors=tuple(extract(r, KDIGO_VERSION["weighted_factors"], settings.max_contributing_factors)),
        metadata=CalculatorMetadata(
            model_name=KDIGO_VERSION["name"],
            model_version=KDIGO_VERSION["version"],
            reference=KDIGO_VERSION["reference"],
            applicable_population=KDIGO_VERSION["population"],
            calculated_at=calculated_at,
            inputs_used=kdigo_inputs_used(r),
            limitations=limitations,
        ),
        kfre_metadata=kfre_meta,
    )


# ----------------------------
# Entry point
# ----------------------------
def assess(
    patient: PatientRecord,
    clinical: ClinicalRecord,
    preferences: Optional[CalculatorPreferences] = None,
    now: Optional[datetime] = None,
    settings: Optional[EngineSettings] = None,
) -> Union[AssessmentResult, InputValidationFailure]:
    """Score one patient. Raises NoApplicableModel when no cardiac model fits."""
    prefs = preferences or CalculatorPreferences()
    settings = settings or get_settings()

    errors = validate(patient, clinical)
    if errors:
        return InputValidationFailure(errors=tuple(errors))

    trace: List[Dict[str, Any]] = []
    warnings: List[str] = []
    add_trace(trace, "Engine_start", VERSION["engine"], "Begin assessment")

    calculated_at = _iso(now or datetime.now(timezone.utc))

    r = resolve(patient, clinical, warnings, trace)
    cardiac = _assess_cardiac(r, prefs, settings, calculated_at, warnings, trace)
    renal = _assess_renal(r, prefs, settings, calculated_at, warnings, trace)

    add_trace(trace, "Engine_end", VERSION["engine"], "Assessment complete")
    logger.info(
        "Assessment complete: cardiac=%s %.1f%% (%s), renal=%s/%s (%s)",
        cardiac.model_used, cardiac.risk_10y_percent, cardiac.classification,
        renal.gfr_stage, renal.albuminuria_stage, renal.risk_category,
    )
    return AssessmentResult(
        cardiac=cardiac, renal=renal, warnings=tuple(warnings), trace=tuple(trace), language=prefs.language
    )
