# model_selector.py
# Chooses which cardiac model runs and whether KFRE accompanies KDIGO staging.
# Pure functions of the resolved inputs and preferences; decisions go to warnings + trace.

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from cardiac_models import CARDIAC_MODELS, CardiacModel, ModelContext
from cardiorenal_types import CARDIAC_PREFERENCES, RENAL_PREFERENCES, ResolvedInputs
from errors import NoApplicableModel
from renal_models import kfre_preconditions
from trace_log import add_trace

logger = logging.getLogger(__name__)

# Fixed priority when the caller does not pin a model (or its pin does not apply)
AUTO_PRIORITY = ("ascvd", "score2", "framingham")


@dataclass(frozen=True)
class RenalSelection:
    staging: bool
    kfre: bool
    reason: str


def select_cardiac_model(
    preference: str,
    r: ResolvedInputs,
    ctx: ModelContext,
    warnings: List[str],
    trace: List[Dict[str, Any]],
) -> CardiacModel:
    if preference not in CARDIAC_PREFERENCES:
        raise ValueError(f"Unknown cardiac preference: {preference!r}")

    tried: List[str] = []

    if preference != "auto":
        model = CARDIAC_MODELS[preference]
        ok, why = model.check(r, ctx)
        tried.append(preference)
        if ok:
            add_trace(trace, "Cardiac_Model_Preferred", preference, why)
            logger.debug("Cardiac model %s selected by preference", preference)
            return model
        warnings.append(f"preferred cardiac model '{preference}' not applicable ({why}); falling back to automatic selection")
        add_trace(trace, "Cardiac_Preference_Fallback", preference, why)
        logger.info("Preferred cardiac model %s not applicable: %s", preference, why)

    for model_id in AUTO_PRIORITY:
        if model_id in tried:
            continue
        model = CARDIAC_MODELS[model_id]
        ok, why = model.check(r, ctx)
        tried.append(model_id)
        if ok:
            add_trace(trace, "Cardiac_Model_Auto", model_id, why)
            logger.debug("Cardiac model %s selected by priority", model_id)
            return model
        add_trace(trace, "Cardiac_Model_Skipped", model_id, why)

    logger.warning("No applicable cardiac model (preference=%s, age=%s)", preference, r.age)
    raise NoApplicableModel(preference, r.age, tried)


def select_renal_models(
    r: ResolvedInputs,
    preference: str,
    warnings: List[str],
    trace: List[Dict[str, Any]],
) -> RenalSelection:
    if preference not in RENAL_PREFERENCES:
        raise ValueError(f"Unknown renal preference: {preference!r}")

    add_trace(trace, "Renal_Staging", "kdigo", "KDIGO staging always runs")

    if preference == "kdigo":
        reason = "KFRE skipped: renal preference is staging only"
        warnings.append(reason)
        add_trace(trace, "KFRE_Skipped", preference, reason)
        return RenalSelection(staging=True, kfre=False, reason=reason)

    ok, why = kfre_preconditions(r)
    if not ok:
        reason = f"KFRE not calculated: {why}"
        warnings.append(reason)
        add_trace(trace, "KFRE_Skipped", None, why)
        logger.debug(reason)
        return RenalSelection(staging=True, kfre=False, reason=reason)

    add_trace(trace, "KFRE_Selected", r.egfr, why)
    return RenalSelection(staging=True, kfre=True, reason=why)
