# output_adapter.py
# Output adapter: converts engine records into the camelCase contract consumers key off,
# plus a fixed-template quick-reference text.

from typing import Any, Dict, List, Optional

from cardiorenal_types import (
    AssessmentResult,
    CalculatorMetadata,
    ContributingFactor,
    LANGUAGES,
    InputValidationFailure,
)
from config import get_settings
from contributing_factors import FACTOR_LABELS_PT
from renal_models import ALBUMINURIA_STAGE_LABELS, GFR_STAGE_LABELS

_CATEGORY_LABELS = {
    "en-US": {"low": "Low", "moderate": "Moderate", "high": "High", "very_high": "Very high"},
    "pt-BR": {"low": "Baixo", "moderate": "Moderado", "high": "Alto", "very_high": "Muito alto"},
}


def _lang(language: Optional[str]) -> str:
    language = language or get_settings().default_language
    if language not in LANGUAGES:
        raise ValueError(f"Unsupported language: {language!r}")
    return language


def _key(language: str) -> str:
    return "pt" if language == "pt-BR" else "en"


def _fmt_pct(x: Optional[float]) -> Optional[str]:
    if x is None:
        return None
    return f"{round(float(x), 1)}%"


def _metadata(m: Optional[CalculatorMetadata]) -> Optional[Dict[str, Any]]:
    if m is None:
        return None
    return {
        "modelName": m.model_name,
        "modelVersion": m.model_version,
        "reference": m.reference,
        "applicablePopulation": m.applicable_population,
        "calculatedAt": m.calculated_at,
        "inputsUsed": dict(m.inputs_used),
        "limitations": list(m.limitations),
    }


def _factor(f: ContributingFactor, language: str) -> Dict[str, Any]:
    name = FACTOR_LABELS_PT.get(f.factor, f.name) if language == "pt-BR" else f.name
    return {
        "factor": f.factor,
        "name": name,
        "impact": f.impact,
        "modifiable": f.modifiable,
        "description": f.description,
    }


def to_contract(result: AssessmentResult, language: Optional[str] = None) -> Dict[str, Any]:
    """CamelCase contract for an AssessmentResult."""
    language = _lang(language or result.language)
    k = _key(language)
    c, r = result.cardiac, result.renal

    cardiac = {
        "modelUsed": c.model_used,
        "risk10yPercent": c.risk_10y_percent,
        "risk5yPercent": c.risk_5y_percent,
        "classification": c.classification,
        "classificationLabel": _CATEGORY_LABELS[language][c.classification],
        "classificationJustification": c.classification_justification[k],
        "contributingFactors": [_factor(f, language) for f in c.contributing_factors],
        "metadata": _metadata(c.metadata),
    }

    renal = {
        "modelUsed": r.model_used,
        "eGFRCalculated": r.egfr_calculated,
        "eGFRDerived": r.egfr_derived,
        "gfrStage": r.gfr_stage,
        "gfrStageLabel": GFR_STAGE_LABELS[r.gfr_stage][k],
        "albuminuriaStage": r.albuminuria_stage,
        "albuminuriaStageLabel": ALBUMINURIA_STAGE_LABELS[r.albuminuria_stage][k],
        "riskCategory": r.risk_category,
        "riskCategoryLabel": _CATEGORY_LABELS[language][r.risk_category],
        "kfre2yPercent": r.kfre_2y_percent,
        "kfre5yPercent": r.kfre_5y_percent,
        "monitoring": r.monitoring[k],
        "contributingFactors": [_factor(f, language) for f in r.contributing_factors],
        "metadata": _metadata(r.metadata),
        "kfreMetadata": _metadata(r.kfre_metadata),
    }

    return {
        "success": True,
        "language": language,
        "cardiac": cardiac,
        "renal": renal,
        "warnings": list(result.warnings),
        "trace": [dict(t) for t in result.trace],
    }


def errors_to_contract(failure: InputValidationFailure, language: Optional[str] = None) -> Dict[str, Any]:
    language = _lang(language)
    return {
        "success": False,
        "language": language,
        "errors": [
            {"field": e.field, "message": e.message_pt_br if language == "pt-BR" else e.message}
            for e in failure.errors
        ],
    }


def render_quick_text(result: AssessmentResult) -> str:
    c, r = result.cardiac, result.renal

    lines: List[str] = []
    lines.append("CardioRenal Risk — Quick Reference")
    lines.append("")

    cat = _CATEGORY_LABELS["en-US"][c.classification]
    lines.append(f"Cardiac model: {c.metadata.model_name}")
    risk_line = f"10-year risk: {_fmt_pct(c.risk_10y_percent)} ({cat})"
    if c.risk_5y_percent is not None:
        risk_line += f"; 5-year: {_fmt_pct(c.risk_5y_percent)}"
    lines.append(risk_line)
    if c.contributing_factors:
        lines.append("Drivers: " + "; ".join(f"{f.name} ({f.impact})" for f in c.contributing_factors))

    lines.append("")
    derived = " (CKD-EPI 2021)" if r.egfr_derived else ""
    lines.append(f"eGFR: {r.egfr_calculated} mL/min/1.73m²{derived}")
    lines.append(
        f"KDIGO: {r.gfr_stage}/{r.albuminuria_stage} — "
        f"{GFR_STAGE_LABELS[r.gfr_stage]['en']}; {ALBUMINURIA_STAGE_LABELS[r.albuminuria_stage]['en']}"
    )
    lines.append(f"Renal risk: {_CATEGORY_LABELS['en-US'][r.risk_category]}")
    if r.kfre_5y_percent is not None:
        lines.append(f"KFRE kidney failure risk: 2-year {_fmt_pct(r.kfre_2y_percent)} / 5-year {_fmt_pct(r.kfre_5y_percent)}")
    else:
        lines.append("KFRE: not calculated")
    lines.append(f"Monitoring: {r.monitoring['en']}")
    if r.contributing_factors:
        lines.append("Renal drivers: " + "; ".join(f"{f.name} ({f.impact})" for f in r.contributing_factors))

    if result.warnings:
        lines.append("")
        lines.append("Notes")
        for w in result.warnings:
            lines.append(f"• {w}")
    return "\n".join(lines)
