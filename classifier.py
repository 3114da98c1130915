# classifier.py
# Risk categories. Cardiac: engine-wide percent thresholds. Renal: KDIGO grid lookup.

from typing import Dict

from renal_models import KDIGO_RISK_GRID

# Ascending (cut, category); a value at a cut belongs to the higher category.
CARDIAC_RISK_THRESHOLDS = (
    (5.0, "moderate"),
    (7.5, "high"),
    (20.0, "very_high"),
)

_CATEGORY_PT = {
    "low": "baixo",
    "moderate": "moderado",
    "high": "alto",
    "very_high": "muito alto",
}


def classify_cardiac_risk(risk_10y_percent: float) -> str:
    category = "low"
    for cut, label in CARDIAC_RISK_THRESHOLDS:
        if risk_10y_percent >= cut:
            category = label
    return category


def cardiac_justification(risk_10y_percent: float, category: str) -> Dict[str, str]:
    bands = {"low": "< 5%", "moderate": "5% to < 7.5%", "high": "7.5% to < 20%", "very_high": "≥ 20%"}
    bands_pt = {"low": "< 5%", "moderate": "5% a < 7,5%", "high": "7,5% a < 20%", "very_high": "≥ 20%"}
    return {
        "en": f"10-year risk of {risk_10y_percent:.1f}% falls in the {category.replace('_', ' ')} band ({bands[category]})",
        "pt": (
            f"Risco em 10 anos de {risk_10y_percent:.1f}%".replace(".", ",")
            + f" corresponde à faixa de risco {_CATEGORY_PT[category]} ({bands_pt[category]})"
        ),
    }


def classify_renal(gfr_stage: str, albuminuria_stage: str) -> str:
    return KDIGO_RISK_GRID[gfr_stage][albuminuria_stage]
