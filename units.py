# units.py
# Lab unit conversions. Engine inputs are mg/dL; SCORE2 is defined in mmol/L.

CHOLESTEROL_MGDL_TO_MMOLL = 0.02586
CREATININE_MGDL_TO_UMOLL = 88.42


def cholesterol_to_mmol(mg_dl: float) -> float:
    return float(mg_dl) * CHOLESTEROL_MGDL_TO_MMOLL


def creatinine_to_umol(mg_dl: float) -> float:
    """Serum creatinine mg/dL -> µmol/L, one decimal."""
    return round(float(mg_dl) * CREATININE_MGDL_TO_UMOLL, 1)


def creatinine_to_mgdl(umol_l: float) -> float:
    """Serum creatinine µmol/L -> mg/dL, two decimals."""
    return round(float(umol_l) / CREATININE_MGDL_TO_UMOLL, 2)


def bmi(height_cm: float, weight_kg: float) -> float:
    """Body-mass index (kg/m²), one decimal."""
    h = float(height_cm) / 100.0
    return round(float(weight_kg) / (h * h), 1)
