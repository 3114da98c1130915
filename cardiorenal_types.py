# cardiorenal_types.py
# Input and output records. Everything here is frozen: callers build a complete
# record before calling the engine, and results are never mutated afterwards.

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from errors import MissingDerivedInput


# ----------------------------
# Code sets (stable contract)
# ----------------------------
SEXES = ("male", "female")
ETHNICITIES = ("white", "black", "hispanic", "asian", "other")

# Ordered low -> very_high; shared by cardiac and renal results.
CLASSIFICATIONS = ("low", "moderate", "high", "very_high")

GFR_STAGES = ("G1", "G2", "G3a", "G3b", "G4", "G5")
ALBUMINURIA_STAGES = ("A1", "A2", "A3")

CARDIAC_MODEL_IDS = ("ascvd", "framingham", "score2")
CARDIAC_PREFERENCES = ("auto",) + CARDIAC_MODEL_IDS
RENAL_PREFERENCES = ("auto", "kdigo", "kfre")
SCORE2_REGIONS = ("low", "moderate", "high", "very_high")
LANGUAGES = ("en-US", "pt-BR")
CREATININE_UNITS = ("mg/dL", "umol/L")


# ----------------------------
# Inputs
# ----------------------------
@dataclass(frozen=True)
class PatientRecord:
    name: str
    age: int
    sex: str
    external_id: Optional[str] = None
    ethnicity: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None


@dataclass(frozen=True)
class ClinicalRecord:
    # Vitals
    systolic_bp: float
    diastolic_bp: float
    # Lipids (mg/dL)
    total_cholesterol: float
    hdl_cholesterol: float
    # Renal
    serum_creatinine: float
    serum_creatinine_unit: str = "mg/dL"

    on_bp_medication: bool = False
    has_diabetes: bool = False
    hba1c: Optional[float] = None
    is_smoker: bool = False

    ldl_cholesterol: Optional[float] = None
    triglycerides: Optional[float] = None

    egfr: Optional[float] = None  # mL/min/1.73m²
    urea: Optional[float] = None
    acr: Optional[float] = None  # mg/g
    proteinuria: Optional[float] = None  # urine protein/creatinine, mg/g

    # Electrolytes
    potassium: Optional[float] = None
    bicarbonate: Optional[float] = None
    sodium: Optional[float] = None
    calcium: Optional[float] = None
    phosphorus: Optional[float] = None
    pth: Optional[float] = None
    vitamin_d: Optional[float] = None

    # History
    has_heart_failure: bool = False
    has_cad: bool = False
    has_stroke: bool = False
    has_ckd: bool = False
    has_transplant: bool = False
    has_nephropathy: bool = False
    has_arrhythmia: bool = False

    # Medications
    on_acei_or_arb: bool = False
    on_sglt2: bool = False
    on_statin: bool = False
    on_diuretic: bool = False
    on_beta_blocker: bool = False

    signs_symptoms: str = ""
    findings: str = ""


@dataclass(frozen=True)
class CalculatorPreferences:
    cardiac: str = "auto"
    renal: str = "auto"
    score2_region: Optional[str] = None
    language: Optional[str] = None


# ----------------------------
# Validation
# ----------------------------
@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str
    message_pt_br: str


# ----------------------------
# Resolved inputs (caller values + documented substitutions)
# ----------------------------
@dataclass(frozen=True)
class ResolvedInputs:
    age: int
    sex: str
    ethnicity: Optional[str]
    systolic_bp: float
    diastolic_bp: float
    on_bp_medication: bool
    has_diabetes: bool
    is_smoker: bool
    total_cholesterol: float
    hdl_cholesterol: float
    serum_creatinine: float
    egfr: Optional[float]
    egfr_derived: bool = False
    acr: Optional[float] = None
    acr_derived: bool = False
    proteinuria: Optional[float] = None
    hba1c: Optional[float] = None
    ldl_cholesterol: Optional[float] = None
    triglycerides: Optional[float] = None
    bmi: Optional[float] = None
    potassium: Optional[float] = None
    has_heart_failure: bool = False
    has_cad: bool = False
    has_stroke: bool = False
    has_ckd: bool = False
    has_transplant: bool = False
    has_nephropathy: bool = False
    has_arrhythmia: bool = False
    on_statin: bool = False
    on_acei_or_arb: bool = False
    on_sglt2: bool = False

    def has(self, k: str) -> bool:
        return getattr(self, k, None) is not None

    def require(self, k: str, needed_by: str = "") -> Any:
        v = getattr(self, k, None)
        if v is None:
            raise MissingDerivedInput(k, needed_by)
        return v

    def snapshot(self, keys) -> Dict[str, Any]:
        return {k: getattr(self, k) for k in keys}


# ----------------------------
# Outputs
# ----------------------------
@dataclass(frozen=True)
class ContributingFactor:
    factor: str
    name: str
    impact: str
    modifiable: bool
    description: str


@dataclass(frozen=True)
class CalculatorMetadata:
    model_name: str
    model_version: str
    reference: str
    applicable_population: str
    calculated_at: str
    inputs_used: Dict[str, Any]
    limitations: Tuple[str, ...]


@dataclass(frozen=True)
class CardiacResult:
    model_used: str
    risk_10y_percent: float
    risk_5y_percent: Optional[float]
    classification: str
    classification_justification: Dict[str, str]
    contributing_factors: Tuple[ContributingFactor, ...]
    metadata: CalculatorMetadata


@dataclass(frozen=True)
class RenalResult:
    model_used: str
    egfr_calculated: float
    egfr_derived: bool
    gfr_stage: str
    albuminuria_stage: str
    risk_category: str
    kfre_2y_percent: Optional[float]
    kfre_5y_percent: Optional[float]
    monitoring: Dict[str, str]
    contributing_factors: Tuple[ContributingFactor, ...]
    metadata: CalculatorMetadata
    kfre_metadata: Optional[CalculatorMetadata] = None


@dataclass(frozen=True)
class AssessmentResult:
    cardiac: CardiacResult
    renal: RenalResult
    warnings: Tuple[str, ...]
    trace: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)
    language: Optional[str] = None

    ok = True


@dataclass(frozen=True)
class InputValidationFailure:
    errors: Tuple[ValidationError, ...]

    ok = False

