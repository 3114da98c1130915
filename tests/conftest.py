import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cardiorenal_types import ClinicalRecord, PatientRecord
from config import EngineSettings, get_settings


PATIENT_BASE = {
    "name": "Test Patient",
    "external_id": "MRN-0001",
    "age": 55,
    "sex": "male",
}

CLINICAL_BASE = {
    "systolic_bp": 130,
    "diastolic_bp": 80,
    "total_cholesterol": 200,
    "hdl_cholesterol": 50,
    "serum_creatinine": 1.0,
}


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for key in ("MAX_CONTRIBUTING_FACTORS", "SCORE2_DEFAULT_REGION", "KFRE_CALIBRATION", "DEFAULT_LANGUAGE"):
        monkeypatch.delenv(f"CARDIORENAL_{key}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return EngineSettings(_env_file=None)


@pytest.fixture
def make_patient():
    def _make(**overrides):
        d = dict(PATIENT_BASE)
        d.update(overrides)
        return PatientRecord(**d)
    return _make


@pytest.fixture
def make_clinical():
    def _make(**overrides):
        d = dict(CLINICAL_BASE)
        d.update(overrides)
        return ClinicalRecord(**d)
    return _make
