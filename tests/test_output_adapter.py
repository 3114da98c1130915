import sys
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cardiorenal_engine import assess
from output_adapter import errors_to_contract, render_quick_text, to_contract

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _result(make_patient, make_clinical, settings, **clinical_kw):
    return assess(make_patient(age=65), make_clinical(**clinical_kw), now=NOW, settings=settings)


def test_contract_keys_are_stable(make_patient, make_clinical, settings):
    out = to_contract(_result(make_patient, make_clinical, settings, egfr=25, acr=350), "en-US")
    assert out["success"] is True
    assert {"modelUsed", "risk10yPercent", "risk5yPercent", "classification",
            "contributingFactors", "metadata"}.issubset(out["cardiac"])
    assert {"modelUsed", "eGFRCalculated", "gfrStage", "albuminuriaStage", "riskCategory",
            "kfre2yPercent", "kfre5yPercent", "monitoring", "kfreMetadata"}.issubset(out["renal"])
    assert out["renal"]["gfrStage"] == "G4"
    assert out["renal"]["kfreMetadata"]["modelName"].startswith("Kidney Failure Risk Equation")
    assert out["cardiac"]["metadata"]["calculatedAt"] == "2026-03-01T12:00:00Z"
    assert isinstance(out["warnings"], list)
    assert out["trace"][0]["rule"] == "Engine_start"


def test_contract_localizes_labels(make_patient, make_clinical, settings):
    result = _result(make_patient, make_clinical, settings, egfr=25, acr=350)
    en = to_contract(result, "en-US")
    pt = to_contract(result, "pt-BR")
    assert en["renal"]["gfrStageLabel"] == "Severely decreased"
    assert pt["renal"]["gfrStageLabel"] == "Gravemente reduzido"
    assert pt["renal"]["riskCategoryLabel"] == "Muito alto"
    assert pt["renal"]["monitoring"].startswith("Monitoramento a cada 3-4 meses")
    assert en["cardiac"]["classification"] == pt["cardiac"]["classification"]


def test_contract_language_defaults_to_settings(make_patient, make_clinical, settings, monkeypatch):
    result = _result(make_patient, make_clinical, settings)
    assert to_contract(result)["language"] == "en-US"
    monkeypatch.setenv("CARDIORENAL_DEFAULT_LANGUAGE", "pt-BR")
    from config import get_settings
    get_settings.cache_clear()
    assert to_contract(result)["language"] == "pt-BR"


def test_absent_kfre_renders_as_null(make_patient, make_clinical, settings):
    out = to_contract(_result(make_patient, make_clinical, settings), "en-US")
    assert out["renal"]["kfre2yPercent"] is None
    assert out["renal"]["kfre5yPercent"] is None
    assert out["renal"]["kfreMetadata"] is None


def test_errors_contract(make_patient, make_clinical, settings):
    failure = assess(make_patient(), make_clinical(systolic_bp=80, diastolic_bp=90), settings=settings)
    en = errors_to_contract(failure, "en-US")
    pt = errors_to_contract(failure, "pt-BR")
    assert en == {
        "success": False,
        "language": "en-US",
        "errors": [{"field": "systolic_bp", "message": "Systolic BP must be greater than diastolic BP"}],
    }
    assert pt["errors"][0]["message"] == "PAS deve ser maior que PAD"


def test_quick_text_template(make_patient, make_clinical, settings):
    text = render_quick_text(_result(make_patient, make_clinical, settings, egfr=25, acr=350))
    lines = text.splitlines()
    assert lines[0] == "CardioRenal Risk — Quick Reference"
    assert any(line.startswith("10-year risk: ") for line in lines)
    assert "KDIGO: G4/A3" in text
    assert "KFRE kidney failure risk: 2-year " in text

    text2 = render_quick_text(_result(make_patient, make_clinical, settings))
    assert "KFRE: not calculated" in text2
    assert "Notes" in text2


def test_preferred_language_travels_with_result(make_patient, make_clinical, settings):
    from cardiorenal_types import CalculatorPreferences

    result = assess(make_patient(), make_clinical(), CalculatorPreferences(language="pt-BR"), now=NOW, settings=settings)
    assert to_contract(result)["language"] == "pt-BR"
    assert to_contract(result, "en-US")["language"] == "en-US"
