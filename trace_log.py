# trace_log.py
# Auditable rule trace: every selection, substitution and skip is recorded in order.

from typing import Any, Dict, List


def add_trace(trace: List[Dict[str, Any]], rule: str, value: Any = None, effect: str = "") -> None:
    trace.append({"rule": rule, "value": value, "effect": effect})
