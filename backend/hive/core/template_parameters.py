"""Template Parameters: typed placeholders declared in template settings.

Invariants:
    - Parameters live in settings["parameters"]; entries without key/label/type are ignored
    - substitute_variables only replaces {{key}} for keys present in values
    - validate_parameter_values returns {} when everything is valid (one error per key)
"""

import re
from typing import Any

PARAMETER_TYPES = ("text", "number", "select", "boolean", "textarea")

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def get_parameters_from_settings(settings: dict | None) -> list[dict]:
    if not settings:
        return []
    params = settings.get("parameters")
    if not isinstance(params, list):
        return []
    return [
        p for p in params
        if isinstance(p, dict)
        and isinstance(p.get("key"), str)
        and isinstance(p.get("label"), str)
        and isinstance(p.get("type"), str)
    ]


def get_default_values(parameters: list[dict]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for param in parameters:
        if param.get("default") is not None:
            values[param["key"]] = param["default"]
        elif param["type"] == "boolean":
            values[param["key"]] = False
        elif param["type"] == "number":
            values[param["key"]] = param.get("min") if param.get("min") is not None else 0
        else:
            values[param["key"]] = ""
    return values


def substitute_variables(text: str, values: dict[str, Any]) -> str:
    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key in values:
            return _to_text(values[key])
        return match.group(0)

    return _PLACEHOLDER.sub(replace, text)


def extract_variables(text: str) -> list[str]:
    return list(dict.fromkeys(_PLACEHOLDER.findall(text)))


def validate_parameter_values(
    parameters: list[dict], values: dict[str, Any],
) -> dict[str, str]:
    errors: dict[str, str] = {}
    for param in parameters:
        key, label, kind = param["key"], param["label"], param["type"]
        value = values.get(key)

        if param.get("required") and (value is None or value == ""):
            errors[key] = f"{label} is required"
            continue

        if kind == "number" and value not in ("", None):
            number = _to_number(value)
            if number is None:
                errors[key] = f"{label} must be a number"
            else:
                if param.get("min") is not None and number < param["min"]:
                    errors[key] = f"{label} must be at least {_fmt(param['min'])}"
                if param.get("max") is not None and number > param["max"]:
                    errors[key] = f"{label} must be at most {_fmt(param['max'])}"

        if kind in ("text", "textarea"):
            max_length = param.get("max_length")
            if max_length and isinstance(value, str) and len(value) > max_length:
                errors[key] = f"{label} must be at most {max_length} characters"

        if kind == "select" and param.get("options") and value not in ("", None):
            options = [str(o) for o in param["options"]]
            if _to_text(value) not in options:
                errors[key] = f"{label} must be one of: {', '.join(options)}"
    return errors


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _fmt(number: float) -> str:
    return _to_text(number)
