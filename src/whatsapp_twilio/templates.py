from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Final

from .config import TemplateDefinition
from .errors import ErrorCode, validation_error

TEMPLATE_SID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^HX[0-9a-fA-F]{32}$")
TIME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
VALID_STATUSES: Final[tuple[str, ...]] = ("pending", "shipped", "delivered", "cancelled")


def is_valid_template_sid(sid: object) -> bool:
    return isinstance(sid, str) and TEMPLATE_SID_PATTERN.fullmatch(sid) is not None


def _json_default(value: Any) -> str:
    # Dates and datetimes go out as ISO 8601 text
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_variables(variables: str | Mapping[str, Any]) -> str:
    """
    Normalise template variables to the JSON object text Twilio expects.

    Strings must already be JSON and decode to an object; mappings are dumped.
    """
    error = validation_error(
        "Invalid template variables format. Must be a valid JSON string",
        ErrorCode.INVALID_TEMPLATE_VARIABLES,
    )
    if isinstance(variables, Mapping):
        try:
            return json.dumps({str(k): v for k, v in variables.items()}, default=_json_default)
        except (TypeError, ValueError) as exc:
            raise error from exc

    if not isinstance(variables, str):
        raise error
    try:
        decoded = json.loads(variables)
    except ValueError as exc:
        raise error from exc
    if not isinstance(decoded, dict):
        raise error
    return variables


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    for parse in (date.fromisoformat, datetime.fromisoformat):
        try:
            parse(value.strip())
            return True
        except ValueError:
            continue
    return False


def _is_amount(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value))
    except ValueError:
        return False
    return True


def _check_type(value: Any, expected: str) -> str | None:
    """Return a description of the expected type when ``value`` does not conform."""
    if expected == "date" and not _is_date(value):
        return "date"
    if expected == "time" and not (isinstance(value, str) and TIME_PATTERN.match(value)):
        return "time (HH:MM)"
    if expected == "amount" and not _is_amount(value):
        return "numeric amount"
    if expected == "status" and str(value).lower() not in VALID_STATUSES:
        return f"status ({', '.join(VALID_STATUSES)})"
    return None


class TemplateRegistry:
    """Templates supplied through settings, looked up by name."""

    def __init__(self, templates: Mapping[str, TemplateDefinition] | None = None) -> None:
        self._templates: dict[str, TemplateDefinition] = {}
        for name, template in (templates or {}).items():
            if template.name is None:
                template = template.model_copy(update={"name": name})
            self._templates[name] = template

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def names(self) -> list[str]:
        return sorted(self._templates)

    def get(self, name: str) -> TemplateDefinition:
        template = self._templates.get(name)
        if template is None:
            raise validation_error(f"Template not found: {name}", ErrorCode.TEMPLATE_NOT_FOUND)
        return template

    @staticmethod
    def validate_variables(template: TemplateDefinition, variables: Mapping[str, Any]) -> None:
        for key, expected in template.components.items():
            if key not in variables or variables[key] is None:
                raise validation_error(
                    f"Missing required template variable '{key}' for template '{template.name}'",
                    ErrorCode.MISSING_TEMPLATE_VARIABLE,
                )
            mismatch = _check_type(variables[key], expected)
            if mismatch:
                raise validation_error(
                    f"Invalid type for template variable '{key}' in template "
                    f"'{template.name}'. Expected {mismatch}",
                    ErrorCode.INVALID_TEMPLATE_VARIABLE_TYPE,
                )
