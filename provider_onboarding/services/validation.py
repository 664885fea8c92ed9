"""
JSON Schema validation service.

- Collects every error rather than failing on the first one
- Reports errors per field, using the schema's ``errorMessage`` overrides
- Normalizes accepted payloads (unknown keys dropped, blank optionals nulled,
  defaults applied)
"""

from __future__ import annotations

import copy
import re
from typing import Any

import jsonschema

from provider_onboarding.errors import PayloadValidationError

_REQUIRED_RE = re.compile(r"^'(?P<field>[^']+)' is a required property$")


def _error_field(error: jsonschema.ValidationError) -> str:
    if error.validator == "required":
        match = _REQUIRED_RE.match(error.message)
        if match:
            return match.group("field")
    return ".".join(str(part) for part in error.absolute_path)


def _error_message(error: jsonschema.ValidationError, field: str) -> str:
    if error.validator == "required":
        return f"{field} is required"
    overrides = error.schema.get("errorMessage", {}) if isinstance(error.schema, dict) else {}
    return overrides.get(error.validator, error.message)


def validate_against_schema(data: Any, schema: dict[str, Any]) -> list[dict[str, str]]:
    """
    Validate a payload against a JSON schema.
    Returns a list of ``{"field", "message"}`` dicts (empty list = valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in validator.iter_errors(data):
        field = _error_field(error)
        errors.append({"field": field, "message": _error_message(error, field)})
    return sorted(errors, key=lambda e: e["field"])


def partial_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``schema`` where every property is optional."""
    relaxed = copy.deepcopy(schema)
    relaxed.pop("required", None)
    return relaxed


def normalize_payload(
    data: dict[str, Any], schema: dict[str, Any], *, apply_defaults: bool = True
) -> dict[str, Any]:
    """
    Reduce an already-validated payload to the schema's properties.

    Empty strings on nullable properties become ``None``; missing properties
    with a ``default`` receive it when ``apply_defaults`` is set.
    """
    properties = schema.get("properties", {})
    normalized: dict[str, Any] = {}
    for name, prop in properties.items():
        if name in data:
            value = data[name]
            types = prop.get("type")
            nullable = isinstance(types, list) and "null" in types
            if nullable and isinstance(value, str) and value.strip() == "":
                value = None
            normalized[name] = value
        elif apply_defaults and "default" in prop:
            normalized[name] = prop["default"]
    return normalized


def validate_payload(
    data: Any, schema: dict[str, Any], *, partial: bool = False
) -> dict[str, Any]:
    """
    Validate and normalize a create (or, with ``partial``, update) payload.
    Raises PayloadValidationError listing every violated field.
    """
    effective = partial_schema(schema) if partial else schema
    errors = validate_against_schema(data, effective)
    if errors:
        raise PayloadValidationError(errors)
    return normalize_payload(data, effective, apply_defaults=not partial)
