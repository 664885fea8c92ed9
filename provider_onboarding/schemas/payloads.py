"""
JSON schemas describing what clients may submit when creating records.

Server-generated fields (timestamps, serial ids, ``lastDataFetch``) are not
part of any insert schema. Each property may carry an ``errorMessage`` map
from JSON-Schema keyword to the message reported when that keyword fails,
and a ``default`` applied after successful validation.
"""

from provider_onboarding.models.entities import PROVIDER_STATUSES, PROVIDER_TYPES

# Anchored with \A and \Z: under re.search, $ also matches before a trailing newline.
UUID_PATTERN = r"\A[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\Z"
EMAIL_PATTERN = r"\A[^@\s]+@[^@\s]+\.[^@\s]+\Z"
URL_PATTERN = r"\A\Z|\Ahttps?://[^\s/$.?#][^\s]*\Z"


def _name(max_length: int, label: str) -> dict:
    return {
        "type": "string",
        "minLength": 1,
        "maxLength": max_length,
        "pattern": r"\S",
        "errorMessage": {
            "minLength": f"{label} is required",
            "pattern": f"{label} is required",
            "maxLength": f"{label} must be at most {max_length} characters",
        },
    }


def _optional_text(max_length: int | None = None) -> dict:
    schema: dict = {"type": ["string", "null"]}
    if max_length is not None:
        schema["maxLength"] = max_length
    return schema


def _optional_url() -> dict:
    return {
        "type": ["string", "null"],
        "maxLength": 255,
        "pattern": URL_PATTERN,
        "errorMessage": {"pattern": "Please enter a valid URL"},
    }


def _optional_uuid(label: str) -> dict:
    return {
        "type": ["string", "null"],
        "anyOf": [{"pattern": UUID_PATTERN}, {"maxLength": 0}],
        "errorMessage": {"anyOf": f"{label} must be a valid UUID"},
    }


EHR_SYSTEM_INSERT_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "EHR system (insert)",
    "type": "object",
    "required": ["systemName"],
    "properties": {
        "id": _optional_uuid("id"),
        "systemName": _name(255, "System name"),
        "systemVersion": _optional_text(50),
        "apiEndpoint": _optional_url(),
        "documentationLink": _optional_url(),
        "authUrl": _optional_url(),
        "conUrl": _optional_url(),
        "bulkfhirUrl": _optional_url(),
        "additionalNotes": _optional_text(),
        "isSupported": {
            "type": "boolean",
            "default": True,
            "errorMessage": {"type": "isSupported must be true or false"},
        },
    },
}


HEALTHCARE_PROVIDER_INSERT_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Healthcare provider (insert)",
    "type": "object",
    "required": ["providerName", "providerType", "contactEmail", "contactPhone"],
    "properties": {
        "id": _optional_uuid("id"),
        "providerName": _name(255, "Healthcare provider name"),
        "providerType": {
            "type": "string",
            "enum": list(PROVIDER_TYPES),
            "errorMessage": {
                "enum": "Provider type must be one of: " + ", ".join(PROVIDER_TYPES),
            },
        },
        "contactEmail": {
            "type": "string",
            "maxLength": 255,
            "pattern": EMAIL_PATTERN,
            "errorMessage": {"pattern": "Please enter a valid email address"},
        },
        "contactPhone": {
            "type": "string",
            "minLength": 10,
            "maxLength": 20,
            "pattern": r"\A[0-9]+\Z",
            "errorMessage": {
                "minLength": "Phone number must be at least 10 digits",
                "maxLength": "Phone number must be at most 20 digits",
                "pattern": "Phone number must contain only digits",
            },
        },
        "address": _optional_text(),
        "ehrId": _optional_uuid("ehrId"),
        "ehrTenantId": _optional_text(255),
        "ehrGroupId": _optional_text(255),
        "status": {
            "type": "string",
            "enum": list(PROVIDER_STATUSES),
            "default": "Pending",
            "errorMessage": {
                "enum": "Status must be one of: " + ", ".join(PROVIDER_STATUSES),
            },
        },
        "notes": _optional_text(),
    },
}


DATA_FETCH_HISTORY_INSERT_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Data fetch history (insert)",
    "type": "object",
    "required": ["providerId", "s3Location"],
    "properties": {
        "providerId": {
            "type": "string",
            "pattern": UUID_PATTERN,
            "errorMessage": {"pattern": "providerId must be a valid UUID"},
        },
        "s3Location": {
            "type": "string",
            "minLength": 1,
            "errorMessage": {"minLength": "Storage location is required"},
        },
        "status": {"type": "string", "minLength": 1, "default": "completed"},
    },
}
