from __future__ import annotations

from typing import Any

import jsonschema

STEP_OPTIONS_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "timeout": {
            "oneOf": [
                {"type": "number", "exclusiveMinimum": 0},
                {"type": "null"},
            ]
        },
        "retry": {"$ref": "#/definitions/retry"},
    },
    "additionalProperties": False,
    "definitions": {
        "retry": {
            "type": "object",
            "properties": {
                "max_attempts": {"type": "integer", "minimum": 1},
                "backoff": {"enum": ["none", "linear", "exponential"]},
                "delay": {"type": "number", "minimum": 0},
                "max_delay": {
                    "oneOf": [
                        {"type": "number", "minimum": 0},
                        {"type": "null"},
                    ]
                },
            },
            "additionalProperties": False,
        }
    },
}

RUN_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "reporter": {"enum": ["list", "dot", "tap", "json"]},
        "selectors": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
        },
        "maxConcurrency": {"type": "integer", "minimum": 1},
        "maxFailures": {"type": "integer", "minimum": 0},
        "timeout": {"type": "number", "minimum": 0},
        "gracePeriod": {"type": "number", "minimum": 0},
        "teardownPolicy": {"enum": ["report", "fail"]},
        "verbosity": {"enum": ["quiet", "normal", "verbose", "debug"]},
        "noColor": {"type": "boolean"},
    },
    "additionalProperties": False,
}


def validate_step_options(payload: dict[str, Any]) -> None:
    jsonschema.validate(instance=payload, schema=STEP_OPTIONS_SCHEMA)


def validate_run_config(payload: dict[str, Any]) -> None:
    jsonschema.validate(instance=payload, schema=RUN_CONFIG_SCHEMA)
