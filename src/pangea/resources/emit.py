from __future__ import annotations

import json
from typing import Any


def prune(body: dict[str, Any]) -> dict[str, Any]:
    """Drop top-level keys whose value is None or an empty list/dict."""
    return {
        key: value
        for key, value in body.items()
        if value is not None and not (isinstance(value, (list, dict)) and not value)
    }


def interpolation(resource_type: str, name: str, attribute: str) -> str:
    return f"${{{resource_type}.{name}.{attribute}}}"


def output_map(resource_type: str, name: str, attributes: tuple[str, ...]) -> dict[str, str]:
    return {attr: interpolation(resource_type, name, attr) for attr in attributes}


def policy_json(document: dict[str, Any] | str) -> str:
    if isinstance(document, str):
        return document
    return json.dumps(document)
