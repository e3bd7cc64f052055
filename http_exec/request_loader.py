"""Request Loader - Loads Request descriptions from YAML or JSON files.

A request file holds either one request mapping or a list of them. String
values may reference environment variables as ${ENV_VAR}; they are
substituted before validation so secrets stay out of the file.

Example (YAML):
    method: GET
    url: https://postman-echo.com/get
    headers:
      randomHeader: "1337"
      Authorization: "Bearer ${API_TOKEN}"
    params:
      name: john
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from http_exec.models import Request

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

_YAML_SUFFIXES = (".yaml", ".yml")


class RequestFileError(Exception):
    """Raised when a request file cannot be loaded."""


def load_request(path: Path) -> Request:
    """Load exactly one request from a file."""
    requests = load_requests(path)
    if len(requests) != 1:
        raise RequestFileError(
            f"Expected a single request in {path}, found {len(requests)}"
        )
    return requests[0]


def load_requests(path: Path) -> list[Request]:
    """Load one or more requests from a YAML or JSON file.

    Raises:
        RequestFileError: If the file is missing, unparseable, has the wrong
            shape, references an unset environment variable, or a request
            fails validation.
    """
    raw = _read_file(path)

    if isinstance(raw, dict):
        entries = [raw]
    elif isinstance(raw, list):
        entries = raw
    else:
        raise RequestFileError(
            f"Request file must contain a mapping or a list of mappings: {path}"
        )

    requests: list[Request] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise RequestFileError(f"Request #{index} in {path} is not a mapping")
        entry = _substitute_env_vars(entry)
        try:
            requests.append(Request.model_validate(entry))
        except ValidationError as e:
            raise RequestFileError(f"Invalid request #{index} in {path}: {e}") from e
    return requests


def _read_file(path: Path) -> Any:
    """Parse a request file as YAML or JSON based on its suffix."""
    if not path.exists():
        raise RequestFileError(f"Request file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise RequestFileError(f"Cannot read request file {path}: {e}") from e

    if path.suffix.lower() in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise RequestFileError(f"Invalid YAML in request file: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise RequestFileError(f"Invalid JSON in request file: {e}") from e


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises RequestFileError if unset."""

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise RequestFileError(f"Environment variable '{var_name}' is not set")
        return value

    return _ENV_VAR_PATTERN.sub(replacer, s)
