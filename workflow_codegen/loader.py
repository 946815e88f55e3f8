"""
Acquire workflow definitions from a JSON file or from the workflows API.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from workflow_codegen.compiler.parse import unwrap_definition
from workflow_codegen.errors import InputAcquisitionError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def load_definition_file(path: Union[str, Path]) -> Any:
    """Read a definition (or a stored workflow record) from a JSON file."""

    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InputAcquisitionError(f"Error reading input file {file_path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InputAcquisitionError(f"Error parsing input file {file_path}: {exc}") from exc
    logger.debug("Loaded workflow definition from %s", file_path)
    return unwrap_definition(data)


def fetch_definition(
    workflow_id: Union[str, int],
    api_url: str,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """
    GET `{api_url}/api/workflows/{id}` and return its definition.
    """

    url = f"{api_url.rstrip('/')}/api/workflows/{workflow_id}"
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        resp = http.get(url)
        if not resp.is_success:
            raise InputAcquisitionError(
                f"Error fetching workflow: API returned {resp.status_code}: {resp.text[:200]}"
            )
        data = resp.json()
    except httpx.HTTPError as exc:
        raise InputAcquisitionError(f"Error fetching workflow from {url}: {exc}") from exc
    except ValueError as exc:
        raise InputAcquisitionError(f"Error fetching workflow: response is not JSON: {exc}") from exc
    finally:
        if owns_client:
            http.close()
    logger.debug("Fetched workflow %s from %s", workflow_id, url)
    return unwrap_definition(data)
