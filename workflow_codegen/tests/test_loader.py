from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import httpx
import pytest

from workflow_codegen.errors import InputAcquisitionError
from workflow_codegen.loader import fetch_definition, load_definition_file


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_load_definition_file_reads_raw_definitions(tmp_path: Path, delay_definition: Dict[str, Any]) -> None:
    path = tmp_path / "workflow.json"
    path.write_text(json.dumps(delay_definition), encoding="utf-8")

    assert load_definition_file(path) == delay_definition


def test_load_definition_file_unwraps_stored_records(tmp_path: Path, delay_definition: Dict[str, Any]) -> None:
    path = tmp_path / "record.json"
    path.write_text(json.dumps({"id": 3, "name": "Demo", "definition": delay_definition}), encoding="utf-8")

    assert load_definition_file(str(path)) == delay_definition


def test_load_definition_file_missing(tmp_path: Path) -> None:
    with pytest.raises(InputAcquisitionError, match="Error reading input file"):
        load_definition_file(tmp_path / "absent.json")


def test_load_definition_file_malformed(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(InputAcquisitionError, match="Error parsing input file"):
        load_definition_file(path)


def test_fetch_definition_gets_workflow_by_id(delay_definition: Dict[str, Any]) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, str(request.url)))
        return httpx.Response(200, json={"id": 5, "definition": delay_definition})

    with _client(handler) as client:
        result = fetch_definition(5, "http://api.test/", client=client)

    assert result == delay_definition
    assert seen == [("GET", "http://api.test/api/workflows/5")]


def test_fetch_definition_non_2xx_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not found")

    with _client(handler) as client:
        with pytest.raises(InputAcquisitionError, match="API returned 404"):
            fetch_definition("missing", "http://api.test", client=client)


def test_fetch_definition_non_json_body_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with _client(handler) as client:
        with pytest.raises(InputAcquisitionError, match="not JSON"):
            fetch_definition(1, "http://api.test", client=client)


def test_fetch_definition_transport_error_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(InputAcquisitionError, match="connection refused"):
            fetch_definition(1, "http://api.test", client=client)
