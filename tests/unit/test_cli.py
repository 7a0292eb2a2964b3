# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json

import pytest

from apiadapter.cli import main as cli_main
from apiadapter.http.adapters import StubTransport
from apiadapter.http.models import HttpResponse


@pytest.fixture
def stub(monkeypatch):
    transport = StubTransport(
        {
            "https://api.test/users": HttpResponse(status_code=200, headers={"x-id": "1"}, data=[{"id": 1}]),
            "https://api.test/text": HttpResponse(status_code=200, data="x" * 5000),
            "https://api.test/broken": HttpResponse(status_code=400, data={"message": "Bad filter"}),
        }
    )
    monkeypatch.setattr(cli_main, "create_default_transport", lambda settings: transport)
    monkeypatch.delenv("APIADAPTER_HEADER_STORE_PATH", raising=False)
    return transport


def test_cli_prints_json_body(stub, capsys):
    code = cli_main.main(["get", "/users", "--host", "https://api.test", "-H", "X-Tenant: acme"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == [{"id": 1}]
    assert stub.requests[0].headers["X-Tenant"] == "acme"


def test_cli_full_json_output_and_post_body(stub, capsys):
    code = cli_main.main(["post", "https://api.test/users", "--data", '{"name": "ada"}', "--json"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["status_code"] == 200
    assert out["headers"] == {"x-id": "1"}
    assert stub.requests[0].method == "POST"
    assert stub.requests[0].body == '{"name": "ada"}'


def test_cli_truncates_long_text(stub, capsys):
    assert cli_main.main(["GET", "/text", "--host", "https://api.test"]) == 0
    out = capsys.readouterr().out
    assert out.rstrip("\n").endswith("...[truncated]")
    assert len(out.encode("utf-8")) <= cli_main.CLI_TEXT_TRUNCATION_BYTES + 1


def test_cli_reports_failures(stub, capsys):
    code = cli_main.main(["GET", "/broken", "--host", "https://api.test", "--label", "Listing users"])

    assert code == 1
    assert capsys.readouterr().err.strip() == "Error: 'Listing users' failed with message \"Bad filter\""


def test_cli_rejects_malformed_headers(stub):
    with pytest.raises(SystemExit) as exc_info:
        cli_main.main(["GET", "/users", "--host", "https://api.test", "-H", "no-separator"])
    assert exc_info.value.code == 2


def test_parse_header_args():
    assert cli_main.parse_header_args(["A: 1", "B:two:parts"]) == {"A": "1", "B": "two:parts"}
    with pytest.raises(ValueError):
        cli_main.parse_header_args([": empty"])
