from __future__ import annotations

import io
import json
from typing import Any, Callable

import httpx
import pytest

import llm_prompt.dispatcher as dispatcher_mod
from llm_prompt import __author__, __version__
from llm_prompt.cli import main

_RealClient = httpx.Client


class _Endpoint:
    """Stands in for httpx.Client inside the dispatcher and records every request."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, timeout: float | None = None) -> httpx.Client:  # signature-compatible
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.handler(request)

        return _RealClient(transport=httpx.MockTransport(record), timeout=timeout)


@pytest.fixture
def endpoint(monkeypatch: pytest.MonkeyPatch) -> Callable[..., _Endpoint]:
    def install(handler: Callable[[httpx.Request], httpx.Response] | None = None) -> _Endpoint:
        if handler is None:
            handler = lambda request: httpx.Response(200, json={"choices": [{"text": "Hello test"}]})  # noqa: E731
        fake = _Endpoint(handler)
        monkeypatch.setattr(dispatcher_mod.httpx, "Client", fake)
        return fake

    return install


def _body(fake: _Endpoint) -> dict[str, Any]:
    return json.loads(fake.requests[0].content)


def test_prints_completion(endpoint, capsys) -> None:  # noqa: ANN001
    fake = endpoint()
    assert main(["-m", "my-model", "-e", "http://127.0.0.1:9000/v1/completions", "hello", "there"]) == 0
    out = capsys.readouterr()
    assert out.out == "Hello test\n"
    assert out.err == ""
    assert len(fake.requests) == 1
    assert str(fake.requests[0].url) == "http://127.0.0.1:9000/v1/completions"
    assert _body(fake)["model"] == "my-model"
    assert _body(fake)["prompt"] == "hello there"


def test_system_prompt_is_prepended(endpoint, capsys) -> None:  # noqa: ANN001
    fake = endpoint()
    assert main(["--system", "Be terse.", "What is 2+2?"]) == 0
    assert _body(fake)["prompt"] == "Be terse.\nWhat is 2+2?"


def test_reads_prompt_from_stdin(endpoint, capsys, monkeypatch) -> None:  # noqa: ANN001
    fake = endpoint()
    monkeypatch.setattr("sys.stdin", io.StringIO("line one\nline two\n"))
    assert main(["-c"]) == 0
    assert _body(fake)["prompt"] == "line one\nline two"


def test_round_trip_through_echo(endpoint, capsys) -> None:  # noqa: ANN001
    endpoint(lambda request: httpx.Response(200, json={"choices": [{"text": json.loads(request.content)["prompt"]}]}))
    assert main(["round", "trip"]) == 0
    assert capsys.readouterr().out == "round trip\n"


def test_http_500(endpoint, capsys) -> None:  # noqa: ANN001
    endpoint(lambda request: httpx.Response(500, text="internal error"))
    code = main(["hi"])
    out = capsys.readouterr()
    assert code != 0
    assert out.out == ""
    assert "500" in out.err


def test_connection_refused(endpoint, capsys) -> None:  # noqa: ANN001
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    endpoint(refuse)
    code = main(["hi"])
    out = capsys.readouterr()
    assert code == 1
    assert out.out == ""
    assert "could not reach" in out.err


def test_missing_text_field(endpoint, capsys) -> None:  # noqa: ANN001
    endpoint(lambda request: httpx.Response(200, json={"choices": [{"index": 0}]}))
    code = main(["hi"])
    out = capsys.readouterr()
    assert code == 1
    assert out.out == ""
    assert "no 'text'" in out.err


def test_debug_trace_goes_to_stderr(endpoint, capsys) -> None:  # noqa: ANN001
    endpoint()
    assert main(["-d", "hi"]) == 0
    out = capsys.readouterr()
    assert out.out == "Hello test\n"
    assert '"prompt": "hi"' in out.err
    assert "HTTP 200" in out.err
    assert "Hello test" in out.err


@pytest.mark.parametrize(
    "argv,message",
    [
        ([], "no prompt"),
        (["-e", "", "hi"], "no endpoint"),
        (["-e", "not-a-url", "hi"], "http(s) URL"),
        (["-e", "http://localhost:abc/v1/completions", "hi"], "malformed endpoint URL"),
        (["-e", "http://[::1/v1", "hi"], "malformed endpoint URL"),
    ],
)
def test_usage_errors_skip_network(endpoint, capsys, argv: list[str], message: str) -> None:  # noqa: ANN001
    fake = endpoint()
    assert main(argv) == 2
    out = capsys.readouterr()
    assert out.out == ""
    assert message in out.err
    assert fake.requests == []


@pytest.mark.parametrize(
    "flag,expected",
    [("--help", "usage: llm-prompt"), ("-v", __version__), ("--author", __author__)],
)
def test_info_flags_exit_zero(endpoint, capsys, flag: str, expected: str) -> None:  # noqa: ANN001
    fake = endpoint()
    with pytest.raises(SystemExit) as exc_info:
        main([flag])
    assert exc_info.value.code in (0, None)
    assert expected in capsys.readouterr().out
    assert fake.requests == []


def test_config_file_is_applied(endpoint, capsys, tmp_path) -> None:  # noqa: ANN001
    fake = endpoint()
    cfg = tmp_path / "llm.yaml"
    cfg.write_text("max_tokens: 64\ntemperature: 0.3\ntemplate: roles\n", encoding="utf-8")
    assert main(["--config", str(cfg), "-s", "Help.", "hi"]) == 0
    body = _body(fake)
    assert body["max_tokens"] == 64
    assert body["temperature"] == 0.3
    assert body["prompt"] == "SYSTEM: Help.\nUSER: hi\nASSISTANT:"


def test_stdin_not_utf8(endpoint, capsys, monkeypatch) -> None:  # noqa: ANN001
    fake = endpoint()
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"\xff\xfe bad\n"), encoding="utf-8"))
    assert main(["-c"]) == 2
    out = capsys.readouterr()
    assert out.out == ""
    assert "not valid UTF-8" in out.err
    assert fake.requests == []


def test_bad_endpoint_reported_before_stdin_is_read(endpoint, capsys, monkeypatch) -> None:  # noqa: ANN001
    endpoint()
    stdin = io.StringIO("never read\n")
    monkeypatch.setattr("sys.stdin", stdin)
    assert main(["-c", "-e", ""]) == 2
    assert "no endpoint" in capsys.readouterr().err
    assert stdin.tell() == 0
