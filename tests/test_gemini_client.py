import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from unittest.mock import Mock, patch

import pytest
import requests

from gemini_chat.errors import MalformedResponseError, MissingCredentialError, TransportError
from gemini_chat.llm.gemini_client import DEFAULT_BASE_URL, GeminiClient
from gemini_chat.llm.payload import build_request_body, parse_candidate
from gemini_chat.memory.conversation import Turn
from gemini_chat.session import GeminiSession

TURNS = [
    Turn(role="model", text="You are a helpful assistant."),
    Turn(role="user", text="Tell me a joke."),
]


def _reply(text="Why did...", finish_reason="STOP"):
    return {
        "candidates": [
            {
                "content": {"parts": [{"text": text}], "role": "model"},
                "finishReason": finish_reason,
                "avgLogprobs": -0.25,
            }
        ]
    }


def _response(status_code=200, payload=None, text=""):
    response = Mock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.reason = "OK" if response.ok else "Bad Request"
    response.text = text
    response.json.return_value = payload
    return response


def test_build_request_body_one_part_per_turn():
    body = build_request_body(TURNS)

    assert body == {
        "contents": [
            {"parts": [{"text": "You are a helpful assistant."}], "role": "model"},
            {"parts": [{"text": "Tell me a joke."}], "role": "user"},
        ]
    }


def test_parse_candidate_reads_first_candidate():
    data = _reply("first")
    data["candidates"].append(_reply("second")["candidates"][0])

    candidate = parse_candidate(data)

    assert candidate.text == "first"
    assert candidate.role == "model"
    assert candidate.finish_reason == "STOP"
    assert candidate.avg_logprobs == -0.25


def test_parse_candidate_optional_fields_may_be_missing():
    candidate = parse_candidate({"candidates": [{"content": {"parts": [{"text": "hi"}]}}]})

    assert candidate.text == "hi"
    assert candidate.finish_reason is None
    assert candidate.avg_logprobs is None


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"candidates": []},
        {"candidates": [{}]},
        {"candidates": [{"content": {}}]},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{}]}}]},
        ["not", "an", "object"],
    ],
)
def test_parse_candidate_rejects_missing_fields(data):
    with pytest.raises(MalformedResponseError):
        parse_candidate(data)


def test_endpoint_uses_model_and_base_url():
    client = GeminiClient(model="gemini-2.0-flash", api_key="k")

    assert client.endpoint == f"{DEFAULT_BASE_URL}/gemini-2.0-flash:generateContent"
    assert GeminiClient(model="m", base_url="http://localhost:9000/v1/models/").endpoint == (
        "http://localhost:9000/v1/models/m:generateContent"
    )


@patch("gemini_chat.llm.gemini_client.requests.post")
def test_complete_posts_history_with_key_param(mock_post):
    mock_post.return_value = _response(payload=_reply())
    client = GeminiClient(model="gemini-2.0-flash", api_key="secret", request_timeout=30)

    candidate = client.complete(TURNS)

    assert candidate.text == "Why did..."
    mock_post.assert_called_once()
    args, kwargs = mock_post.call_args
    assert args[0] == client.endpoint
    assert kwargs["params"] == {"key": "secret"}
    assert kwargs["headers"] == {"Content-Type": "application/json"}
    assert json.loads(kwargs["data"]) == build_request_body(TURNS)
    assert kwargs["timeout"] == 30


@patch("gemini_chat.llm.gemini_client.requests.post")
def test_complete_without_key_sends_nothing(mock_post):
    client = GeminiClient(model="gemini-2.0-flash", api_key="")

    with pytest.raises(MissingCredentialError):
        client.complete(TURNS)

    mock_post.assert_not_called()


@patch("gemini_chat.llm.gemini_client.requests.post")
def test_complete_non_2xx_raises_transport_error(mock_post):
    mock_post.return_value = _response(status_code=400, text='{"error": "bad key"}')
    client = GeminiClient(model="gemini-2.0-flash", api_key="secret")

    with pytest.raises(TransportError) as exc_info:
        client.complete(TURNS)

    assert exc_info.value.status == 400
    assert exc_info.value.body == '{"error": "bad key"}'
    assert exc_info.value.code == "TRANSPORT_ERROR"


@patch("gemini_chat.llm.gemini_client.requests.post")
def test_complete_connection_error_raises_transport_error(mock_post):
    mock_post.side_effect = requests.ConnectionError("connection refused")
    client = GeminiClient(model="gemini-2.0-flash", api_key="secret")

    with pytest.raises(TransportError) as exc_info:
        client.complete(TURNS)

    assert exc_info.value.status is None
    assert "connection refused" in str(exc_info.value)


@patch("gemini_chat.llm.gemini_client.requests.post")
def test_transport_error_message_hides_key(mock_post):
    mock_post.side_effect = requests.ConnectionError(
        "Max retries exceeded with url: /v1/models/m:generateContent?key=secret"
    )
    client = GeminiClient(model="m", api_key="secret")

    with pytest.raises(TransportError) as exc_info:
        client.complete(TURNS)

    assert "secret" not in str(exc_info.value)
    assert "key=***" in str(exc_info.value)


@patch("gemini_chat.llm.gemini_client.requests.post")
def test_complete_non_json_body_is_malformed(mock_post):
    response = _response(text="<html>")
    response.json.side_effect = ValueError("Expecting value")
    mock_post.return_value = response
    client = GeminiClient(model="gemini-2.0-flash", api_key="secret")

    with pytest.raises(MalformedResponseError):
        client.complete(TURNS)


@patch("gemini_chat.llm.gemini_client.requests.post")
def test_complete_missing_candidates_is_malformed(mock_post):
    mock_post.return_value = _response(payload={"promptFeedback": {"blockReason": "SAFETY"}})
    client = GeminiClient(model="gemini-2.0-flash", api_key="secret")

    with pytest.raises(MalformedResponseError) as exc_info:
        client.complete(TURNS)

    assert exc_info.value.code == "MALFORMED_RESPONSE"


def test_urllib3_request_line_hides_key(caplog):
    with caplog.at_level(logging.DEBUG):
        logging.getLogger("urllib3.connectionpool").debug(
            '%s://%s:%s "%s %s %s" %s %s',
            "https",
            "generativelanguage.googleapis.com",
            443,
            "POST",
            "/v1/models/m:generateContent?key=SUPERSECRETKEY&alt=json",
            "HTTP/1.1",
            200,
            58,
        )

    assert "SUPERSECRETKEY" not in caplog.text
    assert "key=***&alt=json" in caplog.text


class _GeminiHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        self.rfile.read(length)
        body = json.dumps(_reply("hi there")).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


def test_debug_logs_never_contain_key(caplog, monkeypatch):
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    server = HTTPServer(("127.0.0.1", 0), _GeminiHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        client = GeminiClient(
            model="m",
            api_key="SUPERSECRETKEY",
            base_url=f"http://127.0.0.1:{server.server_port}/v1/models",
            request_timeout=5,
        )
        session = GeminiSession(llm=client, max_history_turns=0, rollback_on_failure=False)
        with caplog.at_level(logging.DEBUG):
            text = session.send_prompt("hello")
    finally:
        server.shutdown()
        server.server_close()

    assert text == "hi there"
    assert any(record.name == "urllib3.connectionpool" for record in caplog.records)
    assert "SUPERSECRETKEY" not in caplog.text
    assert all("SUPERSECRETKEY" not in record.getMessage() for record in caplog.records)
