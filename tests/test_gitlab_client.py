import pytest
import asyncio
import httpx
from unittest.mock import AsyncMock, patch, MagicMock

from flowforge.gitlab.client import (
    GitLabPipelineClient,
    PipelineClientError,
    PipelineTimeoutError,
)
from flowforge.models.run_status import StatusKind


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status = MagicMock()
    return resp


def _status_error(status_code, url="https://gitlab.example.com/api/v4/projects/1/pipeline"):
    request = httpx.Request("POST", url)
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


@pytest.fixture
def client():
    return GitLabPipelineClient("glpat-token", base_url="https://gitlab.example.com/")


def test_headers_carry_token(client):
    assert client.headers["PRIVATE-TOKEN"] == "glpat-token"
    assert client.base_url == "https://gitlab.example.com"


def test_trigger_posts_branch_and_variables(client):
    async def run_test():
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response({"id": 981, "status": "created"})

            pipeline_id = await client.trigger("42", "release", {"ENV": "prod", "DEBUG": "false"})

            assert pipeline_id == 981
            mock_post.assert_called_once()
            url = mock_post.call_args.args[0]
            assert url == "https://gitlab.example.com/api/v4/projects/42/pipeline"
            assert mock_post.call_args.kwargs["json"] == {
                "ref": "release",
                "variables": [
                    {"key": "ENV", "value": "prod"},
                    {"key": "DEBUG", "value": "false"},
                ],
            }

    asyncio.run(run_test())


def test_trigger_http_error_becomes_client_error(client):
    async def run_test():
        resp = _response({})
        resp.raise_for_status.side_effect = _status_error(401)
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=resp):
            with pytest.raises(PipelineClientError, match="HTTP 401"):
                await client.trigger("42", "main", {})

    asyncio.run(run_test())


def test_trigger_transport_error_becomes_client_error(client):
    async def run_test():
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock,
                   side_effect=httpx.ConnectError("connection refused")):
            with pytest.raises(PipelineClientError, match="request failed"):
                await client.trigger("42", "main", {})

    asyncio.run(run_test())


def test_trigger_without_id_is_rejected(client):
    async def run_test():
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock,
                   return_value=_response({"message": "Reference not found"})):
            with pytest.raises(PipelineClientError, match="no pipeline id"):
                await client.trigger("42", "nope", {})

    asyncio.run(run_test())


def test_invalid_json_becomes_client_error(client):
    async def run_test():
        resp = _response(None)
        resp.json.side_effect = ValueError("not json")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=resp):
            with pytest.raises(PipelineClientError, match="invalid JSON"):
                await client.get_status("42", 7)

    asyncio.run(run_test())


def test_poll_until_terminal(client):
    async def run_test():
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get, \
             patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            mock_get.side_effect = [
                _response({"id": 7, "status": "pending"}),
                _response({"id": 7, "status": "running"}),
                _response({"id": 7, "status": "success"}),
            ]

            status = await client.poll("42", 7)

            assert status.kind is StatusKind.SUCCESS
            assert mock_get.call_count == 3
            assert mock_get.call_args.args[0] == "https://gitlab.example.com/api/v4/projects/42/pipelines/7"
            # sleeps before every fetch, fixed interval
            assert mock_sleep.call_count == 3
            mock_sleep.assert_called_with(10.0)

    asyncio.run(run_test())


@pytest.mark.parametrize("raw", ["failed", "canceled", "skipped"])
def test_poll_returns_non_success_terminal(client, raw):
    async def run_test():
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock,
                   return_value=_response({"status": raw})), \
             patch("asyncio.sleep", new_callable=AsyncMock):
            status = await client.poll("42", 7)
            assert status.is_terminal
            assert not status.is_success
            assert status.raw == raw

    asyncio.run(run_test())


def test_poll_keeps_waiting_on_unknown_status(client, caplog):
    async def run_test():
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get, \
             patch("asyncio.sleep", new_callable=AsyncMock):
            mock_get.side_effect = [
                _response({"status": "brand_new_state"}),
                _response({"status": "failed"}),
            ]
            status = await client.poll("42", 7)
            assert status.kind is StatusKind.FAILED

    asyncio.run(run_test())
    assert any("unrecognised status 'brand_new_state'" in r.getMessage() for r in caplog.records)


def test_poll_error_propagates(client):
    async def run_test():
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock,
                   side_effect=httpx.ReadTimeout("slow")), \
             patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(PipelineClientError):
                await client.poll("42", 7)

    asyncio.run(run_test())


def test_cancel_event_interrupts_poll():
    async def run_test():
        cancel_event = asyncio.Event()
        cancel_event.set()
        client = GitLabPipelineClient("tok", poll_interval=10.0, cancel_event=cancel_event)
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            with pytest.raises(PipelineClientError, match="interrupted"):
                await client.poll("42", 7)
            mock_get.assert_not_called()

    asyncio.run(run_test())


def test_unset_cancel_event_lets_poll_continue():
    async def run_test():
        cancel_event = asyncio.Event()
        client = GitLabPipelineClient("tok", poll_interval=0, cancel_event=cancel_event)
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock,
                   return_value=_response({"status": "success"})):
            status = await client.poll("42", 7)
            assert status.is_success

    asyncio.run(run_test())


def test_max_wait_ceiling():
    async def run_test():
        client = GitLabPipelineClient("tok", poll_interval=0.01, max_wait=0.001)
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock,
                   return_value=_response({"status": "running"})):
            with pytest.raises(PipelineTimeoutError):
                await client.poll("42", 7)

    asyncio.run(run_test())


def test_timeout_is_a_client_error():
    assert issubclass(PipelineTimeoutError, PipelineClientError)
