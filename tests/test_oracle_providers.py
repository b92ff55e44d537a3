"""Tests for the chat-completions decision oracles (HTTP mocked)."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import httpx
import pytest

from mcp_explorer.config.schema import LlmSettings
from mcp_explorer.display.logging_config import SecretRedactionFilter
from mcp_explorer.errors import ConfigurationError, OracleError
from mcp_explorer.oracle import AzureOpenAIOracle, OpenAIOracle, create_oracle
from mcp_explorer.oracle.prompt import SYSTEM_PROMPT, build_selection_messages


def _response(status: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(
        status, request=httpx.Request("POST", "https://llm.example/chat"), **kwargs
    )


def _completion(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _with_client(oracle, response=None, side_effect=None) -> AsyncMock:
    mock_httpx_client = AsyncMock()
    mock_httpx_client.post = AsyncMock(return_value=response, side_effect=side_effect)
    oracle._client = mock_httpx_client
    return mock_httpx_client


# ════════════════════════════════════════════════════════════════════════
#  Requests
# ════════════════════════════════════════════════════════════════════════


class TestOpenAIOracle:
    @pytest.mark.anyio
    async def test_decide_returns_content(self) -> None:
        oracle = OpenAIOracle(model="gpt-4o-mini", api_key="sk-test-123456")
        client = _with_client(
            oracle, _response(json=_completion('{"tool_name": "OptimizeForEmail"}'))
        )
        reply = await oracle.decide('[{"name": "OptimizeForEmail"}]', "Dear team")
        assert reply == '{"tool_name": "OptimizeForEmail"}'

        call = client.post.await_args
        assert call.args[0] == "https://api.openai.com/v1/chat/completions"
        assert call.kwargs["headers"] == {"Authorization": "Bearer sk-test-123456"}
        body = call.kwargs["json"]
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.0
        assert body["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert "Dear team" in body["messages"][1]["content"]

    @pytest.mark.anyio
    async def test_custom_base_url(self) -> None:
        oracle = OpenAIOracle(model="m", api_key="k" * 8, base_url="http://localhost:1234/v1/")
        client = _with_client(oracle, _response(json=_completion("{}")))
        await oracle.decide("[]", "t")
        assert client.post.await_args.args[0] == "http://localhost:1234/v1/chat/completions"

    @pytest.mark.anyio
    async def test_http_error_status(self) -> None:
        oracle = OpenAIOracle(model="m", api_key="k" * 8)
        _with_client(oracle, _response(401, text="invalid api key"))
        with pytest.raises(OracleError) as exc_info:
            await oracle.decide("[]", "t")
        assert "HTTP 401" in str(exc_info.value)
        assert exc_info.value.provider == "OpenAI"

    @pytest.mark.anyio
    async def test_network_error(self) -> None:
        oracle = OpenAIOracle(model="m", api_key="k" * 8)
        _with_client(oracle, side_effect=httpx.ConnectError("Connection refused"))
        with pytest.raises(OracleError):
            await oracle.decide("[]", "t")

    @pytest.mark.anyio
    async def test_non_json_body(self) -> None:
        oracle = OpenAIOracle(model="m", api_key="k" * 8)
        _with_client(oracle, _response(text="<html>gateway</html>"))
        with pytest.raises(OracleError, match="not JSON"):
            await oracle.decide("[]", "t")

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "payload",
        [{}, {"choices": []}, {"choices": [{"message": {}}]}, _completion(None)],
    )
    async def test_unexpected_shape(self, payload) -> None:
        oracle = OpenAIOracle(model="m", api_key="k" * 8)
        _with_client(oracle, _response(json=payload))
        with pytest.raises(OracleError):
            await oracle.decide("[]", "t")

    @pytest.mark.anyio
    async def test_close(self) -> None:
        oracle = OpenAIOracle(model="m", api_key="k" * 8)
        client = _with_client(oracle, _response(json=_completion("{}")))
        await oracle.close()
        client.aclose.assert_awaited_once()
        assert oracle._client is None

    def test_redacted_repr_hides_key(self) -> None:
        oracle = OpenAIOracle(model="m", api_key="sk-secret-abcd")
        text = oracle.redacted_repr()
        assert "sk-secret" not in text
        assert text.endswith("abcd)")


class TestAzureOpenAIOracle:
    @pytest.mark.anyio
    async def test_url_and_headers(self) -> None:
        oracle = AzureOpenAIOracle(
            deployment_name="gpt4",
            endpoint="https://myres.openai.azure.com/",
            api_key="az-key-1234",
        )
        client = _with_client(oracle, _response(json=_completion('{"tool_name": "X"}')))
        assert await oracle.decide("[]", "t") == '{"tool_name": "X"}'

        call = client.post.await_args
        assert call.args[0] == (
            "https://myres.openai.azure.com/openai/deployments/gpt4"
            "/chat/completions?api-version=2024-06-01"
        )
        assert call.kwargs["headers"] == {"api-key": "az-key-1234"}
        assert "model" not in call.kwargs["json"]


# ════════════════════════════════════════════════════════════════════════
#  Factory
# ════════════════════════════════════════════════════════════════════════


class TestCreateOracle:
    def test_openai(self) -> None:
        settings = LlmSettings.model_validate(
            {"provider": "OpenAI", "openai": {"model": "gpt-4o-mini", "api_key": "sk-abcdef"}}
        )
        assert isinstance(create_oracle(settings), OpenAIOracle)

    def test_azure(self) -> None:
        settings = LlmSettings.model_validate(
            {
                "provider": "AzureOpenAI",
                "azure_openai": {
                    "deployment_name": "gpt4",
                    "endpoint": "https://myres.openai.azure.com",
                    "api_key": "az-abcdef",
                },
            }
        )
        assert isinstance(create_oracle(settings), AzureOpenAIOracle)

    def test_missing_fields(self) -> None:
        settings = LlmSettings.model_validate({"provider": "OpenAI", "openai": {"model": "m"}})
        with pytest.raises(ConfigurationError, match="api_key"):
            create_oracle(settings)

    @pytest.mark.parametrize("provider", [None, "Anthropic", "openai"])
    def test_unsupported_provider(self, provider) -> None:
        with pytest.raises(ConfigurationError, match="not supported"):
            create_oracle(LlmSettings(provider=provider))


def test_selection_messages_embed_catalog() -> None:
    messages = build_selection_messages('[{"name": "A"}]', "do it")
    assert [m["role"] for m in messages] == ["system", "user"]
    assert '[{"name": "A"}]' in messages[1]["content"]
    assert "do it" in messages[1]["content"]


def test_redaction_filter_masks_registered_key() -> None:
    redaction = SecretRedactionFilter()
    redaction.register("sk-very-secret")
    record = logging.LogRecord(
        "x", logging.INFO, __file__, 1, "key=%s", ("sk-very-secret",), None
    )
    redaction.filter(record)
    assert "sk-very-secret" not in record.getMessage()
    assert "REDACTED" in record.getMessage()
