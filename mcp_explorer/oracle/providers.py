"""LLM-backed decision oracles for AI tool selection.

Implements two chat-completions backends:

* **OpenAIOracle** – ``POST {base_url}/chat/completions`` with a bearer key.
* **AzureOpenAIOracle** – ``POST {endpoint}/openai/deployments/{name}/chat/completions``
  with an ``api-key`` header.
* **create_oracle** – factory that builds an oracle from :class:`LlmSettings`.

Both satisfy :class:`~mcp_explorer.dispatch.DecisionOracle`; which one is
used is purely a configuration matter.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Dict, List, Optional

import httpx

from mcp_explorer.config.schema import LlmSettings
from mcp_explorer.constants import (
    AZURE_API_VERSION,
    OPENAI_BASE_URL,
    ORACLE_TIMEOUT,
    SUPPORTED_PROVIDERS,
)
from mcp_explorer.display.logging_config import secret_redaction_filter
from mcp_explorer.errors import ConfigurationError, OracleError
from mcp_explorer.oracle.prompt import build_selection_messages

logger = logging.getLogger(__name__)


# ── Abstract base ─────────────────────────────────────────────────────


class ChatCompletionOracle(abc.ABC):
    """Asks a chat-completions endpoint to pick a tool.

    The HTTP client is created lazily and reused; call :meth:`close`
    when done.
    """

    provider_name = "chat-completions"

    def __init__(self, *, timeout: float = ORACLE_TIMEOUT, temperature: float = 0.0) -> None:
        self._timeout = timeout
        self._temperature = temperature
        self._client: Optional[httpx.AsyncClient] = None

    @abc.abstractmethod
    def _url(self) -> str:
        """Full chat-completions URL."""

    @abc.abstractmethod
    def _headers(self) -> Dict[str, str]:
        """Authentication headers."""

    def _extra_body(self) -> Dict[str, Any]:
        return {}

    @abc.abstractmethod
    def redacted_repr(self) -> str:
        """Human-readable description with sensitive values masked."""

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def decide(self, serialized_catalog: str, task: str) -> str:
        """Return the model's raw reply for the tool-selection prompt.

        Raises:
            OracleError: HTTP or network failure, or a response without
                ``choices[0].message.content``.
        """
        body: Dict[str, Any] = {
            "messages": build_selection_messages(serialized_catalog, task),
            "temperature": self._temperature,
            **self._extra_body(),
        }
        logger.debug("Oracle request → %s", self.redacted_repr())

        client = self._ensure_client()
        try:
            resp = await client.post(self._url(), json=body, headers=self._headers())
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Oracle HTTP %s from %s", exc.response.status_code, self.provider_name
            )
            raise OracleError(
                f"HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                provider=self.provider_name,
                orig_exc=exc,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Oracle request failed (%s): %s", self.provider_name, exc)
            raise OracleError(str(exc), provider=self.provider_name, orig_exc=exc) from exc
        except ValueError as exc:
            raise OracleError(
                "Response body is not JSON", provider=self.provider_name, orig_exc=exc
            ) from exc

        return _extract_content(payload, self.provider_name)


def _extract_content(payload: Any, provider: str) -> str:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise OracleError(
            "Unexpected chat-completions response shape", provider=provider, orig_exc=exc
        ) from exc
    if not isinstance(content, str):
        raise OracleError("Chat-completions reply has no text content", provider=provider)
    return content


# ── OpenAI ───────────────────────────────────────────────────────────


class OpenAIOracle(ChatCompletionOracle):
    provider_name = "OpenAI"

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = ORACLE_TIMEOUT,
        temperature: float = 0.0,
    ) -> None:
        super().__init__(timeout=timeout, temperature=temperature)
        self._model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    def _url(self) -> str:
        return f"{self._base_url}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _extra_body(self) -> Dict[str, Any]:
        return {"model": self._model}

    def redacted_repr(self) -> str:
        return (
            f"OpenAIOracle(model={self._model!r}, base_url={self._base_url!r}, "
            f"api_key={_redact(self._api_key)})"
        )


# ── Azure OpenAI ─────────────────────────────────────────────────────


class AzureOpenAIOracle(ChatCompletionOracle):
    provider_name = "AzureOpenAI"

    def __init__(
        self,
        deployment_name: str,
        endpoint: str,
        api_key: str,
        *,
        api_version: str = AZURE_API_VERSION,
        timeout: float = ORACLE_TIMEOUT,
        temperature: float = 0.0,
    ) -> None:
        super().__init__(timeout=timeout, temperature=temperature)
        self._deployment = deployment_name
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._api_version = api_version

    def _url(self) -> str:
        return (
            f"{self._endpoint}/openai/deployments/{self._deployment}"
            f"/chat/completions?api-version={self._api_version}"
        )

    def _headers(self) -> Dict[str, str]:
        return {"api-key": self._api_key}

    def redacted_repr(self) -> str:
        return (
            f"AzureOpenAIOracle(deployment={self._deployment!r}, endpoint={self._endpoint!r}, "
            f"api_key={_redact(self._api_key)})"
        )


# ── Factory ──────────────────────────────────────────────────────────


def create_oracle(settings: LlmSettings) -> ChatCompletionOracle:
    """Build the oracle named by ``settings.provider``.

    Raises :class:`ConfigurationError` when the provider is missing or
    unsupported, or when a required field for it is empty.
    """
    provider = settings.provider
    if provider == "OpenAI":
        cfg = settings.openai
        _require(provider, {"model": cfg.model, "api_key": cfg.api_key})
        secret_redaction_filter.register(cfg.api_key)
        oracle: ChatCompletionOracle = OpenAIOracle(
            model=cfg.model or "",
            api_key=cfg.api_key or "",
            base_url=cfg.base_url,
            timeout=settings.timeout,
            temperature=settings.temperature,
        )
    elif provider == "AzureOpenAI":
        az = settings.azure_openai
        _require(
            provider,
            {"deployment_name": az.deployment_name, "endpoint": az.endpoint, "api_key": az.api_key},
        )
        secret_redaction_filter.register(az.api_key)
        oracle = AzureOpenAIOracle(
            deployment_name=az.deployment_name or "",
            endpoint=az.endpoint or "",
            api_key=az.api_key or "",
            api_version=az.api_version,
            timeout=settings.timeout,
            temperature=settings.temperature,
        )
    else:
        supported = ", ".join(SUPPORTED_PROVIDERS)
        raise ConfigurationError(
            f"Provider '{provider}' is not supported (supported: {supported})."
        )

    logger.info("Decision oracle built: %s", oracle.redacted_repr())
    return oracle


# ── Helpers ──────────────────────────────────────────────────────────


def _require(provider: str, fields: Dict[str, Optional[str]]) -> None:
    missing: List[str] = [name for name, value in fields.items() if not value]
    if missing:
        raise ConfigurationError(
            f"LLM provider '{provider}' requires: {', '.join(missing)}."
        )


def _redact(value: str, visible: int = 4) -> str:
    """Mask all but the last *visible* characters."""
    if len(value) <= visible:
        return "****"
    return "*" * (len(value) - visible) + value[-visible:]
