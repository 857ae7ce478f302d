"""HTTP client for the upstream OpenAI-compatible chat-completion provider."""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx

from memory_gateway.core.base import AIServiceErrorDetails
from memory_gateway.core.circuit_breaker import CircuitBreaker
from memory_gateway.core.errors import ProviderError, ServiceError, UpstreamHTTPError
from memory_gateway.core.logging import get_logger

logger = get_logger(__name__)

COMPLETIONS_PATH = "/chat/completions"


def _error_details(operation: str, status_code: int | None = None, model: str | None = None) -> AIServiceErrorDetails:
    return AIServiceErrorDetails(
        source="ProviderClient",
        operation=operation,
        service_name="llm_provider",
        status_code=status_code,
        model_name=model,
    )


def _as_json_string(arguments: Any) -> str:
    # Some providers return tool arguments as an object instead of a JSON string
    return arguments if isinstance(arguments, str) else json.dumps(arguments)


def _response_payload(response: httpx.Response) -> Any:
    """Decoded JSON body of an upstream response, or its text when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return {"error": {"message": response.text, "type": "upstream_error"}}


class ProviderClient:
    """Thin async wrapper over the provider's ``/chat/completions`` endpoint.

    The caller's bearer token is forwarded as-is; ``default_api_key`` is used
    only when the caller did not send one.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        default_api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.default_api_key = default_api_key
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        # Upstream HTTP errors are the caller's problem, only transport failures trip the breaker
        self.circuit_breaker = CircuitBreaker(
            name="llm_provider",
            failure_threshold=5,
            recovery_timeout=30.0,
            expected_exception_types=(httpx.TransportError,),
        )

    def _headers(self, api_key: str | None, stream: bool = False) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if stream:
            # Relayed bytes go out as text/event-stream without a Content-Encoding
            headers["Accept-Encoding"] = "identity"
        token = api_key or self.default_api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _unavailable(error: ServiceError, operation: str, model: str | None) -> ProviderError:
        """Surface a rejected call (open circuit) as a provider failure, keeping its code."""
        return ProviderError(
            error.message,
            details=_error_details(operation, getattr(error.details, "status_code", None), model),
            code=error.code,
        )

    async def _post(self, payload: dict[str, Any], api_key: str | None) -> httpx.Response:
        return await self.client.post(COMPLETIONS_PATH, json=payload, headers=self._headers(api_key))

    async def chat_completion(self, payload: dict[str, Any], api_key: str | None = None) -> dict[str, Any]:
        """Send a non-streaming completion request and return the decoded body.

        Raises:
            UpstreamHTTPError: The provider answered with a non-2xx status
            ProviderError: The provider could not be reached
        """
        model = payload.get("model")
        try:
            response = await self.circuit_breaker.call_async(self._post, payload, api_key)
        except ServiceError as e:
            raise self._unavailable(e, "chat_completion", model) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Completion request failed: {e}",
                details=_error_details("chat_completion", model=model),
            ) from e

        if response.is_error:
            logger.warning("Provider returned error", status_code=response.status_code, model=model)
            raise UpstreamHTTPError(response.status_code, _response_payload(response))

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                "Provider returned a non-JSON body",
                details=_error_details("chat_completion", response.status_code, model),
            ) from e

    async def open_stream(self, payload: dict[str, Any], api_key: str | None = None) -> AsyncIterator[bytes]:
        """Open a streaming completion and return an iterator over its SSE bytes.

        The status is checked before any byte is relayed, so a rejected
        request surfaces as UpstreamHTTPError instead of a broken stream. The
        upstream connection is closed once the iterator is exhausted or closed.
        """
        request = self.client.build_request(
            "POST", COMPLETIONS_PATH, json=payload, headers=self._headers(api_key, stream=True)
        )
        try:
            response = await self.circuit_breaker.call_async(self.client.send, request, stream=True)
        except ServiceError as e:
            raise self._unavailable(e, "open_stream", payload.get("model")) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Streaming request failed: {e}",
                details=_error_details("open_stream", model=payload.get("model")),
            ) from e

        if response.is_error:
            await response.aread()
            await response.aclose()
            raise UpstreamHTTPError(response.status_code, _response_payload(response))

        return self._relay(response)

    async def _relay(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        finally:
            await response.aclose()

    async def function_call(
        self,
        model: str,
        messages: list[dict[str, Any]],
        function: dict[str, Any],
        temperature: float,
        api_key: str | None = None,
    ) -> str:
        """Force a single tool call and return its raw JSON arguments string.

        Raises:
            ProviderError: The call failed or the model did not call the function
        """
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "tools": [{"type": "function", "function": function}],
            "tool_choice": {"type": "function", "function": {"name": function["name"]}},
        }
        try:
            body = await self.chat_completion(payload, api_key)
        except UpstreamHTTPError as e:
            raise ProviderError(
                f"Function call rejected with HTTP {e.status_code}",
                details=_error_details("function_call", e.status_code, model),
            ) from e

        try:
            message = body["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                "Provider response has no choices",
                details=_error_details("function_call", model=model),
            ) from e

        tool_calls = message.get("tool_calls") or []
        if tool_calls:
            return _as_json_string(tool_calls[0]["function"]["arguments"])
        # Legacy function-calling responses
        legacy = message.get("function_call")
        if legacy and "arguments" in legacy:
            return _as_json_string(legacy["arguments"])

        raise ProviderError(
            f"Model did not call {function['name']}",
            details=_error_details("function_call", model=model),
        )

    async def aclose(self) -> None:
        await self.client.aclose()
