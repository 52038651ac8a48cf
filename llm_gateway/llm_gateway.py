from __future__ import annotations  # Oracle adapters over vendor HTTP APIs

import logging
import os
import threading
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import httpx

from config import LlmRoute
from errors import OracleUnavailableError


logger = logging.getLogger(__name__)  # Module logger setup


_MODEL_LOCKS: Dict[str, threading.Lock] = {}
_MODEL_LOCKS_GUARD = threading.Lock()


class Oracle(Protocol):  # Narrow text-generation contract consumed by the engine
    def generate(self, prompt: str) -> str: ...


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


def _lock_for(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _MODEL_LOCKS_GUARD:
        lock = _MODEL_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _MODEL_LOCKS[key] = lock
    return lock


class HttpOracle:  # Shared transport, retry and locking for vendor adapters
    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None) -> None:
        self._route = route
        self._client = client

    @property
    def route(self) -> LlmRoute:
        return self._route

    def generate(self, prompt: str) -> str:
        if self._route.sequential:
            with _lock_for(self._route):
                return self._execute(prompt)
        return self._execute(prompt)

    def _execute(self, prompt: str) -> str:
        cfg = self._route
        attempts = cfg.max_retries + 1
        preview = _preview(prompt)
        logger.info(
            "LLM request start route=%s model=%s attempts=%d preview=%s",
            cfg.name,
            cfg.model,
            attempts,
            preview,
        )
        url, payload, headers = self._request(prompt)
        last_error: Optional[str] = None
        for attempt in range(attempts):
            try:
                response, close_cb = _post(url, payload, headers, cfg.timeout_s, self._client)
            except httpx.HTTPError as exc:
                logger.warning("LLM transport failure attempt=%d/%d: %s", attempt + 1, attempts, exc)
                last_error = f"transport failure: {exc}"
                continue
            try:
                if response.status_code >= 500:
                    logger.warning("LLM server error status=%s attempt=%d/%d", response.status_code, attempt + 1, attempts)
                    last_error = f"status {response.status_code}"
                    continue
                if response.status_code >= 400:
                    logger.error("LLM error status: %s", response.status_code)
                    raise OracleUnavailableError(f"LLM returned status {response.status_code}")
                try:
                    data = response.json()
                except ValueError as exc:
                    logger.error("Invalid JSON payload from LLM: %s", exc)
                    raise OracleUnavailableError("LLM payload was not JSON") from exc
                content = self._extract(data)
            finally:
                _close_safely(close_cb)
            logger.info("LLM request done route=%s model=%s attempt=%d", cfg.name, cfg.model, attempt + 1)
            return content
        raise OracleUnavailableError(f"LLM request failed after {attempts} attempts ({last_error})")

    def _request(self, prompt: str) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        raise NotImplementedError

    def _extract(self, data: Any) -> str:
        return extract_text(data)

    def _api_key(self) -> Optional[str]:
        if not self._route.api_key_env:
            return None
        return os.getenv(self._route.api_key_env)


class OpenAICompatibleOracle(HttpOracle):  # Chat-completions style endpoints
    def _request(self, prompt: str) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        cfg = self._route
        payload: Dict[str, Any] = {"model": cfg.model, "messages": [{"role": "user", "content": prompt}]}
        if cfg.temperature is not None:
            payload["temperature"] = cfg.temperature
        headers = {"Content-Type": "application/json"}
        api_key = self._api_key()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        headers.update(cfg.extra_headers)
        return f"{cfg.base_url}{cfg.endpoint}", payload, headers


class GeminiOracle(HttpOracle):  # generateContent style endpoints
    def _request(self, prompt: str) -> Tuple[str, Dict[str, Any], Dict[str, str]]:
        cfg = self._route
        payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if cfg.temperature is not None:
            payload["generationConfig"] = {"temperature": cfg.temperature}
        headers = {"Content-Type": "application/json"}
        api_key = self._api_key()
        if api_key:
            headers["x-goog-api-key"] = api_key
        headers.update(cfg.extra_headers)
        endpoint = cfg.endpoint.format(model=cfg.model)
        return f"{cfg.base_url}{endpoint}", payload, headers


def build_oracle(route: LlmRoute, *, client: Optional[HttpClient] = None) -> HttpOracle:  # Pick the adapter for a route vendor
    if route.vendor == "gemini":
        return GeminiOracle(route, client=client)
    return OpenAICompatibleOracle(route, client=client)


def extract_text(data: Any) -> str:  # Extract completion text from known vendor shapes
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        candidates = data.get("candidates")
        if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
            content = candidates[0].get("content")
            parts = content.get("parts") if isinstance(content, dict) else None
            if isinstance(parts, list):
                texts = [part.get("text") for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
                if texts:
                    return "".join(texts)
        for key in ("content", "text", "output_text"):
            if isinstance(data.get(key), str):
                return data[key]
    raise OracleUnavailableError("LLM response missing content")


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        return client.post(url, json=payload, headers=headers, timeout=timeout), None
    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _preview(prompt: str) -> str:  # Build preview string for logging
    for line in prompt.splitlines():
        text = line.strip()
        if text:
            return text if len(text) <= 120 else text[:117] + "..."
    return ""


def ask(oracle: Oracle, prompt: str) -> str:  # Call an oracle, converting any failure into OracleUnavailableError
    try:
        raw = oracle.generate(prompt)
    except OracleUnavailableError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.error("Oracle call failed: %s", exc)
        raise OracleUnavailableError(f"Oracle call failed: {exc}") from exc
    if not isinstance(raw, str):
        raise OracleUnavailableError(f"Oracle returned {type(raw).__name__}, expected text")
    return raw
