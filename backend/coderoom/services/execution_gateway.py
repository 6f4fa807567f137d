"""Adapter for the external sandboxed code runner (Piston-compatible API)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from coderoom.core.config import settings
from coderoom.services.errors import InvalidRequestError, UnsupportedLanguageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeConfig:
    language: str
    version: str
    filename: str


LANGUAGE_CONFIG: Dict[str, RuntimeConfig] = {
    "javascript": RuntimeConfig("javascript", "18.15.0", "main.js"),
    "typescript": RuntimeConfig("typescript", "5.0.3", "main.ts"),
    "python": RuntimeConfig("python", "3.10.0", "main.py"),
    "cpp": RuntimeConfig("c++", "10.2.0", "main.cpp"),
    "c": RuntimeConfig("c", "10.2.0", "main.c"),
    "java": RuntimeConfig("java", "15.0.2", "Main.java"),
}

COMPILE_ERROR_LABEL = "❌ Compilation Error:"
STDERR_PREFIX = "⚠️ stderr: "
NO_OUTPUT_LINE = "✓ Code executed successfully (no output)"


@dataclass
class ExecutionResult:
    output_lines: List[str] = field(default_factory=list)
    success: bool = True


def runtime_for(language: str) -> RuntimeConfig:
    config = LANGUAGE_CONFIG.get(language)
    if config is None:
        raise UnsupportedLanguageError(language)
    return config


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def format_output(result: Dict[str, Any]) -> List[str]:
    """Turn a runner response into display lines.

    Order: compile errors (non-zero compile exit only), stdout, stderr,
    a synthetic exit-code line for silent failures, else a no-output line.
    """
    lines: List[str] = []

    compile_step = result.get("compile") or {}
    compile_output = _text(compile_step.get("output"))
    if compile_output and compile_step.get("code") != 0:
        lines.append(COMPILE_ERROR_LABEL)
        lines.append(compile_output.strip())

    run = result.get("run") or {}
    if run:
        output = _text(run.get("output"))
        stderr = _text(run.get("stderr"))
        if output:
            lines.append(output.strip())
        if stderr.strip():
            lines.append(f"{STDERR_PREFIX}{stderr.strip()}")
        exit_code = run.get("code")
        if exit_code not in (0, None) and not output and not stderr:
            lines.append(f"❌ Process exited with code {exit_code}")

    if not lines:
        lines.append(NO_OUTPUT_LINE)
    return lines


class ExecutionGateway:
    """Stateless request/response client for the runner.

    Failures of the runner itself (transport, timeout, non-2xx, unreadable
    body) come back as ``ExecutionResult(success=False)`` with one line; only
    caller mistakes (missing input, unknown language) raise, and they raise
    before any request is sent. Nothing is retried.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        compile_timeout_ms: Optional[int] = None,
        run_timeout_ms: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = api_url or settings.EXECUTION_API_URL
        self.timeout = timeout if timeout is not None else settings.EXECUTION_HTTP_TIMEOUT_SECONDS
        self.compile_timeout_ms = compile_timeout_ms or settings.EXECUTION_COMPILE_TIMEOUT_MS
        self.run_timeout_ms = run_timeout_ms or settings.EXECUTION_RUN_TIMEOUT_MS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_payload(self, code: str, config: RuntimeConfig) -> Dict[str, Any]:
        return {
            "language": config.language,
            "version": config.version,
            "files": [{"name": config.filename, "content": code}],
            "stdin": "",
            "args": [],
            "compile_timeout": self.compile_timeout_ms,
            "run_timeout": self.run_timeout_ms,
            "compile_memory_limit": -1,
            "run_memory_limit": -1,
        }

    async def execute(self, code: str, language: str) -> ExecutionResult:
        if not code or not language:
            raise InvalidRequestError("Missing code or language")
        config = runtime_for(language)

        logger.info("Executing %s code (%d chars) on %s %s", language, len(code), config.language, config.version)
        try:
            response = await self._get_client().post(self.api_url, json=self.build_payload(code, config))
        except httpx.TimeoutException:
            logger.warning("Execution service timed out for %s", language)
            return ExecutionResult(["❌ Execution timed out"], success=False)
        except httpx.HTTPError as exc:
            logger.error("Execution service unreachable: %s", exc)
            return ExecutionResult([f"❌ Execution service unavailable: {exc}"], success=False)

        if not response.is_success:
            logger.error("Execution service error: %s - %s", response.status_code, response.text[:500])
            return ExecutionResult(
                [f"❌ Execution service error ({response.status_code}): {response.text.strip()}"],
                success=False,
            )

        try:
            payload = response.json()
        except ValueError:
            logger.error("Execution service returned a non-JSON body")
            return ExecutionResult(["❌ Execution service returned an unreadable response"], success=False)
        if not isinstance(payload, dict):
            logger.error("Execution service returned unexpected payload type %s", type(payload).__name__)
            return ExecutionResult(["❌ Execution service returned an unreadable response"], success=False)

        lines = format_output(payload)
        logger.info("Execution finished with %d output lines", len(lines))
        return ExecutionResult(lines, success=True)
