"""Tests for the runner client and output formatting."""

import json

import httpx
import pytest

from coderoom.services.errors import InvalidRequestError, UnsupportedLanguageError
from coderoom.services.execution_gateway import (
    COMPILE_ERROR_LABEL,
    NO_OUTPUT_LINE,
    ExecutionGateway,
    format_output,
    runtime_for,
)

RUNNER_URL = "https://runner.test/api/v2/execute"


def _gateway(handler):
    return ExecutionGateway(RUNNER_URL, transport=httpx.MockTransport(handler))


def _json_handler(body, status_code=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body)

    return handler


class TestFormatOutput:
    def test_sections_in_order(self):
        lines = format_output(
            {
                "compile": {"output": "warning: unused\n", "code": 1},
                "run": {"output": "hello\n", "stderr": "oops\n", "code": 1},
            }
        )
        assert lines == [COMPILE_ERROR_LABEL, "warning: unused", "hello", "⚠️ stderr: oops"]

    def test_successful_compile_output_is_hidden(self):
        lines = format_output(
            {"compile": {"output": "note", "code": 0}, "run": {"output": "ok\n", "stderr": "", "code": 0}}
        )
        assert lines == ["ok"]

    def test_silent_failure_reports_exit_code(self):
        lines = format_output({"run": {"output": "", "stderr": "", "code": 137}})
        assert lines == ["❌ Process exited with code 137"]

    def test_no_output(self):
        assert format_output({"run": {"output": "", "stderr": "", "code": 0}}) == [NO_OUTPUT_LINE]
        assert format_output({}) == [NO_OUTPUT_LINE]

    def test_whitespace_only_stderr_is_dropped(self):
        lines = format_output({"run": {"output": "1\n", "stderr": "  \n", "code": 0}})
        assert lines == ["1"]


class TestRuntimeConfig:
    def test_cpp_maps_to_runner_name(self):
        config = runtime_for("cpp")
        assert config.language == "c++"
        assert config.filename == "main.cpp"

    def test_java_uses_main_class_file(self):
        assert runtime_for("java").filename == "Main.java"

    def test_unknown_language(self):
        with pytest.raises(UnsupportedLanguageError):
            runtime_for("cobol")


class TestExecute:
    @pytest.mark.asyncio
    async def test_payload_shape(self):
        seen = []
        gateway = _gateway(_json_handler({"run": {"output": "hi\n", "stderr": "", "code": 0}}, seen=seen))

        result = await gateway.execute("int main(){}", "cpp")

        assert result.success is True
        assert result.output_lines == ["hi"]
        body = json.loads(seen[0].content)
        assert body["language"] == "c++"
        assert body["version"] == "10.2.0"
        assert body["files"] == [{"name": "main.cpp", "content": "int main(){}"}]
        assert body["stdin"] == ""
        assert body["compile_timeout"] == gateway.compile_timeout_ms
        assert body["run_timeout"] == gateway.run_timeout_ms
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_program_error_is_still_success(self):
        gateway = _gateway(_json_handler({"run": {"output": "", "stderr": "Traceback\n", "code": 1}}))
        result = await gateway.execute("raise SystemExit(1)", "python")
        assert result.success is True
        assert result.output_lines == ["⚠️ stderr: Traceback"]

    @pytest.mark.asyncio
    async def test_unsupported_language_sends_nothing(self):
        seen = []
        gateway = _gateway(_json_handler({}, seen=seen))
        with pytest.raises(UnsupportedLanguageError):
            await gateway.execute("x", "brainfuck")
        assert seen == []

    @pytest.mark.asyncio
    async def test_missing_code_sends_nothing(self):
        seen = []
        gateway = _gateway(_json_handler({}, seen=seen))
        with pytest.raises(InvalidRequestError):
            await gateway.execute("", "python")
        with pytest.raises(InvalidRequestError):
            await gateway.execute("print(1)", "")
        assert seen == []

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        result = await _gateway(handler).execute("while True: pass", "python")
        assert result.success is False
        assert result.output_lines == ["❌ Execution timed out"]

    @pytest.mark.asyncio
    async def test_unreachable_runner(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await _gateway(handler).execute("print(1)", "python")
        assert result.success is False
        assert len(result.output_lines) == 1
        assert result.output_lines[0].startswith("❌ Execution service unavailable")

    @pytest.mark.asyncio
    async def test_error_status(self):
        def handler(request):
            return httpx.Response(500, text="runtime unknown")

        result = await _gateway(handler).execute("print(1)", "python")
        assert result.success is False
        assert result.output_lines == ["❌ Execution service error (500): runtime unknown"]

    @pytest.mark.asyncio
    async def test_unreadable_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        result = await _gateway(handler).execute("print(1)", "python")
        assert result.success is False
        assert result.output_lines == ["❌ Execution service returned an unreadable response"]
