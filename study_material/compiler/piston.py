# study_material/compiler/piston.py

from typing import Optional

import httpx

from study_material.config import (
    PISTON_API_URL, JAVA_VERSION, COMPILE_TIMEOUT_MS, RUN_TIMEOUT_MS,
    EXECUTE_TIMEOUT_SECONDS, VALIDATE_TIMEOUT_SECONDS, RUNTIMES_TIMEOUT_SECONDS
)


def java_request(code: str, stdin: str = "", run_timeout: int = RUN_TIMEOUT_MS) -> dict:
    """Piston execute payload for a single Main.java file"""
    payload = {
        "language": "java",
        "version": JAVA_VERSION,
        "files": [{"name": "Main.java", "content": code}],
        "compile_timeout": COMPILE_TIMEOUT_MS,
        "run_timeout": run_timeout
    }
    if run_timeout:
        payload["stdin"] = stdin
        payload["args"] = []
    return payload


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def format_execution(result: dict) -> dict:
    compile_ = result.get("compile") or {}
    run = result.get("run") or {}
    return {
        "success": True,
        "language": result.get("language"),
        "version": result.get("version"),
        "compile": {
            "stdout": compile_.get("stdout") or "",
            "stderr": compile_.get("stderr") or "",
            "code": compile_.get("code") or 0,
            "signal": compile_.get("signal")
        },
        "run": {
            "stdout": run.get("stdout") or "",
            "stderr": run.get("stderr") or "",
            "code": run.get("code") or 0,
            "signal": run.get("signal"),
            "output": run.get("output") or ""
        },
        "hasErrors": _has_text(compile_.get("stderr")) or _has_text(run.get("stderr")),
        "hasOutput": _has_text(run.get("stdout"))
    }


def format_validation(result: dict) -> dict:
    compile_ = result.get("compile") or {}
    return {
        "success": True,
        "valid": not _has_text(compile_.get("stderr")),
        "compile": {
            "stdout": compile_.get("stdout") or "",
            "stderr": compile_.get("stderr") or "",
            "code": compile_.get("code") or 0
        }
    }


class PistonClient:
    """
    Thin async client for the public Piston code runner.

    Raises httpx exceptions as-is; callers map them to HTTP responses.
    """

    def __init__(self, base_url: str = PISTON_API_URL, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    async def _execute(self, payload: dict, timeout: float) -> dict:
        async with self._client(timeout) as client:
            response = await client.post(
                f"{self.base_url}/execute",
                json=payload,
                headers={"Content-Type": "application/json"}
            )
            response.raise_for_status()
            return response.json()

    async def execute_java(self, code: str, stdin: str = "") -> dict:
        result = await self._execute(java_request(code, stdin), EXECUTE_TIMEOUT_SECONDS)
        return format_execution(result)

    async def validate_java(self, code: str) -> dict:
        """Compile only, nothing is run"""
        result = await self._execute(java_request(code, run_timeout=0), VALIDATE_TIMEOUT_SECONDS)
        return format_validation(result)

    async def java_runtimes(self) -> list:
        async with self._client(RUNTIMES_TIMEOUT_SECONDS) as client:
            response = await client.get(f"{self.base_url}/runtimes")
            response.raise_for_status()
            return [rt for rt in response.json() if rt.get("language") == "java"]


def get_piston_client() -> PistonClient:
    return PistonClient()
