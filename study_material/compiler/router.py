import logging
from typing import Any, Optional

import httpx
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from study_material.compiler.piston import PistonClient, get_piston_client
from study_material.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Compiler"])


class ExecuteRequest(BaseModel):
    code: Any = None
    input: Optional[str] = ""


class ValidateRequest(BaseModel):
    code: Any = None


def _require_code(code: Any) -> str:
    if not code or not isinstance(code, str):
        raise HTTPException(status_code=400, detail={
            "success": False,
            "message": "Code is required and must be a string"
        })
    return code


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or "Unknown API error"


@router.post("/execute")
async def execute_code(
    payload: ExecuteRequest,
    piston: PistonClient = Depends(get_piston_client),
    user: dict = Depends(get_current_user)
):
    """Run a Main.java program on Piston"""
    code = _require_code(payload.code)
    try:
        return await piston.execute_java(code, payload.input or "")
    except httpx.TimeoutException:
        logger.warning("Code execution timed out for user %s", user.get("id"))
        raise HTTPException(status_code=408, detail={
            "success": False,
            "message": "Code execution timed out. Please check for infinite loops or optimize your code.",
            "error": "TIMEOUT"
        })
    except httpx.HTTPStatusError as e:
        logger.error("Piston returned %s", e.response.status_code)
        raise HTTPException(status_code=e.response.status_code, detail={
            "success": False,
            "message": "Code execution service error",
            "error": _error_body(e.response)
        })
    except httpx.RequestError as e:
        logger.error("Piston unreachable: %s", e)
        raise HTTPException(status_code=503, detail={
            "success": False,
            "message": "Code execution service is currently unavailable",
            "error": "SERVICE_UNAVAILABLE"
        })
    except Exception:
        logger.exception("Compiler execution error")
        raise HTTPException(status_code=500, detail={
            "success": False,
            "message": "Internal server error during code execution",
            "error": "INTERNAL_ERROR"
        })


@router.get("/languages")
async def list_languages(
    piston: PistonClient = Depends(get_piston_client),
    user: dict = Depends(get_current_user)
):
    try:
        runtimes = await piston.java_runtimes()
    except Exception as e:
        logger.error("Error fetching languages: %s", e)
        raise HTTPException(status_code=500, detail={
            "success": False,
            "message": "Failed to fetch available languages",
            "error": str(e)
        })
    return {"success": True, "languages": runtimes}


@router.post("/validate")
async def validate_code(
    payload: ValidateRequest,
    piston: PistonClient = Depends(get_piston_client),
    user: dict = Depends(get_current_user)
):
    """Compile a Main.java program without running it"""
    code = _require_code(payload.code)
    try:
        return await piston.validate_java(code)
    except Exception as e:
        logger.error("Code validation error: %s", e)
        raise HTTPException(status_code=500, detail={
            "success": False,
            "message": "Code validation failed",
            "error": str(e)
        })
