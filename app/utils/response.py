# app/utils/response.py

from typing import Any, Dict


def success_response(message: str, **fields: Any) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        **fields,
    }
