from typing import Any


def success_response(data: dict[str, Any] | None = None, message: str | None = None) -> dict:
    """JSON envelope shared by every endpoint: {success, message?, data?}."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
