from typing import Any, Dict, Optional


def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


def fail(message: str, errors: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def page_window(page: int, limit: int):
    """Clamp page/limit and return (page, limit, offset)."""
    page = max(int(page or 1), 1)
    limit = max(int(limit or 10), 1)
    return page, limit, (page - 1) * limit


def pagination(total_items: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total_items": total_items,
        "total_pages": (total_items + limit - 1) // limit,
        "current_page": page,
        "limit": limit,
    }
