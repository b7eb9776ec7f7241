# pizzashop/paging.py
from __future__ import annotations

from typing import Any, Dict


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    return {"page": page, "limit": limit, "total": total}
