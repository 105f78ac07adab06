"""
Paginated envelopes and conditional (ETag) JSON responses.
"""

import hashlib
import json
from typing import Any, Dict, Optional, Sequence

from fastapi import Request, Response
from pydantic import BaseModel

from schemas import Page, Pagination


def build_page(rows: Sequence[Any], total: int, offset: int, limit: int) -> Page:
    """Wrap one page of rows in the pagination envelope."""
    return Page(
        data=list(rows),
        pagination=Pagination(
            total=total,
            offset=offset,
            limit=limit,
            has_more=total > offset + limit,
        ),
    )


def serialize(payload: Any) -> bytes:
    """Canonical JSON: identical payloads always give identical bytes."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def compute_etag(body: bytes) -> str:
    """SHA-256 hex digest of already-serialized response bytes."""
    return hashlib.sha256(body).hexdigest()


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    if not if_none_match:
        return False
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == "*" or candidate.strip('"') == etag:
            return True
    return False


def cached_json_response(request: Request, payload: Any, cache_control: str) -> Response:
    """200 with body and validators, or a bodyless 304 when the client's tag is still fresh."""
    body = serialize(payload)
    etag = compute_etag(body)
    # 304 carries the same caching headers as the 200 it replaces
    headers: Dict[str, str] = {
        "ETag": f'"{etag}"',
        "Cache-Control": cache_control,
        "Vary": "Authorization",
    }

    if etag_matches(request.headers.get("if-none-match"), etag):
        return Response(status_code=304, headers=headers)

    return Response(content=body, media_type="application/json", headers=headers)
