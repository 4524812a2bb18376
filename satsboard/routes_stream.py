# satsboard/routes_stream.py
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from satsboard.cache import SnapshotCache
from satsboard.routes_snapshot import current_snapshot, get_cache

router = APIRouter()


def sse_frame(payload: str) -> str:
    # each frame ends with a blank line
    return f"data: {payload}\n\n"


@router.get("/api/v1/stream")
async def stream_snapshots(
    request: Request,
    refresh_sec: float = Query(5.0, ge=0.5, le=300.0),
    cache: SnapshotCache = Depends(get_cache),
) -> StreamingResponse:
    """
    Server-Sent Events stream of snapshots: `data: {...}\\n\\n` every refresh_sec.

    Goes through the same cache as /snapshot, so a fast refresh_sec still
    costs at most one upstream refresh per TTL window.
    """

    async def event_gen():
        while True:
            # Stop streaming if client disconnects
            if await request.is_disconnected():
                break

            snap = await current_snapshot(cache)
            yield sse_frame(snap.model_dump_json())

            # Pace the stream
            await asyncio.sleep(refresh_sec)

    return StreamingResponse(event_gen(), media_type="text/event-stream")
