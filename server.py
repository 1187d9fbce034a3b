"""
FastAPI Server for the Colorbook canvas engine

Hosts coloring sessions over HTTP: load generated line art, apply strokes
and bucket fills, and download the composited result.
"""

import logging
import uuid
from typing import Dict, Optional
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from colorbook.compositor import encode_png
from colorbook.config.session_config import SessionConfig
from colorbook.errors import (
    ExportError,
    ReferenceLoadError,
    ReferenceNotReadyError,
)
from colorbook.mapping import DisplayRect, PointerEvent
from colorbook.models import ToolMode, parse_hex_color
from colorbook.session import ColoringSession

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Colorbook Canvas API",
    description="Drawing, bucket fill and export for coloring generated line art",
    version="1.0.0",
)

# Add CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SESSIONS: Dict[str, ColoringSession] = {}


class CreateSessionRequest(BaseModel):
    """Request body for a new coloring session"""
    image: str  # Base64-encoded line art (with or without data URL prefix)
    fill_policy: str = "block"


class ToolRequest(BaseModel):
    """Partial tool update; omitted fields keep their value"""
    color: Optional[str] = None
    size: Optional[int] = None
    mode: Optional[str] = None


class RectModel(BaseModel):
    """On-screen rectangle the canvas is displayed in"""
    left: float = 0.0
    top: float = 0.0
    width: float
    height: float


class PointerRequest(BaseModel):
    """Pointer event in display coordinates"""
    kind: str  # "down", "move", "up" or "leave"
    client_x: float = 0.0
    client_y: float = 0.0
    rect: Optional[RectModel] = None


class FillRequest(BaseModel):
    """Bucket fill at a canvas pixel"""
    x: int
    y: int
    color: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str


def get_session(session_id: str) -> ColoringSession:
    session = SESSIONS.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return session


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(status="healthy", version="1.0.0")


@app.post("/sessions")
async def create_session(request: CreateSessionRequest):
    """
    Start a coloring session from base64-encoded line art.

    The image is resampled to the canvas size.
    """
    try:
        config = SessionConfig(fill_policy=request.fill_policy)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session = ColoringSession(config)
    try:
        await session.load_reference_async(request.image)
    except ReferenceLoadError as e:
        session.close()
        raise HTTPException(status_code=400, detail=str(e))

    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info(f"Session {session_id} created")

    width, height = session.canvas_size
    return {
        "session_id": session_id,
        "status": session.reference.status.value,
        "canvas_size": {"width": width, "height": height},
        "tool": session.tool.to_dict(),
    }


@app.put("/sessions/{session_id}/tool")
async def update_tool(session_id: str, request: ToolRequest):
    """Change color, size and/or mode"""
    session = get_session(session_id)
    try:
        if request.mode is not None:
            session.set_mode(ToolMode(request.mode))
        if request.size is not None:
            session.set_size(request.size)
        if request.color is not None:
            session.set_color(request.color)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.tool.to_dict()


@app.post("/sessions/{session_id}/pointer")
async def pointer_event(session_id: str, request: PointerRequest):
    """Feed one pointer event into the stroke / fill state machine"""
    session = get_session(session_id)

    if request.kind == "up":
        session.pointer_up()
        return {"drawing": False}
    if request.kind == "leave":
        session.pointer_leave()
        return {"drawing": False}

    if request.kind not in ("down", "move"):
        raise HTTPException(status_code=400, detail=f"Unknown pointer kind: {request.kind}")
    if request.rect is None:
        raise HTTPException(status_code=400, detail="rect is required for down/move events")

    try:
        rect = DisplayRect(**request.rect.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    event = PointerEvent(client_x=request.client_x, client_y=request.client_y)

    if request.kind == "move":
        session.pointer_move(event, rect)
        return {"drawing": session.strokes.is_drawing}

    try:
        pending = session.pointer_down(event, rect)
        result = await pending if pending is not None else None
    except ReferenceNotReadyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    response = {"drawing": session.strokes.is_drawing}
    if result is not None:
        response["fill"] = result.to_dict()
    return response


@app.post("/sessions/{session_id}/fill")
async def fill(session_id: str, request: FillRequest):
    """Bucket-fill the region around a canvas pixel; the tool is left as is"""
    session = get_session(session_id)
    try:
        color = None if request.color is None else parse_hex_color(request.color)
        result = await session.schedule_fill(request.x, request.y, color)
    except ReferenceNotReadyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


@app.post("/sessions/{session_id}/clear")
async def clear(session_id: str):
    """Reset the drawing to white"""
    get_session(session_id).clear()
    return {"cleared": True}


@app.get("/sessions/{session_id}/view")
async def live_view(session_id: str):
    """Current on-screen rendering as PNG"""
    session = get_session(session_id)
    try:
        data = encode_png(session.live_view())
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return Response(content=data, media_type="image/png")


@app.get("/sessions/{session_id}/export")
async def export(session_id: str):
    """Download the flattened drawing + linework as a PNG attachment"""
    session = get_session(session_id)
    try:
        artifact = session.export()
    except ReferenceNotReadyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return Response(
        content=artifact.data,
        media_type=artifact.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    """End a session and release its buffers"""
    session = get_session(session_id)
    session.close()
    del SESSIONS[session_id]
    logger.info(f"Session {session_id} closed")
    return {"closed": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
