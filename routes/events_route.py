"""Observer-facing routes: the push stream and the prompt page."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse, StreamingResponse

from controllers.prompt_controller import get_broker, observer_events

PUBLIC_DIR = Path(__file__).resolve().parent.parent / "public"

CONTENT_SECURITY_POLICY = (
	"default-src 'self'; style-src 'self' 'unsafe-inline'; "
	"script-src 'self' 'unsafe-inline'; connect-src 'self';"
)

router = APIRouter()


@router.get("/events")
async def events_stream(request: Request):
	"""Stream prompt and close notifications to one observer."""
	broker = get_broker(request)
	headers = {
		"Cache-Control": "no-cache",
		"Connection": "keep-alive",
		"Access-Control-Allow-Origin": "*",
		"X-Accel-Buffering": "no",
	}
	return StreamingResponse(observer_events(request, broker), media_type="text/event-stream", headers=headers)


@router.get("/vibeframe", include_in_schema=False)
async def vibeframe_page():
	"""Serve the page observers use to read prompts and answer them."""
	page = PUBLIC_DIR / "vibeframe.html"
	if not page.exists():
		raise HTTPException(status_code=404, detail="Prompt page not found")
	return FileResponse(page, media_type="text/html", headers={"Content-Security-Policy": CONTENT_SECURITY_POLICY})
