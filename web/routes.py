"""
web/routes.py -- Jinja2 route for the DatingApp single-page front-end.

The page is a static shell; its script calls GET /api/users from the browser
and renders the usernames. No server-side data is passed to the template
beyond the title, so the page works the same when served by a separate
front-end dev server on localhost:4200 (hence the CORS origins in Settings).

Routes:
  GET /  -- the SPA shell
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

logger = logging.getLogger("datingapp.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "index.html", {"title": "Dating App", "users_url": "/api/users"})
