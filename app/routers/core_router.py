from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["Core"])

ROOT_PAGE = (
    "<h1>Welcome to the Axum Core API</h1><h2>Available routes:</h2>"
    "<p>/ - this route, the root</p><p>/health_check - current API status</p>"
)
HEALTH_PAGE = "<h1>Welcome to the Axum Core API</h1><h2>Status:</h2><p>Alive, 200 OK</p>"
NOT_FOUND_PAGE = "<h1>Nothing here by that name...yet.</h1>"


@router.get("/", response_class=HTMLResponse)
async def root():
    return HTMLResponse(ROOT_PAGE, status_code=200)


@router.get("/health_check", response_class=HTMLResponse)
async def health_check():
    """Current API status"""
    return HTMLResponse(HEALTH_PAGE, status_code=200)


@router.get("/not_found", response_class=HTMLResponse)
async def not_found():
    return HTMLResponse(NOT_FOUND_PAGE, status_code=404)


async def not_found_fallback(request: Request, exc: Exception) -> HTMLResponse:
    """Serve the not-found page for any path without a route"""
    return HTMLResponse(NOT_FOUND_PAGE, status_code=404)
