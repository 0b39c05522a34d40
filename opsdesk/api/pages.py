"""
Page routes.

Serves the built UI (``public/``) behind a session check. Protected pages
redirect to the sign-in page instead of answering 401, and /admin pages
send non-admins back to the board.
"""

from pathlib import Path
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse, Response

from opsdesk.dependencies import CurrentUserOptional

router = APIRouter()

# UI static files directory (built separately)
UI_DIR = Path(__file__).parent.parent.parent / "public"

SIGNIN_PATH = "/auth/signin"
PROTECTED_PREFIXES = (
    "/board",
    "/calendar",
    "/inbox",
    "/admin",
    "/texas-authors",
    "/magazine",
    "/sla",
)
ADMIN_PREFIXES = ("/admin",)

PLACEHOLDER_HTML = """<!doctype html>
<html lang="en">
<head><meta charset="utf-8"><title>Ops Desk</title></head>
<body><main id="app" data-path="{path}"></main></body>
</html>
"""


def matches_prefix(path: str, prefixes: tuple[str, ...]) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def signin_redirect(path: str) -> RedirectResponse:
    return RedirectResponse(f"{SIGNIN_PATH}?callbackUrl={quote(path, safe='/')}", status_code=307)


def _static_file(path: str) -> Path | None:
    """Resolve a request path inside UI_DIR (Astro-style: exact file, then .html)."""
    if not UI_DIR.is_dir():
        return None
    root = UI_DIR.resolve()
    relative = path.strip("/")
    candidates = [root / relative, root / f"{relative}.html", root / relative / "index.html"]
    for candidate in candidates:
        resolved = candidate.resolve()
        if resolved.is_relative_to(root) and resolved.is_file():
            return resolved
    return None


def ui_response(path: str) -> Response:
    file_path = _static_file(path)
    if file_path is not None:
        return FileResponse(file_path)
    index = UI_DIR / "index.html"
    if index.is_file():
        return FileResponse(index)
    return HTMLResponse(PLACEHOLDER_HTML.format(path=quote(path, safe="/")))


@router.get("/{path:path}", include_in_schema=False)
async def serve_page(request: Request, path: str, user: CurrentUserOptional) -> Response:
    """Serve UI pages, applying the sign-in and admin guards."""
    page = "/" + path.lstrip("/")

    if matches_prefix(page, ("/api",)):
        return JSONResponse(status_code=404, content={"error": "Not found"})

    if matches_prefix(page, PROTECTED_PREFIXES):
        if user is None:
            return signin_redirect(page)
        if matches_prefix(page, ADMIN_PREFIXES) and not user.is_admin:
            return RedirectResponse("/", status_code=307)

    return ui_response(page)
