import asyncio
import html
import logging
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from database.base import Record
from tracker_api.modes import Composition
from tracker_api.routers.health import build_health

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ui"])

ITEMS_ERROR = "Failed to load learning items"

STATUS_LABELS = {
    "todo": "To do",
    "progress": "In progress",
    "completed": "Completed",
}

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; max-width: 48rem; margin: 2rem auto; }}
.banner {{ padding: 0.5rem 1rem; margin-bottom: 1rem; border-radius: 4px; }}
.banner.healthy {{ background: #e6f4ea; }}
.banner.degraded {{ background: #fdecea; font-weight: bold; }}
.error {{ color: #b00020; }}
li.item {{ padding: 0.5rem; border: 1px solid #ddd; margin: 0.25rem 0; cursor: move; }}
li.item.resolved .title {{ text-decoration: line-through; }}
</style>
</head>
<body>
<h1>{title}</h1>
{banner}
<form id="create-form">
  <input name="title" placeholder="Title" required>
  <input name="description" placeholder="Description" required>
  <button type="submit">Add</button>
</form>
{items}
<script>
async function call(method, path, body) {{
  const response = await fetch(path, {{
    method: method,
    headers: {{"Content-Type": "application/json"}},
    body: body === undefined ? undefined : JSON.stringify(body),
  }});
  const payload = await response.json();
  if (!payload.success) {{ alert(payload.error); }}
  location.reload();
}}
document.getElementById("create-form").addEventListener("submit", (event) => {{
  event.preventDefault();
  const form = new FormData(event.target);
  call("POST", "/items", {{title: form.get("title"), description: form.get("description")}});
}});
let draggedId = null;
document.querySelectorAll("li.item").forEach((node) => {{
  node.addEventListener("dragstart", () => {{ draggedId = Number(node.dataset.id); }});
  node.addEventListener("dragover", (event) => event.preventDefault());
  node.addEventListener("drop", () => {{
    const targetId = Number(node.dataset.id);
    if (draggedId !== null && draggedId !== targetId) {{
      call("POST", "/items/reorder", {{draggedId: draggedId, targetId: targetId}});
    }}
  }});
}});
document.querySelectorAll("select.status").forEach((node) => {{
  node.addEventListener("change", () => call("POST", `/items/${{node.dataset.id}}/status`, {{status: node.value}}));
}});
document.querySelectorAll("button.toggle").forEach((node) => {{
  node.addEventListener("click", () => call("POST", `/items/${{node.dataset.id}}/${{node.dataset.action}}`));
}});
document.querySelectorAll("button.delete").forEach((node) => {{
  node.addEventListener("click", () => call("DELETE", `/items/${{node.dataset.id}}`));
}});
</script>
</body>
</html>
"""


async def fetch_health(request: Request) -> Dict[str, Any]:
    """Health of whatever serves the data: the peer in ui-proxy mode, this process otherwise."""
    composition: Composition = request.app.state.composition
    if composition.peer is not None:
        return await composition.peer.health()
    return build_health(request.app.state.settings, composition)


def render_banner(health: Any) -> str:
    if isinstance(health, BaseException) or not isinstance(health, dict):
        return '<div class="banner degraded">API status: degraded</div>'
    return (
        '<div class="banner healthy">'
        f"API status: {html.escape(str(health.get('status', 'unknown')))}"
        f" &middot; version {html.escape(str(health.get('version', 'unknown')))}"
        f" &middot; mode {html.escape(str(health.get('mode', 'unknown')))}"
        "</div>"
    )


def render_item(record: Record) -> str:
    item_id = int(record["id"])
    resolved = bool(record.get("resolved"))
    options = "".join(
        f'<option value="{value}"{" selected" if record.get("status") == value else ""}>{label}</option>'
        for value, label in STATUS_LABELS.items()
    )
    action = "unresolve" if resolved else "resolve"
    return (
        f'<li class="item{" resolved" if resolved else ""}" draggable="true" data-id="{item_id}">'
        f'<span class="title">{html.escape(str(record.get("title", "")))}</span>'
        f' &ndash; <span class="description">{html.escape(str(record.get("description", "")))}</span> '
        f'<select class="status" data-id="{item_id}">{options}</select> '
        f'<button class="toggle" data-id="{item_id}" data-action="{action}">{action.capitalize()}</button> '
        f'<button class="delete" data-id="{item_id}">Delete</button>'
        "</li>"
    )


def render_items(items: Any) -> str:
    if isinstance(items, BaseException) or not isinstance(items, list):
        return f'<p class="error">{ITEMS_ERROR}</p>'
    if not items:
        return '<p class="empty">No learning items yet.</p>'
    return '<ul id="items">' + "".join(render_item(record) for record in items) + "</ul>"


def render_page(title: str, items: Any, health: Any) -> str:
    return PAGE_TEMPLATE.format(
        title=html.escape(title),
        banner=render_banner(health),
        items=render_items(items),
    )


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Render the learning items page.

    Items and health are fetched concurrently. A failed health check degrades
    the banner; a failed item fetch replaces the list with an error message.
    """
    composition: Composition = request.app.state.composition
    items, health = await asyncio.gather(
        composition.items.list(),
        fetch_health(request),
        return_exceptions=True,
    )
    if isinstance(items, BaseException):
        logger.error(f"Failed to load learning items for the UI: {items}")
    if isinstance(health, BaseException):
        logger.warning(f"Health check failed while rendering the UI: {health}")
    return HTMLResponse(render_page(request.app.state.settings.app_name, items, health))
