"""Lesson pages — the browser view of one lesson, refreshed on every row change.

The page shell renders a loading skeleton and a small script. The script loads
the status-keyed view fragment, then listens on the lesson's change stream and
loads the fragment again on each notification. Nothing here writes to the store.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

import markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from lessongen.dependencies import get_store
from lessongen.models.lesson import LessonStatus
from lessongen.services.lesson_store import LessonStore, LessonStoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
UNSAFE_URL_SCHEMES = ("javascript:", "vbscript:", "data:")


class _DropUnsafeUrls(Treeprocessor):
    def run(self, root):
        for element in root.iter():
            for attr in ("href", "src"):
                value = element.get(attr)
                if value and value.strip().lower().startswith(UNSAFE_URL_SCHEMES):
                    del element.attrib[attr]


class EscapeHtml(Extension):
    """Show raw HTML in lesson markdown as text and drop script-bearing link targets.

    Lesson content comes straight from the model and is inserted into the page.
    """

    def extendMarkdown(self, md):
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")
        md.treeprocessors.register(_DropUnsafeUrls(md), "drop_unsafe_urls", 0)


MARKDOWN_EXTENSIONS = [
    "abbr", "def_list", "fenced_code", "footnotes", "tables", "sane_lists",
    EscapeHtml(),
]


def render_markdown(text: str) -> Markup:
    return Markup(markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS))


def time_ago(value: datetime | None, now: datetime | None = None) -> str:
    """Human relative time, e.g. "5 minutes ago"."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - value).total_seconds()))
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "less than a minute ago"


def _get_jinja_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "j2"]),
    )
    env.filters["markdown"] = render_markdown
    env.filters["time_ago"] = time_ago
    return env


_env = _get_jinja_env()


def select_view(lesson: dict | None) -> str:
    """Pick the view for a lesson row.

    not_found | generating | error | generated | empty
    """
    if not lesson:
        return "not_found"
    status = lesson.get("status")
    if status == LessonStatus.ERROR:
        return "error"
    if status == LessonStatus.GENERATED:
        return "generated" if lesson.get("content") else "empty"
    return "generating"


def render_view(lesson: dict | None, load_error: str | None = None) -> str:
    view = "load_error" if load_error else select_view(lesson)
    template = _env.get_template("lesson_view.html.j2")
    return template.render(view=view, lesson=lesson or {}, load_error=load_error)


def render_page(lesson_id: str) -> str:
    template = _env.get_template("lesson_page.html.j2")
    return template.render(lesson_id=lesson_id)


@router.get("/", response_class=HTMLResponse)
def index(store: LessonStore = Depends(get_store)):
    """Outline form and the most recent lessons."""
    template = _env.get_template("index.html.j2")
    return HTMLResponse(template.render(lessons=store.list_recent(limit=20)))


@router.get("/lessons/{lesson_id}", response_class=HTMLResponse)
def lesson_page(lesson_id: str):
    return HTMLResponse(render_page(lesson_id))


@router.get("/lessons/{lesson_id}/view", response_class=HTMLResponse)
def lesson_view(lesson_id: str, store: LessonStore = Depends(get_store)):
    """Status-keyed fragment for one lesson, re-fetched on each change."""
    try:
        lesson = store.get(lesson_id)
    except LessonStoreError as e:
        logger.error("Error fetching lesson %s: %s", lesson_id, e)
        return HTMLResponse(render_view(None, load_error="Failed to load lesson"), status_code=500)
    if lesson is None:
        return HTMLResponse(render_view(None), status_code=404)
    return HTMLResponse(render_view(lesson))
