"""
Rendering exported specs to HTML, JSON and Markdown.

HTML goes through the Jinja2 template in templates/specs.html.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from sdd.change.archive import PendingChange, list_pending_changes
from sdd.constitution.parser import CONSTITUTION_FILENAME
from sdd.export.parser import ExportSpec, load_export_specs
from sdd.lib.errors import ErrorCode, SddError
from sdd.lib.fsutil import read_text, today, write_text
from sdd.spec.keywords import KEYWORD_PATTERN, KEYWORD_STRENGTH

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
FORMATS = ("html", "json", "markdown", "pdf")
THEMES = ("light", "dark")
FORMAT_SUFFIX = {"html": "html", "json": "json", "markdown": "md", "pdf": "html"}

_INLINE_RULES = [
    (re.compile(r'\*\*(.+?)\*\*'), r'<strong>\1</strong>'),
    (re.compile(r'\*(.+?)\*'), r'<em>\1</em>'),
    (re.compile(r'`(.+?)`'), r'<code>\1</code>'),
    (re.compile(r'\[(.+?)\]\((.+?)\)'), r'<a href="\2">\1</a>'),
]
_STRENGTH_CLASS = {3: "high", 2: "medium", 1: "low"}


@dataclass
class ExportOptions:
    format: str = "html"
    output: Optional[Path] = None
    theme: str = "light"
    include_toc: bool = True
    include_constitution: bool = False
    include_changes: bool = False
    spec_ids: Optional[list[str]] = None


@dataclass
class ExportResult:
    format: str
    output_path: Path
    specs_exported: int
    size: int
    note: str = ""


def _inline(text) -> Markup:
    html = str(escape(text))
    for pattern, repl in _INLINE_RULES:
        html = pattern.sub(repl, html)
    return Markup(html)


def _keywords(text) -> Markup:
    def wrap(match: re.Match) -> str:
        strength = _STRENGTH_CLASS[KEYWORD_STRENGTH[match.group(1)]]
        return f'<span class="rfc rfc-{strength}">{match.group(1)}</span>'
    return Markup(KEYWORD_PATTERN.sub(wrap, str(text)))


def _anchor(spec_id: str) -> str:
    return re.sub(r'[^A-Za-z0-9_-]', '-', spec_id)


def create_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["inline"] = _inline
    env.filters["keywords"] = _keywords
    env.filters["anchor"] = _anchor
    return env


def render_html(
    specs: list[ExportSpec],
    theme: str = "light",
    include_toc: bool = True,
    title: Optional[str] = None,
    constitution: Optional[str] = None,
    changes: Optional[list[PendingChange]] = None,
) -> str:
    template = create_environment().get_template("specs.html")
    return template.render(
        title=title or (specs[0].title if len(specs) == 1 else "SDD Specifications"),
        theme=theme,
        include_toc=include_toc,
        specs=specs,
        constitution=constitution,
        changes=changes or [],
        generated=today(),
    )


def render_json(
    specs: list[ExportSpec],
    include_raw: bool = False,
    constitution: Optional[str] = None,
    changes: Optional[list[PendingChange]] = None,
) -> str:
    """A single spec renders as an object, several as a list."""
    data = [spec.to_dict(include_raw) for spec in specs]
    output = data[0] if len(data) == 1 else data
    if constitution is not None or changes:
        output = {"specs": data}
        if constitution is not None:
            output["constitution"] = constitution
        if changes:
            output["changes"] = [
                {"id": c.id, "title": c.title, "status": c.status, "created": c.created} for c in changes
            ]
    return json.dumps(output, indent=2, ensure_ascii=False, default=str)


def render_markdown(
    specs: list[ExportSpec],
    constitution: Optional[str] = None,
    changes: Optional[list[PendingChange]] = None,
) -> str:
    parts = []
    for spec in specs:
        body = spec.raw_content.strip()
        # Keep the document's own heading when it has one
        parts.append(f"{body}\n" if body.startswith("# ") else f"# {spec.title}\n\n{body}\n")
    if constitution:
        parts.append(constitution.strip() + "\n")
    if changes:
        lines = ["# Pending changes", ""]
        lines += [f"- `{c.id}` {c.title or ''} ({c.status})" for c in changes]
        parts.append("\n".join(lines) + "\n")
    return "\n---\n\n".join(parts)


def export_specs(sdd_dir: Path, options: ExportOptions) -> ExportResult:
    """
    Export specs to a file.

    PDF is not rendered directly: the HTML export is written instead and
    the result carries a note to print it from a browser.

    Raises:
        SddError: unknown format or theme, or nothing to export
    """
    if options.format not in FORMATS:
        raise SddError(f"Unsupported format: {options.format} (use {', '.join(FORMATS)})",
                       ErrorCode.INVALID_ARGUMENT)
    if options.theme not in THEMES:
        raise SddError(f"Unknown theme: {options.theme}", ErrorCode.INVALID_ARGUMENT)

    specs = load_export_specs(sdd_dir, options.spec_ids)
    if not specs:
        raise SddError("No specs to export", ErrorCode.INSUFFICIENT_DATA)

    constitution = None
    if options.include_constitution:
        path = sdd_dir / CONSTITUTION_FILENAME
        if path.exists():
            constitution = read_text(path)
        else:
            logger.warning(f"[export] no {CONSTITUTION_FILENAME} to include")
    changes = list_pending_changes(sdd_dir) if options.include_changes else None

    if options.format == "json":
        content = render_json(specs, constitution=constitution, changes=changes)
    elif options.format == "markdown":
        content = render_markdown(specs, constitution=constitution, changes=changes)
    else:
        content = render_html(specs, options.theme, options.include_toc,
                              constitution=constitution, changes=changes)

    output = options.output
    if output is None:
        base = options.spec_ids[0].replace("/", "-") if options.spec_ids and len(options.spec_ids) == 1 else "specs"
        output = sdd_dir.parent / f"{base}.{FORMAT_SUFFIX[options.format]}"
    elif options.format == "pdf":
        output = output.with_suffix(".html")

    write_text(output, content)
    note = ""
    if options.format == "pdf":
        note = f"PDF output is not supported. Open {output} in a browser and print it to PDF."
    logger.info(f"[export] wrote {len(specs)} spec(s) to {output}")
    return ExportResult(
        format="html" if options.format == "pdf" else options.format,
        output_path=output,
        specs_exported=len(specs),
        size=len(content.encode("utf-8")),
        note=note,
    )


def format_export_result(result: ExportResult) -> str:
    lines = [
        "=== SDD Export ===",
        "",
        f"Format: {result.format.upper()}",
        f"Specs:  {result.specs_exported}",
        f"Output: {result.output_path}",
        f"Size:   {result.size / 1024:.2f} KB",
    ]
    if result.note:
        lines += ["", f"Note: {result.note}"]
    return "\n".join(lines)
