"""Static HTML report of correlated matches, rendered with Jinja2."""

from __future__ import annotations

import base64
from pathlib import Path

from jinja2 import BaseLoader, Environment

from asmlens.config.defaults import DEFAULT_TEXT_SIZE
from asmlens.errors import InputError
from asmlens.extraction.binary_artifact import Output

_env = Environment(loader=BaseLoader(), autoescape=True, trim_blocks=True, lstrip_blocks=True)

_FONT_FORMATS = {
    ".ttf": "truetype",
    ".otf": "opentype",
    ".woff": "woff",
    ".woff2": "woff2",
}

REPORT = _env.from_string(
    """\
<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
{% if font %}
@font-face { font-family: "asmlens-user"; src: url(data:font/{{ font.format }};base64,{{ font.data }}) format("{{ font.format }}"); }
{% endif %}
body { font-family: {% if font %}"asmlens-user", {% endif %}monospace; font-size: {{ text_size }}pt; margin: 0; }
nav { position: fixed; top: 0; bottom: 0; left: 0; width: 16em; overflow: auto; background: #f0f0f0; border-right: 1px solid #808080; }
nav a { display: block; padding: 2px 6px; color: inherit; text-decoration: none; }
nav a:hover { background: #a0a0e0; }
main { margin-left: 17em; padding: 0 1em; }
table.match { border-collapse: collapse; width: 100%; }
table.match td { vertical-align: top; border-top: 1px solid #ddd; padding: 2px 6px; white-space: pre; }
.addr, .lineno, .unknown { color: #888; }
.current { font-weight: bold; background: #eef; }
.raw { color: #b00; }
.jump { color: #a0a; }
</style>
</head>
<body>
<nav>
{% for match in output.matches %}
<a href="#m{{ loop.index0 }}">{{ match.name }}</a>
{% endfor %}
{% if output.more %}<p>&hellip; more symbols match</p>{% endif %}
</nav>
<main>
<h1>{{ title }}</h1>
{% for err in output.errors %}
<p class="unknown">skipped {{ err.name }}: {{ err.error }}</p>
{% endfor %}
{% if not output.matches %}
<h2>no matches</h2>
{% endif %}
{% for match in output.matches %}
{% set mi = loop.index0 %}
<section id="m{{ mi }}">
<h2>{{ match.name }} <span class="addr">0x{{ "%x" | format(match.address) }}, {{ match.size }} bytes</span></h2>
<table class="match">
{% for block in match.blocks %}
{% set bi = loop.index0 %}
{% set window = match.windows[bi] %}
<tr id="m{{ mi }}b{{ bi }}">
<td>{% for insn in block.instructions %}<span class="addr">0x{{ "%x" | format(insn.address) }}</span>  <span class="{{ 'raw' if insn.is_raw else '' }}">{{ insn.text }}</span>{% set dest = match.jump_target(bi, insn.target) if insn.target is not none else none %}{% if dest is not none %} <span class="jump">&rarr; #{{ dest }}</span>{% endif %}
{% endfor %}</td>
<td>{% if block.line is none %}<span class="unknown">unknown location</span>{% elif window is none %}<span class="unknown">{{ block.file }}:{{ block.line }} (source unavailable)</span>{% else %}{% for number, text in window.numbered() %}<span class="{{ 'current' if number == block.line else '' }}"><span class="lineno">{{ "%4d" | format(number) }}</span> {{ text }}</span>
{% endfor %}{% endif %}</td>
</tr>
{% endfor %}
</table>
</section>
{% endfor %}
</main>
</body>
</html>
"""
)


def _font_face(path: str | Path) -> dict[str, str]:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise InputError(f"failed to read font {path}: {exc}") from exc
    return {
        "format": _FONT_FORMATS.get(path.suffix.lower(), "truetype"),
        "data": base64.b64encode(data).decode("ascii"),
    }


def render_html(
    output: Output,
    title: str = "asmlens",
    text_size: int = DEFAULT_TEXT_SIZE,
    font: str | Path | None = None,
) -> str:
    """Render ``output`` as a self-contained HTML page.

    ``font`` is embedded so the page does not depend on the viewer's fonts.
    """
    return REPORT.render(
        output=output,
        title=title,
        text_size=text_size,
        font=_font_face(font) if font else None,
    )
