"""
Standalone host page for a rendered result.

The page shows status, elapsed time, the generated code, the console log and
the rendered container. Templates are autoescaped; only the container's
own serialization is inserted as markup.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Environment
from markupsafe import Markup

from .surface import RenderContainer

if TYPE_CHECKING:
    from ..console import ConsoleLog

PAGE_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{{ title }}</title>
<style>
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0 auto; max-width: 1100px; padding: 24px; color: #212529; }
.status { padding: 8px 12px; border-radius: 6px; background: #e9ecef; }
.status.success { background: #d1e7dd; }
.status.error { background: #f8d7da; }
.status.warning { background: #fff3cd; }
.placeholder { text-align: center; color: #6c757d; padding: 40px; }
.placeholder-icon { font-size: 40px; }
.sandboxed-iframe { width: 100%; min-height: 480px; border: 1px solid #dee2e6; border-radius: 8px; }
.rendered-plot { max-width: 100%; height: auto; border: 1px solid #ddd; border-radius: 8px; }
.plot-controls { margin-top: 10px; display: flex; gap: 10px; flex-wrap: wrap; }
pre { background: #f8f9fa; padding: 12px; border-radius: 6px; overflow-x: auto; }
.log-error { color: #b02a37; }
.log-success { color: #146c43; }
.log-debug { color: #6c757d; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
{% if prompt %}<p class="prompt">{{ prompt }}</p>{% endif %}
<p class="status {{ status_level }}">{{ status }}</p>
{% if elapsed_ms is not none %}<p class="execution-time">⏱️ {{ "%.1f"|format(elapsed_ms) }} ms</p>{% endif %}
<section id="result-tab">
{{ output }}
</section>
{% if code %}
<section id="code-tab">
<h2>Generated code</h2>
<pre id="generated-code">{{ code }}</pre>
</section>
{% endif %}
{% if entries %}
<section id="console-tab">
<h2>Console</h2>
<pre id="console-output">{% for entry in entries %}<span class="log-{{ entry.level.value }}">{{ entry.format() }}</span>
{% endfor %}</pre>
</section>
{% endif %}
</body>
</html>
"""

_environment = Environment(autoescape=True)


def render_page(
    container: RenderContainer,
    *,
    title: str = "CodeCanvas",
    prompt: str = "",
    status: str = "",
    status_level: str = "info",
    elapsed_ms: float | None = None,
    code: str = "",
    console_log: ConsoleLog | None = None,
) -> str:
    """Return the host page as an HTML string."""
    template = _environment.from_string(PAGE_TEMPLATE)
    return template.render(
        title=title,
        prompt=prompt,
        status=status,
        status_level=status_level,
        elapsed_ms=elapsed_ms,
        code=code,
        entries=console_log.entries if console_log is not None else [],
        output=Markup(container.to_html()),
    )


def write_page(path: str | Path, container: RenderContainer, **kwargs) -> Path:
    """Write the host page to *path* and return it."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_page(container, **kwargs), encoding="utf-8")
    return target
