"""
Minimal document scaffold for markup fragments.
"""

FRAGMENT_STYLESHEET = """\
body { margin: 0; padding: 20px; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: #f8f9fa; }
.generated-table { width: 100%; border-collapse: collapse; margin: 10px 0; background: white; }
.generated-table th, .generated-table td { border: 1px solid #ddd; padding: 8px; text-align: left; }
.generated-table th { background: #f2f2f2; font-weight: bold; }
.generated-table tr:nth-child(even) { background: #f9f9f9; }
.generated-table tr:hover { background: #e9ecef; }
button, input, select { font-family: inherit; }
* { box-sizing: border-box; }
"""

_HEAD = (
    "<!DOCTYPE html>\n"
    "<html>\n"
    "<head>\n"
    '<meta charset="UTF-8">\n'
    '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
    "<style>\n"
    f"{FRAGMENT_STYLESHEET}"
    "</style>\n"
    "</head>\n"
    "<body>"
)

_TAIL = "</body>\n</html>\n"


def wrap_fragment(fragment: str) -> str:
    """Embed *fragment* unchanged in a full document."""
    return f"{_HEAD}{fragment}{_TAIL}"
