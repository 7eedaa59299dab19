"""
Presentation surface the renderer draws into.

``Element`` is a small DOM-like node; ``RenderContainer`` is the mountable
surface a host owns. Both serialize to HTML with escaped text and attributes.
Buttons carry an ``on_activate`` callable in place of a click handler.
"""

from __future__ import annotations

import html
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Callable

VOID_TAGS = frozenset({"img", "meta", "br", "hr", "input", "link"})


@dataclass
class Element:
    """A node in the rendered presentation tree."""

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str | None = None
    children: list["Element"] = field(default_factory=list)
    on_activate: Callable[[], Any] | None = field(default=None, repr=False)

    def append(self, child: "Element") -> "Element":
        self.children.append(child)
        return child

    def activate(self) -> Any:
        """Invoke the element's action, like clicking a button."""
        if self.on_activate is None:
            raise ValueError(f"<{self.tag}> has no action")
        return self.on_activate()

    def iter(self) -> Iterator["Element"]:
        yield self
        for child in self.children:
            yield from child.iter()

    def text_content(self) -> str:
        parts = [self.text or ""]
        parts.extend(child.text_content() for child in self.children)
        return "".join(parts)

    def to_html(self) -> str:
        attrs = "".join(
            f' {name}="{html.escape(str(value), quote=True)}"'
            for name, value in self.attributes.items()
        )
        if self.tag in VOID_TAGS:
            return f"<{self.tag}{attrs}>"
        inner = html.escape(self.text) if self.text else ""
        inner += "".join(child.to_html() for child in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"


class RenderContainer:
    """Mountable surface holding one rendered subtree per render call."""

    def __init__(self, container_id: str = "output") -> None:
        self.container_id = container_id
        self.children: list[Element] = []

    def clear(self) -> None:
        self.children.clear()

    def append(self, element: Element) -> Element:
        self.children.append(element)
        return element

    def iter(self) -> Iterator[Element]:
        for child in self.children:
            yield from child.iter()

    def find(self, tag: str | None = None, **attributes: str) -> Element | None:
        """
        First element matching *tag* and *attributes*.

        Attribute names use underscores for dashes (``data_action`` matches
        ``data-action``) and may carry a trailing underscore (``class_``).
        """
        wanted = {name.rstrip("_").replace("_", "-"): value for name, value in attributes.items()}
        for element in self.iter():
            if tag is not None and element.tag != tag:
                continue
            if all(element.attributes.get(k) == v for k, v in wanted.items()):
                return element
        return None

    def text_content(self) -> str:
        return "".join(child.text_content() for child in self.children)

    def to_html(self) -> str:
        body = "".join(child.to_html() for child in self.children)
        return f'<div id="{html.escape(self.container_id)}">{body}</div>'
