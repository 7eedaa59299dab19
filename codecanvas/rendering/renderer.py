"""
Rendering of tagged execution results into an isolated presentation surface.
"""

from __future__ import annotations

import logging
import time
import webbrowser
from pathlib import Path
from typing import Any, Callable

from ..classifier import split_image_payload
from ..core.config import RenderConfig
from ..core.exceptions import RenderError
from ..results import ExecutionResult, ResultKind
from .artifacts import ArtifactReference, ArtifactStore, BinaryArtifact
from .scaffold import wrap_fragment
from .surface import Element, RenderContainer

logger = logging.getLogger(__name__)

# Capabilities granted to rendered markup. Same-origin and top-level
# navigation are deliberately absent.
SANDBOX_ALLOW_LIST = ("allow-scripts", "allow-forms", "allow-popups", "allow-modals")

PLACEHOLDER_ICON = "💻"
PLACEHOLDER_MESSAGE = "The result will appear here"


class PlotExports:
    """Export actions for one rendered plot.

    Every action decodes the payload again, so no action depends on the
    reference used for display.
    """

    def __init__(
        self,
        payload: str,
        media_type: str,
        store: ArtifactStore,
        grace_seconds: float = 2.0,
        download_prefix: str = "codecanvas-plot",
        clipboard: Callable[[str], Any] | None = None,
        opener: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self._payload = payload
        self._media_type = media_type
        self._store = store
        self._grace_seconds = grace_seconds
        self._download_prefix = download_prefix
        self._clipboard = clipboard
        self._opener = opener

    def decode(self) -> BinaryArtifact:
        return BinaryArtifact.from_base64(self._payload, self._media_type)

    def download(self, directory: str | Path = ".") -> Path:
        """Save the image as ``<prefix>-<epoch ms><ext>`` in *directory*."""
        artifact = self.decode()
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{self._download_prefix}-{int(time.time() * 1000)}{artifact.extension}"
        target.write_bytes(artifact.data)
        logger.info(f"Plot saved to {target}")
        return target

    def copy_reference(self) -> str:
        """Publish a short-lived reference and hand it to the host clipboard."""
        reference = self._store.publish(self.decode(), ttl=self._grace_seconds)
        if self._clipboard is not None:
            self._clipboard(reference.uri)
        return reference.uri

    def open_external(self) -> str:
        """Publish a short-lived reference and open it outside the host."""
        reference = self._store.publish(self.decode(), ttl=self._grace_seconds)
        self._opener(reference.uri)
        return reference.uri


class SandboxRenderer:
    """Renders ``ExecutionResult`` values into a ``RenderContainer``."""

    def __init__(
        self,
        store: ArtifactStore | None = None,
        config: RenderConfig | None = None,
        clipboard: Callable[[str], Any] | None = None,
        opener: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self.config = config or RenderConfig()
        self.store = store or ArtifactStore(self.config.artifact_dir)
        self.clipboard = clipboard
        self.opener = opener
        self.current_plot: ArtifactReference | None = None
        self.exports: PlotExports | None = None
        self._handlers: dict[ResultKind, Callable[[RenderContainer, ExecutionResult], None]] = {
            ResultKind.PLOT: self._render_plot,
            ResultKind.MARKUP: self._render_markup,
            ResultKind.STRUCTURED: self._render_structured,
            ResultKind.TEXT: self._render_text,
            ResultKind.EMPTY: self._render_empty,
            ResultKind.ERROR: self._render_error_result,
        }

    # ── Public API ────────────────────────────────────────────────────

    def render(self, container: RenderContainer, result: ExecutionResult | None) -> ExecutionResult:
        """
        Clear *container* and render *result* into it.

        Never raises: malformed results and rendering failures become an
        error placeholder.

        Returns:
            The result actually shown, an ``error`` result on failure.
        """
        self.reset(container)

        try:
            if not isinstance(result, ExecutionResult) or result.kind not in self._handlers:
                raise RenderError("Invalid result format")
            self._handlers[result.kind](container, result)
            return result
        except Exception as e:
            logger.error(f"Render error: {e}")
            self.reset(container)
            message = str(e) or type(e).__name__
            self.render_error(container, f"Render failed: {message}")
            return ExecutionResult.error(message)

    def reset(self, container: RenderContainer) -> None:
        """Clear *container* and release the displayed plot reference."""
        container.clear()
        self.store.release(self.current_plot)
        self.current_plot = None
        self.exports = None
        self.store.sweep()

    def render_placeholder(
        self,
        container: RenderContainer,
        icon: str,
        message: str,
        css_class: str = "placeholder",
    ) -> Element:
        placeholder = Element("div", {"class": css_class})
        placeholder.append(Element("div", {"class": "placeholder-icon"}, text=icon))
        placeholder.append(Element("p", text=message))
        return container.append(placeholder)

    def render_error(self, container: RenderContainer, message: str) -> Element:
        return self.render_placeholder(container, "❌", f"Error: {message}", "placeholder error")

    def show_waiting(self, container: RenderContainer) -> None:
        """Reset *container* to the idle "result will appear here" state."""
        self.reset(container)
        self.render_placeholder(container, PLACEHOLDER_ICON, PLACEHOLDER_MESSAGE)

    def close(self) -> None:
        """Release every artifact reference held by this renderer."""
        self.current_plot = None
        self.exports = None
        self.store.cleanup()

    # ── Kinds ─────────────────────────────────────────────────────────

    def _render_plot(self, container: RenderContainer, result: ExecutionResult) -> None:
        parts = split_image_payload(result.content)
        if parts is None:
            raise RenderError("Plot result has no image payload")
        media_type, payload = parts

        artifact = BinaryArtifact.from_base64(payload, media_type)
        reference = self.store.publish(artifact)
        self.current_plot = reference
        self.exports = PlotExports(
            payload,
            media_type,
            self.store,
            grace_seconds=self.config.export_grace_seconds,
            download_prefix=self.config.download_prefix,
            clipboard=self.clipboard,
            opener=self.opener,
        )

        wrapper = Element("div", {"class": "plot-wrapper"})
        wrapper.append(
            Element("img", {"class": "rendered-plot", "src": reference.uri, "alt": "Generated plot"})
        )
        controls = wrapper.append(Element("div", {"class": "plot-controls"}))
        exports = self.exports
        controls.append(
            Element(
                "button",
                {"class": "download-btn", "data-action": "download"},
                text="💾 Download PNG",
                on_activate=exports.download,
            )
        )
        controls.append(
            Element(
                "button",
                {"class": "download-btn", "data-action": "copy"},
                text="📋 Copy",
                on_activate=exports.copy_reference,
            )
        )
        controls.append(
            Element(
                "button",
                {"class": "download-btn", "data-action": "open"},
                text="🔍 Open in new tab",
                on_activate=exports.open_external,
            )
        )
        container.append(wrapper)

    def _render_markup(self, container: RenderContainer, result: ExecutionResult) -> None:
        document = result.content if result.is_full_document else wrap_fragment(result.content)
        container.append(
            Element(
                "iframe",
                {
                    "class": "sandboxed-iframe",
                    "sandbox": " ".join(SANDBOX_ALLOW_LIST),
                    "srcdoc": document,
                },
            )
        )

    def _render_structured(self, container: RenderContainer, result: ExecutionResult) -> None:
        container.append(Element("pre", {"class": "rendered-json"}, text=result.content))

    def _render_text(self, container: RenderContainer, result: ExecutionResult) -> None:
        container.append(Element("pre", {"class": "rendered-text"}, text=result.content))

    def _render_empty(self, container: RenderContainer, result: ExecutionResult) -> None:
        self.render_placeholder(container, "✅", result.content)

    def _render_error_result(self, container: RenderContainer, result: ExecutionResult) -> None:
        self.render_error(container, result.content)
