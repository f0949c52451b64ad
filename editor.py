"""Glue between a rich-text widget, the owning form and the image dialog."""

import logging
from typing import Callable, Protocol

from errors import BlogError
from image_flow import FlowStateError, ImageSelectionFlow, NewFile

logger = logging.getLogger(__name__)


class RichTextWidget(Protocol):
    """What the editor needs from a rich-text widget (Quill in the browser)."""

    def html(self) -> str: ...

    def set_html(self, markup: str) -> None: ...

    def on_text_change(self, callback: Callable[[], None]) -> None: ...

    def register_image_handler(self, callback: Callable[[], None]) -> None: ...

    def selection_index(self) -> int: ...

    def insert_image(self, index: int, url: str) -> None: ...


class EditorComposition:
    """Keeps the form's content in sync with the widget and routes image
    insertion through the image dialog.

    ``upload`` is an async callable turning a staged file into a public URL;
    it raises a BlogError when the upload fails.
    """

    def __init__(self, widget: RichTextWidget, flow: ImageSelectionFlow, upload, on_change, notify=None):
        self.widget = widget
        self.flow = flow
        self._upload = upload
        self._on_change = on_change
        self._notify = notify

        widget.on_text_change(self._forward_change)
        widget.register_image_handler(self.open_image_dialog)

    def _forward_change(self):
        self._on_change(self.widget.html())

    def set_content(self, markup: str) -> bool:
        """Push external content into the widget unless it already shows it."""
        if self.widget.html() == markup:
            return False
        self.widget.set_html(markup)
        return True

    def open_image_dialog(self):
        try:
            self.flow.open(self.insert_selection)
        except FlowStateError:
            logger.debug("Image dialog already open")

    async def insert_selection(self, selection):
        if isinstance(selection, NewFile):
            try:
                url = await self._upload(selection.file)
            except BlogError as e:
                logger.error("Image upload failed: %s", e)
                if self._notify is not None:
                    self._notify("Failed to upload image")
                return None
        else:
            url = selection.url

        index = self.widget.selection_index()
        self.widget.insert_image(index, url)
        return url
