"""The "select image" dialog as an explicit state machine.

One dialog serves both the header-image picker and in-editor image
insertion. Each open/close cycle yields at most one result: either a
``NewFile`` the caller still has to upload, or an ``ExistingAsset`` whose
URL can be used as is. Cancelling yields nothing.
"""

import enum
import inspect
import logging
import uuid
from dataclasses import dataclass

from werkzeug.datastructures import FileStorage

from asset_store import is_image_name
from errors import BlogError

logger = logging.getLogger(__name__)


class FlowState(enum.Enum):
    CLOSED = "closed"
    UPLOAD = "upload"
    EXISTING = "existing"


class FlowStateError(RuntimeError):
    pass


@dataclass(frozen=True)
class NewFile:
    file: FileStorage


@dataclass(frozen=True)
class ExistingAsset:
    url: str


class PreviewRegistry:
    """Local preview references for staged files, like browser object URLs."""

    def __init__(self):
        self._live = {}

    def create(self, file: FileStorage) -> str:
        ref = f"blob:{uuid.uuid4()}"
        self._live[ref] = file
        return ref

    def revoke(self, ref: str):
        self._live.pop(ref, None)

    def __contains__(self, ref):
        return ref in self._live

    def __len__(self):
        return len(self._live)


def looks_like_image(file: FileStorage) -> bool:
    if file.mimetype and file.mimetype.startswith("image/"):
        return True
    return bool(file.filename) and is_image_name(file.filename)


class ImageSelectionFlow:
    def __init__(self, list_images, previews=None):
        # list_images: async callable returning a list of Asset-like objects
        self._list_images = list_images
        self.previews = previews if previews is not None else PreviewRegistry()

        self.state = FlowState.CLOSED
        self.staged = None
        self.preview = None
        self.drag_active = False

        self.images = []
        self.loading = False
        self.last_error = None

        self._on_select = None
        self._cycle = 0
        self._pending = 0

    @property
    def is_open(self) -> bool:
        return self.state is not FlowState.CLOSED

    @property
    def can_confirm(self) -> bool:
        return self.state is FlowState.UPLOAD and self.staged is not None

    @property
    def existing_view(self) -> str:
        """What the existing-images tab shows: loading, error, empty or grid."""
        if self.loading:
            return "loading"
        if self.last_error is not None:
            return "error"
        return "grid" if self.images else "empty"

    def _require_open(self):
        if not self.is_open:
            raise FlowStateError("image selection is not open")

    def open(self, on_select):
        if self.is_open:
            raise FlowStateError("image selection is already open")
        self._on_select = on_select
        self.state = FlowState.UPLOAD

    async def select_tab(self, tab: FlowState):
        self._require_open()
        if tab is FlowState.CLOSED:
            raise FlowStateError("use cancel() to close the dialog")
        self.state = tab
        if tab is FlowState.EXISTING:
            await self.refresh_existing()

    async def refresh_existing(self):
        cycle = self._cycle
        self._pending += 1
        self.loading = True
        try:
            images = await self._list_images()
            error = None
        except BlogError as e:
            logger.error("Failed to fetch images: %s", e)
            images, error = [], e
        finally:
            if cycle == self._cycle:
                self._pending -= 1
                self.loading = self._pending > 0

        if cycle != self._cycle:
            # Dialog was closed (and maybe reopened) while this was in flight
            logger.debug("Discarding image listing from a closed dialog")
            return
        # Concurrent fetches race; whichever finishes last is shown
        self.images = list(images)
        self.last_error = error

    # Upload tab

    def _require_upload_tab(self):
        if self.state is not FlowState.UPLOAD:
            raise FlowStateError("files can only be staged on the upload tab")

    def drag_enter(self):
        self._require_upload_tab()
        self.drag_active = True

    def drag_leave(self):
        self.drag_active = False

    def drop(self, files) -> bool:
        """Stage the first dropped file if it is an image."""
        self._require_upload_tab()
        self.drag_active = False
        if not files or not looks_like_image(files[0]):
            return False
        self._stage(files[0])
        return True

    def pick(self, files) -> bool:
        """Stage the first file chosen in the file picker."""
        self._require_upload_tab()
        if not files:
            return False
        self._stage(files[0])
        return True

    def _stage(self, file):
        if self.preview is not None:
            self.previews.revoke(self.preview)
        self.staged = file
        self.preview = self.previews.create(file)

    # Results

    async def confirm(self):
        if not self.can_confirm:
            return None
        return await self._emit(NewFile(self.staged))

    async def choose_existing(self, url: str):
        if self.state is not FlowState.EXISTING:
            raise FlowStateError("existing images are not shown")
        return await self._emit(ExistingAsset(url))

    def cancel(self):
        self._close()

    async def _emit(self, result):
        on_select = self._on_select
        self._close()
        outcome = on_select(result)
        if inspect.isawaitable(outcome):
            await outcome
        return result

    def _close(self):
        if self.preview is not None:
            self.previews.revoke(self.preview)
        self.staged = None
        self.preview = None
        self.drag_active = False
        self.images = []
        self.loading = False
        self.last_error = None
        self._on_select = None
        self._pending = 0
        self._cycle += 1
        self.state = FlowState.CLOSED
