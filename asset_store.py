"""Uploaded images on local disk.

The listing is recomputed from the directory on every call; there is no
separate index to keep in sync with the files.
"""

import logging
import os
import random
import time
from dataclasses import asdict, dataclass

from werkzeug.utils import secure_filename

from errors import ListError, NoFileError, UnsupportedFileError, UploadError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}


def is_image_name(filename: str, extensions=IMAGE_EXTENSIONS) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in extensions


@dataclass(frozen=True)
class Asset:
    url: str
    filename: str

    def to_dict(self):
        return asdict(self)


class AssetStore:
    def __init__(self, upload_dir, url_prefix="/uploads/", extensions=IMAGE_EXTENSIONS):
        self.upload_dir = os.path.abspath(upload_dir)
        self.url_prefix = url_prefix
        self.extensions = {e.lower() for e in extensions}

    def ensure_storage(self):
        os.makedirs(self.upload_dir, exist_ok=True)

    def unique_filename(self, original_name: str) -> str:
        name = secure_filename(original_name or "")
        token = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{token}-{name}"

    def url_for(self, filename: str) -> str:
        return self.url_prefix + filename

    def upload(self, data, original_name) -> Asset:
        """Write ``data`` under a fresh unique name and return the new asset."""
        if not data:
            raise NoFileError()
        if not is_image_name(secure_filename(original_name or ""), self.extensions):
            raise UnsupportedFileError()

        filename = self.unique_filename(original_name)
        path = os.path.join(self.upload_dir, filename)
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Failed to write upload %s: %s", path, e)
            raise UploadError(details=str(e)) from e

        logger.info("Stored upload %s (%d bytes)", filename, len(data))
        return Asset(url=self.url_for(filename), filename=filename)

    def list_images(self):
        try:
            with os.scandir(self.upload_dir) as entries:
                names = [e.name for e in entries if e.is_file()]
        except OSError as e:
            logger.error("Failed to read uploads directory %s: %s", self.upload_dir, e)
            raise ListError(details=str(e)) from e

        return [
            Asset(url=self.url_for(name), filename=name)
            for name in names
            if is_image_name(name, self.extensions)
        ]
