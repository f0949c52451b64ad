"""The "Create New Blog" form: fields, header image, save."""

import asyncio
import logging

from editor import EditorComposition
from errors import BlogError
from image_flow import NewFile

logger = logging.getLogger(__name__)


class LocalBlogClient:
    """Runs the stores in-process, off the event loop."""

    def __init__(self, posts, assets):
        self.posts = posts
        self.assets = assets

    async def create_post(self, payload):
        return await asyncio.to_thread(self.posts.append, payload)

    async def upload(self, file):
        data = file.read()
        asset = await asyncio.to_thread(self.assets.upload, data, file.filename)
        return asset.url

    async def list_images(self):
        return await asyncio.to_thread(self.assets.list_images)


class BlogForm:
    def __init__(self, client, header_flow, alert):
        self.client = client
        self.header_flow = header_flow
        self.alert = alert
        self.editor = None
        self.saving = False
        self.reset()

    def reset(self):
        self.title = ""
        self.subtitle = ""
        self.header_image = ""
        self.content = ""
        if self.editor is not None:
            self.editor.set_content("")

    def attach_editor(self, widget, flow):
        self.editor = EditorComposition(
            widget, flow, self.client.upload, self.update_content, notify=self.alert
        )
        return self.editor

    def update_content(self, content):
        self.content = content

    def choose_header_image(self):
        self.header_flow.open(self._apply_header_image)

    def clear_header_image(self):
        self.header_image = ""

    async def _apply_header_image(self, selection):
        if isinstance(selection, NewFile):
            try:
                url = await self.client.upload(selection.file)
            except BlogError as e:
                logger.error("Failed to upload image: %s", e)
                self.alert("Failed to upload image")
                return
        else:
            url = selection.url
        self.header_image = url

    def payload(self):
        return {
            "title": self.title,
            "subtitle": self.subtitle or "",
            "headerImage": self.header_image or "",
            "content": self.content,
        }

    async def save(self):
        """Save the post. Input is kept on any failure so the user can retry."""
        if not self.title.strip():
            self.alert("Please enter a title")
            return None
        if not self.content.strip():
            self.alert("Please add some content")
            return None

        self.saving = True
        try:
            post = await self.client.create_post(self.payload())
        except BlogError as e:
            logger.error("Failed to save blog: %s", e)
            self.alert(e.message)
            return None
        finally:
            self.saving = False

        self.alert("Blog saved successfully!")
        self.reset()
        return post
