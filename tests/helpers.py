"""Test doubles shared across the suite."""

import io

from werkzeug.datastructures import FileStorage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def make_file(name="photo.png", data=PNG_BYTES, content_type="image/png"):
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type=content_type)


class FakeWidget:
    """Stands in for the browser's Quill instance."""

    def __init__(self, markup="<p><br></p>"):
        self.markup = markup
        self.cursor = 0
        self.embeds = []
        self.set_calls = 0
        self._change_callbacks = []
        self.image_handler = None

    def html(self):
        return self.markup

    def set_html(self, markup):
        self.set_calls += 1
        self.markup = markup
        self.fire_change()

    def on_text_change(self, callback):
        self._change_callbacks.append(callback)

    def register_image_handler(self, callback):
        self.image_handler = callback

    def selection_index(self):
        return self.cursor

    def insert_image(self, index, url):
        self.embeds.append((index, url))
        self.markup += f'<p><img src="{url}"></p>'
        self.fire_change()

    def type(self, markup):
        self.markup = markup
        self.fire_change()

    def fire_change(self):
        for cb in self._change_callbacks:
            cb()
