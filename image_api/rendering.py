"""
PNG rendering and caching for number images.

:func:`render_number_png` draws a number centred on a transparent
canvas.  :class:`NumberImageCache` keeps the most recently used
renderings keyed by object name (``numbers-<n>.png``) and evicts the
least recently used one once ``max_entries`` is reached.
"""

from __future__ import annotations

import io
import logging
import threading
from collections import OrderedDict
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

TEXT_COLOR = (0, 0, 0, 255)
TRANSPARENT = (0, 0, 0, 0)


@lru_cache(maxsize=8)
def _font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size)


def render_number_png(number: int, width: int = 900, height: int = 200, font_size: int = 120) -> bytes:
    """
    Render *number* centred on a ``width`` x ``height`` transparent PNG.

    Returns:
        The encoded PNG bytes.
    """
    text = str(number)
    image = Image.new("RGBA", (width, height), TRANSPARENT)
    draw = ImageDraw.Draw(image)
    font = _font(font_size)

    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = (width - (right - left)) / 2 - left
    y = (height - (bottom - top)) / 2 - top
    draw.text((x, y), text, fill=TEXT_COLOR, font=font)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def object_name(number: int) -> str:
    return f"numbers-{number}.png"


class NumberImageCache:
    """
    Bounded LRU cache of rendered number images.

    Safe to share between the request threads of a threaded server.
    Rendering for one object name is serialised by a per-name lock, so
    concurrent misses for the same number render it once and the other
    requesters are served the cached result.  Render locks live in their
    own LRU map bounded by ``max_concurrency``.

    Attributes:
        max_entries: Maximum number of images kept.
        max_concurrency: Maximum number of per-name render locks kept.
        hits: Requests served from the cache.
        misses: Requests that had to render.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        *,
        max_concurrency: int = 10,
        width: int = 900,
        height: int = 200,
        font_size: int = 120,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.max_entries = max_entries
        self.max_concurrency = max_concurrency
        self.width = width
        self.height = height
        self.font_size = font_size
        self.hits = 0
        self.misses = 0
        self._entries: OrderedDict[str, bytes] = OrderedDict()
        self._render_locks: OrderedDict[str, threading.Lock] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, number: int) -> bool:
        return object_name(number) in self._entries

    def _cached(self, name: str) -> bytes | None:
        with self._lock:
            cached = self._entries.get(name)
            if cached is not None:
                self._entries.move_to_end(name)
                self.hits += 1
            return cached

    def _render_lock(self, name: str) -> threading.Lock:
        with self._lock:
            lock = self._render_locks.get(name)
            if lock is None:
                lock = self._render_locks[name] = threading.Lock()
            self._render_locks.move_to_end(name)
            while len(self._render_locks) > self.max_concurrency:
                self._render_locks.popitem(last=False)
            return lock

    def get_or_render(self, number: int) -> bytes:
        """Return the PNG for *number*, rendering and caching it on a miss."""
        name = object_name(number)
        cached = self._cached(name)
        if cached is not None:
            return cached

        with self._render_lock(name):
            # Another requester may have rendered it while we waited.
            cached = self._cached(name)
            if cached is not None:
                return cached

            png = render_number_png(number, self.width, self.height, self.font_size)

            with self._lock:
                self.misses += 1
                self._entries[name] = png
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Evicted %s from image cache", evicted)
        return png

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._render_locks.clear()
            self.hits = 0
            self.misses = 0
