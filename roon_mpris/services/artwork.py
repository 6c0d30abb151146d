import asyncio
import logging
import re
from pathlib import Path

from roon_mpris.sync.errors import ArtworkFetchFailed
from roon_mpris.sync.interfaces import ImageFetcher

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def artwork_filename(image_key: str, content_type: str) -> str:
    """Filesystem-safe name for an image key, with an extension for its type."""
    extension = ".png" if "png" in (content_type or "").lower() else ".jpg"
    return _UNSAFE.sub("_", image_key) + extension


class ArtworkCache:
    """Fetches Roon images once per key and keeps them as files for MPRIS art URLs."""

    def __init__(self, cache_dir: str | Path, fetcher: ImageFetcher | None = None) -> None:
        self.fetcher = fetcher
        self._paths: dict[str, Path] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._cache_dir = Path(cache_dir).expanduser().resolve()
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            self.enabled = True
        except OSError:
            logger.exception("Cannot create artwork cache directory %s, artwork disabled", self._cache_dir)
            self.enabled = False

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def __len__(self) -> int:
        return len(self._paths)

    def pending(self, image_key: str) -> bool:
        return image_key in self._pending

    async def resolve(self, image_key: str | None) -> str | None:
        """Return a ``file://`` URI for the image, fetching it if needed."""
        if not image_key or not self.enabled or self.fetcher is None:
            return None

        path = self._paths.get(image_key)
        if path is not None and path.exists():
            logger.debug("Artwork cache hit: %s", image_key)
            return path.as_uri()

        task = self._pending.get(image_key)
        if task is None:
            task = asyncio.create_task(self._fetch(image_key))
            self._pending[image_key] = task
            task.add_done_callback(lambda _, key=image_key: self._pending.pop(key, None))
        return await asyncio.shield(task)

    async def _fetch(self, image_key: str) -> str | None:
        fetcher = self.fetcher
        if fetcher is None:
            return None
        try:
            content_type, body = await fetcher.fetch(image_key)
            if not body:
                raise ArtworkFetchFailed(f"empty image for {image_key}")
            path = self._cache_dir / artwork_filename(image_key, content_type)
            await asyncio.to_thread(path.write_bytes, body)
        except ArtworkFetchFailed as exc:
            logger.warning("Artwork fetch failed for %s: %s", image_key, exc)
            return None
        except OSError as exc:
            logger.warning("Could not write artwork for %s: %s", image_key, exc)
            return None

        self._paths[image_key] = path
        logger.info("Cached artwork %s (%d items in cache)", path.name, len(self._paths))
        return path.as_uri()
