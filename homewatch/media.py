# homewatch/media.py
from __future__ import annotations
import asyncio, base64
from typing import List, Optional, Sequence

from homewatch.config import DEFAULT_DATE_TIME_FORMAT
from homewatch.errors import FileReadFailure
from homewatch.files import FileStore, MediaFile
from homewatch.logging import get_logger
from homewatch.schemas import EncodedMedia

log = get_logger("media")


def data_uri(payload: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64," + base64.b64encode(payload).decode("ascii")


class MediaRetriever:
    """
    Reads and base64-encodes a batch of files from one folder.

    At most `concurrency` reads are in flight (1 = strictly sequential, one file's
    raw and encoded bytes in memory at a time). Results land in an indexed slot,
    so the output order is the input order whatever the completion order.
    A failed read becomes EncodedMedia.sentinel(); it never aborts the batch.
    """

    def __init__(self, files: FileStore, *, concurrency: int = 1,
                 date_time_format: str = DEFAULT_DATE_TIME_FORMAT, mime_type: str = "image/png"):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.files = files
        self.concurrency = concurrency
        self.date_time_format = date_time_format
        self.mime_type = mime_type

    async def encode_one(self, folder: str, item: MediaFile) -> EncodedMedia:
        log.info(f"Loading: {item.file_name}")
        try:
            payload = await self.files.read(folder, item.file_name)
        except FileReadFailure as e:
            log.error(f"[media] {e}")
            return EncodedMedia.sentinel(self.mime_type)
        return EncodedMedia(
            title=item.mtime.strftime(self.date_time_format),
            image=data_uri(payload, self.mime_type),
        )

    async def retrieve(self, folder: str, items: Sequence[MediaFile]) -> List[EncodedMedia]:
        results: List[Optional[EncodedMedia]] = [None] * len(items)
        gate = asyncio.Semaphore(self.concurrency)

        async def worker(i: int, item: MediaFile):
            async with gate:
                results[i] = await self.encode_one(folder, item)

        if self.concurrency == 1:
            for i, item in enumerate(items):
                await worker(i, item)
        else:
            await asyncio.gather(*(worker(i, item) for i, item in enumerate(items)))

        log.debug(f"[media] folder={folder} retrieved={len(results)}")
        return [r for r in results if r is not None]
