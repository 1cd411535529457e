"""Turns uploaded files into embeddable attachments."""

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel

from notekeep.config import config
from notekeep.models.schema import Attachment

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


class FileInput(BaseModel):
    """A file as handed over by the caller, before encoding."""

    name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def load_file(path: Union[str, Path]) -> FileInput:
    """Read a file from disk, guessing its MIME type from the name."""
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    return FileInput(
        name=path.name,
        mime_type=mime_type or "application/octet-stream",
        data=path.read_bytes(),
    )


class AttachmentManager:
    """Validates and encodes files for attaching to notes.

    Only images and PDFs up to ``max_bytes`` are taken. Anything else is
    dropped quietly rather than reported as an error.
    """

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes if max_bytes is not None else config.max_attachment_bytes

    def load(self, path: Union[str, Path]) -> Optional[FileInput]:
        """Read a file from disk if its size is within the limit.

        The size is taken from the file system before anything is read, so
        an oversized file is skipped without loading it.
        """
        path = Path(path)
        size = path.stat().st_size
        if size > self.max_bytes:
            logger.info(f"Skipping attachment '{path.name}' ({size} bytes)")
            return None
        return load_file(path)

    def accept(self, file: FileInput) -> bool:
        """True if the file may be attached."""
        mime_type = file.mime_type.lower()
        type_ok = mime_type.startswith("image/") or mime_type == PDF_MIME_TYPE
        return type_ok and file.size <= self.max_bytes

    async def encode(self, file: FileInput) -> Attachment:
        """Encode a file as a base64 data URL without blocking the event loop."""
        encoded = await asyncio.to_thread(base64.b64encode, file.data)
        return Attachment(
            name=file.name,
            mime_type=file.mime_type,
            data_url=f"data:{file.mime_type};base64,{encoded.decode('ascii')}",
            size=file.size,
        )

    async def encode_all(self, files: Sequence[FileInput]) -> List[Attachment]:
        """Encode every acceptable file concurrently.

        Results follow the order of ``files``, not the order in which the
        encodings finish.
        """
        accepted = []
        for file in files:
            if self.accept(file):
                accepted.append(file)
            else:
                logger.info(
                    f"Skipping attachment '{file.name}' "
                    f"({file.mime_type}, {file.size} bytes)"
                )
        return list(await asyncio.gather(*(self.encode(f) for f in accepted)))
