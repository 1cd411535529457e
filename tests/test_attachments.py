"""Tests for attachment validation and encoding."""
import asyncio
import base64

import pytest

from notekeep.config import DEFAULT_MAX_ATTACHMENT_BYTES
from notekeep.models.schema import Attachment
from notekeep.services.attachments import AttachmentManager, FileInput, load_file

MB = 1024 * 1024


def make_file(name="image.png", mime_type="image/png", size=16):
    return FileInput(name=name, mime_type=mime_type, data=b"\x00" * size)


class TestAccept:
    """Tests for the type and size filter."""

    def setup_method(self):
        self.manager = AttachmentManager(max_bytes=DEFAULT_MAX_ATTACHMENT_BYTES)

    @pytest.mark.parametrize(
        "mime_type", ["image/png", "image/jpeg", "image/svg+xml", "application/pdf"]
    )
    def test_images_and_pdfs_accepted(self, mime_type):
        assert self.manager.accept(make_file(mime_type=mime_type))

    @pytest.mark.parametrize(
        "mime_type", ["text/plain", "application/zip", "video/mp4", "application/pdfx"]
    )
    def test_other_types_rejected(self, mime_type):
        assert not self.manager.accept(make_file(mime_type=mime_type))

    def test_size_limit_is_inclusive(self):
        assert self.manager.accept(make_file(size=DEFAULT_MAX_ATTACHMENT_BYTES))
        assert not self.manager.accept(make_file(size=DEFAULT_MAX_ATTACHMENT_BYTES + 1))


class TestEncode:
    """Tests for turning files into attachments."""

    @pytest.mark.anyio
    async def test_encode_builds_data_url(self):
        manager = AttachmentManager()
        attachment = await manager.encode(
            FileInput(name="scan.pdf", mime_type="application/pdf", data=b"%PDF-1.7")
        )
        assert attachment.name == "scan.pdf"
        assert attachment.mime_type == "application/pdf"
        assert attachment.size == 8
        prefix = "data:application/pdf;base64,"
        assert attachment.data_url.startswith(prefix)
        assert base64.b64decode(attachment.data_url[len(prefix):]) == b"%PDF-1.7"

    @pytest.mark.anyio
    async def test_mixed_batch_scenario(self):
        """Text files and oversized images are dropped without an error."""
        manager = AttachmentManager(max_bytes=10_485_760)
        files = [
            make_file("notes.txt", "text/plain", 1024),
            make_file("huge.png", "image/png", 11 * MB),
            make_file("ok.png", "image/png", 1 * MB),
        ]
        attachments = await manager.encode_all(files)
        assert [a.name for a in attachments] == ["ok.png"]
        assert attachments[0].size == 1 * MB

    @pytest.mark.anyio
    async def test_results_follow_input_order(self, monkeypatch):
        """Slow encodings finishing last do not reorder the results."""
        manager = AttachmentManager()
        delays = {"first.png": 0.05, "second.png": 0.0, "third.png": 0.02}
        finished = []

        async def slow_encode(file):
            await asyncio.sleep(delays[file.name])
            finished.append(file.name)
            return Attachment(
                name=file.name, mime_type=file.mime_type, data_url="data:,", size=file.size
            )

        monkeypatch.setattr(manager, "encode", slow_encode)
        files = [make_file(name) for name in delays]
        attachments = await manager.encode_all(files)
        assert [a.name for a in attachments] == ["first.png", "second.png", "third.png"]
        assert finished[0] == "second.png"

    @pytest.mark.anyio
    async def test_empty_batch(self):
        assert await AttachmentManager().encode_all([]) == []


class TestLoadFile:
    """Tests for reading files from disk."""

    def test_guesses_mime_type(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG")
        file = load_file(path)
        assert file.name == "photo.png"
        assert file.mime_type == "image/png"
        assert file.size == 4

    def test_manager_load_reads_small_files(self, tmp_path):
        path = tmp_path / "scan.pdf"
        path.write_bytes(b"%PDF")
        file = AttachmentManager(max_bytes=10).load(path)
        assert file.mime_type == "application/pdf"
        assert file.data == b"%PDF"

    def test_manager_load_skips_oversized_without_reading(self, tmp_path, monkeypatch):
        path = tmp_path / "huge.png"
        path.write_bytes(b"\x00" * 20)

        def fail(_path):
            raise AssertionError("oversized file was read")

        monkeypatch.setattr("notekeep.services.attachments.load_file", fail)
        assert AttachmentManager(max_bytes=10).load(path) is None

    def test_unknown_extension(self, tmp_path):
        path = tmp_path / "blob.unknownext"
        path.write_bytes(b"abc")
        assert load_file(str(path)).mime_type == "application/octet-stream"
