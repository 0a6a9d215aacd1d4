"""
Unit tests for the upload receiver.
"""

import asyncio
import re
from io import BytesIO
from unittest.mock import patch

import pytest

from docx_service.config import MAX_UPLOAD_BYTES
from docx_service.exceptions import ValidationError
from docx_service.upload import (
    BAD_EXTENSION_MESSAGE,
    MISSING_FILE_MESSAGE,
    TOO_LARGE_MESSAGE,
    generate_stored_name,
    receive_upload,
    validate_extension,
)


class FakeStream:
    """Minimal async stream over bytes, counting how much was read."""

    def __init__(self, data: bytes):
        self._buffer = BytesIO(data)
        self.bytes_read = 0

    async def read(self, size: int = -1) -> bytes:
        chunk = self._buffer.read(size)
        self.bytes_read += len(chunk)
        return chunk


class TestGenerateStoredName:
    """Tests for generate_stored_name."""

    def test_format_is_timestamp_dash_random_with_extension(self):
        name = generate_stored_name(".docx")
        assert re.fullmatch(r"\d{13,}-\d{1,9}\.docx", name)

    def test_names_differ_between_calls(self):
        names = {generate_stored_name(".doc") for _ in range(200)}
        assert len(names) == 200


class TestValidateExtension:
    """Tests for validate_extension."""

    @pytest.mark.parametrize("filename", ["report.docx", "REPORT.DOCX", "old.doc", "Mixed.DoC"])
    def test_accepts_word_extensions_case_insensitive(self, filename):
        assert validate_extension(filename) in (".doc", ".docx")

    @pytest.mark.parametrize("filename", ["notes.txt", "slides.pdf", "archive.docx.zip", "docx", "report."])
    def test_rejects_other_extensions(self, filename):
        with pytest.raises(ValidationError) as exc_info:
            validate_extension(filename)
        assert exc_info.value.message == BAD_EXTENSION_MESSAGE
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("filename", [None, "", "   "])
    def test_missing_filename(self, filename):
        with pytest.raises(ValidationError) as exc_info:
            validate_extension(filename)
        assert exc_info.value.message == MISSING_FILE_MESSAGE


class TestReceiveUpload:
    """Tests for receive_upload."""

    @pytest.mark.asyncio
    async def test_persists_stream_under_generated_name(self, temp_upload_dir):
        artifact = await receive_upload(FakeStream(b"hello word"), "Report.DOCX", temp_upload_dir)

        assert artifact.path.read_bytes() == b"hello word"
        assert artifact.original_filename == "Report.DOCX"
        assert artifact.extension == ".docx"
        assert artifact.size_bytes == 10
        assert artifact.directory == temp_upload_dir
        assert artifact.stored_name.endswith(".docx")
        assert artifact.stored_name != "Report.DOCX"

    @pytest.mark.asyncio
    async def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "nested" / "scratch"
        assert not target.exists()

        artifact = await receive_upload(FakeStream(b"x"), "a.doc", target)

        assert target.is_dir()
        assert artifact.path.parent == target

    @pytest.mark.asyncio
    async def test_bad_extension_creates_nothing(self, temp_upload_dir, leftover_files):
        stream = FakeStream(b"plain text")

        with pytest.raises(ValidationError):
            await receive_upload(stream, "notes.txt", temp_upload_dir)

        assert stream.bytes_read == 0
        assert leftover_files() == []

    @pytest.mark.asyncio
    async def test_declared_oversize_rejected_before_reading(self, temp_upload_dir):
        stream = FakeStream(b"x" * 10)

        with pytest.raises(ValidationError) as exc_info:
            await receive_upload(
                stream, "big.docx", temp_upload_dir, declared_size=MAX_UPLOAD_BYTES + 1
            )

        assert exc_info.value.message == TOO_LARGE_MESSAGE
        assert stream.bytes_read == 0
        assert not temp_upload_dir.exists()

    @pytest.mark.asyncio
    async def test_streamed_oversize_discards_partial_file(self, temp_upload_dir, leftover_files):
        stream = FakeStream(b"x" * (MAX_UPLOAD_BYTES + 1))

        with pytest.raises(ValidationError) as exc_info:
            await receive_upload(stream, "big.docx", temp_upload_dir, chunk_size=1024 * 1024)

        assert exc_info.value.message == TOO_LARGE_MESSAGE
        assert leftover_files() == []
        # Stopped at the first chunk over the limit, not at the end of the stream
        assert stream.bytes_read <= MAX_UPLOAD_BYTES + 1024 * 1024

    @pytest.mark.asyncio
    async def test_exactly_ten_mib_is_accepted(self, temp_upload_dir):
        artifact = await receive_upload(
            FakeStream(b"x" * MAX_UPLOAD_BYTES), "limit.docx", temp_upload_dir,
            declared_size=MAX_UPLOAD_BYTES, chunk_size=1024 * 1024,
        )
        assert artifact.size_bytes == MAX_UPLOAD_BYTES

    @pytest.mark.asyncio
    async def test_stream_error_discards_partial_file(self, temp_upload_dir, leftover_files):
        class BrokenStream:
            calls = 0

            async def read(self, size):
                self.calls += 1
                if self.calls > 1:
                    raise ConnectionResetError("client went away")
                return b"partial"

        with pytest.raises(ConnectionResetError):
            await receive_upload(BrokenStream(), "report.docx", temp_upload_dir)

        assert leftover_files() == []

    @pytest.mark.asyncio
    async def test_existing_name_is_never_overwritten(self, temp_upload_dir):
        temp_upload_dir.mkdir(parents=True)
        (temp_upload_dir / "taken.docx").write_bytes(b"other job")

        with patch(
            "docx_service.upload.generate_stored_name",
            side_effect=["taken.docx", "free.docx"],
        ):
            artifact = await receive_upload(FakeStream(b"mine"), "report.docx", temp_upload_dir)

        assert artifact.stored_name == "free.docx"
        assert (temp_upload_dir / "taken.docx").read_bytes() == b"other job"
        assert artifact.path.read_bytes() == b"mine"

    @pytest.mark.asyncio
    async def test_concurrent_uploads_with_same_name_do_not_collide(self, temp_upload_dir):
        payloads = [f"job-{i}".encode() for i in range(25)]

        artifacts = await asyncio.gather(*[
            receive_upload(FakeStream(data), "report.docx", temp_upload_dir)
            for data in payloads
        ])

        assert len({a.stored_name for a in artifacts}) == len(payloads)
        for artifact, data in zip(artifacts, payloads):
            assert artifact.path.read_bytes() == data
