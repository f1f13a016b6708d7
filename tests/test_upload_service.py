"""End-to-end tests of the upload pipeline against a temporary directory."""

import pytest

from whitelabel.uploads.destinations import Destination
from whitelabel.uploads.exceptions import (
    ForbiddenError,
    MissingRenameTargetError,
    NameCollisionError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from whitelabel.uploads.models import UploadRequest
from whitelabel.uploads.progress import CallbackProgressSink

MIB = 1024 * 1024


class CountingStream:
    """Async stream of ``chunks`` copies of ``chunk`` that counts reads."""

    def __init__(self, chunk: bytes, chunks: int):
        self.chunk = chunk
        self.chunks = chunks
        self.reads = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.reads >= self.chunks:
            raise StopAsyncIteration
        self.reads += 1
        return self.chunk


def list_dir(path):
    return sorted(p.name for p in path.iterdir()) if path.exists() else []


@pytest.mark.asyncio
async def test_avatar_is_renamed_to_target(upload_service, upload_root):
    """A 2 MiB avatar is stored under the user's name with the original extension."""
    stream = CountingStream(b"\x89" * MIB, 2)
    request = UploadRequest(
        destination=Destination.AVATAR,
        content_type="image/png",
        file_name="photo.PNG",
        stream=stream,
        rename_target="user-42",
    )

    descriptor = await upload_service.upload(request)

    assert descriptor.file_name == "user-42.PNG"
    assert descriptor.size_bytes == 2097152
    assert descriptor.destination is Destination.AVATAR
    assert descriptor.relative_path == "avatars/user-42.PNG"
    assert (upload_root / "avatars" / "user-42.PNG").stat().st_size == 2097152


@pytest.mark.asyncio
async def test_new_avatar_replaces_previous_one(upload_service, upload_root, make_stream):
    for content in (b"first", b"second"):
        await upload_service.upload(
            UploadRequest(
                destination=Destination.AVATAR,
                content_type="image/jpeg",
                file_name="me.jpg",
                stream=make_stream(content),
                rename_target="user-42",
            )
        )

    assert list_dir(upload_root / "avatars") == ["user-42.jpg"]
    assert (upload_root / "avatars" / "user-42.jpg").read_bytes() == b"second"


@pytest.mark.asyncio
async def test_avatar_without_rename_target(upload_service, make_stream):
    request = UploadRequest(
        destination=Destination.AVATAR,
        content_type="image/png",
        file_name="photo.png",
        stream=make_stream(b"data"),
    )
    with pytest.raises(MissingRenameTargetError):
        await upload_service.upload(request)


@pytest.mark.asyncio
async def test_viewer_cannot_upload_artist_image(upload_service, upload_root):
    """Forbidden before a single byte is read."""
    stream = CountingStream(b"x", 10)
    request = UploadRequest(
        destination=Destination.ARTIST,
        content_type="image/png",
        file_name="band.png",
        stream=stream,
        permissions=frozenset(["viewer"]),
    )

    with pytest.raises(ForbiddenError):
        await upload_service.upload(request)

    assert stream.reads == 0
    assert list_dir(upload_root / "artists") == []


@pytest.mark.asyncio
async def test_pdf_is_not_release_artwork(upload_service):
    stream = CountingStream(b"%PDF", 1)
    request = UploadRequest(
        destination=Destination.RELEASE,
        content_type="application/pdf",
        file_name="liner-notes.pdf",
        stream=stream,
        permissions=frozenset(["label_owner"]),
    )

    with pytest.raises(UnsupportedMediaTypeError):
        await upload_service.upload(request)

    assert stream.reads == 0


@pytest.mark.asyncio
async def test_undeclared_oversized_artist_image_is_aborted(upload_service, upload_root):
    """101 MiB without a declared size is cut off mid-stream and leaves nothing."""
    stream = CountingStream(b"\x00" * MIB, 101)
    request = UploadRequest(
        destination=Destination.ARTIST,
        content_type="image/jpeg",
        file_name="huge.jpg",
        stream=stream,
        permissions=frozenset(["admin"]),
    )

    with pytest.raises(PayloadTooLargeError):
        await upload_service.upload(request)

    assert list_dir(upload_root / "artists") == []


@pytest.mark.asyncio
async def test_lying_declared_size_is_caught(upload_service, upload_root):
    stream = CountingStream(b"\x00" * MIB, 11)
    request = UploadRequest(
        destination=Destination.AVATAR,
        content_type="image/jpeg",
        file_name="me.jpg",
        stream=stream,
        rename_target="user-42",
        declared_size=1024,
    )

    with pytest.raises(PayloadTooLargeError):
        await upload_service.upload(request)

    assert stream.reads == 11
    assert list_dir(upload_root / "avatars") == []


@pytest.mark.asyncio
async def test_release_artwork_keeps_name_with_timestamp(upload_service, upload_root, make_stream):
    progress = []
    request = UploadRequest(
        destination=Destination.RELEASE,
        content_type="image/webp",
        file_name="cover.final.webp",
        stream=make_stream(b"w" * 150_000),
        permissions=frozenset(["admin"]),
        declared_size=150_000,
    )

    descriptor = await upload_service.upload(request, CallbackProgressSink(progress.append))

    prefix, base = descriptor.file_name.split("-", 1)
    assert prefix.isdigit()
    assert base == "cover.final.webp"
    assert list_dir(upload_root / "releases") == [descriptor.file_name]
    assert progress[-1].bytes_written == 150_000
    assert progress[-1].total_expected == 150_000


@pytest.mark.asyncio
async def test_same_name_in_same_second_collides(upload_service, upload_root, make_stream, monkeypatch):
    monkeypatch.setattr("whitelabel.uploads.naming.time.time", lambda: 1735689600.0)

    def request():
        return UploadRequest(
            destination=Destination.ARTIST,
            content_type="image/png",
            file_name="band.png",
            stream=make_stream(b"png"),
            permissions=frozenset(["admin"]),
        )

    await upload_service.upload(request())
    with pytest.raises(NameCollisionError):
        await upload_service.upload(request())

    assert list_dir(upload_root / "artists") == ["1735689600-band.png"]


@pytest.mark.asyncio
async def test_explicit_overwrite_on_non_renaming_destination(upload_service, upload_root, make_stream):
    for content in (b"v1", b"v2"):
        descriptor = await upload_service.upload(
            UploadRequest(
                destination=Destination.ARTIST,
                content_type="image/png",
                file_name="band.png",
                stream=make_stream(content),
                permissions=frozenset(["admin"]),
                overwrite=True,
            )
        )

    assert descriptor.file_name == "band.png"
    assert (upload_root / "artists" / "band.png").read_bytes() == b"v2"
