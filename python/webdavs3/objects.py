# This file is part of webdav-s3.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

from __future__ import annotations

__all__ = (
    "HeadObjectResult",
    "ListObjectsResult",
    "MultipartUpload",
    "ObjectEntry",
    "UploadMode",
    "UploadPart",
)

import enum
import locale
from collections.abc import Iterable

from urllib3.response import HTTPResponse

from .davutils import DavProperty


def _collation_key(name: str) -> tuple[str, str]:
    """Return a key for sorting names in the order of the current locale,
    ignoring case first and putting lowercase before uppercase on ties.
    """
    return locale.strxfrm(name.casefold()), locale.strxfrm(name.swapcase())


class ObjectEntry:
    """Container for the attributes of a listed file or directory.

    Parameters
    ----------
    key : `str`
        Name of the object, relative to the listed prefix.
    size : `int`
        Size in bytes. Always zero for directories.
    last_modified : `str`
        Last modification timestamp, as sent by the server.
    is_dir : `bool`
        Whether the object is a directory.
    etag : `str`, optional
        Entity tag, if the server sent one.
    """

    def __init__(
        self,
        key: str,
        size: int = 0,
        last_modified: str = "",
        is_dir: bool = False,
        etag: str | None = None,
    ) -> None:
        self._key: str = key
        self._size: int = 0 if is_dir else size
        self._last_modified: str = last_modified
        self._is_dir: bool = is_dir
        self._etag: str | None = etag

    @staticmethod
    def from_property(property: DavProperty) -> ObjectEntry:
        """Create an instance from the values in `property`."""
        return ObjectEntry(
            key=property.name,
            size=property.size,
            last_modified=property.last_modified,
            is_dir=property.is_dir,
            etag=property.etag,
        )

    def __repr__(self) -> str:
        return (
            f"ObjectEntry(key={self._key!r}, size={self._size}, is_dir={self._is_dir}, "
            f"last_modified={self._last_modified!r})"
        )

    @property
    def key(self) -> str:
        return self._key

    @property
    def name(self) -> str:
        # The display name is the key.
        return self._key

    @property
    def size(self) -> int:
        return self._size

    @property
    def last_modified(self) -> str:
        return self._last_modified

    @property
    def is_dir(self) -> bool:
        return self._is_dir

    @property
    def etag(self) -> str | None:
        return self._etag


class ListObjectsResult:
    """Result of listing the contents of a directory.

    Parameters
    ----------
    objects : `list` [ `ObjectEntry` ]
        Files and directories, directories first.
    prefixes : `list` [ `str` ]
        Keys of the directories.

    Notes
    -----
    A listing is always complete: the server returns the whole contents of a
    directory in a single response, so `is_truncated` is always False and
    there is never a continuation token.
    """

    def __init__(self, objects: list[ObjectEntry], prefixes: list[str]) -> None:
        self._objects = objects
        self._prefixes = prefixes

    @staticmethod
    def from_properties(properties: Iterable[DavProperty]) -> ListObjectsResult:
        """Build a listing from the properties of the children of a
        directory.

        Parameters
        ----------
        properties : `~collections.abc.Iterable` [ `DavProperty` ]
            Properties of each file and directory, in any order.
        """
        objects: list[ObjectEntry] = []
        prefixes: list[str] = []
        for property in properties:
            entry = ObjectEntry.from_property(property)
            if entry.is_dir:
                prefixes.append(entry.key)
            objects.append(entry)

        objects.sort(key=lambda entry: (not entry.is_dir, *_collation_key(entry.name)))
        return ListObjectsResult(objects, prefixes)

    def __repr__(self) -> str:
        return f"ListObjectsResult(objects={self._objects!r}, prefixes={self._prefixes!r})"

    @property
    def objects(self) -> list[ObjectEntry]:
        return self._objects

    @property
    def prefixes(self) -> list[str]:
        return self._prefixes

    @property
    def is_truncated(self) -> bool:
        return False

    @property
    def next_continuation_token(self) -> str | None:
        return None


class HeadObjectResult:
    """Metadata of an object, as returned in the response to a HEAD
    request.
    """

    def __init__(self, content_length: int, content_type: str, last_modified: str) -> None:
        self._content_length = content_length
        self._content_type = content_type
        self._last_modified = last_modified

    @staticmethod
    def from_response(resp: HTTPResponse) -> HeadObjectResult:
        """Create an instance from the headers of `resp`.

        Missing headers default to a zero length, a content type of
        'application/octet-stream' and an empty last modification time.
        """
        try:
            content_length = max(0, int(resp.headers.get("Content-Length", "0")))
        except ValueError:
            content_length = 0

        return HeadObjectResult(
            content_length=content_length,
            content_type=resp.headers.get("Content-Type") or "application/octet-stream",
            last_modified=resp.headers.get("Last-Modified") or "",
        )

    def __repr__(self) -> str:
        return (
            f"HeadObjectResult(content_length={self._content_length}, "
            f"content_type={self._content_type!r}, last_modified={self._last_modified!r})"
        )

    @property
    def content_length(self) -> int:
        return self._content_length

    @property
    def content_type(self) -> str:
        return self._content_type

    @property
    def last_modified(self) -> str:
        return self._last_modified


class UploadMode(enum.Enum):
    """Kinds of multipart uploads.

    webDAV has no chunked upload mechanism, so uploads are always
    `SINGLE_SHOT`: the data is sent in a single PUT request by the caller and
    the multipart operations only exist to satisfy the multipart contract.
    """

    CHUNKED = 1
    SINGLE_SHOT = 2


class MultipartUpload:
    """Handle of a multipart upload.

    Parameters
    ----------
    upload_id : `str`
        Identifier of the upload. It is generated locally, the server knows
        nothing about it.
    key : `str`
        Key of the object to upload.
    content_type : `str`, optional
        Content type of the object to upload.
    mode : `UploadMode`, optional
        Kind of the upload.
    """

    def __init__(
        self,
        upload_id: str,
        key: str,
        content_type: str | None = None,
        mode: UploadMode = UploadMode.SINGLE_SHOT,
    ) -> None:
        self._upload_id = upload_id
        self._key = key
        self._content_type = content_type
        self._mode = mode

    def __str__(self) -> str:
        return self._upload_id

    def __repr__(self) -> str:
        return f"MultipartUpload(upload_id={self._upload_id!r}, key={self._key!r}, mode={self._mode})"

    @property
    def upload_id(self) -> str:
        return self._upload_id

    @property
    def key(self) -> str:
        return self._key

    @property
    def content_type(self) -> str | None:
        return self._content_type

    @property
    def mode(self) -> UploadMode:
        return self._mode

    @property
    def is_resumable(self) -> bool:
        return self._mode == UploadMode.CHUNKED


class UploadPart:
    """Record of an uploaded part.

    Parameters
    ----------
    part_number : `int`
        Number of the part.
    etag : `str`
        Entity tag of the part.
    """

    def __init__(self, part_number: int, etag: str) -> None:
        self._part_number = part_number
        self._etag = etag

    def __repr__(self) -> str:
        return f"UploadPart(part_number={self._part_number}, etag={self._etag!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UploadPart):
            return NotImplemented
        return (self._part_number, self._etag) == (other._part_number, other._etag)

    def __hash__(self) -> int:
        return hash((self._part_number, self._etag))

    @property
    def part_number(self) -> int:
        return self._part_number

    @property
    def etag(self) -> str:
        return self._etag
