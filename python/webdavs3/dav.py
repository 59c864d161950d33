# This file is part of webdav-s3.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

from __future__ import annotations

__all__ = ("DavObjectStore", "DavOperationError")

import contextlib
import logging
import time
from collections.abc import Iterable, Iterator
from typing import BinaryIO

from urllib3.exceptions import HTTPError
from urllib3.response import HTTPResponse

from .davutils import (
    Authorizer,
    DavClient,
    DavConfig,
    DavConfigPool,
    DavResponseError,
    DavStatusError,
    resolve_path,
)
from .objects import HeadObjectResult, ListObjectsResult, MultipartUpload, UploadMode, UploadPart

log = logging.getLogger(__name__)


class DavOperationError(RuntimeError):
    """Raised when an operation of `DavObjectStore` fails, whether the
    server could not be reached or it responded with an unexpected status.

    Parameters
    ----------
    operation : `str`
        Name of the failed operation, e.g. 'put_object'.
    cause : `Exception`
        The transport or response error which caused the failure.
    """

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation: str = operation
        self.status: int | None = None
        self.body: str = ""
        if isinstance(cause, DavStatusError):
            self.status = cause.status
            self.body = cause.body

        super().__init__(f"WebDAV {operation} failed: {cause}")


@contextlib.contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Re-raise transport and response errors as `DavOperationError`."""
    try:
        yield
    except (HTTPError, DavResponseError) as e:
        raise DavOperationError(operation, e) from e


class DavObjectStore:
    """Object storage with an S3-like interface, backed by a webDAV server.

    Keys are paths relative to the base path configured for the endpoint,
    with "/" as separator.

    Instances of this class keep no state besides their configuration and
    can be shared among threads. Each operation sends at most one request to
    the server; failed requests are never retried.

    Parameters
    ----------
    config : `DavConfig`
        Configuration of the webDAV endpoint.
    authorizer : `Authorizer`, optional
        Credential provider to use instead of the one built from `config`.
    """

    def __init__(self, config: DavConfig, authorizer: Authorizer | None = None) -> None:
        self._config: DavConfig = config
        self._client: DavClient = DavClient(config, authorizer=authorizer)
        log.debug("created instance of DavObjectStore for %s [%d]", config.endpoint, id(self))

    @classmethod
    def from_config_file(cls, endpoint: str, filename: str) -> DavObjectStore:
        """Create a store for `endpoint` from its settings in a configuration
        file.

        Parameters
        ----------
        endpoint : `str`
            URL of the webDAV endpoint.
        filename : `str`
            Path of the configuration file or name of the environment variable
            holding that path. See `DavConfigPool` for the file format.
        """
        return cls(DavConfigPool(filename).get_config_for_endpoint(endpoint))

    @property
    def config(self) -> DavConfig:
        return self._config

    def _path(self, key: str) -> str:
        return resolve_path(self._config.base_path, key)

    def _url(self, key: str) -> str:
        return self._client.url_for(self._path(key))

    def list_objects(
        self,
        prefix: str = "",
        delimiter: str = "/",
        max_keys: int = 1000,
        continuation_token: str | None = None,
    ) -> ListObjectsResult:
        """List the files and directories directly under `prefix`.

        Parameters
        ----------
        prefix : `str`, optional
            Key of the directory to list. A final "/" is appended if missing.
        delimiter : `str`, optional
            Accepted for compatibility. Listings are always one level deep.
        max_keys : `int`, optional
            Accepted for compatibility. Listings are never truncated.
        continuation_token : `str`, optional
            Accepted for compatibility. Listings are never paginated.

        Returns
        -------
        result : `ListObjectsResult`
            Directories first, then files, each group sorted by name.
        """
        log.debug("list_objects prefix=%r", prefix)

        if prefix and not prefix.endswith("/"):
            prefix += "/"

        path = self._path(prefix)
        with _translate_errors("list_objects"):
            properties = self._client.read_dir(self._client.url_for(path), path)

        return ListObjectsResult.from_properties(properties)

    def get_object(self, key: str) -> HTTPResponse:
        """Return the response to a download request of object `key`.

        The body of the returned response is not read yet: it can be read
        entirely via ``read()`` or by chunks via ``stream()``. The caller
        should call ``release_conn()`` on it when done.
        """
        log.debug("get_object %s", key)

        with _translate_errors("get_object"):
            return self._client.get(self._url(key))

    def put_object(self, key: str, body: BinaryIO | bytes | str, content_type: str | None = None) -> None:
        """Create or replace the object `key`.

        Parameters
        ----------
        key : `str`
            Key of the object.
        body : `BinaryIO` or `bytes` or `str`
            Contents of the object. Text is encoded in UTF-8.
        content_type : `str`, optional
            Content type of the object, 'application/octet-stream' if None.
        """
        log.debug("put_object %s content_type=%s", key, content_type)

        with _translate_errors("put_object"):
            self._client.put(self._url(key), body, content_type=content_type)

    def delete_object(self, key: str) -> None:
        """Delete the object `key`."""
        log.debug("delete_object %s", key)

        with _translate_errors("delete_object"):
            self._client.delete(self._url(key))

    def create_folder(self, path: str) -> None:
        """Create the directory `path`. Its parent directory must exist."""
        log.debug("create_folder %s", path)

        # Creation of collections is sensitive to the trailing "/".
        if not path.endswith("/"):
            path += "/"

        with _translate_errors("create_folder"):
            self._client.mkcol(self._url(path))

    def copy_object(self, source_key: str, dest_key: str) -> None:
        """Copy object `source_key` to `dest_key`. The copy fails if an
        object already exists at `dest_key`.
        """
        log.debug("copy_object %s to %s", source_key, dest_key)

        with _translate_errors("copy_object"):
            self._client.copy(self._url(source_key), self._url(dest_key))

    def head_object(self, key: str) -> HeadObjectResult | None:
        """Return the metadata of object `key`, or None if it does not
        exist.
        """
        log.debug("head_object %s", key)

        with _translate_errors("head_object"):
            resp = self._client.head(self._url(key))

        return None if resp is None else HeadObjectResult.from_response(resp)

    def get_signed_url(self, key: str, expires_in: int = 3600) -> str:
        """Return the URL of object `key`.

        webDAV has no URL signing: the returned URL carries no credentials
        nor expiration, `expires_in` is ignored, and the server requires the
        usual authentication to serve it.
        """
        return self._url(key)

    def initiate_multipart_upload(self, key: str, content_type: str | None = None) -> MultipartUpload:
        """Start a multipart upload of object `key`.

        No request is sent: webDAV has no multipart uploads. The returned
        upload is `UploadMode.SINGLE_SHOT` with a locally generated
        identifier. The object contents must be uploaded with a single
        `put_object`.
        """
        upload = MultipartUpload(
            upload_id=f"webdav-{time.time_ns() // 1_000_000}",
            key=key,
            content_type=content_type,
            mode=UploadMode.SINGLE_SHOT,
        )
        log.debug("initiate_multipart_upload %s: %s", key, upload)
        return upload

    def upload_part(
        self,
        key: str,
        upload_id: MultipartUpload | str,
        part_number: int,
        body: BinaryIO | bytes | None = None,
        content_length: int | None = None,
    ) -> UploadPart:
        """Record part `part_number` of a multipart upload.

        `body` is not sent. The returned part has its number as entity tag.
        """
        log.debug("upload_part %s upload_id=%s part_number=%d", key, upload_id, part_number)
        return UploadPart(part_number=part_number, etag=str(part_number))

    def complete_multipart_upload(
        self, key: str, upload_id: MultipartUpload | str, parts: Iterable[UploadPart]
    ) -> None:
        """Complete a multipart upload. Nothing to do."""
        log.debug("complete_multipart_upload %s upload_id=%s", key, upload_id)

    def abort_multipart_upload(self, key: str, upload_id: MultipartUpload | str) -> None:
        """Abort a multipart upload. Nothing to do."""
        log.debug("abort_multipart_upload %s upload_id=%s", key, upload_id)

    def get_signed_upload_part_url(
        self, key: str, upload_id: MultipartUpload | str, part_number: int, expires_in: int = 3600
    ) -> str:
        """Return the URL to upload object `key` to. Same as
        `get_signed_url`.
        """
        return self.get_signed_url(key, expires_in)
