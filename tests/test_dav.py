# This file is part of webdav-s3.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

import base64
import io
import unittest
import unittest.mock

from urllib3.exceptions import NewConnectionError, ProtocolError
from urllib3.response import HTTPResponse

from webdavs3 import (
    DavConfig,
    DavObjectStore,
    DavOperationError,
    MultipartUpload,
    UploadMode,
    UploadPart,
)
from webdavs3.davutils import DavClient, DavConfigPool

ENDPOINT = "https://dav.example.org/remote.php/dav"
AUTHORIZATION = "Basic " + base64.b64encode(b"me:secret").decode()


def _response(status: int, body: bytes = b"", headers: dict[str, str] | None = None) -> HTTPResponse:
    """Return a response as received from the server, with its body
    available for reading.
    """
    return HTTPResponse(
        body=io.BytesIO(body),
        headers=headers,
        status=status,
        preload_content=False,
    )


def _entry(href: str, name: str | None, length: int | None = None, collection: bool = False) -> str:
    props = ""
    if name is not None:
        props += f"<D:displayname>{name}</D:displayname>"
    if length is not None:
        props += f"<D:getcontentlength>{length}</D:getcontentlength>"
    props += "<D:resourcetype><D:collection/></D:resourcetype>" if collection else "<D:resourcetype/>"
    return f"""
        <D:response>
            <D:href>{href}</D:href>
            <D:propstat>
                <D:prop>{props}</D:prop>
                <D:status>HTTP/1.1 200 OK</D:status>
            </D:propstat>
        </D:response>"""


def _multistatus(*entries: str) -> bytes:
    return (
        """<?xml version="1.0" encoding="utf-8"?>\n"""
        f"""<D:multistatus xmlns:D="DAV:">{"".join(entries)}</D:multistatus>"""
    ).encode()


class DavObjectStoreTestCase(unittest.TestCase):
    """Test the object store against mocked server responses."""

    def setUp(self):
        self.config = DavConfig(
            {
                "endpoint": ENDPOINT,
                "username": "me",
                "password": "secret",
                "base_path": "/backups/",
            }
        )
        self.store = DavObjectStore(self.config)
        patcher = unittest.mock.patch.object(self.store._client._pool_manager, "request")
        self.request = patcher.start()
        self.addCleanup(patcher.stop)

    def _sent(self) -> tuple[str, str, dict[str, str], object]:
        """Return the method, URL, headers and body of the last request."""
        args, kwargs = self.request.call_args
        return args[0], args[1], kwargs["headers"], kwargs["body"]

    def test_list_objects(self):
        self.request.return_value = _response(
            207,
            _multistatus(
                _entry("/remote.php/dav/backups/docs/", "docs", collection=True),
                _entry("/remote.php/dav/backups/docs/readme.txt", "readme.txt", length=120).replace(
                    "<D:resourcetype/>",
                    "<D:resourcetype/><D:getlastmodified>Mon, 01 Jan 2024 00:00:00 GMT</D:getlastmodified>",
                ),
                _entry("/remote.php/dav/backups/docs/img/", "img", collection=True),
            ),
        )
        result = self.store.list_objects("docs/")

        self.assertEqual([entry.key for entry in result.objects], ["img", "readme.txt"])
        img, readme = result.objects
        self.assertTrue(img.is_dir)
        self.assertEqual(img.size, 0)
        self.assertEqual(img.name, "img")
        self.assertFalse(readme.is_dir)
        self.assertEqual(readme.size, 120)
        self.assertEqual(readme.last_modified, "Mon, 01 Jan 2024 00:00:00 GMT")
        self.assertEqual(result.prefixes, ["img"])
        self.assertFalse(result.is_truncated)
        self.assertIsNone(result.next_continuation_token)

        method, url, headers, body = self._sent()
        self.assertEqual(method, "PROPFIND")
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/")
        self.assertEqual(headers["Depth"], "1")
        self.assertEqual(headers["Content-Type"], "application/xml")
        self.assertEqual(headers["Authorization"], AUTHORIZATION)
        for prop in ("displayname", "getcontentlength", "getlastmodified", "resourcetype"):
            self.assertIn(f"<D:{prop}/>", body)

    def test_list_objects_prefix_without_separator(self):
        self.request.return_value = _response(207, _multistatus())
        self.store.list_objects("docs")
        _, url, _, _ = self._sent()
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/")

    def test_list_objects_excludes_listed_directory(self):
        # Servers may send the href of the listed directory relative to the
        # endpoint or absolute, with or without a final "/".
        for own_href in ("/remote.php/dav/backups/docs", "backups/docs/", f"{ENDPOINT}/backups/docs/"):
            self.request.return_value = _response(
                207,
                _multistatus(
                    _entry(own_href, "docs", collection=True),
                    _entry("/remote.php/dav/backups/docs/docs/", "docs", collection=True),
                ),
            )
            result = self.store.list_objects("docs/")
            self.assertEqual(len(result.objects), 1, msg=own_href)
            self.assertEqual(result.prefixes, ["docs"])

    def test_list_objects_quoted_href(self):
        self.request.return_value = _response(
            207,
            _multistatus(
                _entry("/remote.php/dav/backups/my%20docs/", "my docs", collection=True),
                _entry("/remote.php/dav/backups/my%20docs/a%20b.txt", "a b.txt", length=1),
            ),
        )
        result = self.store.list_objects("my docs")
        self.assertEqual([entry.key for entry in result.objects], ["a b.txt"])
        _, url, _, _ = self._sent()
        self.assertEqual(url, f"{ENDPOINT}/backups/my%20docs/")

    def test_list_objects_sort_order(self):
        self.request.return_value = _response(
            207,
            _multistatus(
                _entry("/remote.php/dav/backups/b", "b", length=1),
                _entry("/remote.php/dav/backups/z/", "z", collection=True),
                _entry("/remote.php/dav/backups/A", "A", length=1),
                _entry("/remote.php/dav/backups/a", "a", length=1),
                _entry("/remote.php/dav/backups/B/", "B", collection=True),
            ),
        )
        result = self.store.list_objects()
        names = [entry.name for entry in result.objects]

        # Directories first.
        self.assertEqual(names[:2], ["B", "z"])
        self.assertTrue(all(entry.is_dir for entry in result.objects[:2]))
        self.assertFalse(any(entry.is_dir for entry in result.objects[2:]))

        # Names differing only by case are adjacent.
        self.assertEqual(sorted(names[2:4]), ["A", "a"])
        self.assertEqual(names[4], "b")
        self.assertEqual(result.prefixes, ["z", "B"])

        _, url, _, _ = self._sent()
        self.assertEqual(url, f"{ENDPOINT}/backups/")

    def test_list_objects_ignores_pagination_arguments(self):
        self.request.return_value = _response(207, _multistatus(_entry("/x/f", "f", length=1)))
        result = self.store.list_objects("x/", delimiter="/", max_keys=1, continuation_token="token")
        self.assertEqual(len(result.objects), 1)
        self.assertFalse(result.is_truncated)
        self.assertEqual(self.request.call_count, 1)

    def test_list_objects_failure(self):
        self.request.return_value = _response(404, b"Not Found")
        with self.assertRaises(DavOperationError) as cm:
            self.store.list_objects("missing/")
        self.assertEqual(cm.exception.operation, "list_objects")
        self.assertEqual(cm.exception.status, 404)
        self.assertEqual(cm.exception.body, "Not Found")
        self.assertIn("list_objects", str(cm.exception))

        self.request.return_value = _response(207, b"<html>not a listing")
        with self.assertRaises(DavOperationError):
            self.store.list_objects("docs/")

    def test_get_object(self):
        self.request.return_value = _response(200, b"hello", {"Content-Type": "text/plain"})
        resp = self.store.get_object("/docs/readme.txt")
        self.assertEqual(resp.read(), b"hello")

        method, url, headers, body = self._sent()
        self.assertEqual(method, "GET")
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/readme.txt")
        self.assertEqual(headers, {"Authorization": AUTHORIZATION})
        self.assertIsNone(body)
        self.assertFalse(self.request.call_args.kwargs["preload_content"])

    def test_get_object_failure(self):
        self.request.return_value = _response(403, b"Forbidden by policy")
        with self.assertRaises(DavOperationError) as cm:
            self.store.get_object("docs/readme.txt")
        self.assertEqual(cm.exception.status, 403)
        self.assertEqual(cm.exception.body, "Forbidden by policy")

    def test_put_object(self):
        self.request.return_value = _response(201)
        self.store.put_object("docs/readme.txt", b"\x00\x01")
        method, url, headers, body = self._sent()
        self.assertEqual(method, "PUT")
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/readme.txt")
        self.assertEqual(headers["Content-Type"], "application/octet-stream")
        self.assertEqual(headers["Authorization"], AUTHORIZATION)
        self.assertEqual(body, b"\x00\x01")

        self.request.return_value = _response(204)
        self.store.put_object("docs/readme.txt", "héllo", content_type="text/plain")
        _, _, headers, body = self._sent()
        self.assertEqual(headers["Content-Type"], "text/plain")
        self.assertEqual(body, "héllo".encode())

    def test_put_object_failure(self):
        self.request.return_value = _response(507, b"quota exceeded")
        with self.assertRaises(DavOperationError) as cm:
            self.store.put_object("docs/readme.txt", b"data")
        self.assertEqual(cm.exception.operation, "put_object")
        self.assertEqual(cm.exception.status, 507)
        self.assertIn("quota exceeded", str(cm.exception))

    def test_delete_object(self):
        for status in (200, 204):
            self.request.return_value = _response(status)
            self.assertIsNone(self.store.delete_object("docs/readme.txt"))

        method, url, headers, _ = self._sent()
        self.assertEqual(method, "DELETE")
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/readme.txt")
        self.assertEqual(headers, {"Authorization": AUTHORIZATION})

        self.request.return_value = _response(404, b"no such file")
        with self.assertRaises(DavOperationError) as cm:
            self.store.delete_object("docs/readme.txt")
        self.assertEqual(cm.exception.operation, "delete_object")

    def test_create_folder(self):
        self.request.return_value = _response(201)
        self.store.create_folder("docs/img")
        method, url, headers, body = self._sent()
        self.assertEqual(method, "MKCOL")
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/img/")
        self.assertEqual(headers, {"Authorization": AUTHORIZATION})
        self.assertIsNone(body)

        self.store.create_folder("/docs/img/")
        _, url, _, _ = self._sent()
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/img/")

        self.request.return_value = _response(405, b"already exists")
        with self.assertRaises(DavOperationError) as cm:
            self.store.create_folder("docs/img")
        self.assertEqual(cm.exception.status, 405)

    def test_copy_object(self):
        self.request.return_value = _response(201)
        self.store.copy_object("docs/a.txt", "docs/b.txt")
        method, url, headers, _ = self._sent()
        self.assertEqual(method, "COPY")
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/a.txt")
        self.assertEqual(headers["Destination"], f"{ENDPOINT}/backups/docs/b.txt")
        self.assertEqual(headers["Overwrite"], "F")
        self.assertEqual(headers["Authorization"], AUTHORIZATION)

        self.request.return_value = _response(204)
        self.store.copy_object("docs/a.txt", "docs/b.txt")

        self.request.return_value = _response(412, b"destination exists")
        with self.assertRaises(DavOperationError) as cm:
            self.store.copy_object("docs/a.txt", "docs/b.txt")
        self.assertEqual(cm.exception.status, 412)
        self.assertEqual(cm.exception.body, "destination exists")

    def test_head_object(self):
        self.request.return_value = _response(
            200,
            headers={
                "Content-Length": "42",
                "Content-Type": "text/plain",
                "Last-Modified": "Mon, 01 Jan 2024 00:00:00 GMT",
            },
        )
        result = self.store.head_object("docs/readme.txt")
        self.assertEqual(result.content_length, 42)
        self.assertEqual(result.content_type, "text/plain")
        self.assertEqual(result.last_modified, "Mon, 01 Jan 2024 00:00:00 GMT")

        method, url, headers, _ = self._sent()
        self.assertEqual(method, "HEAD")
        self.assertEqual(url, f"{ENDPOINT}/backups/docs/readme.txt")
        self.assertEqual(headers, {"Authorization": AUTHORIZATION})

    def test_head_object_defaults(self):
        self.request.return_value = _response(200)
        result = self.store.head_object("docs/readme.txt")
        self.assertEqual(result.content_length, 0)
        self.assertEqual(result.content_type, "application/octet-stream")
        self.assertEqual(result.last_modified, "")

    def test_head_object_absent(self):
        self.request.return_value = _response(404)
        self.assertIsNone(self.store.head_object("missing.txt"))

        self.request.return_value = _response(500)
        with self.assertRaises(DavOperationError) as cm:
            self.store.head_object("missing.txt")
        self.assertEqual(cm.exception.operation, "head_object")

    def test_status_classification_is_stable(self):
        for _ in range(3):
            self.request.return_value = _response(404)
            self.assertIsNone(self.store.head_object("missing.txt"))
            self.request.return_value = _response(204)
            self.assertIsNone(self.store.delete_object("a"))
            self.request.return_value = _response(409)
            with self.assertRaises(DavOperationError):
                self.store.create_folder("a/b")

    def test_transport_errors(self):
        self.request.side_effect = NewConnectionError(None, "Connection refused")
        with self.assertRaises(DavOperationError) as cm:
            self.store.list_objects("docs/")
        self.assertEqual(cm.exception.operation, "list_objects")
        self.assertIsNone(cm.exception.status)
        self.assertIsInstance(cm.exception.__cause__, NewConnectionError)

        self.request.side_effect = ProtocolError("Connection aborted")
        with self.assertRaises(DavOperationError) as cm:
            self.store.put_object("a", b"data")
        self.assertEqual(cm.exception.operation, "put_object")

    def test_authorization_recomputed(self):
        self.request.return_value = _response(204)
        self.store.delete_object("a")
        self.store.delete_object("b")
        first, second = self.request.call_args_list
        self.assertEqual(first.kwargs["headers"]["Authorization"], AUTHORIZATION)
        self.assertEqual(second.kwargs["headers"]["Authorization"], AUTHORIZATION)
        self.assertIsNot(first.kwargs["headers"], second.kwargs["headers"])

    def test_get_signed_url(self):
        self.assertEqual(self.store.get_signed_url("docs/a.txt"), f"{ENDPOINT}/backups/docs/a.txt")
        self.assertEqual(
            self.store.get_signed_url("/docs/a.txt", expires_in=10), f"{ENDPOINT}/backups/docs/a.txt"
        )
        self.request.assert_not_called()

    def test_multipart_upload(self):
        upload = self.store.initiate_multipart_upload("docs/big.bin", "application/x-binary")
        self.assertIsInstance(upload, MultipartUpload)
        self.assertEqual(upload.mode, UploadMode.SINGLE_SHOT)
        self.assertFalse(upload.is_resumable)
        self.assertEqual(upload.key, "docs/big.bin")
        self.assertEqual(upload.content_type, "application/x-binary")
        self.assertTrue(str(upload).startswith("webdav-"))
        self.assertTrue(upload.upload_id[len("webdav-") :].isdigit())

        parts = [
            self.store.upload_part("docs/big.bin", upload, part_number, b"chunk")
            for part_number in (1, 2, 3)
        ]
        self.assertEqual(parts, [UploadPart(1, "1"), UploadPart(2, "2"), UploadPart(3, "3")])

        self.assertIsNone(self.store.complete_multipart_upload("docs/big.bin", upload, parts))
        self.assertIsNone(self.store.abort_multipart_upload("docs/big.bin", str(upload)))
        self.assertEqual(
            self.store.get_signed_upload_part_url("docs/big.bin", upload, 1),
            f"{ENDPOINT}/backups/docs/big.bin",
        )

        # None of the multipart operations talks to the server.
        self.request.assert_not_called()


class DavObjectStoreConfigTestCase(unittest.TestCase):
    """Test the creation of stores."""

    def test_no_base_path(self):
        store = DavObjectStore(DavConfig({"endpoint": "https://dav.example.org/", "username": "u"}))
        self.assertEqual(store.get_signed_url("/a/b.txt"), "https://dav.example.org/a/b.txt")

    def test_token(self):
        store = DavObjectStore(DavConfig({"endpoint": "https://dav.example.org", "token": "ABCDE"}))
        with unittest.mock.patch.object(store._client._pool_manager, "request") as request:
            request.return_value = _response(204)
            store.delete_object("a")
            self.assertEqual(request.call_args.kwargs["headers"]["Authorization"], "Bearer ABCDE")

        # Tokens are never sent in clear text.
        for endpoint in ("http://dav.example.org", "dav://dav.example.org"):
            with self.assertRaises(ValueError):
                DavObjectStore(DavConfig({"endpoint": endpoint, "token": "ABCDE"}))

    def test_custom_authorizer(self):
        class StaticAuthorizer:
            def set_authorization(self, headers: dict[str, str]) -> None:
                headers["Authorization"] = "Digest xyz"

        store = DavObjectStore(DavConfig({"endpoint": "https://dav.example.org"}), StaticAuthorizer())
        with unittest.mock.patch.object(store._client._pool_manager, "request") as request:
            request.return_value = _response(204)
            store.delete_object("a")
            self.assertEqual(request.call_args.kwargs["headers"]["Authorization"], "Digest xyz")

    def test_from_config_file(self):
        pool = DavConfigPool()
        pool._configs[ENDPOINT] = DavConfig({"endpoint": ENDPOINT, "base_path": "root"})
        with unittest.mock.patch("webdavs3.dav.DavConfigPool", return_value=pool) as mock_pool:
            store = DavObjectStore.from_config_file(f"{ENDPOINT}/", "WEBDAVS3_CONFIG")
        mock_pool.assert_called_once_with("WEBDAVS3_CONFIG")
        self.assertEqual(store.config.base_path, "root")
        self.assertIsInstance(store._client, DavClient)

    def test_missing_trusted_authorities(self):
        config = DavConfig({"endpoint": "https://dav.example.org", "trusted_authorities": "/does/not/exist"})
        with self.assertRaises(FileNotFoundError):
            DavObjectStore(config)


if __name__ == "__main__":
    unittest.main()
