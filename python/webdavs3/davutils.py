# This file is part of webdav-s3.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

from __future__ import annotations

import base64
import logging
import os
import re
import stat
import xml.etree.ElementTree as eTree
from http import HTTPStatus
from typing import BinaryIO, Protocol
from urllib.parse import quote, unquote, urlparse
from xml.sax.saxutils import unescape

import yaml
from astropy import units as u
from urllib3 import PoolManager
from urllib3.response import HTTPResponse
from urllib3.util import Url, parse_url

from lsst.utils.timer import time_this

# Use the same logger than `dav.py`.
log = logging.getLogger(f"""{__name__.replace(".davutils", ".dav")}""")

# Runs of two or more consecutive path separators.
_separators_rex = re.compile(r"/{2,}")

# Entity references which are decoded in the text of the PROPFIND response
# properties, in addition to '&lt;', '&gt;' and '&amp;'.
_xml_entities = {"&quot;": '"', "&apos;": "'"}


def resolve_path(base_path: str | None, key: str | None) -> str:
    """Join the root path of an endpoint and the key of an object into the
    path of the resource to send to the server.

    A base path of the form "/root//dir/" and a key of the form "/a//b" would
    be resolved as "root/dir/a/b". The returned path never starts by "/" and
    never contains consecutive "/". A trailing "/" in `key` is preserved
    since it designates a collection.

    Parameters
    ----------
    base_path : `str`, optional
        Root path configured for the endpoint (e.g., '/backups/').
    key : `str`, optional
        Key of the object, relative to `base_path` (e.g., 'docs/readme.txt').

    Returns
    -------
    path : `str`
        Resolved path (e.g., 'backups/docs/readme.txt').
    """
    base = _separators_rex.sub("/", base_path or "").strip("/")
    path = _separators_rex.sub("/", key or "").lstrip("/")
    return f"{base}/{path}" if base else path


def normalize_endpoint(url: str) -> str:
    """Normalize the URL of a webDAV endpoint so that its scheme be 'http'
    or 'https' and its path never ends by "/".

    Parameters
    ----------
    url : `str`
        URL to normalize (e.g., 'davs://example.org:1234//remote.php/dav/').

    Returns
    -------
    url : `str`
        Normalized URL (e.g. 'https://example.org:1234/remote.php/dav').
    """
    parsed = parse_url(url)
    if parsed.scheme is None:
        scheme = "http"
    else:
        scheme = parsed.scheme.replace("dav", "http")
    path = _separators_rex.sub("/", parsed.path or "").rstrip("/")
    return Url(scheme=scheme, host=parsed.host, port=parsed.port, path=path).url


def make_url(endpoint: str, path: str) -> str:
    """Return the URL of the resource at `path` relative to `endpoint`.

    Parameters
    ----------
    endpoint : `str`
        Normalized endpoint URL, as returned by `normalize_endpoint`.
    path : `str`
        Resolved path, as returned by `resolve_path`. It is percent-encoded
        in the returned URL.
    """
    return f"{endpoint}/{quote(path, safe='/')}" if path else endpoint


def expand_vars(path: str | None) -> str | None:
    """Expand the environment variables in `path` and return the path with
    the value of the variable expanded.

    Parameters
    ----------
    path : `str` or `None`
        Abolute or relative path which may include an environment variable
        (e.g. '$HOME/path/to/my/file').

    Returns
    -------
    path: `str`
        The path with the values of the environment variables expanded.
    """
    return None if path is None else os.path.expandvars(path)


class DavConfig:
    """Settings a webDAV client must use when interacting with a particular
    storage endpoint.

    Instances of this class are immutable.

    Parameters
    ----------
    config : `dict[str, str]`
        Dictionary of settings for the webDAV endpoint which URL is
        `config["endpoint"]`, for instance:

            {
                "endpoint": "https://dav.example.org/remote.php/dav/files/me",
                "username": "me",
                "password": "secret",
                "base_path": "/backups",
            }

        Only "endpoint" is required.
    """

    # Path prepended to every key before it is sent to the server.
    DEFAULT_BASE_PATH: str = ""

    # Token the webdav client must send to the server for authentication
    # purposes, instead of the username and password. The token may be the
    # value of the token itself or the path to a file where the token can be
    # found.
    DEFAULT_TOKEN: str | None = None

    # Path to a directory or certificate bundle file where the certificates
    # of the trusted certificate authorities can be found.
    # If None, the certificates trusted by the system are used.
    DEFAULT_TRUSTED_AUTHORITIES: str | None = None

    # If this option is set to True, memory usage is computed and reported
    # when executing in debug mode. Computing memory usage is costly, so only
    # set this when debugging.
    DEFAULT_COLLECT_MEMORY_USAGE: bool = False

    def __init__(self, config: dict | None = None) -> None:
        if config is None:
            config = {}

        if (endpoint := expand_vars(config.get("endpoint"))) is None:
            raise ValueError("configuration of a webDAV endpoint requires a value for 'endpoint'")

        self._endpoint: str = normalize_endpoint(endpoint)

        # Credentials are used verbatim: a password may legitimately contain
        # a "$" character.
        self._username: str = str(config.get("username", ""))
        self._password: str = str(config.get("password", ""))
        self._base_path: str = str(expand_vars(config.get("base_path", DavConfig.DEFAULT_BASE_PATH)) or "")
        self._token: str | None = expand_vars(config.get("token", DavConfig.DEFAULT_TOKEN))
        self._trusted_authorities: str | None = expand_vars(
            config.get("trusted_authorities", DavConfig.DEFAULT_TRUSTED_AUTHORITIES)
        )
        self._collect_memory_usage: bool = bool(
            config.get("collect_memory_usage", DavConfig.DEFAULT_COLLECT_MEMORY_USAGE)
        )

    def __repr__(self) -> str:
        return f"DavConfig(endpoint={self._endpoint!r}, username={self._username!r})"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def username(self) -> str:
        return self._username

    @property
    def password(self) -> str:
        return self._password

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def trusted_authorities(self) -> str | None:
        return self._trusted_authorities

    @property
    def collect_memory_usage(self) -> bool:
        return self._collect_memory_usage


class DavConfigPool:
    """Registry of settings for all known webDAV endpoints.

    Parameters
    ----------
    filename : `str`, optional
        Name of an environment variable or path of a file to load the
        configuration from. If `filename` is the name of a defined environment
        variable, its value is used as the path of the file. A path can
        include environment variables (e.g. '$HOME/path/to/config.yaml') or
        '~' (e.g. '~/path/to/config.yaml').

        The configuration file is a YAML file with the structure below:

          - endpoint: "davs://webdav1.example.org:1234/"
            username: "me"
            password: "secret"
            base_path: "/backups"
            trusted_authorities: "/etc/grid-security/certificates"
            collect_memory_usage: false

          - endpoint: "https://webdav2.example.org/remote.php/dav"
            token: "/path/to/bearer/token/file"
            ...

        Only "endpoint" is required for each item.
    """

    def __init__(self, filename: str | None = None) -> None:
        # The key of this dictionary is the normalized URL of the webDAV
        # endpoint, e.g. "https://host.example.org:1234/remote.php/dav"
        self._configs: dict[str, DavConfig] = {}

        if filename is None:
            return

        if (value := os.getenv(filename)) is not None:
            filename = value

        filename = os.path.expanduser(os.path.expandvars(filename))
        with open(filename) as file:
            for config_item in yaml.safe_load(file) or []:
                config = DavConfig(config_item)
                if config.endpoint in self._configs:
                    # We already have a configuration for the same
                    # endpoint. That is likely a human error in
                    # the configuration file.
                    raise ValueError(
                        f"""configuration file {filename} contains two configurations for """
                        f"""endpoint {config.endpoint}"""
                    )

                self._configs[config.endpoint] = config

    def __len__(self) -> int:
        return len(self._configs)

    def get_config_for_endpoint(self, endpoint: str) -> DavConfig:
        """Return the configuration of the webDAV endpoint at `endpoint`.

        Parameters
        ----------
        endpoint : `str`
            URL of the endpoint. It is normalized before lookup.
        """
        normalized: str = normalize_endpoint(endpoint)
        if (config := self._configs.get(normalized)) is not None:
            return config

        raise ValueError(f"No configuration found for webDAV endpoint {normalized}")


class Authorizer(Protocol):
    """Interface of the credential providers attaching an 'Authorization'
    header to each request.
    """

    def set_authorization(self, headers: dict[str, str]) -> None: ...


class BasicAuthorizer:
    """Attach a HTTP basic authentication 'Authorization' header to each
    request.

    Parameters
    ----------
    username : `str`
        User name.
    password : `str`
        Password of the user.
    """

    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    def set_authorization(self, headers: dict[str, str]) -> None:
        """Add the 'Authorization' header to `headers`.

        The encoded credentials are computed again each time.

        Parameters
        ----------
        headers : `dict` [ `str`, `str` ]
            Dict to augment with authorization information.
        """
        credentials = f"{self._username}:{self._password}".encode()
        headers["Authorization"] = f"Basic {base64.b64encode(credentials).decode('ascii')}"


class TokenAuthorizer:
    """Attach a bearer token 'Authorization' header to each request.

    Parameters
    ----------
    token : `str`
        Can be either the path to a local file which contains the
        value of the token or the token itself. If `token` is a file
        it must be protected so that only the owner can read and write it.
    """

    def __init__(self, token: str) -> None:
        self._token: str = token
        self._path: str | None = None
        self._mtime: float = -1.0

        if os.path.isfile(token):
            self._path = os.path.abspath(token)
            if not is_protected(self._path):
                raise PermissionError(
                    f"""Authorization token file at {self._path} must be protected for access only """
                    """by its owner"""
                )
            self._refresh()

    def _refresh(self) -> None:
        """Read the token file (if any) if its modification time is more recent
        than the last time we read it.
        """
        if self._path is None:
            return

        if (mtime := os.stat(self._path).st_mtime) > self._mtime:
            log.debug("Reading authorization token from file %s", self._path)
            self._mtime = mtime
            with open(self._path) as f:
                self._token = f.read().rstrip("\n")

    def set_authorization(self, headers: dict[str, str]) -> None:
        """Add the 'Authorization' header to `headers`.

        Parameters
        ----------
        headers : `dict` [ `str`, `str` ]
            Dict to augment with authorization information.
        """
        self._refresh()
        headers["Authorization"] = f"Bearer {self._token}"


def is_protected(filepath: str) -> bool:
    """Return true if the permissions of file at filepath only allow for
    access by its owner.

    Parameters
    ----------
    filepath : `str`
        Path of a local file.
    """
    if not os.path.isfile(filepath):
        return False

    mode = stat.S_IMODE(os.stat(filepath).st_mode)
    owner_accessible = bool(mode & stat.S_IRWXU)
    group_accessible = bool(mode & stat.S_IRWXG)
    other_accessible = bool(mode & stat.S_IRWXO)
    return owner_accessible and not group_accessible and not other_accessible


def make_authorizer(config: DavConfig) -> Authorizer:
    """Return the credential provider to use with the endpoint configured
    by `config`.

    A token, if configured, takes precedence over the username and password.

    Raises
    ------
    ValueError
        Raised if a token is configured for an endpoint not using https.
    """
    if config.token is not None:
        # Bearer tokens are only sent over encrypted connections.
        if not config.endpoint.startswith("https://"):
            raise ValueError(f"A token can only be used with an https endpoint, not {config.endpoint}")

        return TokenAuthorizer(config.token)

    return BasicAuthorizer(config.username, config.password)


class DavResponseError(ValueError):
    """Raised when the response of a webDAV server cannot be used."""


class DavStatusError(DavResponseError):
    """Raised when the status of the response to a request is not among the
    statuses accepted for that request.

    Parameters
    ----------
    method : `str`
        Request method, e.g. 'PUT'.
    url : `str`
        Target URL of the request.
    status : `int`
        Status of the response.
    reason : `str`, optional
        Reason phrase of the response.
    body : `str`, optional
        Text of the response body, if it was read.
    """

    def __init__(self, method: str, url: str, status: int, reason: str | None = None, body: str = "") -> None:
        self.method = method
        self.url = url
        self.status = status
        self.reason = reason or ""
        self.body = body
        message = f"Unexpected response to {method} {url}: status {status} {self.reason}".rstrip()
        if body:
            message += f" [{body}]"
        super().__init__(message)


def is_ok(status: int) -> bool:
    """Return True if `status` is in the successful 2xx range."""
    return HTTPStatus.OK <= status < HTTPStatus.MULTIPLE_CHOICES


def response_text(resp: HTTPResponse) -> str:
    """Return the body of `resp` as text, or an empty string if the body
    is empty or cannot be read.
    """
    data = resp.data
    if not data:
        return ""

    return data.decode("utf-8", errors="replace").strip()


class DavClient:
    """WebDAV client, configured to talk to a single storage endpoint.

    Each method sends exactly one request and raises `DavStatusError` if the
    status of the response is not accepted. Transport errors are raised
    as the ``urllib3.exceptions.HTTPError`` raised by ``urllib3``. No request
    is ever retried.

    Instances of this class are thread-safe.

    Parameters
    ----------
    config : `DavConfig`
        Configuration to initialize this client.
    authorizer : `Authorizer`, optional
        Credential provider. If None, it is built from `config`.
    """

    # Body of the PROPFIND requests for listing a collection. Request only
    # the DAV live properties we are explicitly interested in.
    PROPFIND_BODY: str = (
        """<?xml version="1.0" encoding="utf-8" ?>\n"""
        """<D:propfind xmlns:D="DAV:">\n"""
        """  <D:prop>\n"""
        """    <D:displayname/>\n"""
        """    <D:getcontentlength/>\n"""
        """    <D:getlastmodified/>\n"""
        """    <D:resourcetype/>\n"""
        """  </D:prop>\n"""
        """</D:propfind>"""
    )

    def __init__(self, config: DavConfig, authorizer: Authorizer | None = None) -> None:
        # Configuration for the storage endpoint.
        self._config: DavConfig = config

        self._authorizer: Authorizer = make_authorizer(config) if authorizer is None else authorizer

        # Prepare the trusted authorities certificates
        ca_certs, ca_cert_dir = None, None
        if self._config.trusted_authorities is not None:
            if os.path.isdir(self._config.trusted_authorities):
                ca_cert_dir = self._config.trusted_authorities
            elif os.path.isfile(self._config.trusted_authorities):
                ca_certs = self._config.trusted_authorities
            else:
                raise FileNotFoundError(
                    f"Trusted authorities file or directory {self._config.trusted_authorities} does not exist"
                )

        self._pool_manager = PoolManager(
            # Requests are sent once: a failed request is reported to the
            # caller, redirections included.
            retries=False,
            # We require verification of the server certificate.
            cert_reqs="CERT_REQUIRED",
            # Directory where the certificates of the trusted certificate
            # authorities can be found. The contents of that directory
            # must be as expected by OpenSSL.
            ca_cert_dir=ca_cert_dir,
            # Path to a file of concatenated CA certificates in PEM format.
            ca_certs=ca_certs,
        )

        # Parser of PROPFIND responses.
        self._propfind_parser: DavPropfindParser = DavPropfindParser()

    @property
    def config(self) -> DavConfig:
        return self._config

    def url_for(self, path: str) -> str:
        """Return the URL of the resource at the resolved `path`."""
        return make_url(self._config.endpoint, path)

    def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: BinaryIO | bytes | str | None = None,
        preload_content: bool = True,
    ) -> HTTPResponse:
        """Send a generic HTTP request and return the response.

        Parameters
        ----------
        method : `str`
            Request method, e.g. 'GET', 'PUT', 'PROPFIND'.
        url : `str`
            Target URL.
        headers : `dict[str, str]`, optional
            Headers to sent with the request. The 'Authorization' header is
            added to them.
        body : `bytes` or `str` or `None`, optional
            Request body.
        preload_content : `bool`, optional
            If True, the response body is downloaded and can be retrieved
            via the returned response `.data` property. If False, the
            caller needs to call `.read()` on the returned response object to
            download the body, either entirely in one call or by chunks.

        Returns
        -------
        resp: `HTTPResponse`
            Response to the request as received from the server.
        """
        headers = {} if headers is None else dict(headers)
        self._authorizer.set_authorization(headers)

        log.debug("sending request %s %s", method, url)

        with time_this(
            log,
            msg="%s %s",
            args=(
                method,
                url,
            ),
            mem_usage=self._config.collect_memory_usage,
            mem_unit=u.mebibyte,
        ):
            resp = self._pool_manager.request(
                method,
                url,
                body=body,
                headers=headers,
                preload_content=preload_content,
                redirect=False,
            )

        return resp

    def propfind(self, url: str, depth: str = "1") -> HTTPResponse:
        """Send a HTTP PROPFIND request and return the response.

        Parameters
        ----------
        url : `str`
            Target URL.
        depth : `str`, optional
            Value of the 'Depth' header.
        """
        headers = {
            "Content-Type": "application/xml",
            "Depth": depth,
        }
        resp = self._request("PROPFIND", url, headers=headers, body=self.PROPFIND_BODY)
        if resp.status == HTTPStatus.MULTI_STATUS or is_ok(resp.status):
            return resp

        raise DavStatusError("PROPFIND", url, resp.status, resp.reason, response_text(resp))

    def read_dir(self, url: str, path: str) -> list[DavProperty]:
        """Return the properties of the files and directories contained in
        the directory located at `url`.

        Parameters
        ----------
        url : `str`
            Target URL.
        path : `str`
            Resolved path of the directory, as used to build `url`.

        Returns
        -------
        result: `list[DavProperty]`
            Properties of each file or directory within `url`, in the order
            the server sent them. The directory itself is not included.
        """
        resp = self.propfind(url, depth="1")

        # The response includes an entry for the directory we are
        # traversing. Depending on the server, its href may be relative to the
        # endpoint or absolute, with or without a final "/".
        own_paths = {path.strip("/"), unquote(parse_url(url).path or "").strip("/")}

        result = []
        for property in self._propfind_parser.parse(resp.data or b""):
            if unquote(urlparse(property.href).path).strip("/") in own_paths:
                continue

            result.append(property)

        return result

    def get(self, url: str) -> HTTPResponse:
        """Send a HTTP GET request and return the response without reading
        its body.

        Parameters
        ----------
        url : `str`
            Target URL.

        Returns
        -------
        resp : `HTTPResponse`
            Response which body is to be read by the caller, e.g. via
            ``resp.read()`` or ``resp.stream()``. The caller should call
            ``resp.release_conn()`` when done.
        """
        resp = self._request("GET", url, preload_content=False)
        if is_ok(resp.status):
            return resp

        body = resp.read().decode("utf-8", errors="replace").strip()
        resp.release_conn()
        raise DavStatusError("GET", url, resp.status, resp.reason, body)

    def put(self, url: str, data: BinaryIO | bytes | str, content_type: str | None = None) -> None:
        """Send a HTTP PUT request to create or rewrite the file at `url`.

        Parameters
        ----------
        url : `str`
            Target URL.
        data : `BinaryIO` or `bytes` or `str`
            Request body. Text is encoded in UTF-8.
        content_type : `str`, optional
            Value of the 'Content-Type' header. Defaults to
            'application/octet-stream'.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        headers = {"Content-Type": content_type or "application/octet-stream"}
        resp = self._request("PUT", url, headers=headers, body=data)
        if not is_ok(resp.status):
            raise DavStatusError("PUT", url, resp.status, resp.reason, response_text(resp))

    def head(self, url: str) -> HTTPResponse | None:
        """Send a HTTP HEAD request and return the response, or None if there
        is no resource at `url`.

        Parameters
        ----------
        url : `str`
            Target URL.
        """
        resp = self._request("HEAD", url)
        if resp.status == HTTPStatus.NOT_FOUND:
            return None

        if is_ok(resp.status):
            return resp

        raise DavStatusError("HEAD", url, resp.status, resp.reason)

    def delete(self, url: str) -> None:
        """Delete the file or directory at `url`.

        Parameters
        ----------
        url : `str`
            Target URL.

        Notes
        -----
        If `url` designates a directory, some webDAV servers recursively
        remove the directory and its contents. Others, only remove the
        directory if it is empty.
        """
        resp = self._request("DELETE", url)
        if resp.status != HTTPStatus.NO_CONTENT and not is_ok(resp.status):
            raise DavStatusError("DELETE", url, resp.status, resp.reason, response_text(resp))

    def mkcol(self, url: str) -> None:
        """Create a directory at `url`.

        Parameters
        ----------
        url : `str`
            Target URL. It must end by "/".
        """
        resp = self._request("MKCOL", url)
        if resp.status != HTTPStatus.CREATED and not is_ok(resp.status):
            raise DavStatusError("MKCOL", url, resp.status, resp.reason, response_text(resp))

    def copy(self, source_url: str, destination_url: str) -> None:
        """Copy the resource at `source_url` to `destination_url` in the same
        storage endpoint.

        Parameters
        ----------
        source_url : `str`
            URL of the source resource.
        destination_url : `str`
            URL of the destination. If a resource exists at that URL, the
            copy fails.
        """
        headers = {
            "Destination": destination_url,
            "Overwrite": "F",
        }
        resp = self._request("COPY", source_url, headers=headers)
        if resp.status not in (HTTPStatus.CREATED, HTTPStatus.NO_CONTENT) and not is_ok(resp.status):
            raise DavStatusError("COPY", source_url, resp.status, resp.reason, response_text(resp))


class DavProperty:
    """Helper class to encapsulate select live DAV properties of a single
    resource, as retrieved via a PROPFIND request.

    Parameters
    ----------
    response : `eTree.Element` or `None`
        The XML response defining the DAV property.

    Raises
    ------
    ValueError
        Raised if the response has no 'href' or if its properties have
        unexpected values.
    """

    # Regular expression to compare against the 'status' element of a
    # PROPFIND response's 'propstat' element.
    _status_ok_rex = re.compile(r"^HTTP/\S+\s+200(\s|$)", re.IGNORECASE)

    def __init__(self, response: eTree.Element | None):
        self._href: str = ""
        self._displayname: str = ""
        self._collection: bool = False
        self._getlastmodified: str = ""
        self._getcontentlength: int = 0
        self._getetag: str | None = None

        if response is not None:
            self._parse(response)

    def _parse(self, response: eTree.Element) -> None:
        # Extract 'href'.
        if (element := response.find("./{DAV:}href")) is not None and element.text:
            self._href = _decode(element.text).strip()
        else:
            raise ValueError(
                "Property 'href' expected but not found in PROPFIND response: "
                f"{eTree.tostring(response, encoding='unicode')}"
            )

        for propstat in response.findall("./{DAV:}propstat"):
            # Only extract properties of interest with status OK. Properties
            # the server does not know about are reported with status 404.
            status = propstat.find("./{DAV:}status")
            if status is not None and not self._status_ok_rex.match(str(status.text).strip()):
                continue

            for prop in propstat.findall("./{DAV:}prop"):
                # Parse "collection".
                if prop.find("./{DAV:}resourcetype/{DAV:}collection") is not None:
                    self._collection = True

                # Parse "getlastmodified".
                if (element := prop.find("./{DAV:}getlastmodified")) is not None and element.text:
                    self._getlastmodified = _decode(element.text).strip()

                # Parse "getcontentlength".
                if (element := prop.find("./{DAV:}getcontentlength")) is not None and element.text:
                    self._getcontentlength = int(element.text.strip())
                    if self._getcontentlength < 0:
                        raise ValueError(f"Negative content length in PROPFIND response for {self._href}")

                # Parse "displayname".
                if (element := prop.find("./{DAV:}displayname")) is not None and element.text:
                    self._displayname = _decode(element.text)

                # Parse "getetag", which we don't request but some servers
                # send anyway.
                if (element := prop.find("./{DAV:}getetag")) is not None and element.text:
                    self._getetag = _decode(element.text).strip()

        # Force a size of 0 for collections.
        if self._collection:
            self._getcontentlength = 0

    @property
    def is_dir(self) -> bool:
        return self._collection

    @property
    def is_file(self) -> bool:
        return not self._collection

    @property
    def last_modified(self) -> str:
        # Kept as sent by the server, e.g. 'Wed, 12 Mar 2025 10:11:13 GMT'
        return self._getlastmodified

    @property
    def size(self) -> int:
        return self._getcontentlength

    @property
    def name(self) -> str:
        return self._displayname

    @property
    def href(self) -> str:
        return self._href

    @property
    def etag(self) -> str | None:
        return self._getetag


def _decode(text: str) -> str:
    """Decode the entity references left in `text` once the XML document
    was parsed.
    """
    return unescape(text, _xml_entities)


class DavPropfindParser:
    """Helper class to parse the response body of a PROPFIND request."""

    def parse(self, body: bytes) -> list[DavProperty]:
        """Parse the XML-encoded contents of the response body to a webDAV
        PROPFIND request.

        Parameters
        ----------
        body : `bytes`
            XML-encoded response body to a PROPFIND request.

        Returns
        -------
        responses : `list` [ `DavProperty` ]
            Parsed content of the response. Entries which cannot be parsed
            or which have no display name are not included.

        Raises
        ------
        DavResponseError
            Raised if `body` is not a XML document.
        """
        # A response body to a PROPFIND request is of the form (indented for
        # readability):
        #
        # <?xml version="1.0" encoding="UTF-8"?>
        # <D:multistatus xmlns:D="DAV:">
        #     <D:response>
        #         <D:href>/path/to/resource/</D:href>
        #         <D:propstat>
        #             <D:prop>
        #                 <D:displayname>resource</D:displayname>
        #                 <D:resourcetype>
        #                     <D:collection/>
        #                 </D:resourcetype>
        #                 <D:getlastmodified>
        #                     Fri, 27 Jan 2023 13:59:01 GMT
        #                 </D:getlastmodified>
        #             </D:prop>
        #             <D:status>HTTP/1.1 200 OK</D:status>
        #         </D:propstat>
        #         <D:propstat>
        #             <D:prop>
        #                 <D:getcontentlength/>
        #             </D:prop>
        #             <D:status>HTTP/1.1 404 Not Found</D:status>
        #         </D:propstat>
        #     </D:response>
        #     <D:response>
        #        ...
        #     </D:response>
        # </D:multistatus>
        #
        # Any namespace prefix may be bound to "DAV:".
        decoded_body: str = body.decode("utf-8", errors="replace").strip()
        try:
            multistatus = eTree.fromstring(decoded_body)
        except eTree.ParseError as e:
            raise DavResponseError(f"Unable to parse response for PROPFIND request: {e}") from e

        responses = []
        for response in multistatus.findall("./{DAV:}response"):
            try:
                property = DavProperty(response)
            except ValueError as e:
                log.debug("skipping entry of PROPFIND response: %s", e)
                continue

            # Entries with no display name are not resources we can list.
            if not property.name:
                log.debug("skipping entry of PROPFIND response with no displayname: %s", property.href)
                continue

            responses.append(property)

        return responses

