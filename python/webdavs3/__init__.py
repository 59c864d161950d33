# This file is part of webdav-s3.
#
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

"""S3-like object storage interface to webDAV servers."""

from .dav import DavObjectStore, DavOperationError
from .davutils import BasicAuthorizer, DavConfig, DavConfigPool, TokenAuthorizer, resolve_path
from .objects import HeadObjectResult, ListObjectsResult, MultipartUpload, ObjectEntry, UploadMode, UploadPart

__version__ = "0.1.0"
