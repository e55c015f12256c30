"""
Translation of the inbound request body into the outbound payload.

Exactly one payload variant is produced per request:

- ``EmptyPayload`` for methods that carry no body
- ``MultipartPayload`` for multipart/form-data (plain fields + uploaded files)
- ``UrlEncodedPayload`` for application/x-www-form-urlencoded
- ``RawPayload`` for anything else
"""

import enum
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    BinaryIO,
    Dict,
    List,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import urlencode

from fastapi import Request
from starlette.datastructures import FormData, UploadFile

from relay.app_proxy.config import ProxyConfig
from relay.app_proxy.headers import MULTIPART_FORM_DATA

FORM_URLENCODED = "application/x-www-form-urlencoded"
BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class UploadStatus(enum.Enum):
    OK = "upload OK"
    TOO_LARGE = "upload too large"
    NO_FILE = "no file uploaded"


@dataclass
class UploadedFile:
    filename: str
    content_type: str
    file: BinaryIO
    size: int
    status: UploadStatus = UploadStatus.OK


@dataclass
class InboundForm:
    """Parsed form body: plain fields in arrival order and file uploads by field."""

    fields: List[Tuple[str, str]] = field(default_factory=list)
    files: Dict[str, Union[UploadedFile, List[UploadedFile]]] = field(
        default_factory=dict
    )


@dataclass(frozen=True)
class PlainField:
    name: str
    value: str


@dataclass(frozen=True)
class FileField:
    name: str
    filename: str
    content_type: str
    source: BinaryIO


@dataclass(frozen=True)
class EmptyPayload:
    def request_kwargs(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class RawPayload:
    content: bytes

    def request_kwargs(self) -> Dict[str, Any]:
        return {"content": self.content}


@dataclass(frozen=True)
class UrlEncodedPayload:
    content: str

    def request_kwargs(self) -> Dict[str, Any]:
        return {"content": self.content}


@dataclass(frozen=True)
class MultipartPayload:
    fields: List[Union[PlainField, FileField]]

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def request_kwargs(self) -> Dict[str, Any]:
        # Plain fields go through ``files`` too, as filename-less parts, so the
        # body stays multipart even when no file survived.
        parts = []
        for f in self.fields:
            if isinstance(f, PlainField):
                parts.append((f.name, (None, f.value)))
            else:
                parts.append(
                    (f.name, (f.filename, f.source, f.content_type or None))
                )
        if not parts:
            return {}
        return {"files": parts}


Payload = Union[EmptyPayload, RawPayload, UrlEncodedPayload, MultipartPayload]


def build_multipart_fields(form: InboundForm) -> List[Union[PlainField, FileField]]:
    fields: List[Union[PlainField, FileField]] = [
        PlainField(name, value) for name, value in form.fields
    ]
    for name, entry in form.files.items():
        if isinstance(entry, list):
            # No array fields on the wire: each entry keeps its inbound index
            for index, upload in enumerate(entry):
                if upload.status is UploadStatus.OK:
                    fields.append(_file_field(f"{name}[{index}]", upload))
        elif entry.status is UploadStatus.OK:
            fields.append(_file_field(name, entry))
    return fields


def _file_field(name: str, upload: UploadedFile) -> FileField:
    return FileField(
        name=name,
        filename=upload.filename,
        content_type=upload.content_type,
        source=upload.file,
    )


def translate_body(
    method: str,
    content_type: Optional[str],
    *,
    form: Optional[InboundForm] = None,
    body: bytes = b"",
) -> Payload:
    if method.upper() not in BODY_METHODS:
        return EmptyPayload()

    content_type = content_type or ""
    form = form or InboundForm()

    if MULTIPART_FORM_DATA in content_type:
        return MultipartPayload(build_multipart_fields(form))
    if FORM_URLENCODED in content_type:
        return UrlEncodedPayload(urlencode(form.fields))
    return RawPayload(body)


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    position = upload.file.tell()
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(position)
    return size


def _uploaded_file(upload: UploadFile, max_upload_size: Optional[int]) -> UploadedFile:
    size = _upload_size(upload)
    if not upload.filename:
        status = UploadStatus.NO_FILE
    elif max_upload_size is not None and size > max_upload_size:
        status = UploadStatus.TOO_LARGE
    else:
        status = UploadStatus.OK
    return UploadedFile(
        filename=upload.filename or "",
        content_type=upload.content_type or "",
        file=upload.file,
        size=size,
        status=status,
    )


def collect_form(form: FormData, max_upload_size: Optional[int] = None) -> InboundForm:
    """
    Group Starlette form data into plain fields and file uploads.

    A file field sent as ``name[]`` or repeated under the same name becomes a
    list stored under the bare name; a single ``name`` stays a single upload.
    """
    collected = InboundForm()
    grouped: Dict[str, List[UploadedFile]] = {}
    array_style = set()

    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            key = name
            if name.endswith("[]"):
                key = name[:-2]
                array_style.add(key)
            grouped.setdefault(key, []).append(_uploaded_file(value, max_upload_size))
        else:
            collected.fields.append((name, value))

    for key, uploads in grouped.items():
        if key in array_style or len(uploads) > 1:
            collected.files[key] = uploads
        else:
            collected.files[key] = uploads[0]
    return collected


@asynccontextmanager
async def inbound_payload(
    request: Request, config: ProxyConfig
) -> AsyncIterator[Payload]:
    """
    Read the inbound body as the translator needs it and yield the payload.

    Upload temp files stay open for the duration of the block and are closed
    when it exits, whichever way it exits.
    """
    method = request.method.upper()
    content_type = request.headers.get("content-type", "")

    if method not in BODY_METHODS:
        yield EmptyPayload()
        return

    if MULTIPART_FORM_DATA in content_type or FORM_URLENCODED in content_type:
        async with request.form() as form:
            yield translate_body(
                method,
                content_type,
                form=collect_form(form, config.max_upload_size),
            )
        return

    yield translate_body(method, content_type, body=await request.body())
