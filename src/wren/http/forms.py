"""Form body parsing: url-encoded and multipart.

Url-encoded bodies use ``urllib.parse``. Multipart bodies need
``python-multipart`` (``pip install wren[forms]``); it is imported on
first use so plain JSON services do not pay for it.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

from wren.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class UploadFile:
    """A file uploaded through a multipart form, held in memory."""

    filename: str
    content_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    def save(self, path: str | Path) -> None:
        """Write the content to *path*. Parent directories must exist."""
        Path(path).write_bytes(self.content)


class FormData(Mapping[str, str]):
    """Immutable parsed form fields plus uploaded files.

    ``form["tag"]`` is the first value, ``form.get_list("tag")`` all of
    them, ``form.files["avatar"]`` an ``UploadFile``.
    """

    __slots__ = ("_fields", "_files")

    def __init__(
        self,
        fields: dict[str, list[str]] | None = None,
        files: dict[str, UploadFile] | None = None,
    ) -> None:
        object.__setattr__(self, "_fields", fields or {})
        object.__setattr__(self, "_files", files or {})

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._fields[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FormData({dict(self)!r}, files={sorted(self._files)!r})"

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._fields.get(key, ()))


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse *body* according to *content_type*.

    Raises:
        ValueError: The content type is not a form encoding, or a
            multipart body has no boundary.
        ConfigurationError: A multipart body arrived but
            ``python-multipart`` is not installed.
    """
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == "application/x-www-form-urlencoded":
        return FormData(parse_qs(body.decode("utf-8"), keep_blank_values=True))
    if media_type == "multipart/form-data":
        return _parse_multipart(body, content_type)
    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    try:
        from python_multipart.multipart import MultipartParser, parse_options_header
    except ImportError:
        msg = (
            "Multipart form parsing requires the 'python-multipart' package. "
            "Install it with: pip install wren[forms]"
        )
        raise ConfigurationError(msg) from None

    _, options = parse_options_header(content_type)
    boundary = options.get(b"boundary")
    if not boundary:
        msg = "Multipart form data is missing the boundary parameter"
        raise ValueError(msg)

    fields: dict[str, list[str]] = {}
    files: dict[str, UploadFile] = {}
    part: dict[str, Any] = {}

    def on_part_begin() -> None:
        part.clear()
        part.update(headers={}, data=bytearray(), field=b"", value=b"")

    def on_header_field(data: bytes, start: int, end: int) -> None:
        part["field"] += data[start:end]

    def on_header_value(data: bytes, start: int, end: int) -> None:
        part["value"] += data[start:end]

    def on_header_end() -> None:
        name = part["field"].decode("latin-1").lower()
        part["headers"][name] = part["value"].decode("latin-1")
        part["field"] = part["value"] = b""

    def on_part_data(data: bytes, start: int, end: int) -> None:
        part["data"].extend(data[start:end])

    def on_part_end() -> None:
        disposition = part["headers"].get("content-disposition", "")
        _, params = parse_options_header(disposition)
        name = params.get(b"name")
        if name is None:
            return
        field_name = name.decode("utf-8")
        filename = params.get(b"filename")
        if filename is not None:
            files[field_name] = UploadFile(
                filename=filename.decode("utf-8"),
                content_type=part["headers"].get("content-type", "application/octet-stream"),
                content=bytes(part["data"]),
            )
        else:
            value = part["data"].decode("utf-8", errors="replace")
            fields.setdefault(field_name, []).append(value)

    parser = MultipartParser(
        boundary,
        {
            "on_part_begin": on_part_begin,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
            "on_header_end": on_header_end,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
        },
    )
    parser.write(body)
    parser.finalize()
    return FormData(fields, files)
