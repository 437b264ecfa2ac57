"""Binary attachment responses."""
from urllib.parse import quote

from fastapi.responses import Response

# Printable ASCII except the escape character itself.
_HEADER_SAFE = "".join(chr(c) for c in range(0x20, 0x7F) if chr(c) != "%")


def _ascii_fallback(filename: str) -> str:
    return "".join(c if c.isascii() and c.isprintable() and c not in '"\\' else "_" for c in filename)


def content_disposition(filename: str) -> str:
    """``attachment`` header value with a quoted name; RFC 6266 ``filename*`` for non-ASCII names."""
    fallback = _ascii_fallback(filename)
    value = f'attachment; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return value


def header_value(value: str) -> str:
    """Percent-encode anything outside printable ASCII; header values go out as latin-1."""
    return quote(value, safe=_HEADER_SAFE)


def attachment_response(data: bytes, filename: str, headers: dict[str, str] | None = None) -> Response:
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": content_disposition(filename), **(headers or {})},
    )
