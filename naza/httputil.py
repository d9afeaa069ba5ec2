"""Reading HTTP-style messages (HTTP, RTSP) from streams, and small HTTP client helpers."""

import dataclasses
import json
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Optional

from naza.jsonutil import Json

HEADER_FIELD_CONTENT_LENGTH = "Content-Length"
HEADER_FIELD_CONTENT_TYPE = "application/json"


class HttpHeaderError(ValueError):
    """The header section of a message could not be read."""


class FirstLineError(ValueError):
    """A request line or status line could not be parsed."""


class ParamMissingError(ValueError):
    """A required JSON field is missing from a body."""


_TOKEN_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!#$%&'*+-.^_`|~"
)


def _canonical_key(key):
    if not key or any(c not in _TOKEN_CHARS for c in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


class Headers:
    """Multi-valued header fields with case-insensitive (canonicalised) names."""

    def __init__(self):
        self._fields = {}

    def add(self, key, value):
        self._fields.setdefault(_canonical_key(key), []).append(value)

    def get(self, key):
        """The first value of `key`, or an empty string."""
        values = self._fields.get(_canonical_key(key))
        return values[0] if values else ""

    def values(self, key):
        """All values of `key`, in the order they were added."""
        return list(self._fields.get(_canonical_key(key), ()))

    def items(self):
        return [(k, list(v)) for k, v in self._fields.items()]

    def _append_to_last(self, key, text):
        values = self._fields.get(_canonical_key(key))
        if values:
            values[-1] += text

    def __contains__(self, key):
        return _canonical_key(key) in self._fields

    def __iter__(self):
        return iter(self._fields)

    def __len__(self):
        return len(self._fields)

    def __repr__(self):
        return f"Headers({self._fields!r})"


@dataclass
class HttpMsg:
    req_method_or_resp_version: str = ""
    req_uri_or_resp_status_code: str = ""
    req_version_or_resp_reason: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""


@dataclass
class HttpRequestMsg:
    method: str = ""
    uri: str = ""
    version: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""


@dataclass
class HttpResponseMsg:
    version: str = ""
    status_code: str = ""
    reason: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""


def _read_line(reader):
    raw = reader.readline()
    if not raw:
        raise EOFError("unexpected end of stream while reading http header")
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw.decode("utf-8", "surrogateescape")


def read_http_header(reader):
    """Read the first line and header fields from a binary stream with readline().

    Returns ``(first_line, headers)``. A line without a colon is appended to
    the value of the previous field.
    """
    first_line = _read_line(reader)
    if not first_line:
        raise HttpHeaderError("nazahttp: read http header failed")

    headers = Headers()
    last_key = ""
    while True:
        line = _read_line(reader)
        if not line:
            break
        pos = line.find(":")
        if pos == -1:
            if last_key:
                headers._append_to_last(last_key, line)
            continue
        last_key = line[:pos].strip(" ")
        headers.add(last_key, line[pos + 1:].strip(" "))
    return first_line, headers


def _parse_first_line(line):
    f = line.find(" ")
    if f == -1:
        raise FirstLineError(f"nazahttp: parse first line failed. line={line!r}")
    s = line.find(" ", f + 1)
    if s == -1:
        return line[:f], line[f + 1:], ""
    if s + 1 == len(line):
        return line[:f], line[f + 1:s], ""
    return line[:f], line[f + 1:s], line[s + 1:]


def parse_http_request_line(line):
    """Split a request line into ``(method, uri, version)``."""
    return _parse_first_line(line)


def parse_http_status_line(line):
    """Split a status line into ``(version, status_code, reason)``."""
    return _parse_first_line(line)


def _read_exactly(reader, n):
    data = bytearray()
    while len(data) < n:
        chunk = reader.read(n - len(data))
        if not chunk:
            raise EOFError(f"unexpected end of stream. want={n}, got={len(data)}")
        data.extend(chunk)
    return bytes(data)


def read_http_message(reader):
    """Read a whole message; the body is read only when Content-Length is present."""
    first_line, headers = read_http_header(reader)
    item1, item2, item3 = _parse_first_line(first_line)
    msg = HttpMsg(item1, item2, item3, headers)

    content_length = headers.get(HEADER_FIELD_CONTENT_LENGTH)
    if not content_length:
        return msg
    length = int(content_length)
    if length < 0:
        raise ValueError(f"negative Content-Length. value={content_length}")
    msg.body = _read_exactly(reader, length)
    return msg


def read_http_request_message(reader):
    msg = read_http_message(reader)
    return HttpRequestMsg(
        method=msg.req_method_or_resp_version,
        uri=msg.req_uri_or_resp_status_code,
        version=msg.req_version_or_resp_reason,
        headers=msg.headers,
        body=msg.body,
    )


def read_http_response_message(reader):
    msg = read_http_message(reader)
    return HttpResponseMsg(
        version=msg.req_method_or_resp_version,
        status_code=msg.req_uri_or_resp_status_code,
        reason=msg.req_version_or_resp_reason,
        headers=msg.headers,
        body=msg.body,
    )


def unmarshal_request_json_body(body, *args):
    """Parse a JSON body (bytes or a readable stream), requiring the given key paths."""
    if hasattr(body, "read"):
        body = body.read()
    j = Json(body)
    for key in args:
        if not j.exist(key):
            raise ParamMissingError(f"nazahttp: param missing. key={key}")
    return json.loads(body)


def _open(request, timeout_ms):
    kwargs = {"timeout": timeout_ms / 1000} if timeout_ms > 0 else {}
    try:
        return urllib.request.urlopen(request, **kwargs)
    except urllib.error.HTTPError as exc:
        # Error statuses still carry a response; treat them like any other.
        return exc


def get_http_file(url, timeout_ms):
    """Fetch `url` and return the response body."""
    with _open(url, timeout_ms) as resp:
        return resp.read()


def download_http_file(url, save_to, timeout_ms):
    """Fetch `url` into the file `save_to`; return the number of bytes written."""
    with _open(url, timeout_ms) as resp, open(save_to, "wb") as fp:
        written = 0
        while True:
            chunk = resp.read(65536)
            if not chunk:
                return written
            fp.write(chunk)
            written += len(chunk)


def _to_jsonable(obj):
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


def post_json(url, info, timeout_ms=0):
    """POST `info` serialised as JSON and return the response."""
    data = json.dumps(info, default=_to_jsonable).encode("utf-8")
    request = urllib.request.Request(
        url, data=data, headers={"Content-Type": HEADER_FIELD_CONTENT_TYPE}, method="POST"
    )
    with _open(request, timeout_ms) as resp:
        body = resp.read()
        headers = Headers()
        for key, value in resp.headers.items():
            headers.add(key, value)
        version: Optional[int] = getattr(resp, "version", None) or 11
        return HttpResponseMsg(
            version=f"HTTP/{version // 10}.{version % 10}",
            status_code=str(resp.status),
            reason=str(resp.reason),
            headers=headers,
            body=body,
        )