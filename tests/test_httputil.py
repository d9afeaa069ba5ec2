import io
import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from naza.httputil import (
    FirstLineError,
    Headers,
    HttpHeaderError,
    ParamMissingError,
    download_http_file,
    get_http_file,
    parse_http_request_line,
    parse_http_status_line,
    post_json,
    read_http_header,
    read_http_message,
    read_http_request_message,
    read_http_response_message,
    unmarshal_request_json_body,
)


@pytest.mark.parametrize(
    "line, expected",
    [
        ("HTTP/1.0 200 OK", ("HTTP/1.0", "200", "OK")),
        ("HTTP/1.1 400 Bad Request", ("HTTP/1.1", "400", "Bad Request")),
        ("HTTP/1.1 475 ", ("HTTP/1.1", "475", "")),
        ("HTTP/1.1 475", ("HTTP/1.1", "475", "")),
        ("HTTP/1.1 475  ", ("HTTP/1.1", "475", " ")),
    ],
)
def test_parse_http_status_line(line, expected):
    assert parse_http_status_line(line) == expected


def test_parse_status_line_error():
    with pytest.raises(FirstLineError):
        parse_http_status_line("fxxk")


def test_parse_request_line():
    assert parse_http_request_line("GET /test HTTP/1.1") == ("GET", "/test", "HTTP/1.1")


def test_response_with_broken_header_line():
    raw = (
        b"RTSP/1.0 200 OK\r\nCSeq: 5\r\nSession: ac5a1f04\r\n"
        b"RTP-Info: url=track_id=0;seq=63248;rtptime=0,\r\n"
        b"url=track_id=1;seq=56208;rtptime=0\r\n\r\n"
    )
    msg = read_http_response_message(io.BytesIO(raw))
    assert msg.version == "RTSP/1.0"
    assert msg.status_code == "200"
    assert msg.reason == "OK"
    assert msg.headers.get("Rtp-Info") == (
        "url=track_id=0;seq=63248;rtptime=0,url=track_id=1;seq=56208;rtptime=0"
    )
    assert msg.body == b""


def test_rtsp_request_read_as_response():
    raw = (
        b"PLAY rtsp://127.0.0.1:5544/live/test110 RTSP/1.0\r\nUser-Agent: lal/0.26.0\r\n"
        b"Session: 191201771\r\nRange: npt=0.000-\r\nCSeq: 5\r\n\r\n"
    )
    msg = read_http_response_message(io.BytesIO(raw))
    assert msg.version == "PLAY"
    assert msg.status_code == "rtsp://127.0.0.1:5544/live/test110"
    assert msg.reason == "RTSP/1.0"
    assert msg.headers.get("cseq") == "5"
    assert len(msg.headers) == 4


def test_request_with_body():
    raw = b"POST /api HTTP/1.1\r\nContent-Length: 5\r\nX-A: 1\r\nX-A: 2\r\n\r\nhelloextra"
    msg = read_http_request_message(io.BytesIO(raw))
    assert (msg.method, msg.uri, msg.version) == ("POST", "/api", "HTTP/1.1")
    assert msg.body == b"hello"
    assert msg.headers.values("x-a") == ["1", "2"]


def test_truncated_body_raises():
    raw = b"POST /api HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc"
    with pytest.raises(EOFError):
        read_http_message(io.BytesIO(raw))


def test_bad_content_length_raises():
    raw = b"POST /api HTTP/1.1\r\nContent-Length: abc\r\n\r\n"
    with pytest.raises(ValueError):
        read_http_message(io.BytesIO(raw))


def test_empty_first_line_raises():
    with pytest.raises(HttpHeaderError):
        read_http_header(io.BytesIO(b"\r\nHost: x\r\n\r\n"))


def test_eof_in_header_raises():
    with pytest.raises(EOFError):
        read_http_header(io.BytesIO(b"GET / HTTP/1.1\r\nHost: x\r\n"))


def test_headers_case_insensitive():
    headers = Headers()
    headers.add("content-type", "a")
    headers.add("Content-Type", "b")
    assert headers.values("CONTENT-TYPE") == ["a", "b"]
    assert headers.get("missing") == ""
    assert "content-type" in headers
    assert len(headers) == 1


def test_unmarshal_request_json_body():
    body = b'{"a": 1, "b": {"c": 2}}'
    assert unmarshal_request_json_body(body, "a", "b.c") == {"a": 1, "b": {"c": 2}}
    assert unmarshal_request_json_body(io.BytesIO(body)) == {"a": 1, "b": {"c": 2}}
    with pytest.raises(ParamMissingError):
        unmarshal_request_json_body(body, "a", "b.d")


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/missing":
            body, status = b"not found", 404
        else:
            body, status = b"hello world", 200
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_POST(self):
        body = self.rfile.read(int(self.headers["Content-Length"]))
        self.send_response(200)
        self.send_header("Content-Type", self.headers["Content-Type"])
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def server_url():
    server = HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def _unused_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_get_http_file(server_url):
    assert get_http_file(server_url + "/index", 10000) == b"hello world"
    assert get_http_file(server_url + "/missing", 0) == b"not found"


def test_get_http_file_connection_refused():
    with pytest.raises(OSError):
        get_http_file(f"http://127.0.0.1:{_unused_port()}", 10000)


def test_download_http_file(server_url, tmp_path):
    target = tmp_path / "index.html"
    n = download_http_file(server_url + "/index", str(target), 10000)
    assert n == len(b"hello world")
    assert target.read_bytes() == b"hello world"


def test_download_http_file_errors(server_url, tmp_path):
    with pytest.raises(OSError):
        download_http_file(f"http://127.0.0.1:{_unused_port()}", str(tmp_path / "a"), 10000)
    with pytest.raises(OSError):
        download_http_file(server_url + "/index", str(tmp_path / "notexist" / "a.html"), 10000)


def test_post_json(server_url):
    info = {"name": "x", "n": [1, 2]}
    resp = post_json(server_url + "/api", info, 10000)
    assert resp.status_code == "200"
    assert json.loads(resp.body) == info
    assert resp.headers.get("content-type") == "application/json"


def test_read_header_from_real_client():
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]

    def fetch():
        try:
            get_http_file(f"http://127.0.0.1:{port}/test", 2000)
        except OSError:
            pass

    thread = threading.Thread(target=fetch)
    thread.start()
    conn, _ = listener.accept()
    try:
        with conn.makefile("rb") as reader:
            first_line, headers = read_http_header(reader)
        conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\n\r\n")
    finally:
        conn.close()
        listener.close()
        thread.join()
    assert len(headers) > 0
    assert parse_http_request_line(first_line) == ("GET", "/test", "HTTP/1.1")