# naza

A set of small building blocks for network and server programs. It uses only
the Python standard library.

## Modules

| Module | What it gives you |
| --- | --- |
| `naza.buffer` | `Buffer` is a growable first-in-first-out byte buffer. You can write straight into its free space (`reserve_bytes` and then `flush`) and read its unread data straight from it (`bytes`, `peek`, then `skip`). It also has `read`, `readinto`, `write`, `write_string`, `truncate`, `reset` and `reset_and_free`. `ref_bytes(data)` builds a buffer on an existing `bytearray`. `round_up_power_of_two(n)` is also here. |
| `naza.byteslice` | `sub(b, index, length)` and `prefix(b, length)` slice without going out of range. `bytes_to_str` and `str_to_bytes` convert to and from UTF-8. |
| `naza.color` | The `Format`, `FgColor` and `BgColor` enums, `wrap`, `wrap_with_fg_color` and `wrap_red`, `wrap_green` and the other colours. These build ANSI escape sequences. |
| `naza.errors` | `combine_errors` returns the first error that is not None. `wrap(err, *messages)` returns a `WrappedError` that records the caller's file and line. `unwrap`, `is_error` and `as_error` walk the wrap chain. |
| `naza.md5` | `md5(b)` returns the lower-case hex digest. |
| `naza.values` | `is_nil`, `equal` and `equal_integer`. `equal` is strict: the values must have the same type, except that byte sequences of any byte type are compared by content. |
| `naza.log` | `Logger`, `new`, `Option`, `Level` and `AssertBehavior`. See below. |
| `naza.globallog` | Functions at module level (`infof`, `debug`, `assert_equal` and the rest) that log through a shared `Logger`. Also `init`, `get_global_logger`, `set_global_logger`, and `DUMMY_LOGGER`, which discards everything. |
| `naza.jsonutil` | `Json(raw).exist("a.b")` checks dotted paths. `collect_not_exist_fields` lists the fields of a dataclass that are missing from a JSON document. `marshal_json_file` and `unmarshal_json_file` read and write JSON files. |
| `naza.httputil` | Reads HTTP and RTSP style headers and messages from a binary stream with `readline()`: `read_http_header`, `read_http_message`, `read_http_request_message` and `read_http_response_message`. Also `parse_http_request_line`, `parse_http_status_line`, `Headers`, `unmarshal_request_json_body`, and the client helpers `get_http_file`, `download_http_file` and `post_json`. |
| `naza.udp` | `AvailUdpConnPool` binds free UDP ports in a range (`acquire`, `acquire2`, `peek`). `UdpConnection` is a UDP endpoint with `run_loop`, `read_with_timeout`, `write`, `write_to` and `dispose`. |
| `naza.ratelimit` | `LeakyBucket` and `TokenBucket`. Both follow the `RateLimiter` interface (`try_acquire`, `wait_until_acquire`). |
| `naza.slicebytepool` | `SliceBytePool` is a pool of byte buffers with power-of-two buckets. `SharedSliceByte` is reference-counted and goes back to its pool when the last reference is released. The module also has `get`, `put`, `retrieve_status` and `init`, which work on a default pool. |

## Examples

```python
from naza.buffer import Buffer

buf = Buffer(8)
buf.write(b"hello")
assert bytes(buf.peek(2)) == b"he"
buf.skip(2)
assert str(buf) == "llo"
```

### Logging

Each argument to `new` is a callable that changes an `Option`. Options you do
not set keep their defaults: level DEBUG, output to stdout, timestamps with
microseconds, the caller's file and line, and the level field.

```python
from naza import log

def configure(option):
    option.level = log.Level.INFO
    option.filename = "/tmp/app/app.log"   # the directory is created if missing
    option.is_rotate_daily = True

logger = log.new(configure)
logger.with_prefix("server").infof("listening on %d", 8080)
```

A bad level or a bad assert behaviour raises `LogError`. `fatal*` calls log
and then exit with status 1. `panic*` calls log and then raise `LogPanic`.
If `hook_backend_out_fn` is set, it is called with every line that is
written. `log.set_clock(log.FakeClock(t))` fixes the time used for
timestamps and for rotation.

### Rate limiting

```python
from naza.ratelimit import LeakyBucket, ResourceNotAvailableError

bucket = LeakyBucket(100)
try:
    bucket.try_acquire()
except ResourceNotAvailableError:
    pass
```

### JSON fields

```python
from dataclasses import dataclass, field
from naza.jsonutil import collect_not_exist_fields

@dataclass
class Config:
    a: int = field(default=0, metadata={"json": "a"})
    b: str = field(default="", metadata={"json": "b"})

assert collect_not_exist_fields(b'{"a": 1}', Config) == ["b"]
```

## What is not included

The package has no unique key or id generators, no worker-thread pool and no
lock debugging helpers. It has no command-line program and does not run an
HTTP server. The HTTP helpers only read messages and make simple client
requests.

## Running the tests

```
pip install -e .[test]
pytest
```