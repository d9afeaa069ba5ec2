"""JSON helpers: path existence checks, missing-field collection, and file I/O.

Field names of dataclasses are mapped to JSON keys through field metadata:
``field(metadata={"json": "name"})``. Fields without a ``"json"`` entry are
ignored. A field with ``{"embed": True}`` whose type is a dataclass has its
fields treated as if they belonged to the outer class.

Nested dataclass fields are recognised by their annotation when it is a
class. Where the annotation is a string, the class is taken from a
``"type"`` metadata entry or from the field's ``default_factory``.
"""

import dataclasses
import json


class JsonError(ValueError):
    """Raised for malformed JSON or an unsupported target type."""


class Json:
    """A parsed JSON object that can be queried for key paths."""

    def __init__(self, raw):
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise JsonError(f"invalid json. {exc}") from exc
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise JsonError(f"json is not an object. type={type(value).__name__}")
        self._m = value

    def exist(self, path):
        """Whether the dotted `path` (e.g. ``log.level``) exists."""
        node = self._m
        for key in path.split("."):
            if not isinstance(node, dict) or key not in node:
                return False
            node = node[key]
        return True


def _is_dataclass_type(t):
    return isinstance(t, type) and dataclasses.is_dataclass(t)


def _field_type(f):
    if _is_dataclass_type(f.type):
        return f.type
    declared = f.metadata.get("type")
    if _is_dataclass_type(declared):
        return declared
    if _is_dataclass_type(f.default_factory):
        return f.default_factory
    return f.type


def _collect(j, prefix, cls):
    if not _is_dataclass_type(cls):
        raise JsonError(f"not a dataclass. type={cls!r}")
    result = []
    for f in dataclasses.fields(cls):
        ftype = _field_type(f)
        is_struct = _is_dataclass_type(ftype)
        if f.metadata.get("embed"):
            result.extend(_collect(j, prefix, ftype))
        name = f.metadata.get("json")
        if name is None:
            continue
        if prefix:
            name = f"{prefix}.{name}"
        # A missing nested object is reported through its fields, not itself.
        if not is_struct and not j.exist(name):
            result.append(name)
        if is_struct:
            result.extend(_collect(j, name, ftype))
    return result


def collect_not_exist_fields(data, cls, *args):
    """List the JSON keys of dataclass `cls` (or an instance of it) missing from `data`.

    Each extra argument is a prefix; missing keys starting with any of them are
    left out (plain string prefix matching).
    """
    j = Json(data)
    if not isinstance(cls, type):
        cls = type(cls)
    missing = _collect(j, "", cls)
    if not args:
        return missing
    return [name for name in missing if not any(name.startswith(p) for p in args)]


def _to_jsonable(obj):
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


def marshal_json_file(obj, filename):
    """Serialise `obj` as compact JSON into `filename`."""
    data = json.dumps(obj, separators=(",", ":"), default=_to_jsonable)
    with open(filename, "w", encoding="utf-8") as fp:
        fp.write(data)


def unmarshal_json_file(*args):
    """Parse the first of the given filenames that can be read."""
    if not args:
        raise JsonError("no filename given")
    last_error = None
    for filename in args:
        try:
            with open(filename, "rb") as fp:
                raw = fp.read()
        except OSError as exc:
            last_error = exc
            continue
        return json.loads(raw)
    raise last_error