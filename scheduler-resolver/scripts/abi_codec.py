"""ABI encoding for the call shapes the resolver sends and reads.

Supported types: address, uintN, bytes, tuples of those, and T[] / T[k]
arrays. Nested values are passed as Python lists/tuples, never as strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from keccak import keccak256
from quantity import parse_uint

HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
FUNC_SIG_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\((.*)\)$")
UINT_RE = re.compile(r"^uint([0-9]*)$")
ARRAY_SUFFIX_RE = re.compile(r"^(.*)\[([0-9]*)\]$")

WORD = 32


@dataclass(frozen=True)
class AbiType:
    kind: str
    bits: int | None = None
    components: tuple[AbiType, ...] = ()
    item: AbiType | None = None
    length: int | None = None


def _top_level_items(text: str) -> list[str]:
    """Split on commas that are not inside parentheses."""
    items: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "," and depth == 0:
            items.append("".join(current).strip())
            current = []
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if depth < 0:
            raise ValueError(f"unbalanced parentheses in {text!r}")
        current.append(ch)
    if depth != 0:
        raise ValueError(f"unbalanced parentheses in {text!r}")
    items.append("".join(current).strip())
    if items == [""]:
        return []
    if "" in items:
        raise ValueError(f"empty type in {text!r}")
    return items


def parse_type(raw_type: str) -> AbiType:
    text = str(raw_type).strip()

    array = ARRAY_SUFFIX_RE.fullmatch(text)
    if array:
        item = parse_type(array.group(1))
        if not array.group(2):
            return AbiType(kind="array", item=item)
        length = int(array.group(2))
        if length == 0:
            raise ValueError(f"fixed array length must be positive: {raw_type}")
        return AbiType(kind="array", item=item, length=length)

    if text.startswith("(") and text.endswith(")"):
        return AbiType(kind="tuple", components=tuple(parse_types(text[1:-1])))

    if text in {"address", "bytes"}:
        return AbiType(kind=text)

    uint = UINT_RE.fullmatch(text)
    if uint:
        bits = int(uint.group(1) or 256)
        if bits % 8 or not 8 <= bits <= 256:
            raise ValueError(f"invalid uint width: {text}")
        return AbiType(kind="uint", bits=bits)

    raise ValueError(f"unsupported ABI type: {raw_type!r}")


def parse_types(types: Any) -> list[AbiType]:
    if isinstance(types, str):
        return [parse_type(t) for t in _top_level_items(types)]
    if isinstance(types, (list, tuple)) and all(isinstance(t, str) for t in types):
        return [parse_type(t) for t in types]
    raise ValueError("types must be a comma-separated string or a list of strings")


def format_type(t: AbiType) -> str:
    if t.kind == "array":
        assert t.item is not None
        return f"{format_type(t.item)}[{'' if t.length is None else t.length}]"
    if t.kind == "tuple":
        return "(" + ",".join(format_type(c) for c in t.components) + ")"
    if t.kind == "uint":
        return f"uint{t.bits}"
    return t.kind


def parse_function_signature(signature: str) -> tuple[str, list[AbiType], str]:
    m = FUNC_SIG_RE.fullmatch(str(signature).strip())
    if not m:
        raise ValueError(f"signature must look like name(type,...): {signature!r}")
    name = m.group(1)
    arg_types = parse_types(m.group(2))
    return name, arg_types, f"{name}({','.join(format_type(t) for t in arg_types)})"


def is_dynamic(t: AbiType) -> bool:
    if t.kind == "bytes":
        return True
    if t.kind == "array":
        assert t.item is not None
        return t.length is None or is_dynamic(t.item)
    if t.kind == "tuple":
        return any(is_dynamic(c) for c in t.components)
    return False


def head_size(t: AbiType) -> int:
    """Bytes occupied in the enclosing head; dynamic types take one offset word."""
    if is_dynamic(t):
        return WORD
    if t.kind == "tuple":
        return sum(head_size(c) for c in t.components)
    if t.kind == "array":
        assert t.item is not None and t.length is not None
        return t.length * head_size(t.item)
    return WORD


def _word(n: int) -> bytes:
    return n.to_bytes(WORD, "big")


def _hex_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and HEX_RE.fullmatch(value) and len(value) % 2 == 0:
        return bytes.fromhex(value[2:])
    raise ValueError("bytes value must be bytes or an even-length 0x hex string")


def _as_list(t: AbiType, value: Any) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{format_type(t)} value must be a list or tuple")
    return list(value)


def encode_single(t: AbiType, value: Any) -> bytes:
    if t.kind == "address":
        if not isinstance(value, str) or not ADDRESS_RE.fullmatch(value):
            raise ValueError(f"not a 20-byte hex address: {value!r}")
        return _word(int(value, 16))

    if t.kind == "uint":
        n = parse_uint(value, field=format_type(t))
        if n.bit_length() > int(t.bits or 256):
            raise ValueError(f"{value!r} does not fit in {format_type(t)}")
        return _word(n)

    if t.kind == "bytes":
        raw = _hex_bytes(value)
        padding = -len(raw) % WORD
        return _word(len(raw)) + raw + b"\x00" * padding

    if t.kind == "tuple":
        return encode_abi(list(t.components), _as_list(t, value))

    if t.kind == "array":
        assert t.item is not None
        items = _as_list(t, value)
        if t.length is None:
            return _word(len(items)) + encode_abi([t.item] * len(items), items)
        if len(items) != t.length:
            raise ValueError(f"{format_type(t)} expects {t.length} items, got {len(items)}")
        return encode_abi([t.item] * t.length, items)

    raise ValueError(f"cannot encode {t.kind}")


def encode_abi(types: list[AbiType], values: list[Any]) -> bytes:
    if len(types) != len(values):
        raise ValueError(f"expected {len(types)} values, got {len(values)}")

    heads: list[bytes] = []
    tails: list[bytes] = []
    tail_offset = sum(head_size(t) for t in types)
    for t, value in zip(types, values):
        encoded = encode_single(t, value)
        if is_dynamic(t):
            heads.append(_word(tail_offset))
            tails.append(encoded)
            tail_offset += len(encoded)
        else:
            heads.append(encoded)
    return b"".join(heads) + b"".join(tails)


def _read_word(data: bytes, pos: int) -> int:
    if pos < 0 or pos + WORD > len(data):
        raise ValueError("abi data out of bounds")
    return int.from_bytes(data[pos : pos + WORD], "big")


def _decode_at(t: AbiType, data: bytes, pos: int) -> Any:
    if t.kind == "address":
        return f"0x{_read_word(data, pos):040x}"
    if t.kind == "uint":
        return str(_read_word(data, pos))
    if t.kind == "bytes":
        size = _read_word(data, pos)
        start = pos + WORD
        if start + size > len(data):
            raise ValueError("bytes value out of bounds")
        return "0x" + data[start : start + size].hex()
    if t.kind == "tuple":
        return tuple(_decode_sequence(list(t.components), data, pos))
    if t.kind == "array":
        assert t.item is not None
        if t.length is not None:
            return _decode_sequence([t.item] * t.length, data, pos)
        count = _read_word(data, pos)
        if count > len(data):
            raise ValueError("array length out of bounds")
        return _decode_sequence([t.item] * count, data, pos + WORD)
    raise ValueError(f"cannot decode {t.kind}")


def _decode_sequence(types: list[AbiType], data: bytes, base: int) -> list[Any]:
    values: list[Any] = []
    cursor = base
    for t in types:
        if is_dynamic(t):
            values.append(_decode_at(t, data, base + _read_word(data, cursor)))
        else:
            values.append(_decode_at(t, data, cursor))
        cursor += head_size(t)
    return values


def decode_abi(types: list[AbiType], data_hex: str) -> list[Any]:
    data = _hex_bytes(data_hex)
    if len(data) < sum(head_size(t) for t in types):
        raise ValueError("data shorter than ABI head")
    return _decode_sequence(types, data, 0)


def function_selector(signature: str) -> str:
    _, _, canonical = parse_function_signature(signature)
    return "0x" + keccak256(canonical.encode("utf-8"))[:4].hex()


def encode_call(signature: str, args: list[Any]) -> dict[str, Any]:
    _, arg_types, canonical = parse_function_signature(signature)
    selector = function_selector(canonical)
    return {
        "signature": canonical,
        "selector": selector,
        "calldata": selector + encode_abi(arg_types, list(args)).hex(),
    }


def decode_call_args(signature: str, calldata: str) -> list[Any]:
    _, arg_types, canonical = parse_function_signature(signature)
    selector = function_selector(canonical)
    if not isinstance(calldata, str) or not calldata.lower().startswith(selector):
        raise ValueError(f"calldata does not start with {selector} ({canonical})")
    return decode_abi(arg_types, "0x" + calldata[len(selector) :])


def decode_output(types_spec: Any, data_hex: str) -> dict[str, Any]:
    types = parse_types(types_spec)
    return {"types": [format_type(t) for t in types], "values": decode_abi(types, data_hex)}
