"""Keys, addresses and EIP-712 typed-data signing on secp256k1."""

from __future__ import annotations

import hashlib
import hmac
import os
import re
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Iterator, Mapping

from Crypto.Hash import keccak as _keccak

ZERO_ADDRESS = "0x" + "00" * 20

_BIG = "big"
_HEX_PREFIX = "0x"

_SAFE_FACTORY = "0xaacFeEa03eb1561C4e67d661e40682Bd20E3541b"
_SAFE_INIT_CODE_HASH = bytes.fromhex(
    "2bce2127ff07fb632d16c8347c4ebf501f4841168bed00d9e6ef715ddb6fcecf"
)

# secp256k1 curve parameters.
_P = 2**256 - 2**32 - 977
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

_HEX_ADDRESS = re.compile(r"(?:0[xX])?([0-9a-fA-F]{40})")
_HEX_KEY = re.compile(r"[0-9a-fA-F]{64}")
_DECIMAL = re.compile(r"[+-]?[0-9]+")
_BYTES_N = re.compile(r"bytes([0-9]+)")
_INT_N = re.compile(r"(u?)int([0-9]*)")

_DOMAIN_FIELDS = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
    ("salt", "bytes32"),
)


class SignatureType(IntEnum):
    """The wallet type a signature is verified against."""

    EOA = 0
    PROXY = 1
    GNOSIS_SAFE = 2


def keccak256(data: bytes) -> bytes:
    """Return the Keccak-256 digest of ``data``."""
    digest = _keccak.new(digest_bits=256)
    digest.update(bytes(data))
    return digest.digest()


def _address_bytes(address: str | bytes) -> bytes:
    if isinstance(address, (bytes, bytearray)):
        if len(address) != 20:
            raise ValueError(f"address must be 20 bytes, got {len(address)}")
        return bytes(address)
    if isinstance(address, str):
        match = _HEX_ADDRESS.fullmatch(address)
        if match:
            return bytes.fromhex(match.group(1))
    raise ValueError(f"invalid address: {address!r}")


def to_checksum_address(address: str | bytes) -> str:
    """Return ``address`` in its mixed-case checksum form."""
    lower = _address_bytes(address).hex()
    digest = keccak256(lower.encode("ascii")).hex()
    return "0x" + "".join(
        char.upper() if int(nibble, 16) >= 8 else char for char, nibble in zip(lower, digest)
    )


# --- secp256k1 -------------------------------------------------------------


def _point_add(
    a: tuple[int, int] | None, b: tuple[int, int] | None
) -> tuple[int, int] | None:
    if a is None:
        return b
    if b is None:
        return a
    (x1, y1), (x2, y2) = a, b
    if x1 == x2:
        if (y1 + y2) % _P == 0:
            return None
        slope = 3 * x1 * x1 * pow(2 * y1, -1, _P) % _P
    else:
        slope = (y2 - y1) * pow(x2 - x1, -1, _P) % _P
    x3 = (slope * slope - x1 - x2) % _P
    y3 = (slope * (x1 - x3) - y1) % _P
    return (x3, y3)


def _scalar_mult(k: int, point: tuple[int, int] = _G) -> tuple[int, int]:
    result = None
    addend: tuple[int, int] | None = point
    while k:
        if k & 1:
            result = _point_add(result, addend)
        addend = _point_add(addend, addend)
        k >>= 1
    if result is None:
        raise ValueError("scalar multiple is the point at infinity")
    return result


def _hmac(mac_key: bytes, data: bytes) -> bytes:
    return hmac.new(mac_key, data, hashlib.sha256).digest()


def _rfc6979_nonces(scalar: int, digest: bytes) -> Iterator[int]:
    x = scalar.to_bytes(32, _BIG)
    h = (int.from_bytes(digest, _BIG) % _N).to_bytes(32, _BIG)
    v = b"\x01" * 32
    k = b"\x00" * 32
    k = _hmac(k, v + b"\x00" + x + h)
    v = _hmac(k, v)
    k = _hmac(k, v + b"\x01" + x + h)
    v = _hmac(k, v)
    while True:
        v = _hmac(k, v)
        candidate = int.from_bytes(v, _BIG)
        if 1 <= candidate < _N:
            yield candidate
        k = _hmac(k, v + b"\x00")
        v = _hmac(k, v)


def _sign_digest(scalar: int, digest: bytes) -> bytes:
    """Return r || s || recovery id (0 or 1) with a low s value."""
    if len(digest) != 32:
        raise ValueError(f"digest must be 32 bytes, got {len(digest)}")
    z = int.from_bytes(digest, _BIG)
    for nonce in _rfc6979_nonces(scalar, digest):
        rx, ry = _scalar_mult(nonce)
        r = rx % _N
        if r == 0:
            continue
        s = pow(nonce, -1, _N) * (z + r * scalar) % _N
        if s == 0:
            continue
        recovery = (ry & 1) | (2 if rx >= _N else 0)
        if s > _N // 2:
            s = _N - s
            recovery ^= 1
        return r.to_bytes(32, _BIG) + s.to_bytes(32, _BIG) + bytes([recovery])
    raise AssertionError("nonce generator is infinite")


# --- EIP-712 ---------------------------------------------------------------


def _fields(types: Mapping[str, Any], name: str) -> list[tuple[str, str]]:
    return [(field["name"], field["type"]) for field in types[name]]


def _base_type(type_name: str) -> str:
    return type_name[: type_name.index("[")] if "[" in type_name else type_name


def _encode_type(primary: str, types: Mapping[str, Any]) -> str:
    deps: set[str] = set()
    pending = [primary]
    while pending:
        for _, type_name in _fields(types, pending.pop()):
            base = _base_type(type_name)
            if base in types and base != primary and base not in deps:
                deps.add(base)
                pending.append(base)
    return "".join(
        f"{name}(" + ",".join(f"{t} {f}" for f, t in _fields(types, name)) + ")"
        for name in [primary, *sorted(deps)]
    )


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value[:2] in ("0x", "0X"):
        try:
            return bytes.fromhex(value[2:])
        except ValueError as exc:
            raise ValueError(f"invalid hex bytes: {value!r}") from exc
    raise ValueError(f"expected bytes, got {value!r}")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if value[:2] in ("0x", "0X"):
            return int(value[2:], 16)
        if _DECIMAL.fullmatch(value):
            return int(value)
    raise ValueError(f"expected an integer, got {value!r}")


def _encode_value(type_name: str, value: Any, types: Mapping[str, Any]) -> bytes:
    if type_name.endswith("]"):
        base = type_name[: type_name.rindex("[")]
        length = type_name[type_name.rindex("[") + 1 : -1]
        items = list(value)
        if length and int(length) != len(items):
            raise ValueError(f"{type_name}: expected {length} items, got {len(items)}")
        return keccak256(b"".join(_encode_value(base, item, types) for item in items))
    if type_name in types:
        return _hash_struct(type_name, value, types)
    if type_name == "string":
        return keccak256(value.encode("utf-8") if isinstance(value, str) else _to_bytes(value))
    if type_name == "bytes":
        return keccak256(_to_bytes(value))
    if type_name == "bool":
        return (1 if value else 0).to_bytes(32, _BIG)
    if type_name == "address":
        return bytes(12) + _address_bytes(value)
    match = _BYTES_N.fullmatch(type_name)
    if match:
        size = int(match.group(1))
        if not 1 <= size <= 32:
            raise ValueError(f"unsupported type {type_name!r}")
        raw = _to_bytes(value)
        if len(raw) > size:
            raise ValueError(f"{type_name}: value is {len(raw)} bytes long")
        return raw.ljust(32, b"\x00")
    match = _INT_N.fullmatch(type_name)
    if match:
        bits = int(match.group(2) or 256)
        if bits % 8 or not 8 <= bits <= 256:
            raise ValueError(f"unsupported type {type_name!r}")
        number = _to_int(value)
        if match.group(1):
            low, high = 0, 2**bits
        else:
            low, high = -(2 ** (bits - 1)), 2 ** (bits - 1)
        if not low <= number < high:
            raise ValueError(f"{type_name}: value {number} out of range")
        return (number % 2**256).to_bytes(32, _BIG)
    raise ValueError(f"unsupported type {type_name!r}")


def _hash_struct(primary: str, data: Mapping[str, Any], types: Mapping[str, Any]) -> bytes:
    parts = [keccak256(_encode_type(primary, types).encode("utf-8"))]
    for name, type_name in _fields(types, primary):
        if name not in data:
            raise ValueError(f"{primary}: missing field {name!r}")
        parts.append(_encode_value(type_name, data[name], types))
    return keccak256(b"".join(parts))


def hash_typed_data(
    domain: Mapping[str, Any],
    types: Mapping[str, Any],
    message: Mapping[str, Any],
    primary_type: str,
) -> bytes:
    """Return the EIP-712 digest of ``message`` under ``domain``.

    If ``types`` has no ``EIP712Domain`` entry, it is built from the domain
    keys present, in the standard order.
    """
    all_types = dict(types)
    if "EIP712Domain" not in all_types:
        all_types["EIP712Domain"] = [
            {"name": name, "type": type_name}
            for name, type_name in _DOMAIN_FIELDS
            if name in domain
        ]
    if primary_type not in all_types:
        raise ValueError(f"unknown primary type {primary_type!r}")
    separator = _hash_struct("EIP712Domain", domain, all_types)
    message_hash = _hash_struct(primary_type, message, all_types)
    return keccak256(b"\x19\x01" + separator + message_hash)


# --- signers ---------------------------------------------------------------


class Signer(ABC):
    """Signs EIP-712 typed data for one address on one chain."""

    @property
    @abstractmethod
    def address(self) -> str:
        """The checksummed address of the signing key."""

    @property
    @abstractmethod
    def chain_id(self) -> int:
        """The chain the signatures are meant for."""

    @abstractmethod
    def sign_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, Any],
        message: Mapping[str, Any],
        primary_type: str,
    ) -> bytes:
        """Return a 65-byte r || s || v signature, with v of 27 or 28."""


class PrivateKeySigner(Signer):
    """A signer holding a local secp256k1 private key."""

    def __init__(self, hex_key: str, chain_id: int) -> None:
        has_prefix = len(hex_key) > 2 and hex_key[:2] == _HEX_PREFIX
        text = hex_key[2:] if has_prefix else hex_key
        if not _HEX_KEY.fullmatch(text):
            raise ValueError("invalid private key: expected 32 bytes of hex")
        scalar = int.from_bytes(bytes.fromhex(text), _BIG)
        if not 0 < scalar < _N:
            raise ValueError("invalid private key: out of range")
        self._scalar = scalar
        x, y = _scalar_mult(scalar)
        public = x.to_bytes(32, _BIG) + y.to_bytes(32, _BIG)
        self._address = to_checksum_address(keccak256(public)[12:])
        self._chain_id = chain_id

    @property
    def address(self) -> str:
        return self._address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def sign_typed_data(
        self,
        domain: Mapping[str, Any],
        types: Mapping[str, Any],
        message: Mapping[str, Any],
        primary_type: str,
    ) -> bytes:
        """Sign the EIP-712 digest; v follows the 27/28 convention."""
        digest = hash_typed_data(domain, types, message, primary_type)
        signature = bytearray(_sign_digest(self._scalar, digest))
        if signature[64] < 27:
            signature[64] += 27
        return bytes(signature)


def derive_safe_wallet(eoa: str | bytes) -> str:
    """Return the deterministic Gnosis Safe address of an EOA on Polygon."""
    salt = keccak256(bytes(12) + _address_bytes(eoa))
    digest = keccak256(b"\xff" + _address_bytes(_SAFE_FACTORY) + salt + _SAFE_INIT_CODE_HASH)
    return to_checksum_address(digest[12:])


def maker_address(
    signer: Signer, sig_type: SignatureType | int, funder: str | bytes | None = None
) -> str:
    """Return the maker address for orders.

    A non-zero ``funder`` is used as is; for Gnosis Safe signatures the Safe
    address is derived; otherwise it is the signer's own address.
    """
    if funder is not None and _address_bytes(funder) != bytes(20):
        return to_checksum_address(funder)
    if sig_type == SignatureType.GNOSIS_SAFE:
        return derive_safe_wallet(signer.address)
    return signer.address


def generate_salt() -> int:
    """Return a random salt below 2**53, so it survives as a JSON number."""
    random_bytes = os.urandom(32)
    return int.from_bytes(keccak256(random_bytes), _BIG) % (1 << 53)