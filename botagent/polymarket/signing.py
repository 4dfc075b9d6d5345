"""Building and signing CLOB V2 orders."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any

from botagent.polymarket.signer import (
    ZERO_ADDRESS,
    SignatureType,
    Signer,
    generate_salt,
    to_checksum_address,
)

EXCHANGE_V2 = "0xE111180000d2663C0091e4f400237545B87B996B"
NEG_RISK_EXCHANGE_V2 = "0xe2222d279d744050d28e00520010520000310F59"

_USDC_SCALE = 1_000_000.0  # USDC has 6 decimals
_DECIMAL = re.compile(r"[+-]?[0-9]+")

ORDER_V2_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "Order": [
        {"name": "salt", "type": "uint256"},
        {"name": "maker", "type": "address"},
        {"name": "signer", "type": "address"},
        {"name": "tokenId", "type": "uint256"},
        {"name": "makerAmount", "type": "uint256"},
        {"name": "takerAmount", "type": "uint256"},
        {"name": "side", "type": "uint8"},
        {"name": "signatureType", "type": "uint8"},
        {"name": "timestamp", "type": "uint256"},
        {"name": "metadata", "type": "bytes32"},
        {"name": "builder", "type": "bytes32"},
    ],
}


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class OrderV2:
    """An EIP-712 signable CLOB V2 order.

    ``side`` is "BUY" or "SELL"; ``timestamp`` is in epoch milliseconds.
    ``expiration`` is not signed but is sent for GTD orders.
    """

    token_id: int
    maker_amount: int
    taker_amount: int
    maker: str = ZERO_ADDRESS
    signer: str = ZERO_ADDRESS
    salt: int = 0
    expiration: int | None = None
    side: str = "BUY"
    signature_type: int = SignatureType.EOA
    timestamp: int = 0
    metadata: bytes = bytes(32)
    builder: bytes = bytes(32)

    def __post_init__(self) -> None:
        for name in ("metadata", "builder"):
            if len(getattr(self, name)) != 32:
                raise ValueError(f"{name} must be 32 bytes")


@dataclass
class SignedOrderV2:
    """A signed order ready for submission; ``owner`` is the API key."""

    order: OrderV2
    signature: str
    owner: str
    order_type: str = ""


def sign_order_v2(
    signer: Signer, api_key: str, order: OrderV2, neg_risk: bool = False
) -> SignedOrderV2:
    """Sign ``order`` with EIP-712, filling in salt, timestamp and signer.

    ``neg_risk`` selects the neg-risk exchange as verifying contract.
    """
    if signer is None:
        raise ValueError("signer is required")
    if order is None:
        raise ValueError("order is required")

    if not order.salt:
        order.salt = generate_salt()
    if order.timestamp == 0:
        order.timestamp = _now_ms()
    order.signer = signer.address

    domain = {
        "name": "Polymarket CTF Exchange",
        "version": "2",
        "chainId": signer.chain_id,
        "verifyingContract": NEG_RISK_EXCHANGE_V2 if neg_risk else EXCHANGE_V2,
    }
    message = {
        "salt": order.salt,
        "maker": order.maker,
        "signer": order.signer,
        "tokenId": order.token_id,
        "makerAmount": order.maker_amount,
        "takerAmount": order.taker_amount,
        "side": 1 if order.side.upper() == "SELL" else 0,
        "signatureType": int(order.signature_type),
        "timestamp": order.timestamp,
        "metadata": bytes(order.metadata),
        "builder": bytes(order.builder),
    }
    signature = signer.sign_typed_data(domain, ORDER_V2_TYPES, message, "Order")
    return SignedOrderV2(
        order=order,
        signature="0x" + signature.hex(),
        owner=api_key or signer.address,
    )


def build_order_payload(signed: SignedOrderV2) -> dict[str, Any]:
    """Return the JSON body for submitting a signed order."""
    order = signed.order
    order_map = {
        "salt": order.salt & 0xFFFF_FFFF_FFFF_FFFF,
        "maker": to_checksum_address(order.maker),
        "signer": to_checksum_address(order.signer),
        "tokenId": str(order.token_id),
        "makerAmount": str(order.maker_amount),
        "takerAmount": str(order.taker_amount),
        "side": order.side.upper(),
        "expiration": "0" if order.expiration is None else str(order.expiration),
        "signatureType": int(order.signature_type),
        "signature": signed.signature,
        "timestamp": str(order.timestamp),
        "metadata": "0x" + bytes(order.metadata).hex(),
        "builder": "0x" + bytes(order.builder).hex(),
    }
    return {
        "order": order_map,
        "owner": signed.owner,
        "orderType": signed.order_type or "GTC",
    }


def decode_bytes32_hex(value: str) -> bytes:
    """Decode a hex string (0x prefix optional) holding exactly 32 bytes."""
    text = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        raw = bytes.fromhex(text)
    except ValueError as exc:
        raise ValueError(f"invalid hex: {value!r}") from exc
    if len(raw) != 32:
        raise ValueError(f"builder code must be 32 bytes, got {len(raw)}")
    return raw


def build_simple_order_v2(
    token_id: str,
    price: float,
    size: float,
    side: str,
    sig_type: SignatureType | int,
    maker: str,
) -> OrderV2:
    """Build an order from price, size and side.

    A buy pays size * price USDC for size shares; a sell gives size shares
    for size * price USDC. Amounts are in 6-decimal units.
    """
    if not _DECIMAL.fullmatch(token_id):
        raise ValueError(f"invalid token ID: {token_id}")
    side_upper = side.upper()
    if side_upper == "BUY":
        maker_amount = int(size * price * _USDC_SCALE)
        taker_amount = int(size * _USDC_SCALE)
    else:
        maker_amount = int(size * _USDC_SCALE)
        taker_amount = int(size * price * _USDC_SCALE)
    return OrderV2(
        token_id=int(token_id),
        maker_amount=maker_amount,
        taker_amount=taker_amount,
        maker=maker,
        side=side_upper,
        signature_type=int(sig_type),
        timestamp=_now_ms(),
    )