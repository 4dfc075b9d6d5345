"""Polymarket access: Gamma lookups, price data, order signing and the live order-book feed."""

__all__ = [
    "gamma",
    "hybridclient",
    "prices",
    "signer",
    "signing",
    "types",
    "wsfeed",
]