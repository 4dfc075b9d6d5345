"""Building blocks for trading bots: signals, sizing, risk controls, trade records and Polymarket access."""

__version__ = "0.1.0"