"""edupass - educational content API with redeemable access codes."""

__version__ = "0.1.0"
