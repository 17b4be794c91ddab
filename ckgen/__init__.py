"""Bitcoind work generator, stratum message helpers and a wire-compatible JSON encoder."""

__version__ = "1.0.0"