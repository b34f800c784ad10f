"""Sequencer client, signed transaction types, configuration and block executor."""

__version__ = "0.1.0"