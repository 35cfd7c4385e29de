"""Exceptions raised by the deployment pipeline."""

from __future__ import annotations


class TerraLandError(Exception):
    """Base class for all deployment errors."""


class ConfigError(TerraLandError):
    """Missing or malformed configuration (config file or environment)."""


class TxError(TerraLandError):
    """The ledger accepted the transaction but reported a non-zero result code."""

    def __init__(self, action: str, code: int, codespace: str = "", raw_log: str = ""):
        self.action = action
        self.code = code
        self.codespace = codespace
        self.raw_log = raw_log
        super().__init__(
            f"{action} failed. code: {code}, codespace: {codespace}, raw_log: {raw_log}"
        )


class EventNotFound(TerraLandError, KeyError):
    """An expected event attribute is missing from a transaction log."""

    def __init__(self, event_type: str, attribute: str):
        self.event_type = event_type
        self.attribute = attribute
        super().__init__(f"{event_type}.{attribute}")

    def __str__(self) -> str:
        return f"Event attribute not found in tx logs: {self.event_type}.{self.attribute}"
