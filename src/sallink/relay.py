"""Transaction relay.

A client hands the host a partially-signed ledger transaction; the host adds
its own signature, submits it, waits for the network to confirm it, and
answers with the transaction identifier. Everything ledger-specific lives
behind the :class:`Ledger` contract.
"""

from __future__ import annotations

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence, Union

logger = logging.getLogger(__name__)


DECODE_ERROR = "decode_error"
PROCESS_ERROR = "process_error"
SUBMISSION_ERROR = "submission_error"
CONFIRMATION_ERROR = "confirmation_error"

reason_codes = {
    DECODE_ERROR: 400,
    PROCESS_ERROR: 500,
    SUBMISSION_ERROR: 502,
    CONFIRMATION_ERROR: 504,
}


class LedgerError(Exception):
    """Raised by :class:`Ledger` implementations. The optional *logs* are
    any diagnostic output the network produced, such as simulation logs.
    """

    def __init__(self, message: str, logs: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.logs = list(logs) if logs else []


class RelayError(Exception):
    """A relay failure, classified by *reason*; one of the keys of
    :data:`reason_codes`.
    """

    def __init__(self, reason: str, details: str):
        if reason not in reason_codes:
            raise ValueError(f"unknown relay failure reason: {reason!r}")

        super().__init__(details)
        self.reason = reason
        self.details = details

    @property
    def code(self) -> int:
        return reason_codes[self.reason]


class Ledger(ABC):
    """The ledger collaborator consumed by :class:`Relay`."""

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Return the transaction held in *data*."""

    @abstractmethod
    def countersign(self, transaction: Any, identity) -> Any:
        """Add the signature of *identity* to *transaction* and return it."""

    @abstractmethod
    def submit(self, transaction: Any) -> str:
        """Submit *transaction* and return its identifier."""

    @abstractmethod
    def confirm(self, transaction_id: str) -> bool:
        """Wait for the network to confirm *transaction_id*."""


def describe(error: Exception) -> str:
    """Return the text of *error* followed by any ledger logs it carries."""

    details = str(error) or error.__class__.__name__

    logs = getattr(error, "logs", None)
    if logs:
        details = details + "\n" + "\n".join(str(line) for line in logs)

    return details


class Relay:
    """Countersign and submit transactions on behalf of clients.

    If a *handler* is provided the relay defers to it entirely: it is called
    with the decoded transaction and its return value is the result. The
    *ledger* is used to deserialize transactions when it is available, and
    is required when there is no handler.
    """

    def __init__(self, identity, ledger: Optional[Ledger] = None, handler: Optional[Callable[[Any], Any]] = None):
        self.identity = identity
        self.ledger = ledger
        self.handler = handler

    def decode(self, data: Union[str, bytes]) -> Any:
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise RelayError(DECODE_ERROR, f"transaction data is not valid base64: {e}")

        if self.ledger is None:
            return raw

        try:
            return self.ledger.deserialize(raw)
        except Exception as e:
            raise RelayError(DECODE_ERROR, describe(e))

    def relay(self, data: Union[str, bytes]) -> Any:
        """Relay the base64-encoded transaction *data* and return the
        transaction identifier. Raises :class:`RelayError` on failure; a
        transaction that cannot be decoded is never signed or submitted.
        """

        transaction = self.decode(data)

        if self.handler is not None:
            try:
                return self.handler(transaction)
            except Exception as e:
                raise RelayError(PROCESS_ERROR, describe(e))

        ledger = self.ledger
        if ledger is None:
            raise RelayError(PROCESS_ERROR, "no ledger or transaction handler configured")

        try:
            signed = ledger.countersign(transaction, self.identity)
        except Exception as e:
            raise RelayError(PROCESS_ERROR, describe(e))

        if signed is not None:
            transaction = signed

        try:
            transaction_id = ledger.submit(transaction)
        except Exception as e:
            raise RelayError(SUBMISSION_ERROR, describe(e))

        try:
            confirmed = ledger.confirm(transaction_id)
        except Exception as e:
            raise RelayError(CONFIRMATION_ERROR, describe(e))

        if not confirmed:
            raise RelayError(CONFIRMATION_ERROR, f"transaction {transaction_id} was not confirmed")

        logger.info("relayed transaction %s", transaction_id)
        return transaction_id
