"""Field validation rules for payment messages."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

_NUMBER_PATTERN = re.compile(r"[0-9]{16}")


class ValidationError(Exception):
    """A single rule violation on one field of a message."""

    def __init__(
        self,
        message_name: str,
        field: str,
        reason: str,
        cause: BaseException | None = None,
        key: bool = False,
    ) -> None:
        self.message_name = message_name
        self.field = field
        self.reason = reason
        self.cause = cause
        self.key = key
        super().__init__(str(self))

    @property
    def error_name(self) -> str:
        return f"{self.message_name}ValidationError"

    def __str__(self) -> str:
        cause = f" | caused by: {self.cause}" if self.cause is not None else ""
        key = "key for " if self.key else ""
        return f"invalid {key}{self.message_name}.{self.field}: {self.reason}{cause}"


class MultiError(Exception):
    """Every rule violation found on a message."""

    def __init__(self, errors: list[ValidationError]) -> None:
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        return "; ".join(str(err) for err in self.errors)

    def all_errors(self) -> list[ValidationError]:
        return list(self.errors)


def _raise_first(violations: Iterable[ValidationError]) -> None:
    for err in violations:
        raise err


def _raise_all(violations: Iterable[ValidationError]) -> None:
    errors = list(violations)
    if errors:
        raise MultiError(errors)


@dataclass
class CreditCardInfo:
    number: str = ""
    cvv: int = 0
    expiration_year: int = 0
    expiration_month: int = 0

    def _violations(self) -> Iterator[ValidationError]:
        name = "CreditCardInfo"
        if len(self.number) != 16:
            yield ValidationError(name, "Number", "value length must be 16 runes")
        if not _NUMBER_PATTERN.fullmatch(self.number):
            yield ValidationError(
                name, "Number", 'value does not match regex pattern "^[0-9]{16}$"'
            )
        if not 0 <= self.cvv <= 9999:
            yield ValidationError(name, "Cvv", "value must be inside range [0, 9999]")
        if self.expiration_year < 23:
            yield ValidationError(
                name, "ExpirationYear", "value must be greater than or equal to 23"
            )
        if not 1 <= self.expiration_month <= 12:
            yield ValidationError(
                name, "ExpirationMonth", "value must be inside range [1, 12]"
            )

    def validate(self) -> None:
        """Raise the first violation found, if any."""
        _raise_first(self._violations())

    def validate_all(self) -> None:
        """Raise a MultiError holding every violation, if any."""
        _raise_all(self._violations())


@dataclass
class ChargeReq:
    amount: float = 0
    credit_card: CreditCardInfo | None = None
    order_id: str = ""
    user_id: str = ""

    def _violations(self, collect_all: bool) -> Iterator[ValidationError]:
        name = "ChargeReq"
        if self.amount <= 0:
            yield ValidationError(name, "Amount", "value must be greater than 0")
        if self.credit_card is None:
            yield ValidationError(name, "CreditCard", "value is required")
        else:
            try:
                if collect_all:
                    self.credit_card.validate_all()
                else:
                    self.credit_card.validate()
            except (ValidationError, MultiError) as exc:
                yield ValidationError(
                    name, "CreditCard", "embedded message failed validation", cause=exc
                )
        if len(self.order_id) < 1:
            yield ValidationError(name, "OrderId", "value length must be at least 1 runes")
        if len(self.user_id) < 1:
            yield ValidationError(name, "UserId", "value length must be at least 1 runes")

    def validate(self) -> None:
        """Raise the first violation found, if any."""
        _raise_first(self._violations(False))

    def validate_all(self) -> None:
        """Raise a MultiError holding every violation, if any."""
        _raise_all(self._violations(True))


@dataclass
class ChargeResp:
    transaction_id: str = ""

    def validate(self) -> None:
        """No rules apply to this message; never raises."""
        _raise_first(())

    def validate_all(self) -> None:
        """No rules apply to this message; never raises."""
        _raise_all(())