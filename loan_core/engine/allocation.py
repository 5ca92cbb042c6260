"""Payment allocation: standard waterfall and custom split.

The standard policy settles buckets in fixed priority order::

    fees -> interest -> principal

each bucket capped at what is outstanding on it. A custom split is taken as
given but must add up to the payment amount (within ``tolerance``).

Nothing here mutates state. Callers apply the returned allocation to the
persisted balance themselves, inside the same transaction that read it.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any, Mapping

from loan_core.config import AllocationConfig
from loan_core.exceptions import InvalidAllocationError, OverpaymentError, ValidationError
from loan_core.models.credit import (
    AllocationType,
    LoanBalance,
    OverpaymentPolicy,
    PaymentAllocation,
)
from loan_core.numeric import ZERO, parse_decimal, parse_positive

DEFAULT_TOLERANCE = Decimal("0.01")

_BUCKETS = ("fees", "interest", "principal")


def allocate_standard(
    amount: Decimal | str | int,
    balance: LoanBalance,
    *,
    overpayment: OverpaymentPolicy = OverpaymentPolicy.REJECT,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> PaymentAllocation:
    """Split a payment over fees, then interest, then principal.

    Parameters
    ----------
    amount : Decimal | str | int
        Payment amount, strictly positive.
    balance : LoanBalance
        Balance snapshot read in the caller's transaction.
    overpayment : OverpaymentPolicy
        ``REJECT`` raises when the payment exceeds ``balance.total``;
        ``CREDIT`` keeps the surplus as ``unapplied``.
    tolerance : Decimal
        Surplus below this is treated as rounding residue, never rejected.

    Returns
    -------
    PaymentAllocation
        The split. ``total`` always equals ``amount``.

    Raises
    ------
    ValidationError
        If the amount or any balance bucket is malformed or negative.
    OverpaymentError
        If the surplus reaches ``tolerance`` under the ``REJECT`` policy.
    """
    amount = parse_positive(amount, "amount")
    _check_balance(balance)

    remaining = amount
    fees = min(remaining, balance.fees)
    remaining -= fees
    interest = min(remaining, balance.interest)
    remaining -= interest
    principal = min(remaining, balance.principal)
    remaining -= principal

    if remaining >= tolerance and overpayment == OverpaymentPolicy.REJECT:
        raise OverpaymentError(
            f"Payment of {amount} exceeds outstanding balance of {balance.total} "
            f"by {remaining}"
        )

    return PaymentAllocation(
        fees=fees,
        interest=interest,
        principal=principal,
        unapplied=remaining,
    )


def allocate_custom(
    amount: Decimal | str | int,
    split: Mapping[str, Any] | PaymentAllocation,
    *,
    balance: LoanBalance | None = None,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> PaymentAllocation:
    """Validate an explicit fees / interest / principal split.

    Missing keys in ``split`` count as zero; malformed values do not.

    Raises
    ------
    ValidationError
        If the amount or any component is malformed or negative.
    InvalidAllocationError
        If the components do not add up to ``amount`` within ``tolerance``,
        or (when ``balance`` is given) a component exceeds its bucket.
    """
    amount = parse_positive(amount, "amount")
    parts = _split_components(split)

    total = parts["fees"] + parts["interest"] + parts["principal"]
    if abs(total - amount) >= tolerance:
        raise InvalidAllocationError(
            f"Custom allocation total {total} must equal payment amount {amount}"
        )

    if balance is not None:
        _check_balance(balance)
        for bucket in _BUCKETS:
            outstanding = getattr(balance, bucket)
            if parts[bucket] - outstanding >= tolerance:
                raise InvalidAllocationError(
                    f"Custom {bucket} of {parts[bucket]} exceeds outstanding {bucket} "
                    f"of {outstanding}"
                )

    return PaymentAllocation(
        fees=parts["fees"],
        interest=parts["interest"],
        principal=parts["principal"],
    )


def allocate(
    amount: Decimal | str | int,
    balance: LoanBalance,
    split: Mapping[str, Any] | PaymentAllocation | None = None,
    *,
    overpayment: OverpaymentPolicy = OverpaymentPolicy.REJECT,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> tuple[AllocationType, PaymentAllocation]:
    """Allocate with the custom split when one is given, else the waterfall."""
    if split is None:
        allocation = allocate_standard(
            amount, balance, overpayment=overpayment, tolerance=tolerance
        )
        return AllocationType.STANDARD, allocation
    allocation = allocate_custom(amount, split, balance=balance, tolerance=tolerance)
    return AllocationType.CUSTOM, allocation


def apply_allocation(
    balance: LoanBalance,
    allocation: PaymentAllocation,
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> LoanBalance:
    """Return the balance left after ``allocation`` is applied.

    Residue below ``tolerance`` is floored at zero. The version is left
    unchanged; bumping it is the writer's job.
    """
    remaining: dict[str, Decimal] = {}
    for bucket in _BUCKETS:
        left = getattr(balance, bucket) - getattr(allocation, bucket)
        if left < 0:
            if -left >= tolerance:
                raise InvalidAllocationError(
                    f"Allocation to {bucket} exceeds outstanding {bucket} by {-left}"
                )
            left = ZERO
        remaining[bucket] = left
    return replace(balance, **remaining)


class PaymentAllocator:
    """Allocator bound to an ``AllocationConfig``."""

    def __init__(self, config: AllocationConfig | None = None) -> None:
        self.config = config or AllocationConfig()

    def allocate_standard(
        self, amount: Decimal | str | int, balance: LoanBalance
    ) -> PaymentAllocation:
        return allocate_standard(
            amount,
            balance,
            overpayment=self.config.overpayment_policy,
            tolerance=self.config.tolerance,
        )

    def allocate_custom(
        self,
        amount: Decimal | str | int,
        split: Mapping[str, Any] | PaymentAllocation,
        balance: LoanBalance | None = None,
    ) -> PaymentAllocation:
        return allocate_custom(
            amount, split, balance=balance, tolerance=self.config.tolerance
        )

    def allocate(
        self,
        amount: Decimal | str | int,
        balance: LoanBalance,
        split: Mapping[str, Any] | PaymentAllocation | None = None,
    ) -> tuple[AllocationType, PaymentAllocation]:
        return allocate(
            amount,
            balance,
            split,
            overpayment=self.config.overpayment_policy,
            tolerance=self.config.tolerance,
        )

    def apply(self, balance: LoanBalance, allocation: PaymentAllocation) -> LoanBalance:
        return apply_allocation(balance, allocation, tolerance=self.config.tolerance)


def _check_balance(balance: LoanBalance) -> None:
    for bucket in _BUCKETS:
        value = getattr(balance, bucket)
        if not isinstance(value, Decimal):
            raise ValidationError(
                f"balance.{bucket} must be a Decimal, got {type(value).__name__}"
            )
        parse_decimal(value, f"balance.{bucket}")


def _split_components(split: Mapping[str, Any] | PaymentAllocation) -> dict[str, Decimal]:
    if isinstance(split, PaymentAllocation):
        source: Mapping[str, Any] = {bucket: getattr(split, bucket) for bucket in _BUCKETS}
    else:
        source = split
    return {
        bucket: parse_decimal(source.get(bucket, ZERO), f"split.{bucket}")
        for bucket in _BUCKETS
    }
