"""Parse plain persisted records into credit models.

Records come from a relational store or a JSON API, so keys may be
camelCase (``creditLimit``) or snake_case (``credit_limit``) and money
arrives as decimal strings. Each record shape is a pydantic model that
validates the row and converts it into the matching domain dataclass.
Every parser fails fast with ``ValidationError``; nothing is coerced to a
default silently.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Mapping, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake

from loan_core.exceptions import ValidationError
from loan_core.models.credit import (
    Bank,
    CollateralAsset,
    CollateralType,
    CreditLine,
    Facility,
    FacilityType,
    Guarantee,
    GuaranteeStatus,
    InterestBasis,
    Loan,
    LoanBalance,
    LoanStatus,
)
from loan_core.numeric import ZERO, parse_date, parse_decimal, parse_int


def _money(value: Any, info: ValidationInfo) -> Decimal:
    return parse_decimal(value, info.field_name)


def _optional_money(value: Any, info: ValidationInfo) -> Decimal | None:
    if value is None or value == "":
        return None
    return parse_decimal(value, info.field_name)


def _date(value: Any, info: ValidationInfo) -> date:
    return parse_date(value, info.field_name)


def _optional_date(value: Any, info: ValidationInfo) -> date | None:
    if value is None or value == "":
        return None
    return parse_date(value, info.field_name)


def _whole(value: Any, info: ValidationInfo) -> int | None:
    if value is None or value == "":
        return None
    return parse_int(value, info.field_name)


def _positive_whole(value: Any, info: ValidationInfo) -> int | None:
    if value is None or value == "":
        return None
    return parse_int(value, info.field_name, minimum=1)


def _blank_to_none(value: Any) -> Any:
    return None if value == "" else value


Money = Annotated[Decimal, BeforeValidator(_money)]
OptionalMoney = Annotated[Decimal | None, BeforeValidator(_optional_money)]
IsoDate = Annotated[date, BeforeValidator(_date)]
OptionalDate = Annotated[date | None, BeforeValidator(_optional_date)]
Whole = Annotated[int, BeforeValidator(_whole)]
PositiveWhole = Annotated[int | None, BeforeValidator(_positive_whole)]
OptionalStr = Annotated[str | None, BeforeValidator(_blank_to_none)]


class _Record(BaseModel):
    """Base for persisted rows: camelCase aliases, snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


R = TypeVar("R", bound=_Record)


def parse_record(record_cls: type[R], record: Mapping[str, Any]) -> R:
    """Validate ``record`` against ``record_cls``.

    Raises
    ------
    ValidationError
        Listing every offending field by its snake_case name.
    """
    try:
        return record_cls.model_validate(dict(record))
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from None


def _describe(exc: PydanticValidationError) -> str:
    problems = []
    for error in exc.errors():
        where = ".".join(to_snake(str(part)) for part in error["loc"]) or "record"
        problems.append(f"{where}: {error['msg']}")
    return "; ".join(problems)


class BankRecord(_Record):
    id: str
    name: str
    code: str = ""
    is_active: bool = True

    def to_model(self) -> Bank:
        return Bank(bank_id=self.id, name=self.name, code=self.code, is_active=self.is_active)


class FacilityRecord(_Record):
    """Facility row. ``credit_limit`` must be strictly positive."""

    id: str
    bank_id: str
    organization_id: str
    facility_type: FacilityType
    credit_limit: Money = Field(gt=0)
    cost_of_funding: Money = ZERO
    start_date: IsoDate
    expiry_date: IsoDate
    is_active: bool = True
    enable_revolving_tracking: bool = False
    max_revolving_period: PositiveWhole = None
    terms: OptionalStr = None

    @model_validator(mode="after")
    def check_term(self) -> FacilityRecord:
        if self.expiry_date < self.start_date:
            raise ValueError(
                f"expiry_date {self.expiry_date} is before start_date {self.start_date}"
            )
        return self

    def to_model(self) -> Facility:
        return Facility(
            facility_id=self.id,
            bank_id=self.bank_id,
            organization_id=self.organization_id,
            facility_type=self.facility_type,
            credit_limit=self.credit_limit,
            cost_of_funding=self.cost_of_funding,
            start_date=self.start_date,
            expiry_date=self.expiry_date,
            is_active=self.is_active,
            enable_revolving_tracking=self.enable_revolving_tracking,
            max_revolving_period=self.max_revolving_period,
            terms=self.terms,
        )


class CreditLineRecord(_Record):
    id: str
    facility_id: str
    organization_id: str
    name: str
    credit_limit: Money = Field(gt=0)
    interest_rate: Money = ZERO
    is_active: bool = True
    description: OptionalStr = None

    def to_model(self) -> CreditLine:
        return CreditLine(
            credit_line_id=self.id,
            facility_id=self.facility_id,
            organization_id=self.organization_id,
            name=self.name,
            credit_limit=self.credit_limit,
            interest_rate=self.interest_rate,
            is_active=self.is_active,
            description=self.description,
        )


class LoanRecord(_Record):
    """Loan row.

    The margin may be stored as ``margin`` or ``bank_rate``; an explicit
    margin wins. At least one of ``facility_id`` / ``credit_line_id`` is
    required.
    """

    id: str
    organization_id: str
    facility_id: OptionalStr = None
    credit_line_id: OptionalStr = None
    reference_number: str
    amount: Money = Field(gt=0)
    sibor_rate: Money = ZERO
    margin: OptionalMoney = None
    bank_rate: OptionalMoney = None
    start_date: IsoDate
    due_date: IsoDate
    status: LoanStatus = LoanStatus.ACTIVE
    interest_basis: InterestBasis = InterestBasis.ACTUAL_365
    cycle_number: Whole = Field(default=1, ge=1)
    settled_amount: OptionalMoney = None
    settled_date: OptionalDate = None
    notes: OptionalStr = None

    @model_validator(mode="after")
    def check_references_and_dates(self) -> LoanRecord:
        if self.facility_id is None and self.credit_line_id is None:
            raise ValueError("loan needs a facility_id or a credit_line_id")
        if self.due_date < self.start_date:
            raise ValueError(
                f"due_date {self.due_date} is before start_date {self.start_date}"
            )
        return self

    def to_model(self) -> Loan:
        if self.margin is not None:
            margin = self.margin
        elif self.bank_rate is not None:
            margin = self.bank_rate
        else:
            margin = ZERO
        return Loan(
            loan_id=self.id,
            organization_id=self.organization_id,
            facility_id=self.facility_id,
            reference_number=self.reference_number,
            amount=self.amount,
            sibor_rate=self.sibor_rate,
            margin=margin,
            start_date=self.start_date,
            due_date=self.due_date,
            status=self.status,
            credit_line_id=self.credit_line_id,
            interest_basis=self.interest_basis,
            cycle_number=self.cycle_number,
            settled_amount=self.settled_amount,
            settled_date=self.settled_date,
            notes=self.notes,
        )


class CollateralRecord(_Record):
    id: str
    organization_id: str
    collateral_type: CollateralType = Field(alias="type")
    name: str
    current_value: Money = Field(gt=0)
    valuation_date: IsoDate
    is_active: bool = True
    valuation_source: OptionalStr = None

    def to_model(self) -> CollateralAsset:
        return CollateralAsset(
            collateral_id=self.id,
            organization_id=self.organization_id,
            collateral_type=self.collateral_type,
            name=self.name,
            current_value=self.current_value,
            valuation_date=self.valuation_date,
            is_active=self.is_active,
            valuation_source=self.valuation_source,
        )


class GuaranteeRecord(_Record):
    """Guarantee row; the expiry may not precede the issue date."""

    id: str
    organization_id: str
    facility_id: str
    reference_number: str
    beneficiary: str
    amount: Money = Field(gt=0)
    issue_date: IsoDate
    expiry_date: IsoDate
    status: GuaranteeStatus = GuaranteeStatus.ACTIVE
    commission_rate: Money = ZERO
    notes: OptionalStr = None

    @model_validator(mode="after")
    def check_term(self) -> GuaranteeRecord:
        if self.expiry_date < self.issue_date:
            raise ValueError(
                f"expiry_date {self.expiry_date} is before issue_date {self.issue_date}"
            )
        return self

    def to_model(self) -> Guarantee:
        return Guarantee(
            guarantee_id=self.id,
            organization_id=self.organization_id,
            facility_id=self.facility_id,
            reference_number=self.reference_number,
            beneficiary=self.beneficiary,
            amount=self.amount,
            issue_date=self.issue_date,
            expiry_date=self.expiry_date,
            status=self.status,
            commission_rate=self.commission_rate,
            notes=self.notes,
        )


class BalanceRecord(_Record):
    """``{principal, interest, fees, version}``; missing buckets are zero."""

    principal: Money
    interest: Money = ZERO
    fees: Money = ZERO
    version: Whole = Field(default=0, ge=0)

    def to_model(self) -> LoanBalance:
        return LoanBalance(
            principal=self.principal,
            interest=self.interest,
            fees=self.fees,
            version=self.version,
        )


class SplitRecord(_Record):
    """Custom split; also accepts the ``*_amount`` columns of payment rows."""

    fees: OptionalMoney = Field(
        default=None,
        validation_alias=AliasChoices("fees", "fee_amount", "feeAmount", "fees_amount", "feesAmount"),
    )
    interest: OptionalMoney = Field(
        default=None,
        validation_alias=AliasChoices("interest", "interest_amount", "interestAmount"),
    )
    principal: OptionalMoney = Field(
        default=None,
        validation_alias=AliasChoices("principal", "principal_amount", "principalAmount"),
    )


def bank_from_record(record: Mapping[str, Any]) -> Bank:
    return parse_record(BankRecord, record).to_model()


def facility_from_record(record: Mapping[str, Any]) -> Facility:
    return parse_record(FacilityRecord, record).to_model()


def credit_line_from_record(record: Mapping[str, Any]) -> CreditLine:
    return parse_record(CreditLineRecord, record).to_model()


def loan_from_record(record: Mapping[str, Any]) -> Loan:
    """Parse a loan row.

    Raises
    ------
    ValidationError
        On malformed numbers or dates, unknown enum values, a non-positive
        amount, a fractional cycle number, a due date before the start date,
        or a missing facility reference.
    """
    return parse_record(LoanRecord, record).to_model()


def collateral_from_record(record: Mapping[str, Any]) -> CollateralAsset:
    return parse_record(CollateralRecord, record).to_model()


def guarantee_from_record(record: Mapping[str, Any]) -> Guarantee:
    return parse_record(GuaranteeRecord, record).to_model()


def balance_from_record(record: Mapping[str, Any]) -> LoanBalance:
    return parse_record(BalanceRecord, record).to_model()


def split_from_record(record: Mapping[str, Any]) -> dict[str, Decimal]:
    """Pick the fees / interest / principal amounts of a custom split."""
    return parse_record(SplitRecord, record).model_dump(exclude_none=True)
