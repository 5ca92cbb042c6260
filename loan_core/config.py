"""Configuration management for loan-core."""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from loan_core.exceptions import ConfigurationError, ValidationError
from loan_core.models.credit.enums import OverpaymentPolicy
from loan_core.numeric import parse_decimal


@dataclass
class AllocationConfig:
    """Payment allocation settings."""

    tolerance: Decimal = Decimal("0.01")
    overpayment_policy: OverpaymentPolicy = OverpaymentPolicy.REJECT


@dataclass
class UrgencyConfig:
    """Due-date urgency thresholds in days (inclusive)."""

    critical_days: int = 7
    warning_days: int = 15

    def __post_init__(self) -> None:
        if self.critical_days < 0 or self.warning_days < self.critical_days:
            raise ConfigurationError(
                f"Invalid urgency thresholds: critical={self.critical_days}, "
                f"warning={self.warning_days}"
            )


@dataclass
class AlertConfig:
    """Thresholds for the daily alert digest (percentages and days)."""

    utilization_threshold: Decimal = Decimal("80")
    concentration_threshold: Decimal = Decimal("40")
    ltv_threshold: Decimal = Decimal("70")
    revolving_threshold: Decimal = Decimal("80")
    facility_expiry_days: int = 7
    due_soon_days: int = 7
    upcoming_days: int = 30
    default_max_revolving_period: int = 360


@dataclass
class ReminderConfig:
    """Automatic reminder defaults."""

    default_intervals: list[int] = field(default_factory=lambda: [30, 14, 7, 1])
    auto_apply: bool = True
    email_enabled: bool = True
    calendar_enabled: bool = False
    timezone: str = "Asia/Riyadh"


@dataclass
class AuthConfig:
    """Authentication strategy selection."""

    provider: str = "claims"
    static_user_id: str | None = None
    static_organization_id: str | None = None


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    topic_prefix: str = "loans"

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class LoanCoreConfig:
    """Main configuration for loan-core."""

    allocation: AllocationConfig = field(default_factory=AllocationConfig)
    urgency: UrgencyConfig = field(default_factory=UrgencyConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "LoanCoreConfig":
        """Create config from environment variables."""
        import os

        policy_name = os.getenv("LOAN_CORE_OVERPAYMENT_POLICY", "reject").lower()
        try:
            policy = OverpaymentPolicy(policy_name)
        except ValueError:
            raise ConfigurationError(
                f"LOAN_CORE_OVERPAYMENT_POLICY must be one of "
                f"{[p.value for p in OverpaymentPolicy]}, got {policy_name!r}"
            ) from None

        allocation = AllocationConfig(
            tolerance=_env_decimal("LOAN_CORE_ALLOCATION_TOLERANCE", Decimal("0.01")),
            overpayment_policy=policy,
        )

        urgency = UrgencyConfig(
            critical_days=_env_int("LOAN_CORE_URGENCY_CRITICAL_DAYS", 7),
            warning_days=_env_int("LOAN_CORE_URGENCY_WARNING_DAYS", 15),
        )

        intervals_str = os.getenv("LOAN_CORE_REMINDER_INTERVALS")
        reminders = ReminderConfig(
            default_intervals=(
                [_to_int("LOAN_CORE_REMINDER_INTERVALS", part) for part in intervals_str.split(",")]
                if intervals_str
                else [30, 14, 7, 1]
            ),
            auto_apply=os.getenv("LOAN_CORE_REMINDER_AUTO_APPLY", "true").lower() == "true",
        )

        auth = AuthConfig(
            provider=os.getenv("LOAN_CORE_AUTH_PROVIDER", "claims"),
            static_user_id=os.getenv("LOAN_CORE_STATIC_USER_ID"),
            static_organization_id=os.getenv("LOAN_CORE_STATIC_ORGANIZATION_ID"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            topic_prefix=os.getenv("TOPIC_PREFIX", "loans"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            allocation=allocation,
            urgency=urgency,
            reminders=reminders,
            auth=auth,
            kafka=kafka,
            output=output,
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )


def _env_int(name: str, default: int) -> int:
    import os

    raw = os.getenv(name)
    return _to_int(name, raw) if raw else default


def _env_decimal(name: str, default: Decimal) -> Decimal:
    import os

    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return parse_decimal(raw, name, allow_zero=False)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def _to_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
