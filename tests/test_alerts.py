"""Tests for the daily alert digest."""

from datetime import date, timedelta
from decimal import Decimal

from conftest import make_bank, make_collateral, make_facility, make_loan
from loan_core.config import AlertConfig
from loan_core.engine.alerts import count_by_category, generate_daily_alerts
from loan_core.models.credit import AlertCategory, CreditLine, LoanStatus

TODAY = date(2026, 10, 19)

# A single bank always holds 100% of exposure
SINGLE_BANK = AlertConfig(concentration_threshold=Decimal("100"))


def _ids(alerts) -> list[str]:
    return [a.alert_id for a in alerts]


class TestDailyAlerts:
    """Tests for alert categorization."""

    def test_empty_portfolio(self) -> None:
        """Test that nothing to report gives no alerts."""
        assert generate_daily_alerts([], [], [], [], TODAY) == []

    def test_overdue_is_critical(self) -> None:
        """Test overdue loans produce a critical alert."""
        loans = [make_loan(due_date=TODAY - timedelta(days=3), amount="100000")]
        facilities = [make_facility(credit_limit="10000000")]

        alerts = generate_daily_alerts(loans, facilities, [make_bank()], [], TODAY)

        overdue = next(a for a in alerts if a.alert_id == "overdue-2026-10-19")
        assert overdue.category == AlertCategory.CRITICAL
        assert overdue.data[0]["days_overdue"] == 3
        assert "SAR 100,000.00" in overdue.message

    def test_settled_overdue_not_reported(self) -> None:
        """Test that settled loans never alert."""
        loans = [make_loan(due_date=TODAY - timedelta(days=3), status=LoanStatus.SETTLED)]

        alerts = generate_daily_alerts(loans, [make_facility()], [make_bank()], [], TODAY)

        assert "overdue-2026-10-19" not in _ids(alerts)

    def test_facility_expiring(self) -> None:
        """Test a facility expiring within a week is critical."""
        facilities = [make_facility(expiry_date=TODAY + timedelta(days=5))]

        alerts = generate_daily_alerts([], facilities, [make_bank()], [], TODAY)

        [alert] = alerts
        assert alert.alert_id == "facilities-expiring-2026-10-19"
        assert alert.category == AlertCategory.CRITICAL
        assert alert.data[0]["bank_name"] == "Saudi National Bank"

    def test_due_soon_includes_today(self) -> None:
        """Test loans due today and within the window are high."""
        loans = [
            make_loan("loan-001", due_date=TODAY, amount="100000"),
            make_loan("loan-002", due_date=TODAY + timedelta(days=7), amount="100000"),
        ]
        facilities = [make_facility(credit_limit="10000000")]

        alerts = generate_daily_alerts(loans, facilities, [make_bank()], [], TODAY)

        upcoming = next(a for a in alerts if a.alert_id == "upcoming-2026-10-19")
        assert upcoming.category == AlertCategory.HIGH
        assert len(upcoming.data) == 2

    def test_high_utilization(self) -> None:
        """Test a facility above 80% is high."""
        loans = [make_loan(amount="4500000", due_date=TODAY + timedelta(days=60))]

        alerts = generate_daily_alerts(loans, [make_facility()], [make_bank()], [], TODAY)

        hot = next(a for a in alerts if a.alert_id == "high-utilization-2026-10-19")
        assert hot.category == AlertCategory.HIGH
        assert hot.data[0]["utilization"] == Decimal("90.00")

    def test_single_bank_is_concentrated(self) -> None:
        """Test that one bank with all exposure exceeds the default threshold."""
        loans = [make_loan(amount="100000", due_date=TODAY + timedelta(days=60))]

        alerts = generate_daily_alerts(
            loans, [make_facility(credit_limit="10000000")], [make_bank()], [], TODAY
        )

        assert _ids(alerts) == ["concentration-2026-10-19"]

    def test_concentration(self) -> None:
        """Test a bank holding most of the exposure is medium."""
        banks = [make_bank("bank-001", "SNB"), make_bank("bank-002", "Riyad Bank")]
        facilities = [
            make_facility("fac-001", "bank-001", "50000000"),
            make_facility("fac-002", "bank-002", "50000000"),
        ]
        due = TODAY + timedelta(days=60)
        loans = [
            make_loan("loan-001", "fac-001", "9000000", due_date=due),
            make_loan("loan-002", "fac-002", "1000000", due_date=due),
        ]

        alerts = generate_daily_alerts(loans, facilities, banks, [], TODAY)

        concentration = next(a for a in alerts if a.alert_id == "concentration-2026-10-19")
        assert concentration.category == AlertCategory.MEDIUM
        assert concentration.data[0]["bank_id"] == "bank-001"
        assert concentration.data[0]["concentration"] == Decimal("90.00")

    def test_high_ltv(self) -> None:
        """Test LTV above 70% is medium."""
        loans = [make_loan(amount="2000000", due_date=TODAY + timedelta(days=60))]

        alerts = generate_daily_alerts(
            loans,
            [make_facility(credit_limit="10000000")],
            [make_bank()],
            [make_collateral(value="2500000")],
            TODAY,
        )

        ltv = next(a for a in alerts if a.alert_id == "high-ltv-2026-10-19")
        assert ltv.data["ltv"] == Decimal("80.00")

    def test_revolving_limit(self) -> None:
        """Test revolving usage above 80% is medium."""
        facilities = [
            make_facility(
                credit_limit="10000000",
                enable_revolving_tracking=True,
                max_revolving_period=100,
            )
        ]
        loans = [
            make_loan(
                start_date=TODAY - timedelta(days=20),
                due_date=TODAY + timedelta(days=70),
                amount="100000",
            )
        ]

        alerts = generate_daily_alerts(loans, facilities, [make_bank()], [], TODAY)

        revolving = next(a for a in alerts if a.alert_id == "revolving-limit-fac-001")
        assert revolving.category == AlertCategory.MEDIUM
        assert revolving.data["usage_percent"] == Decimal("90.0")

    def test_revolving_limit_via_credit_line(self) -> None:
        """Test a loan booked on a credit line alone feeds its facility's revolving alert."""
        facilities = [
            make_facility(
                credit_limit="10000000",
                enable_revolving_tracking=True,
                max_revolving_period=30,
            )
        ]
        lines = [
            CreditLine(
                credit_line_id="cl-001",
                facility_id="fac-001",
                organization_id="org-test-001",
                name="Credit Line A",
                credit_limit=Decimal("10000000"),
            )
        ]
        loans = [
            make_loan(
                facility_id=None,
                credit_line_id="cl-001",
                start_date=TODAY - timedelta(days=60),
                due_date=TODAY + timedelta(days=29),
                amount="100000",
            )
        ]

        alerts = generate_daily_alerts(
            loans, facilities, [make_bank()], [], TODAY, credit_lines=lines
        )

        revolving = next(a for a in alerts if a.alert_id == "revolving-limit-fac-001")
        assert revolving.data["usage_percent"] == Decimal("100.0")

    def test_default_revolving_period(self) -> None:
        """Test tracked facilities without a cap use the configured default."""
        facilities = [make_facility(credit_limit="10000000", enable_revolving_tracking=True)]
        loans = [
            make_loan(
                start_date=TODAY - timedelta(days=300),
                due_date=TODAY + timedelta(days=60),
                amount="100000",
            )
        ]

        alerts = generate_daily_alerts(loans, facilities, [make_bank()], [], TODAY)

        revolving = next(a for a in alerts if a.alert_id == "revolving-limit-fac-001")
        assert revolving.data["max_days"] == 360

    def test_upcoming_is_low(self) -> None:
        """Test loans due in 8 to 30 days are low."""
        loans = [make_loan(due_date=TODAY + timedelta(days=20), amount="100000")]

        alerts = generate_daily_alerts(
            loans, [make_facility(credit_limit="10000000")], [make_bank()], [], TODAY, SINGLE_BANK
        )

        [alert] = alerts
        assert alert.alert_id == "monthly-upcoming-2026-10-19"
        assert alert.category == AlertCategory.LOW
        assert alert.data == 1

    def test_sorted_by_severity(self) -> None:
        """Test critical alerts come before low ones."""
        loans = [
            make_loan("loan-001", due_date=TODAY - timedelta(days=1), amount="100000"),
            make_loan("loan-002", due_date=TODAY + timedelta(days=20), amount="100000"),
        ]

        alerts = generate_daily_alerts(
            loans, [make_facility(credit_limit="10000000")], [make_bank()], [], TODAY
        )

        ranks = [a.category.rank for a in alerts]
        assert ranks == sorted(ranks)
        assert alerts[0].category == AlertCategory.CRITICAL

    def test_custom_thresholds(self) -> None:
        """Test that thresholds come from config."""
        loans = [make_loan(amount="3000000", due_date=TODAY + timedelta(days=60))]
        config = AlertConfig(utilization_threshold=Decimal("50"))

        alerts = generate_daily_alerts(
            loans, [make_facility()], [make_bank()], [], TODAY, config
        )

        assert "high-utilization-2026-10-19" in _ids(alerts)


class TestCountByCategory:
    """Tests for category counts."""

    def test_every_category_present(self) -> None:
        """Test zero counts are included."""
        loans = [make_loan(due_date=TODAY + timedelta(days=20), amount="100000")]
        alerts = generate_daily_alerts(
            loans, [make_facility(credit_limit="10000000")], [make_bank()], [], TODAY, SINGLE_BANK
        )

        counts = count_by_category(alerts)

        assert counts == {
            AlertCategory.CRITICAL: 0,
            AlertCategory.HIGH: 0,
            AlertCategory.MEDIUM: 0,
            AlertCategory.LOW: 1,
        }
