#!/usr/bin/env python3
"""Generate a sample credit portfolio and export it.

Builds one organization's facilities, loans, payments and collateral, then
writes them (plus exposures, alerts and due notices) to the chosen sinks.

Examples
--------
    python scripts/generate_sample_portfolio.py --banks 5 --seed 7
    python scripts/generate_sample_portfolio.py --sink json --output-dir local
    python scripts/generate_sample_portfolio.py --sink kafka --kafka-bootstrap broker:9092
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_core.config import LoanCoreConfig
from loan_core.exceptions import LoanCoreError
from loan_core.generators.credit import BankGenerator
from loan_core.logging import get_logger, setup_logging
from loan_core.numeric import parse_date
from loan_core.scenarios.credit import SamplePortfolioScenario
from loan_core.sinks import ConsoleSink, JsonFileSink, KafkaSink

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a sample Saudi credit portfolio"
    )
    parser.add_argument(
        "--banks",
        type=int,
        default=4,
        help="Number of lending banks (default: 4)",
    )
    parser.add_argument(
        "--collateral",
        type=int,
        default=3,
        help="Number of collateral assets (default: 3)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: SEED env or none)",
    )
    parser.add_argument(
        "--today",
        type=str,
        default=None,
        help="Business date as YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--sink",
        choices=["console", "json", "kafka"],
        action="append",
        help="Output sink; repeat for several (default: console)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the json sink (default: OUTPUT_DIR env or ./output)",
    )
    parser.add_argument(
        "--kafka-bootstrap",
        type=str,
        default=None,
        help="Kafka bootstrap servers (default: KAFKA_BOOTSTRAP_SERVERS env)",
    )
    parser.add_argument(
        "--schema-registry",
        type=str,
        default=None,
        help="Schema Registry URL; enables Avro for loans and exposures",
    )
    parser.add_argument(
        "--max-records",
        type=int,
        default=5,
        help="Records printed per entity by the console sink (default: 5)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: LOG_LEVEL env or INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not 1 <= args.banks <= len(BankGenerator.SAUDI_BANKS):
        parser.error(f"--banks must be between 1 and {len(BankGenerator.SAUDI_BANKS)}")
    config = LoanCoreConfig.from_env()

    setup_logging(args.log_level or config.log_level, config.log_format)

    if args.kafka_bootstrap:
        config.kafka.bootstrap_servers = args.kafka_bootstrap
    output_dir = args.output_dir or config.output.json_output_dir
    seed = args.seed if args.seed is not None else config.seed

    try:
        today = parse_date(args.today, "--today") if args.today else date.today()

        sinks = []
        for name in args.sink or ["console"]:
            if name == "console":
                sinks.append(ConsoleSink(pretty=True, max_records=args.max_records))
            elif name == "json":
                sinks.append(JsonFileSink(output_dir, pretty=config.output.pretty_json))
            else:
                sinks.append(KafkaSink(config.kafka, schema_registry_url=args.schema_registry))

        scenario = SamplePortfolioScenario(
            num_banks=args.banks,
            num_collateral=args.collateral,
            today=today,
            seed=seed,
            config=config,
        )
        scenario.generate()
        scenario.export(sinks)
        for sink in sinks:
            sink.close()
    except LoanCoreError as exc:
        logger.error("Generation failed: %s", exc)
        return 1

    print("\n" + "=" * 60)
    print("Portfolio Summary")
    print("=" * 60)
    print(json.dumps(scenario.get_portfolio_summary(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
