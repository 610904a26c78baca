import argparse
import logging

from dotenv import load_dotenv

from adr.bootstrap import create_game_engine
from adr.domain.errors import ConfigurationError
from adr.infrastructure.inmemory.reference_data import InMemoryReferenceData, default_stock_market
from adr.infrastructure.inmemory.snapshot_store import InMemorySnapshotStore
from adr.presentation.balance_report import render_balance_report


def main(argv=None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Print a balance report for the current game configuration")
    parser.add_argument("--battles", type=int, default=20, help="Simulated battles per monster")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible rolls")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))
    # Reports always run against a throwaway in-memory store.
    reference = InMemoryReferenceData()
    store = InMemorySnapshotStore(shops=reference.default_shops(), market=default_stock_market())
    try:
        engine = create_game_engine(seed=args.seed, store=store)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}")
        return 2
    render_balance_report(engine, battles_per_monster=max(1, args.battles))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
