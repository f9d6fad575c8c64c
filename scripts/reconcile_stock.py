"""
Reconcile product_variant_stock with the stock batch ledger.
Run: python scripts/reconcile_stock.py [--url DATABASE_URL] [--org ORGANIZATION_ID]
Exits 1 when any (variant, location) drifts.
"""
import argparse
import sys
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from retail_ledger.config import settings
from retail_ledger.database import build_engine
from retail_ledger.services.stock_ledger import StockLedgerService


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile stock aggregates with batch ledger")
    parser.add_argument("--url", "-u", help="Database URL (default: DATABASE_URL env)")
    parser.add_argument("--org", help="Limit to one organization id")
    parser.add_argument("--limit", type=int, default=20, help="Max drift rows to print")
    args = parser.parse_args(argv)
    url = args.url or settings.database_connection_string
    if not url:
        print("ERROR: No database URL. Set DATABASE_URL or use --url")
        return 2

    engine = build_engine(url)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    db = Session()
    try:
        drift = StockLedgerService.reconcile(db, UUID(args.org) if args.org else None)
        if drift:
            print(f"DRIFT: {len(drift)} (variant_id, location_id) pairs where ledger != aggregate")
            for d in drift[: args.limit]:
                print(
                    f"  variant={d.variant_id} location={d.location_id} "
                    f"ledger={d.ledger_quantity} aggregate={d.aggregate_quantity}"
                )
            return 1
        print("OK: product_variant_stock in sync with stock batches")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
