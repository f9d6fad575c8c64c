"""
Create all tables on an empty database.
Run: python scripts/init_db.py [--url DATABASE_URL]
"""
import argparse
import sys

from retail_ledger.config import settings
from retail_ledger.database import build_engine
from retail_ledger.models import Base


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create retail_ledger tables")
    parser.add_argument("--url", "-u", help="Database URL (default: DATABASE_URL env)")
    args = parser.parse_args(argv)
    engine = build_engine(args.url or settings.database_connection_string)
    Base.metadata.create_all(engine)
    print(f"OK: {len(Base.metadata.tables)} tables present")
    return 0


if __name__ == "__main__":
    sys.exit(main())
