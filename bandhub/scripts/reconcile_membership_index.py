"""Rebuild the per-user band index from the band rosters.

Usage: python -m bandhub.scripts.reconcile_membership_index
"""

import json

import bandhub.models  # noqa: F401
from bandhub.core.observability import setup_observability
from bandhub.db.session import SessionLocal
from bandhub.services.reconciliation_service import ReconciliationReport, reconcile_membership_index


def run() -> ReconciliationReport:
    db = SessionLocal()
    try:
        return reconcile_membership_index(db)
    finally:
        db.close()


def main() -> None:
    setup_observability()
    report = run()
    print(json.dumps({"changed": report.changed, **vars(report)}, indent=2))


if __name__ == "__main__":
    main()
