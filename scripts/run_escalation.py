"""
Run one SLA escalation sweep against the configured complaint store.

Usage:
  - Dry run (default): python scripts/run_escalation.py
  - Apply escalations: python scripts/run_escalation.py --apply
  - Custom SLA window: python scripts/run_escalation.py --apply --sla-hours 24

Intended for cron / Cloud Scheduler. Uses the same store selection as the
API (`USE_MOCK_DB`, `FIREBASE_CREDENTIALS_PATH` from `.env`).
"""

import argparse
import logging
import sys
from datetime import datetime, timezone

from civiclink.config.firebase import get_complaint_store
from civiclink.core.logging_config import configure_logging
from civiclink.services.escalation_engine import EscalationSweeper

logger = logging.getLogger("run_escalation")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Escalate open complaints past their SLA")
    parser.add_argument("--apply", action="store_true", help="Write escalations instead of dry-run")
    parser.add_argument("--sla-hours", type=int, default=None, help="Override ESCALATION_SLA_HOURS")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    sweeper = EscalationSweeper(get_complaint_store(), sla_hours=args.sla_hours)
    now = datetime.now(timezone.utc)

    if not args.apply:
        breaches = sweeper.find_breaches(now)
        for complaint in breaches:
            logger.info(f"Would escalate: {complaint['id']} (created {complaint.get('createdAt')})")
        logger.info(f"Dry run complete: {len(breaches)} complaint(s). Re-run with --apply to escalate.")
        return 0

    result = sweeper.run(now)
    logger.info(f"Sweep completed: {result.count} complaint(s) escalated.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
