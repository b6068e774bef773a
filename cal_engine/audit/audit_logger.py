"""
Audit Logging Module.

This module records every directory mutation attempted by a lifecycle
pass so that moves, disables and deletions can be traced afterwards.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from ..models import AuditRecord

logger = logging.getLogger(__name__)


class AuditLogger:
    """
    Append-only logger for directory mutations.

    Persists audit records as daily JSON Lines files.
    """

    def __init__(self, audit_dir: str = "audit"):
        """
        Initialize the audit logger.

        Args:
            audit_dir: Directory to store audit logs
        """
        self.audit_dir = Path(audit_dir)
        self.audit_dir.mkdir(parents=True, exist_ok=True)

    def log_event(self, record: AuditRecord) -> str:
        """
        Log an audit event.

        Args:
            record: The audit record to log

        Returns:
            The record ID
        """
        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        log_file = self.audit_dir / f"audit_{date_str}.jsonl"

        try:
            with open(log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(record.model_dump(mode="json")) + "\n")
        except OSError as e:
            logger.error(f"Failed to log audit event: {e}")
            raise

        logger.debug(f"Logged audit event {record.id} for {record.account_name}")
        return record.id

    def get_events(
        self,
        account_name: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[AuditRecord]:
        """
        Retrieve audit events, most recent first.

        Args:
            account_name: Filter by account name (case-insensitive)
            start_date: Filter by start date
            end_date: Filter by end date
            limit: Maximum number of records to return

        Returns:
            List of matching AuditRecords
        """
        results = []
        log_files = sorted(self.audit_dir.glob("audit_*.jsonl"), reverse=True)

        for log_file in log_files:
            if len(results) >= limit:
                break

            try:
                with open(log_file, encoding="utf-8") as f:
                    lines = f.readlines()
            except OSError as e:
                logger.error(f"Failed to read log file {log_file}: {e}")
                continue

            for line in reversed(lines):
                if len(results) >= limit:
                    break

                try:
                    record = AuditRecord(**json.loads(line))
                except ValueError as e:
                    logger.warning(f"Failed to parse audit record: {e}")
                    continue

                if account_name and record.account_name.lower() != account_name.lower():
                    continue
                if start_date and record.timestamp < start_date:
                    continue
                if end_date and record.timestamp > end_date:
                    continue

                results.append(record)

        return results

    def summarize(self, records: List[AuditRecord]) -> Dict[str, Dict[str, int]]:
        """Count successful and failed attempts per action."""
        summary: Dict[str, Dict[str, int]] = {}
        for record in records:
            row = summary.setdefault(record.action, {"succeeded": 0, "failed": 0})
            row["succeeded" if record.success else "failed"] += 1
        return summary
