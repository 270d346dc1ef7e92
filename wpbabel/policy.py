"""Collection of non-fatal problems met during a translation run."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import ErrorCategory, ErrorRecord

logger = logging.getLogger(__name__)


class ErrorPolicy:
    """Records recoverable errors so a run can finish and report them."""

    def __init__(self) -> None:
        self.records: List[ErrorRecord] = []

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        details: Optional[str] = None,
    ) -> ErrorRecord:
        """Log a recoverable error and keep it for the final summary."""

        record = ErrorRecord(category=category, message=message, details=details)
        self.records.append(record)
        if details:
            logger.warning("%s (%s)", message, details)
        else:
            logger.warning(message)
        return record

    @property
    def messages(self) -> List[str]:
        return [record.message for record in self.records]
