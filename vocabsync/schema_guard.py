"""One-time schema validation in front of the reconciliation engine."""

from typing import Optional

from pydantic import BaseModel

from vocabsync.logger import format_event, get_logger
from vocabsync.store_gateway import StoreGateway


class SchemaCheck(BaseModel):
    """Outcome of the first schema validation in this process."""

    ok: bool
    error_kind: Optional[str] = None
    message: str = ""


class SchemaGuard:
    """
    Validate the store schema once per process and remember the outcome.

    A failed check is logged and cached but never blocks reconciliation:
    only requests that actually touch a missing property fail. The outcome
    is assigned once; two callers racing on the first check may both run it.
    """

    def __init__(self, gateway: StoreGateway):
        self.gateway = gateway
        self._outcome: Optional[SchemaCheck] = None
        self.logger = get_logger()

    @property
    def outcome(self) -> Optional[SchemaCheck]:
        return self._outcome

    def ensure(self) -> SchemaCheck:
        outcome = self._outcome
        if outcome is not None:
            return outcome

        try:
            self.gateway.validate_schema()
            outcome = SchemaCheck(ok=True)
        except Exception as e:
            outcome = SchemaCheck(ok=False, error_kind=type(e).__name__, message=str(e))
            self.logger.error(
                format_event(
                    "SCHEMA",
                    "Schema validation failed",
                    error_kind=outcome.error_kind,
                    error=outcome.message,
                )
            )

        if self._outcome is None:
            self._outcome = outcome
        return self._outcome
