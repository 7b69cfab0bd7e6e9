from enum import Enum

from pydantic import BaseModel, Field


class NotificationStatus(str, Enum):
    pending = "pending"
    sent = "sent"
    failed = "failed"


class DispatchItemStatus(str, Enum):
    sent = "sent"
    failed = "failed"
    skipped = "skipped"  # left pending, e.g. no endpoint configured


class DispatchItemResult(BaseModel):
    id: str
    status: DispatchItemStatus
    error: str | None = None


class DispatchReport(BaseModel):
    results: list[DispatchItemResult] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    def count(self, status: DispatchItemStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    def summary(self) -> dict:
        return {
            "processed": self.processed,
            "sent": self.count(DispatchItemStatus.sent),
            "failed": self.count(DispatchItemStatus.failed),
            "results": [r.model_dump(mode="json", exclude_none=True) for r in self.results],
        }
