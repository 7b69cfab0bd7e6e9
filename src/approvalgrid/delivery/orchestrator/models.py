from enum import Enum

from pydantic import BaseModel, Field

from approvalgrid.delivery.publishers.base import AdapterErrorKind


class ChannelState(str, Enum):
    NOT_STARTED = "not_started"
    CONTAINER_CREATED = "container_created"
    PROCESSING = "processing"
    FINISHED = "finished"
    PUBLISHED = "published"
    ERROR = "error"
    FAILED = "failed"


class ChannelOutcome(BaseModel):
    """Result of one (content item, account) pair in a publish run."""

    account_id: str
    platform: str
    account: str
    state: ChannelState = ChannelState.NOT_STARTED
    remote_id: str | None = None
    error_kind: AdapterErrorKind | None = None
    message: str | None = None
    poll_attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == ChannelState.PUBLISHED and self.remote_id is not None

    def fail(self, kind: AdapterErrorKind, message: str) -> "ChannelOutcome":
        self.state = ChannelState.FAILED
        self.error_kind = kind
        self.message = message
        return self


class PublishedChannel(BaseModel):
    platform: str
    account: str
    remote_id: str


class FailedChannel(BaseModel):
    platform: str
    account: str
    message: str
    kind: AdapterErrorKind


class PublishReport(BaseModel):
    content_id: str
    succeeded: list[PublishedChannel] = Field(default_factory=list)
    failed: list[FailedChannel] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.succeeded)

    @property
    def fully_published(self) -> bool:
        return bool(self.succeeded) and not self.failed

    @classmethod
    def from_outcomes(
        cls, content_id: str, outcomes: list[ChannelOutcome]
    ) -> "PublishReport":
        report = cls(content_id=content_id)
        for o in outcomes:
            if o.succeeded:
                report.succeeded.append(
                    PublishedChannel(
                        platform=o.platform, account=o.account, remote_id=o.remote_id
                    )
                )
            else:
                report.failed.append(
                    FailedChannel(
                        platform=o.platform,
                        account=o.account,
                        message=o.message or "Unknown error",
                        kind=o.error_kind or AdapterErrorKind.REMOTE_REJECTED,
                    )
                )
        return report

    def publish_error(self) -> list[dict]:
        return [
            {"platform": f.platform, "account": f.account, "message": f.message}
            for f in self.failed
        ]
