"""Business errors that abort a whole operation before any side effect."""


class PreconditionFailed(Exception):
    code = "precondition_failed"

    def __init__(self, content_id: str, message: str) -> None:
        super().__init__(message)
        self.content_id = content_id
        self.message = message


class ContentNotFound(PreconditionFailed):
    code = "content_not_found"

    def __init__(self, content_id: str) -> None:
        super().__init__(content_id, "Content not found")


class PendingAdjustments(PreconditionFailed):
    code = "pending_adjustments"

    def __init__(self, content_id: str) -> None:
        super().__init__(content_id, "Content has pending adjustment requests")


class PublishInProgress(PreconditionFailed):
    code = "publish_in_progress"

    def __init__(self, content_id: str) -> None:
        super().__init__(content_id, "A publish run for this content is in progress")
