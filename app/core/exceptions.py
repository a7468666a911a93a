from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DocumentStoreError(ServiceError):
    """A read or batched write against the document store failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)


class BatchLimitExceeded(ServiceError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"Write batch exceeds the limit of {limit} operations", status.HTTP_400_BAD_REQUEST)
        self.limit = limit


class PromotionInProgress(ServiceError):
    def __init__(self, class_id: str) -> None:
        super().__init__(f"A transition is already running for class {class_id}", status.HTTP_409_CONFLICT)
        self.class_id = class_id


class PromotionSessionNotFound(ServiceError):
    def __init__(self, session_id: str) -> None:
        super().__init__("Promotion session not found", status.HTTP_404_NOT_FOUND)
        self.session_id = session_id


class StudentNotFound(ServiceError):
    def __init__(self, student_id: str) -> None:
        super().__init__(f"Student {student_id} is not in this roster", status.HTTP_404_NOT_FOUND)
        self.student_id = student_id
