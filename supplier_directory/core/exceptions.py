"""Application-level exceptions and FastAPI exception handlers."""


from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from supplier_directory.core.response import error_body


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)

class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: int | str | None = None):
        msg = f"{entity} not found" if entity_id is None else f"{entity} '{entity_id}' not found"
        super().__init__(msg, status_code=404, code="NOT_FOUND")

class ConflictError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="CONFLICT")

class ValidationError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=422, code="VALIDATION_ERROR")

class StoreError(AppException):
    """Raised when the underlying database call fails. The driver message is kept as-is."""

    def __init__(self, message: str, status_code: int = 503, code: str = "STORE_ERROR"):
        super().__init__(message, status_code=status_code, code=code)

class PartialWriteError(StoreError):
    """A non-atomic reconciliation failed after at least one step was committed.

    The supplier row and its association rows may disagree until the pending
    intent is replayed.
    """

    def __init__(
        self,
        message: str,
        *,
        supplier_id: int | None,
        completed_step: str,
        failed_step: str,
        intent_id: int | None = None,
    ):
        self.supplier_id = supplier_id
        self.completed_step = completed_step
        self.failed_step = failed_step
        self.intent_id = intent_id
        super().__init__(
            f"Partial write on supplier {supplier_id}: '{failed_step}' failed after "
            f"'{completed_step}' was committed: {message}",
            status_code=500,
            code="PARTIAL_WRITE",
        )

# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(
            status_code=422,
            content=error_body("VALIDATION_ERROR", details),
        )

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=error_body("NOT_FOUND", "Resource not found"),
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content=error_body("INTERNAL_ERROR", "An unexpected error occurred"),
        )
