from fastapi import APIRouter
from healwise.api.v1.appointments import routes as appointments
from healwise.core.exceptions import ErrorResponse, ValidationErrorResponse

# Error envelopes shared by every endpoint
error_responses = {
    400: {"model": ValidationErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}

api_router = APIRouter()
api_router.include_router(
    appointments.router,
    prefix="/appointments",
    tags=["appointments"],
    responses=error_responses
)
