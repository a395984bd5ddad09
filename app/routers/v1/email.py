"""Email delivery status and test endpoints."""

from fastapi import APIRouter, Depends

from app.core.response import DataResponse
from app.schemas.invitation import EmailConfigStatus, EmailTestRequest
from app.services.email_service import EmailService, get_email_service

router = APIRouter(prefix="/email", tags=["Email"])


@router.get("/status", response_model=DataResponse[EmailConfigStatus])
async def email_status(email: EmailService = Depends(get_email_service)):
    return {"data": await email.test_configuration()}


@router.post("/test", response_model=DataResponse[EmailConfigStatus])
async def send_test_email(body: EmailTestRequest, email: EmailService = Depends(get_email_service)):
    """Send a test message through the active provider."""
    return {"data": await email.test_configuration(str(body.to))}
