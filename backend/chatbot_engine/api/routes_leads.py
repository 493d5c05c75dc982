"""Lead submission route."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chatbot_engine.api.dependencies import get_lead_service
from chatbot_engine.leads.store import LeadService
from chatbot_engine.models.dto import LeadSubmitRequest, LeadSubmitResponse

router = APIRouter()


@router.post("", response_model=LeadSubmitResponse, summary="Store a lead for a conversation")
def submit_lead(request: LeadSubmitRequest, service: LeadService = Depends(get_lead_service)) -> LeadSubmitResponse:
    receipt = service.submit(
        request.form_id,
        request.chatbot_id,
        request.conversation_id,
        request.data,
    )
    return LeadSubmitResponse(lead_id=receipt.lead_id, success_message=receipt.success_message)


__all__ = ["router"]
