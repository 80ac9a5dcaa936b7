from fastapi import APIRouter, Depends
from ..dependencies import get_client_ip, get_consent_orchestrator
from ..schemas.consent import ConsentResponse, ConsentSubmission
from ..services.consent_service import ConsentOrchestrator

router = APIRouter(prefix="/consent", tags=["consent"])


@router.post("", response_model=ConsentResponse)
async def submit_consent(
    payload: ConsentSubmission,
    ip_address: str = Depends(get_client_ip),
    orchestrator: ConsentOrchestrator = Depends(get_consent_orchestrator),
):
    """
    Persist the signed consent. Succeeds once the consent is stored, even if
    the PDF or the email could not be produced.
    """
    result = await orchestrator.submit(payload, ip_address=ip_address)
    return ConsentResponse(consentId=result.consent_id, consecutivo=result.consecutivo, emailSent=result.email_sent)
