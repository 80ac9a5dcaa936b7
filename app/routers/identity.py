from fastapi import APIRouter, Depends
from ..dependencies import get_identity_resolver
from ..schemas.identity import IdentityCheckRequest, IdentityCheckResponse
from ..services.identity_service import IdentityResolver

router = APIRouter(prefix="/identity", tags=["identity"])


@router.post("/check", response_model=IdentityCheckResponse, response_model_exclude_none=True)
def check_identity(payload: IdentityCheckRequest, resolver: IdentityResolver = Depends(get_identity_resolver)):
    """Blind check: decides returning vs new visitor without exposing personal data."""
    return resolver.check(payload.cedula)
