from fastapi import APIRouter, Depends, Request
from nice.nice_services.auth import NiceAuthService
from Services.exceptions import ProxyError, UpstreamError
import logging

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


def get_auth_service(request: Request) -> NiceAuthService:
    return request.app.state.auth_service


@router.get("/token")
def get_nice_token(auth_service: NiceAuthService = Depends(get_auth_service)):
    """
    Repassa o token do NICE sem alterações
    """
    try:
        return auth_service.fetch_token()
    except ProxyError:
        raise
    except Exception as e:
        logger.error(f"Erro ao obter token: {str(e)}")
        raise UpstreamError(f"Erro ao obter token: {e}")
