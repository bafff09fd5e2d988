import logging
from typing import Optional

import requests

from config import NICE_AUTH_URL, NICE_CLIENT_ID, NICE_CLIENT_SECRET, REQUEST_TIMEOUT
from Services.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class NiceAuthService:
    """
    Repassa o grant client_credentials para o provedor OAuth do NICE.

    Cada chamada autentica de novo: o token não é guardado nem renovado aqui,
    quem chama /token recebe a resposta do provedor como veio.
    """

    def __init__(
        self,
        auth_url: Optional[str] = NICE_AUTH_URL,
        client_id: Optional[str] = NICE_CLIENT_ID,
        client_secret: Optional[str] = NICE_CLIENT_SECRET,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.auth_url = auth_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.grant_type = "client_credentials"
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def token_url(self) -> str:
        return f"{self.auth_url.rstrip('/')}/oauth2/token"

    def fetch_token(self) -> dict:
        """Solicita um token novo ao NICE e devolve o JSON sem alterações"""
        if not self.auth_url:
            raise UpstreamError("NICE_AUTH_URL não configurada")

        data = {
            "grant_type": self.grant_type,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }

        logger.info("Solicitando novo token ao NICE...")
        try:
            resp = self.session.post(
                self.token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Falha de conexão com o NICE: {e}")
            raise UpstreamError(f"Falha de conexão com o NICE: {e}") from e

        if not resp.ok:
            logger.error(f"NICE recusou o token: HTTP {resp.status_code}")
            raise UpstreamError(resp.text, upstream_status=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"Resposta do NICE não é JSON: {resp.text}",
                                upstream_status=resp.status_code) from e
