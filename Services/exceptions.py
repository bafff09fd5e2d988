"""Exceções da aplicação, cada uma com status HTTP e código estável."""

from typing import Optional


class ProxyError(Exception):
    """Base para os erros que a API converte em envelope JSON."""

    status_code = 500
    code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code

    def to_body(self) -> dict:
        return {"ok": False, "error": self.code, "message": str(self)}


class InvalidInput(ProxyError):
    """Campo obrigatório ausente, vazio ou com tipo errado."""

    status_code = 400
    code = "INVALID_INPUT"


class NotFound(ProxyError):
    """Nenhum registro corresponde à busca."""

    status_code = 404
    code = "NOT_FOUND"


class StorageUnavailable(ProxyError):
    """Falha de conexão ou de execução no banco."""


class UpstreamError(ProxyError):
    """Resposta de erro do provedor OAuth do NICE."""

    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status

    def to_body(self) -> dict:
        # clientes do NICE leem a resposta do provedor em "error"
        return {"ok": False, "error": str(self), "code": self.code}
