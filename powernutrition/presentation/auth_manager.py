# powernutrition/presentation/auth_manager.py
# Estado do visitante guardado na sessão do Django: token de autenticação,
# lista de cupões do checkout e consentimento de cookies.

from typing import Any, Dict, Optional

from django.http import HttpRequest

from powernutrition.core.ports import ITokenStorage
from powernutrition.core.sessao import SessaoAutenticacao


class SessionTokenStorage(ITokenStorage):
    """ITokenStorage sobre request.session (o equivalente ao localStorage do browser)."""

    SESSION_KEY = 'token'

    def __init__(self, request: HttpRequest):
        self.request = request

    def ler(self) -> Optional[str]:
        return self.request.session.get(self.SESSION_KEY)

    def gravar(self, token: str):
        self.request.session[self.SESSION_KEY] = token
        self.request.session.modified = True

    def remover(self):
        if self.SESSION_KEY in self.request.session:
            del self.request.session[self.SESSION_KEY]
            self.request.session.modified = True


def obter_sessao(request: HttpRequest) -> SessaoAutenticacao:
    """
    Sessão de autenticação do pedido, verificada uma vez e reutilizada
    durante o resto do pedido.
    """
    sessao = getattr(request, '_sessao_autenticacao', None)
    if sessao is None:
        sessao = SessaoAutenticacao(SessionTokenStorage(request)).inicializar()
        request._sessao_autenticacao = sessao
    return sessao


class CupoesManager:
    """Persiste na sessão os códigos de cupão e o último resultado do servidor."""

    SESSION_KEY = 'cupoes_checkout'

    def __init__(self, request: HttpRequest):
        self.request = request

    def carregar(self) -> Dict[str, Any]:
        return dict(self.request.session.get(self.SESSION_KEY) or {})

    def guardar(self, estado: Dict[str, Any]):
        self.request.session[self.SESSION_KEY] = estado
        self.request.session.modified = True

    def limpar(self):
        """Usado após o checkout concluído."""
        if self.SESSION_KEY in self.request.session:
            del self.request.session[self.SESSION_KEY]
            self.request.session.modified = True


class ConsentimentoCookiesManager:
    """Flag de consentimento de cookies (único estado persistido além do token)."""

    SESSION_KEY = 'cookie_consent'

    def __init__(self, request: HttpRequest):
        self.request = request

    def aceite(self) -> bool:
        return bool(self.request.session.get(self.SESSION_KEY, False))

    def definir(self, aceite: bool):
        self.request.session[self.SESSION_KEY] = bool(aceite)
        self.request.session.modified = True
