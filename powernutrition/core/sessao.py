# powernutrition/core/sessao.py
"""
Sessão de autenticação do cliente.

O token JWT é emitido pelo backend e guardado num ITokenStorage. O payload é
descodificado SEM verificar a assinatura (o cliente confia no backend); um
token ilegível ou expirado equivale a "não autenticado" e é apagado.
"""
import logging
import time
from typing import Callable, Dict, Optional

import jwt

from powernutrition.core.entities import UtilizadorSessao
from powernutrition.core.exceptions import AutenticacaoNecessariaError, PermissaoNegadaError
from powernutrition.core.ports import ITokenStorage

logger = logging.getLogger(__name__)


def descodificar_token(token: str) -> Dict:
    """Lê o payload do JWT sem validar a assinatura nem a expiração."""
    return jwt.decode(token, options={'verify_signature': False, 'verify_exp': False})


class SessaoAutenticacao:
    """
    Detentor do estado de autenticação, injetado nas views/casos de uso.

    `a_carregar` fica True até à primeira verificação; `login` persiste e
    descodifica, `logout` limpa o armazenamento e o estado.
    """

    def __init__(self, storage: ITokenStorage, relogio: Callable[[], float] = time.time):
        self.storage = storage
        self.relogio = relogio
        self.utilizador: Optional[UtilizadorSessao] = None
        self.autenticado = False
        self.a_carregar = True

    # --- Ciclo de vida ---

    def inicializar(self) -> 'SessaoAutenticacao':
        """Verificação inicial a partir do armazenamento."""
        self.verificar()
        return self

    def verificar(self) -> bool:
        """Revalida o token guardado; pode ser repetido a qualquer momento."""
        self.a_carregar = True
        token = self.storage.ler()
        utilizador = self._validar(token) if token else None
        self._definir_estado(utilizador)
        self.a_carregar = False
        return self.autenticado

    def login(self, token: str) -> bool:
        """Guarda o token e atualiza o estado; devolve se ficou autenticado."""
        self.storage.gravar(token)
        self._definir_estado(self._validar(token))
        self.a_carregar = False
        return self.autenticado

    def logout(self):
        self.storage.remover()
        self._definir_estado(None)

    # --- Consultas ---

    def obter_token(self) -> Optional[str]:
        return self.storage.ler()

    def exigir_token(self) -> str:
        """Token atual ou AutenticacaoNecessariaError."""
        token = self.obter_token() if self.autenticado else None
        if not token:
            raise AutenticacaoNecessariaError()
        return token

    def exigir_admin(self) -> str:
        token = self.exigir_token()
        if not self.utilizador or not self.utilizador.is_admin:
            raise PermissaoNegadaError()
        return token

    def cabecalho_autorizacao(self) -> Dict[str, str]:
        token = self.obter_token()
        return {'Authorization': f'Bearer {token}'} if token else {}

    # --- Internos ---

    def _definir_estado(self, utilizador: Optional[UtilizadorSessao]):
        self.utilizador = utilizador
        self.autenticado = utilizador is not None

    def _validar(self, token: str) -> Optional[UtilizadorSessao]:
        """Descodifica o token; qualquer falha limpa o armazenamento e devolve None."""
        try:
            payload = descodificar_token(token)
            exp = payload.get('exp')
            if exp is not None and float(exp) < self.relogio():
                logger.info("Token expirado; sessão terminada.")
                self.storage.remover()
                return None
            return UtilizadorSessao(
                id=str(payload.get('id', '')),
                email=payload.get('email', ''),
                is_admin=bool(payload.get('is_admin', False)),
                exp=float(exp) if exp is not None else None,
            )
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.warning("Erro ao descodificar token: %s", e)
            self.storage.remover()
            return None
