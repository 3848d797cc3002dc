from typing import Optional

from powernutrition.core.ports import ITokenStorage


class MemoriaTokenStorage(ITokenStorage):
    """Token guardado em memória (processos sem sessão HTTP, ex: testes e shell)."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def ler(self) -> Optional[str]:
        return self._token

    def gravar(self, token: str):
        self._token = token

    def remover(self):
        self._token = None
