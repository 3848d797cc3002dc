# powernutrition/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

Todo o estado de negócio vive no backend REST; estes protocolos descrevem o
contrato que os gateways HTTP da camada de Infraestrutura DEVEM seguir para
servir os Casos de Uso do Core.
"""

from typing import Protocol, List, Optional, Dict, Any
from abc import abstractmethod

from powernutrition.core.entities import (
    Produto, Categoria, Sabor, Carrinho, ItemCarrinho, Cupao, ResultadoCupoes,
    Morada, Encomenda, Utilizador, Campanha, ResumoDashboard, Variante
)


# ====================================================================
# 1. ARMAZENAMENTO LOCAL (token de sessão)
# ====================================================================

class ITokenStorage(Protocol):
    """Armazenamento persistente do token (equivalente ao localStorage do browser)."""

    @abstractmethod
    def ler(self) -> Optional[str]: ...

    @abstractmethod
    def gravar(self, token: str): ...

    @abstractmethod
    def remover(self): ...


# ====================================================================
# 2. GATEWAYS DA LOJA
# ====================================================================

class ICatalogoGateway(Protocol):
    """Leitura do catálogo público."""

    @abstractmethod
    def listar_produtos(self) -> List[Produto]: ...

    @abstractmethod
    def obter_produto(self, produto_id: str) -> Produto: ...

    @abstractmethod
    def listar_categorias(self) -> List[Categoria]: ...

    @abstractmethod
    def listar_sabores(self) -> List[Sabor]: ...


class ICarrinhoGateway(Protocol):
    """Carrinho guardado no servidor, por utilizador autenticado."""

    @abstractmethod
    def listar(self, token: str) -> Carrinho: ...

    @abstractmethod
    def adicionar(self, token: str, produto_id: str, quantidade: int): ...

    @abstractmethod
    def atualizar_quantidade(self, token: str, variante_id: str, quantidade: int): ...

    @abstractmethod
    def remover(self, token: str, variante_id: str): ...


class ICupaoGateway(Protocol):
    """Aplicação de cupões e gestão administrativa de cupões."""

    @abstractmethod
    def aplicar(self, codigos: List[str], itens: List[ItemCarrinho]) -> ResultadoCupoes: ...

    @abstractmethod
    def listar(self, token: Optional[str] = None) -> List[Cupao]: ...

    @abstractmethod
    def obter(self, cupao_id: str) -> Cupao: ...

    @abstractmethod
    def criar(self, cupao: Cupao, token: Optional[str] = None) -> Cupao: ...

    @abstractmethod
    def atualizar(self, cupao: Cupao, token: Optional[str] = None) -> Cupao: ...

    @abstractmethod
    def remover(self, cupao_id: str, token: Optional[str] = None): ...

    @abstractmethod
    def utilizacao(self, codigo: str) -> int: ...


class ICheckoutGateway(Protocol):
    """Os três endpoints encadeados do checkout."""

    @abstractmethod
    def criar_morada(self, token: str, morada: Morada) -> Dict[str, Any]: ...

    @abstractmethod
    def criar_referencia_pagamento(self, token: str, metodo: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def finalizar(self, token: str, payload: Dict[str, Any]) -> Dict[str, Any]: ...


class IEncomendaGateway(Protocol):

    @abstractmethod
    def listar_proprias(self, token: str) -> List[Encomenda]: ...

    @abstractmethod
    def listar_todas(self, token: str) -> List[Encomenda]: ...

    @abstractmethod
    def obter(self, token: str, encomenda_id: str) -> Encomenda: ...


class IUtilizadorGateway(Protocol):
    """Autenticação, registo e gestão de contas."""

    @abstractmethod
    def login(self, email: str, password: str) -> str: ...

    @abstractmethod
    def registar(self, dados: Dict[str, Any], token: Optional[str] = None) -> Dict[str, Any]: ...

    @abstractmethod
    def obter(self, token: str, utilizador_id: str) -> Utilizador: ...

    @abstractmethod
    def listar(self, token: str) -> List[Utilizador]: ...

    @abstractmethod
    def atualizar(self, token: str, utilizador_id: str, dados: Dict[str, Any]) -> Utilizador: ...

    @abstractmethod
    def remover(self, token: str, utilizador_id: str): ...

    @abstractmethod
    def promover(self, token: str, utilizador_id: str): ...

    @abstractmethod
    def listar_encomendas(self, token: str, utilizador_id: str) -> List[Encomenda]: ...


class IFavoritoGateway(Protocol):
    """Favoritos por variante."""

    @abstractmethod
    def listar(self, token: str) -> List[str]: ...

    @abstractmethod
    def adicionar(self, token: str, variante_id: str): ...

    @abstractmethod
    def remover(self, token: str, variante_id: str): ...


# ====================================================================
# 3. GATEWAYS DO BACK-OFFICE
# ====================================================================

class IProdutoAdminGateway(Protocol):
    """Escrita de produtos, variantes e imagens."""

    @abstractmethod
    def criar(self, token: str, dados: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def atualizar(self, token: str, produto_id: str, dados: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def remover(self, token: str, produto_id: str): ...

    @abstractmethod
    def criar_variante(self, token: str, produto_id: str, dados: Dict[str, Any]) -> Variante: ...

    @abstractmethod
    def atualizar_variante(self, token: str, produto_id: str, variante_id: str, dados: Dict[str, Any]) -> Variante: ...

    @abstractmethod
    def carregar_imagem(self, token: Optional[str], nome_ficheiro: str, conteudo: bytes, content_type: str) -> str: ...

    @abstractmethod
    def associar_imagem(self, token: str, produto_id: str, url: str, principal: bool = False) -> Dict[str, Any]: ...

    @abstractmethod
    def listar_imagens(self, produto_id: str) -> List[Dict[str, Any]]: ...


class ICampanhaGateway(Protocol):

    @abstractmethod
    def listar(self) -> List[Campanha]: ...

    @abstractmethod
    def criar(self, nome: str, ativa: bool, imagem_url: str) -> Dict[str, Any]: ...

    @abstractmethod
    def remover(self, campanha_id: str): ...

    @abstractmethod
    def adicionar_produto(self, campanha_id: str, produto_id: str): ...

    @abstractmethod
    def remover_produto(self, campanha_id: str, produto_id: str): ...


class IDashboardGateway(Protocol):

    @abstractmethod
    def obter_resumo(self, token: Optional[str] = None) -> ResumoDashboard: ...
