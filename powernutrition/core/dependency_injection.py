# powernutrition/core/dependency_injection.py
"""
Módulo de Injeção de Dependência (DI).
Responsável por instanciar os Use Cases com os Gateways HTTP concretos da
camada de Infraestrutura. A sessão de autenticação é criada por pedido (na
camada de apresentação) e passada a cada fábrica.
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from powernutrition.infrastructure import instances
from .checkout import CheckoutAssembler, GestorCupoes, PORTES_ENVIO
from .sessao import SessaoAutenticacao
from .use_cases import (
    AutenticacaoUseCase,
    DetalharProdutoUseCase,
    GerirCampanhasAdminUseCase,
    GerirCarrinhoUseCase,
    GerirContaUseCase,
    GerirCupoesAdminUseCase,
    GerirEncomendasAdminUseCase,
    GerirFavoritosUseCase,
    GerirProdutosAdminUseCase,
    GerirUtilizadoresAdminUseCase,
    ListarProdutosUseCase,
    ObterDashboardUseCase,
)


# ====================================================================
# Use Cases da Loja
# ====================================================================

def get_listar_produtos_use_case() -> ListarProdutosUseCase:
    return ListarProdutosUseCase(instances.catalogo_gateway)

def get_detalhar_produto_use_case() -> DetalharProdutoUseCase:
    return DetalharProdutoUseCase(instances.catalogo_gateway)

def get_gerir_carrinho_use_case(sessao: SessaoAutenticacao) -> GerirCarrinhoUseCase:
    return GerirCarrinhoUseCase(instances.carrinho_gateway, sessao)

def get_gerir_favoritos_use_case(sessao: SessaoAutenticacao) -> GerirFavoritosUseCase:
    return GerirFavoritosUseCase(instances.favorito_gateway, sessao)

def get_gestor_cupoes(subtotal: Decimal, estado: Optional[Dict[str, Any]] = None) -> GestorCupoes:
    """Reconstrói a lista de cupões guardada na sessão para o subtotal atual."""
    estado = estado or {}
    gestor = GestorCupoes(instances.cupao_gateway, subtotal, PORTES_ENVIO, codigos=estado.get('codigos'))
    # o desconto só é válido para o carrinho sobre o qual foi calculado
    if estado.get('subtotal') == str(subtotal) and estado.get('total_final') is not None:
        gestor.desconto = Decimal(estado['desconto'])
        gestor.total_final = Decimal(estado['total_final'])
    return gestor

def get_checkout_assembler(sessao: SessaoAutenticacao) -> CheckoutAssembler:
    return CheckoutAssembler(instances.checkout_gateway, sessao)


# ====================================================================
# Use Cases de Conta
# ====================================================================

def get_autenticacao_use_case(sessao: SessaoAutenticacao) -> AutenticacaoUseCase:
    return AutenticacaoUseCase(instances.utilizador_gateway, sessao)

def get_gerir_conta_use_case(sessao: SessaoAutenticacao) -> GerirContaUseCase:
    return GerirContaUseCase(instances.utilizador_gateway, instances.encomenda_gateway, sessao)


# ====================================================================
# Use Cases de Administração
# ====================================================================

def get_gerir_produtos_admin_use_case(sessao: SessaoAutenticacao) -> GerirProdutosAdminUseCase:
    return GerirProdutosAdminUseCase(instances.catalogo_gateway, instances.produto_admin_gateway, sessao)

def get_gerir_cupoes_admin_use_case(sessao: SessaoAutenticacao) -> GerirCupoesAdminUseCase:
    return GerirCupoesAdminUseCase(instances.cupao_gateway, sessao)

def get_gerir_utilizadores_admin_use_case(sessao: SessaoAutenticacao) -> GerirUtilizadoresAdminUseCase:
    return GerirUtilizadoresAdminUseCase(instances.utilizador_gateway, sessao)

def get_gerir_encomendas_admin_use_case(sessao: SessaoAutenticacao) -> GerirEncomendasAdminUseCase:
    return GerirEncomendasAdminUseCase(instances.encomenda_gateway, sessao)

def get_gerir_campanhas_admin_use_case(sessao: SessaoAutenticacao) -> GerirCampanhasAdminUseCase:
    return GerirCampanhasAdminUseCase(
        instances.campanha_gateway, instances.produto_admin_gateway, instances.catalogo_gateway, sessao
    )

def get_dashboard_use_case(sessao: SessaoAutenticacao) -> ObterDashboardUseCase:
    return ObterDashboardUseCase(instances.dashboard_gateway, sessao)
