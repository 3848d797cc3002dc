"""
Módulo de inicialização dos gateways.
Deve ser importado somente depois que o Django estiver configurado.
"""
from django.conf import settings

from .gateways import (
    BackendAPIClient,
    CampanhaGatewayHTTP as CampanhaGateway,
    CarrinhoGatewayHTTP as CarrinhoGateway,
    CatalogoGatewayHTTP as CatalogoGateway,
    CheckoutGatewayHTTP as CheckoutGateway,
    CupaoGatewayHTTP as CupaoGateway,
    DashboardGatewayHTTP as DashboardGateway,
    EncomendaGatewayHTTP as EncomendaGateway,
    FavoritoGatewayHTTP as FavoritoGateway,
    ProdutoAdminGatewayHTTP as ProdutoAdminGateway,
    UtilizadorGatewayHTTP as UtilizadorGateway,
)

# Cliente HTTP partilhado (um único BACKEND_URL para todos os ecrãs)
backend_client = BackendAPIClient(settings.BACKEND_URL, timeout=settings.BACKEND_TIMEOUT)

# Instâncias globais dos gateways
catalogo_gateway = CatalogoGateway(backend_client)
carrinho_gateway = CarrinhoGateway(backend_client)
cupao_gateway = CupaoGateway(backend_client)
checkout_gateway = CheckoutGateway(backend_client)
encomenda_gateway = EncomendaGateway(backend_client)
utilizador_gateway = UtilizadorGateway(backend_client)
favorito_gateway = FavoritoGateway(backend_client)
produto_admin_gateway = ProdutoAdminGateway(backend_client)
campanha_gateway = CampanhaGateway(backend_client)
dashboard_gateway = DashboardGateway(backend_client)
