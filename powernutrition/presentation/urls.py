"""
Rotas da API da loja (montra, carrinho, checkout, conta) e do painel administrativo.
"""
from django.urls import path
from . import views, views_auth, views_admin


urlpatterns = [
    # ====================================================================
    # 1. ROTAS DE CATÁLOGO (LOJA)
    # ====================================================================
    path('loja/produtos/', views.ProdutosAPIView.as_view(), name='loja_produtos'),
    path('loja/produtos/<str:produto_id>/', views.ProdutoDetalheAPIView.as_view(), name='loja_produto'),
    path('loja/filtros/', views.FiltrosCatalogoAPIView.as_view(), name='loja_filtros'),

    # ====================================================================
    # 2. ROTAS DE COMPRA (CARRINHO, CUPÕES E CHECKOUT)
    # ====================================================================
    path('carrinho/', views.CarrinhoAPIView.as_view(), name='carrinho'),
    path('carrinho/<str:variante_id>/', views.ItemCarrinhoAPIView.as_view(), name='carrinho_item'),
    path('cupoes/', views.CupoesAPIView.as_view(), name='cupoes'),
    path('cupoes/aplicar/', views.AplicarCupoesAPIView.as_view(), name='cupoes_aplicar'),
    path('cupoes/remover/<str:codigo>/', views.RemoverCupaoAPIView.as_view(), name='cupoes_remover'),
    path('checkout/', views.CheckoutAPIView.as_view(), name='checkout'),
    path('favoritos/', views.FavoritosAPIView.as_view(), name='favoritos'),
    path('favoritos/<str:variante_id>/', views.AlternarFavoritoAPIView.as_view(), name='favoritos_alternar'),

    # ====================================================================
    # 3. ROTAS DE AUTENTICAÇÃO
    # ====================================================================
    path('auth/login/', views_auth.LoginAPIView.as_view(), name='login'),
    path('auth/registo/', views_auth.RegistoAPIView.as_view(), name='registo'),
    path('auth/logout/', views_auth.LogoutAPIView.as_view(), name='logout'),
    path('auth/sessao/', views_auth.SessaoAPIView.as_view(), name='sessao'),

    # ====================================================================
    # 4. ROTAS DE PERFIL (ÁREA DO CLIENTE)
    # ====================================================================
    path('conta/encomendas/', views.MinhasEncomendasAPIView.as_view(), name='minhas_encomendas'),
    path('conta/<str:utilizador_id>/', views.ContaAPIView.as_view(), name='conta'),
    path('cookies/', views.ConsentimentoCookiesAPIView.as_view(), name='consentimento_cookies'),

    # ====================================================================
    # 5. ROTAS ADMINISTRATIVAS
    # ====================================================================
    path('admin/dashboard/', views_admin.DashboardAdminAPIView.as_view(), name='admin_dashboard'),

    # Produtos, variantes e imagens
    path('admin/produtos/', views_admin.ProdutosAdminAPIView.as_view(), name='admin_produtos'),
    path('admin/produtos/<str:produto_id>/', views_admin.ProdutoAdminAPIView.as_view(), name='admin_produto'),
    path('admin/produtos/<str:produto_id>/variantes/', views_admin.VariantesAdminAPIView.as_view(),
         name='admin_variantes'),
    path('admin/produtos/<str:produto_id>/variantes/<str:variante_id>/', views_admin.VarianteAdminAPIView.as_view(),
         name='admin_variante'),
    path('admin/produtos/<str:produto_id>/imagens/', views_admin.ImagensProdutoAdminAPIView.as_view(),
         name='admin_imagens'),

    # Cupões
    path('admin/cupoes/', views_admin.CupoesAdminAPIView.as_view(), name='admin_cupoes'),
    path('admin/cupoes/utilizacao/<str:codigo>/', views_admin.UtilizacaoCupaoAdminAPIView.as_view(),
         name='admin_cupao_utilizacao'),
    path('admin/cupoes/<str:cupao_id>/', views_admin.CupaoAdminAPIView.as_view(), name='admin_cupao'),

    # Utilizadores
    path('admin/utilizadores/', views_admin.UtilizadoresAdminAPIView.as_view(), name='admin_utilizadores'),
    path('admin/utilizadores/<str:utilizador_id>/', views_admin.UtilizadorAdminAPIView.as_view(),
         name='admin_utilizador'),
    path('admin/utilizadores/<str:utilizador_id>/promover/', views_admin.PromoverUtilizadorAdminAPIView.as_view(),
         name='admin_promover'),
    path('admin/utilizadores/<str:utilizador_id>/encomendas/',
         views_admin.EncomendasUtilizadorAdminAPIView.as_view(), name='admin_utilizador_encomendas'),

    # Encomendas
    path('admin/encomendas/', views_admin.EncomendasAdminAPIView.as_view(), name='admin_encomendas'),
    path('admin/encomendas/<str:encomenda_id>/', views_admin.EncomendaAdminAPIView.as_view(),
         name='admin_encomenda'),

    # Campanhas
    path('admin/campanhas/', views_admin.CampanhasAdminAPIView.as_view(), name='admin_campanhas'),
    path('admin/campanhas/<str:campanha_id>/', views_admin.CampanhaAdminAPIView.as_view(), name='admin_campanha'),
    path('admin/campanhas/<str:campanha_id>/produtos/', views_admin.ProdutosCampanhaAdminAPIView.as_view(),
         name='admin_campanha_produtos'),
    path('admin/campanhas/<str:campanha_id>/produtos/<str:produto_id>/',
         views_admin.ProdutoCampanhaAdminAPIView.as_view(), name='admin_campanha_produto'),
]
