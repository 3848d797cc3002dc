import logging

from rest_framework import status
from rest_framework.authentication import CSRFCheck
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from powernutrition.core import dependency_injection as di
from powernutrition.core.catalogo import FiltroCatalogo, ORDENACOES
from powernutrition.core.checkout import PedidoCheckout, formatar_euros
from powernutrition.core.exceptions import (
    AutenticacaoNecessariaError,
    BackendIndisponivelError,
    BackendRespostaError,
    BaseErroCore,
    DadosInvalidosError,
    ItemNaoEncontradoError,
    PermissaoNegadaError,
    TransicaoInvalidaError,
)
from .auth_manager import ConsentimentoCookiesManager, CupoesManager, obter_sessao
from .serializers import (
    AdicionarCarrinhoSerializer,
    CarrinhoSerializer,
    CategoriaSerializer,
    CheckoutSerializer,
    CodigoCupaoSerializer,
    ConfirmacaoEncomendaSerializer,
    ContaFormSerializer,
    EncomendaSerializer,
    OpcaoFiltroSerializer,
    ProdutoSerializer,
    QuantidadeSerializer,
    UtilizadorSerializer,
)

logger = logging.getLogger(__name__)


# ====================================================================
# BASE: tradução das exceções do core em respostas HTTP
# ====================================================================

def status_para_erro(erro: BaseErroCore) -> int:
    if isinstance(erro, AutenticacaoNecessariaError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(erro, PermissaoNegadaError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(erro, ItemNaoEncontradoError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(erro, TransicaoInvalidaError):
        return status.HTTP_409_CONFLICT
    if isinstance(erro, BackendIndisponivelError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(erro, BackendRespostaError):
        # 4xx do backend passam para o cliente; o resto é falha do servidor a montante
        if erro.status_code and 400 <= erro.status_code < 500:
            return erro.status_code
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_400_BAD_REQUEST


def resposta_erro(erro: BaseErroCore) -> Response:
    corpo = {'success': False, 'message': erro.message}
    passo = getattr(erro, 'passo', None)
    if passo:
        corpo['passo'] = passo
    return Response(corpo, status=status_para_erro(erro))


class BaseAPIView(APIView):
    """APIView que devolve {'success': False, 'message': ...} para erros do core."""
    permission_classes = [AllowAny]

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.verificar_csrf(request)

    def verificar_csrf(self, request):
        """
        O token de acesso viaja no cookie de sessão, por isso os pedidos que
        alteram estado têm de trazer o token CSRF (mesma verificação que o
        SessionAuthentication do DRF faz).
        """
        check = CSRFCheck(lambda req: None)
        check.process_request(request)
        motivo = check.process_view(request, None, (), {})
        if motivo:
            raise PermissaoNegadaError(f"Pedido rejeitado (CSRF): {motivo}")

    def handle_exception(self, exc):
        if isinstance(exc, BaseErroCore):
            resposta = resposta_erro(exc)
            if resposta.status_code >= 500:
                logger.error("%s %s falhou: %s", self.request.method, self.request.path, exc.message)
            return resposta
        return super().handle_exception(exc)

    @property
    def sessao(self):
        return obter_sessao(self.request)

    def validar(self, serializer_class, **kwargs):
        serializer = serializer_class(data=self.request.data, **kwargs)
        serializer.is_valid(raise_exception=True)
        return serializer


# ====================================================================
# 1. CATÁLOGO
# ====================================================================

class ProdutosAPIView(BaseAPIView):
    """Montra: lista filtrada, ordenada e paginada (9 por página)."""

    def get(self, request):
        filtro = FiltroCatalogo.from_query(request.query_params)
        try:
            pagina = int(request.query_params.get('page') or 1)
        except ValueError:
            pagina = 1
        resultado = di.get_listar_produtos_use_case().executar(filtro, pagina)
        return Response({
            'produtos': ProdutoSerializer(resultado.produtos, many=True).data,
            'pagina': resultado.pagina,
            'total_paginas': resultado.total_paginas,
            'total_produtos': resultado.total_produtos,
        })


class FiltrosCatalogoAPIView(BaseAPIView):
    """Opções disponíveis para os filtros da montra."""

    def get(self, request):
        opcoes = di.get_listar_produtos_use_case().opcoes_filtro()
        return Response({
            'categorias': CategoriaSerializer(opcoes['categorias'], many=True).data,
            'marcas': OpcaoFiltroSerializer(opcoes['marcas'], many=True).data,
            'sabores': OpcaoFiltroSerializer(opcoes['sabores'], many=True).data,
            'pesos': opcoes['pesos'],
            'ordenacoes': list(ORDENACOES),
        })


class ProdutoDetalheAPIView(BaseAPIView):

    def get(self, request, produto_id):
        produto = di.get_detalhar_produto_use_case().executar(produto_id)
        return Response(ProdutoSerializer(produto).data)


# ====================================================================
# 2. CARRINHO E FAVORITOS
# ====================================================================

class CarrinhoAPIView(BaseAPIView):
    """GET: carrinho atual. POST: adiciona um produto (a variante é escolhida pelo servidor)."""

    def get(self, request):
        carrinho = di.get_gerir_carrinho_use_case(self.sessao).listar()
        return Response(CarrinhoSerializer(carrinho).data)

    def post(self, request):
        dados = self.validar(AdicionarCarrinhoSerializer).validated_data
        carrinho = di.get_gerir_carrinho_use_case(self.sessao).adicionar(dados['product_id'], dados['quantity'])
        return Response(
            {'success': True, 'message': 'Produto adicionado ao carrinho.', 'carrinho': CarrinhoSerializer(carrinho).data},
            status=status.HTTP_201_CREATED,
        )


class ItemCarrinhoAPIView(BaseAPIView):
    """Alteração de quantidade e remoção por id de variante."""

    def patch(self, request, variante_id):
        quantidade = self.validar(QuantidadeSerializer).validated_data['quantity']
        carrinho = di.get_gerir_carrinho_use_case(self.sessao).atualizar_quantidade(variante_id, quantidade)
        return Response(CarrinhoSerializer(carrinho).data)

    def delete(self, request, variante_id):
        carrinho = di.get_gerir_carrinho_use_case(self.sessao).remover(variante_id)
        return Response(CarrinhoSerializer(carrinho).data)


class FavoritosAPIView(BaseAPIView):

    def get(self, request):
        return Response({'favoritos': di.get_gerir_favoritos_use_case(self.sessao).listar()})


class AlternarFavoritoAPIView(BaseAPIView):

    def post(self, request, variante_id):
        favorito = di.get_gerir_favoritos_use_case(self.sessao).alternar(variante_id)
        mensagem = 'Adicionado aos favoritos.' if favorito else 'Removido dos favoritos.'
        return Response({'success': True, 'favorito': favorito, 'message': mensagem})


# ====================================================================
# 3. CUPÕES E CHECKOUT
# ====================================================================

def _estado_cupoes(gestor):
    return {
        'codigos': gestor.codigos,
        'subtotal': formatar_euros(gestor.subtotal),
        'desconto': formatar_euros(gestor.desconto),
        'portes': formatar_euros(gestor.portes),
        'total_final': formatar_euros(gestor.total_final),
    }


class CupoesMixin:
    """Carrega o carrinho e reconstrói o GestorCupoes guardado na sessão."""

    def carregar_gestor(self):
        carrinho = di.get_gerir_carrinho_use_case(self.sessao).listar()
        gestor = di.get_gestor_cupoes(carrinho.subtotal, CupoesManager(self.request).carregar())
        return carrinho, gestor

    def guardar_gestor(self, gestor):
        CupoesManager(self.request).guardar(gestor.to_dict())


class CupoesAPIView(CupoesMixin, BaseAPIView):
    """GET: estado dos cupões. POST: junta um código à lista (ainda sem desconto)."""

    def get(self, request):
        _, gestor = self.carregar_gestor()
        return Response(_estado_cupoes(gestor))

    def post(self, request):
        codigo = self.validar(CodigoCupaoSerializer).validated_data['code']
        _, gestor = self.carregar_gestor()
        mensagem = gestor.adicionar(codigo)
        self.guardar_gestor(gestor)
        return Response({'success': True, 'message': mensagem, **_estado_cupoes(gestor)})


class RemoverCupaoAPIView(CupoesMixin, BaseAPIView):

    def delete(self, request, codigo):
        _, gestor = self.carregar_gestor()
        gestor.remover(codigo)
        self.guardar_gestor(gestor)
        return Response({'success': True, **_estado_cupoes(gestor)})


class AplicarCupoesAPIView(CupoesMixin, BaseAPIView):
    """Pede ao servidor o desconto para todos os códigos da lista."""

    def post(self, request):
        carrinho, gestor = self.carregar_gestor()
        try:
            gestor.aplicar(carrinho.itens)
        finally:
            # em caso de falha o gestor já foi reposto; a sessão acompanha
            self.guardar_gestor(gestor)
        return Response({'success': True, 'message': 'Cupões aplicados com sucesso!', **_estado_cupoes(gestor)})


class CheckoutAPIView(CupoesMixin, BaseAPIView):
    """
    Submete o checkout: morada → pagamento → encomenda.
    Uma falha em qualquer passo interrompe os seguintes e devolve a mensagem do passo.
    """

    def post(self, request):
        sessao = self.sessao
        sessao.exigir_token()
        serializer = self.validar(CheckoutSerializer)

        carrinho, gestor = self.carregar_gestor()
        if carrinho.is_empty():
            raise DadosInvalidosError("O seu carrinho está vazio.")

        pedido = PedidoCheckout(
            cliente=serializer.to_cliente(),
            metodo_pagamento=serializer.validated_data['metodo_pagamento'],
            total=gestor.total_final,
            opcao_morada=serializer.validated_data['opcao_morada'],
            morada_personalizada=serializer.to_morada(),
            codigos_cupao=list(gestor.codigos),
        )
        confirmacao = di.get_checkout_assembler(sessao).submeter(pedido)
        CupoesManager(request).limpar()

        return Response({
            'success': True,
            'message': 'Encomenda realizada com sucesso!',
            'total_formatado': formatar_euros(confirmacao.total),
            'confirmacao': ConfirmacaoEncomendaSerializer(confirmacao).data,
        }, status=status.HTTP_201_CREATED)


# ====================================================================
# 4. ÁREA DE CLIENTE
# ====================================================================

class MinhasEncomendasAPIView(BaseAPIView):

    def get(self, request):
        encomendas = di.get_gerir_conta_use_case(self.sessao).listar_encomendas()
        return Response(EncomendaSerializer(encomendas, many=True).data)


class ContaAPIView(BaseAPIView):
    """Dados da conta; só o próprio utilizador tem acesso."""

    def get(self, request, utilizador_id):
        utilizador = di.get_gerir_conta_use_case(self.sessao).obter(utilizador_id)
        return Response(UtilizadorSerializer(utilizador).data)

    def put(self, request, utilizador_id):
        dados = self.validar(ContaFormSerializer).validated_data
        utilizador = di.get_gerir_conta_use_case(self.sessao).atualizar(utilizador_id, dict(dados))
        return Response({
            'success': True,
            'message': 'Dados atualizados com sucesso!',
            'utilizador': UtilizadorSerializer(utilizador).data,
        })


class ConsentimentoCookiesAPIView(BaseAPIView):

    def get(self, request):
        return Response({'aceite': ConsentimentoCookiesManager(request).aceite()})

    def post(self, request):
        aceite = request.data.get('aceite', True)
        if isinstance(aceite, str):
            aceite = aceite.lower() in ('1', 'true', 'sim')
        ConsentimentoCookiesManager(request).definir(aceite)
        return Response({'success': True, 'aceite': bool(aceite)})
