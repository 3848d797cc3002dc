# powernutrition/presentation/views_admin.py
"""
Views da API do painel de administração.
Todas exigem uma sessão com um token de administrador.
"""
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from powernutrition.core import dependency_injection as di
from powernutrition.core.listagens import ConsultaLista
from powernutrition.core.use_cases import (
    GerirCupoesAdminUseCase,
    GerirEncomendasAdminUseCase,
    GerirProdutosAdminUseCase,
    GerirUtilizadoresAdminUseCase,
)
from .serializers import (
    CampanhaFormSerializer,
    CampanhaSerializer,
    CupaoSerializer,
    EncomendaSerializer,
    ProdutoFormSerializer,
    ProdutoSerializer,
    ResumoDashboardSerializer,
    UtilizadorFormSerializer,
    UtilizadorSerializer,
    VarianteFormSerializer,
    VarianteSerializer,
    ficheiro_para_imagem,
)
from .views import BaseAPIView


class AdminAPIView(BaseAPIView):
    """Base das views administrativas: verifica o token de administrador antes do handler."""
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.sessao.exigir_admin()


def _pagina(pagina, serializer_class):
    return {
        'itens': serializer_class(pagina.itens, many=True).data,
        'pagina': pagina.pagina,
        'total_paginas': pagina.total_paginas,
        'total_itens': pagina.total_itens,
    }


# ====================================================================
# DASHBOARD
# ====================================================================

class DashboardAdminAPIView(AdminAPIView):

    def get(self, request):
        resumo = di.get_dashboard_use_case(self.sessao).executar()
        return Response(ResumoDashboardSerializer(resumo).data)


# ====================================================================
# PRODUTOS, VARIANTES E IMAGENS
# ====================================================================

class ProdutosAdminAPIView(AdminAPIView):
    """GET: lista com pesquisa/ordenação/paginação. POST: novo produto com a primeira variante."""

    def get(self, request):
        consulta = ConsultaLista.from_query(
            request.query_params,
            campos_pesquisa=GerirProdutosAdminUseCase.CAMPOS_PESQUISA,
            ordenar_por='nome',
            campos_ordenacao=GerirProdutosAdminUseCase.CAMPOS_ORDENACAO,
        )
        pagina = di.get_gerir_produtos_admin_use_case(self.sessao).listar(consulta)
        return Response(_pagina(pagina, ProdutoSerializer))

    def post(self, request):
        dados = dict(self.validar(ProdutoFormSerializer).validated_data)
        ficheiro = dados.pop('imagem', None)
        imagem = ficheiro_para_imagem(ficheiro) if ficheiro else None
        produto_id = di.get_gerir_produtos_admin_use_case(self.sessao).criar(dados, imagem)
        return Response(
            {'success': True, 'message': 'Produto adicionado com sucesso!', 'id': produto_id},
            status=status.HTTP_201_CREATED,
        )


class ProdutoAdminAPIView(AdminAPIView):

    def get(self, request, produto_id):
        produto = di.get_gerir_produtos_admin_use_case(self.sessao).obter(produto_id)
        return Response(ProdutoSerializer(produto).data)

    def put(self, request, produto_id):
        dados = dict(self.validar(ProdutoFormSerializer).validated_data)
        ficheiro = dados.pop('imagem', None)
        imagem = ficheiro_para_imagem(ficheiro) if ficheiro else None
        produto = di.get_gerir_produtos_admin_use_case(self.sessao).atualizar(produto_id, dados, imagem)
        return Response({
            'success': True,
            'message': 'Produto atualizado com sucesso!',
            'produto': ProdutoSerializer(produto).data,
        })

    def delete(self, request, produto_id):
        di.get_gerir_produtos_admin_use_case(self.sessao).remover(produto_id)
        return Response({'success': True, 'message': 'Produto eliminado com sucesso!'})


class VariantesAdminAPIView(AdminAPIView):

    def post(self, request, produto_id):
        dados = self.validar(VarianteFormSerializer).validated_data
        variante = di.get_gerir_produtos_admin_use_case(self.sessao).criar_variante(produto_id, dict(dados))
        return Response(
            {'success': True, 'message': 'Variante adicionada com sucesso!', 'variante': VarianteSerializer(variante).data},
            status=status.HTTP_201_CREATED,
        )


class VarianteAdminAPIView(AdminAPIView):

    def put(self, request, produto_id, variante_id):
        dados = self.validar(VarianteFormSerializer).validated_data
        variante = di.get_gerir_produtos_admin_use_case(self.sessao).atualizar_variante(
            produto_id, variante_id, dict(dados)
        )
        return Response({
            'success': True,
            'message': 'Variante atualizada com sucesso!',
            'variante': VarianteSerializer(variante).data,
        })


class ImagensProdutoAdminAPIView(AdminAPIView):
    """GET: imagens associadas. POST (multipart, campo 'imagens'): carrega e associa cada ficheiro."""

    def get(self, request, produto_id):
        return Response(di.get_gerir_produtos_admin_use_case(self.sessao).listar_imagens(produto_id))

    def post(self, request, produto_id):
        imagens = [ficheiro_para_imagem(f) for f in request.FILES.getlist('imagens')]
        if not imagens:
            return Response(
                {'success': False, 'message': 'Selecione pelo menos uma imagem.'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        resultados = di.get_gerir_produtos_admin_use_case(self.sessao).adicionar_imagens(produto_id, imagens)
        return Response({'success': all(r['sucesso'] for r in resultados), 'resultados': resultados})


# ====================================================================
# CUPÕES
# ====================================================================

class CupoesAdminAPIView(AdminAPIView):

    def get(self, request):
        consulta = ConsultaLista.from_query(
            request.query_params,
            campos_pesquisa=GerirCupoesAdminUseCase.CAMPOS_PESQUISA,
            campos_filtro=('especifico',),
        )
        pagina = di.get_gerir_cupoes_admin_use_case(self.sessao).listar(consulta)
        return Response(_pagina(pagina, CupaoSerializer))

    def post(self, request):
        cupao = self.validar(CupaoSerializer).to_entity()
        criado = di.get_gerir_cupoes_admin_use_case(self.sessao).criar(cupao)
        return Response(
            {'success': True, 'message': 'Cupão criado com sucesso!', 'cupao': CupaoSerializer(criado).data},
            status=status.HTTP_201_CREATED,
        )


class CupaoAdminAPIView(AdminAPIView):

    def get(self, request, cupao_id):
        return Response(CupaoSerializer(di.get_gerir_cupoes_admin_use_case(self.sessao).obter(cupao_id)).data)

    def put(self, request, cupao_id):
        cupao = self.validar(CupaoSerializer).to_entity(cupao_id=cupao_id)
        atualizado = di.get_gerir_cupoes_admin_use_case(self.sessao).atualizar(cupao)
        return Response({
            'success': True,
            'message': 'Cupão atualizado com sucesso!',
            'cupao': CupaoSerializer(atualizado).data,
        })

    def delete(self, request, cupao_id):
        di.get_gerir_cupoes_admin_use_case(self.sessao).remover(cupao_id)
        return Response({'success': True, 'message': 'Cupão eliminado com sucesso!'})


class UtilizacaoCupaoAdminAPIView(AdminAPIView):

    def get(self, request, codigo):
        total = di.get_gerir_cupoes_admin_use_case(self.sessao).utilizacao(codigo)
        return Response({'codigo': codigo, 'utilizacoes': total})


# ====================================================================
# UTILIZADORES
# ====================================================================

class UtilizadoresAdminAPIView(AdminAPIView):

    def get(self, request):
        consulta = ConsultaLista.from_query(
            request.query_params,
            campos_pesquisa=GerirUtilizadoresAdminUseCase.CAMPOS_PESQUISA,
            campos_filtro=('is_admin',),
            campos_ordenacao=GerirUtilizadoresAdminUseCase.CAMPOS_ORDENACAO,
        )
        pagina = di.get_gerir_utilizadores_admin_use_case(self.sessao).listar(consulta)
        return Response(_pagina(pagina, UtilizadorSerializer))

    def post(self, request):
        dados = self.validar(UtilizadorFormSerializer).validated_data
        di.get_gerir_utilizadores_admin_use_case(self.sessao).criar(dict(dados))
        return Response(
            {'success': True, 'message': 'Utilizador criado com sucesso!'},
            status=status.HTTP_201_CREATED,
        )


class UtilizadorAdminAPIView(AdminAPIView):

    def get(self, request, utilizador_id):
        utilizador = di.get_gerir_utilizadores_admin_use_case(self.sessao).obter(utilizador_id)
        return Response(UtilizadorSerializer(utilizador).data)

    def put(self, request, utilizador_id):
        dados = self.validar(UtilizadorFormSerializer).validated_data
        utilizador = di.get_gerir_utilizadores_admin_use_case(self.sessao).atualizar(utilizador_id, dict(dados))
        return Response({
            'success': True,
            'message': 'Utilizador atualizado com sucesso!',
            'utilizador': UtilizadorSerializer(utilizador).data,
        })

    def delete(self, request, utilizador_id):
        di.get_gerir_utilizadores_admin_use_case(self.sessao).remover(utilizador_id)
        return Response({'success': True, 'message': 'Utilizador eliminado com sucesso!'})


class PromoverUtilizadorAdminAPIView(AdminAPIView):

    def patch(self, request, utilizador_id):
        di.get_gerir_utilizadores_admin_use_case(self.sessao).promover(utilizador_id)
        return Response({'success': True, 'message': 'Utilizador promovido a administrador.'})


class EncomendasUtilizadorAdminAPIView(AdminAPIView):

    def get(self, request, utilizador_id):
        encomendas = di.get_gerir_utilizadores_admin_use_case(self.sessao).listar_encomendas(utilizador_id)
        return Response(EncomendaSerializer(encomendas, many=True).data)


# ====================================================================
# ENCOMENDAS
# ====================================================================

class EncomendasAdminAPIView(AdminAPIView):
    """Pesquisa por id, cliente, método, morada ou id EasyPay; filtro por estado e intervalo de datas."""

    def get(self, request):
        consulta = ConsultaLista.from_query(
            request.query_params,
            campos_pesquisa=GerirEncomendasAdminUseCase.CAMPOS_PESQUISA,
            campos_filtro=('estado', 'metodo_pagamento'),
            campos_ordenacao=GerirEncomendasAdminUseCase.CAMPOS_ORDENACAO,
        )
        pagina = di.get_gerir_encomendas_admin_use_case(self.sessao).listar(consulta)
        return Response(_pagina(pagina, EncomendaSerializer))


class EncomendaAdminAPIView(AdminAPIView):

    def get(self, request, encomenda_id):
        encomenda = di.get_gerir_encomendas_admin_use_case(self.sessao).obter(encomenda_id)
        return Response(EncomendaSerializer(encomenda).data)


# ====================================================================
# CAMPANHAS
# ====================================================================

class CampanhasAdminAPIView(AdminAPIView):

    def get(self, request):
        campanhas = di.get_gerir_campanhas_admin_use_case(self.sessao).listar()
        return Response(CampanhaSerializer(campanhas, many=True).data)

    def post(self, request):
        dados = self.validar(CampanhaFormSerializer).validated_data
        ficheiro = dados.get('imagem')
        campanhas = di.get_gerir_campanhas_admin_use_case(self.sessao).criar(
            dados['nome'], dados.get('ativa', True), ficheiro_para_imagem(ficheiro) if ficheiro else None
        )
        return Response(
            {'success': True, 'message': 'Campanha criada com sucesso!',
             'campanhas': CampanhaSerializer(campanhas, many=True).data},
            status=status.HTTP_201_CREATED,
        )


class CampanhaAdminAPIView(AdminAPIView):

    def get(self, request, campanha_id):
        campanha = di.get_gerir_campanhas_admin_use_case(self.sessao).obter(campanha_id)
        return Response(CampanhaSerializer(campanha).data)

    def delete(self, request, campanha_id):
        di.get_gerir_campanhas_admin_use_case(self.sessao).remover(campanha_id)
        return Response({'success': True, 'message': 'Campanha eliminada com sucesso!'})


class ProdutosCampanhaAdminAPIView(AdminAPIView):
    """GET: produtos que ainda podem ser associados. POST: associa um produto (campo 'product_id')."""

    def get(self, request, campanha_id):
        produtos = di.get_gerir_campanhas_admin_use_case(self.sessao).produtos_disponiveis(campanha_id)
        return Response(ProdutoSerializer(produtos, many=True).data)

    def post(self, request, campanha_id):
        produto_id = request.data.get('product_id')
        if not produto_id:
            return Response(
                {'success': False, 'message': 'Selecione um produto.'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        campanha = di.get_gerir_campanhas_admin_use_case(self.sessao).adicionar_produto(campanha_id, str(produto_id))
        return Response({'success': True, 'campanha': CampanhaSerializer(campanha).data})


class ProdutoCampanhaAdminAPIView(AdminAPIView):

    def delete(self, request, campanha_id, produto_id):
        campanha = di.get_gerir_campanhas_admin_use_case(self.sessao).remover_produto(campanha_id, produto_id)
        return Response({'success': True, 'campanha': CampanhaSerializer(campanha).data})
