import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

# Importa os Protocols e Entidades da camada Core
from powernutrition.core.entities import (
    Campanha, Carrinho, Categoria, Cupao, Encomenda, ItemCarrinho, Morada, Produto,
    ResultadoCupoes, ResumoDashboard, Sabor, Utilizador, Variante,
)
from powernutrition.core.exceptions import (
    BackendIndisponivelError, BackendRespostaError, ItemNaoEncontradoError,
)
from powernutrition.core.ports import (
    ICampanhaGateway, ICarrinhoGateway, ICatalogoGateway, ICheckoutGateway, ICupaoGateway,
    IDashboardGateway, IEncomendaGateway, IFavoritoGateway, IProdutoAdminGateway,
    IUtilizadorGateway,
)
from powernutrition.infrastructure.mappers import (
    CampanhaMapper, CarrinhoMapper, CategoriaMapper, CupaoMapper, DashboardMapper,
    EncomendaMapper, ItemCarrinhoMapper, ProdutoMapper, SaborMapper, UtilizadorMapper,
    VarianteMapper, mapear_lista, parse_decimal, parse_inteiro,
)

logger = logging.getLogger(__name__)

CHAVES_MENSAGEM = ('message', 'error')


# ====================================================================
# CLIENTE HTTP DO BACKEND
# ====================================================================

class BackendAPIClient:
    """
    Cliente fino sobre requests.Session para o backend REST.

    Traduz os erros de transporte em BackendIndisponivelError e as respostas
    não-2xx em BackendRespostaError (ItemNaoEncontradoError para 404), com a
    mensagem do servidor quando existe. Nunca repete pedidos.
    """

    def __init__(self, base_url: str, timeout: float = 15, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, caminho: str) -> str:
        return f"{self.base_url}/{caminho.lstrip('/')}"

    @staticmethod
    def _extrair_mensagem(resposta: requests.Response, chaves: Sequence[str]) -> str:
        try:
            dados = resposta.json()
        except ValueError:
            dados = None

        if isinstance(dados, dict):
            for chave in chaves:
                if dados.get(chave):
                    return str(dados[chave])
        texto = (resposta.text or '').strip()
        return texto or f"Erro da API: {resposta.reason}"

    def pedido(self, metodo: str, caminho: str, token: Optional[str] = None,
               json: Any = None, files: Optional[Dict[str, Any]] = None,
               chaves_mensagem: Sequence[str] = CHAVES_MENSAGEM) -> Any:
        """Executa o pedido e devolve o JSON da resposta (None se vier vazia)."""
        headers = {'Accept': 'application/json'}
        if token:
            headers['Authorization'] = f'Bearer {token}'

        url = self.url(caminho)
        try:
            resposta = self.session.request(
                metodo, url, json=json, files=files, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error("Erro de conexão com o backend (%s %s): %s", metodo, url, e)
            raise BackendIndisponivelError()

        if not resposta.ok:
            mensagem = self._extrair_mensagem(resposta, chaves_mensagem)
            logger.error("Erro da API para %s %s [%s]: %s", metodo, caminho, resposta.status_code, mensagem)
            if resposta.status_code == 404:
                raise ItemNaoEncontradoError(mensagem, status_code=404)
            raise BackendRespostaError(mensagem, status_code=resposta.status_code)

        if resposta.status_code == 204 or not resposta.content:
            return None
        try:
            return resposta.json()
        except ValueError:
            logger.error("Resposta não-JSON de %s %s: %r", metodo, caminho, resposta.text[:200])
            raise BackendRespostaError("Formato de resposta inesperado do servidor.", status_code=resposta.status_code)

    def get(self, caminho: str, token: Optional[str] = None, **kwargs) -> Any:
        return self.pedido('GET', caminho, token=token, **kwargs)

    def post(self, caminho: str, json: Any = None, token: Optional[str] = None, **kwargs) -> Any:
        return self.pedido('POST', caminho, token=token, json=json, **kwargs)

    def put(self, caminho: str, json: Any = None, token: Optional[str] = None, **kwargs) -> Any:
        return self.pedido('PUT', caminho, token=token, json=json, **kwargs)

    def patch(self, caminho: str, json: Any = None, token: Optional[str] = None, **kwargs) -> Any:
        return self.pedido('PATCH', caminho, token=token, json=json, **kwargs)

    def delete(self, caminho: str, token: Optional[str] = None, **kwargs) -> Any:
        return self.pedido('DELETE', caminho, token=token, **kwargs)


class BaseGatewayHTTP:
    def __init__(self, client: BackendAPIClient):
        self.client = client


# ====================================================================
# GATEWAYS DA LOJA
# ====================================================================

def _ordenar_por_id(itens):
    """Ids numéricos por valor, depois os restantes; itens sem id são ignorados."""
    validos = [i for i in itens if i.id]
    return sorted(validos, key=lambda i: (not i.id.isdigit(), int(i.id) if i.id.isdigit() else 0, i.id))


class CatalogoGatewayHTTP(BaseGatewayHTTP, ICatalogoGateway):
    """Catálogo público: produtos (com variantes), categorias e sabores."""

    def listar_produtos(self) -> List[Produto]:
        return mapear_lista(self.client.get('/api/products/listar'), ProdutoMapper)

    def obter_produto(self, produto_id: str) -> Produto:
        dados = self.client.get(f'/api/products/listar/{produto_id}')
        if not dados:
            raise ItemNaoEncontradoError(f"Produto ID {produto_id} não encontrado.", status_code=404)
        return ProdutoMapper.to_entity(dados)

    def listar_categorias(self) -> List[Categoria]:
        return _ordenar_por_id(mapear_lista(self.client.get('/api/categories/listar'), CategoriaMapper))

    def listar_sabores(self) -> List[Sabor]:
        return _ordenar_por_id(mapear_lista(self.client.get('/api/flavors/listar'), SaborMapper))


class CarrinhoGatewayHTTP(BaseGatewayHTTP, ICarrinhoGateway):

    def listar(self, token: str) -> Carrinho:
        dados = self.client.get('/api/cart/listar', token=token)
        if dados is not None and not (isinstance(dados, dict) and isinstance(dados.get('items'), list)):
            logger.warning("A API de carrinho retornou um formato inesperado ou vazio: %r", dados)
        return CarrinhoMapper.to_entity(dados)

    def adicionar(self, token: str, produto_id: str, quantidade: int):
        return self.client.post('/api/cart/adicionar', {'product_id': produto_id, 'quantity': quantidade}, token=token)

    def atualizar_quantidade(self, token: str, variante_id: str, quantidade: int):
        return self.client.patch('/api/cart/atualizar', {'variantId': variante_id, 'quantity': quantidade}, token=token)

    def remover(self, token: str, variante_id: str):
        return self.client.delete(f'/api/cart/remover/{variante_id}', token=token)


class CupaoGatewayHTTP(BaseGatewayHTTP, ICupaoGateway):

    def aplicar(self, codigos: List[str], itens: List[ItemCarrinho]) -> ResultadoCupoes:
        payload = {
            'couponCodes': list(codigos),
            'items': [ItemCarrinhoMapper.to_payload_cupao(item) for item in itens],
        }
        dados = self.client.post('/api/cupoes/apply', payload)
        if not isinstance(dados, dict):
            raise BackendRespostaError("Formato de resposta inesperado do servidor.")
        desconto = parse_decimal(dados.get('discount'))
        novo_total = parse_decimal(dados.get('newTotal'))
        if desconto is None or novo_total is None:
            raise BackendRespostaError("Formato de resposta inesperado do servidor.")
        return ResultadoCupoes(desconto=desconto, novo_total=novo_total)

    def listar(self, token: Optional[str] = None) -> List[Cupao]:
        return mapear_lista(self.client.get('/api/cupoes/listar', token=token), CupaoMapper)

    def obter(self, cupao_id: str) -> Cupao:
        return CupaoMapper.to_entity(self.client.get(f'/api/cupoes/listar/{cupao_id}') or {})

    def criar(self, cupao: Cupao, token: Optional[str] = None) -> Cupao:
        dados = self.client.post('/api/cupoes/criar', CupaoMapper.to_payload(cupao), token=token)
        return CupaoMapper.to_entity(dados or {})

    def atualizar(self, cupao: Cupao, token: Optional[str] = None) -> Cupao:
        dados = self.client.put(f'/api/cupoes/atualizar/{cupao.id}', CupaoMapper.to_payload(cupao), token=token)
        # alguns endpoints devolvem apenas uma mensagem; mantém-se o cupão enviado
        return CupaoMapper.to_entity(dados) if isinstance(dados, dict) and dados.get('code') else cupao

    def remover(self, cupao_id: str, token: Optional[str] = None):
        self.client.delete(f'/api/cupoes/remover/{cupao_id}', token=token)

    def utilizacao(self, codigo: str) -> int:
        dados = self.client.get(f'/api/cupoes/usage/{codigo}')
        return parse_inteiro(dados.get('usage_count')) if isinstance(dados, dict) else 0


class CheckoutGatewayHTTP(BaseGatewayHTTP, ICheckoutGateway):
    """Os três endpoints do checkout, chamados em sequência pelo core."""

    def criar_morada(self, token: str, morada: Morada) -> Dict[str, Any]:
        return self.client.post('/api/addresses/morada', morada.to_payload(), token=token) or {}

    def criar_referencia_pagamento(self, token: str, metodo: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        # nos endpoints de pagamento o servidor descreve o erro em 'error'
        return self.client.post(
            f'/api/referencia/{metodo}/create', payload, token=token, chaves_mensagem=('error', 'message')
        ) or {}

    def finalizar(self, token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post('/api/orders/checkout', payload, token=token) or {}


class EncomendaGatewayHTTP(BaseGatewayHTTP, IEncomendaGateway):

    def listar_proprias(self, token: str) -> List[Encomenda]:
        return mapear_lista(self.client.get('/api/orders/listar/proprias', token=token), EncomendaMapper)

    def listar_todas(self, token: str) -> List[Encomenda]:
        return mapear_lista(self.client.get('/api/orders/admin/encomendas', token=token), EncomendaMapper)

    def obter(self, token: str, encomenda_id: str) -> Encomenda:
        dados = self.client.get(f'/api/orders/admin/encomendas/{encomenda_id}', token=token)
        if not dados:
            raise ItemNaoEncontradoError(f"Encomenda ID {encomenda_id} não encontrada.", status_code=404)
        return EncomendaMapper.to_entity(dados)


class UtilizadorGatewayHTTP(BaseGatewayHTTP, IUtilizadorGateway):

    def login(self, email: str, password: str) -> str:
        dados = self.client.post('/api/users/login', {'email': email, 'password': password}) or {}
        token = dados.get('token')
        if not token:
            raise BackendRespostaError("Resposta de login sem token.")
        return token

    def registar(self, dados: Dict[str, Any], token: Optional[str] = None) -> Dict[str, Any]:
        return self.client.post('/api/users/register', dados, token=token) or {}

    def obter(self, token: str, utilizador_id: str) -> Utilizador:
        return UtilizadorMapper.to_entity(self.client.get(f'/api/users/listar/{utilizador_id}', token=token) or {})

    def listar(self, token: str) -> List[Utilizador]:
        return mapear_lista(self.client.get('/api/users/listar', token=token), UtilizadorMapper)

    def atualizar(self, token: str, utilizador_id: str, dados: Dict[str, Any]) -> Utilizador:
        resposta = self.client.put(f'/api/users/atualizar/{utilizador_id}', dados, token=token)
        if isinstance(resposta, dict) and resposta.get('user'):
            resposta = resposta['user']
        if isinstance(resposta, dict) and resposta.get('email'):
            return UtilizadorMapper.to_entity(resposta)
        return UtilizadorMapper.to_entity(dict(dados, id=utilizador_id))

    def remover(self, token: str, utilizador_id: str):
        self.client.delete(f'/api/users/remover/{utilizador_id}', token=token)

    def promover(self, token: str, utilizador_id: str):
        self.client.patch(f'/api/users/promote/{utilizador_id}', {}, token=token)

    def listar_encomendas(self, token: str, utilizador_id: str) -> List[Encomenda]:
        return mapear_lista(self.client.get(f'/api/users/{utilizador_id}/orders', token=token), EncomendaMapper)


class FavoritoGatewayHTTP(BaseGatewayHTTP, IFavoritoGateway):

    def listar(self, token: str) -> List[str]:
        dados = self.client.get('/api/favorites/listar', token=token) or []
        return [str(f.get('variant_id')) for f in dados if isinstance(f, dict) and f.get('variant_id') is not None]

    def adicionar(self, token: str, variante_id: str):
        self.client.post('/api/favorites/add', {'variantId': variante_id}, token=token)

    def remover(self, token: str, variante_id: str):
        self.client.delete(f'/api/favorites/remove/{variante_id}', token=token)


# ====================================================================
# GATEWAYS DO BACK-OFFICE
# ====================================================================

class ProdutoAdminGatewayHTTP(BaseGatewayHTTP, IProdutoAdminGateway):

    def criar(self, token: str, dados: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post('/api/products/criar', ProdutoMapper.to_payload_criacao(dados), token=token) or {}

    def atualizar(self, token: str, produto_id: str, dados: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put(
            f'/api/products/atualizar/{produto_id}', ProdutoMapper.to_payload_atualizacao(dados), token=token
        ) or {}

    def remover(self, token: str, produto_id: str):
        self.client.delete(f'/api/products/eliminar/{produto_id}', token=token)

    def criar_variante(self, token: str, produto_id: str, dados: Dict[str, Any]) -> Variante:
        resposta = self.client.post(
            f'/api/products/{produto_id}/variants', VarianteMapper.to_payload(dados), token=token
        ) or {}
        return VarianteMapper.to_entity(resposta, produto_id)

    def atualizar_variante(self, token: str, produto_id: str, variante_id: str, dados: Dict[str, Any]) -> Variante:
        resposta = self.client.put(
            f'/api/products/{produto_id}/variantes/atualizar/{variante_id}',
            VarianteMapper.to_payload(dados), token=token,
        ) or {'id': variante_id}
        return VarianteMapper.to_entity(resposta, produto_id)

    def carregar_imagem(self, token: Optional[str], nome_ficheiro: str, conteudo: bytes, content_type: str) -> str:
        """Upload multipart (campo 'image'); devolve o URL público."""
        dados = self.client.post(
            '/api/images/upload', token=token, files={'image': (nome_ficheiro, conteudo, content_type)}
        ) or {}
        url = dados.get('url')
        if not url:
            raise BackendRespostaError("Falha no upload da imagem.")
        return url

    def associar_imagem(self, token: str, produto_id: str, url: str, principal: bool = False) -> Dict[str, Any]:
        payload = {'product_id': produto_id, 'image_url': url, 'is_primary': principal}
        return self.client.post('/api/product_images/create', payload, token=token) or {}

    def listar_imagens(self, produto_id: str) -> List[Dict[str, Any]]:
        dados = self.client.get(f'/api/product_images/byProductId/{produto_id}')
        return dados if isinstance(dados, list) else []


class CampanhaGatewayHTTP(BaseGatewayHTTP, ICampanhaGateway):

    def listar(self) -> List[Campanha]:
        return mapear_lista(self.client.get('/api/campaigns/listar'), CampanhaMapper)

    def criar(self, nome: str, ativa: bool, imagem_url: str) -> Dict[str, Any]:
        return self.client.post(
            '/api/campaigns/criar', {'name': nome, 'is_active': ativa, 'image_url': imagem_url}
        ) or {}

    def remover(self, campanha_id: str):
        self.client.delete(f'/api/campaigns/{campanha_id}')

    def adicionar_produto(self, campanha_id: str, produto_id: str):
        self.client.post(f'/api/campaigns/{campanha_id}/adicionar-produto', {'productId': produto_id})

    def remover_produto(self, campanha_id: str, produto_id: str):
        self.client.delete(f'/api/campaigns/{campanha_id}/remover-produto/{produto_id}')


class DashboardGatewayHTTP(BaseGatewayHTTP, IDashboardGateway):

    def obter_resumo(self, token: Optional[str] = None) -> ResumoDashboard:
        return DashboardMapper.to_entity(self.client.get('/api/dashboard', token=token) or {})
