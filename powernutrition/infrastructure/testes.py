import json
import unittest
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock

import requests

from powernutrition.core.entities import Cupao, ItemCarrinho, Morada
from powernutrition.core.exceptions import (
    BackendIndisponivelError, BackendRespostaError, ItemNaoEncontradoError,
)
from powernutrition.infrastructure.gateways import (
    BackendAPIClient, CarrinhoGatewayHTTP, CatalogoGatewayHTTP, CheckoutGatewayHTTP,
    CupaoGatewayHTTP, FavoritoGatewayHTTP, ProdutoAdminGatewayHTTP, UtilizadorGatewayHTTP,
)
from powernutrition.infrastructure.mappers import (
    CupaoMapper, EncomendaMapper, ProdutoMapper, parse_data_hora, parse_decimal, parse_inteiro,
)


def resposta_http(status_code=200, corpo=None, texto='', reason='OK'):
    """requests.Response preenchida à mão, sem rede."""
    resposta = requests.Response()
    resposta.status_code = status_code
    resposta.reason = reason
    resposta.encoding = 'utf-8'
    resposta._content = json.dumps(corpo).encode('utf-8') if corpo is not None else texto.encode('utf-8')
    return resposta


class BaseGatewayTestCase(unittest.TestCase):

    def setUp(self):
        """
        Cliente HTTP com uma requests.Session simulada: nenhum pedido sai
        para a rede e podemos inspecionar o que foi enviado.
        """
        self.session_mock = Mock()
        self.client = BackendAPIClient('http://backend.local/', timeout=5, session=self.session_mock)

    def responder(self, *respostas):
        self.session_mock.request.side_effect = list(respostas)

    def chamada(self, indice=0):
        args, kwargs = self.session_mock.request.call_args_list[indice]
        return args[0], args[1], kwargs


# ====================================================================
# CLIENTE HTTP
# ====================================================================

class TestBackendAPIClient(BaseGatewayTestCase):

    def test_envia_token_e_devolve_json(self):
        # ARRANGE
        self.responder(resposta_http(200, {'ok': True}))

        # ACT
        dados = self.client.get('/api/cart/listar', token='abc')

        # ASSERT
        metodo, url, kwargs = self.chamada()
        self.assertEqual(dados, {'ok': True})
        self.assertEqual(metodo, 'GET')
        self.assertEqual(url, 'http://backend.local/api/cart/listar')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer abc')
        self.assertEqual(kwargs['timeout'], 5)

    def test_sem_token_nao_envia_cabecalho(self):
        self.responder(resposta_http(200, []))
        self.client.get('/api/products/listar')
        self.assertNotIn('Authorization', self.chamada()[2]['headers'])

    def test_erro_de_rede(self):
        self.session_mock.request.side_effect = requests.exceptions.ConnectionError('recusado')
        with self.assertRaises(BackendIndisponivelError):
            self.client.get('/api/products/listar')

    def test_mensagem_do_servidor_e_propagada(self):
        self.responder(resposta_http(400, {'message': 'Cupão expirado.'}, reason='Bad Request'))
        with self.assertRaises(BackendRespostaError) as ctx:
            self.client.post('/api/cupoes/apply', {})
        self.assertEqual(ctx.exception.message, 'Cupão expirado.')
        self.assertEqual(ctx.exception.status_code, 400)

    def test_404_vira_item_nao_encontrado(self):
        self.responder(resposta_http(404, {'error': 'Produto não existe'}, reason='Not Found'))
        with self.assertRaises(ItemNaoEncontradoError) as ctx:
            self.client.get('/api/products/listar/99')
        self.assertEqual(ctx.exception.message, 'Produto não existe')

    def test_erro_sem_corpo_usa_reason(self):
        self.responder(resposta_http(500, reason='Internal Server Error'))
        with self.assertRaises(BackendRespostaError) as ctx:
            self.client.get('/api/dashboard')
        self.assertEqual(ctx.exception.message, 'Erro da API: Internal Server Error')

    def test_resposta_vazia_devolve_none(self):
        self.responder(resposta_http(204))
        self.assertIsNone(self.client.delete('/api/cart/remover/1', token='abc'))

    def test_resposta_nao_json(self):
        self.responder(resposta_http(200, texto='<html>'))
        with self.assertRaises(BackendRespostaError):
            self.client.get('/api/products/listar')


# ====================================================================
# GATEWAYS
# ====================================================================

class TestGateways(BaseGatewayTestCase):

    def test_catalogo_normaliza_produtos(self):
        self.responder(resposta_http(200, [{
            'id': 1, 'name': 'Whey', 'category_id': 2, 'brand_id': 3.0, 'original_price': '39.90',
            'variants': [
                {'id': 10, 'preco': '29.90', 'quantidade_em_stock': 2, 'stock_ginasio': 1,
                 'weight_value': '1.0', 'weight_unit': 'kg', 'flavor_id': 4, 'flavor_name': 'Chocolate'},
                {'id': 11, 'preco': 'abc', 'quantidade_em_stock': 0, 'stock_ginasio': 3},
            ],
        }]))

        produto = CatalogoGatewayHTTP(self.client).listar_produtos()[0]

        self.assertEqual(produto.id, '1')
        self.assertEqual(produto.marca_id, '3')
        self.assertEqual(produto.preco_exibicao, Decimal('29.90'))
        self.assertEqual(produto.stock_total, 6)
        self.assertEqual(produto.peso_exibicao, '1kg')
        self.assertIsNone(produto.variantes[1].preco)

    def test_categorias_sem_id_sao_ignoradas(self):
        """
        Cenário: o backend devolve uma categoria sem id e um elemento que não é objeto.
        """
        # ARRANGE
        self.responder(resposta_http(200, [
            {'id': 10, 'name': 'Vitaminas'}, {'name': 'Sem id'}, 'lixo', {'id': 2, 'name': 'Proteína'},
        ]))

        # ACT
        categorias = CatalogoGatewayHTTP(self.client).listar_categorias()

        # ASSERT
        self.assertEqual([c.id for c in categorias], ['2', '10'])

    def test_sabores_sem_id_sao_ignorados(self):
        self.responder(resposta_http(200, [{'name': 'Chocolate'}, {'id': 'b', 'name': 'Baunilha'}]))
        sabores = CatalogoGatewayHTTP(self.client).listar_sabores()
        self.assertEqual([s.id for s in sabores], ['b'])

    def test_carrinho_com_formato_inesperado_fica_vazio(self):
        self.responder(resposta_http(200, {'mensagem': 'sem itens'}))
        carrinho = CarrinhoGatewayHTTP(self.client).listar('abc')
        self.assertTrue(carrinho.is_empty())

    def test_atualizar_quantidade_envia_variante(self):
        self.responder(resposta_http(200, {}))
        CarrinhoGatewayHTTP(self.client).atualizar_quantidade('abc', '10', 3)
        metodo, url, kwargs = self.chamada()
        self.assertEqual(metodo, 'PATCH')
        self.assertEqual(kwargs['json'], {'variantId': '10', 'quantity': 3})

    def test_aplicar_cupoes(self):
        # ARRANGE
        self.responder(resposta_http(200, {'discount': 10, 'newTotal': '40.00'}))
        itens = [ItemCarrinho(id='1', variante_id='10', produto_id='5', nome='Whey',
                              preco=Decimal('25.00'), quantidade=2)]

        # ACT
        resultado = CupaoGatewayHTTP(self.client).aplicar(['ATLETA20'], itens)

        # ASSERT
        self.assertEqual(resultado.desconto, Decimal('10'))
        self.assertEqual(resultado.novo_total, Decimal('40.00'))
        enviado = self.chamada()[2]['json']
        self.assertEqual(enviado['couponCodes'], ['ATLETA20'])
        self.assertEqual(enviado['items'][0], {'price': 25.0, 'quantity': 2, 'original_price': None, 'product_id': '5'})

    def test_aplicar_cupoes_sem_totais(self):
        self.responder(resposta_http(200, {'message': 'ok'}))
        with self.assertRaises(BackendRespostaError):
            CupaoGatewayHTTP(self.client).aplicar(['X'], [])

    def test_aplicar_cupoes_com_corpo_que_nao_e_objeto(self):
        self.responder(resposta_http(200, ['inesperado']))
        with self.assertRaises(BackendRespostaError) as ctx:
            CupaoGatewayHTTP(self.client).aplicar(['X'], [])
        self.assertEqual(ctx.exception.message, "Formato de resposta inesperado do servidor.")

    def test_utilizacao_de_cupao(self):
        self.responder(resposta_http(200, {'usage_count': 4}))
        self.assertEqual(CupaoGatewayHTTP(self.client).utilizacao('ATLETA10'), 4)

    def test_utilizacao_com_formato_inesperado(self):
        self.responder(resposta_http(200, [1, 2]))
        self.assertEqual(CupaoGatewayHTTP(self.client).utilizacao('ATLETA10'), 0)

    def test_referencia_de_pagamento_le_erro_do_campo_error(self):
        self.responder(resposta_http(400, {'error': 'Telefone inválido', 'message': 'Bad request'}))
        with self.assertRaises(BackendRespostaError) as ctx:
            CheckoutGatewayHTTP(self.client).criar_referencia_pagamento('abc', 'mbway', {})
        self.assertEqual(ctx.exception.message, 'Telefone inválido')
        self.assertEqual(self.chamada()[1], 'http://backend.local/api/referencia/mbway/create')

    def test_criar_morada(self):
        self.responder(resposta_http(201, {'id': 55}))
        morada = Morada(linha1='Rua A', cidade='Funchal', codigo_postal='9000-001')
        resposta = CheckoutGatewayHTTP(self.client).criar_morada('abc', morada)
        self.assertEqual(resposta['id'], 55)
        self.assertEqual(self.chamada()[2]['json']['address_type'], 'residencial')

    def test_login_sem_token(self):
        self.responder(resposta_http(200, {'message': 'ok'}))
        with self.assertRaises(BackendRespostaError):
            UtilizadorGatewayHTTP(self.client).login('a@b.pt', 'segredo')

    def test_favoritos_por_variante(self):
        self.responder(resposta_http(200, [{'variant_id': 10}, {'variant_id': '11'}, {'outro': 1}]))
        self.assertEqual(FavoritoGatewayHTTP(self.client).listar('abc'), ['10', '11'])

    def test_upload_de_imagem_multipart(self):
        self.responder(resposta_http(200, {'url': 'http://cdn/whey.png'}))
        url = ProdutoAdminGatewayHTTP(self.client).carregar_imagem('abc', 'whey.png', b'\x89PNG', 'image/png')
        self.assertEqual(url, 'http://cdn/whey.png')
        self.assertEqual(self.chamada()[2]['files'], {'image': ('whey.png', b'\x89PNG', 'image/png')})


# ====================================================================
# MAPPERS
# ====================================================================

class TestMappers(unittest.TestCase):

    def test_conversoes_primitivas(self):
        self.assertEqual(parse_decimal('29.90'), Decimal('29.90'))
        self.assertIsNone(parse_decimal('abc'))
        self.assertIsNone(parse_decimal('NaN'))
        self.assertEqual(parse_inteiro('3'), 3)
        self.assertEqual(parse_inteiro(None), 0)
        self.assertEqual(parse_data_hora('2024-03-05'), datetime(2024, 3, 5))
        self.assertIsNone(parse_data_hora('2024-13-45'))

    def test_preco_de_exibicao_ignora_precos_invalidos(self):
        """
        Cenário: variantes com preços "10.00", "abc" e "5.50" vindos do backend.
        """
        # ARRANGE
        dados = {'id': 1, 'name': 'Whey', 'variants': [
            {'id': 1, 'preco': '10.00'}, {'id': 2, 'preco': 'abc'}, {'id': 3, 'preco': '5.50'},
        ]}

        # ACT
        produto = ProdutoMapper.to_entity(dados)

        # ASSERT
        self.assertEqual(produto.preco_exibicao, Decimal('5.50'))
        self.assertEqual(produto.variante_exibicao_id, '3')

    def test_encomenda_aceita_order_items(self):
        encomenda = EncomendaMapper.to_entity({
            'id': 9, 'total_price': '40.00', 'status': 'pago', 'payment_method': 'mbway',
            'created_at': '2024-03-05T10:00:00Z',
            'order_items': [{'product_id': 1, 'product_name': 'Whey', 'quantity': 2, 'price': '20.00'}],
        })
        self.assertEqual(encomenda.id, '9')
        self.assertEqual(encomenda.total, Decimal('40.00'))
        self.assertEqual(encomenda.itens[0].preco, Decimal('20.00'))
        self.assertEqual(encomenda.criado_em.year, 2024)

    def test_payload_de_criacao_de_produto(self):
        payload = ProdutoMapper.to_payload_criacao({
            'nome': 'Whey', 'categoria_id': '1', 'imagem_url': 'http://img', 'preco': Decimal('29.90'),
            'preco_original': Decimal('34.90'), 'stock_online': 2, 'stock_ginasio': 0,
        })
        self.assertEqual(payload['product']['name'], 'Whey')
        self.assertEqual(payload['product']['brand_id'], 1)
        self.assertEqual(payload['product']['original_price'], '34.90')
        self.assertEqual(payload['variant']['preco'], '29.90')
        self.assertEqual(payload['variant']['quantidade_em_stock'], 2)

    def test_payload_de_cupao_geral_sem_produto(self):
        payload = CupaoMapper.to_payload(Cupao(codigo='X', percentagem_desconto=Decimal('15'), produto_id='3'))
        self.assertEqual(payload['discount_percentage'], 15.0)
        self.assertIsNone(payload['product_id'])


if __name__ == '__main__':
    unittest.main()
