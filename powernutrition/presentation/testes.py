import os

import django

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'powernutrition.settings')
django.setup()

from decimal import Decimal
from unittest.mock import patch

import jwt
from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase
from rest_framework.test import APIClient

from powernutrition.core.entities import (
    Campanha, Carrinho, Cupao, Encomenda, ItemCarrinho, Produto, ProdutoCampanha, ResultadoCupoes,
    ResumoDashboard, Utilizador, Variante,
)
from powernutrition.core.exceptions import BackendIndisponivelError, BackendRespostaError
from powernutrition.infrastructure import instances

EXP_FUTURO = 4102444800  # 2100-01-01
CHAVE_TESTE = 'chave-de-testes-com-pelo-menos-32-bytes'


def gerar_token(is_admin=False, exp=EXP_FUTURO, id_=7):
    return jwt.encode({'id': id_, 'email': 'cliente@exemplo.pt', 'is_admin': is_admin, 'exp': exp},
                      CHAVE_TESTE, algorithm='HS256')


def carrinho_de_50_euros():
    return Carrinho(itens=[
        ItemCarrinho(id='1', variante_id='10', produto_id='5', nome='Whey', preco=Decimal('25.00'), quantidade=2),
    ])


class BaseAPITestCase(SimpleTestCase):

    def setUp(self):
        self.client = APIClient()

    def iniciar_sessao(self, **valores):
        """Grava valores na sessão (cookie assinado) do cliente de testes."""
        sessao = self.client.session
        sessao.update(valores)
        sessao.save()
        self.client.cookies[settings.SESSION_COOKIE_NAME] = sessao.session_key

    def autenticar(self, is_admin=False):
        self.iniciar_sessao(token=gerar_token(is_admin=is_admin))


# ====================================================================
# CATÁLOGO
# ====================================================================

class TestCatalogoAPI(BaseAPITestCase):

    @patch.object(instances, 'catalogo_gateway')
    def test_lista_filtrada_com_campos_derivados(self, catalogo_gateway_mock):
        # ARRANGE
        catalogo_gateway_mock.listar_produtos.return_value = [
            Produto(id='1', nome='Whey', categoria_id='1', variantes=[
                Variante(id='a', preco=Decimal('7.00'), stock_online=2, stock_ginasio=1),
                Variante(id='b', preco=Decimal('5.50'), stock_ginasio=3, peso_valor='1', peso_unidade='kg'),
            ]),
            Produto(id='2', nome='Creatina', categoria_id='2', variantes=[Variante(id='c', preco=Decimal('9'))]),
        ]

        # ACT
        resposta = self.client.get('/api/loja/produtos/', {'categoria': '1'})

        # ASSERT
        self.assertEqual(resposta.status_code, 200)
        dados = resposta.json()
        self.assertEqual(dados['total_produtos'], 1)
        produto = dados['produtos'][0]
        self.assertEqual(produto['preco_exibicao'], '5.50')
        self.assertEqual(produto['stock_total'], 6)
        self.assertEqual(produto['peso_exibicao'], '1kg')

    @patch.object(instances, 'catalogo_gateway')
    def test_backend_em_baixo(self, catalogo_gateway_mock):
        catalogo_gateway_mock.listar_produtos.side_effect = BackendIndisponivelError()

        resposta = self.client.get('/api/loja/produtos/')

        self.assertEqual(resposta.status_code, 503)
        self.assertFalse(resposta.json()['success'])


# ====================================================================
# SESSÃO E AUTENTICAÇÃO
# ====================================================================

class TestAutenticacaoAPI(BaseAPITestCase):

    def test_carrinho_sem_sessao(self):
        resposta = self.client.get('/api/carrinho/')
        self.assertEqual(resposta.status_code, 401)
        self.assertEqual(resposta.json()['message'], "Token de autenticação não encontrado. Por favor, faça login.")

    @patch.object(instances, 'utilizador_gateway')
    def test_login_guarda_token_na_sessao(self, utilizador_gateway_mock):
        utilizador_gateway_mock.login.return_value = gerar_token(is_admin=True)

        resposta = self.client.post('/api/auth/login/', {'email': 'a@b.pt', 'password': 'segredo'}, format='json')

        self.assertEqual(resposta.status_code, 200)
        self.assertTrue(resposta.json()['utilizador']['is_admin'])
        estado = self.client.get('/api/auth/sessao/').json()
        self.assertTrue(estado['autenticado'])

    def test_token_expirado_termina_sessao(self):
        self.iniciar_sessao(token=gerar_token(exp=1000))

        estado = self.client.get('/api/auth/sessao/').json()

        self.assertFalse(estado['autenticado'])
        self.assertIsNone(estado['utilizador'])

    def test_registo_com_senhas_diferentes(self):
        dados = {
            'username': 'ana', 'email': 'ana@exemplo.pt', 'password': 'abc12345', 'confirm_password': 'outra',
            'first_name': 'Ana', 'last_name': 'Silva', 'phone_number': '912345678',
            'address_line1': 'Rua A', 'city': 'Funchal', 'state_province': 'Madeira',
            'postal_code': '9000-001', 'country': 'Portugal',
        }
        resposta = self.client.post('/api/auth/registo/', dados, format='json')
        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json()['message'], "As senhas não coincidem!")

    @patch.object(instances, 'utilizador_gateway')
    def test_conta_de_outro_utilizador(self, utilizador_gateway_mock):
        self.autenticar()
        resposta = self.client.get('/api/conta/8/')
        self.assertEqual(resposta.status_code, 403)
        utilizador_gateway_mock.obter.assert_not_called()

    @patch.object(instances, 'utilizador_gateway')
    def test_conta_propria_nao_altera_permissoes(self, utilizador_gateway_mock):
        """Um cliente que envie is_admin/is_active na própria conta só altera o perfil."""
        # ARRANGE
        self.autenticar()
        utilizador_gateway_mock.atualizar.return_value = Utilizador(id='7', email='cliente@exemplo.pt', username='x')

        # ACT
        resposta = self.client.put(
            '/api/conta/7/', {'username': 'x', 'is_admin': True, 'is_active': False, 'password': ''}, format='json'
        )

        # ASSERT
        self.assertEqual(resposta.status_code, 200)
        payload = utilizador_gateway_mock.atualizar.call_args[0][2]
        self.assertEqual(payload, {'username': 'x'})


# ====================================================================
# CUPÕES E CHECKOUT
# ====================================================================

@patch.object(instances, 'carrinho_gateway')
@patch.object(instances, 'cupao_gateway')
class TestCupoesAPI(BaseAPITestCase):

    def test_codigo_vazio(self, cupao_gateway_mock, carrinho_gateway_mock):
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = carrinho_de_50_euros()

        resposta = self.client.post('/api/cupoes/', {'code': ''}, format='json')

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json()['message'], "Por favor, insira um código de cupão.")

    def test_codigo_duplicado(self, cupao_gateway_mock, carrinho_gateway_mock):
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = carrinho_de_50_euros()

        self.client.post('/api/cupoes/', {'code': 'ATLETA20'}, format='json')
        resposta = self.client.post('/api/cupoes/', {'code': 'ATLETA20'}, format='json')

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(self.client.get('/api/cupoes/').json()['codigos'], ['ATLETA20'])

    def test_aplicar_com_sucesso(self, cupao_gateway_mock, carrinho_gateway_mock):
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = carrinho_de_50_euros()
        cupao_gateway_mock.aplicar.return_value = ResultadoCupoes(Decimal('10.00'), Decimal('40.00'))

        self.client.post('/api/cupoes/', {'code': 'ATLETA20'}, format='json')
        resposta = self.client.post('/api/cupoes/aplicar/')

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(resposta.json()['total_final'], '€40.00')
        self.assertEqual(resposta.json()['desconto'], '€10.00')

    def test_falha_ao_aplicar_limpa_cupoes(self, cupao_gateway_mock, carrinho_gateway_mock):
        # ARRANGE
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = carrinho_de_50_euros()
        cupao_gateway_mock.aplicar.side_effect = BackendRespostaError("Cupão inválido.", status_code=400)
        self.client.post('/api/cupoes/', {'code': 'FALSO'}, format='json')

        # ACT
        resposta = self.client.post('/api/cupoes/aplicar/')

        # ASSERT
        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json()['message'], "Cupão inválido.")
        estado = self.client.get('/api/cupoes/').json()
        self.assertEqual(estado['codigos'], [])
        self.assertEqual(estado['total_final'], '€50.00')

    def test_remover_cupao_com_codigo_aplicar(self, cupao_gateway_mock, carrinho_gateway_mock):
        """Um cupão chamado 'aplicar' remove-se sem colidir com a rota de aplicação."""
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = carrinho_de_50_euros()
        self.client.post('/api/cupoes/', {'code': 'aplicar'}, format='json')
        self.client.post('/api/cupoes/', {'code': 'ATLETA20'}, format='json')

        resposta = self.client.delete('/api/cupoes/remover/aplicar/')

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(resposta.json()['codigos'], ['ATLETA20'])
        cupao_gateway_mock.aplicar.assert_not_called()


@patch.object(instances, 'checkout_gateway')
@patch.object(instances, 'carrinho_gateway')
class TestCheckoutAPI(BaseAPITestCase):

    dados_formulario = {
        'email': 'ana@exemplo.pt', 'first_name': 'Ana', 'last_name': 'Silva', 'phone': '912 345 678',
        'opcao_morada': 'custom', 'address_line1': 'Rua A', 'city': 'Funchal', 'postal_code': '9000-001',
        'metodo_pagamento': 'mbway',
    }

    def test_checkout_com_desconto(self, carrinho_gateway_mock, checkout_gateway_mock):
        """
        Cenário: carrinho de 50€ com um desconto de 10€ já aplicado; pagamento MBWay.
        """
        # ARRANGE
        self.iniciar_sessao(
            token=gerar_token(),
            cupoes_checkout={'codigos': ['ATLETA20'], 'desconto': '10.00', 'total_final': '40.00', 'subtotal': '50.00'},
        )
        carrinho_gateway_mock.listar.return_value = carrinho_de_50_euros()
        checkout_gateway_mock.criar_morada.return_value = {'id': 55}
        checkout_gateway_mock.criar_referencia_pagamento.return_value = {'id': 'pay-1', 'method': {}}
        checkout_gateway_mock.finalizar.return_value = {'orderId': 901}

        # ACT
        resposta = self.client.post('/api/checkout/', self.dados_formulario, format='json')

        # ASSERT
        self.assertEqual(resposta.status_code, 201)
        dados = resposta.json()
        self.assertEqual(dados['total_formatado'], '€40.00')
        self.assertEqual(dados['confirmacao']['encomenda_id'], '901')
        payload_pagamento = checkout_gateway_mock.criar_referencia_pagamento.call_args[0][2]
        self.assertEqual(payload_pagamento['value'], 40.0)
        self.assertEqual(payload_pagamento['customer']['phone'], '912345678')
        self.assertEqual(checkout_gateway_mock.finalizar.call_args[0][1]['couponCode'], ['ATLETA20'])
        self.assertNotIn('cupoes_checkout', self.client.session.keys())

    def test_checkout_sem_cupao(self, carrinho_gateway_mock, checkout_gateway_mock):
        """
        Cenário: 2 unidades a 20€, portes grátis, nenhum cupão na sessão.
        """
        # ARRANGE
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = Carrinho(itens=[
            ItemCarrinho(id='1', variante_id='10', produto_id='5', nome='Whey', preco=Decimal('20'), quantidade=2),
        ])
        checkout_gateway_mock.criar_morada.return_value = {'id': 55}
        checkout_gateway_mock.criar_referencia_pagamento.return_value = {'id': 'pay-1', 'method': {}}
        checkout_gateway_mock.finalizar.return_value = {'orderId': 902}

        # ACT
        resposta = self.client.post('/api/checkout/', self.dados_formulario, format='json')

        # ASSERT
        self.assertEqual(resposta.status_code, 201)
        self.assertEqual(resposta.json()['total_formatado'], '€40.00')
        self.assertEqual(checkout_gateway_mock.criar_referencia_pagamento.call_args[0][2]['value'], 40.0)
        self.assertEqual(checkout_gateway_mock.finalizar.call_args[0][1]['couponCode'], [])

    def test_falha_na_morada(self, carrinho_gateway_mock, checkout_gateway_mock):
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = carrinho_de_50_euros()
        checkout_gateway_mock.criar_morada.side_effect = BackendRespostaError("Código postal inválido.", 400)

        resposta = self.client.post('/api/checkout/', self.dados_formulario, format='json')

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json()['passo'], 'morada')
        checkout_gateway_mock.criar_referencia_pagamento.assert_not_called()
        checkout_gateway_mock.finalizar.assert_not_called()

    def test_carrinho_vazio(self, carrinho_gateway_mock, checkout_gateway_mock):
        self.autenticar()
        carrinho_gateway_mock.listar.return_value = Carrinho()

        resposta = self.client.post('/api/checkout/', self.dados_formulario, format='json')

        self.assertEqual(resposta.status_code, 400)
        checkout_gateway_mock.criar_morada.assert_not_called()

    def test_morada_personalizada_incompleta(self, carrinho_gateway_mock, checkout_gateway_mock):
        self.autenticar()
        dados = dict(self.dados_formulario, city='')

        resposta = self.client.post('/api/checkout/', dados, format='json')

        self.assertEqual(resposta.status_code, 400)
        self.assertIn('city', resposta.json())
        checkout_gateway_mock.criar_morada.assert_not_called()

    def test_checkout_sem_sessao(self, carrinho_gateway_mock, checkout_gateway_mock):
        resposta = self.client.post('/api/checkout/', self.dados_formulario, format='json')
        self.assertEqual(resposta.status_code, 401)
        carrinho_gateway_mock.listar.assert_not_called()


# ====================================================================
# PAINEL ADMINISTRATIVO
# ====================================================================

@patch.object(instances, 'encomenda_gateway')
class TestAdminAPI(BaseAPITestCase):

    def test_cliente_nao_acede_ao_painel(self, encomenda_gateway_mock):
        self.autenticar(is_admin=False)
        resposta = self.client.get('/api/admin/encomendas/')
        self.assertEqual(resposta.status_code, 403)
        encomenda_gateway_mock.listar_todas.assert_not_called()

    def test_pesquisa_de_encomendas(self, encomenda_gateway_mock):
        self.autenticar(is_admin=True)
        encomenda_gateway_mock.listar_todas.return_value = [
            Encomenda(id='1', total=Decimal('10'), estado='pago', metodo_pagamento='mbway', nome_utilizador='Ana'),
            Encomenda(id='2', total=Decimal('20'), estado='pago', metodo_pagamento='cod', nome_utilizador='Rui'),
        ]

        resposta = self.client.get('/api/admin/encomendas/', {'search': 'rui'})

        self.assertEqual(resposta.status_code, 200)
        dados = resposta.json()
        self.assertEqual(dados['total_itens'], 1)
        self.assertEqual(dados['itens'][0]['id'], '2')


class BaseAdminTestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.autenticar(is_admin=True)


@patch.object(instances, 'produto_admin_gateway')
class TestProdutosAdminAPI(BaseAdminTestCase):

    dados_produto = {
        'nome': 'Whey Isolate', 'preco': '29.90', 'categoria_id': '1', 'stock_online': 5,
        'imagem_url': 'https://cdn.exemplo.pt/whey.jpg',
    }

    def test_criar_produto(self, produto_admin_gateway_mock):
        produto_admin_gateway_mock.criar.return_value = {'product': {'id': 31}}

        resposta = self.client.post('/api/admin/produtos/', self.dados_produto, format='json')

        self.assertEqual(resposta.status_code, 201)
        self.assertEqual(resposta.json()['id'], '31')
        enviado = produto_admin_gateway_mock.criar.call_args[0][1]
        self.assertEqual(enviado['preco'], Decimal('29.90'))

    def test_criar_produto_sem_categoria(self, produto_admin_gateway_mock):
        dados = dict(self.dados_produto, categoria_id='')

        resposta = self.client.post('/api/admin/produtos/', dados, format='json')

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json()['message'], "Por favor, preencha os campos obrigatórios: Nome, Preço e Categoria.")
        produto_admin_gateway_mock.criar.assert_not_called()

    def test_carregar_imagens_secundarias(self, produto_admin_gateway_mock):
        # ARRANGE
        produto_admin_gateway_mock.carregar_imagem.side_effect = ['https://cdn/a.jpg', 'https://cdn/b.jpg']
        ficheiros = [
            SimpleUploadedFile('a.jpg', b'\xff\xd8a', content_type='image/jpeg'),
            SimpleUploadedFile('b.jpg', b'\xff\xd8b', content_type='image/jpeg'),
        ]

        # ACT
        resposta = self.client.post('/api/admin/produtos/5/imagens/', {'imagens': ficheiros}, format='multipart')

        # ASSERT
        self.assertEqual(resposta.status_code, 200)
        dados = resposta.json()
        self.assertTrue(dados['success'])
        self.assertEqual([r['url'] for r in dados['resultados']], ['https://cdn/a.jpg', 'https://cdn/b.jpg'])
        self.assertEqual(produto_admin_gateway_mock.associar_imagem.call_count, 2)
        self.assertEqual(produto_admin_gateway_mock.associar_imagem.call_args[0][1:3], ('5', 'https://cdn/b.jpg'))

    def test_carregar_imagens_sem_ficheiros(self, produto_admin_gateway_mock):
        resposta = self.client.post('/api/admin/produtos/5/imagens/', {}, format='multipart')

        self.assertEqual(resposta.status_code, 400)
        produto_admin_gateway_mock.carregar_imagem.assert_not_called()

    def test_criar_variante(self, produto_admin_gateway_mock):
        produto_admin_gateway_mock.criar_variante.return_value = Variante(
            id='12', produto_id='5', preco=Decimal('19.90'), stock_online=3, peso_valor='2.0', peso_unidade='kg',
        )

        resposta = self.client.post(
            '/api/admin/produtos/5/variantes/',
            {'preco': '19.90', 'stock_online': 3, 'peso_valor': '2', 'peso_unidade': 'kg'},
            format='json',
        )

        self.assertEqual(resposta.status_code, 201)
        variante = resposta.json()['variante']
        self.assertEqual(variante['id'], '12')
        self.assertEqual(variante['peso'], '2kg')
        self.assertEqual(produto_admin_gateway_mock.criar_variante.call_args[0][1], '5')

    def test_variante_com_stock_negativo(self, produto_admin_gateway_mock):
        resposta = self.client.post(
            '/api/admin/produtos/5/variantes/', {'preco': '19.90', 'stock_online': -1}, format='json'
        )

        self.assertEqual(resposta.status_code, 400)
        produto_admin_gateway_mock.criar_variante.assert_not_called()


@patch.object(instances, 'cupao_gateway')
class TestCupoesAdminAPI(BaseAdminTestCase):

    def test_criar_cupao(self, cupao_gateway_mock):
        cupao_gateway_mock.criar.return_value = Cupao(
            id='3', codigo='ATLETA10', percentagem_desconto=Decimal('10'), nome_atleta='Rui',
        )

        resposta = self.client.post(
            '/api/admin/cupoes/',
            {'codigo': 'ATLETA10', 'percentagem_desconto': '10', 'nome_atleta': 'Rui', 'produto_id': '5'},
            format='json',
        )

        self.assertEqual(resposta.status_code, 201)
        self.assertEqual(resposta.json()['cupao']['id'], '3')
        enviado = cupao_gateway_mock.criar.call_args[0][0]
        self.assertEqual(enviado.codigo, 'ATLETA10')
        # cupão geral: o produto é descartado
        self.assertIsNone(enviado.produto_id)

    def test_percentagem_fora_do_intervalo(self, cupao_gateway_mock):
        resposta = self.client.post(
            '/api/admin/cupoes/', {'codigo': 'ATLETA10', 'percentagem_desconto': '150'}, format='json'
        )

        self.assertEqual(resposta.status_code, 400)
        cupao_gateway_mock.criar.assert_not_called()

    def test_utilizacao_de_cupao(self, cupao_gateway_mock):
        cupao_gateway_mock.utilizacao.return_value = 4

        resposta = self.client.get('/api/admin/cupoes/utilizacao/ATLETA10/')

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(resposta.json(), {'codigo': 'ATLETA10', 'utilizacoes': 4})
        cupao_gateway_mock.utilizacao.assert_called_once_with('ATLETA10')


@patch.object(instances, 'utilizador_gateway')
class TestUtilizadoresAdminAPI(BaseAdminTestCase):

    dados_utilizador = {
        'username': 'rui', 'email': 'rui@exemplo.pt', 'first_name': 'Rui', 'last_name': 'Sousa',
        'phone_number': '912 000 111', 'address_line1': 'Rua B', 'city': 'Funchal',
        'state_province': 'Madeira', 'postal_code': '9000-002', 'country': 'Portugal',
    }

    def test_promover_utilizador(self, utilizador_gateway_mock):
        resposta = self.client.patch('/api/admin/utilizadores/9/promover/')

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(utilizador_gateway_mock.promover.call_args[0][1], '9')

    def test_promover_sem_ser_admin(self, utilizador_gateway_mock):
        self.autenticar(is_admin=False)

        resposta = self.client.patch('/api/admin/utilizadores/9/promover/')

        self.assertEqual(resposta.status_code, 403)
        utilizador_gateway_mock.promover.assert_not_called()

    def test_atualizar_mantem_password(self, utilizador_gateway_mock):
        # ARRANGE
        utilizador_gateway_mock.atualizar.return_value = Utilizador(id='9', email='rui@exemplo.pt', username='rui')
        dados = dict(self.dados_utilizador, password='', is_admin=True)

        # ACT
        resposta = self.client.put('/api/admin/utilizadores/9/', dados, format='json')

        # ASSERT
        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(resposta.json()['utilizador']['id'], '9')
        enviado = utilizador_gateway_mock.atualizar.call_args[0][2]
        self.assertNotIn('password', enviado)
        self.assertTrue(enviado['is_admin'])
        self.assertEqual(enviado['phone_number'], '912000111')

    def test_atualizar_sem_campos_obrigatorios(self, utilizador_gateway_mock):
        resposta = self.client.put('/api/admin/utilizadores/9/', {'username': 'rui'}, format='json')

        self.assertEqual(resposta.status_code, 400)
        utilizador_gateway_mock.atualizar.assert_not_called()


@patch.object(instances, 'catalogo_gateway')
@patch.object(instances, 'produto_admin_gateway')
@patch.object(instances, 'campanha_gateway')
class TestCampanhasAdminAPI(BaseAdminTestCase):

    @staticmethod
    def campanha_verao():
        return Campanha(id='1', nome='Verão', produtos=[ProdutoCampanha(id='5', nome='Whey')])

    def test_criar_campanha_com_imagem(self, campanha_gateway_mock, produto_admin_gateway_mock, catalogo_gateway_mock):
        # ARRANGE
        produto_admin_gateway_mock.carregar_imagem.return_value = 'https://cdn/verao.jpg'
        campanha_gateway_mock.listar.return_value = [self.campanha_verao()]
        imagem = SimpleUploadedFile('verao.jpg', b'\xff\xd8img', content_type='image/jpeg')

        # ACT
        resposta = self.client.post(
            '/api/admin/campanhas/', {'nome': ' Verão ', 'ativa': 'true', 'imagem': imagem}, format='multipart'
        )

        # ASSERT
        self.assertEqual(resposta.status_code, 201)
        self.assertEqual(resposta.json()['campanhas'][0]['nome'], 'Verão')
        self.assertEqual(produto_admin_gateway_mock.carregar_imagem.call_args[0][1], 'verao.jpg')
        campanha_gateway_mock.criar.assert_called_once_with('Verão', True, 'https://cdn/verao.jpg')

    def test_produtos_disponiveis(self, campanha_gateway_mock, produto_admin_gateway_mock, catalogo_gateway_mock):
        campanha_gateway_mock.listar.return_value = [self.campanha_verao()]
        catalogo_gateway_mock.listar_produtos.return_value = [
            Produto(id='5', nome='Whey', variantes=[Variante(id='a', preco=Decimal('25'))]),
            Produto(id='6', nome='Creatina', variantes=[Variante(id='b', preco=Decimal('15'))]),
        ]

        resposta = self.client.get('/api/admin/campanhas/1/produtos/')

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual([p['id'] for p in resposta.json()], ['6'])

    def test_adicionar_produto(self, campanha_gateway_mock, produto_admin_gateway_mock, catalogo_gateway_mock):
        campanha_gateway_mock.listar.return_value = [self.campanha_verao()]

        resposta = self.client.post('/api/admin/campanhas/1/produtos/', {'product_id': 6}, format='json')

        self.assertEqual(resposta.status_code, 200)
        campanha_gateway_mock.adicionar_produto.assert_called_once_with('1', '6')

    def test_adicionar_sem_produto(self, campanha_gateway_mock, produto_admin_gateway_mock, catalogo_gateway_mock):
        resposta = self.client.post('/api/admin/campanhas/1/produtos/', {}, format='json')

        self.assertEqual(resposta.status_code, 400)
        campanha_gateway_mock.adicionar_produto.assert_not_called()

    def test_remover_produto(self, campanha_gateway_mock, produto_admin_gateway_mock, catalogo_gateway_mock):
        campanha_gateway_mock.listar.return_value = [Campanha(id='1', nome='Verão')]

        resposta = self.client.delete('/api/admin/campanhas/1/produtos/5/')

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(resposta.json()['campanha']['produtos'], [])
        campanha_gateway_mock.remover_produto.assert_called_once_with('1', '5')

    def test_campanha_inexistente(self, campanha_gateway_mock, produto_admin_gateway_mock, catalogo_gateway_mock):
        campanha_gateway_mock.listar.return_value = []

        resposta = self.client.get('/api/admin/campanhas/99/')

        self.assertEqual(resposta.status_code, 404)


@patch.object(instances, 'dashboard_gateway')
class TestDashboardAPI(BaseAdminTestCase):

    def test_resumo(self, dashboard_gateway_mock):
        dashboard_gateway_mock.obter_resumo.return_value = ResumoDashboard(
            total_encomendas=3, receita_total=Decimal('120.50'), novos_utilizadores=2,
            valor_medio_encomenda=Decimal('40.17'), estados_encomendas=[{'estado': 'pago', 'total': 3}],
        )

        resposta = self.client.get('/api/admin/dashboard/')

        self.assertEqual(resposta.status_code, 200)
        dados = resposta.json()
        self.assertEqual(dados['total_encomendas'], 3)
        self.assertEqual(dados['receita_total'], '120.50')
        self.assertIsNone(dados['melhor_cliente'])

    def test_dashboard_sem_sessao(self, dashboard_gateway_mock):
        self.client = APIClient()

        resposta = self.client.get('/api/admin/dashboard/')

        self.assertEqual(resposta.status_code, 401)
        dashboard_gateway_mock.obter_resumo.assert_not_called()


# ====================================================================
# PROTEÇÃO CSRF
# ====================================================================

@patch.object(instances, 'produto_admin_gateway')
class TestProtecaoCSRF(BaseAPITestCase):
    """O token de acesso vive no cookie de sessão; pedidos que alteram estado exigem o token CSRF."""

    def setUp(self):
        self.client = APIClient(enforce_csrf_checks=True)
        self.autenticar(is_admin=True)

    def test_pedido_sem_token_csrf(self, produto_admin_gateway_mock):
        resposta = self.client.delete('/api/admin/produtos/5/')

        self.assertEqual(resposta.status_code, 403)
        self.assertIn('CSRF', resposta.json()['message'])
        produto_admin_gateway_mock.remover.assert_not_called()

    def test_pedido_com_token_csrf(self, produto_admin_gateway_mock):
        # ARRANGE: a sessão entrega o cookie csrftoken
        self.client.get('/api/auth/sessao/')
        token_csrf = self.client.cookies[settings.CSRF_COOKIE_NAME].value

        # ACT
        resposta = self.client.delete('/api/admin/produtos/5/', HTTP_X_CSRFTOKEN=token_csrf)

        # ASSERT
        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(produto_admin_gateway_mock.remover.call_args[0][1], '5')

    def test_leitura_nao_exige_token(self, produto_admin_gateway_mock):
        produto_admin_gateway_mock.listar_imagens.return_value = []

        resposta = self.client.get('/api/admin/produtos/5/imagens/')

        self.assertEqual(resposta.status_code, 200)


class TestConsentimentoCookies(BaseAPITestCase):

    def test_consentimento_persistido(self):
        self.assertFalse(self.client.get('/api/cookies/').json()['aceite'])
        self.client.post('/api/cookies/', {'aceite': True}, format='json')
        self.assertTrue(self.client.get('/api/cookies/').json()['aceite'])
