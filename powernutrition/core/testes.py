# powernutrition/core/testes.py

import unittest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import jwt

from powernutrition.core.catalogo import (
    FiltroCatalogo, ORDEM_PRECO_ASC, extrair_marcas, extrair_pesos, extrair_sabores,
)
from powernutrition.core.checkout import (
    CheckoutAssembler, CheckoutFalhou, DadosCliente, EstadoCheckout, GestorCupoes,
    MoradaCriada, PORTES_ENVIO, PedidoCheckout, calcular_subtotal, formatar_euros,
)
from powernutrition.core.entities import (
    Campanha, Cupao, Encomenda, FicheiroImagem, ItemCarrinho, Morada, Produto, ProdutoCampanha,
    ResultadoCupoes, ResumoDashboard, UtilizadorSessao, Variante,
)
from powernutrition.core.exceptions import (
    AutenticacaoNecessariaError, BackendRespostaError, CheckoutError, CupaoDuplicadoError,
    DadosInvalidosError, ItemNaoEncontradoError, PermissaoNegadaError, TransicaoInvalidaError,
)
from powernutrition.core.listagens import ConsultaLista
from powernutrition.core.sessao import SessaoAutenticacao
from powernutrition.core.use_cases import (
    AutenticacaoUseCase, GerirCampanhasAdminUseCase, GerirCarrinhoUseCase, GerirContaUseCase,
    GerirCupoesAdminUseCase, GerirFavoritosUseCase, GerirProdutosAdminUseCase,
    GerirUtilizadoresAdminUseCase, ObterDashboardUseCase,
)
from powernutrition.infrastructure.armazenamento import MemoriaTokenStorage

CHAVE_TESTE = 'chave-de-testes-com-pelo-menos-32-bytes'


def gerar_token(exp=2000, is_admin=False, id_=7):
    return jwt.encode({'id': id_, 'email': 'cliente@exemplo.pt', 'is_admin': is_admin, 'exp': exp},
                      CHAVE_TESTE, algorithm='HS256')


def sessao_mock(token='token-valido', id_='7', is_admin=False):
    """Sessão autenticada simulada."""
    sessao = Mock()
    sessao.exigir_token.return_value = token
    sessao.exigir_admin.return_value = token
    sessao.utilizador = UtilizadorSessao(id=id_, email='cliente@exemplo.pt', is_admin=is_admin)
    return sessao


# ====================================================================
# PREÇO E STOCK AGREGADOS
# ====================================================================

class TestAgregacaoProduto(unittest.TestCase):

    def test_preco_exibicao_e_o_menor_preco_valido(self):
        """
        Cenário: variantes com 7.00, preço inválido e 5.50.
        """
        # ARRANGE
        produto = Produto(id='1', nome='Whey', variantes=[
            Variante(id='a', preco=Decimal('7.00')),
            Variante(id='b', preco=None),
            Variante(id='c', preco=Decimal('5.50')),
        ])

        # ACT / ASSERT
        self.assertEqual(produto.preco_exibicao, Decimal('5.50'))
        self.assertEqual(produto.variante_exibicao_id, 'c')

    def test_preco_exibicao_sem_precos_validos_e_zero(self):
        produto = Produto(id='1', nome='Whey', variantes=[Variante(id='a', preco=None)])
        self.assertEqual(produto.preco_exibicao, Decimal('0'))
        self.assertEqual(produto.peso_exibicao, 'N/A')

    def test_stock_total_soma_online_e_ginasio(self):
        produto = Produto(id='1', nome='Creatina', variantes=[
            Variante(id='a', stock_online=2, stock_ginasio=1),
            Variante(id='b', stock_online=0, stock_ginasio=3),
        ])
        self.assertEqual(produto.stock_total, 6)
        self.assertFalse(produto.esgotado)

    def test_produto_sem_stock_esta_esgotado(self):
        produto = Produto(id='1', nome='Creatina', variantes=[Variante(id='a')])
        self.assertTrue(produto.esgotado)

    def test_rotulo_de_peso_remove_decimal_final(self):
        self.assertEqual(Variante(id='a', peso_valor='1.0', peso_unidade='kg').peso, '1kg')
        self.assertEqual(Variante(id='a', peso_valor='2.5', peso_unidade='kg').peso, '2.5kg')


class TestOpcoesFiltro(unittest.TestCase):

    def setUp(self):
        self.produtos = [
            Produto(id='1', nome='Whey', marca_id=3, marca_nome='Prozis', variantes=[
                Variante(id='a', sabor_id=1, sabor_nome='Chocolate', peso_valor='1', peso_unidade='kg'),
                Variante(id='b', sabor_id='2', sabor_nome='Baunilha', peso_valor='500', peso_unidade='g'),
            ]),
            Produto(id='2', nome='Iso', marca_id='3', marca_nome='Prozis', variantes=[
                Variante(id='c', sabor_id='1', sabor_nome='Chocolate', peso_valor='1.0', peso_unidade='kg'),
                Variante(id='d', sabor_id=None, sabor_nome=None),
            ]),
        ]

    def test_sabores_sao_deduplicados_por_valor(self):
        sabores = extrair_sabores(self.produtos)
        self.assertEqual([(s.id, s.nome) for s in sabores], [('1', 'Chocolate'), ('2', 'Baunilha')])

    def test_marcas_sao_deduplicadas(self):
        marcas = extrair_marcas(self.produtos)
        self.assertEqual(len(marcas), 1)
        self.assertEqual(marcas[0].nome, 'Prozis')

    def test_pesos_distintos(self):
        self.assertEqual(extrair_pesos(self.produtos), ['1kg', '500g'])


class TestFiltroCatalogo(unittest.TestCase):

    def _produto(self, id_, preco, categoria='1', stock=1):
        return Produto(id=id_, nome=f'Produto {id_}', categoria_id=categoria,
                       variantes=[Variante(id=f'v{id_}', preco=Decimal(preco), stock_online=stock)])

    def test_filtra_por_categoria_e_ordena_por_preco(self):
        # ARRANGE
        produtos = [self._produto('1', '30'), self._produto('2', '10'), self._produto('3', '20', categoria='2')]
        filtro = FiltroCatalogo.from_query({'categoria': '1', 'ordem': ORDEM_PRECO_ASC})

        # ACT
        resultado = filtro.aplicar(produtos)

        # ASSERT
        self.assertEqual([p.id for p in resultado], ['2', '1'])

    def test_intervalo_de_preco_e_disponibilidade(self):
        produtos = [self._produto('1', '30'), self._produto('2', '10', stock=0), self._produto('3', '20')]
        filtro = FiltroCatalogo.from_query({'min_price': '15', 'disponibilidade': 'Em stock'})
        self.assertEqual({p.id for p in filtro.aplicar(produtos)}, {'1', '3'})

    def test_paginacao_de_nove_produtos(self):
        produtos = [self._produto(str(i), '10') for i in range(20)]
        pagina = FiltroCatalogo().paginar(produtos, pagina=3)
        self.assertEqual(pagina.total_paginas, 3)
        self.assertEqual(len(pagina.produtos), 2)
        self.assertEqual(pagina.total_produtos, 20)


# ====================================================================
# SESSÃO DE AUTENTICAÇÃO
# ====================================================================

class TestSessaoAutenticacao(unittest.TestCase):

    def test_token_valido_autentica(self):
        storage = MemoriaTokenStorage(gerar_token(exp=2000, is_admin=True))
        sessao = SessaoAutenticacao(storage, relogio=lambda: 1000).inicializar()

        self.assertTrue(sessao.autenticado)
        self.assertFalse(sessao.a_carregar)
        self.assertEqual(sessao.utilizador.id, '7')
        self.assertTrue(sessao.utilizador.is_admin)
        self.assertEqual(sessao.cabecalho_autorizacao()['Authorization'], f'Bearer {storage.ler()}')

    def test_token_expirado_e_removido(self):
        """
        Cenário: o token guardado já expirou.
        """
        # ARRANGE
        storage = MemoriaTokenStorage(gerar_token(exp=2000))

        # ACT
        sessao = SessaoAutenticacao(storage, relogio=lambda: 3000).inicializar()

        # ASSERT
        self.assertFalse(sessao.autenticado)
        self.assertIsNone(sessao.utilizador)
        self.assertIsNone(storage.ler())

    def test_token_ilegivel_e_removido(self):
        storage = MemoriaTokenStorage('isto-nao-e-um-jwt')
        sessao = SessaoAutenticacao(storage).inicializar()
        self.assertFalse(sessao.autenticado)
        self.assertIsNone(storage.ler())

    def test_login_e_logout(self):
        storage = MemoriaTokenStorage()
        sessao = SessaoAutenticacao(storage, relogio=lambda: 1000).inicializar()

        self.assertTrue(sessao.login(gerar_token()))
        self.assertTrue(sessao.autenticado)

        sessao.logout()
        self.assertFalse(sessao.autenticado)
        self.assertIsNone(storage.ler())

    def test_exigir_token_sem_sessao(self):
        sessao = SessaoAutenticacao(MemoriaTokenStorage()).inicializar()
        with self.assertRaises(AutenticacaoNecessariaError):
            sessao.exigir_token()

    def test_exigir_admin_com_cliente(self):
        storage = MemoriaTokenStorage(gerar_token(is_admin=False))
        sessao = SessaoAutenticacao(storage, relogio=lambda: 1000).inicializar()
        with self.assertRaises(PermissaoNegadaError):
            sessao.exigir_admin()


# ====================================================================
# CUPÕES
# ====================================================================

class TestGestorCupoes(unittest.TestCase):

    def setUp(self):
        self.cupao_gateway_mock = Mock()
        self.gestor = GestorCupoes(self.cupao_gateway_mock, Decimal('50.00'))
        self.itens = [ItemCarrinho(id='1', variante_id='10', nome='Whey', preco=Decimal('25.00'), quantidade=2)]

    def test_codigo_vazio_e_rejeitado(self):
        with self.assertRaises(DadosInvalidosError) as ctx:
            self.gestor.adicionar('   ')
        self.assertEqual(ctx.exception.message, "Por favor, insira um código de cupão.")
        self.assertEqual(self.gestor.codigos, [])

    def test_codigo_duplicado_e_rejeitado(self):
        self.gestor.adicionar('ATLETA10')
        with self.assertRaises(CupaoDuplicadoError):
            self.gestor.adicionar('ATLETA10')
        self.assertEqual(self.gestor.codigos, ['ATLETA10'])

    def test_comparacao_de_codigos_e_exata(self):
        self.gestor.adicionar('ATLETA10')
        self.gestor.adicionar('atleta10')
        self.assertEqual(len(self.gestor.codigos), 2)

    def test_aplicar_sem_codigos(self):
        with self.assertRaises(DadosInvalidosError):
            self.gestor.aplicar(self.itens)
        self.cupao_gateway_mock.aplicar.assert_not_called()

    def test_falha_do_servidor_repoe_estado(self):
        """
        Cenário: o servidor rejeita os cupões depois de um desconto anterior.
        """
        # ARRANGE
        self.gestor.adicionar('ATLETA10')
        self.gestor.desconto = Decimal('5.00')
        self.gestor.total_final = Decimal('45.00')
        self.cupao_gateway_mock.aplicar.side_effect = BackendRespostaError("Cupão inválido.", 400)

        # ACT
        with self.assertRaises(BackendRespostaError):
            self.gestor.aplicar(self.itens)

        # ASSERT
        self.assertEqual(self.gestor.desconto, Decimal('0'))
        self.assertEqual(self.gestor.total_final, Decimal('50.00'))
        self.assertEqual(self.gestor.codigos, [])

    def test_desconto_vem_do_servidor(self):
        self.gestor.adicionar('ATLETA20')
        self.cupao_gateway_mock.aplicar.return_value = ResultadoCupoes(Decimal('10.00'), Decimal('40.00'))

        self.gestor.aplicar(self.itens)

        self.cupao_gateway_mock.aplicar.assert_called_once_with(['ATLETA20'], self.itens)
        self.assertEqual(self.gestor.total_final, Decimal('40.00'))
        self.assertEqual(self.gestor.to_dict()['desconto'], '10.00')


# ====================================================================
# CHECKOUT
# ====================================================================

class TestCheckoutAssembler(unittest.TestCase):

    def setUp(self):
        self.gateway_mock = Mock()
        self.gateway_mock.criar_morada.return_value = {'id': 55}
        self.gateway_mock.finalizar.return_value = {'orderId': 901}
        self.assembler = CheckoutAssembler(self.gateway_mock, sessao_mock('tok'), relogio_ms=lambda: 1700000000000)
        self.cliente = DadosCliente(email='ana@exemplo.pt', primeiro_nome='Ana', ultimo_nome='Silva',
                                    telefone='912 345 678')

    def _pedido(self, metodo, total='40.00', **kwargs):
        kwargs.setdefault('morada_personalizada', Morada(linha1='Rua A', cidade='Funchal', codigo_postal='9000-001'))
        return PedidoCheckout(cliente=self.cliente, metodo_pagamento=metodo, total=Decimal(total), **kwargs)

    def test_falha_na_morada_interrompe_checkout(self):
        """
        Cenário: a criação da morada falha; pagamento e encomenda não podem ser pedidos.
        """
        # ARRANGE
        self.gateway_mock.criar_morada.side_effect = BackendRespostaError("Código postal inválido.", 400)

        # ACT
        with self.assertRaises(CheckoutError) as ctx:
            self.assembler.submeter(self._pedido('mbway'))

        # ASSERT
        self.assertEqual(ctx.exception.passo, 'morada')
        self.assertEqual(ctx.exception.message, "Código postal inválido.")
        self.gateway_mock.criar_referencia_pagamento.assert_not_called()
        self.gateway_mock.finalizar.assert_not_called()
        self.assertEqual(self.assembler.estado, EstadoCheckout.FALHOU)
        self.assertTrue(self.assembler.editavel)
        self.assertIsInstance(self.assembler.historico[-1], CheckoutFalhou)

    def test_morada_sem_id_interrompe_checkout(self):
        self.gateway_mock.criar_morada.return_value = {}
        with self.assertRaises(CheckoutError) as ctx:
            self.assembler.submeter(self._pedido('cod'))
        self.assertEqual(ctx.exception.message, 'Não foi possível determinar o ID da morada para o checkout.')
        self.gateway_mock.finalizar.assert_not_called()

    def test_falha_no_pagamento_nao_finaliza(self):
        self.gateway_mock.criar_referencia_pagamento.side_effect = BackendRespostaError("Telefone inválido", 400)
        with self.assertRaises(CheckoutError) as ctx:
            self.assembler.submeter(self._pedido('mbway'))
        self.assertEqual(ctx.exception.message, 'Erro ao gerar referência MBWay: Telefone inválido')
        self.gateway_mock.finalizar.assert_not_called()

    def test_pagamento_na_entrega_salta_referencia(self):
        confirmacao = self.assembler.submeter(self._pedido('cod', opcao_morada='store', morada_personalizada=None))

        self.gateway_mock.criar_referencia_pagamento.assert_not_called()
        payload = self.gateway_mock.finalizar.call_args[0][1]
        self.assertIsNone(payload['paymentDetails'])
        self.assertEqual(payload['addressId'], '55')
        self.assertEqual(confirmacao.morada_envio.cidade, 'Funchal')
        self.assertEqual(confirmacao.morada_envio.tipo, 'store')

    def test_multibanco_devolve_entidade_e_referencia(self):
        self.gateway_mock.criar_referencia_pagamento.return_value = {
            'id': 'pay-1', 'method': {'entity': '21098', 'reference': '123456789'},
        }

        confirmacao = self.assembler.submeter(self._pedido('multibanco'))

        self.assertEqual(confirmacao.detalhes_pagamento.entidade, '21098')
        self.assertEqual(confirmacao.detalhes_pagamento.referencia, '123456789')
        payload_final = self.gateway_mock.finalizar.call_args[0][1]
        self.assertEqual(payload_final['paymentDetails']['method'], 'multibanco')
        self.assertEqual(payload_final['paymentDetails']['reference'], '123456789')

    def test_total_com_desconto_de_ponta_a_ponta(self):
        """
        Cenário: carrinho de 50€, cupão de 20% aplicado pelo servidor, pagamento MBWay.
        """
        # ARRANGE
        cupao_gateway_mock = Mock()
        cupao_gateway_mock.aplicar.return_value = ResultadoCupoes(Decimal('10.00'), Decimal('40.00'))
        itens = [ItemCarrinho(id='1', variante_id='10', nome='Whey', preco=Decimal('25.00'), quantidade=2)]
        gestor = GestorCupoes(cupao_gateway_mock, Decimal('50.00'))
        gestor.adicionar('ATLETA20')
        gestor.aplicar(itens)
        self.gateway_mock.criar_referencia_pagamento.return_value = {'id': 'pay-2', 'method': {}}

        # ACT
        confirmacao = self.assembler.submeter(PedidoCheckout(
            cliente=self.cliente, metodo_pagamento='mbway', total=gestor.total_final,
            opcao_morada='befit', codigos_cupao=gestor.codigos,
        ))

        # ASSERT
        self.assertEqual(formatar_euros(confirmacao.total), '€40.00')
        metodo, payload = self.gateway_mock.criar_referencia_pagamento.call_args[0][1:]
        self.assertEqual(metodo, 'mbway')
        self.assertEqual(payload['value'], 40.0)
        self.assertEqual(payload['customer']['phone'], '912345678')
        self.assertEqual(payload['customer']['phone_indicative'], '+351')
        self.assertEqual(payload['key'], 'order_1700000000000')
        self.assertEqual(self.gateway_mock.finalizar.call_args[0][1]['couponCode'], ['ATLETA20'])
        self.assertEqual(confirmacao.encomenda_id, '901')
        self.assertEqual(self.assembler.estado, EstadoCheckout.CONCLUIDO)
        self.assertIsInstance(self.assembler.historico[0], MoradaCriada)

    def test_total_sem_cupao_e_subtotal_mais_portes(self):
        """
        Cenário: carrinho com uma linha de 20€ x 2, portes 0, sem cupão.
        """
        # ARRANGE
        itens = [ItemCarrinho(id='1', variante_id='10', nome='Creatina', preco=Decimal('20'), quantidade=2)]
        gestor = GestorCupoes(Mock(), calcular_subtotal(itens), PORTES_ENVIO)
        self.gateway_mock.criar_referencia_pagamento.return_value = {'id': 'pay-3', 'method': {}}

        # ACT
        confirmacao = self.assembler.submeter(PedidoCheckout(
            cliente=self.cliente, metodo_pagamento='mbway', total=gestor.total_final,
            opcao_morada='store', codigos_cupao=gestor.codigos,
        ))

        # ASSERT
        self.assertEqual(PORTES_ENVIO, Decimal('0'))
        self.assertEqual(gestor.desconto, Decimal('0'))
        self.assertEqual(formatar_euros(confirmacao.total), '€40.00')
        self.assertEqual(self.gateway_mock.criar_referencia_pagamento.call_args[0][2]['value'], 40.0)
        self.assertEqual(self.gateway_mock.finalizar.call_args[0][1]['couponCode'], [])

    def test_checkout_concluido_nao_pode_ser_resubmetido(self):
        self.assembler.submeter(self._pedido('cod'))
        with self.assertRaises(TransicaoInvalidaError):
            self.assembler.submeter(self._pedido('cod'))

    def test_sem_sessao_nao_faz_pedidos(self):
        sessao = Mock()
        sessao.exigir_token.side_effect = AutenticacaoNecessariaError()
        assembler = CheckoutAssembler(self.gateway_mock, sessao)

        with self.assertRaises(CheckoutError) as ctx:
            assembler.submeter(self._pedido('cod'))

        self.assertEqual(ctx.exception.passo, 'autenticacao')
        self.gateway_mock.criar_morada.assert_not_called()

    def test_morada_personalizada_em_falta(self):
        with self.assertRaises(CheckoutError) as ctx:
            self.assembler.submeter(self._pedido('cod', morada_personalizada=None))
        self.assertEqual(ctx.exception.passo, 'validacao')
        self.gateway_mock.criar_morada.assert_not_called()

    def test_formatar_euros_arredonda(self):
        self.assertEqual(formatar_euros(Decimal('39.995')), '€40.00')
        self.assertEqual(formatar_euros(0), '€0.00')


# ====================================================================
# LISTAGENS ADMINISTRATIVAS
# ====================================================================

class TestConsultaLista(unittest.TestCase):

    def setUp(self):
        self.encomendas = [
            Encomenda(id='1', total=Decimal('10'), estado='pendente', metodo_pagamento='mbway',
                      criado_em=datetime(2024, 3, 1, 9, 0), nome_utilizador='Ana Silva'),
            Encomenda(id='2', total=Decimal('20'), estado='pago', metodo_pagamento='multibanco',
                      criado_em=datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc), nome_utilizador='Rui Sousa'),
            Encomenda(id='3', total=Decimal('30'), estado='pago', metodo_pagamento='cod',
                      criado_em=datetime(2024, 3, 6, 0, 0), nome_utilizador='Ana Costa'),
            Encomenda(id='4', total=Decimal('5'), estado='pago', metodo_pagamento='cc', criado_em=None),
        ]

    def test_data_final_inclui_o_dia_inteiro(self):
        consulta = ConsultaLista(data_inicio=date(2024, 3, 1), data_fim=date(2024, 3, 5))
        self.assertEqual([e.id for e in consulta.aplicar(self.encomendas)], ['1', '2'])

    def test_pesquisa_sem_distincao_de_maiusculas(self):
        consulta = ConsultaLista.from_query({'search': 'ana'}, campos_pesquisa=('nome_utilizador',))
        self.assertEqual({e.id for e in consulta.aplicar(self.encomendas)}, {'1', '3'})

    def test_filtro_e_ordenacao_ascendente(self):
        consulta = ConsultaLista.from_query(
            {'estado': 'pago', 'sort_by': 'total', 'order': 'asc'}, campos_filtro=('estado',),
        )
        self.assertEqual([e.id for e in consulta.aplicar(self.encomendas)], ['4', '2', '3'])

    def test_valores_em_falta_ficam_no_fim(self):
        consulta = ConsultaLista(ordenar_por='criado_em')
        self.assertEqual(consulta.aplicar(self.encomendas)[-1].id, '4')

    def test_pagina_fora_do_intervalo_e_ajustada(self):
        consulta = ConsultaLista(pagina=9, por_pagina=3)
        pagina = consulta.paginar(self.encomendas)
        self.assertEqual(pagina.pagina, 2)
        self.assertEqual(pagina.total_paginas, 2)
        self.assertEqual(len(pagina.itens), 1)


# ====================================================================
# CASOS DE USO
# ====================================================================

class TestGerirCarrinhoUseCase(unittest.TestCase):

    def setUp(self):
        self.carrinho_gateway_mock = Mock()
        self.use_case = GerirCarrinhoUseCase(self.carrinho_gateway_mock, sessao_mock('tok'))

    def test_quantidade_zero_remove_linha(self):
        self.use_case.atualizar_quantidade('10', 0)
        self.carrinho_gateway_mock.remover.assert_called_once_with('tok', '10')
        self.carrinho_gateway_mock.atualizar_quantidade.assert_not_called()

    def test_adicionar_volta_a_ler_o_carrinho(self):
        self.use_case.adicionar('5', 2)
        self.carrinho_gateway_mock.adicionar.assert_called_once_with('tok', '5', 2)
        self.carrinho_gateway_mock.listar.assert_called_once_with('tok')

    def test_quantidade_negativa_rejeitada(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.adicionar('5', 0)


class TestGerirFavoritosUseCase(unittest.TestCase):

    def test_alternar_remove_favorito_existente(self):
        gateway = Mock()
        gateway.listar.return_value = ['10', '11']
        use_case = GerirFavoritosUseCase(gateway, sessao_mock('tok'))

        self.assertFalse(use_case.alternar('10'))
        gateway.remover.assert_called_once_with('tok', '10')

        gateway.listar.return_value = []
        self.assertTrue(use_case.alternar('10'))
        gateway.adicionar.assert_called_once_with('tok', '10')


class TestContaEAutenticacao(unittest.TestCase):

    def test_registo_com_senhas_diferentes(self):
        gateway = Mock()
        use_case = AutenticacaoUseCase(gateway, sessao_mock())
        with self.assertRaises(DadosInvalidosError) as ctx:
            use_case.registar({'password': 'abc12345'}, 'abc123456')
        self.assertEqual(ctx.exception.message, "As senhas não coincidem!")
        gateway.registar.assert_not_called()

    def test_login_com_token_invalido(self):
        gateway = Mock()
        gateway.login.return_value = 'lixo'
        sessao = Mock()
        sessao.login.return_value = False
        with self.assertRaises(DadosInvalidosError):
            AutenticacaoUseCase(gateway, sessao).login('a@b.pt', 'segredo')

    def test_conta_de_outro_utilizador(self):
        gateway = Mock()
        use_case = GerirContaUseCase(gateway, Mock(), sessao_mock(id_='7'))
        with self.assertRaises(PermissaoNegadaError):
            use_case.obter('8')
        gateway.obter.assert_not_called()

    def test_atualizar_conta_so_envia_campos_de_perfil(self):
        """
        Cenário: o cliente tenta promover-se e envia uma password vazia.
        """
        # ARRANGE
        gateway = Mock()
        use_case = GerirContaUseCase(gateway, Mock(), sessao_mock('tok', id_='7'))

        # ACT
        use_case.atualizar('7', {'username': 'ana', 'password': '', 'is_admin': True,
                                 'is_active': False, 'email': 'outro@exemplo.pt', 'city': 'Funchal'})

        # ASSERT
        gateway.atualizar.assert_called_once_with('tok', '7', {'username': 'ana', 'city': 'Funchal'})

    def test_atualizar_conta_com_nova_password(self):
        gateway = Mock()
        GerirContaUseCase(gateway, Mock(), sessao_mock('tok', id_='7')).atualizar('7', {'password': 'nova-senha'})
        gateway.atualizar.assert_called_once_with('tok', '7', {'password': 'nova-senha'})

    def test_encomendas_proprias_mais_recentes_primeiro(self):
        encomenda_gateway = Mock()
        encomenda_gateway.listar_proprias.return_value = [
            Encomenda(id='1', total=Decimal('1'), estado='pago', metodo_pagamento='cod', criado_em=datetime(2024, 1, 1)),
            Encomenda(id='2', total=Decimal('1'), estado='pago', metodo_pagamento='cod', criado_em=datetime(2024, 2, 1)),
        ]
        use_case = GerirContaUseCase(Mock(), encomenda_gateway, sessao_mock())
        self.assertEqual([e.id for e in use_case.listar_encomendas()], ['2', '1'])


class TestProdutosAdmin(unittest.TestCase):

    def setUp(self):
        self.produto_gateway_mock = Mock()
        self.catalogo_gateway_mock = Mock()
        self.use_case = GerirProdutosAdminUseCase(
            self.catalogo_gateway_mock, self.produto_gateway_mock, sessao_mock(is_admin=True)
        )
        self.dados = {'nome': 'Whey', 'preco': '29,90', 'categoria_id': '1', 'stock_online': '0',
                      'stock_ginasio': '3', 'imagem_url': 'http://img/whey.png'}

    def test_validar_converte_preco(self):
        validados = GerirProdutosAdminUseCase.validar(self.dados)
        self.assertEqual(validados['preco'], Decimal('29.90'))
        self.assertEqual(validados['stock_ginasio'], 3)

    def test_campos_obrigatorios(self):
        with self.assertRaises(DadosInvalidosError):
            GerirProdutosAdminUseCase.validar({**self.dados, 'categoria_id': ''})

    def test_stock_todo_a_zero(self):
        with self.assertRaises(DadosInvalidosError):
            GerirProdutosAdminUseCase.validar({**self.dados, 'stock_ginasio': '0'})

    def test_criar_sem_imagem_nem_url(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.criar({**self.dados, 'imagem_url': ''})
        self.produto_gateway_mock.criar.assert_not_called()

    def test_criar_devolve_id(self):
        self.produto_gateway_mock.criar.return_value = {'product': {'id': 42}}
        self.assertEqual(self.use_case.criar(self.dados), '42')

    def test_remover_sem_listar_antes(self):
        self.use_case.remover('1')
        self.produto_gateway_mock.remover.assert_called_once_with('token-valido', '1')
        self.catalogo_gateway_mock.listar_produtos.assert_not_called()

    def test_atualizar_devolve_produto_do_servidor(self):
        self.catalogo_gateway_mock.obter_produto.return_value = Produto(id='5', nome='Whey Gold')
        produto = self.use_case.atualizar('5', self.dados)
        self.assertEqual(produto.nome, 'Whey Gold')
        self.assertEqual(self.produto_gateway_mock.atualizar.call_args[0][2]['preco'], Decimal('29.90'))


class TestCupoesAdmin(unittest.TestCase):

    def test_percentagem_fora_do_intervalo(self):
        with self.assertRaises(DadosInvalidosError):
            GerirCupoesAdminUseCase.validar(Cupao(codigo='X', percentagem_desconto=Decimal('120')))

    def test_cupao_especifico_exige_produto(self):
        with self.assertRaises(DadosInvalidosError):
            GerirCupoesAdminUseCase.validar(Cupao(codigo='X', percentagem_desconto=Decimal('10'), especifico=True))

    def test_cupao_geral_limpa_produto(self):
        cupao = GerirCupoesAdminUseCase.validar(
            Cupao(codigo='X', percentagem_desconto=Decimal('10'), produto_id='3')
        )
        self.assertIsNone(cupao.produto_id)

    def test_utilizacao_exige_admin(self):
        sessao = Mock()
        sessao.exigir_admin.side_effect = PermissaoNegadaError()
        gateway = Mock()
        with self.assertRaises(PermissaoNegadaError):
            GerirCupoesAdminUseCase(gateway, sessao).utilizacao('ATLETA10')
        gateway.utilizacao.assert_not_called()

    def test_criar_devolve_cupao_criado(self):
        gateway = Mock()
        gateway.criar.return_value = Cupao(id='9', codigo='ATLETA10', percentagem_desconto=Decimal('10'))
        criado = GerirCupoesAdminUseCase(gateway, sessao_mock(is_admin=True)).criar(
            Cupao(codigo='ATLETA10', percentagem_desconto=Decimal('10'))
        )
        self.assertEqual(criado.id, '9')


class TestUtilizadoresAdmin(unittest.TestCase):

    def setUp(self):
        self.gateway_mock = Mock()
        self.use_case = GerirUtilizadoresAdminUseCase(self.gateway_mock, sessao_mock('tok', is_admin=True))
        self.dados = {'username': 'rui', 'email': 'rui@exemplo.pt', 'first_name': 'Rui', 'last_name': 'Sousa',
                      'phone_number': '912345678', 'address_line1': 'Rua B', 'city': 'Funchal',
                      'state_province': 'Madeira', 'postal_code': '9000-002', 'country': 'Portugal'}

    def test_criar_exige_password(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.criar(self.dados)
        self.gateway_mock.registar.assert_not_called()

    def test_atualizar_sem_password_mantem_a_atual(self):
        self.use_case.atualizar('3', {**self.dados, 'password': '', 'is_admin': True})
        enviado = self.gateway_mock.atualizar.call_args[0][2]
        self.assertNotIn('password', enviado)
        self.assertTrue(enviado['is_admin'])

    def test_promover(self):
        self.use_case.promover('3')
        self.gateway_mock.promover.assert_called_once_with('tok', '3')


class TestCampanhasAdmin(unittest.TestCase):

    def setUp(self):
        self.campanha_gateway_mock = Mock()
        self.produto_gateway_mock = Mock()
        self.catalogo_gateway_mock = Mock()
        self.campanha_gateway_mock.listar.return_value = [
            Campanha(id='1', nome='Verão', produtos=[ProdutoCampanha(id='5', nome='Whey')]),
        ]
        self.use_case = GerirCampanhasAdminUseCase(
            self.campanha_gateway_mock, self.produto_gateway_mock, self.catalogo_gateway_mock,
            sessao_mock('tok', is_admin=True),
        )

    def test_criar_com_imagem_faz_upload_primeiro(self):
        # ARRANGE
        self.produto_gateway_mock.carregar_imagem.return_value = 'http://cdn/verao.png'
        imagem = FicheiroImagem(nome='verao.png', conteudo=b'\x89PNG', content_type='image/png')

        # ACT
        campanhas = self.use_case.criar('  Verão  ', True, imagem)

        # ASSERT
        self.produto_gateway_mock.carregar_imagem.assert_called_once_with('tok', 'verao.png', b'\x89PNG', 'image/png')
        self.campanha_gateway_mock.criar.assert_called_once_with('Verão', True, 'http://cdn/verao.png')
        self.assertEqual(campanhas[0].id, '1')

    def test_criar_sem_nome(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.criar('   ')
        self.campanha_gateway_mock.criar.assert_not_called()

    def test_produtos_disponiveis_exclui_os_associados(self):
        self.catalogo_gateway_mock.listar_produtos.return_value = [Produto(id='5', nome='Whey'),
                                                                   Produto(id='6', nome='Creatina')]
        self.assertEqual([p.id for p in self.use_case.produtos_disponiveis('1')], ['6'])

    def test_adicionar_e_remover_produto(self):
        self.use_case.adicionar_produto('1', '6')
        self.campanha_gateway_mock.adicionar_produto.assert_called_once_with('1', '6')

        campanha = self.use_case.remover_produto('1', '5')
        self.campanha_gateway_mock.remover_produto.assert_called_once_with('1', '5')
        self.assertEqual(campanha.nome, 'Verão')

    def test_campanha_inexistente(self):
        with self.assertRaises(ItemNaoEncontradoError):
            self.use_case.obter('99')


class TestDashboard(unittest.TestCase):

    def test_resumo_exige_admin(self):
        gateway = Mock()
        gateway.obter_resumo.return_value = ResumoDashboard(total_encomendas=3)
        self.assertEqual(ObterDashboardUseCase(gateway, sessao_mock('tok', is_admin=True)).executar().total_encomendas, 3)
        gateway.obter_resumo.assert_called_once_with('tok')

        sessao = Mock()
        sessao.exigir_admin.side_effect = PermissaoNegadaError()
        with self.assertRaises(PermissaoNegadaError):
            ObterDashboardUseCase(gateway, sessao).executar()


if __name__ == '__main__':
    unittest.main()
