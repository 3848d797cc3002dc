# powernutrition/core/checkout.py
"""
Checkout: lista de cupões e máquina de estados da finalização da encomenda.

A finalização executa quatro passos estritamente sequenciais, cada um
dependente do sucesso do anterior:

    1. criar a morada de envio          POST /api/addresses/morada
    2. iniciar o pagamento (exceto COD) POST /api/referencia/<metodo>/create
    3. finalizar a encomenda            POST /api/orders/checkout
    4. devolver a confirmação (não persistida)

Qualquer falha é convertida numa mensagem para o utilizador, interrompe os
passos restantes e deixa o formulário editável. Não há novas tentativas.
"""
import enum
import logging
import re
import time
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Union

from powernutrition.core.entities import (
    ConfirmacaoEncomenda, DetalhesPagamento, ItemCarrinho, Morada, ResultadoCupoes,
)
from powernutrition.core.exceptions import (
    BaseErroCore, CheckoutError, CupaoDuplicadoError, DadosInvalidosError,
    TransicaoInvalidaError,
)
from powernutrition.core.ports import ICheckoutGateway, ICupaoGateway
from powernutrition.core.sessao import SessaoAutenticacao

logger = logging.getLogger(__name__)

PORTES_ENVIO = Decimal('0')

METODOS_PAGAMENTO = ('mbway', 'multibanco', 'cc', 'cod')
METODOS_COM_REFERENCIA = ('mbway', 'multibanco', 'cc')

OPCOES_MORADA = ('custom', 'store', 'befit')

CHAVE_CLIENTE = 'POWERNUTRITION'
INDICATIVO_TELEFONE = '+351'

_DESCRITIVOS = {
    'mbway': 'Pagamento da encomenda MBWay RD Power Nutrition',
    'multibanco': 'Pagamento da encomenda Multibanco RD Power Nutrition',
    'cc': 'Pagamento da encomenda com Cartão de Crédito',
}

_ERROS_PAGAMENTO = {
    'mbway': 'Erro ao gerar referência MBWay',
    'multibanco': 'Erro ao gerar referência Multibanco',
    'cc': 'Erro ao processar pagamento com cartão',
}


def formatar_euros(valor) -> str:
    """Formata um valor monetário para apresentação, ex: '€40.00'."""
    quantia = Decimal(str(valor)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    return f"€{quantia}"


def calcular_subtotal(itens: List[ItemCarrinho]) -> Decimal:
    return sum((item.subtotal for item in itens), Decimal('0'))


# ====================================================================
# MORADAS
# ====================================================================

def morada_loja() -> Morada:
    """Levantamento na loja."""
    return Morada(
        linha1='Caminho do Poço Barral Nº28',
        linha2='Caminho do Poço Barral Nº28',
        cidade='Funchal',
        regiao='Madeira',
        codigo_postal='9020-222',
        pais='Portugal',
        tipo='store',
    )


def morada_befit() -> Morada:
    """Levantamento no ginásio BEFIT."""
    return Morada(
        linha1='Avenida BEFIT, 456',
        linha2='Escritório 10',
        cidade='Santa Cruz',
        regiao='Madeira',
        codigo_postal='9020-123',
        pais='Portugal',
        tipo='befit',
    )


def resolver_morada(opcao: str, personalizada: Optional[Morada] = None) -> Morada:
    """Escolhe a morada fixa ('store'/'befit') ou a introduzida pelo utilizador ('custom')."""
    if opcao == 'store':
        return morada_loja()
    if opcao == 'befit':
        return morada_befit()
    if opcao == 'custom':
        if personalizada is None:
            raise DadosInvalidosError("Preencha a morada de envio.")
        personalizada.tipo = 'residencial'
        return personalizada
    raise DadosInvalidosError(f"Opção de morada '{opcao}' não suportada.")


# ====================================================================
# CUPÕES
# ====================================================================

class GestorCupoes:
    """
    Acumula códigos de cupão no cliente e pede ao servidor o desconto total.

    O servidor é a única fonte do desconto: o resultado de `aplicar`
    substitui o estado local; qualquer falha repõe desconto 0, total
    subtotal + portes e esvazia a lista de códigos.
    """

    def __init__(self, cupao_gateway: ICupaoGateway, subtotal: Decimal,
                 portes: Decimal = PORTES_ENVIO, codigos: Optional[List[str]] = None,
                 desconto: Decimal = Decimal('0'), total_final: Optional[Decimal] = None):
        self.cupao_gateway = cupao_gateway
        self.subtotal = subtotal
        self.portes = portes
        self.codigos: List[str] = list(codigos or [])
        self.desconto = desconto
        self.total_final = total_final if total_final is not None else subtotal + portes

    def adicionar(self, codigo: str) -> str:
        """Junta um código à lista; devolve a mensagem a mostrar."""
        if not codigo or not codigo.strip():
            raise DadosInvalidosError("Por favor, insira um código de cupão.")
        if codigo in self.codigos:
            raise CupaoDuplicadoError()
        self.codigos.append(codigo)
        return f'Cupão "{codigo}" adicionado. Clique em \'Aplicar Cupões\' para calcular o desconto.'

    def remover(self, codigo: str):
        self.codigos = [c for c in self.codigos if c != codigo]

    def repor(self):
        self.desconto = Decimal('0')
        self.total_final = self.subtotal + self.portes
        self.codigos = []

    def aplicar(self, itens: List[ItemCarrinho]) -> ResultadoCupoes:
        """Envia todos os códigos e o snapshot do carrinho ao servidor."""
        if not self.codigos:
            raise DadosInvalidosError("Por favor, adicione pelo menos um cupão para aplicar.")

        try:
            resultado = self.cupao_gateway.aplicar(list(self.codigos), itens)
        except BaseErroCore as e:
            logger.warning("Erro ao aplicar cupões %s: %s", self.codigos, e)
            self.repor()
            raise

        self.desconto = resultado.desconto
        self.total_final = resultado.novo_total
        return resultado

    def to_dict(self) -> Dict[str, Any]:
        """Estado serializável (guardado na sessão pela camada de apresentação)."""
        return {
            'codigos': list(self.codigos),
            'desconto': str(self.desconto),
            'total_final': str(self.total_final),
            'subtotal': str(self.subtotal),
        }


# ====================================================================
# MÁQUINA DE ESTADOS DO CHECKOUT
# ====================================================================

class EstadoCheckout(enum.Enum):
    EDITANDO = 'editando'
    SUBMETENDO = 'submetendo'
    CONCLUIDO = 'concluido'
    FALHOU = 'falhou'


@dataclass
class DadosCliente:
    email: str
    primeiro_nome: str = ''
    ultimo_nome: str = ''
    telefone: str = ''

    @property
    def nome_completo(self) -> str:
        return f"{self.primeiro_nome} {self.ultimo_nome}"


@dataclass
class PedidoCheckout:
    """Tudo o que o formulário de checkout recolhe."""
    cliente: DadosCliente
    metodo_pagamento: str
    total: Decimal
    opcao_morada: str = 'custom'
    morada_personalizada: Optional[Morada] = None
    codigos_cupao: List[str] = field(default_factory=list)


# --- Payloads tipados das transições ---

@dataclass(frozen=True)
class MoradaCriada:
    morada_id: str
    morada: Morada


@dataclass(frozen=True)
class PagamentoIniciado:
    metodo: str
    detalhes: Optional[DetalhesPagamento]


@dataclass(frozen=True)
class EncomendaFinalizada:
    confirmacao: ConfirmacaoEncomenda


@dataclass(frozen=True)
class CheckoutFalhou:
    passo: str
    mensagem: str


Transicao = Union[MoradaCriada, PagamentoIniciado, EncomendaFinalizada, CheckoutFalhou]


def construir_payload_pagamento(metodo: str, cliente: DadosCliente, total: Decimal,
                                agora_ms: int) -> Dict[str, Any]:
    """Payload comum aos três endpoints de referência de pagamento."""
    return {
        'customer': {
            'name': cliente.nome_completo,
            'email': cliente.email,
            'phone': re.sub(r'\D', '', cliente.telefone or ''),
            'phone_indicative': INDICATIVO_TELEFONE,
            'key': CHAVE_CLIENTE,
        },
        'key': f'order_{agora_ms}',
        'value': float(total),
        'capture': {
            'descriptive': _DESCRITIVOS[metodo],
            'transaction_key': f'transaction_{agora_ms}',
        },
    }


def extrair_detalhes_pagamento(metodo: str, resposta: Dict[str, Any]) -> DetalhesPagamento:
    """Campos de confirmação específicos do método."""
    dados_metodo = resposta.get('method') or {}
    pagamento_id = resposta.get('id')
    pagamento_id = str(pagamento_id) if pagamento_id is not None else None

    if metodo == 'multibanco':
        return DetalhesPagamento(
            metodo='multibanco',
            pagamento_id=pagamento_id,
            entidade=dados_metodo.get('entity'),
            referencia=dados_metodo.get('reference'),
        )
    if metodo == 'cc':
        return DetalhesPagamento(metodo='credit_card', pagamento_id=pagamento_id, url=dados_metodo.get('url'))
    return DetalhesPagamento(metodo='mbway', pagamento_id=pagamento_id)


class CheckoutAssembler:
    """
    Máquina de estados do checkout, independente da camada de apresentação.

    EDITANDO --submeter--> SUBMETENDO --> CONCLUIDO
                                     \\-> FALHOU (formulário continua editável)
    """

    def __init__(self, checkout_gateway: ICheckoutGateway, sessao: SessaoAutenticacao,
                 relogio_ms: Callable[[], int] = lambda: int(time.time() * 1000)):
        self.checkout_gateway = checkout_gateway
        self.sessao = sessao
        self.relogio_ms = relogio_ms
        self.estado = EstadoCheckout.EDITANDO
        self.historico: List[Transicao] = []
        self.erro: Optional[str] = None
        self.confirmacao: Optional[ConfirmacaoEncomenda] = None

    @property
    def editavel(self) -> bool:
        return self.estado in (EstadoCheckout.EDITANDO, EstadoCheckout.FALHOU)

    def submeter(self, pedido: PedidoCheckout) -> ConfirmacaoEncomenda:
        if not self.editavel:
            raise TransicaoInvalidaError()

        self.estado = EstadoCheckout.SUBMETENDO
        self.erro = None
        passo = 'autenticacao'
        try:
            token = self.sessao.exigir_token()

            passo = 'validacao'
            if pedido.metodo_pagamento not in METODOS_PAGAMENTO:
                raise DadosInvalidosError(f"Método de pagamento '{pedido.metodo_pagamento}' não suportado.")
            morada = resolver_morada(pedido.opcao_morada, pedido.morada_personalizada)

            passo = 'morada'
            morada_criada = self._criar_morada(token, morada)
            self.historico.append(morada_criada)

            passo = 'pagamento'
            pagamento = self._iniciar_pagamento(token, pedido)
            self.historico.append(pagamento)

            passo = 'encomenda'
            finalizada = self._finalizar(token, pedido, morada_criada, pagamento)
            self.historico.append(finalizada)

        except BaseErroCore as e:
            self.estado = EstadoCheckout.FALHOU
            self.erro = e.message
            self.historico.append(CheckoutFalhou(passo=passo, mensagem=e.message))
            logger.error("Erro no checkout (passo %s): %s", passo, e.message)
            if isinstance(e, CheckoutError):
                raise
            raise CheckoutError(e.message, passo=passo) from e

        self.estado = EstadoCheckout.CONCLUIDO
        self.confirmacao = finalizada.confirmacao
        return self.confirmacao

    # --- Passos ---

    def _criar_morada(self, token: str, morada: Morada) -> MoradaCriada:
        try:
            resposta = self.checkout_gateway.criar_morada(token, morada)
        except BaseErroCore as e:
            raise CheckoutError(e.message or 'Erro ao criar morada de envio.', passo='morada') from e

        morada_id = (resposta or {}).get('id')
        if not morada_id:
            raise CheckoutError('Não foi possível determinar o ID da morada para o checkout.', passo='morada')
        morada.id = str(morada_id)
        return MoradaCriada(morada_id=str(morada_id), morada=morada)

    def _iniciar_pagamento(self, token: str, pedido: PedidoCheckout) -> PagamentoIniciado:
        metodo = pedido.metodo_pagamento
        if metodo not in METODOS_COM_REFERENCIA:
            return PagamentoIniciado(metodo=metodo, detalhes=None)

        payload = construir_payload_pagamento(metodo, pedido.cliente, pedido.total, self.relogio_ms())
        try:
            resposta = self.checkout_gateway.criar_referencia_pagamento(token, metodo, payload)
        except BaseErroCore as e:
            raise CheckoutError(f"{_ERROS_PAGAMENTO[metodo]}: {e.message}", passo='pagamento') from e

        detalhes = extrair_detalhes_pagamento(metodo, resposta or {})
        logger.info("Pagamento %s iniciado (id=%s).", metodo, detalhes.pagamento_id)
        return PagamentoIniciado(metodo=metodo, detalhes=detalhes)

    def _finalizar(self, token: str, pedido: PedidoCheckout, morada: MoradaCriada,
                   pagamento: PagamentoIniciado) -> EncomendaFinalizada:
        payload = {
            'addressId': morada.morada_id,
            'couponCode': list(pedido.codigos_cupao),
            'email': pedido.cliente.email,
            'paymentMethod': pedido.metodo_pagamento,
            'paymentDetails': pagamento.detalhes.to_payload() if pagamento.detalhes else None,
        }
        try:
            resposta = self.checkout_gateway.finalizar(token, payload)
        except BaseErroCore as e:
            raise CheckoutError(f"Erro ao finalizar encomenda: {e.message}", passo='encomenda') from e

        encomenda_id = (resposta or {}).get('orderId')
        confirmacao = ConfirmacaoEncomenda(
            encomenda_id=str(encomenda_id) if encomenda_id is not None else '',
            metodo_pagamento=pedido.metodo_pagamento,
            total=pedido.total,
            morada_envio=morada.morada,
            detalhes_pagamento=pagamento.detalhes,
        )
        logger.info("Encomenda realizada com sucesso! ID da Encomenda: %s.", confirmacao.encomenda_id)
        return EncomendaFinalizada(confirmacao=confirmacao)
