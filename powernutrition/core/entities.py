from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from typing import List, Optional, Dict, Any

# ====================================================================
# ENTIDADES CORE
# Representam os recursos devolvidos pelo backend REST. Nenhuma delas é
# persistida pelo cliente; os campos derivados são recalculados a cada fetch.
# ====================================================================

@dataclass
class Categoria:
    """Categoria de produtos (ex: Proteínas, Creatinas)."""
    id: str
    nome: str
    imagem_url: Optional[str] = None


@dataclass
class Marca:
    """Marca de um produto."""
    id: str
    nome: str


@dataclass
class Sabor:
    """Sabor opcional de uma variante."""
    id: str
    nome: str


@dataclass
class Variante:
    """
    SKU comprável de um produto (sabor/peso/preço/stock específicos).
    O preço fica a None quando o backend envia um valor não numérico.
    """
    id: str
    produto_id: Optional[str] = None
    preco: Optional[Decimal] = None
    stock_online: int = 0
    stock_ginasio: int = 0
    sku: str = ''
    peso_valor: str = ''
    peso_unidade: str = ''
    sabor_id: Optional[str] = None
    sabor_nome: Optional[str] = None
    imagem_url: Optional[str] = None

    @property
    def stock_total(self) -> int:
        """Soma das duas pools de stock (online + ginásio)."""
        return self.stock_online + self.stock_ginasio

    @property
    def em_stock(self) -> bool:
        return self.stock_online > 0 or self.stock_ginasio > 0

    @property
    def peso(self) -> str:
        """Rótulo do peso, ex: '1kg' (remove o '.0' final que o backend envia)."""
        if not self.peso_valor or not self.peso_unidade:
            return ''
        valor = str(self.peso_valor)
        if '.' in valor:
            valor = valor.rstrip('0').rstrip('.')
        return f"{valor}{self.peso_unidade}"


def calcular_preco_exibicao(variantes: List[Variante]) -> Decimal:
    """Menor preço entre as variantes, ignorando preços inválidos; 0 se não houver nenhum."""
    precos_validos = [v.preco for v in variantes if v.preco is not None]
    if not precos_validos:
        return Decimal('0')
    return min(precos_validos)


def calcular_stock_total(variantes: List[Variante]) -> int:
    """Soma de stock online + stock do ginásio de todas as variantes."""
    return sum(v.stock_total for v in variantes)


@dataclass
class Produto:
    """Produto do catálogo com a coleção das suas variantes."""
    id: str
    nome: str
    descricao: str = ''
    imagem_url: Optional[str] = None
    categoria_id: Optional[str] = None
    categoria_nome: Optional[str] = None
    marca_id: Optional[str] = None
    marca_nome: Optional[str] = None
    ativo: bool = True
    preco_original: Optional[Decimal] = None
    avaliacao: Optional[Decimal] = None
    numero_avaliacoes: int = 0
    criado_em: Optional[datetime] = None
    variantes: List[Variante] = field(default_factory=list)

    # --- Campos derivados (nunca persistidos) ---

    @property
    def preco_exibicao(self) -> Decimal:
        """Menor preço válido entre as variantes; 0 se nenhum for válido."""
        return calcular_preco_exibicao(self.variantes)

    @property
    def stock_total(self) -> int:
        return calcular_stock_total(self.variantes)

    @property
    def esgotado(self) -> bool:
        return self.stock_total == 0

    @property
    def variante_exibicao(self) -> Optional[Variante]:
        """Variante mais barata (entre as que têm preço válido)."""
        validas = [v for v in self.variantes if v.preco is not None]
        if not validas:
            return None
        return min(validas, key=lambda v: v.preco)

    @property
    def variante_exibicao_id(self) -> Optional[str]:
        variante = self.variante_exibicao
        return variante.id if variante else None

    @property
    def peso_exibicao(self) -> str:
        variante = self.variante_exibicao
        if variante and variante.peso:
            return variante.peso
        return 'N/A'


@dataclass
class ItemCarrinho:
    """Item do carrinho (estado do servidor), identificado pela variante."""
    id: str
    variante_id: str
    nome: str
    preco: Decimal
    quantidade: int
    produto_id: Optional[str] = None
    preco_original: Optional[Decimal] = None
    imagem_url: Optional[str] = None
    peso: Optional[str] = None
    sabor: Optional[str] = None

    @property
    def preco_efetivo(self) -> Decimal:
        """O preço original prevalece quando é superior ao preço atual."""
        if self.preco_original is not None and self.preco_original > self.preco:
            return self.preco_original
        return self.preco

    @property
    def subtotal(self) -> Decimal:
        return self.preco_efetivo * self.quantidade


@dataclass
class Carrinho:
    """Snapshot do carrinho devolvido pelo backend."""
    itens: List[ItemCarrinho] = field(default_factory=list)

    @property
    def total_itens(self) -> int:
        return sum(item.quantidade for item in self.itens)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.subtotal for item in self.itens), Decimal('0'))

    def is_empty(self) -> bool:
        return not self.itens

    def get_item(self, item_id: str) -> Optional[ItemCarrinho]:
        return next((item for item in self.itens if item.id == item_id), None)


@dataclass
class Cupao:
    """Código de desconto; validação e cálculo são feitos no servidor."""
    codigo: str
    percentagem_desconto: Decimal = Decimal('0')
    id: Optional[str] = None
    nome_atleta: Optional[str] = None
    especifico: bool = False
    produto_id: Optional[str] = None
    ativo: bool = True
    criado_em: Optional[datetime] = None


@dataclass
class ResultadoCupoes:
    """Resposta do servidor à aplicação de uma lista de cupões."""
    desconto: Decimal
    novo_total: Decimal


@dataclass
class Morada:
    """Morada de envio no formato esperado pelo endpoint /addresses/morada."""
    linha1: str
    cidade: str
    codigo_postal: str
    linha2: str = ''
    regiao: str = 'Madeira'
    pais: str = 'Portugal'
    tipo: str = 'residencial'
    id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            'address_line1': self.linha1,
            'address_line2': self.linha2,
            'city': self.cidade,
            'state_province': self.regiao,
            'postal_code': self.codigo_postal,
            'country': self.pais,
            'address_type': self.tipo,
        }


@dataclass
class DetalhesPagamento:
    """Campos de confirmação específicos de cada método de pagamento."""
    metodo: str  # 'mbway', 'multibanco' ou 'credit_card'
    pagamento_id: Optional[str] = None
    entidade: Optional[str] = None
    referencia: Optional[str] = None
    url: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {'method': self.metodo, 'payment_id': self.pagamento_id}
        if self.metodo == 'multibanco':
            payload['entity'] = self.entidade
            payload['reference'] = self.referencia
        elif self.metodo == 'credit_card':
            payload['url'] = self.url
        return payload


@dataclass
class ItemEncomenda:
    produto_id: str
    nome_produto: str
    quantidade: int
    preco: Decimal
    imagem_url: Optional[str] = None


@dataclass
class Encomenda:
    """Encomenda (recurso do servidor); o cliente apenas a apresenta."""
    id: str
    total: Decimal
    estado: str
    metodo_pagamento: str
    criado_em: Optional[datetime] = None
    utilizador_id: Optional[str] = None
    nome_utilizador: Optional[str] = None
    email_utilizador: Optional[str] = None
    morada_linha1: Optional[str] = None
    easypay_id: Optional[str] = None
    codigo_cupao: Optional[str] = None
    itens: List[ItemEncomenda] = field(default_factory=list)


@dataclass
class ConfirmacaoEncomenda:
    """Dados mostrados na página de confirmação após o checkout."""
    encomenda_id: str
    metodo_pagamento: str
    total: Decimal
    morada_envio: Morada
    detalhes_pagamento: Optional[DetalhesPagamento] = None


@dataclass
class UtilizadorSessao:
    """Payload descodificado do JWT emitido pelo backend."""
    id: str
    email: str
    is_admin: bool = False
    exp: Optional[float] = None


@dataclass
class Utilizador:
    """Conta de utilizador (área de cliente e gestão de utilizadores)."""
    id: str
    email: str
    username: str = ''
    telefone: Optional[str] = None
    is_admin: bool = False
    ativo: bool = True
    criado_em: Optional[datetime] = None


@dataclass
class ProdutoCampanha:
    id: str
    nome: str
    imagem_url: Optional[str] = None


@dataclass
class Campanha:
    """Campanha promocional que agrupa produtos."""
    id: str
    nome: str
    ativa: bool = True
    imagem_url: Optional[str] = None
    produtos: List[ProdutoCampanha] = field(default_factory=list)


@dataclass
class ResumoDashboard:
    """Indicadores do painel administrativo, tal como o servidor os calcula."""
    total_encomendas: int = 0
    receita_total: Decimal = Decimal('0')
    novos_utilizadores: int = 0
    produtos_stock_baixo_total: int = 0
    valor_medio_encomenda: Decimal = Decimal('0')
    vendas: List[Dict[str, Any]] = field(default_factory=list)
    produtos_stock_baixo: List[Dict[str, Any]] = field(default_factory=list)
    melhor_cliente: Optional[Dict[str, Any]] = None
    produtos_mais_vendidos: List[Dict[str, Any]] = field(default_factory=list)
    estados_encomendas: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class FicheiroImagem:
    """Ficheiro de imagem recebido num formulário, antes do upload."""
    nome: str
    conteudo: bytes
    content_type: str = 'application/octet-stream'
