"""
Mapeadores (Mappers) para converter entre:
1. O JSON devolvido pelo backend REST
2. Entidades de Domínio (powernutrition.core.entities)

A normalização acontece aqui, na fronteira da API: preços passam a Decimal
(None quando inválidos), ids passam a str e datas ISO a datetime.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.utils.dateparse import parse_date, parse_datetime

from powernutrition.core.catalogo import normalizar_identificador
from powernutrition.core.entities import (
    Campanha as CampanhaEntity,
    Carrinho as CarrinhoEntity,
    Categoria as CategoriaEntity,
    Cupao as CupaoEntity,
    Encomenda as EncomendaEntity,
    ItemCarrinho as ItemCarrinhoEntity,
    ItemEncomenda as ItemEncomendaEntity,
    Produto as ProdutoEntity,
    ProdutoCampanha as ProdutoCampanhaEntity,
    ResumoDashboard as ResumoDashboardEntity,
    Sabor as SaborEntity,
    Utilizador as UtilizadorEntity,
    Variante as VarianteEntity,
)


# ====================================================================
# Conversões primitivas
# ====================================================================

def parse_decimal(valor: Any) -> Optional[Decimal]:
    """'29.90', 29.9 ou 30 → Decimal; valores não numéricos → None."""
    if valor is None or isinstance(valor, bool):
        return None
    try:
        numero = Decimal(str(valor).strip())
    except InvalidOperation:
        return None
    return numero if numero.is_finite() else None


def parse_inteiro(valor: Any) -> int:
    try:
        return int(Decimal(str(valor)))
    except (InvalidOperation, ValueError, OverflowError):
        return 0


def parse_data_hora(valor: Any) -> Optional[datetime]:
    if not valor:
        return None
    if isinstance(valor, datetime):
        return valor
    texto = str(valor)
    try:
        data_hora = parse_datetime(texto)
        if data_hora is None:
            data = parse_date(texto[:10])
            data_hora = datetime(data.year, data.month, data.day) if data else None
    except ValueError:
        # bem formatada mas inválida (ex: mês 13)
        return None
    return data_hora


def _texto(valor: Any) -> Optional[str]:
    return None if valor is None else str(valor)


def _decimal_para_json(valor: Optional[Decimal]) -> Optional[str]:
    return None if valor is None else str(valor)


# ====================================================================
# MAPPERS DO CATÁLOGO
# ====================================================================

class CategoriaMapper:

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> CategoriaEntity:
        return CategoriaEntity(
            id=normalizar_identificador(dados.get('id')),
            nome=dados.get('name', ''),
            imagem_url=dados.get('image_url') or dados.get('image'),
        )


class SaborMapper:

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> SaborEntity:
        return SaborEntity(id=normalizar_identificador(dados.get('id')), nome=dados.get('name', ''))


class VarianteMapper:
    """Mapeador para Variante (preço inválido fica a None)."""

    @staticmethod
    def to_entity(dados: Dict[str, Any], produto_id: Optional[str] = None) -> VarianteEntity:
        return VarianteEntity(
            id=normalizar_identificador(dados.get('id')),
            produto_id=normalizar_identificador(dados.get('product_id')) or produto_id,
            preco=parse_decimal(dados.get('preco')),
            stock_online=parse_inteiro(dados.get('quantidade_em_stock')),
            stock_ginasio=parse_inteiro(dados.get('stock_ginasio')),
            sku=dados.get('sku') or '',
            peso_valor=_texto(dados.get('weight_value')) or '',
            peso_unidade=dados.get('weight_unit') or '',
            sabor_id=normalizar_identificador(dados.get('flavor_id', dados.get('sabor_id'))),
            sabor_nome=dados.get('flavor_name'),
            imagem_url=dados.get('image_url'),
        )

    @staticmethod
    def to_payload(dados: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'sabor_id': dados.get('sabor_id') or None,
            'weight_value': _texto(dados.get('peso_valor')) or '',
            'weight_unit': dados.get('peso_unidade') or '',
            'preco': _decimal_para_json(dados.get('preco')),
            'quantidade_em_stock': dados.get('stock_online', 0),
            'stock_ginasio': dados.get('stock_ginasio', 0),
            'sku': dados.get('sku') or '',
        }


class ProdutoMapper:
    """Mapeador para Produto e as suas variantes."""

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> ProdutoEntity:
        produto_id = normalizar_identificador(dados.get('id'))
        return ProdutoEntity(
            id=produto_id,
            nome=dados.get('name', ''),
            descricao=dados.get('description') or '',
            imagem_url=dados.get('image_url'),
            categoria_id=normalizar_identificador(dados.get('category_id')),
            categoria_nome=dados.get('category_name'),
            marca_id=normalizar_identificador(dados.get('brand_id')),
            marca_nome=dados.get('brand_name'),
            ativo=dados.get('is_active', True) is not False,
            preco_original=parse_decimal(dados.get('original_price')),
            avaliacao=parse_decimal(dados.get('rating')),
            numero_avaliacoes=parse_inteiro(dados.get('reviewcount')),
            criado_em=parse_data_hora(dados.get('created_at')),
            variantes=[VarianteMapper.to_entity(v, produto_id) for v in (dados.get('variants') or [])],
        )

    @staticmethod
    def to_payload_criacao(dados: Dict[str, Any]) -> Dict[str, Any]:
        """Objeto aninhado {product, variant} esperado por /products/criar."""
        produto = {
            'name': dados.get('nome'),
            'description': dados.get('descricao') or '',
            'brand_id': dados.get('marca_id') or 1,
            'image_url': dados.get('imagem_url'),
            'category_id': dados.get('categoria_id'),
            'is_active': dados.get('ativo', True),
        }
        if dados.get('preco_original') is not None:
            produto['original_price'] = _decimal_para_json(dados['preco_original'])
        return {'product': produto, 'variant': VarianteMapper.to_payload(dados)}

    @staticmethod
    def to_payload_atualizacao(dados: Dict[str, Any]) -> Dict[str, Any]:
        """Formulário plano enviado para /products/atualizar/:id."""
        return {
            'name': dados.get('nome'),
            'description': dados.get('descricao') or '',
            'brand': dados.get('marca_id'),
            'category_id': dados.get('categoria_id'),
            'flavor_id': dados.get('sabor_id') or None,
            'price': _decimal_para_json(dados.get('preco')),
            'original_price': _decimal_para_json(dados.get('preco_original')),
            'stock_quantity': dados.get('stock_online', 0),
            'stock_ginasio': dados.get('stock_ginasio', 0),
            'weight_value': _texto(dados.get('peso_valor')) or '',
            'weight_unit': dados.get('peso_unidade') or '',
            'sku': dados.get('sku') or '',
            'image_url': dados.get('imagem_url'),
            'is_active': dados.get('ativo', True),
        }


# ====================================================================
# MAPPERS DO CARRINHO E CUPÕES
# ====================================================================

class ItemCarrinhoMapper:

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> ItemCarrinhoEntity:
        return ItemCarrinhoEntity(
            id=normalizar_identificador(dados.get('id')),
            variante_id=normalizar_identificador(dados.get('variant_id')),
            produto_id=normalizar_identificador(dados.get('product_id')),
            nome=dados.get('name', ''),
            preco=parse_decimal(dados.get('price')) or Decimal('0'),
            quantidade=parse_inteiro(dados.get('quantity')),
            preco_original=parse_decimal(dados.get('original_price')),
            imagem_url=dados.get('image_url'),
            peso=_texto(dados.get('weight_value')),
            sabor=dados.get('flavor'),
        )

    @staticmethod
    def to_payload_cupao(item: ItemCarrinhoEntity) -> Dict[str, Any]:
        """Linha do snapshot enviado a /cupoes/apply."""
        return {
            'price': float(item.preco),
            'quantity': item.quantidade,
            'original_price': float(item.preco_original) if item.preco_original is not None else None,
            'product_id': item.produto_id,
        }


class CarrinhoMapper:

    @staticmethod
    def to_entity(dados: Any) -> CarrinhoEntity:
        """Aceita {'items': [...]}; qualquer outro formato é um carrinho vazio."""
        itens = dados.get('items') if isinstance(dados, dict) else None
        if not isinstance(itens, list):
            return CarrinhoEntity()
        return CarrinhoEntity(itens=[ItemCarrinhoMapper.to_entity(i) for i in itens])


class CupaoMapper:

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> CupaoEntity:
        ativo = dados.get('is_active')
        return CupaoEntity(
            id=normalizar_identificador(dados.get('id')),
            codigo=dados.get('code', ''),
            percentagem_desconto=parse_decimal(dados.get('discount_percentage')) or Decimal('0'),
            nome_atleta=dados.get('athlete_name'),
            especifico=bool(dados.get('is_specific', False)),
            produto_id=normalizar_identificador(dados.get('product_id')),
            ativo=True if ativo is None else bool(ativo),
            criado_em=parse_data_hora(dados.get('created_at')),
        )

    @staticmethod
    def to_payload(cupao: CupaoEntity) -> Dict[str, Any]:
        return {
            'code': cupao.codigo,
            'discount_percentage': float(cupao.percentagem_desconto),
            'athlete_name': cupao.nome_atleta or None,
            'is_specific': cupao.especifico,
            'product_id': cupao.produto_id if cupao.especifico else None,
        }


# ====================================================================
# MAPPERS DE ENCOMENDAS E UTILIZADORES
# ====================================================================

class EncomendaMapper:

    @staticmethod
    def _item_to_entity(dados: Dict[str, Any]) -> ItemEncomendaEntity:
        preco = dados.get('item_price', dados.get('price'))
        return ItemEncomendaEntity(
            produto_id=normalizar_identificador(dados.get('product_id')) or '',
            nome_produto=dados.get('product_name', ''),
            quantidade=parse_inteiro(dados.get('quantity')),
            preco=parse_decimal(preco) or Decimal('0'),
            imagem_url=dados.get('image_url'),
        )

    @classmethod
    def to_entity(cls, dados: Dict[str, Any]) -> EncomendaEntity:
        itens = dados.get('items') or dados.get('order_items') or []
        return EncomendaEntity(
            id=normalizar_identificador(dados.get('id')),
            total=parse_decimal(dados.get('total_price')) or Decimal('0'),
            estado=dados.get('status', ''),
            metodo_pagamento=dados.get('payment_method', ''),
            criado_em=parse_data_hora(dados.get('created_at')),
            utilizador_id=normalizar_identificador(dados.get('user_id')),
            nome_utilizador=dados.get('username'),
            email_utilizador=dados.get('user_email'),
            morada_linha1=dados.get('address_line1'),
            easypay_id=dados.get('easypay_id'),
            codigo_cupao=dados.get('coupon_code'),
            itens=[cls._item_to_entity(i) for i in itens],
        )


class UtilizadorMapper:

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> UtilizadorEntity:
        return UtilizadorEntity(
            id=normalizar_identificador(dados.get('id')),
            email=dados.get('email', ''),
            username=dados.get('username') or '',
            telefone=_texto(dados.get('phone_number')),
            is_admin=bool(dados.get('is_admin', False)),
            ativo=dados.get('is_active', True) is not False,
            criado_em=parse_data_hora(dados.get('created_at')),
        )


# ====================================================================
# MAPPERS DO BACK-OFFICE
# ====================================================================

class CampanhaMapper:

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> CampanhaEntity:
        return CampanhaEntity(
            id=normalizar_identificador(dados.get('id')),
            nome=dados.get('name', ''),
            ativa=bool(dados.get('is_active', True)),
            imagem_url=dados.get('image_url') or None,
            produtos=[
                ProdutoCampanhaEntity(
                    id=normalizar_identificador(p.get('id')),
                    nome=p.get('name', ''),
                    imagem_url=p.get('image_url'),
                )
                for p in (dados.get('products') or [])
            ],
        )


class DashboardMapper:
    """Os indicadores passam tal como o servidor os calcula."""

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> ResumoDashboardEntity:
        return ResumoDashboardEntity(
            total_encomendas=parse_inteiro(dados.get('totalOrders')),
            receita_total=parse_decimal(dados.get('totalRevenue')) or Decimal('0'),
            novos_utilizadores=parse_inteiro(dados.get('newUsers')),
            produtos_stock_baixo_total=parse_inteiro(dados.get('lowStockProductsCount')),
            valor_medio_encomenda=parse_decimal(dados.get('averageOrderValue')) or Decimal('0'),
            vendas=list(dados.get('salesData') or []),
            produtos_stock_baixo=list(dados.get('lowStockProducts') or []),
            melhor_cliente=dados.get('topUser'),
            produtos_mais_vendidos=list(dados.get('topSellingProducts') or []),
            estados_encomendas=list(dados.get('orderStatusData') or []),
        )


def mapear_lista(dados: Any, mapper) -> List:
    """Lista JSON → lista de entidades; outro formato dá lista vazia e elementos que não são objetos são ignorados."""
    if not isinstance(dados, list):
        return []
    return [mapper.to_entity(d) for d in dados if isinstance(d, dict)]
