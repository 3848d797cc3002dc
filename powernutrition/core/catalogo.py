# powernutrition/core/catalogo.py
"""
Agregação de preços/stock e filtros da montra da loja.

Tudo é recalculado sobre a lista completa devolvida pelo backend em cada
fetch; não existe cache nem invalidação incremental.
"""
import json
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple, Type, TypeVar

from powernutrition.core.entities import (
    Marca, Produto, Sabor, calcular_preco_exibicao, calcular_stock_total,
)

__all__ = [
    'calcular_preco_exibicao', 'calcular_stock_total', 'normalizar_identificador',
    'extrair_sabores', 'extrair_marcas', 'extrair_pesos', 'FiltroCatalogo',
    'PaginaCatalogo', 'PRODUTOS_POR_PAGINA', 'ORDENACOES',
]

PRODUTOS_POR_PAGINA = 9

DISPONIVEL = 'Em stock'
INDISPONIVEL = 'Fora de stock'

ORDEM_AZ = 'Alfabeticamente, A-Z'
ORDEM_ZA = 'Alfabeticamente, Z-A'
ORDEM_PRECO_ASC = 'Preço, menor para maior'
ORDEM_PRECO_DESC = 'Preço, maior para menor'
ORDENACOES = [ORDEM_AZ, ORDEM_ZA, ORDEM_PRECO_ASC, ORDEM_PRECO_DESC]

T = TypeVar('T', Sabor, Marca)


def normalizar_identificador(valor: Any) -> Optional[str]:
    """
    Representação única (str) para ids de categoria/marca/sabor.
    O backend ora envia inteiros ora strings ('3', 3, 3.0 → '3').
    """
    if valor is None or valor == '':
        return None
    if isinstance(valor, bool):
        return str(int(valor))
    if isinstance(valor, float) and valor.is_integer():
        return str(int(valor))
    return str(valor).strip()


def _deduplicar(pares: Iterable[Tuple[Optional[str], Optional[str]]], classe: Type[T]) -> List[T]:
    """
    Deduplica pares {id, nome} por valor: cada par é serializado para uma
    string canónica, inserido num set e depois desserializado.
    """
    canonicos = set()
    for id_, nome in pares:
        if id_ is None or not nome:
            continue
        canonicos.add(json.dumps({'id': id_, 'nome': nome}, sort_keys=True))

    itens = [json.loads(c) for c in canonicos]
    itens.sort(key=lambda d: (_chave_id(d['id']), d['nome']))
    return [classe(id=d['id'], nome=d['nome']) for d in itens]


def _chave_id(valor: str):
    # ids numéricos ordenam numericamente, os restantes alfabeticamente
    return (0, int(valor), '') if valor.isdigit() else (1, 0, valor)


def extrair_sabores(produtos: List[Produto]) -> List[Sabor]:
    """Conjunto distinto de sabores presentes nas variantes dos produtos."""
    return _deduplicar(
        ((normalizar_identificador(v.sabor_id), v.sabor_nome) for p in produtos for v in p.variantes),
        Sabor,
    )


def extrair_marcas(produtos: List[Produto]) -> List[Marca]:
    """Conjunto distinto de marcas dos produtos."""
    return _deduplicar(
        ((normalizar_identificador(p.marca_id), p.marca_nome) for p in produtos),
        Marca,
    )


def extrair_pesos(produtos: List[Produto]) -> List[str]:
    """Rótulos de peso distintos ('1kg', '500g'), pela ordem em que aparecem."""
    vistos = []
    for produto in produtos:
        for variante in produto.variantes:
            if variante.peso and variante.peso not in vistos:
                vistos.append(variante.peso)
    return vistos


# ====================================================================
# FILTROS E ORDENAÇÃO DA LOJA
# ====================================================================

def _parse_preco(valor: Any) -> Optional[Decimal]:
    if valor is None or str(valor).strip() == '':
        return None
    try:
        preco = Decimal(str(valor).strip().replace(',', '.'))
    except ArithmeticError:
        return None
    return preco if preco.is_finite() else None


@dataclass
class PaginaCatalogo:
    produtos: List[Produto]
    pagina: int
    total_paginas: int
    total_produtos: int


@dataclass
class FiltroCatalogo:
    """Critérios da montra (lidos da query string: categoria, sabor, peso, marca...)."""
    disponibilidade: List[str] = field(default_factory=list)
    preco_minimo: Optional[str] = None
    preco_maximo: Optional[str] = None
    categorias: List[str] = field(default_factory=list)
    sabores: List[str] = field(default_factory=list)
    pesos: List[str] = field(default_factory=list)
    marcas: List[str] = field(default_factory=list)
    ordem: str = ORDEM_AZ

    @classmethod
    def from_query(cls, query) -> 'FiltroCatalogo':
        """Constrói o filtro a partir de um dict/QueryDict com listas separadas por vírgulas."""
        def lista(chave):
            return [v for v in (query.get(chave) or '').split(',') if v]

        return cls(
            disponibilidade=lista('disponibilidade'),
            preco_minimo=query.get('min_price') or None,
            preco_maximo=query.get('max_price') or None,
            categorias=lista('categoria'),
            sabores=lista('sabor'),
            pesos=lista('peso'),
            marcas=lista('marca'),
            ordem=query.get('ordem') or ORDEM_AZ,
        )

    def aplicar(self, produtos: List[Produto]) -> List[Produto]:
        """Filtra e ordena uma cópia da lista de produtos."""
        resultado = list(produtos)

        if self.disponibilidade:
            def disponivel(produto):
                tem_stock = any(v.em_stock for v in produto.variantes)
                if DISPONIVEL in self.disponibilidade and tem_stock:
                    return True
                return INDISPONIVEL in self.disponibilidade and not tem_stock
            resultado = [p for p in resultado if disponivel(p)]

        minimo = _parse_preco(self.preco_minimo)
        if minimo is not None:
            resultado = [p for p in resultado if p.preco_exibicao >= minimo]

        maximo = _parse_preco(self.preco_maximo)
        if maximo is not None:
            resultado = [p for p in resultado if p.preco_exibicao <= maximo]

        if self.categorias:
            resultado = [
                p for p in resultado
                if p.categoria_id and normalizar_identificador(p.categoria_id) in self.categorias
            ]

        if self.sabores:
            resultado = [
                p for p in resultado
                if any(v.sabor_id and normalizar_identificador(v.sabor_id) in self.sabores for v in p.variantes)
            ]

        if self.pesos:
            resultado = [p for p in resultado if any(v.peso in self.pesos for v in p.variantes)]

        if self.marcas:
            resultado = [
                p for p in resultado
                if p.marca_id and normalizar_identificador(p.marca_id) in self.marcas
            ]

        return self._ordenar(resultado)

    def _ordenar(self, produtos: List[Produto]) -> List[Produto]:
        if self.ordem == ORDEM_AZ:
            return sorted(produtos, key=lambda p: p.nome.casefold())
        if self.ordem == ORDEM_ZA:
            return sorted(produtos, key=lambda p: p.nome.casefold(), reverse=True)
        if self.ordem == ORDEM_PRECO_ASC:
            return sorted(produtos, key=lambda p: p.preco_exibicao)
        if self.ordem == ORDEM_PRECO_DESC:
            return sorted(produtos, key=lambda p: p.preco_exibicao, reverse=True)
        return produtos

    def paginar(self, produtos: List[Produto], pagina: int = 1,
                por_pagina: int = PRODUTOS_POR_PAGINA) -> PaginaCatalogo:
        """Aplica filtros e devolve a página pedida (começa em 1)."""
        filtrados = self.aplicar(produtos)
        total_paginas = math.ceil(len(filtrados) / por_pagina) if filtrados else 0
        pagina = max(1, pagina)
        inicio = (pagina - 1) * por_pagina
        return PaginaCatalogo(
            produtos=filtrados[inicio:inicio + por_pagina],
            pagina=pagina,
            total_paginas=total_paginas,
            total_produtos=len(filtrados),
        )
