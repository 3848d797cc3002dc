# powernutrition/core/listagens.py
"""
Consulta em memória das listagens do back-office (encomendas, utilizadores,
produtos, cupões).

O backend devolve sempre a lista completa; pesquisa, filtros, intervalo de
datas, ordenação e paginação são feitos aqui.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Sequence

ITENS_POR_PAGINA = 20

ASC = 'asc'
DESC = 'desc'

# Valores de filtro que significam "sem filtro"
_SEM_FILTRO = ('', 'all', 'todos', None)


def obter_valor(item: Any, campo: str) -> Any:
    """Lê um campo de uma entidade (atributo) ou de um dict."""
    if isinstance(item, dict):
        return item.get(campo)
    return getattr(item, campo, None)


def _parse_data(valor: Any) -> Optional[date]:
    if not valor:
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor)[:10])
    except ValueError:
        return None


def _sem_fuso(valor: datetime) -> datetime:
    # datas com fuso são comparadas em UTC
    if valor.tzinfo is not None:
        return valor.astimezone(timezone.utc).replace(tzinfo=None)
    return valor


def _chave_ordenacao(valor: Any):
    if isinstance(valor, str):
        return valor.casefold()
    if isinstance(valor, datetime):
        return _sem_fuso(valor)
    if isinstance(valor, bool):
        return int(valor)
    return valor


@dataclass
class PaginaLista:
    itens: List[Any]
    pagina: int
    total_paginas: int
    total_itens: int


@dataclass
class ConsultaLista:
    """Critérios de uma listagem administrativa."""
    termo: str = ''
    campos_pesquisa: Sequence[str] = ()
    filtros: Dict[str, Any] = field(default_factory=dict)
    data_inicio: Optional[date] = None
    data_fim: Optional[date] = None
    campo_data: str = 'criado_em'
    ordenar_por: Optional[str] = None
    ordem: str = DESC
    pagina: int = 1
    por_pagina: int = ITENS_POR_PAGINA

    @classmethod
    def from_query(cls, query, campos_pesquisa: Sequence[str] = (),
                   campos_filtro: Sequence[str] = (), ordenar_por: Optional[str] = 'criado_em',
                   campos_ordenacao: Sequence[str] = ()) -> 'ConsultaLista':
        """
        Lê `search`, `start_date`, `end_date`, `sort_by`, `order`, `page` e os
        filtros pedidos (ex: `estado`) de um dict/QueryDict.
        """
        pedido_ordenacao = query.get('sort_by') or ordenar_por
        if campos_ordenacao and pedido_ordenacao not in campos_ordenacao:
            pedido_ordenacao = ordenar_por

        try:
            pagina = int(query.get('page') or 1)
        except (TypeError, ValueError):
            pagina = 1

        return cls(
            termo=(query.get('search') or '').strip(),
            campos_pesquisa=tuple(campos_pesquisa),
            filtros={campo: query.get(campo) for campo in campos_filtro if query.get(campo) not in _SEM_FILTRO},
            data_inicio=_parse_data(query.get('start_date')),
            data_fim=_parse_data(query.get('end_date')),
            ordenar_por=pedido_ordenacao,
            ordem=ASC if (query.get('order') or '').lower() == ASC else DESC,
            pagina=pagina,
        )

    # --- Filtragem ---

    def _corresponde_termo(self, item) -> bool:
        termo = self.termo.casefold()
        for campo in self.campos_pesquisa:
            valor = obter_valor(item, campo)
            if valor is not None and termo in str(valor).casefold():
                return True
        return False

    def _corresponde_filtros(self, item) -> bool:
        for campo, esperado in self.filtros.items():
            if esperado in _SEM_FILTRO:
                continue
            valor = obter_valor(item, campo)
            if valor is None or str(valor).casefold() != str(esperado).casefold():
                return False
        return True

    def _dentro_do_intervalo(self, item) -> bool:
        if not self.data_inicio and not self.data_fim:
            return True
        valor = obter_valor(item, self.campo_data)
        if not isinstance(valor, datetime):
            return False
        valor = _sem_fuso(valor)
        if self.data_inicio and valor < datetime.combine(self.data_inicio, time.min):
            return False
        # a data final inclui o dia inteiro, até às 23:59:59
        if self.data_fim and valor > datetime.combine(self.data_fim, time(23, 59, 59)):
            return False
        return True

    def aplicar(self, itens: List[Any]) -> List[Any]:
        resultado = list(itens)
        if self.termo and self.campos_pesquisa:
            resultado = [i for i in resultado if self._corresponde_termo(i)]
        if self.filtros:
            resultado = [i for i in resultado if self._corresponde_filtros(i)]
        resultado = [i for i in resultado if self._dentro_do_intervalo(i)]
        return self._ordenar(resultado)

    def _ordenar(self, itens: List[Any]) -> List[Any]:
        if not self.ordenar_por:
            return itens
        com_valor = [i for i in itens if obter_valor(i, self.ordenar_por) is not None]
        sem_valor = [i for i in itens if obter_valor(i, self.ordenar_por) is None]
        com_valor.sort(
            key=lambda i: _chave_ordenacao(obter_valor(i, self.ordenar_por)),
            reverse=self.ordem == DESC,
        )
        # valores em falta ficam sempre no fim
        return com_valor + sem_valor

    def paginar(self, itens: List[Any]) -> PaginaLista:
        filtrados = self.aplicar(itens)
        total_paginas = math.ceil(len(filtrados) / self.por_pagina) if filtrados else 0
        pagina = min(max(1, self.pagina), max(total_paginas, 1))
        inicio = (pagina - 1) * self.por_pagina
        return PaginaLista(
            itens=filtrados[inicio:inicio + self.por_pagina],
            pagina=pagina,
            total_paginas=total_paginas,
            total_itens=len(filtrados),
        )
