# powernutrition/core/use_cases.py
"""
Implementação dos Casos de Uso (Lógica de Negócio) da aplicação.
Esta camada depende apenas das Entidades e Portas (Interfaces) do Core;
toda a verdade de negócio (preços, stock, pagamentos, regras de cupões)
vive no backend REST.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

# Entidades e Exceções
from powernutrition.core.entities import (
    Campanha, Carrinho, Categoria, Cupao, Encomenda, FicheiroImagem, Produto,
    ResumoDashboard, Utilizador, UtilizadorSessao, Variante,
)
from powernutrition.core.exceptions import (
    BackendIndisponivelError, BackendRespostaError, DadosInvalidosError,
    ItemNaoEncontradoError, PermissaoNegadaError,
)
from powernutrition.core.catalogo import (
    FiltroCatalogo, PaginaCatalogo, extrair_marcas, extrair_pesos, extrair_sabores,
)
from powernutrition.core.listagens import (
    ConsultaLista, PaginaLista,
)
from powernutrition.core.sessao import SessaoAutenticacao

# Portas (Interfaces) - Importadas do powernutrition/core/ports.py
from powernutrition.core.ports import (
    ICampanhaGateway, ICarrinhoGateway, ICatalogoGateway, ICupaoGateway,
    IDashboardGateway, IEncomendaGateway, IFavoritoGateway, IProdutoAdminGateway,
    IUtilizadorGateway,
)

logger = logging.getLogger(__name__)


def _decimal(valor: Any, campo: str, obrigatorio: bool = True) -> Optional[Decimal]:
    if valor is None or str(valor).strip() == '':
        if obrigatorio:
            raise DadosInvalidosError(f"O campo '{campo}' é obrigatório.")
        return None
    try:
        return Decimal(str(valor).strip().replace(',', '.'))
    except InvalidOperation:
        raise DadosInvalidosError(f"O campo '{campo}' deve ser numérico.")


def _inteiro(valor: Any, campo: str) -> int:
    if valor is None or str(valor).strip() == '':
        return 0
    try:
        return int(valor)
    except (TypeError, ValueError):
        raise DadosInvalidosError(f"O campo '{campo}' deve ser um número inteiro.")


# ====================================================================
# 1. CASOS DE USO DO CATÁLOGO
# ====================================================================

class ListarProdutosUseCase:
    """Montra da loja: lista completa do backend, filtrada e paginada em memória."""
    def __init__(self, catalogo_gateway: ICatalogoGateway):
        self.catalogo_gateway = catalogo_gateway

    def executar(self, filtro: FiltroCatalogo, pagina: int = 1) -> PaginaCatalogo:
        # sem cache: cada pedido recalcula preços e stock a partir do backend
        produtos = self.catalogo_gateway.listar_produtos()
        return filtro.paginar(produtos, pagina)

    def opcoes_filtro(self) -> Dict[str, List]:
        """Valores disponíveis para os filtros da montra."""
        produtos = self.catalogo_gateway.listar_produtos()
        return {
            'categorias': self.catalogo_gateway.listar_categorias(),
            'marcas': extrair_marcas(produtos),
            'sabores': extrair_sabores(produtos),
            'pesos': extrair_pesos(produtos),
        }

    def listar_categorias(self) -> List[Categoria]:
        return self.catalogo_gateway.listar_categorias()


class DetalharProdutoUseCase:
    """Caso de Uso para obter os detalhes de um produto e das suas variantes."""
    def __init__(self, catalogo_gateway: ICatalogoGateway):
        self.catalogo_gateway = catalogo_gateway

    def executar(self, produto_id: str) -> Produto:
        produto = self.catalogo_gateway.obter_produto(produto_id)
        if not produto:
            raise ItemNaoEncontradoError(f"Produto ID {produto_id} não encontrado.")
        return produto


# ====================================================================
# 2. CASOS DE USO DO CARRINHO E FAVORITOS
# ====================================================================

class GerirCarrinhoUseCase:
    """
    Carrinho guardado no servidor. Cada alteração é seguida de nova leitura:
    o servidor é a única fonte de verdade.
    """
    def __init__(self, carrinho_gateway: ICarrinhoGateway, sessao: SessaoAutenticacao):
        self.carrinho_gateway = carrinho_gateway
        self.sessao = sessao

    def listar(self) -> Carrinho:
        return self.carrinho_gateway.listar(self.sessao.exigir_token())

    def adicionar(self, produto_id: str, quantidade: int = 1) -> Carrinho:
        if quantidade <= 0:
            raise DadosInvalidosError("A quantidade a adicionar deve ser positiva.")
        token = self.sessao.exigir_token()
        self.carrinho_gateway.adicionar(token, produto_id, quantidade)
        return self.carrinho_gateway.listar(token)

    def atualizar_quantidade(self, variante_id: str, quantidade: int) -> Carrinho:
        """Quantidade igual ou inferior a zero remove a linha."""
        if quantidade <= 0:
            return self.remover(variante_id)
        token = self.sessao.exigir_token()
        self.carrinho_gateway.atualizar_quantidade(token, variante_id, quantidade)
        return self.carrinho_gateway.listar(token)

    def remover(self, variante_id: str) -> Carrinho:
        token = self.sessao.exigir_token()
        self.carrinho_gateway.remover(token, variante_id)
        return self.carrinho_gateway.listar(token)


class GerirFavoritosUseCase:
    """Favoritos por id de variante."""
    def __init__(self, favorito_gateway: IFavoritoGateway, sessao: SessaoAutenticacao):
        self.favorito_gateway = favorito_gateway
        self.sessao = sessao

    def listar(self) -> List[str]:
        return self.favorito_gateway.listar(self.sessao.exigir_token())

    def alternar(self, variante_id: str) -> bool:
        """Adiciona ou remove a variante; devolve True se ficou nos favoritos."""
        token = self.sessao.exigir_token()
        favoritos = self.favorito_gateway.listar(token)
        if str(variante_id) in favoritos:
            self.favorito_gateway.remover(token, variante_id)
            return False
        self.favorito_gateway.adicionar(token, variante_id)
        return True


# ====================================================================
# 3. CASOS DE USO DE CONTA E AUTENTICAÇÃO
# ====================================================================

CAMPOS_REGISTO = (
    'username', 'email', 'password', 'first_name', 'last_name', 'phone_number',
    'address_line1', 'address_line2', 'city', 'state_province', 'postal_code', 'country',
)

CAMPOS_CONTA = (
    'username', 'password', 'first_name', 'last_name', 'phone_number',
    'address_line1', 'address_line2', 'city', 'state_province', 'postal_code', 'country',
)

CAMPOS_OBRIGATORIOS_UTILIZADOR = (
    'username', 'email', 'first_name', 'last_name', 'phone_number',
    'address_line1', 'city', 'state_province', 'postal_code', 'country',
)


class AutenticacaoUseCase:
    """Login, registo e logout de clientes."""
    def __init__(self, utilizador_gateway: IUtilizadorGateway, sessao: SessaoAutenticacao):
        self.utilizador_gateway = utilizador_gateway
        self.sessao = sessao

    def login(self, email: str, password: str) -> UtilizadorSessao:
        if not email or not password:
            raise DadosInvalidosError("Por favor, preencha o email e a password.")
        token = self.utilizador_gateway.login(email, password)
        if not self.sessao.login(token):
            raise DadosInvalidosError("O servidor devolveu um token inválido.")
        logger.info("Login efetuado: utilizador %s.", self.sessao.utilizador.id)
        return self.sessao.utilizador

    def registar(self, dados: Dict[str, Any], confirmacao_password: str) -> Dict[str, Any]:
        if dados.get('password') != confirmacao_password:
            raise DadosInvalidosError("As senhas não coincidem!")
        telefone = str(dados.get('phone_number') or '')
        if telefone and not telefone.isdigit():
            raise DadosInvalidosError("O telefone deve conter apenas dígitos.")
        payload = {campo: dados.get(campo, '') for campo in CAMPOS_REGISTO}
        return self.utilizador_gateway.registar(payload)

    def logout(self):
        self.sessao.logout()


class GerirContaUseCase:
    """Área de cliente: o utilizador só pode ver e alterar a sua própria conta."""
    def __init__(self, utilizador_gateway: IUtilizadorGateway, encomenda_gateway: IEncomendaGateway,
                 sessao: SessaoAutenticacao):
        self.utilizador_gateway = utilizador_gateway
        self.encomenda_gateway = encomenda_gateway
        self.sessao = sessao

    def _verificar_dono(self, utilizador_id: str) -> str:
        token = self.sessao.exigir_token()
        if str(self.sessao.utilizador.id) != str(utilizador_id):
            raise PermissaoNegadaError("Não tem permissão para ver esta página.")
        return token

    def obter(self, utilizador_id: str) -> Utilizador:
        token = self._verificar_dono(utilizador_id)
        return self.utilizador_gateway.obter(token, utilizador_id)

    def atualizar(self, utilizador_id: str, dados: Dict[str, Any]) -> Utilizador:
        """Só os campos de perfil seguem para o backend; password vazia mantém a atual."""
        token = self._verificar_dono(utilizador_id)
        payload = {campo: dados[campo] for campo in CAMPOS_CONTA if campo in dados}
        if not payload.get('password'):
            payload.pop('password', None)
        return self.utilizador_gateway.atualizar(token, utilizador_id, payload)

    def listar_encomendas(self) -> List[Encomenda]:
        """Encomendas do utilizador autenticado, mais recentes primeiro."""
        encomendas = self.encomenda_gateway.listar_proprias(self.sessao.exigir_token())
        return ConsultaLista(ordenar_por='criado_em').aplicar(encomendas)


# ====================================================================
# 4. CASOS DE USO ADMINISTRATIVOS
# ====================================================================

class GerirProdutosAdminUseCase:
    """Produtos, variantes e imagens no back-office."""

    CAMPOS_PESQUISA = ('id', 'nome', 'categoria_nome', 'marca_nome')
    CAMPOS_ORDENACAO = ('nome', 'preco_exibicao', 'stock_total', 'criado_em')

    def __init__(self, catalogo_gateway: ICatalogoGateway, produto_gateway: IProdutoAdminGateway,
                 sessao: SessaoAutenticacao):
        self.catalogo_gateway = catalogo_gateway
        self.produto_gateway = produto_gateway
        self.sessao = sessao

    def listar(self, consulta: Optional[ConsultaLista] = None) -> PaginaLista:
        self.sessao.exigir_admin()
        produtos = self.catalogo_gateway.listar_produtos()
        consulta = consulta or ConsultaLista(campos_pesquisa=self.CAMPOS_PESQUISA, ordenar_por='nome')
        return consulta.paginar(produtos)

    def obter(self, produto_id: str) -> Produto:
        self.sessao.exigir_admin()
        return self.catalogo_gateway.obter_produto(produto_id)

    @staticmethod
    def validar(dados: Dict[str, Any]) -> Dict[str, Any]:
        """Nome, preço e categoria são obrigatórios; pelo menos um stock tem de ser positivo."""
        preco = dados.get('preco')
        if not dados.get('nome') or preco in (None, '') or not dados.get('categoria_id'):
            raise DadosInvalidosError("Por favor, preencha os campos obrigatórios: Nome, Preço e Categoria.")

        validados = dict(dados)
        validados['preco'] = _decimal(preco, 'preco')
        if validados['preco'] <= 0:
            raise DadosInvalidosError("Por favor, preencha os campos obrigatórios: Nome, Preço e Categoria.")
        validados['preco_original'] = _decimal(dados.get('preco_original'), 'preco_original', obrigatorio=False)
        validados['stock_online'] = _inteiro(dados.get('stock_online'), 'stock_online')
        validados['stock_ginasio'] = _inteiro(dados.get('stock_ginasio'), 'stock_ginasio')

        if validados['stock_online'] <= 0 and validados['stock_ginasio'] <= 0:
            raise DadosInvalidosError(
                "Pelo menos um dos campos de stock (Stock Total ou Stock Ginásio) deve ser maior que zero."
            )
        return validados

    def criar(self, dados: Dict[str, Any], imagem: Optional[FicheiroImagem] = None) -> str:
        """Cria produto + primeira variante; devolve o id do novo produto."""
        token = self.sessao.exigir_admin()
        validados = self.validar(dados)

        if imagem is not None:
            validados['imagem_url'] = self.carregar_imagem(imagem)
        elif not validados.get('imagem_url'):
            raise DadosInvalidosError("Por favor, selecione um ficheiro de imagem ou insira uma URL.")

        resposta = self.produto_gateway.criar(token, validados)
        produto_id = str((resposta.get('product') or resposta).get('id', ''))
        logger.info("Produto %s criado.", produto_id)
        return produto_id

    def atualizar(self, produto_id: str, dados: Dict[str, Any], imagem: Optional[FicheiroImagem] = None) -> Produto:
        token = self.sessao.exigir_admin()
        validados = self.validar(dados)
        if imagem is not None:
            validados['imagem_url'] = self.carregar_imagem(imagem)
        self.produto_gateway.atualizar(token, produto_id, validados)
        return self.catalogo_gateway.obter_produto(produto_id)

    def remover(self, produto_id: str):
        token = self.sessao.exigir_admin()
        self.produto_gateway.remover(token, produto_id)

    # --- Variantes ---

    @staticmethod
    def validar_variante(dados: Dict[str, Any]) -> Dict[str, Any]:
        validados = dict(dados)
        validados['preco'] = _decimal(dados.get('preco'), 'preco')
        validados['stock_online'] = _inteiro(dados.get('stock_online'), 'stock_online')
        validados['stock_ginasio'] = _inteiro(dados.get('stock_ginasio'), 'stock_ginasio')
        if validados['stock_online'] < 0 or validados['stock_ginasio'] < 0:
            raise DadosInvalidosError("O stock não pode ser negativo.")
        return validados

    def criar_variante(self, produto_id: str, dados: Dict[str, Any]) -> Variante:
        token = self.sessao.exigir_admin()
        return self.produto_gateway.criar_variante(token, produto_id, self.validar_variante(dados))

    def atualizar_variante(self, produto_id: str, variante_id: str, dados: Dict[str, Any]) -> Variante:
        token = self.sessao.exigir_admin()
        return self.produto_gateway.atualizar_variante(token, produto_id, variante_id, self.validar_variante(dados))

    # --- Imagens ---

    def carregar_imagem(self, imagem: FicheiroImagem) -> str:
        token = self.sessao.exigir_admin()
        if not imagem.conteudo:
            raise DadosInvalidosError("O ficheiro de imagem está vazio.")
        return self.produto_gateway.carregar_imagem(token, imagem.nome, imagem.conteudo, imagem.content_type)

    def adicionar_imagens(self, produto_id: str, imagens: List[FicheiroImagem]) -> List[Dict[str, Any]]:
        """
        Carrega e associa imagens secundárias uma a uma; devolve o resultado
        de cada ficheiro ({'nome', 'sucesso', 'url'|'mensagem'}).
        """
        token = self.sessao.exigir_admin()
        resultados = []
        for imagem in imagens:
            try:
                url = self.carregar_imagem(imagem)
                self.produto_gateway.associar_imagem(token, produto_id, url, principal=False)
                resultados.append({'nome': imagem.nome, 'sucesso': True, 'url': url})
            except (DadosInvalidosError, BackendRespostaError, BackendIndisponivelError) as e:
                resultados.append({'nome': imagem.nome, 'sucesso': False, 'mensagem': e.message})
        return resultados

    def listar_imagens(self, produto_id: str) -> List[Dict[str, Any]]:
        self.sessao.exigir_admin()
        return self.produto_gateway.listar_imagens(produto_id)


class GerirCupoesAdminUseCase:
    """Gestão de cupões (criação, edição, remoção e consulta de utilização)."""

    CAMPOS_PESQUISA = ('codigo', 'nome_atleta')

    def __init__(self, cupao_gateway: ICupaoGateway, sessao: SessaoAutenticacao):
        self.cupao_gateway = cupao_gateway
        self.sessao = sessao

    def listar(self, consulta: Optional[ConsultaLista] = None) -> PaginaLista:
        token = self.sessao.exigir_admin()
        cupoes = self.cupao_gateway.listar(token)
        consulta = consulta or ConsultaLista(campos_pesquisa=self.CAMPOS_PESQUISA, ordenar_por='criado_em')
        return consulta.paginar(cupoes)

    def obter(self, cupao_id: str) -> Cupao:
        self.sessao.exigir_admin()
        return self.cupao_gateway.obter(cupao_id)

    @staticmethod
    def validar(cupao: Cupao) -> Cupao:
        if not cupao.codigo or not cupao.codigo.strip():
            raise DadosInvalidosError("O código do cupão é obrigatório.")
        if not (Decimal('0') < cupao.percentagem_desconto <= Decimal('100')):
            raise DadosInvalidosError("A percentagem de desconto deve estar entre 0 e 100.")
        if cupao.especifico and not cupao.produto_id:
            raise DadosInvalidosError("Selecione o produto a que o cupão se aplica.")
        if not cupao.especifico:
            cupao.produto_id = None
        return cupao

    def criar(self, cupao: Cupao) -> Cupao:
        token = self.sessao.exigir_admin()
        return self.cupao_gateway.criar(self.validar(cupao), token)

    def atualizar(self, cupao: Cupao) -> Cupao:
        token = self.sessao.exigir_admin()
        if not cupao.id:
            raise DadosInvalidosError("O cupão a atualizar não tem ID.")
        return self.cupao_gateway.atualizar(self.validar(cupao), token)

    def remover(self, cupao_id: str):
        token = self.sessao.exigir_admin()
        self.cupao_gateway.remover(cupao_id, token)

    def utilizacao(self, codigo: str) -> int:
        """Número de encomendas que usaram o código."""
        self.sessao.exigir_admin()
        return self.cupao_gateway.utilizacao(codigo)


class GerirUtilizadoresAdminUseCase:
    """Gestão de utilizadores no back-office."""

    CAMPOS_PESQUISA = ('id', 'username', 'email')
    CAMPOS_ORDENACAO = ('criado_em', 'username', 'email')

    def __init__(self, utilizador_gateway: IUtilizadorGateway, sessao: SessaoAutenticacao):
        self.utilizador_gateway = utilizador_gateway
        self.sessao = sessao

    def listar(self, consulta: Optional[ConsultaLista] = None) -> PaginaLista:
        token = self.sessao.exigir_admin()
        utilizadores = self.utilizador_gateway.listar(token)
        consulta = consulta or ConsultaLista(campos_pesquisa=self.CAMPOS_PESQUISA, ordenar_por='criado_em')
        return consulta.paginar(utilizadores)

    def obter(self, utilizador_id: str) -> Utilizador:
        return self.utilizador_gateway.obter(self.sessao.exigir_admin(), utilizador_id)

    @staticmethod
    def _validar(dados: Dict[str, Any], novo: bool):
        em_falta = [c for c in CAMPOS_OBRIGATORIOS_UTILIZADOR if not dados.get(c)]
        if em_falta or (novo and not dados.get('password')):
            raise DadosInvalidosError("Por favor, preencha todos os campos obrigatórios.")

    def criar(self, dados: Dict[str, Any]) -> Dict[str, Any]:
        token = self.sessao.exigir_admin()
        self._validar(dados, novo=True)
        return self.utilizador_gateway.registar(dados, token)

    def atualizar(self, utilizador_id: str, dados: Dict[str, Any]) -> Utilizador:
        token = self.sessao.exigir_admin()
        self._validar(dados, novo=False)
        dados = dict(dados)
        # password vazia mantém a atual
        if not dados.get('password'):
            dados.pop('password', None)
        return self.utilizador_gateway.atualizar(token, utilizador_id, dados)

    def remover(self, utilizador_id: str):
        token = self.sessao.exigir_admin()
        self.utilizador_gateway.remover(token, utilizador_id)

    def promover(self, utilizador_id: str):
        token = self.sessao.exigir_admin()
        self.utilizador_gateway.promover(token, utilizador_id)
        logger.info("Utilizador %s promovido a administrador.", utilizador_id)

    def listar_encomendas(self, utilizador_id: str) -> List[Encomenda]:
        return self.utilizador_gateway.listar_encomendas(self.sessao.exigir_admin(), utilizador_id)


class GerirEncomendasAdminUseCase:
    """Consulta de encomendas (o estado é gerido pelo backend)."""

    CAMPOS_PESQUISA = ('id', 'nome_utilizador', 'metodo_pagamento', 'morada_linha1', 'easypay_id')
    CAMPOS_ORDENACAO = ('criado_em', 'total')

    def __init__(self, encomenda_gateway: IEncomendaGateway, sessao: SessaoAutenticacao):
        self.encomenda_gateway = encomenda_gateway
        self.sessao = sessao

    def listar(self, consulta: Optional[ConsultaLista] = None) -> PaginaLista:
        encomendas = self.encomenda_gateway.listar_todas(self.sessao.exigir_admin())
        consulta = consulta or ConsultaLista(campos_pesquisa=self.CAMPOS_PESQUISA, ordenar_por='criado_em')
        return consulta.paginar(encomendas)

    def obter(self, encomenda_id: str) -> Encomenda:
        return self.encomenda_gateway.obter(self.sessao.exigir_admin(), encomenda_id)


class GerirCampanhasAdminUseCase:
    """Campanhas promocionais e os produtos associados."""
    def __init__(self, campanha_gateway: ICampanhaGateway, produto_gateway: IProdutoAdminGateway,
                 catalogo_gateway: ICatalogoGateway, sessao: SessaoAutenticacao):
        self.campanha_gateway = campanha_gateway
        self.produto_gateway = produto_gateway
        self.catalogo_gateway = catalogo_gateway
        self.sessao = sessao

    def listar(self) -> List[Campanha]:
        self.sessao.exigir_admin()
        return self.campanha_gateway.listar()

    def obter(self, campanha_id: str) -> Campanha:
        campanha = next((c for c in self.listar() if str(c.id) == str(campanha_id)), None)
        if not campanha:
            raise ItemNaoEncontradoError(f"Campanha ID {campanha_id} não encontrada.")
        return campanha

    def criar(self, nome: str, ativa: bool = True, imagem: Optional[FicheiroImagem] = None) -> List[Campanha]:
        """Upload opcional da imagem seguido da criação da campanha."""
        token = self.sessao.exigir_admin()
        if not nome or not nome.strip():
            raise DadosInvalidosError("O nome da campanha é obrigatório.")
        imagem_url = ''
        if imagem is not None:
            imagem_url = self.produto_gateway.carregar_imagem(token, imagem.nome, imagem.conteudo, imagem.content_type)
        self.campanha_gateway.criar(nome.strip(), ativa, imagem_url)
        return self.listar()

    def remover(self, campanha_id: str):
        self.sessao.exigir_admin()
        self.campanha_gateway.remover(campanha_id)

    def produtos_disponiveis(self, campanha_id: str) -> List[Produto]:
        """Produtos do catálogo que ainda não pertencem à campanha."""
        campanha = self.obter(campanha_id)
        associados = {str(p.id) for p in campanha.produtos}
        return [p for p in self.catalogo_gateway.listar_produtos() if str(p.id) not in associados]

    def adicionar_produto(self, campanha_id: str, produto_id: str) -> Campanha:
        self.sessao.exigir_admin()
        self.campanha_gateway.adicionar_produto(campanha_id, produto_id)
        return self.obter(campanha_id)

    def remover_produto(self, campanha_id: str, produto_id: str) -> Campanha:
        self.sessao.exigir_admin()
        self.campanha_gateway.remover_produto(campanha_id, produto_id)
        return self.obter(campanha_id)


class ObterDashboardUseCase:
    """Indicadores do painel, tal como calculados pelo servidor."""
    def __init__(self, dashboard_gateway: IDashboardGateway, sessao: SessaoAutenticacao):
        self.dashboard_gateway = dashboard_gateway
        self.sessao = sessao

    def executar(self) -> ResumoDashboard:
        return self.dashboard_gateway.obter_resumo(self.sessao.exigir_admin())
