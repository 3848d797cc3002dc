import re

from rest_framework import serializers

from powernutrition.core.checkout import METODOS_PAGAMENTO, OPCOES_MORADA, DadosCliente
from powernutrition.core.entities import Cupao, FicheiroImagem, Morada


def ficheiro_para_imagem(ficheiro) -> FicheiroImagem:
    """UploadedFile do Django → FicheiroImagem do core."""
    return FicheiroImagem(
        nome=ficheiro.name,
        conteudo=ficheiro.read(),
        content_type=getattr(ficheiro, 'content_type', None) or 'application/octet-stream',
    )


# ====================================================================
# SERIALIZERS DO CATÁLOGO (saída)
# ====================================================================

class CategoriaSerializer(serializers.Serializer):
    id = serializers.CharField()
    nome = serializers.CharField()
    imagem_url = serializers.CharField(allow_null=True, required=False)


class OpcaoFiltroSerializer(serializers.Serializer):
    id = serializers.CharField()
    nome = serializers.CharField()


class VarianteSerializer(serializers.Serializer):
    id = serializers.CharField()
    preco = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    stock_online = serializers.IntegerField()
    stock_ginasio = serializers.IntegerField()
    stock_total = serializers.IntegerField()
    sku = serializers.CharField()
    peso = serializers.CharField()
    sabor_id = serializers.CharField(allow_null=True)
    sabor_nome = serializers.CharField(allow_null=True)
    imagem_url = serializers.CharField(allow_null=True)


class ProdutoSerializer(serializers.Serializer):
    """Produto com os campos derivados (preço de exibição, stock total...)."""
    id = serializers.CharField()
    nome = serializers.CharField()
    descricao = serializers.CharField()
    imagem_url = serializers.CharField(allow_null=True)
    categoria_id = serializers.CharField(allow_null=True)
    categoria_nome = serializers.CharField(allow_null=True)
    marca_id = serializers.CharField(allow_null=True)
    marca_nome = serializers.CharField(allow_null=True)
    ativo = serializers.BooleanField()
    preco_original = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    preco_exibicao = serializers.DecimalField(max_digits=10, decimal_places=2)
    peso_exibicao = serializers.CharField()
    variante_exibicao_id = serializers.CharField(allow_null=True)
    stock_total = serializers.IntegerField()
    esgotado = serializers.BooleanField()
    variantes = VarianteSerializer(many=True)


# ====================================================================
# SERIALIZERS DO CARRINHO E CUPÕES
# ====================================================================

class ItemCarrinhoSerializer(serializers.Serializer):
    id = serializers.CharField()
    variante_id = serializers.CharField()
    produto_id = serializers.CharField(allow_null=True)
    nome = serializers.CharField()
    preco = serializers.DecimalField(max_digits=10, decimal_places=2)
    preco_original = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    quantidade = serializers.IntegerField()
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    imagem_url = serializers.CharField(allow_null=True)
    peso = serializers.CharField(allow_null=True)
    sabor = serializers.CharField(allow_null=True)


class CarrinhoSerializer(serializers.Serializer):
    itens = ItemCarrinhoSerializer(many=True)
    total_itens = serializers.IntegerField()
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)


class AdicionarCarrinhoSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    quantity = serializers.IntegerField(default=1, min_value=1)


class QuantidadeSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class CodigoCupaoSerializer(serializers.Serializer):
    # vazio é rejeitado pelo GestorCupoes com a mensagem própria
    code = serializers.CharField(allow_blank=True, trim_whitespace=False)


class CupaoSerializer(serializers.Serializer):
    """Entrada e saída da gestão de cupões."""
    id = serializers.CharField(read_only=True)
    codigo = serializers.CharField()
    percentagem_desconto = serializers.DecimalField(max_digits=5, decimal_places=2)
    nome_atleta = serializers.CharField(allow_null=True, allow_blank=True, required=False)
    especifico = serializers.BooleanField(default=False)
    produto_id = serializers.CharField(allow_null=True, required=False)
    ativo = serializers.BooleanField(read_only=True)
    criado_em = serializers.DateTimeField(read_only=True, allow_null=True)

    def to_entity(self, cupao_id=None) -> Cupao:
        dados = self.validated_data
        return Cupao(
            id=cupao_id,
            codigo=dados['codigo'],
            percentagem_desconto=dados['percentagem_desconto'],
            nome_atleta=dados.get('nome_atleta') or None,
            especifico=dados.get('especifico', False),
            produto_id=dados.get('produto_id'),
        )


# ====================================================================
# SERIALIZERS PARA CHECKOUT
# ====================================================================

class CheckoutSerializer(serializers.Serializer):
    """
    Validação dos dados do formulário de checkout.
    A morada só é obrigatória quando a opção é 'custom'.
    """
    email = serializers.EmailField()
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=20)
    opcao_morada = serializers.ChoiceField(choices=OPCOES_MORADA, default='custom')
    address_line1 = serializers.CharField(required=False, allow_blank=True)
    address_line2 = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(required=False, allow_blank=True)
    state_province = serializers.CharField(required=False, allow_blank=True, default='Madeira')
    postal_code = serializers.CharField(required=False, allow_blank=True)
    country = serializers.CharField(required=False, allow_blank=True, default='Portugal')
    metodo_pagamento = serializers.ChoiceField(choices=METODOS_PAGAMENTO)

    def validate_phone(self, value):
        # O campo de telefone aceita apenas dígitos
        return re.sub(r'\D', '', value)

    def validate(self, attrs):
        if attrs.get('opcao_morada', 'custom') == 'custom':
            em_falta = [c for c in ('address_line1', 'city', 'postal_code') if not attrs.get(c)]
            if em_falta:
                raise serializers.ValidationError({c: 'Campo obrigatório.' for c in em_falta})
        return attrs

    def to_cliente(self) -> DadosCliente:
        dados = self.validated_data
        return DadosCliente(
            email=dados['email'],
            primeiro_nome=dados['first_name'],
            ultimo_nome=dados['last_name'],
            telefone=dados['phone'],
        )

    def to_morada(self):
        dados = self.validated_data
        if dados.get('opcao_morada', 'custom') != 'custom':
            return None
        return Morada(
            linha1=dados['address_line1'],
            linha2=dados.get('address_line2', ''),
            cidade=dados['city'],
            regiao=dados.get('state_province') or 'Madeira',
            codigo_postal=dados['postal_code'],
            pais=dados.get('country') or 'Portugal',
        )


class MoradaSerializer(serializers.Serializer):
    id = serializers.CharField(allow_null=True)
    linha1 = serializers.CharField()
    linha2 = serializers.CharField()
    cidade = serializers.CharField()
    regiao = serializers.CharField()
    codigo_postal = serializers.CharField()
    pais = serializers.CharField()
    tipo = serializers.CharField()


class DetalhesPagamentoSerializer(serializers.Serializer):
    metodo = serializers.CharField()
    pagamento_id = serializers.CharField(allow_null=True)
    entidade = serializers.CharField(allow_null=True)
    referencia = serializers.CharField(allow_null=True)
    url = serializers.CharField(allow_null=True)


class ConfirmacaoEncomendaSerializer(serializers.Serializer):
    encomenda_id = serializers.CharField()
    metodo_pagamento = serializers.CharField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    morada_envio = MoradaSerializer()
    detalhes_pagamento = DetalhesPagamentoSerializer(allow_null=True)


# ====================================================================
# SERIALIZERS DE CONTA E ENCOMENDAS
# ====================================================================

class LoginSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)


class RegistoSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)
    confirm_password = serializers.CharField(trim_whitespace=False)
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone_number = serializers.CharField(max_length=20)
    address_line1 = serializers.CharField()
    address_line2 = serializers.CharField(required=False, allow_blank=True, default='')
    city = serializers.CharField()
    state_province = serializers.CharField()
    postal_code = serializers.CharField()
    country = serializers.CharField()

    def validate_phone_number(self, value):
        return re.sub(r'\D', '', value)


class UtilizadorSerializer(serializers.Serializer):
    id = serializers.CharField()
    username = serializers.CharField()
    email = serializers.CharField()
    telefone = serializers.CharField(allow_null=True)
    is_admin = serializers.BooleanField()
    ativo = serializers.BooleanField()
    criado_em = serializers.DateTimeField(allow_null=True)


class ContaFormSerializer(serializers.Serializer):
    """Edição da própria conta: só dados de perfil (sem email nem permissões)."""
    username = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    first_name = serializers.CharField(required=False, allow_blank=True)
    last_name = serializers.CharField(required=False, allow_blank=True)
    phone_number = serializers.CharField(required=False, allow_blank=True)
    address_line1 = serializers.CharField(required=False, allow_blank=True)
    address_line2 = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(required=False, allow_blank=True)
    state_province = serializers.CharField(required=False, allow_blank=True)
    postal_code = serializers.CharField(required=False, allow_blank=True)
    country = serializers.CharField(required=False, allow_blank=True)

    def validate_phone_number(self, value):
        return re.sub(r'\D', '', value)


class UtilizadorFormSerializer(serializers.Serializer):
    """Criação/edição de utilizadores no back-office."""
    username = serializers.CharField(required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    first_name = serializers.CharField(required=False, allow_blank=True)
    last_name = serializers.CharField(required=False, allow_blank=True)
    phone_number = serializers.CharField(required=False, allow_blank=True)
    is_admin = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)
    address_line1 = serializers.CharField(required=False, allow_blank=True)
    address_line2 = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(required=False, allow_blank=True)
    state_province = serializers.CharField(required=False, allow_blank=True)
    postal_code = serializers.CharField(required=False, allow_blank=True)
    country = serializers.CharField(required=False, allow_blank=True)

    def validate_phone_number(self, value):
        return re.sub(r'\D', '', value)


class ItemEncomendaSerializer(serializers.Serializer):
    produto_id = serializers.CharField()
    nome_produto = serializers.CharField()
    quantidade = serializers.IntegerField()
    preco = serializers.DecimalField(max_digits=10, decimal_places=2)
    imagem_url = serializers.CharField(allow_null=True)


class EncomendaSerializer(serializers.Serializer):
    id = serializers.CharField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    estado = serializers.CharField()
    metodo_pagamento = serializers.CharField()
    criado_em = serializers.DateTimeField(allow_null=True)
    utilizador_id = serializers.CharField(allow_null=True)
    nome_utilizador = serializers.CharField(allow_null=True)
    email_utilizador = serializers.CharField(allow_null=True)
    morada_linha1 = serializers.CharField(allow_null=True)
    easypay_id = serializers.CharField(allow_null=True)
    codigo_cupao = serializers.CharField(allow_null=True)
    itens = ItemEncomendaSerializer(many=True)


# ====================================================================
# SERIALIZERS DO BACK-OFFICE
# ====================================================================

class ProdutoFormSerializer(serializers.Serializer):
    """Formulário de produto; as regras de obrigatoriedade vivem no core."""
    nome = serializers.CharField(required=False, allow_blank=True)
    descricao = serializers.CharField(required=False, allow_blank=True, default='')
    marca_id = serializers.CharField(required=False, allow_null=True)
    categoria_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    sabor_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    imagem_url = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    imagem = serializers.FileField(required=False, write_only=True)
    preco = serializers.CharField(required=False, allow_blank=True)
    preco_original = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    stock_online = serializers.IntegerField(required=False, default=0)
    stock_ginasio = serializers.IntegerField(required=False, default=0)
    peso_valor = serializers.CharField(required=False, allow_blank=True, default='')
    peso_unidade = serializers.CharField(required=False, allow_blank=True, default='')
    sku = serializers.CharField(required=False, allow_blank=True, default='')
    ativo = serializers.BooleanField(required=False, default=True)


class VarianteFormSerializer(serializers.Serializer):
    preco = serializers.CharField()
    stock_online = serializers.IntegerField(required=False, default=0)
    stock_ginasio = serializers.IntegerField(required=False, default=0)
    sabor_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    peso_valor = serializers.CharField(required=False, allow_blank=True, default='')
    peso_unidade = serializers.CharField(required=False, allow_blank=True, default='')
    sku = serializers.CharField(required=False, allow_blank=True, default='')


class ProdutoCampanhaSerializer(serializers.Serializer):
    id = serializers.CharField()
    nome = serializers.CharField()
    imagem_url = serializers.CharField(allow_null=True)


class CampanhaSerializer(serializers.Serializer):
    id = serializers.CharField()
    nome = serializers.CharField()
    ativa = serializers.BooleanField()
    imagem_url = serializers.CharField(allow_null=True)
    produtos = ProdutoCampanhaSerializer(many=True)


class CampanhaFormSerializer(serializers.Serializer):
    nome = serializers.CharField(allow_blank=True)
    ativa = serializers.BooleanField(default=True)
    imagem = serializers.FileField(required=False)


class ResumoDashboardSerializer(serializers.Serializer):
    total_encomendas = serializers.IntegerField()
    receita_total = serializers.DecimalField(max_digits=14, decimal_places=2)
    novos_utilizadores = serializers.IntegerField()
    produtos_stock_baixo_total = serializers.IntegerField()
    valor_medio_encomenda = serializers.DecimalField(max_digits=12, decimal_places=2)
    vendas = serializers.ListField(child=serializers.DictField())
    produtos_stock_baixo = serializers.ListField(child=serializers.DictField())
    melhor_cliente = serializers.DictField(allow_null=True)
    produtos_mais_vendidos = serializers.ListField(child=serializers.DictField())
    estados_encomendas = serializers.ListField(child=serializers.DictField())
