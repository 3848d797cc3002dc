from typing import Optional


class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    message = "Ocorreu um erro inesperado."

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class DadosInvalidosError(BaseErroCore):
    """Falha de validação no cliente (campo obrigatório vazio, número mal formado...)."""
    message = "Os dados fornecidos são inválidos."


# ===============================================
# ERROS DE COMUNICAÇÃO COM O BACKEND
# ===============================================

class BackendIndisponivelError(BaseErroCore):
    """Falha de rede/transporte ao contactar o backend."""
    message = "Ocorreu um erro ao conectar ao servidor. Tente novamente."


class BackendRespostaError(BaseErroCore):
    """O backend respondeu com um estado diferente de 2xx."""
    message = "Ocorreu um erro inesperado."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ItemNaoEncontradoError(BackendRespostaError):
    """O recurso pedido não existe no backend (404)."""
    message = "O item solicitado não foi encontrado."


# ===============================================
# ERROS DE AUTENTICAÇÃO E PERMISSÃO
# ===============================================

class AutenticacaoNecessariaError(BaseErroCore):
    """A operação exige um token de autenticação válido."""
    message = "Token de autenticação não encontrado. Por favor, faça login."


class PermissaoNegadaError(BaseErroCore):
    message = "Não tem permissão para aceder a esta página."


# ===============================================
# ERROS DE CUPÕES E CHECKOUT
# ===============================================

class CupaoDuplicadoError(DadosInvalidosError):
    """O código já está na lista de cupões (comparação exata)."""
    message = "Este cupão já foi adicionado."


class CheckoutError(BaseErroCore):
    """Falha num dos passos do checkout; os passos seguintes não são executados."""
    message = "Ocorreu um erro inesperado."

    def __init__(self, message: Optional[str] = None, passo: Optional[str] = None):
        self.passo = passo
        super().__init__(message)


class TransicaoInvalidaError(BaseErroCore):
    """Tentativa de transição não permitida na máquina de estados do checkout."""
    message = "Operação inválida no estado atual do checkout."
