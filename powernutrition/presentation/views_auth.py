from django.utils.decorators import method_decorator
from django.views.decorators.csrf import ensure_csrf_cookie
from rest_framework import status
from rest_framework.response import Response

from powernutrition.core import dependency_injection as di
from .auth_manager import CupoesManager
from .serializers import LoginSerializer, RegistoSerializer
from .views import BaseAPIView


def _estado_sessao(sessao):
    utilizador = sessao.utilizador
    return {
        'autenticado': sessao.autenticado,
        'a_carregar': sessao.a_carregar,
        'utilizador': {
            'id': utilizador.id,
            'email': utilizador.email,
            'is_admin': utilizador.is_admin,
        } if utilizador else None,
    }


class LoginAPIView(BaseAPIView):
    """Troca email/password por um token guardado na sessão."""

    def post(self, request):
        dados = self.validar(LoginSerializer).validated_data
        di.get_autenticacao_use_case(self.sessao).login(dados['email'], dados['password'])
        return Response({'success': True, 'message': 'Login efetuado com sucesso!', **_estado_sessao(self.sessao)})


class RegistoAPIView(BaseAPIView):

    def post(self, request):
        dados = dict(self.validar(RegistoSerializer).validated_data)
        confirmacao = dados.pop('confirm_password')
        di.get_autenticacao_use_case(self.sessao).registar(dados, confirmacao)
        return Response(
            {'success': True, 'message': 'Registo efetuado com sucesso! Faça login para continuar.'},
            status=status.HTTP_201_CREATED,
        )


class LogoutAPIView(BaseAPIView):

    def post(self, request):
        di.get_autenticacao_use_case(self.sessao).logout()
        CupoesManager(request).limpar()
        return Response({'success': True, 'message': 'Sessão terminada.'})


@method_decorator(ensure_csrf_cookie, name='dispatch')
class SessaoAPIView(BaseAPIView):
    """
    Estado de autenticação atual (o token é revalidado em cada pedido).
    Também entrega o cookie csrftoken que o frontend devolve em X-CSRFToken.
    """

    def get(self, request):
        return Response(_estado_sessao(self.sessao))
