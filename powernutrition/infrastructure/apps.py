from django.apps import AppConfig


class InfrastructureConfig(AppConfig):
    name = 'powernutrition.infrastructure'
    label = 'infrastructure' # Define um label para evitar conflitos de nomes
    verbose_name = 'Gateways HTTP para o backend REST'
