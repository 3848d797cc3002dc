# powernutrition/core/apps.py

from django.apps import AppConfig

class CoreConfig(AppConfig):
    # O nome completo do path da aplicação
    name = 'powernutrition.core'
    label = 'core'
    verbose_name = 'Camada de Entidades e Lógica (Core)'
