from django.apps import AppConfig


class PresentationConfig(AppConfig):
    name = 'powernutrition.presentation'
    label = 'presentation'
