"""
WSGI config para o projeto RD Power Nutrition.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'powernutrition.settings')

application = get_wsgi_application()
