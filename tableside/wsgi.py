"""
WSGI config for the tableside project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tableside.settings')

application = get_wsgi_application()
