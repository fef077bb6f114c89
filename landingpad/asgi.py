"""
ASGI config for the landingpad project.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'landingpad.settings')

application = get_asgi_application()
