"""
ASGI entrypoint. The bus stream is an async streaming response, so serve with
an ASGI server, e.g. ``uvicorn smartmetro.asgi:application``.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "smartmetro.settings")

application = get_asgi_application()
