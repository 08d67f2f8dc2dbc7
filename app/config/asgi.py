"""
ASGI config for the orderflow backend.

The API is plain HTTP; clients poll for notification state, so there is
no WebSocket routing here.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
