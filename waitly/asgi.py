"""
ASGI config for Waitly.

It exposes the ASGI callable as a module-level variable named ``application``.
Only HTTP is routed; queue updates are published to the channel layer for
whatever socket front-end subscribes to the ``counter_<id>`` groups.
"""

import os

from channels.routing import ProtocolTypeRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "waitly.settings.production")

application = ProtocolTypeRouter(
    {
        "http": get_asgi_application(),
    }
)
