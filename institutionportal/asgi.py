"""
ASGI config for the institutionportal project.

It exposes the ASGI callable as a module-level variable named ``application``.
The notification and fulfillment event streams are long-lived responses, so
deployments that serve them should prefer this entry point.
"""

import os

from dotenv import load_dotenv

from django.core.asgi import get_asgi_application

load_dotenv(override=False)

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'institutionportal.settings')

application = get_asgi_application()
