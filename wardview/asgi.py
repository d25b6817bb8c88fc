"""
ASGI config for the wardview project.

The console is plain HTTP; this entry point exists for servers such as
uvicorn or daphne that speak ASGI only.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "wardview.settings")

application = get_asgi_application()
