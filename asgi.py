"""
asgi.py -- ASGI application for Natours.

Settings are loaded once here, at process start, and handed to the factory.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
