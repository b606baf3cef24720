"""
asgi.py -- Application assembly for the KIN API.

Joins the JSON API (api/main.py) with static serving of uploaded images, so
api/ stays free of filesystem mounts.

Run with:  uvicorn asgi:app --reload
"""

from pathlib import Path

from fastapi.staticfiles import StaticFiles

from api.main import app
from core.config import get_settings

# UPLOAD_DIR defaults to public/images; its parent is served at /public so a
# stored image is reachable at /public/images/<folder>/<filename>.
_public_dir = Path(get_settings().upload_dir).parent
app.mount("/public", StaticFiles(directory=_public_dir, check_dir=False), name="public")
