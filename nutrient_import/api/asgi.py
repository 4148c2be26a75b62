"""ASGI entrypoint for the import API (``uvicorn nutrient_import.api.asgi:app``)."""

import os
from pathlib import Path

from dotenv import load_dotenv

from nutrient_import.api.app import create_app
from nutrient_import.config.loader import DEFAULT_CONFIG_PATH, load_config

load_dotenv(override=True)

app = create_app(load_config(Path(os.getenv("NUTRIENT_IMPORT_CONFIG", str(DEFAULT_CONFIG_PATH)))))
