"""
Serverless function entrypoint for FastAPI.

The platform looks for an `app` variable that is an ASGI application.
"""
from __future__ import annotations

import os
import sys

# Add src/ to the Python path; the working directory is the project root
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(project_root, "src")

if src_path not in sys.path:
    sys.path.insert(0, src_path)

from api.app import create_app  # noqa: E402

app = create_app()

__all__ = ["app"]
