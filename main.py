"""
Root entry point for the timekeeping service.

    uvicorn main:app --host 0.0.0.0 --port 8001
"""
from app.main import app  # noqa: F401
