"""Tutorial backend: FastAPI bootstrap server over MongoDB."""

__version__ = "1.0.0"
