"""
Module entry point for running the application.
"""
from .core.bootstrap import main

if __name__ == "__main__":
    main()
