"""
Main entry point for running the package as a module.

Usage:
    python -m thumbnail_service worker
    python -m thumbnail_service serve --port 8080
    python -m thumbnail_service process my-bucket uploads/photo1.jpg
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
