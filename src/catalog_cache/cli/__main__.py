"""
Entry point for ``python -m catalog_cache.cli``.
"""

from .main import main

if __name__ == "__main__":
    main()
