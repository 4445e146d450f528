"""Main entry point for the ShopEase cache CLI.

Usage:
    python -m shopease.main --help
    shopease --help  # If installed via pip/uv
"""

from shopease.cli import main

if __name__ == "__main__":
    main()
