"""
Entry point for python -m dockwire
"""

from .cli import main

if __name__ == "__main__":
    main()
