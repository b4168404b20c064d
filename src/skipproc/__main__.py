"""
Allow running skipproc as a module: python -m skipproc
"""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
