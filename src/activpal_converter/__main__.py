"""
Entry point for running activpal_converter as a module.

Usage:
    python -m activpal_converter convert /path/to/PAL01.datx --output ./output
    python -m activpal_converter convert-all /path/to/recordings --output ./output
    python -m activpal_converter validate /path/to/PAL01.datx
    python -m activpal_converter info
"""

from .cli import main

if __name__ == "__main__":
    main()
