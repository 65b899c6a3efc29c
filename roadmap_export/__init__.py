"""
Roadmap Export Engine

Converts rendered roadmap views into A4 PDF documents or PNG images.
"""

__version__ = "1.0.0"
