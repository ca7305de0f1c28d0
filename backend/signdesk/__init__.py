"""SignDesk: text-stamp signing for PDF documents."""

__version__ = "1.0.0"
