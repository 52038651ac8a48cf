from __future__ import annotations  # Session report package exports

from .pdf import generate_profile_pdf

__all__ = ["generate_profile_pdf"]
