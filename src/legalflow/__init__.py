"""
LegalFlow Style DNA: firm writing-style learning and AI-assisted drafting.

This package learns a law firm's drafting voice from its historical documents,
synthesizes it into a master style profile, and uses that profile to drive
contract generation, refinement and validation.
"""

__version__ = "0.1.0"
__author__ = "LegalFlow Team"

from legalflow.config import get_settings

__all__ = ["get_settings", "__version__"]
