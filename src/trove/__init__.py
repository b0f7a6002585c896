"""Trove - collection cataloging backend.

Template-driven item schemas with tier-limited usage quotas.
"""

__version__ = "0.1.0"

from trove.infrastructure.api.app import app

__all__ = ["app", "__version__"]
