"""Agreement export."""

from landpool.export.renderer import AgreementRenderer

__all__ = ["AgreementRenderer"]
