"""
Module: access

Purpose:
    Access codes: issuing them and resolving codes or paper ids into
    session start parameters.
"""

from .issuer import DEFAULT_CODE_BYTES, AccessIssuer

__all__ = ["AccessIssuer", "DEFAULT_CODE_BYTES"]
