"""
Control layer over NSSM, for installing and managing Windows services.
"""

__version__ = "1.0.0"
