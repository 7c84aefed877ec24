"""aepsite - build the AEP documentation site."""

__version__ = "0.1.0"
