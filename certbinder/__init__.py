"""
Receives DNSimple certificate webhooks, archives the issued certificates and
binds them to the Azure App Service host names they cover.
"""

__version__ = "1.0.0"
