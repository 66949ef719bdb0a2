"""Sitegate static file server."""

from sitegate.server.app import SiteServer, create_app, is_hidden
from sitegate.server.loader import SiteRulesError, load_site_rules

__all__ = [
    "SiteServer",
    "create_app",
    "is_hidden",
    "SiteRulesError",
    "load_site_rules",
]
