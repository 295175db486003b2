"""Bundled policy catalogs."""
