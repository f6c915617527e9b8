"""Catalog provider clients.

Submodules:
    base        -- ProviderAdapter protocol and shared JSON request helper
    discogs     -- Discogs database search and release/master lookup
    musicbrainz -- MusicBrainz release search and release lookup
"""
