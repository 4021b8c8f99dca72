"""OAuth2 token acquisition and caching."""
