"""HTTP transport helpers built on httpx, and error normalization."""
