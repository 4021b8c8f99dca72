"""Configuration loading (YAML, .env, environment) and the client config struct."""
