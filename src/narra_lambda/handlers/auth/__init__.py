"""Author login: PIN codes, custom magic links and their validation."""
