"""Reviews app package: tenant ratings for completed stays."""
