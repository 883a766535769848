"""Static manifest templates rendered into each platform package."""
