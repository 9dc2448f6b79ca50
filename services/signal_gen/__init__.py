"""Trade opportunity detection."""
